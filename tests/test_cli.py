import importlib

import pytest
import respx
from httpx import Response
from vmnative.cli.main import build_parser, main
from vmnative.settings import get_settings

SRC = "http://vmsource:8428"
DST = "http://vmdest:8428"


@pytest.fixture(autouse=True)
def clear_settings_cache(monkeypatch):
    monkeypatch.delenv("VMNATIVE_SRC_ADDR", raising=False)
    monkeypatch.setattr(
        importlib.import_module("vmnative.cli.main"),
        "configure_logging",
        lambda level, log_format: None,
    )
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_parser_defaults():
    args = build_parser().parse_args(["explore"])

    assert args.command == "explore"
    assert args.match == '{__name__!=""}'
    assert args.chunk == ""
    assert args.tenant == ""


def test_parser_rejects_unknown_chunk():
    with pytest.raises(SystemExit) as exc_info:
        build_parser().parse_args(["explore", "--chunk", "decade"])

    assert exc_info.value.code == 2


def test_no_command_prints_help(capsys):
    assert main([]) == 1
    assert "usage" in capsys.readouterr().out


def test_explore_prints_sorted_unique_names(capsys):
    with respx.mock:
        respx.get(f"{SRC}/api/v1/label/__name__/values").mock(
            return_value=Response(200, json={"status": "success", "data": ["up", "node_load1"]})
        )
        code = main(
            [
                "explore",
                "--src-addr",
                SRC,
                "--start",
                "2024-01-01",
                "--end",
                "2024-01-15",
            ]
        )

    assert code == 0
    assert capsys.readouterr().out.split() == ["node_load1", "up"]


def test_explore_warns_on_failed_ranges(capsys):
    with respx.mock:
        respx.get(f"{SRC}/api/v1/label/__name__/values").mock(return_value=Response(500))
        code = main(["explore", "--src-addr", SRC, "--start", "2024-01-01", "--end", "2024-01-15"])

    captured = capsys.readouterr()
    assert code == 0
    assert captured.out == ""
    assert "2 time range(s) failed" in captured.err


def test_explore_invalid_time(capsys):
    code = main(["explore", "--src-addr", SRC, "--start", "someday"])

    assert code == 1
    assert "failed to parse time start" in capsys.readouterr().err


def test_tenants(capsys):
    with respx.mock:
        respx.get(f"{SRC}/admin/tenants").mock(return_value=Response(200, json={"data": ["0:0", "5:1"]}))
        code = main(["tenants", "--src-addr", SRC])

    assert code == 0
    assert capsys.readouterr().out.split() == ["0:0", "5:1"]


def test_tenants_failure(capsys):
    with respx.mock:
        respx.get(f"{SRC}/admin/tenants").mock(return_value=Response(404, text="not a cluster"))
        code = main(["tenants", "--src-addr", SRC])

    assert code == 1
    assert "not a cluster" in capsys.readouterr().err


def test_migrate(capsys):
    with respx.mock:
        respx.get(f"{SRC}/api/v1/label/__name__/values").mock(
            return_value=Response(200, json={"data": ["up"]})
        )
        respx.get(f"{SRC}/api/v1/export/native").mock(return_value=Response(200, content=b"x" * 10))
        import_route = respx.post(f"{DST}/api/v1/import/native").mock(return_value=Response(204))

        code = main(
            [
                "migrate",
                "--src-addr",
                SRC,
                "--dst-addr",
                DST,
                "--start",
                "2024-01-01T00:00:00Z",
                "--end",
                "2024-01-02T00:00:00Z",
                "--extra-label",
                "env=prod",
            ]
        )

    assert code == 0
    assert import_route.call_count == 1
    assert import_route.calls.last.request.url.params["extra_label"] == "env=prod"
    assert "Transferred 10 B in 1 request(s) for 1 metric(s)" in capsys.readouterr().err
