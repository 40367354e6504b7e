from vmnative.settings import Settings


def test_defaults(monkeypatch):
    monkeypatch.delenv("VMNATIVE_SRC_ADDR", raising=False)
    settings = Settings(_env_file=None)

    assert settings.src_addr == "http://localhost:8428"
    assert settings.explore_concurrency is None
    assert settings.migrate_concurrency == 2
    assert settings.http_timeout == 300.0


def test_environment_prefix(monkeypatch):
    monkeypatch.setenv("VMNATIVE_SRC_ADDR", "http://old-vm:8428")
    monkeypatch.setenv("VMNATIVE_EXPLORE_CONCURRENCY", "4")
    monkeypatch.setenv("VMNATIVE_DST_EXTRA_LABELS", '["env=prod"]')

    settings = Settings(_env_file=None)

    assert settings.src_addr == "http://old-vm:8428"
    assert settings.explore_concurrency == 4
    assert settings.dst_extra_labels == ["env=prod"]
