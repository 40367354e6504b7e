from datetime import datetime, timedelta, timezone

import pytest
from vmnative.timeutil import format_rfc3339, parse_time


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("2024-01-15T10:30:00Z", datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)),
        ("2024-01-15T12:30:00+02:00", datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)),
        ("2024", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        ("2024-03", datetime(2024, 3, 1, tzinfo=timezone.utc)),
        ("2024-03-05", datetime(2024, 3, 5, tzinfo=timezone.utc)),
        ("2024-03-05T07", datetime(2024, 3, 5, 7, tzinfo=timezone.utc)),
        ("2024-03-05T07:08", datetime(2024, 3, 5, 7, 8, tzinfo=timezone.utc)),
        ("2024-03-05T07:08:09", datetime(2024, 3, 5, 7, 8, 9, tzinfo=timezone.utc)),
        ("1704067200", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        ("1704067200000", datetime(2024, 1, 1, tzinfo=timezone.utc)),
        ("1704067200.5", datetime(2024, 1, 1, 0, 0, 0, 500000, tzinfo=timezone.utc)),
    ],
)
def test_parse_time(value, expected):
    assert parse_time(value) == expected


def test_parse_time_returns_utc():
    parsed = parse_time("2024-01-15T12:30:00+02:00")

    assert parsed.utcoffset() == timedelta(0)


@pytest.mark.parametrize("value", ["", "   ", "yesterday", "2024-13-01", "01/02/2024", "1" * 400, "9" * 20])
def test_parse_time_invalid(value):
    with pytest.raises(ValueError):
        parse_time(value)


def test_format_rfc3339():
    value = datetime(2024, 1, 8, 12, 0, 1, 999, tzinfo=timezone.utc)

    assert format_rfc3339(value) == "2024-01-08T12:00:01Z"


def test_format_rfc3339_converts_offset():
    value = datetime(2024, 1, 8, 2, 0, tzinfo=timezone(timedelta(hours=2)))

    assert format_rfc3339(value) == "2024-01-08T00:00:00Z"
