from datetime import datetime, timedelta, timezone

from soilmonitor.utils.time import iso_now, to_iso, utc_now


def test_utc_now_is_aware():
    now = utc_now()
    assert now.tzinfo is not None
    assert now.utcoffset() == timedelta(0)


def test_iso_now_carries_offset():
    assert iso_now().endswith("+00:00")
    assert iso_now(timespec="seconds").endswith("+00:00")


def test_to_iso_treats_naive_as_utc():
    assert to_iso(datetime(2026, 1, 1, 0, 0)) == "2026-01-01T00:00:00+00:00"


def test_to_iso_keeps_explicit_offset():
    dt = datetime(2026, 1, 1, 2, 0, tzinfo=timezone(timedelta(hours=2)))
    assert to_iso(dt) == "2026-01-01T02:00:00+02:00"
