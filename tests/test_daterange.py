from datetime import datetime, timezone

import pytest

from bizdash.daterange import PRESETS, DateRange, ist_day_key, resolve_preset, resolve_range, utc_month_key

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)  # Friday, 17:30 at +5:30


@pytest.mark.parametrize(
    "preset, start, end",
    [
        ("Today", "2024-03-14T18:30:00.000Z", "2024-03-15T18:29:59.999Z"),
        ("Yesterday", "2024-03-13T18:30:00.000Z", "2024-03-14T18:29:59.999Z"),
        ("This Week", "2024-03-10T18:30:00.000Z", "2024-03-17T18:29:59.999Z"),
        ("Last Week", "2024-03-03T18:30:00.000Z", "2024-03-10T18:29:59.999Z"),
        ("This Month", "2024-02-29T18:30:00.000Z", "2024-03-31T18:29:59.999Z"),
        ("Last Month", "2024-01-31T18:30:00.000Z", "2024-02-29T18:29:59.999Z"),
        ("Last 30 Days", "2024-02-15T18:29:59.999Z", "2024-03-15T18:29:59.999Z"),
        ("Last 3 Months", "2023-12-17T18:29:59.999Z", "2024-03-15T18:29:59.999Z"),
        ("This Year", "2023-12-31T18:30:00.000Z", "2024-12-31T18:29:59.999Z"),
        ("Last Year", "2022-12-31T18:30:00.000Z", "2023-12-31T18:29:59.999Z"),
    ],
)
def test_presets_resolve_in_fixed_offset(preset, start, end):
    r = resolve_preset(preset, NOW)
    assert r.start_iso == start
    assert r.end_iso == end


def test_every_bounded_preset_has_start_before_end():
    for preset in PRESETS:
        r = resolve_preset(preset, NOW)
        if r.start and r.end:
            assert r.start <= r.end


def test_all_time_and_unknown_labels_are_unbounded():
    assert resolve_preset("All Time", NOW).is_unbounded
    assert resolve_preset("Fortnight", NOW).is_unbounded
    assert resolve_range("Custom", None, None, now=NOW) == DateRange()


def test_today_follows_the_offset_day_across_new_year():
    now = datetime(2024, 12, 31, 19, 0, tzinfo=timezone.utc)  # 00:30 on Jan 1 at +5:30
    assert resolve_preset("Today", now).start_iso == "2024-12-31T18:30:00.000Z"
    assert resolve_preset("This Year", now).start_iso == "2024-12-31T18:30:00.000Z"
    assert resolve_preset("Last Year", now).start_iso == "2023-12-31T18:30:00.000Z"


def test_custom_range_uses_whole_days():
    r = resolve_range("Custom", "2024-03-01", "2024-03-31", now=NOW)
    assert r.start_iso == "2024-02-29T18:30:00.000Z"
    assert r.end_iso == "2024-03-31T18:29:59.999Z"


def test_custom_range_allows_open_ends():
    r = resolve_range("Custom", "2024-03-01", "", now=NOW)
    assert r.start_iso == "2024-02-29T18:30:00.000Z"
    assert r.end is None


def test_custom_range_rejects_malformed_dates():
    with pytest.raises(ValueError):
        resolve_range("Custom", "03/01/2024", None, now=NOW)


def test_day_and_month_keys_use_different_frames():
    ts = datetime(2024, 3, 31, 20, 0, tzinfo=timezone.utc)
    assert ist_day_key(ts) == "2024-04-01"
    assert utc_month_key(ts) == "2024-03"
