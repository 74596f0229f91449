from datetime import date

from app.core.availability import (
    booked_window,
    find_overlap,
    free_intervals,
    free_intervals_by_place,
    merge_windows,
    subtract_windows,
)

MONDAY = date(2025, 6, 2)

DAYS = {
    "Monday": [
        {"start_time": "09:00", "end_time": "12:00"},
        {"start_time": "14:00", "end_time": "17:00"},
    ],
    "Tuesday": [],
}

def override(day, start, end, **extra):
    return {
        "date": day,
        "start_time": start,
        "end_time": end,
        "timezone": "Africa/Douala",
        "location": "On-site",
        "reason": "",
        "is_active": True,
        **extra,
    }

def test_weekday_intervals_without_bookings():
    free, dated = free_intervals(DAYS, [], MONDAY, [])
    assert free == DAYS["Monday"]
    assert dated == []

def test_booked_window_is_carved_out():
    free, _ = free_intervals(DAYS, [], MONDAY, [booked_window("10:00", "30")])
    assert free == [
        {"start_time": "09:00", "end_time": "10:00"},
        {"start_time": "10:30", "end_time": "12:00"},
        {"start_time": "14:00", "end_time": "17:00"},
    ]

def test_booking_at_interval_edges():
    booked = [booked_window("09:00", 60), booked_window("16:30", 30)]
    free, _ = free_intervals(DAYS, [], MONDAY, booked)
    assert free == [
        {"start_time": "10:00", "end_time": "12:00"},
        {"start_time": "14:00", "end_time": "16:30"},
    ]

def test_override_replaces_weekday_pattern():
    overrides = [override("2025-06-02", "13:00", "15:00")]
    free, dated = free_intervals(DAYS, overrides, MONDAY, [])
    assert free == [{"start_time": "13:00", "end_time": "15:00"}]
    assert dated[0]["location"] == "On-site"

def test_overrides_on_same_date_are_unioned():
    overrides = [
        override("2025-06-02", "08:00", "10:00"),
        override("2025-06-02", "09:30", "11:00"),
        override("2025-06-02", "15:00", "16:00"),
    ]
    free, _ = free_intervals(DAYS, overrides, MONDAY, [])
    assert free == [
        {"start_time": "08:00", "end_time": "11:00"},
        {"start_time": "15:00", "end_time": "16:00"},
    ]

def test_inactive_or_other_date_override_is_ignored():
    overrides = [
        override("2025-06-02", "13:00", "15:00", is_active=False),
        override("2025-06-03", "13:00", "15:00"),
    ]
    free, dated = free_intervals(DAYS, overrides, MONDAY, [])
    assert free == DAYS["Monday"]
    assert dated == []

def test_day_without_intervals_is_empty():
    free, _ = free_intervals(DAYS, [], date(2025, 6, 3), [])
    assert free == []
    free, _ = free_intervals(DAYS, [], date(2025, 6, 8), [])
    assert free == []

def test_late_booking_is_clipped_at_midnight():
    assert booked_window("23:50", 30) == (23 * 60 + 50, 24 * 60)

def test_merge_and_subtract_windows():
    assert merge_windows([(60, 120), (0, 30), (30, 45), (100, 200)]) == [(0, 45), (60, 200)]
    assert subtract_windows([(0, 100)], [(10, 20), (15, 30), (90, 120)]) == [(0, 10), (30, 90)]
    assert subtract_windows([(0, 100)], [(0, 100)]) == []

def test_find_overlap():
    assert find_overlap(DAYS["Monday"]) is None
    clash = find_overlap([
        {"start_time": "09:00", "end_time": "11:00"},
        {"start_time": "10:00", "end_time": "12:00"},
    ])
    assert clash[0]["start_time"] == "09:00"
    assert clash[1]["start_time"] == "10:00"

def test_overrides_keep_their_own_place():
    overrides = [
        override("2025-06-02", "08:00", "10:00"),
        override("2025-06-02", "09:00", "11:00", location="Online", timezone="Europe/Paris"),
        override("2025-06-02", "10:00", "12:00"),
    ]
    groups = free_intervals_by_place(DAYS, overrides, MONDAY, [booked_window("08:30", "30")])
    assert groups == [
        (
            {"location": "On-site", "timezone": "Africa/Douala"},
            [{"start_time": "08:00", "end_time": "08:30"}, {"start_time": "09:00", "end_time": "12:00"}],
        ),
        (
            {"location": "Online", "timezone": "Europe/Paris"},
            [{"start_time": "09:00", "end_time": "11:00"}],
        ),
    ]

def test_weekday_pattern_has_no_place():
    assert free_intervals_by_place(DAYS, [], MONDAY, []) == [(None, DAYS["Monday"])]
