"""
Availability resolution.

A schedule describes recurring weekday intervals plus date overrides. For a
concrete date the candidate intervals are the active overrides dated that
day when there are any (they replace the weekday pattern), otherwise the
weekday's intervals. Booked appointment windows are then carved out.

All times are handled as minutes since midnight; a window that runs past
midnight is clipped at the end of the day.
"""
from datetime import date
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.core.utils import MINUTES_PER_DAY, format_hhmm, parse_hhmm, weekday_name

Window = Tuple[int, int]

def interval_window(interval: dict) -> Window:
    return parse_hhmm(interval["start_time"]), parse_hhmm(interval["end_time"])

def booked_window(start_time: str, duration) -> Window:
    start = parse_hhmm(start_time)
    return start, min(start + int(duration), MINUTES_PER_DAY)

def merge_windows(windows: Iterable[Window]) -> List[Window]:
    merged: List[Window] = []
    for start, end in sorted(w for w in windows if w[0] < w[1]):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))
    return merged

def subtract_windows(free: Sequence[Window], busy: Sequence[Window]) -> List[Window]:
    result: List[Window] = []
    busy = merge_windows(busy)
    for start, end in merge_windows(free):
        cursor = start
        for busy_start, busy_end in busy:
            if busy_end <= cursor or busy_start >= end:
                continue
            if busy_start > cursor:
                result.append((cursor, busy_start))
            cursor = max(cursor, busy_end)
            if cursor >= end:
                break
        if cursor < end:
            result.append((cursor, end))
    return result

def overrides_for(schedule_overrides: Iterable[dict], day: date) -> List[dict]:
    iso = day.isoformat()
    return [
        o for o in schedule_overrides or []
        if o.get("is_active", True) and str(o.get("date"))[:10] == iso
    ]

def candidate_windows(days_of_week: dict, overrides: Iterable[dict], day: date) -> Tuple[List[Window], List[dict]]:
    """Returns the candidate windows and the overrides that produced them (if any)."""
    dated = overrides_for(overrides, day)
    if dated:
        return merge_windows(interval_window(o) for o in dated), dated
    intervals = (days_of_week or {}).get(weekday_name(day), [])
    return merge_windows(interval_window(i) for i in intervals), []

def free_intervals(days_of_week: dict, overrides: Iterable[dict], day: date, booked: Iterable[Window]) -> Tuple[List[dict], List[dict]]:
    """Free "HH:mm" intervals on ``day`` and the overrides in effect for it."""
    windows, dated = candidate_windows(days_of_week, overrides, day)
    free = [
        {"start_time": format_hhmm(start), "end_time": format_hhmm(end)}
        for start, end in subtract_windows(windows, list(booked))
    ]
    return free, dated

def free_intervals_by_place(days_of_week: dict, overrides: Iterable[dict], day: date, booked: Iterable[Window]) -> List[Tuple[Optional[dict], List[dict]]]:
    """
    Free intervals on ``day`` grouped by where they are offered.

    Overrides sharing a location and timezone are unioned and the group is
    tagged with that place. Overrides at different places are resolved
    separately, so their intervals may overlap. Without overrides there is
    a single group tagged None: the schedule's own location applies.
    """
    booked = list(booked)
    dated = overrides_for(overrides, day)
    if not dated:
        free, _ = free_intervals(days_of_week, [], day, booked)
        return [(None, free)]

    places: Dict[Tuple, List[dict]] = {}
    for override in dated:
        places.setdefault((override.get("location"), override.get("timezone")), []).append(override)
    return [
        ({"location": location, "timezone": timezone}, free_intervals(days_of_week, group, day, booked)[0])
        for (location, timezone), group in places.items()
    ]

def find_overlap(intervals: Sequence[dict]) -> Tuple[dict, dict] | None:
    """First pair of overlapping intervals in a day, or None."""
    ordered = sorted(intervals, key=lambda i: parse_hhmm(i["start_time"]))
    for previous, current in zip(ordered, ordered[1:]):
        if parse_hhmm(current["start_time"]) < parse_hhmm(previous["end_time"]):
            return previous, current
    return None
