"""Conversions from proposed time slots to persisted task rows."""
from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Sequence

from app.api.schemas.schedule import TimeSlot

DEFAULT_DURATION_MIN = 60

# First matching keyword group wins.
ACTIVITY_DURATIONS: List[tuple[tuple[str, ...], int]] = [
    (("sleep",), 360),
    (("work", "study"), 240),
    (("meal", "exercise"), 60),
]

CATEGORY_LABELS = {
    "work": "Work",
    "personal": "Personal",
    "health": "Personal",
    "family": "Family Time",
    "sleep": "Sleep",
}
DEFAULT_CATEGORY_LABEL = "Personal"

_TWELVE_HOUR_PATTERN = re.compile(r"^\s*(\d{1,2}):(\d{2})\s*(AM|PM)\s*$", re.IGNORECASE)
_MERIDIEM_PATTERN = re.compile(r"AM|PM", re.IGNORECASE)


def to_24_hour(display_time: str) -> str:
    """Convert a display time ("7:00 AM", "14:30") into HH:MM:SS.

    Values that are neither 12-hour clock times nor bare HH:MM pass through
    unchanged.
    """
    match = _TWELVE_HOUR_PATTERN.match(display_time)
    if match:
        hours = int(match.group(1))
        minutes = match.group(2)
        meridiem = match.group(3).upper()
        if meridiem == "AM" and hours == 12:
            hours = 0
        elif meridiem == "PM" and hours != 12:
            hours += 12
        return f"{hours:02d}:{minutes}:00"

    if display_time.count(":") == 1 and not _MERIDIEM_PATTERN.search(display_time):
        return f"{display_time}:00"

    return display_time


def duration_for_activity(activity: str) -> int:
    lowered = activity.lower()
    for keywords, minutes in ACTIVITY_DURATIONS:
        if any(keyword in lowered for keyword in keywords):
            return minutes
    return DEFAULT_DURATION_MIN


def calculate_end_time(start_time: str, activity: str) -> str:
    """Add the activity's duration to an HH:MM:SS start, wrapping past midnight."""
    start = parse_clock_time(start_time)
    end = datetime.combine(date.min, start) + timedelta(minutes=duration_for_activity(activity))
    return end.time().strftime("%H:%M:%S")


def parse_clock_time(value: str) -> time:
    return datetime.strptime(value.strip(), "%H:%M:%S").time()


def map_category(category: str | None) -> str:
    return CATEGORY_LABELS.get((category or "").strip().lower(), DEFAULT_CATEGORY_LABEL)


def build_task_rows(slots: Sequence[TimeSlot]) -> List[Dict[str, Any]]:
    """Map confirmed slots onto user_tasks payloads numbered 1..N.

    Raises ValueError when a slot's time cannot be read as a clock time.
    """
    rows: List[Dict[str, Any]] = []
    for position, slot in enumerate(slots, start=1):
        start_time = to_24_hour(slot.time)
        end_time = calculate_end_time(start_time, slot.activity)
        rows.append(
            {
                "start_time": parse_clock_time(start_time),
                "end_time": parse_clock_time(end_time),
                "activity_name": slot.activity,
                "category": map_category(slot.category),
                "is_completed": False,
                "display_order": position,
            }
        )
    return rows
