from __future__ import annotations

import re
from datetime import date
from typing import Literal

from app.core.exceptions import ScheduleValidationError

DayName = Literal["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

DAYS: list[str] = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
WEEKDAY_NAMES: list[str] = DAYS + ["Sunday"]

# (start, end, label); slot 3 is lunch and never assignable.
PERIODS: list[tuple[str, str, str]] = [
    ("09:15", "09:55", "I"),
    ("09:55", "10:35", "II"),
    ("10:35", "11:15", "III"),
    ("11:15", "11:30", "LUNCH"),
    ("11:30", "12:15", "IV"),
    ("12:15", "13:00", "V"),
    ("13:00", "13:45", "VI"),
]
PERIOD_COUNT = len(PERIODS)
LUNCH_INDEX = 3

TIME_PATTERN = re.compile(r"^([01]\d|2[0-3]):[0-5]\d$")


def parse_time_to_minutes(value: str) -> int:
    if not TIME_PATTERN.match(value):
        raise ValueError("Time must be in HH:MM 24-hour format")
    hours, minutes = value.split(":")
    return int(hours) * 60 + int(minutes)


def slot_key(class_id: str, period_index: int) -> str:
    return f"{class_id}_{period_index}"


def parse_slot_key(key: str) -> tuple[str, int]:
    # Class ids may themselves contain underscores ("11_SCI"), so split from the right.
    class_id, _, raw_period = key.rpartition("_")
    if not class_id or not raw_period.isdigit():
        raise ValueError(f"Malformed schedule key: {key!r}")
    return class_id, int(raw_period)


def period_label(period_index: int) -> str:
    if period_index == LUNCH_INDEX:
        return "LUNCH"
    return f"Period-{PERIODS[period_index][2]}"


def teaching_period_label(period_index: int) -> str:
    """Ordinal among teaching periods: lunch is not counted, so index 4 is "Period-4"."""
    if period_index == LUNCH_INDEX:
        return "LUNCH"
    return f"Period-{period_index + (0 if period_index > LUNCH_INDEX else 1)}"


def is_morning(period_index: int) -> bool:
    return period_index < LUNCH_INDEX


def is_afternoon(period_index: int) -> bool:
    return period_index > LUNCH_INDEX


def ensure_teaching_period(period_index: int) -> None:
    if not 0 <= period_index < PERIOD_COUNT:
        raise ScheduleValidationError(
            f"Period index must be between 0 and {PERIOD_COUNT - 1}",
            details={"periodIndex": period_index},
        )
    if period_index == LUNCH_INDEX:
        raise ScheduleValidationError(
            "The lunch slot cannot be assigned",
            details={"periodIndex": period_index},
        )


def ensure_school_day(day_name: str) -> str:
    if day_name not in DAYS:
        raise ScheduleValidationError(
            f"{day_name} is not a school day",
            details={"dayName": day_name, "allowed": DAYS},
        )
    return day_name


def day_name_for(value: date) -> str:
    return ensure_school_day(WEEKDAY_NAMES[value.weekday()])


def later_days(day_name: str) -> list[str]:
    index = DAYS.index(ensure_school_day(day_name))
    return DAYS[index + 1:]
