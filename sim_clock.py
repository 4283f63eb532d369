"""Game calendar.

Global convention (used everywhere in this project):

- 60 game-minutes == 1 hour, 24 hours == 1 day
- 30 days == 1 month (no month lengths, no leap years)
- 12 months == 1 year, 3 months == 1 quarter

Calendar fields are normalised inside ``Calendar.advance`` only; a
``CalendarState`` never holds out-of-range values.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Any

from config import ALLOWED_SPEEDS, TimeConfig

MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24
DAYS_PER_MONTH = 30
MONTHS_PER_YEAR = 12
MINUTES_PER_DAY = MINUTES_PER_HOUR * HOURS_PER_DAY
FRACTION_DIGITS = 9

MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


class Quarter(str, Enum):
    Q1 = "Q1"
    Q2 = "Q2"
    Q3 = "Q3"
    Q4 = "Q4"


def quarter_for_month(month: int) -> Quarter:
    if not 1 <= month <= MONTHS_PER_YEAR:
        raise ValueError(f"month must be within 1..12, got {month}")
    if month <= 3:
        return Quarter.Q1
    if month <= 6:
        return Quarter.Q2
    if month <= 9:
        return Quarter.Q3
    return Quarter.Q4


def next_quarter(quarter: Quarter) -> Quarter:
    order = list(Quarter)
    return order[(order.index(quarter) + 1) % len(order)]


def days_until_next_quarter(month: int, day: int) -> int:
    """Whole days from (month, day) to the first day of the next quarter."""
    quarter_index = (month - 1) // 3
    first_month_of_next = quarter_index * 3 + 4
    months_left = first_month_of_next - month
    return months_left * DAYS_PER_MONTH - (day - 1)


@dataclass(frozen=True)
class CalendarState:
    year: int = 2024
    quarter: Quarter = Quarter.Q1
    month: int = 1
    day: int = 1
    hour: int = 9
    minute: int = 0
    # Sub-minute remainder not yet shown in the displayed fields, in [0, 1).
    minute_fraction: float = 0.0
    total_days_played: float = 0.0
    speed_multiplier: int = 1
    paused: bool = False

    @classmethod
    def from_time_config(cls, time: TimeConfig) -> CalendarState:
        return cls(
            year=time.start_year,
            quarter=quarter_for_month(time.start_month),
            month=time.start_month,
            day=time.start_day,
            hour=time.start_hour,
            minute=time.start_minute,
            speed_multiplier=time.initial_speed,
            paused=time.initial_speed == 0,
        )

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["quarter"] = self.quarter.value
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CalendarState:
        month = int(data["month"])
        speed = int(data.get("speed_multiplier", 1))
        if speed not in ALLOWED_SPEEDS:
            raise ValueError(f"speed_multiplier must be one of {ALLOWED_SPEEDS}, got {speed}")
        state = cls(
            year=int(data["year"]),
            # Quarter is derived; a stored value is never trusted over the month.
            quarter=quarter_for_month(month),
            month=month,
            day=int(data["day"]),
            hour=int(data["hour"]),
            minute=int(data["minute"]),
            minute_fraction=float(data.get("minute_fraction", 0.0)),
            total_days_played=float(data.get("total_days_played", 0.0)),
            speed_multiplier=speed,
            paused=bool(data.get("paused", speed == 0)),
        )
        _check_ranges(state)
        return state


def _check_ranges(state: CalendarState) -> None:
    checks = (
        ("year", state.year, 0, None),
        ("day", state.day, 1, DAYS_PER_MONTH),
        ("hour", state.hour, 0, HOURS_PER_DAY - 1),
        ("minute", state.minute, 0, MINUTES_PER_HOUR - 1),
    )
    for name, value, low, high in checks:
        if value < low or (high is not None and value > high):
            raise ValueError(f"{name}={value} is out of range")
    if not 0.0 <= state.minute_fraction < 1.0:
        raise ValueError(f"minute_fraction={state.minute_fraction} is out of range")
    if state.total_days_played < 0:
        raise ValueError("total_days_played must be >= 0")


class Calendar:
    """Mutable holder of the current ``CalendarState``.

    Every command swaps in a new frozen state, so a reference obtained from
    ``state`` is never modified afterwards.
    """

    def __init__(self, time: TimeConfig | None = None, state: CalendarState | None = None):
        self.time = time or TimeConfig()
        self._state = state or CalendarState.from_time_config(self.time)

    @property
    def state(self) -> CalendarState:
        return self._state

    @property
    def quarter(self) -> Quarter:
        return self._state.quarter

    def advance(self, minutes_elapsed: float) -> CalendarState:
        """Move the calendar forward by ``minutes_elapsed`` game-minutes.

        Sub-minute amounts accumulate in ``minute_fraction`` and reach the
        displayed fields once they add up to a whole minute, so repeated
        small advances land on the same fields as one advance of their sum.
        """
        if minutes_elapsed == 0:
            return self._state

        s = self._state
        pending = s.minute_fraction + minutes_elapsed
        # Rounded so that e.g. ten steps of 0.1 make a whole minute.
        whole_minutes = math.floor(round(pending, FRACTION_DIGITS))
        minute_fraction = max(0.0, round(pending - whole_minutes, FRACTION_DIGITS))

        hour_carry, minute = divmod(s.minute + whole_minutes, MINUTES_PER_HOUR)
        day_carry, hour = divmod(s.hour + hour_carry, HOURS_PER_DAY)
        month_carry, day_index = divmod(s.day - 1 + day_carry, DAYS_PER_MONTH)
        year_carry, month_index = divmod(s.month - 1 + month_carry, MONTHS_PER_YEAR)
        month = month_index + 1

        self._state = replace(
            s,
            year=s.year + year_carry,
            quarter=quarter_for_month(month),
            month=month,
            day=day_index + 1,
            hour=hour,
            minute=minute,
            minute_fraction=minute_fraction,
            total_days_played=s.total_days_played + minutes_elapsed / MINUTES_PER_DAY,
        )
        return self._state

    def set_speed(self, value: int) -> CalendarState:
        if value not in ALLOWED_SPEEDS:
            raise ValueError(f"speed must be one of {ALLOWED_SPEEDS}, got {value!r}")
        self._state = replace(self._state, speed_multiplier=value, paused=value == 0)
        return self._state

    def pause(self) -> CalendarState:
        self._state = replace(self._state, paused=True, speed_multiplier=0)
        return self._state

    def resume(self) -> CalendarState:
        self._state = replace(self._state, paused=False, speed_multiplier=1)
        return self._state

    def reset(self) -> CalendarState:
        self._state = CalendarState.from_time_config(self.time)
        return self._state

    def restore(self, state: CalendarState) -> CalendarState:
        _check_ranges(state)
        self._state = state
        return self._state


# --- Display helpers ---
def format_game_time(hour: int, minute: int) -> str:
    return f"{hour:02d}:{minute:02d}"


def format_game_date(year: int, month: int, day: int) -> str:
    return f"{MONTH_NAMES[month - 1]} {day}, {year}"


def format_duration(days: float) -> str:
    """Compact duration label: ``5h``, ``12d``, ``2mo``, ``1mo 10d``."""
    if days < 1:
        return f"{int(days * HOURS_PER_DAY)}h"
    if days < DAYS_PER_MONTH:
        return f"{int(days)}d"
    months = int(days // DAYS_PER_MONTH)
    remaining_days = int(days % DAYS_PER_MONTH)
    if remaining_days == 0:
        return f"{months}mo"
    return f"{months}mo {remaining_days}d"


def calendar_marker(state: CalendarState) -> str:
    """Human-readable point in game time used for event history entries."""
    return (
        f"Year {state.year}, {state.quarter.value} "
        f"({MONTH_NAMES[state.month - 1][:3]} {state.day} "
        f"{format_game_time(state.hour, state.minute)})"
    )
