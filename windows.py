"""
Time windows deciding which dated records count in a computation
"""
from __future__ import annotations
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Optional, Union

from utils import household_now, try_parse_date

SUBMISSION_DEADLINE_HOUR = 22


@dataclass(frozen=True)
class Today:
    pass


@dataclass(frozen=True)
class CurrentMonth:
    pass


@dataclass(frozen=True)
class SelectedMonth:
    month: int  # 1-12
    year: int


@dataclass(frozen=True)
class AllTime:
    pass


WindowMode = Union[Today, CurrentMonth, SelectedMonth, AllTime]
DatePredicate = Callable[[str], bool]


def window_predicate(mode: WindowMode, today: Optional[date] = None) -> DatePredicate:
    """
    Build a (date string) -> bool predicate for the given window.
    Unparsable dates never fall inside a dated window; AllTime accepts everything.
    """
    if isinstance(mode, AllTime):
        return lambda _d: True

    ref = today or date.today()
    if isinstance(mode, Today):
        def in_today(d: str) -> bool:
            return try_parse_date(d) == ref
        return in_today

    if isinstance(mode, CurrentMonth):
        month, year = ref.month, ref.year
    elif isinstance(mode, SelectedMonth):
        month, year = mode.month, mode.year
    else:
        raise TypeError(f"Unknown window mode: {mode!r}")

    def in_month(d: str) -> bool:
        pd = try_parse_date(d)
        return pd is not None and pd.month == month and pd.year == year
    return in_month


def parse_window(text: str) -> WindowMode:
    """Parse "today", "current_month", "all_time" or "YYYY-MM" into a window mode"""
    if text is not None and not isinstance(text, str):
        raise ValueError(f"Window must be a string, got {type(text).__name__}")
    s = (text or "").strip().lower()
    if s == "today":
        return Today()
    if s in ("current_month", "month", ""):
        return CurrentMonth()
    if s in ("all_time", "all"):
        return AllTime()
    try:
        d = datetime.strptime(s, "%Y-%m")
    except ValueError:
        raise ValueError(f"Unknown window: {text!r}") from None
    return SelectedMonth(month=d.month, year=d.year)


def window_label(mode: WindowMode, today: Optional[date] = None) -> str:
    """Human readable window name used in reports"""
    ref = today or date.today()
    if isinstance(mode, AllTime):
        return "All time"
    if isinstance(mode, Today):
        return ref.isoformat()
    if isinstance(mode, CurrentMonth):
        return f"{ref.year:04d}-{ref.month:02d}"
    return f"{mode.year:04d}-{mode.month:02d}"


def is_before_submission_deadline(now: datetime, deadline_hour: int = SUBMISSION_DEADLINE_HOUR) -> bool:
    """
    Whether a non-admin member may still submit meals.
    `now` must already be in the household timezone (see utils.household_now).
    """
    return now.hour < deadline_hour


def is_submission_open(
    tz_name: str = "Asia/Dhaka",
    deadline_hour: int = SUBMISSION_DEADLINE_HOUR,
    now: Optional[datetime] = None,
) -> bool:
    """Deadline check against the household clock"""
    return is_before_submission_deadline(now or household_now(tz_name), deadline_hour)
