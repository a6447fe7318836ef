"""
Reducer for remote meal-record change events.

Last write wins at the (date, member_id) level: an insert or update replaces the
local record, a delete removes it. Concurrent edits are never merged or flagged.
"""
from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import List, Optional

from models import DailyMeal
from utils import safe_float

logger = logging.getLogger(__name__)

EVENT_TYPES = ("insert", "update", "delete")


@dataclass(frozen=True)
class ChangeEvent:
    """A row change pushed by the shared backend"""
    type: str  # insert | update | delete
    new: Optional[dict] = None
    old: Optional[dict] = None


def _pick(row: dict, *keys):
    for k in keys:
        if k in row:
            return row[k]
    return None


def row_to_meal(row: dict) -> DailyMeal:
    """Backend rows use snake_case columns; snapshot rows use camelCase keys"""
    lunch_count = _pick(row, "lunch_count", "lunchCount")
    dinner_count = _pick(row, "dinner_count", "dinnerCount")
    return DailyMeal(
        date=str(row["date"]),
        member_id=str(_pick(row, "member_id", "memberId")),
        lunch=bool(row.get("lunch", False)),
        dinner=bool(row.get("dinner", False)),
        lunch_count=None if lunch_count is None else safe_float(lunch_count, math.nan),
        dinner_count=None if dinner_count is None else safe_float(dinner_count, math.nan),
    )


def _key(row: Optional[dict]):
    if not row or "date" not in row or _pick(row, "member_id", "memberId") is None:
        return None
    return str(row["date"]), str(_pick(row, "member_id", "memberId"))


def apply_meal_change(meals: List[DailyMeal], event: ChangeEvent) -> List[DailyMeal]:
    """Return the meal list with the event applied; unusable events leave it as is"""
    kind = (event.type or "").lower()
    if kind not in EVENT_TYPES:
        logger.warning("Ignoring realtime event of unknown type %r", event.type)
        return meals

    if kind == "delete":
        key = _key(event.old) or _key(event.new)
        if key is None:
            logger.warning("Ignoring delete event without date/member_id")
            return meals
        return [m for m in meals if (m.date, m.member_id) != key]

    key = _key(event.new)
    if key is None:
        logger.warning("Ignoring %s event without date/member_id", kind)
        return meals
    incoming = row_to_meal(event.new)
    out = []
    replaced = False
    for m in meals:
        if (m.date, m.member_id) == key:
            if not replaced:
                out.append(incoming)
                replaced = True
            continue
        out.append(m)
    if not replaced:
        out.append(incoming)
    return out
