"""
Utility functions for the mess ledger
"""
from __future__ import annotations
import os
import uuid
from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo


def parse_date(s: str) -> date:
    """Parse YYYY-MM-DD date string"""
    return datetime.strptime(s.strip()[:10], "%Y-%m-%d").date()


def try_parse_date(s) -> Optional[date]:
    """Parse a date string, returning None when it is not a YYYY-MM-DD date"""
    try:
        return parse_date(s)
    except (TypeError, ValueError, AttributeError):
        return None


def new_id() -> str:
    return str(uuid.uuid4())


def safe_float(x, default: Optional[float] = 0.0) -> Optional[float]:
    """Convert to float safely, returning default on error"""
    try:
        return float(x)
    except (TypeError, ValueError):
        return default


def household_now(tz_name: str = "Asia/Dhaka") -> datetime:
    """Current wall-clock time in the household's timezone"""
    return datetime.now(ZoneInfo(tz_name))


def app_dir() -> str:
    """
    Get application data directory: $MESS_LEDGER_HOME or ~/.mess-ledger
    Creates directory if it doesn't exist.
    """
    path = os.environ.get("MESS_LEDGER_HOME") or os.path.expanduser("~/.mess-ledger")
    os.makedirs(path, exist_ok=True)
    return path
