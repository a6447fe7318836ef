"""
Configuration, seed data and JSON snapshot loading/saving for the mess ledger
"""
from __future__ import annotations
import json
import logging
import math
import os
from dataclasses import asdict, dataclass, fields
from typing import List, Optional

from models import (
    ContributionModel,
    DailyMeal,
    Deposit,
    Expense,
    ExtraExpense,
    Ledger,
    MaidPayment,
    Member,
    ShopTransaction,
)
from utils import app_dir, safe_float
from windows import WindowMode, parse_window

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1
LEDGER_FILENAME = "ledger.json"
SETTINGS_FILENAME = "settings.json"

REQUIRED_KEYS = ("members", "meals", "expenses", "deposits")
SHOP_TYPES = ("purchase", "payment")

# collection attribute -> (snapshot key, entity class)
COLLECTIONS = {
    "members": ("members", Member),
    "meals": ("meals", DailyMeal),
    "expenses": ("expenses", Expense),
    "extra_expenses": ("extraExpenses", ExtraExpense),
    "deposits": ("deposits", Deposit),
    "maid_payments": ("maidPayments", MaidPayment),
    "shop_transactions": ("shopTransactions", ShopTransaction),
}

# python field name -> snapshot key, for fields whose names differ
FIELD_KEYS = {
    "is_active": "isActive",
    "member_id": "memberId",
    "lunch_count": "lunchCount",
    "dinner_count": "dinnerCount",
    "paid_by": "paidBy",
}

DEFAULT_MEMBER_NAMES = [
    "রহিম উদ্দিন",
    "করিম হোসেন",
    "জামাল আহমেদ",
    "সাইফুল ইসলাম",
    "মাহমুদ হাসান",
    "আব্দুল্লাহ আল মামুন",
    "তানভীর রহমান",
    "শাহরিয়ার কবির",
]


class LedgerImportError(ValueError):
    """Snapshot document could not be turned into a ledger"""


@dataclass
class Settings:
    """Deployment settings, fixed for the lifetime of a store"""
    contribution_model: ContributionModel = ContributionModel.SEPARATE_DEPOSIT
    default_window: str = "current_month"
    deadline_hour: int = 22
    timezone: str = "Asia/Dhaka"

    @property
    def window(self) -> WindowMode:
        return parse_window(self.default_window)


def load_settings(path: Optional[str] = None) -> Settings:
    """Load settings from JSON file, falling back to defaults"""
    path = path or os.path.join(app_dir(), SETTINGS_FILENAME)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return Settings()

    settings = Settings()
    if "contribution_model" in data:
        settings.contribution_model = ContributionModel(data["contribution_model"])
    if "default_window" in data:
        parse_window(data["default_window"])
        settings.default_window = data["default_window"]
    if "deadline_hour" in data:
        settings.deadline_hour = int(data["deadline_hour"])
    if "timezone" in data:
        settings.timezone = str(data["timezone"])
    return settings


def default_members() -> List[Member]:
    return [Member(id=str(i), name=name) for i, name in enumerate(DEFAULT_MEMBER_NAMES, start=1)]


def get_default_ledger() -> Ledger:
    """Seed ledger: default members, every other collection empty"""
    return Ledger(members=default_members())


def entity_to_dict(obj) -> dict:
    """Snapshot form of one entity; unset optional fields are left out"""
    return {FIELD_KEYS.get(k, k): v for k, v in asdict(obj).items() if v is not None}


def _coerce(name: str, value):
    if name == "amount":
        return safe_float(value, math.nan)
    if name in ("lunch_count", "dinner_count"):
        return None if value is None else safe_float(value, math.nan)
    if name in ("lunch", "dinner", "is_active"):
        return bool(value)
    if value is None:
        return None
    return str(value)


def entity_from_dict(cls, d: dict):
    """Build an entity from its snapshot form, raising LedgerImportError on bad shape"""
    if not isinstance(d, dict):
        raise LedgerImportError(f"{cls.__name__} entry must be an object, got {type(d).__name__}")
    kwargs = {}
    for f in fields(cls):
        key = FIELD_KEYS.get(f.name, f.name)
        if key in d:
            kwargs[f.name] = _coerce(f.name, d[key])
        elif f.name in d:
            kwargs[f.name] = _coerce(f.name, d[f.name])
    try:
        entity = cls(**kwargs)
    except TypeError as ex:
        raise LedgerImportError(f"Invalid {cls.__name__}: {ex}") from ex
    if isinstance(entity, ShopTransaction) and entity.type not in SHOP_TYPES:
        raise LedgerImportError(f"Invalid shop transaction type: {entity.type!r}")
    return entity


def ledger_to_dict(ledger: Ledger) -> dict:
    """Convert Ledger object to dictionary for JSON serialization"""
    out = {"version": ledger.version}
    for attr, (key, _cls) in COLLECTIONS.items():
        out[key] = [entity_to_dict(e) for e in getattr(ledger, attr)]
    return out


def dict_to_ledger(d: dict) -> Ledger:
    """
    Convert dictionary from JSON to Ledger object.
    members, meals, expenses and deposits are required; the rest default to empty.
    """
    if not isinstance(d, dict):
        raise LedgerImportError("Snapshot must be a JSON object")
    missing = [k for k in REQUIRED_KEYS if k not in d]
    if missing:
        raise LedgerImportError(f"Missing required keys: {', '.join(missing)}")

    collections = {}
    for attr, (key, cls) in COLLECTIONS.items():
        items = d[key] if key in REQUIRED_KEYS else (d.get(key) or [])
        if not isinstance(items, list):
            raise LedgerImportError(f"'{key}' must be a list")
        collections[attr] = [entity_from_dict(cls, item) for item in items]

    version = d.get("version", SCHEMA_VERSION)
    if not isinstance(version, int):
        raise LedgerImportError("'version' must be an integer")
    return Ledger(version=version, **collections)


def dumps_ledger(ledger: Ledger) -> str:
    """Pretty-printed JSON snapshot"""
    return json.dumps(ledger_to_dict(ledger), ensure_ascii=False, indent=2)


def loads_ledger(text: str) -> Ledger:
    try:
        d = json.loads(text)
    except (TypeError, ValueError) as ex:
        raise LedgerImportError(f"Not valid JSON: {ex}") from ex
    return dict_to_ledger(d)


class JsonFilePersistence:
    """Keeps the ledger snapshot in a single JSON file"""

    def __init__(self, path: Optional[str] = None):
        self.path = path or os.path.join(app_dir(), LEDGER_FILENAME)

    def load(self) -> Optional[Ledger]:
        """Ledger stored on disk, or None on first run"""
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                text = f.read()
        except FileNotFoundError:
            return None
        return loads_ledger(text)

    def save(self, ledger: Ledger) -> bool:
        tmp = self.path + ".tmp"
        try:
            with open(tmp, "w", encoding="utf-8") as f:
                f.write(dumps_ledger(ledger))
            os.replace(tmp, self.path)
        except OSError as ex:
            logger.warning("Saving ledger to %s failed: %s", self.path, ex)
            return False
        return True
