"""
Ledger store: the collections of the mess ledger and every mutation on them
"""
from __future__ import annotations
import logging
from dataclasses import replace
from datetime import date, datetime
from typing import List, Optional

from models import (
    ContributionModel,
    DailyMeal,
    Deposit,
    Expense,
    ExtraExpense,
    Ledger,
    LedgerReport,
    MaidPayment,
    Member,
    MemberSummary,
    MonthlyStats,
    ShopBalance,
    ShopTransaction,
)
from computations import (
    build_report,
    compute_member_summaries,
    compute_monthly_stats,
    meals_for_date,
    member_name,
    shop_balance,
    today_stats,
)
from config import LedgerImportError, Settings, dumps_ledger, get_default_ledger, loads_ledger
from realtime import ChangeEvent, apply_meal_change
from utils import household_now, new_id
from windows import (
    SUBMISSION_DEADLINE_HOUR,
    CurrentMonth,
    WindowMode,
    is_submission_open,
    window_predicate,
)

logger = logging.getLogger(__name__)

MEAL_SLOTS = ("lunch", "dinner")


# ---------- Pure collection transforms ----------
def add_record(records: list, record) -> list:
    return records + [record]


def remove_by_id(records: list, rid: str) -> list:
    return [r for r in records if r.id != rid]


def toggle_member(members: List[Member], mid: str) -> List[Member]:
    return [replace(m, is_active=not m.is_active) if m.id == mid else m for m in members]


def rename_member(members: List[Member], mid: str, name: str) -> List[Member]:
    return [replace(m, name=name) if m.id == mid else m for m in members]


def upsert_meal(meals: List[DailyMeal], day: str, member_id: str, **changes) -> List[DailyMeal]:
    """Update the (day, member_id) record in place, or append a new one"""
    out = []
    found = False
    for m in meals:
        if m.date == day and m.member_id == member_id:
            if not found:
                out.append(replace(m, **changes))
                found = True
            # drop any duplicate left by older data
            continue
        out.append(m)
    if not found:
        out.append(replace(DailyMeal(date=day, member_id=member_id), **changes))
    return out


class LedgerStore:
    """
    Holds the ledger for one household and persists it after every mutation.
    The contribution model is chosen once, at construction.
    """

    def __init__(
        self,
        ledger: Optional[Ledger] = None,
        model: ContributionModel = ContributionModel.SEPARATE_DEPOSIT,
        persistence=None,
        default_window: Optional[WindowMode] = None,
        timezone: str = "Asia/Dhaka",
        deadline_hour: int = SUBMISSION_DEADLINE_HOUR,
    ):
        self.ledger: Ledger = ledger if ledger is not None else get_default_ledger()
        self.model = ContributionModel(model)
        self.persistence = persistence
        self.default_window = default_window or CurrentMonth()
        self.timezone = timezone
        self.deadline_hour = deadline_hour

    @classmethod
    def open(cls, persistence, settings: Optional[Settings] = None) -> "LedgerStore":
        """Load the stored ledger, or start from the seed on first run"""
        settings = settings or Settings()
        ledger = persistence.load()
        if ledger is None:
            logger.info("No stored ledger found, starting from seed data")
        return cls(
            ledger, settings.contribution_model, persistence, settings.window,
            timezone=settings.timezone, deadline_hour=settings.deadline_hour,
        )

    def close(self) -> bool:
        """Flush the ledger to persistence"""
        return self._persist()

    def _persist(self) -> bool:
        if self.persistence is None:
            return True
        return self.persistence.save(self.ledger)

    def _commit(self, **collections) -> None:
        self.ledger = replace(self.ledger, **collections)
        self._persist()

    # ---------- Members ----------
    def add_member(self, name: str, member_id: Optional[str] = None) -> Member:
        member = Member(id=member_id or new_id(), name=name.strip(), is_active=True)
        self._commit(members=add_record(self.ledger.members, member))
        return member

    def remove_member(self, member_id: str) -> None:
        """Removes the member only; their meals, deposits and payments stay"""
        self._commit(members=remove_by_id(self.ledger.members, member_id))

    def toggle_member_status(self, member_id: str) -> None:
        self._commit(members=toggle_member(self.ledger.members, member_id))

    def rename_member(self, member_id: str, name: str) -> None:
        self._commit(members=rename_member(self.ledger.members, member_id, name.strip()))

    def member_name(self, member_id: Optional[str]) -> str:
        return member_name(self.ledger.members, member_id)

    # ---------- Meals ----------
    def update_meal(self, day: str, member_id: str, slot: str, value: bool) -> DailyMeal:
        """Tick lunch or dinner on or off; clears any explicit count for that slot"""
        if slot not in MEAL_SLOTS:
            raise ValueError(f"Meal slot must be one of {MEAL_SLOTS}, got {slot!r}")
        changes = {slot: bool(value), f"{slot}_count": None}
        self._commit(meals=upsert_meal(self.ledger.meals, day, member_id, **changes))
        return self.meal(day, member_id)

    def update_meal_count(self, day: str, member_id: str, lunch_count: float, dinner_count: float) -> DailyMeal:
        """Set explicit meal counts; negative counts are stored as zero"""
        lunch_count = max(0.0, float(lunch_count))
        dinner_count = max(0.0, float(dinner_count))
        self._commit(meals=upsert_meal(
            self.ledger.meals, day, member_id,
            lunch=lunch_count > 0,
            dinner=dinner_count > 0,
            lunch_count=lunch_count,
            dinner_count=dinner_count,
        ))
        return self.meal(day, member_id)

    def meal(self, day: str, member_id: str) -> Optional[DailyMeal]:
        for m in self.ledger.meals:
            if m.date == day and m.member_id == member_id:
                return m
        return None

    def meals_for_date(self, day: str) -> List[DailyMeal]:
        return meals_for_date(self.ledger.members, self.ledger.meals, day)

    def apply_change(self, event: ChangeEvent) -> None:
        """Apply a remote change event to the meal records (last write wins)"""
        self._commit(meals=apply_meal_change(self.ledger.meals, event))

    # ---------- Money ----------
    def add_expense(self, day: str, item: str, amount: float,
                    paid_by: Optional[str] = None, expense_id: Optional[str] = None) -> Expense:
        if paid_by is not None and self.model is not ContributionModel.PAID_BY_EXPENSE:
            raise ValueError("paid_by is only recorded under the paid_by contribution model")
        expense = Expense(id=expense_id or new_id(), date=day, item=item, amount=amount, paid_by=paid_by)
        self._commit(expenses=add_record(self.ledger.expenses, expense))
        return expense

    def remove_expense(self, expense_id: str) -> None:
        self._commit(expenses=remove_by_id(self.ledger.expenses, expense_id))

    def add_extra_expense(self, day: str, item: str, amount: float,
                          note: Optional[str] = None, expense_id: Optional[str] = None) -> ExtraExpense:
        extra = ExtraExpense(id=expense_id or new_id(), date=day, item=item, amount=amount, note=note)
        self._commit(extra_expenses=add_record(self.ledger.extra_expenses, extra))
        return extra

    def remove_extra_expense(self, expense_id: str) -> None:
        self._commit(extra_expenses=remove_by_id(self.ledger.extra_expenses, expense_id))

    def add_deposit(self, day: str, member_id: str, amount: float,
                    deposit_id: Optional[str] = None) -> Deposit:
        if self.model is ContributionModel.PAID_BY_EXPENSE:
            raise ValueError("Deposits are not tracked under the paid_by contribution model")
        deposit = Deposit(id=deposit_id or new_id(), date=day, member_id=member_id, amount=amount)
        self._commit(deposits=add_record(self.ledger.deposits, deposit))
        return deposit

    def remove_deposit(self, deposit_id: str) -> None:
        self._commit(deposits=remove_by_id(self.ledger.deposits, deposit_id))

    def add_maid_payment(self, day: str, amount: float, paid_by: Optional[str] = None,
                         note: Optional[str] = None, payment_id: Optional[str] = None) -> MaidPayment:
        payment = MaidPayment(id=payment_id or new_id(), date=day, amount=amount, paid_by=paid_by, note=note)
        self._commit(maid_payments=add_record(self.ledger.maid_payments, payment))
        return payment

    def remove_maid_payment(self, payment_id: str) -> None:
        self._commit(maid_payments=remove_by_id(self.ledger.maid_payments, payment_id))

    def add_shop_transaction(self, day: str, type: str, amount: float,
                             note: Optional[str] = None, transaction_id: Optional[str] = None) -> ShopTransaction:
        if type not in ("purchase", "payment"):
            raise ValueError(f"Shop transaction type must be 'purchase' or 'payment', got {type!r}")
        tx = ShopTransaction(id=transaction_id or new_id(), date=day, type=type, amount=amount, note=note)
        self._commit(shop_transactions=add_record(self.ledger.shop_transactions, tx))
        return tx

    def remove_shop_transaction(self, transaction_id: str) -> None:
        self._commit(shop_transactions=remove_by_id(self.ledger.shop_transactions, transaction_id))

    # ---------- Household clock ----------
    def today(self) -> date:
        """Calendar day on the household clock"""
        return household_now(self.timezone).date()

    def submission_open(self, now: Optional[datetime] = None) -> bool:
        """Whether members may still submit their own meals right now"""
        return is_submission_open(self.timezone, self.deadline_hour, now)

    # ---------- Derived views ----------
    def today_stats(self, today: Optional[date] = None) -> dict:
        return today_stats(self.ledger.meals, today or self.today())

    def monthly_stats(self, mode: Optional[WindowMode] = None, today: Optional[date] = None) -> MonthlyStats:
        in_window = window_predicate(mode or self.default_window, today or self.today())
        return compute_monthly_stats(self.ledger, in_window, self.model)

    def member_summaries(self, mode: Optional[WindowMode] = None,
                         today: Optional[date] = None) -> List[MemberSummary]:
        in_window = window_predicate(mode or self.default_window, today or self.today())
        return compute_member_summaries(self.ledger, in_window, self.model)

    def shop_balance(self, mode: Optional[WindowMode] = None, today: Optional[date] = None) -> ShopBalance:
        """All-time unless a window is given"""
        in_window = window_predicate(mode, today or self.today()) if mode is not None else None
        return shop_balance(self.ledger.shop_transactions, in_window)

    def report(self, mode: Optional[WindowMode] = None, today: Optional[date] = None) -> LedgerReport:
        return build_report(self.ledger, mode or self.default_window, self.model, today or self.today())

    # ---------- Backup / restore ----------
    def export_data(self) -> str:
        return dumps_ledger(self.ledger)

    def import_data(self, text: str) -> bool:
        """Replace the whole ledger from a snapshot; leaves it untouched on failure"""
        try:
            ledger = loads_ledger(text)
        except LedgerImportError as ex:
            logger.warning("Import rejected: %s", ex)
            return False
        self.ledger = ledger
        self._persist()
        return True

    def clear_all(self) -> None:
        """Reset to seed members with every other collection empty"""
        self.ledger = get_default_ledger()
        self._persist()
