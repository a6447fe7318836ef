"""
Data models for the mess ledger
"""
from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class ContributionModel(str, Enum):
    """How a member's cash-in is counted against their meal cost"""
    SEPARATE_DEPOSIT = "deposit"  # Deposit entity tracks cash-in
    PAID_BY_EXPENSE = "paid_by"   # Expense.paid_by tracks who fronted the cash


@dataclass
class Member:
    """Household member"""
    id: str
    name: str
    is_active: bool = True


@dataclass
class DailyMeal:
    """Meals one member took on one day (unique per date + member_id)"""
    date: str  # YYYY-MM-DD
    member_id: str
    lunch: bool = False
    dinner: bool = False
    lunch_count: Optional[float] = None  # explicit count overrides the flag
    dinner_count: Optional[float] = None


@dataclass
class Expense:
    """Grocery ("bazar") spending; the only spending that feeds the meal rate"""
    id: str
    date: str
    item: str
    amount: float
    paid_by: Optional[str] = None


@dataclass
class ExtraExpense:
    """One-off non-grocery spending"""
    id: str
    date: str
    item: str
    amount: float
    note: Optional[str] = None


@dataclass
class Deposit:
    id: str
    date: str
    member_id: str
    amount: float


@dataclass
class MaidPayment:
    id: str
    date: str
    amount: float
    paid_by: Optional[str] = None
    note: Optional[str] = None


@dataclass
class ShopTransaction:
    """Purchase on credit from, or payment to, the shop"""
    id: str
    date: str
    type: str  # "purchase" or "payment"
    amount: float
    note: Optional[str] = None


@dataclass
class Ledger:
    """Complete ledger containing all data"""
    members: List[Member] = field(default_factory=list)
    meals: List[DailyMeal] = field(default_factory=list)
    expenses: List[Expense] = field(default_factory=list)
    extra_expenses: List[ExtraExpense] = field(default_factory=list)
    deposits: List[Deposit] = field(default_factory=list)
    maid_payments: List[MaidPayment] = field(default_factory=list)
    shop_transactions: List[ShopTransaction] = field(default_factory=list)
    version: int = 1


@dataclass(frozen=True)
class MealUnits:
    """Canonical lunch/dinner quantities of a meal record"""
    lunch: float
    dinner: float

    @property
    def weight(self) -> float:
        return self.lunch * 1.0 + self.dinner * 0.5


@dataclass(frozen=True)
class MemberSummary:
    """
    Settlement of one member over a window.
    total_deposit holds paid-for grocery totals under ContributionModel.PAID_BY_EXPENSE.
    balance > 0: household owes the member; balance < 0: member owes the household.
    """
    member_id: str
    name: str
    total_meals: float
    total_lunch: float
    total_dinner: float
    total_cost: float
    total_deposit: float
    balance: float


@dataclass(frozen=True)
class MonthlyStats:
    total_meals: float
    total_expenses: float
    total_extra_expenses: float
    total_deposits: float
    total_maid_payments: float
    meal_rate: float

    @property
    def cash_balance(self) -> float:
        """Cash left in the pool after every kind of spending"""
        return (self.total_deposits - self.total_expenses
                - self.total_extra_expenses - self.total_maid_payments)


@dataclass(frozen=True)
class ShopBalance:
    total_purchase: float
    total_payment: float

    @property
    def balance(self) -> float:
        # positive -> owed to the shop; negative -> credit held with the shop
        return self.total_purchase - self.total_payment


@dataclass(frozen=True)
class LedgerReport:
    """Read-only snapshot handed to report generators"""
    window: str
    stats: MonthlyStats
    summaries: Tuple[MemberSummary, ...]
    shop: ShopBalance
    total_receivable: float = 0.0  # owed by the pool to members
    total_payable: float = 0.0     # owed by members to the pool
