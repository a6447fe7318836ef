"""
Business logic and computations for the mess ledger
"""
from __future__ import annotations
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from models import (
    ContributionModel,
    DailyMeal,
    Ledger,
    LedgerReport,
    MealUnits,
    Member,
    MemberSummary,
    MonthlyStats,
    ShopBalance,
    ShopTransaction,
)
from windows import DatePredicate, Today, WindowMode, window_label, window_predicate

UNKNOWN_MEMBER = "Unknown member"


def meal_units(record: DailyMeal) -> MealUnits:
    """Normalize a meal record: explicit counts win, otherwise each flag counts as one"""
    lunch = record.lunch_count if record.lunch_count is not None else (1 if record.lunch else 0)
    dinner = record.dinner_count if record.dinner_count is not None else (1 if record.dinner else 0)
    return MealUnits(lunch=float(lunch), dinner=float(dinner))


def meal_weight(record: DailyMeal) -> float:
    """Lunch counts one meal-unit, dinner half a unit"""
    return meal_units(record).weight


def filter_by_window(records: Iterable, in_window: DatePredicate) -> list:
    """Filter dated records by a window predicate"""
    return [r for r in records if in_window(r.date)]


def sum_amounts(records: Iterable) -> float:
    return sum((r.amount for r in records), 0.0)


def aggregate_for_window(records: Iterable[DailyMeal], in_window: DatePredicate) -> Dict[str, float]:
    """
    Sum lunch units, dinner units and meal weight of the records inside the window.
    Returns dict with total_lunch_units, total_dinner_units, total_weight
    """
    lunch = dinner = weight = 0.0
    for r in filter_by_window(records, in_window):
        u = meal_units(r)
        lunch += u.lunch
        dinner += u.dinner
        weight += u.weight
    return {
        "total_lunch_units": lunch,
        "total_dinner_units": dinner,
        "total_weight": weight,
    }


def meals_for_date(members: List[Member], meals: List[DailyMeal], day: str) -> List[DailyMeal]:
    """One record per active member for the day: the stored one or a zero record"""
    by_member = {m.member_id: m for m in meals if m.date == day}
    return [
        by_member.get(member.id) or DailyMeal(date=day, member_id=member.id)
        for member in members if member.is_active
    ]


def today_stats(meals: List[DailyMeal], today: Optional[date] = None) -> Dict[str, float]:
    """Lunch, dinner and total meal units recorded for today"""
    agg = aggregate_for_window(meals, window_predicate(Today(), today))
    lunch = agg["total_lunch_units"]
    dinner = agg["total_dinner_units"]
    return {"lunch": lunch, "dinner": dinner, "total": lunch + dinner}


def meal_rate(total_grocery_expense: float, total_meal_weight: float) -> float:
    """Cost per meal-unit; zero when nobody ate"""
    return total_grocery_expense / total_meal_weight if total_meal_weight > 0 else 0.0


def member_name(members: List[Member], member_id: Optional[str]) -> str:
    for m in members:
        if m.id == member_id:
            return m.name
    return UNKNOWN_MEMBER


def member_contributions(
    ledger: Ledger,
    in_window: DatePredicate,
    model: ContributionModel = ContributionModel.SEPARATE_DEPOSIT,
) -> Dict[str, float]:
    """
    Cash put in by each member inside the window.
    Deposits under SEPARATE_DEPOSIT, grocery expenses they paid for under PAID_BY_EXPENSE.
    """
    out: Dict[str, float] = {}
    if model is ContributionModel.PAID_BY_EXPENSE:
        for e in filter_by_window(ledger.expenses, in_window):
            if e.paid_by is not None:
                out[e.paid_by] = out.get(e.paid_by, 0.0) + e.amount
    else:
        for d in filter_by_window(ledger.deposits, in_window):
            out[d.member_id] = out.get(d.member_id, 0.0) + d.amount
    return out


def compute_monthly_stats(
    ledger: Ledger,
    in_window: DatePredicate,
    model: ContributionModel = ContributionModel.SEPARATE_DEPOSIT,
) -> MonthlyStats:
    """Household totals over the window. Only grocery expenses feed the meal rate."""
    total_meals = aggregate_for_window(ledger.meals, in_window)["total_weight"]
    total_expenses = sum_amounts(filter_by_window(ledger.expenses, in_window))
    return MonthlyStats(
        total_meals=total_meals,
        total_expenses=total_expenses,
        total_extra_expenses=sum_amounts(filter_by_window(ledger.extra_expenses, in_window)),
        total_deposits=sum(member_contributions(ledger, in_window, model).values(), 0.0),
        total_maid_payments=sum_amounts(filter_by_window(ledger.maid_payments, in_window)),
        meal_rate=meal_rate(total_expenses, total_meals),
    )


def compute_member_summaries(
    ledger: Ledger,
    in_window: DatePredicate,
    model: ContributionModel = ContributionModel.SEPARATE_DEPOSIT,
) -> List[MemberSummary]:
    """
    Compute the settlement of each active member over the window.
    The meal rate is computed over the same window.
    """
    rate = compute_monthly_stats(ledger, in_window, model).meal_rate
    paid = member_contributions(ledger, in_window, model)

    units: Dict[str, Tuple[float, float]] = {}
    for r in filter_by_window(ledger.meals, in_window):
        u = meal_units(r)
        lunch, dinner = units.get(r.member_id, (0.0, 0.0))
        units[r.member_id] = (lunch + u.lunch, dinner + u.dinner)

    summaries = []
    for member in ledger.members:
        if not member.is_active:
            continue
        lunch, dinner = units.get(member.id, (0.0, 0.0))
        weight = MealUnits(lunch, dinner).weight
        cost = weight * rate
        deposit = paid.get(member.id, 0.0)
        summaries.append(MemberSummary(
            member_id=member.id,
            name=member.name,
            total_meals=weight,
            total_lunch=lunch,
            total_dinner=dinner,
            total_cost=cost,
            total_deposit=deposit,
            balance=deposit - cost,  # positive -> should receive; negative -> should pay
        ))
    return summaries


def balance_status(balance: float, eps: float = 1e-9) -> str:
    """PABE: household owes the member, DEBE: member owes, SOMAN: settled"""
    if balance > eps:
        return "PABE"
    if balance < -eps:
        return "DEBE"
    return "SOMAN"


def balance_totals(summaries: Iterable[MemberSummary]) -> Tuple[float, float]:
    """Returns (total receivable, total payable), both non-negative"""
    receivable = payable = 0.0
    for s in summaries:
        if s.balance > 0:
            receivable += s.balance
        elif s.balance < 0:
            payable -= s.balance
    return receivable, payable


def shop_balance(
    transactions: Iterable[ShopTransaction],
    in_window: Optional[DatePredicate] = None,
) -> ShopBalance:
    """Running account with the shop, all-time unless a window is given"""
    purchase = payment = 0.0
    for t in transactions:
        if in_window is not None and not in_window(t.date):
            continue
        if t.type == "purchase":
            purchase += t.amount
        elif t.type == "payment":
            payment += t.amount
    return ShopBalance(total_purchase=purchase, total_payment=payment)


def build_report(
    ledger: Ledger,
    mode: WindowMode,
    model: ContributionModel = ContributionModel.SEPARATE_DEPOSIT,
    today: Optional[date] = None,
) -> LedgerReport:
    """Compute every derived view for one window into a single snapshot"""
    in_window = window_predicate(mode, today)
    summaries = compute_member_summaries(ledger, in_window, model)
    receivable, payable = balance_totals(summaries)
    return LedgerReport(
        window=window_label(mode, today),
        stats=compute_monthly_stats(ledger, in_window, model),
        summaries=tuple(summaries),
        shop=shop_balance(ledger.shop_transactions),
        total_receivable=receivable,
        total_payable=payable,
    )
