import json
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from computations import UNKNOWN_MEMBER
from config import DEFAULT_MEMBER_NAMES, JsonFilePersistence, Settings
from models import ContributionModel, DailyMeal, Ledger, Member
from realtime import ChangeEvent
from store import LedgerStore, add_record, remove_by_id, toggle_member, upsert_meal
from windows import AllTime, SelectedMonth


class RecordingPersistence:
    def __init__(self, ledger=None):
        self.ledger = ledger
        self.saves = 0

    def load(self):
        return self.ledger

    def save(self, ledger):
        self.ledger = ledger
        self.saves += 1
        return True


def test_pure_transforms_leave_input_alone(members):
    extra = Member("d", "Dipu")
    grown = add_record(members, extra)
    assert len(members) == 3
    assert grown[-1] is extra
    assert [m.id for m in remove_by_id(grown, "b")] == ["a", "c", "d"]
    toggled = toggle_member(members, "a")
    assert toggled[0].is_active is False
    assert members[0].is_active is True


def test_upsert_meal_never_duplicates():
    meals = [DailyMeal("2026-01-01", "b", lunch=True)]
    meals = upsert_meal(meals, "2026-01-01", "a", lunch=True)
    meals = upsert_meal(meals, "2026-01-01", "a", dinner=True)
    meals = upsert_meal(meals, "2026-01-01", "a", lunch=False)
    assert [(m.date, m.member_id) for m in meals] == [("2026-01-01", "b"), ("2026-01-01", "a")]
    assert meals[1].lunch is False and meals[1].dinner is True


def test_add_member_assigns_unique_id(store):
    first = store.add_member("Dipu")
    second = store.add_member("Dipu")
    assert first.id != second.id
    assert first.is_active
    assert [m.name for m in store.ledger.members][-2:] == ["Dipu", "Dipu"]


def test_remove_member_keeps_history(store):
    store.update_meal("2026-01-01", "b", "lunch", True)
    store.add_deposit("2026-01-01", "b", 700)
    store.remove_member("b")
    assert "b" not in [m.id for m in store.ledger.members]
    assert len(store.ledger.meals) == 1
    assert len(store.ledger.deposits) == 1
    assert store.member_name("b") == UNKNOWN_MEMBER


def test_toggle_member_status_hides_from_daily_rows(store):
    store.toggle_member_status("c")
    assert [r.member_id for r in store.meals_for_date("2026-01-01")] == ["a", "b"]
    summaries = store.member_summaries(AllTime())
    assert [s.member_id for s in summaries] == ["a", "b"]
    store.toggle_member_status("c")
    assert len(store.member_summaries(AllTime())) == 3


def test_rename_member(store):
    store.rename_member("a", "  Amin Uddin ")
    assert store.member_name("a") == "Amin Uddin"


def test_update_meal_upserts(store):
    for _ in range(3):
        store.update_meal("2026-01-01", "a", "lunch", True)
    store.update_meal("2026-01-01", "a", "dinner", True)
    records = [m for m in store.ledger.meals if m.member_id == "a"]
    assert len(records) == 1
    assert records[0].lunch and records[0].dinner


def test_update_meal_rejects_unknown_slot(store):
    with pytest.raises(ValueError):
        store.update_meal("2026-01-01", "a", "breakfast", True)


def test_update_meal_count_clamps_and_sets_flags(store):
    record = store.update_meal_count("2026-01-01", "a", 2, -3)
    assert record.lunch_count == 2 and record.dinner_count == 0
    assert record.lunch is True and record.dinner is False
    assert len(store.ledger.meals) == 1


def test_flag_after_count_uses_latest_call(store):
    store.update_meal_count("2026-01-01", "a", 3, 0)
    record = store.update_meal("2026-01-01", "a", "lunch", False)
    assert record.lunch_count is None
    summaries = store.member_summaries(AllTime())
    assert summaries[0].total_meals == 0


def test_meals_for_date_returns_stored_or_zero(store):
    store.update_meal("2026-01-01", "b", "dinner", True)
    rows = store.meals_for_date("2026-01-01")
    assert [r.member_id for r in rows] == ["a", "b", "c"]
    assert rows[1].dinner is True
    assert rows[0] == DailyMeal("2026-01-01", "a")


def test_removals_by_id(store):
    e = store.add_expense("2026-01-01", "Rice", 100)
    x = store.add_extra_expense("2026-01-01", "Gas", 50, note="cylinder")
    d = store.add_deposit("2026-01-01", "a", 100)
    p = store.add_maid_payment("2026-01-01", 300, paid_by="a")
    t = store.add_shop_transaction("2026-01-01", "purchase", 400)
    store.add_expense("2026-01-02", "Fish", 200)
    store.remove_expense(e.id)
    store.remove_extra_expense(x.id)
    store.remove_deposit(d.id)
    store.remove_maid_payment(p.id)
    store.remove_shop_transaction(t.id)
    assert [e.item for e in store.ledger.expenses] == ["Fish"]
    assert store.ledger.extra_expenses == []
    assert store.ledger.deposits == []
    assert store.ledger.maid_payments == []
    assert store.ledger.shop_transactions == []


def test_supplied_id_is_kept(store):
    e = store.add_expense("2026-01-01", "Rice", 100, expense_id="e-1")
    assert e.id == "e-1"


def test_shop_transaction_type_checked(store):
    with pytest.raises(ValueError):
        store.add_shop_transaction("2026-01-01", "refund", 10)


def test_shop_balance_all_time_by_default(store):
    store.add_shop_transaction("2025-11-01", "purchase", 1000)
    store.add_shop_transaction("2026-01-01", "payment", 400)
    assert store.shop_balance().balance == 600
    assert store.shop_balance(SelectedMonth(1, 2026)).balance == -400


def test_paid_by_model_is_exclusive(members):
    store = LedgerStore(Ledger(members=list(members)), ContributionModel.PAID_BY_EXPENSE)
    with pytest.raises(ValueError):
        store.add_deposit("2026-01-01", "a", 100)
    store.update_meal("2026-01-01", "a", "lunch", True)
    store.add_expense("2026-01-01", "Rice", 100, paid_by="b")
    by_id = {s.member_id: s for s in store.member_summaries(AllTime())}
    assert by_id["b"].total_deposit == 100
    assert by_id["a"].balance == -100


def test_deposit_model_rejects_paid_by(store):
    with pytest.raises(ValueError):
        store.add_expense("2026-01-01", "Rice", 100, paid_by="a")


def test_default_window_is_current_month(store):
    store.update_meal("2026-01-10", "a", "lunch", True)
    store.update_meal("2025-12-10", "a", "lunch", True)
    stats = store.monthly_stats(today=date(2026, 1, 20))
    assert stats.total_meals == 1
    assert store.monthly_stats(AllTime()).total_meals == 2


def test_today_stats(store):
    store.update_meal("2026-01-10", "a", "lunch", True)
    store.update_meal("2026-01-10", "b", "dinner", True)
    assert store.today_stats(date(2026, 1, 10))["total"] == 2


def test_export_import_round_trip(scenario):
    scenario.add_extra_expense("2026-01-05", "Gas", 1200, note="cylinder")
    scenario.add_maid_payment("2026-01-06", 1500, paid_by="a")
    scenario.add_shop_transaction("2026-01-07", "purchase", 800)
    scenario.update_meal_count("2026-01-08", "c", 1, 2)
    before = scenario.ledger

    other = LedgerStore(Ledger(members=[Member("z", "Zed")]))
    assert other.import_data(scenario.export_data())
    assert other.ledger == before

    assert scenario.import_data(scenario.export_data())
    assert scenario.ledger == before


def test_import_missing_members_leaves_store_unchanged(scenario):
    before = scenario.ledger
    assert scenario.import_data('{"meals": [], "expenses": [], "deposits": []}') is False
    assert scenario.ledger is before


def test_import_malformed_json_leaves_store_unchanged(scenario):
    before = scenario.ledger
    assert scenario.import_data("{not json") is False
    assert scenario.import_data('{"members": [{"name": "no id"}], "meals": [], '
                                '"expenses": [], "deposits": []}') is False
    assert scenario.ledger is before


def test_import_optional_collections_default_empty(scenario):
    ok = scenario.import_data('{"members": [{"id": "x", "name": "X", "isActive": true}], '
                              '"meals": [], "expenses": [], "deposits": []}')
    assert ok
    assert scenario.ledger.members == [Member("x", "X", True)]
    assert scenario.ledger.maid_payments == []
    assert scenario.ledger.shop_transactions == []
    assert scenario.ledger.extra_expenses == []


def test_clear_all_resets_to_seed(scenario):
    scenario.clear_all()
    assert [m.name for m in scenario.ledger.members] == DEFAULT_MEMBER_NAMES
    assert scenario.ledger.meals == []
    assert scenario.ledger.expenses == []
    assert scenario.ledger.deposits == []


def test_every_mutation_is_persisted(members):
    persistence = RecordingPersistence()
    store = LedgerStore(Ledger(members=list(members)), persistence=persistence)
    store.add_member("Dipu")
    store.update_meal("2026-01-01", "a", "lunch", True)
    store.add_deposit("2026-01-01", "a", 50)
    assert persistence.saves == 3
    assert persistence.ledger is store.ledger


def test_failed_import_is_not_persisted(members):
    persistence = RecordingPersistence()
    store = LedgerStore(Ledger(members=list(members)), persistence=persistence)
    store.import_data("[]")
    assert persistence.saves == 0


def test_open_first_run_uses_seed():
    store = LedgerStore.open(RecordingPersistence(None))
    assert len(store.ledger.members) == len(DEFAULT_MEMBER_NAMES)
    assert store.model is ContributionModel.SEPARATE_DEPOSIT


def test_open_uses_settings(members):
    settings = Settings(contribution_model=ContributionModel.PAID_BY_EXPENSE, default_window="all_time")
    store = LedgerStore.open(RecordingPersistence(Ledger(members=list(members))), settings)
    assert store.model is ContributionModel.PAID_BY_EXPENSE
    assert store.default_window == AllTime()
    assert [m.id for m in store.ledger.members] == ["a", "b", "c"]


def test_open_and_close_with_file(tmp_path, members):
    path = str(tmp_path / "ledger.json")
    store = LedgerStore.open(JsonFilePersistence(path))
    store.add_member("Dipu")
    store.update_meal("2026-01-01", store.ledger.members[0].id, "lunch", True)
    assert store.close()

    reopened = LedgerStore.open(JsonFilePersistence(path))
    assert reopened.ledger == store.ledger


def test_apply_change_replaces_record(store):
    store.update_meal("2026-01-01", "a", "lunch", True)
    store.apply_change(ChangeEvent("update", new={
        "date": "2026-01-01", "member_id": "a", "lunch": True, "dinner": True,
        "lunch_count": 1, "dinner_count": 1,
    }))
    assert len(store.ledger.meals) == 1
    assert store.meal("2026-01-01", "a").dinner is True
    store.apply_change(ChangeEvent("delete", old={"date": "2026-01-01", "member_id": "a"}))
    assert store.meal("2026-01-01", "a") is None


def household_clock(moment):
    """Stand-in for utils.household_now that records the zone it was asked for"""
    asked = []

    def fake(tz_name):
        asked.append(tz_name)
        return moment.astimezone(ZoneInfo(tz_name))
    return fake, asked


# host still on 2026-01-31 UTC while Dhaka is already on 2026-02-01 02:00
DHAKA_AFTER_MIDNIGHT = datetime(2026, 1, 31, 20, 0, tzinfo=timezone.utc)


def test_open_keeps_clock_settings(members):
    settings = Settings(deadline_hour=20, timezone="UTC")
    store = LedgerStore.open(RecordingPersistence(Ledger(members=list(members))), settings)
    assert store.timezone == "UTC"
    assert store.deadline_hour == 20
    assert store.submission_open(datetime(2026, 1, 1, 19, 59, tzinfo=timezone.utc))
    assert not store.submission_open(datetime(2026, 1, 1, 20, 0, tzinfo=timezone.utc))


def test_submission_open_uses_household_timezone(store, monkeypatch):
    fake, asked = household_clock(DHAKA_AFTER_MIDNIGHT)
    monkeypatch.setattr("windows.household_now", fake)
    # 20:00 UTC is 02:00 in Dhaka, well before the 22:00 deadline
    assert store.submission_open()
    assert asked == ["Asia/Dhaka"]


def test_today_stats_default_day_is_household_day(store, monkeypatch):
    fake, asked = household_clock(DHAKA_AFTER_MIDNIGHT)
    monkeypatch.setattr("store.household_now", fake)
    store.update_meal("2026-02-01", "a", "lunch", True)
    assert store.today() == date(2026, 2, 1)
    assert store.today_stats() == {"lunch": 1.0, "dinner": 0.0, "total": 1.0}
    assert set(asked) == {"Asia/Dhaka"}


def test_monthly_views_default_to_household_month(store, monkeypatch):
    fake, _asked = household_clock(DHAKA_AFTER_MIDNIGHT)
    monkeypatch.setattr("store.household_now", fake)
    store.update_meal("2026-02-01", "a", "lunch", True)
    store.update_meal("2026-01-31", "b", "lunch", True)
    store.add_expense("2026-02-01", "Rice", 90)

    assert store.monthly_stats().total_meals == 1
    summaries = {s.member_id: s for s in store.member_summaries()}
    assert summaries["a"].total_cost == pytest.approx(90)
    assert summaries["b"].total_meals == 0
    report = store.report()
    assert report.window == "2026-02"
    assert report.stats.total_expenses == 90


def test_utc_household_sees_previous_day(members, monkeypatch):
    fake, asked = household_clock(DHAKA_AFTER_MIDNIGHT)
    monkeypatch.setattr("store.household_now", fake)
    store = LedgerStore(Ledger(members=list(members)), timezone="UTC")
    assert store.today() == date(2026, 1, 31)
    assert asked == ["UTC"]


def test_import_null_required_collection_rejected(scenario):
    before = scenario.ledger
    text = json.dumps({"members": None, "meals": [], "expenses": [], "deposits": []})
    assert scenario.import_data(text) is False
    assert scenario.ledger is before
    assert len(scenario.ledger.members) == 3
