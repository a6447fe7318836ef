import pytest

from models import Ledger, Member
from store import LedgerStore


@pytest.fixture
def members():
    return [
        Member(id="a", name="Amin"),
        Member(id="b", name="Bashir"),
        Member(id="c", name="Chayan"),
    ]


@pytest.fixture
def store(members):
    return LedgerStore(Ledger(members=list(members)))


@pytest.fixture
def scenario(store):
    """A: 20 lunches, B: 10 lunches + 10 dinners, C: nothing; 3000 spent on groceries"""
    for day in range(1, 21):
        store.update_meal(f"2026-01-{day:02d}", "a", "lunch", True)
    for day in range(1, 11):
        store.update_meal(f"2026-01-{day:02d}", "b", "lunch", True)
        store.update_meal(f"2026-01-{day:02d}", "b", "dinner", True)
    store.add_expense("2026-01-02", "Rice", 3000)
    store.add_deposit("2026-01-01", "a", 2000)
    store.add_deposit("2026-01-03", "c", 500)
    return store
