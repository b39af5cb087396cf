import asyncio
from datetime import date
from decimal import Decimal

import pytest

from caisse.models.transaction import TransactionKind
from caisse.services.balance_service import PreviousBalanceResolver, monthly_statistics
from conftest import run


class FakeStore:
    """Monthly totals keyed by (kind, year, month); records every call."""

    def __init__(self, totals=None):
        self.totals = totals or {}
        self.calls = []

    async def sum_range(self, kind, start, end):
        self.calls.append((kind, start, end))
        total = Decimal("0")
        for (k, year, month), amount in self.totals.items():
            if k is kind and start <= date(year, month, 1) <= end:
                total += Decimal(amount)
        return total


class DailyStore:
    """Totals keyed by (kind, day) for partial-month ranges."""

    def __init__(self, movements):
        self.movements = movements
        self.calls = 0

    async def sum_range(self, kind, start, end):
        self.calls += 1
        return sum(
            (Decimal(a) for (k, day), a in self.movements.items() if k is kind and start <= day <= end),
            Decimal("0"),
        )


class SlowStore:
    async def sum_range(self, kind, start, end):
        await asyncio.sleep(10)
        return Decimal("0")


R, D = TransactionKind.RECETTE, TransactionKind.DEPENSE


def test_january_of_floor_year_costs_one_query_pair():
    store = FakeStore({(R, 2023, 12): 500, (D, 2023, 12): 200})
    resolver = PreviousBalanceResolver(store, floor_year=2024)

    balance = run(resolver.resolve_opening_balance(1, 2024))

    assert balance == Decimal("300")
    assert len(store.calls) == 2
    assert {c[0] for c in store.calls} == {R, D}


def test_walk_carries_each_month_forward():
    store = FakeStore({
        (R, 2023, 12): 100,
        (R, 2024, 1): 1000,
        (D, 2024, 1): 400,
        (R, 2024, 2): 50,
    })
    resolver = PreviousBalanceResolver(store, floor_year=2024)

    assert run(resolver.resolve_opening_balance(2, 2024)) == Decimal("700")
    assert len(store.calls) == 4

    store.calls.clear()
    assert run(resolver.resolve_opening_balance(3, 2024)) == Decimal("750")
    assert len(store.calls) == 6


def test_walk_stops_before_floor_year():
    store = FakeStore({(R, 2022, 6): 999, (R, 2023, 12): 10})
    resolver = PreviousBalanceResolver(store, floor_year=2023)

    # Dec 2022 is walked for January 2023, nothing earlier
    assert run(resolver.resolve_opening_balance(2, 2023)) == Decimal("0")
    assert run(resolver.resolve_opening_balance(1, 2024)) == Decimal("10")


def test_floor_year_is_required():
    with pytest.raises(ValueError):
        PreviousBalanceResolver(FakeStore(), floor_year=None)


@pytest.mark.parametrize("month", [0, 13, -1])
def test_invalid_month_is_rejected(month):
    resolver = PreviousBalanceResolver(FakeStore(), floor_year=2024)
    with pytest.raises(ValueError):
        run(resolver.resolve_opening_balance(month, 2024))


def test_resolution_can_be_cancelled():
    resolver = PreviousBalanceResolver(SlowStore(), floor_year=2024)

    async def _go():
        await asyncio.wait_for(resolver.resolve_opening_balance(6, 2024), timeout=0.05)

    with pytest.raises(asyncio.TimeoutError):
        run(_go())


def test_resolve_for_date_adds_earlier_days_of_the_month():
    store = DailyStore({
        (R, date(2024, 1, 20)): 1000,
        (R, date(2024, 2, 3)): 200,
        (D, date(2024, 2, 9)): 50,
        (R, date(2024, 2, 10)): 75,
    })
    resolver = PreviousBalanceResolver(store, floor_year=2024)

    assert run(resolver.resolve_for_date(date(2024, 2, 10))) == Decimal("1150")


def test_resolve_for_first_of_month_is_the_opening_balance():
    store = DailyStore({(R, date(2024, 1, 20)): 1000, (R, date(2024, 2, 1)): 5})
    resolver = PreviousBalanceResolver(store, floor_year=2024)

    assert run(resolver.resolve_for_date(date(2024, 2, 1))) == Decimal("1000")
    assert store.calls == 4


def test_monthly_statistics():
    store = FakeStore({(R, 2025, 1): 1000, (D, 2025, 1): 400, (D, 2025, 3): 20})

    stats = run(monthly_statistics(store, 2025))

    assert len(stats) == 12
    assert stats[0].balance == Decimal("600")
    assert stats[1].total_income == Decimal("0")
    assert stats[2].balance == Decimal("-20")
    assert stats[2].month_label == "MARS"
