import logging
from datetime import date, timedelta
from decimal import Decimal
from typing import Protocol

from caisse.models.transaction import TransactionKind
from caisse.schemas.report import MonthlyStat
from caisse.utils.date_helpers import get_month_label, month_bounds, prev_month

logger = logging.getLogger(__name__)


class BalanceStore(Protocol):
    """Anything able to total one kind of transaction over a date range."""

    async def sum_range(
        self, kind: TransactionKind, start: date, end: date
    ) -> Decimal: ...


class PreviousBalanceResolver:
    """Opening balance of a month, carried forward from earlier months.

    The opening balance of (month, year) is the closing balance of the
    previous month: that month's income minus expense, plus its own opening
    balance. The walk stops once it would step before ``floor_year``.
    Each month walked costs one income sum and one expense sum.
    """

    def __init__(self, store: BalanceStore, floor_year: int | None) -> None:
        if floor_year is None:
            raise ValueError("A floor year is required to resolve balances")
        self.store = store
        self.floor_year = int(floor_year)

    async def resolve_opening_balance(self, month: int, year: int) -> Decimal:
        if not 1 <= month <= 12:
            raise ValueError(f"Invalid month: {month}")
        prev_y, prev_m = prev_month(year, month)
        start, end = month_bounds(prev_y, prev_m)

        income = await self.store.sum_range(TransactionKind.RECETTE, start, end)
        expense = await self.store.sum_range(TransactionKind.DEPENSE, start, end)

        carried = Decimal("0")
        if prev_y >= self.floor_year:
            carried = await self.resolve_opening_balance(prev_m, prev_y)
        return carried + Decimal(income) - Decimal(expense)

    async def resolve_for_date(self, day: date) -> Decimal:
        """Balance carried into ``day``.

        The opening balance of its month plus that month's movements
        before ``day``.
        """
        balance = await self.resolve_opening_balance(day.month, day.year)
        if day.day > 1:
            first = day.replace(day=1)
            last = day - timedelta(days=1)
            income = await self.store.sum_range(TransactionKind.RECETTE, first, last)
            expense = await self.store.sum_range(TransactionKind.DEPENSE, first, last)
            balance += Decimal(income) - Decimal(expense)
        return balance


async def monthly_statistics(store: BalanceStore, year: int) -> list[MonthlyStat]:
    """Income, expense and net balance of each month of ``year``."""
    stats = []
    for month in range(1, 13):
        start, end = month_bounds(year, month)
        income = Decimal(await store.sum_range(TransactionKind.RECETTE, start, end))
        expense = Decimal(await store.sum_range(TransactionKind.DEPENSE, start, end))
        stats.append(MonthlyStat(
            month=month,
            month_label=get_month_label(month),
            total_income=income,
            total_expense=expense,
            balance=income - expense,
        ))
    logger.debug("Computed monthly statistics for %s", year)
    return stats
