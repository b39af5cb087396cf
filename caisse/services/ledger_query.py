import logging
from datetime import date
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.config import settings
from caisse.models.transaction import Depense, Recette, TransactionKind
from caisse.schemas.transaction import DepenseResponse, RecetteResponse
from caisse.utils.cache import TTLCache

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

_MODELS = {
    TransactionKind.RECETTE: Recette,
    TransactionKind.DEPENSE: Depense,
}


def model_for(kind: TransactionKind):
    return _MODELS[TransactionKind(kind)]


def page_cache_key(kind: TransactionKind) -> str:
    """E.g. 'recettes-page1'."""
    return f"{model_for(kind).__tablename__}-page1"


def _common_fields(txn) -> dict:
    service = txn.service
    return {
        "id": txn.id,
        "sequence_number": txn.sequence_number,
        "beo_number": txn.beo_number,
        "transaction_date": txn.transaction_date,
        "date_transaction": txn.transaction_date,
        "transaction_time": txn.transaction_time,
        "motive": txn.motive,
        "amount": txn.amount,
        "amount_in_words": txn.amount_in_words,
        "observation": txn.observation,
        "opening_balance": txn.opening_balance,
        "closing_balance": txn.closing_balance,
        "month": txn.month,
        "year": txn.year,
        "month_label": txn.month_label,
        "month_year": txn.month_year,
        "created_at": txn.created_at,
        "service_id": txn.service_id,
        "service_code": service.code if service else None,
        "service_label": service.libelle if service else None,
    }


def recette_to_response(recette: Recette) -> RecetteResponse:
    """Convert a Recette ORM object to RecetteResponse with joined fields."""
    return RecetteResponse(provenance=recette.provenance, **_common_fields(recette))


def depense_to_response(depense: Depense) -> DepenseResponse:
    """Convert a Depense ORM object to DepenseResponse with joined fields."""
    rubrique = depense.rubrique
    return DepenseResponse(
        beneficiary=depense.beneficiary,
        rubrique_id=depense.rubrique_id,
        rubrique_code=rubrique.code if rubrique else None,
        rubrique_label=rubrique.libelle if rubrique else None,
        **_common_fields(depense),
    )


def to_response(txn):
    if isinstance(txn, Depense):
        return depense_to_response(txn)
    return recette_to_response(txn)


class LedgerRepository:
    """Read access to recettes and dépenses.

    The first page of each listing is kept in ``cache`` for
    ``FIRST_PAGE_CACHE_TTL`` seconds; writers clear ``page_cache_key(kind)``
    after touching a table.
    """

    def __init__(self, db: AsyncSession, cache: TTLCache) -> None:
        self.db = db
        self.cache = cache

    async def count(self, kind: TransactionKind) -> int:
        model = model_for(kind)
        result = await self.db.execute(select(func.count(model.id)))
        return result.scalar()

    async def list_page(
        self,
        kind: TransactionKind,
        page: int = 1,
        page_size: int = settings.DEFAULT_PAGE_SIZE,
    ) -> tuple[list, int]:
        """One page of responses, newest first, and the total row count."""
        if page < 1 or page_size < 1:
            raise ValueError("Page and page size must be positive")

        cacheable = page == 1 and page_size == settings.DEFAULT_PAGE_SIZE
        key = page_cache_key(kind)
        if cacheable:
            cached = self.cache.get(key)
            if cached is not None:
                return cached

        model = model_for(kind)
        total = await self.count(kind)
        result = await self.db.execute(
            select(model)
            .order_by(model.transaction_date.desc(), model.transaction_time.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
        )
        items = [to_response(t) for t in result.scalars().all()]

        if cacheable:
            self.cache.set(key, (items, total), settings.FIRST_PAGE_CACHE_TTL)
        return items, total

    async def list_recettes(
        self, page: int = 1, page_size: int = settings.DEFAULT_PAGE_SIZE
    ) -> tuple[list[RecetteResponse], int]:
        return await self.list_page(TransactionKind.RECETTE, page, page_size)

    async def list_depenses(
        self, page: int = 1, page_size: int = settings.DEFAULT_PAGE_SIZE
    ) -> tuple[list[DepenseResponse], int]:
        return await self.list_page(TransactionKind.DEPENSE, page, page_size)

    async def get(self, kind: TransactionKind, txn_id: int):
        model = model_for(kind)
        result = await self.db.execute(select(model).where(model.id == txn_id))
        return result.scalar_one_or_none()

    async def fetch_range(self, kind: TransactionKind, start: date, end: date) -> list:
        """Every row of the inclusive date range, oldest first."""
        model = model_for(kind)
        result = await self.db.execute(
            select(model)
            .where(model.transaction_date >= start, model.transaction_date <= end)
            .order_by(model.transaction_date, model.sequence_number)
        )
        return list(result.scalars().all())

    async def sum_range(self, kind: TransactionKind, start: date, end: date) -> Decimal:
        model = model_for(kind)
        result = await self.db.execute(
            select(func.coalesce(func.sum(model.amount), 0)).where(
                model.transaction_date >= start,
                model.transaction_date <= end,
            )
        )
        return Decimal(str(result.scalar())).quantize(CENT)
