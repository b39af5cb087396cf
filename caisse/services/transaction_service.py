import logging
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.models.reference import Rubrique, Service
from caisse.models.transaction import Depense, Recette, TransactionKind
from caisse.models.user import User
from caisse.schemas.transaction import (
    DepenseCreate,
    DepenseUpdate,
    RecetteCreate,
    RecetteUpdate,
)
from caisse.services import audit_service
from caisse.services.ledger_query import model_for, page_cache_key
from caisse.utils.amount_words import montant_en_lettre
from caisse.utils.cache import TTLCache
from caisse.utils.date_helpers import period_fields

logger = logging.getLogger(__name__)

_EDITABLE_FIELDS = {
    TransactionKind.RECETTE: (
        "motive", "amount", "amount_in_words", "observation", "service_id",
        "beo_number", "provenance",
    ),
    TransactionKind.DEPENSE: (
        "motive", "amount", "amount_in_words", "observation", "service_id",
        "beo_number", "beneficiary", "rubrique_id",
    ),
}

# An explicit null clears these
_NULLABLE_FIELDS = frozenset({"amount_in_words", "observation", "service_id", "beo_number"})


async def _next_sequence_number(db: AsyncSession, model) -> int:
    result = await db.execute(
        select(func.coalesce(func.max(model.sequence_number), 0))
    )
    return int(result.scalar()) + 1


async def current_balance(db: AsyncSession) -> Decimal:
    """All income ever recorded minus all expense ever recorded."""
    totals = {}
    for model in (Recette, Depense):
        result = await db.execute(select(func.coalesce(func.sum(model.amount), 0)))
        totals[model] = Decimal(str(result.scalar()))
    return (totals[Recette] - totals[Depense]).quantize(Decimal("0.01"))


async def _check_service(db: AsyncSession, service_id: int | None) -> None:
    if service_id is None:
        return
    service = await db.get(Service, service_id)
    if service is None or not service.is_active:
        raise ValueError(f"Service {service_id} introuvable ou inactif")


async def _check_rubrique(db: AsyncSession, rubrique_id: int) -> None:
    rubrique = await db.get(Rubrique, rubrique_id)
    if rubrique is None or not rubrique.is_active:
        raise ValueError(f"Rubrique {rubrique_id} introuvable ou inactive")


def _base_fields(data, sequence_number: int, opening: Decimal, closing: Decimal) -> dict:
    now = datetime.now()
    day = data.transaction_date or now.date()
    return {
        "sequence_number": sequence_number,
        "beo_number": data.beo_number,
        "transaction_date": day,
        "transaction_time": now.time().replace(microsecond=0),
        "motive": data.motive,
        "amount": data.amount,
        "amount_in_words": data.amount_in_words or montant_en_lettre(data.amount),
        "observation": data.observation,
        "opening_balance": opening,
        "closing_balance": closing,
        "service_id": data.service_id,
        **period_fields(day),
    }


async def create_recette(
    db: AsyncSession, cache: TTLCache, data: RecetteCreate, user: User | None = None
) -> Recette:
    await _check_service(db, data.service_id)
    opening = await current_balance(db)
    recette = Recette(
        provenance=data.provenance,
        user_id=user.id if user else None,
        **_base_fields(
            data,
            await _next_sequence_number(db, Recette),
            opening,
            opening + data.amount,
        ),
    )
    db.add(recette)
    await db.flush()
    await db.refresh(recette)

    await audit_service.record_audit(
        db, "recettes", recette.id, "INSERT",
        new_data=audit_service.snapshot(recette), user=user,
    )
    cache.clear(page_cache_key(TransactionKind.RECETTE))
    logger.info(
        "Recette REC-%04d created: %s from %s",
        recette.sequence_number, recette.amount, recette.provenance,
    )
    return recette


async def create_depense(
    db: AsyncSession, cache: TTLCache, data: DepenseCreate, user: User | None = None
) -> Depense:
    await _check_rubrique(db, data.rubrique_id)
    await _check_service(db, data.service_id)
    opening = await current_balance(db)
    depense = Depense(
        beneficiary=data.beneficiary,
        rubrique_id=data.rubrique_id,
        user_id=user.id if user else None,
        **_base_fields(
            data,
            await _next_sequence_number(db, Depense),
            opening,
            opening - data.amount,
        ),
    )
    db.add(depense)
    await db.flush()
    await db.refresh(depense)

    await audit_service.record_audit(
        db, "depenses", depense.id, "INSERT",
        new_data=audit_service.snapshot(depense), user=user,
    )
    await audit_service.check_important_expense(db, depense)
    cache.clear(page_cache_key(TransactionKind.DEPENSE))
    logger.info(
        "Depense DEP-%04d created: %s to %s",
        depense.sequence_number, depense.amount, depense.beneficiary,
    )
    return depense


async def update_transaction(
    db: AsyncSession,
    cache: TTLCache,
    kind: TransactionKind,
    txn_id: int,
    data: RecetteUpdate | DepenseUpdate,
    user: User | None = None,
):
    model = model_for(kind)
    txn = await db.get(model, txn_id)
    if txn is None:
        return None

    updates = data.model_dump(exclude_unset=True)
    if updates.get("rubrique_id") is not None:
        await _check_rubrique(db, updates["rubrique_id"])
    if updates.get("service_id") is not None:
        await _check_service(db, updates["service_id"])
    if kind is TransactionKind.DEPENSE and "rubrique_id" in updates and updates["rubrique_id"] is None:
        raise ValueError("Une dépense doit avoir une rubrique")

    old_data = audit_service.snapshot(txn)
    for field in _EDITABLE_FIELDS[kind]:
        if field not in updates:
            continue
        if updates[field] is not None or field in _NULLABLE_FIELDS:
            setattr(txn, field, updates[field])

    if "amount" in updates and updates["amount"] is not None:
        if not updates.get("amount_in_words"):
            txn.amount_in_words = montant_en_lettre(txn.amount)
        if txn.opening_balance is not None:
            sign = 1 if kind is TransactionKind.RECETTE else -1
            txn.closing_balance = txn.opening_balance + sign * txn.amount

    await db.flush()
    await db.refresh(txn)

    new_data = audit_service.snapshot(txn)
    entry = await audit_service.record_audit(
        db, model.__tablename__, txn.id, "UPDATE",
        old_data=old_data, new_data=new_data, user=user,
    )
    if kind is TransactionKind.DEPENSE and "amount" in (entry.changed_fields or []):
        await audit_service.check_important_expense(db, txn)
    cache.clear(page_cache_key(kind))
    logger.info(
        "%s %s updated (%s)",
        model.__tablename__, txn.sequence_number, ", ".join(entry.changed_fields or []),
    )
    return txn


async def delete_transaction(
    db: AsyncSession,
    cache: TTLCache,
    kind: TransactionKind,
    txn_id: int,
    user: User | None = None,
) -> bool:
    model = model_for(kind)
    txn = await db.get(model, txn_id)
    if txn is None:
        return False
    old_data = audit_service.snapshot(txn)
    await db.delete(txn)
    await db.flush()
    await audit_service.record_audit(
        db, model.__tablename__, txn_id, "DELETE", old_data=old_data, user=user,
    )
    cache.clear(page_cache_key(kind))
    logger.info("%s %s deleted", model.__tablename__, old_data["sequence_number"])
    return True
