import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.models.programmation import Programmation
from caisse.models.reference import Rubrique, Service
from caisse.models.transaction import Depense, Recette, TransactionKind
from caisse.models.user import User
from caisse.schemas.reference import (
    RubriqueCreate,
    RubriqueUpdate,
    ServiceCreate,
    ServiceUpdate,
)
from caisse.services import audit_service
from caisse.services.ledger_query import page_cache_key
from caisse.utils.cache import TTLCache

logger = logging.getLogger(__name__)


async def _code_taken(db: AsyncSession, model, code: str, exclude_id: int | None = None) -> bool:
    query = select(model.id).where(func.upper(model.code) == code.upper())
    if exclude_id is not None:
        query = query.where(model.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def _reference_count(db: AsyncSession, columns) -> int:
    total = 0
    for col, value in columns:
        result = await db.execute(
            select(func.count()).select_from(col.class_).where(col == value)
        )
        total += result.scalar()
    return total


def _drop_listing_pages(cache: TTLCache) -> None:
    # Cached listings embed rubrique and service labels
    cache.clear(page_cache_key(TransactionKind.RECETTE))
    cache.clear(page_cache_key(TransactionKind.DEPENSE))


# --- Rubriques ---


async def get_rubriques(db: AsyncSession, active_only: bool = False) -> list[Rubrique]:
    query = select(Rubrique).order_by(Rubrique.code)
    if active_only:
        query = query.where(Rubrique.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_rubrique(
    db: AsyncSession, data: RubriqueCreate, user: User | None = None
) -> Rubrique:
    code = data.code.strip().upper()
    if await _code_taken(db, Rubrique, code):
        raise ValueError(f"La rubrique {code} existe déjà")
    rubrique = Rubrique(code=code, libelle=data.libelle.strip(), imp=data.imp)
    db.add(rubrique)
    await db.flush()
    await db.refresh(rubrique)
    await audit_service.record_audit(
        db, "rubriques", rubrique.id, "INSERT",
        new_data=audit_service.snapshot(rubrique), user=user,
    )
    return rubrique


async def update_rubrique(
    db: AsyncSession,
    cache: TTLCache,
    rubrique_id: int,
    data: RubriqueUpdate,
    user: User | None = None,
) -> Rubrique | None:
    rubrique = await db.get(Rubrique, rubrique_id)
    if rubrique is None:
        return None
    old_data = audit_service.snapshot(rubrique)
    if data.code is not None:
        code = data.code.strip().upper()
        if await _code_taken(db, Rubrique, code, exclude_id=rubrique_id):
            raise ValueError(f"La rubrique {code} existe déjà")
        rubrique.code = code
    if data.libelle is not None:
        rubrique.libelle = data.libelle.strip()
    if data.imp is not None:
        rubrique.imp = data.imp
    if data.is_active is not None:
        rubrique.is_active = data.is_active
    await db.flush()
    await db.refresh(rubrique)
    await audit_service.record_audit(
        db, "rubriques", rubrique.id, "UPDATE",
        old_data=old_data, new_data=audit_service.snapshot(rubrique), user=user,
    )
    _drop_listing_pages(cache)
    return rubrique


async def delete_rubrique(
    db: AsyncSession, cache: TTLCache, rubrique_id: int, user: User | None = None
) -> str | None:
    """Delete a rubrique, or disable it when expenses or programmations use it.

    Returns "deleted" or "disabled", or None when the rubrique does not exist.
    """
    rubrique = await db.get(Rubrique, rubrique_id)
    if rubrique is None:
        return None
    old_data = audit_service.snapshot(rubrique)

    used = await _reference_count(db, [
        (Depense.rubrique_id, rubrique_id),
        (Programmation.rubrique_id, rubrique_id),
    ])
    if used:
        rubrique.is_active = False
        await db.flush()
        await audit_service.record_audit(
            db, "rubriques", rubrique_id, "UPDATE",
            old_data=old_data, new_data=audit_service.snapshot(rubrique), user=user,
        )
        _drop_listing_pages(cache)
        logger.info("Rubrique %s in use (%d rows), disabled", rubrique.code, used)
        return "disabled"

    await db.delete(rubrique)
    await db.flush()
    await audit_service.record_audit(
        db, "rubriques", rubrique_id, "DELETE", old_data=old_data, user=user,
    )
    _drop_listing_pages(cache)
    logger.info("Rubrique %s deleted", old_data["code"])
    return "deleted"


# --- Services ---


async def get_services(db: AsyncSession, active_only: bool = False) -> list[Service]:
    query = select(Service).order_by(Service.code)
    if active_only:
        query = query.where(Service.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_service(
    db: AsyncSession, data: ServiceCreate, user: User | None = None
) -> Service:
    code = data.code.strip().upper()
    if await _code_taken(db, Service, code):
        raise ValueError(f"Le service {code} existe déjà")
    service = Service(code=code, libelle=data.libelle.strip())
    db.add(service)
    await db.flush()
    await db.refresh(service)
    await audit_service.record_audit(
        db, "services", service.id, "INSERT",
        new_data=audit_service.snapshot(service), user=user,
    )
    return service


async def update_service(
    db: AsyncSession,
    cache: TTLCache,
    service_id: int,
    data: ServiceUpdate,
    user: User | None = None,
) -> Service | None:
    service = await db.get(Service, service_id)
    if service is None:
        return None
    old_data = audit_service.snapshot(service)
    if data.code is not None:
        code = data.code.strip().upper()
        if await _code_taken(db, Service, code, exclude_id=service_id):
            raise ValueError(f"Le service {code} existe déjà")
        service.code = code
    if data.libelle is not None:
        service.libelle = data.libelle.strip()
    if data.is_active is not None:
        service.is_active = data.is_active
    await db.flush()
    await db.refresh(service)
    await audit_service.record_audit(
        db, "services", service.id, "UPDATE",
        old_data=old_data, new_data=audit_service.snapshot(service), user=user,
    )
    _drop_listing_pages(cache)
    return service


async def delete_service(
    db: AsyncSession, cache: TTLCache, service_id: int, user: User | None = None
) -> str | None:
    """Same contract as ``delete_rubrique``."""
    service = await db.get(Service, service_id)
    if service is None:
        return None
    old_data = audit_service.snapshot(service)

    used = await _reference_count(db, [
        (Recette.service_id, service_id),
        (Depense.service_id, service_id),
    ])
    if used:
        service.is_active = False
        await db.flush()
        await audit_service.record_audit(
            db, "services", service_id, "UPDATE",
            old_data=old_data, new_data=audit_service.snapshot(service), user=user,
        )
        _drop_listing_pages(cache)
        logger.info("Service %s in use (%d rows), disabled", service.code, used)
        return "disabled"

    await db.delete(service)
    await db.flush()
    await audit_service.record_audit(
        db, "services", service_id, "DELETE", old_data=old_data, user=user,
    )
    _drop_listing_pages(cache)
    logger.info("Service %s deleted", old_data["code"])
    return "deleted"
