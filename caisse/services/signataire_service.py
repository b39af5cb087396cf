import logging

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.models.reference import Signataire
from caisse.models.user import User
from caisse.schemas.reference import SignataireCreate, SignataireUpdate
from caisse.services import audit_service

logger = logging.getLogger(__name__)


async def _matricule_taken(
    db: AsyncSession, matricule: str, exclude_id: int | None = None
) -> bool:
    query = select(Signataire.id).where(func.upper(Signataire.matricule) == matricule.upper())
    if exclude_id is not None:
        query = query.where(Signataire.id != exclude_id)
    result = await db.execute(query)
    return result.first() is not None


async def get_signataires(db: AsyncSession, active_only: bool = False) -> list[Signataire]:
    """Signatories grouped by signature type, untyped ones last."""
    query = select(Signataire).order_by(
        Signataire.type_signature.is_(None),
        Signataire.type_signature,
        Signataire.nom,
    )
    if active_only:
        query = query.where(Signataire.is_active.is_(True))
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_signataire(
    db: AsyncSession, data: SignataireCreate, user: User | None = None
) -> Signataire:
    matricule = data.matricule.strip()
    nom = data.nom.strip()
    if not matricule or not nom:
        raise ValueError("Matricule et nom requis")
    if await _matricule_taken(db, matricule):
        raise ValueError(f"Le matricule {matricule} existe déjà")

    signataire = Signataire(
        matricule=matricule,
        nom=nom,
        grade=data.grade,
        fonction=data.fonction,
        type_signature=data.type_signature,
    )
    db.add(signataire)
    await db.flush()
    await db.refresh(signataire)
    await audit_service.record_audit(
        db, "signataires", signataire.id, "INSERT",
        new_data=audit_service.snapshot(signataire), user=user,
    )
    logger.info("Signataire %s created", signataire.matricule)
    return signataire


async def update_signataire(
    db: AsyncSession, signataire_id: int, data: SignataireUpdate, user: User | None = None
) -> Signataire | None:
    signataire = await db.get(Signataire, signataire_id)
    if signataire is None:
        return None
    old_data = audit_service.snapshot(signataire)

    updates = data.model_dump(exclude_unset=True)
    if updates.get("matricule") is not None:
        matricule = updates["matricule"].strip()
        if await _matricule_taken(db, matricule, exclude_id=signataire_id):
            raise ValueError(f"Le matricule {matricule} existe déjà")
        updates["matricule"] = matricule
    if updates.get("nom") is not None:
        updates["nom"] = updates["nom"].strip()

    for field, value in updates.items():
        if value is None and field in ("matricule", "nom", "is_active"):
            continue
        setattr(signataire, field, value)

    await db.flush()
    await db.refresh(signataire)
    await audit_service.record_audit(
        db, "signataires", signataire.id, "UPDATE",
        old_data=old_data, new_data=audit_service.snapshot(signataire), user=user,
    )
    return signataire


async def delete_signataire(
    db: AsyncSession, signataire_id: int, user: User | None = None
) -> bool:
    signataire = await db.get(Signataire, signataire_id)
    if signataire is None:
        return False
    old_data = audit_service.snapshot(signataire)
    await db.delete(signataire)
    await db.flush()
    await audit_service.record_audit(
        db, "signataires", signataire_id, "DELETE", old_data=old_data, user=user,
    )
    logger.info("Signataire %s deleted", old_data["matricule"])
    return True
