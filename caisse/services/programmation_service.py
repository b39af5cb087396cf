import logging
from datetime import datetime, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.models.programmation import Programmation
from caisse.models.reference import Rubrique
from caisse.models.user import User
from caisse.schemas.programmation import ProgrammationCreate, ProgrammationUpdate
from caisse.services import audit_service
from caisse.utils.amount_words import montant_en_lettre

logger = logging.getLogger(__name__)


async def _next_sequence_number(db: AsyncSession, month: int, year: int) -> int:
    result = await db.execute(
        select(func.coalesce(func.max(Programmation.sequence_number), 0)).where(
            Programmation.month == month,
            Programmation.year == year,
        )
    )
    return int(result.scalar()) + 1


async def _check_rubrique(db: AsyncSession, rubrique_id: int | None) -> None:
    if rubrique_id is None:
        return
    rubrique = await db.get(Rubrique, rubrique_id)
    if rubrique is None or not rubrique.is_active:
        raise ValueError(f"Rubrique {rubrique_id} introuvable ou inactive")


async def get_programmations(
    db: AsyncSession, month: int, year: int
) -> list[Programmation]:
    result = await db.execute(
        select(Programmation)
        .where(Programmation.month == month, Programmation.year == year)
        .order_by(Programmation.sequence_number, Programmation.id)
    )
    return list(result.scalars().all())


async def create_programmation(
    db: AsyncSession, data: ProgrammationCreate, user: User | None = None
) -> Programmation:
    await _check_rubrique(db, data.rubrique_id)
    line = Programmation(
        sequence_number=(
            data.sequence_number
            or await _next_sequence_number(db, data.month, data.year)
        ),
        month=data.month,
        year=data.year,
        rubrique_id=data.rubrique_id,
        designation=data.designation,
        planned_amount=data.planned_amount,
        planned_amount_in_words=(
            data.planned_amount_in_words or montant_en_lettre(data.planned_amount)
        ),
        user_id=user.id if user else None,
    )
    db.add(line)
    await db.flush()
    await db.refresh(line)
    await audit_service.record_audit(
        db, "programmations", line.id, "INSERT",
        new_data=audit_service.snapshot(line), user=user,
    )
    logger.info(
        "Programmation %02d/%s #%s created: %s",
        line.month, line.year, line.sequence_number, line.planned_amount,
    )
    return line


async def update_programmation(
    db: AsyncSession,
    prog_id: int,
    data: ProgrammationUpdate,
    user: User | None = None,
) -> Programmation | None:
    line = await db.get(Programmation, prog_id)
    if line is None:
        return None
    if line.is_validated:
        raise ValueError("Programmation déjà validée, modification impossible")
    await _check_rubrique(db, data.rubrique_id)

    old_data = audit_service.snapshot(line)
    if data.designation is not None:
        line.designation = data.designation
    if data.rubrique_id is not None:
        line.rubrique_id = data.rubrique_id
    if data.sequence_number is not None:
        line.sequence_number = data.sequence_number
    if data.planned_amount is not None:
        line.planned_amount = data.planned_amount
        line.planned_amount_in_words = (
            data.planned_amount_in_words or montant_en_lettre(data.planned_amount)
        )
    elif data.planned_amount_in_words is not None:
        line.planned_amount_in_words = data.planned_amount_in_words
    await db.flush()
    await db.refresh(line)
    await audit_service.record_audit(
        db, "programmations", line.id, "UPDATE",
        old_data=old_data, new_data=audit_service.snapshot(line), user=user,
    )
    return line


async def validate_programmation(
    db: AsyncSession, prog_id: int, user: User | None = None
) -> Programmation | None:
    line = await db.get(Programmation, prog_id)
    if line is None:
        return None
    if line.is_validated:
        raise ValueError("Programmation déjà validée")
    old_data = audit_service.snapshot(line)
    line.is_validated = True
    line.validated_by = user.id if user else None
    line.validated_at = datetime.now(timezone.utc)
    await db.flush()
    await db.refresh(line)
    await audit_service.record_audit(
        db, "programmations", line.id, "UPDATE",
        old_data=old_data, new_data=audit_service.snapshot(line), user=user,
    )
    logger.info("Programmation %s validated by %s", line.id, user.username if user else "-")
    return line


async def delete_programmation(
    db: AsyncSession, prog_id: int, user: User | None = None
) -> bool:
    line = await db.get(Programmation, prog_id)
    if line is None:
        return False
    if line.is_validated:
        raise ValueError("Impossible de supprimer une programmation validée")
    old_data = audit_service.snapshot(line)
    await db.delete(line)
    await db.flush()
    await audit_service.record_audit(
        db, "programmations", prog_id, "DELETE", old_data=old_data, user=user,
    )
    return True
