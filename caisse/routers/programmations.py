from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.database import get_db
from caisse.models.user import User
from caisse.routers.auth import get_current_user, require_admin, require_deleter, require_writer
from caisse.schemas.common import ApiResponse
from caisse.schemas.programmation import (
    ProgrammationCreate,
    ProgrammationResponse,
    ProgrammationUpdate,
)
from caisse.services import programmation_service

router = APIRouter(prefix="/programmations", tags=["programmations"])


def _prog_to_response(line) -> ProgrammationResponse:
    """Convert a Programmation ORM object to a response with rubrique fields."""
    rubrique = line.rubrique
    return ProgrammationResponse(
        id=line.id,
        sequence_number=line.sequence_number,
        month=line.month,
        year=line.year,
        designation=line.designation,
        planned_amount=line.planned_amount,
        planned_amount_in_words=line.planned_amount_in_words,
        is_validated=line.is_validated,
        validated_at=line.validated_at,
        rubrique_id=line.rubrique_id,
        created_at=line.created_at,
        rubrique_code=rubrique.code if rubrique else None,
        rubrique_label=rubrique.libelle if rubrique else None,
    )


@router.get("")
async def get_programmations(
    month: int = Query(..., ge=1, le=12),
    year: int = Query(..., ge=2000, le=2100),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
) -> ApiResponse[list[ProgrammationResponse]]:
    lines = await programmation_service.get_programmations(db, month, year)
    return ApiResponse.ok([_prog_to_response(p) for p in lines])


@router.post("")
async def create_programmation(
    body: ProgrammationCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_writer),
) -> ApiResponse[ProgrammationResponse]:
    try:
        line = await programmation_service.create_programmation(db, body, user)
        return ApiResponse.ok(_prog_to_response(line))
    except ValueError as e:
        return ApiResponse.fail(str(e))


@router.put("/{prog_id}")
async def update_programmation(
    prog_id: int,
    body: ProgrammationUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_writer),
) -> ApiResponse[ProgrammationResponse]:
    try:
        line = await programmation_service.update_programmation(db, prog_id, body, user)
    except ValueError as e:
        return ApiResponse.fail(str(e))
    if line is None:
        return ApiResponse.fail(f"Programmation with id {prog_id} not found")
    return ApiResponse.ok(_prog_to_response(line))


@router.post("/{prog_id}/validate")
async def validate_programmation(
    prog_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
) -> ApiResponse[ProgrammationResponse]:
    try:
        line = await programmation_service.validate_programmation(db, prog_id, user)
    except ValueError as e:
        return ApiResponse.fail(str(e))
    if line is None:
        return ApiResponse.fail(f"Programmation with id {prog_id} not found")
    return ApiResponse.ok(_prog_to_response(line))


@router.delete("/{prog_id}")
async def delete_programmation(
    prog_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_deleter),
) -> ApiResponse[None]:
    try:
        deleted = await programmation_service.delete_programmation(db, prog_id, user)
    except ValueError as e:
        return ApiResponse.fail(str(e))
    if not deleted:
        return ApiResponse.fail(f"Programmation with id {prog_id} not found")
    return ApiResponse.ok(None)
