from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.database import get_db
from caisse.models.user import User
from caisse.routers.auth import get_current_user, require_admin, require_writer
from caisse.schemas.common import ApiResponse
from caisse.schemas.reference import RubriqueCreate, RubriqueResponse, RubriqueUpdate
from caisse.services import reference_service
from caisse.utils.cache import TTLCache, get_ledger_cache

router = APIRouter(prefix="/rubriques", tags=["rubriques"])


@router.get("")
async def get_rubriques(
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
) -> ApiResponse[list[RubriqueResponse]]:
    rubriques = await reference_service.get_rubriques(db, active_only)
    return ApiResponse.ok([RubriqueResponse.model_validate(r) for r in rubriques])


@router.post("")
async def create_rubrique(
    body: RubriqueCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_writer),
) -> ApiResponse[RubriqueResponse]:
    try:
        rubrique = await reference_service.create_rubrique(db, body, user)
        return ApiResponse.ok(RubriqueResponse.model_validate(rubrique))
    except ValueError as e:
        return ApiResponse.fail(str(e))


@router.put("/{rubrique_id}")
async def update_rubrique(
    rubrique_id: int,
    body: RubriqueUpdate,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    user: User = Depends(require_writer),
) -> ApiResponse[RubriqueResponse]:
    try:
        rubrique = await reference_service.update_rubrique(db, cache, rubrique_id, body, user)
    except ValueError as e:
        return ApiResponse.fail(str(e))
    if rubrique is None:
        return ApiResponse.fail(f"Rubrique with id {rubrique_id} not found")
    return ApiResponse.ok(RubriqueResponse.model_validate(rubrique))


@router.delete("/{rubrique_id}")
async def delete_rubrique(
    rubrique_id: int,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    user: User = Depends(require_admin),
) -> ApiResponse[None]:
    outcome = await reference_service.delete_rubrique(db, cache, rubrique_id, user)
    if outcome is None:
        return ApiResponse.fail(f"Rubrique with id {rubrique_id} not found")
    return ApiResponse.ok(None, meta={"outcome": outcome})
