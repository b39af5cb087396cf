from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.database import get_db
from caisse.models.user import User
from caisse.routers.auth import get_current_user, require_admin
from caisse.schemas.common import ApiResponse
from caisse.schemas.reference import SignataireCreate, SignataireResponse, SignataireUpdate
from caisse.services import signataire_service

router = APIRouter(prefix="/signataires", tags=["signataires"])


@router.get("")
async def get_signataires(
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
) -> ApiResponse[list[SignataireResponse]]:
    signataires = await signataire_service.get_signataires(db, active_only)
    return ApiResponse.ok([SignataireResponse.model_validate(s) for s in signataires])


@router.post("")
async def create_signataire(
    body: SignataireCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
) -> ApiResponse[SignataireResponse]:
    try:
        signataire = await signataire_service.create_signataire(db, body, user)
        return ApiResponse.ok(SignataireResponse.model_validate(signataire))
    except ValueError as e:
        return ApiResponse.fail(str(e))


@router.put("/{signataire_id}")
async def update_signataire(
    signataire_id: int,
    body: SignataireUpdate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
) -> ApiResponse[SignataireResponse]:
    try:
        signataire = await signataire_service.update_signataire(db, signataire_id, body, user)
    except ValueError as e:
        return ApiResponse.fail(str(e))
    if signataire is None:
        return ApiResponse.fail(f"Signataire with id {signataire_id} not found")
    return ApiResponse.ok(SignataireResponse.model_validate(signataire))


@router.delete("/{signataire_id}")
async def delete_signataire(
    signataire_id: int,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_admin),
) -> ApiResponse[None]:
    deleted = await signataire_service.delete_signataire(db, signataire_id, user)
    if not deleted:
        return ApiResponse.fail(f"Signataire with id {signataire_id} not found")
    return ApiResponse.ok(None)
