from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.database import get_db
from caisse.models.user import User
from caisse.routers.auth import get_current_user, require_admin, require_writer
from caisse.schemas.common import ApiResponse
from caisse.schemas.reference import ServiceCreate, ServiceResponse, ServiceUpdate
from caisse.services import reference_service
from caisse.utils.cache import TTLCache, get_ledger_cache

router = APIRouter(prefix="/services", tags=["services"])


@router.get("")
async def get_services(
    active_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(get_current_user),
) -> ApiResponse[list[ServiceResponse]]:
    services = await reference_service.get_services(db, active_only)
    return ApiResponse.ok([ServiceResponse.model_validate(s) for s in services])


@router.post("")
async def create_service(
    body: ServiceCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(require_writer),
) -> ApiResponse[ServiceResponse]:
    try:
        service = await reference_service.create_service(db, body, user)
        return ApiResponse.ok(ServiceResponse.model_validate(service))
    except ValueError as e:
        return ApiResponse.fail(str(e))


@router.put("/{service_id}")
async def update_service(
    service_id: int,
    body: ServiceUpdate,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    user: User = Depends(require_writer),
) -> ApiResponse[ServiceResponse]:
    try:
        service = await reference_service.update_service(db, cache, service_id, body, user)
    except ValueError as e:
        return ApiResponse.fail(str(e))
    if service is None:
        return ApiResponse.fail(f"Service with id {service_id} not found")
    return ApiResponse.ok(ServiceResponse.model_validate(service))


@router.delete("/{service_id}")
async def delete_service(
    service_id: int,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    user: User = Depends(require_admin),
) -> ApiResponse[None]:
    outcome = await reference_service.delete_service(db, cache, service_id, user)
    if outcome is None:
        return ApiResponse.fail(f"Service with id {service_id} not found")
    return ApiResponse.ok(None, meta={"outcome": outcome})
