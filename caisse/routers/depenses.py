from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.database import get_db
from caisse.models.transaction import TransactionKind
from caisse.models.user import User
from caisse.routers.auth import get_current_user, require_deleter, require_writer
from caisse.schemas.common import ApiResponse
from caisse.schemas.transaction import DepenseCreate, DepenseResponse, DepenseUpdate
from caisse.services import transaction_service
from caisse.services.ledger_query import LedgerRepository, depense_to_response
from caisse.utils.cache import TTLCache, get_ledger_cache

router = APIRouter(prefix="/depenses", tags=["depenses"])


@router.get("")
async def get_depenses(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    _: User = Depends(get_current_user),
) -> ApiResponse[list[DepenseResponse]]:
    items, total = await LedgerRepository(db, cache).list_depenses(page, limit)
    return ApiResponse.ok(items, meta={"total": total, "page": page, "limit": limit})


@router.get("/range")
async def get_depenses_range(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    _: User = Depends(get_current_user),
) -> ApiResponse[list[DepenseResponse]]:
    rows = await LedgerRepository(db, cache).fetch_range(
        TransactionKind.DEPENSE, start_date, end_date
    )
    return ApiResponse.ok([depense_to_response(r) for r in rows])


@router.get("/{depense_id}")
async def get_depense(
    depense_id: int,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    _: User = Depends(get_current_user),
) -> ApiResponse[DepenseResponse]:
    depense = await LedgerRepository(db, cache).get(TransactionKind.DEPENSE, depense_id)
    if depense is None:
        return ApiResponse.fail(f"Depense with id {depense_id} not found")
    return ApiResponse.ok(depense_to_response(depense))


@router.post("")
async def create_depense(
    body: DepenseCreate,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    user: User = Depends(require_writer),
) -> ApiResponse[DepenseResponse]:
    try:
        depense = await transaction_service.create_depense(db, cache, body, user)
        return ApiResponse.ok(depense_to_response(depense))
    except ValueError as e:
        return ApiResponse.fail(str(e))


@router.put("/{depense_id}")
async def update_depense(
    depense_id: int,
    body: DepenseUpdate,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    user: User = Depends(require_writer),
) -> ApiResponse[DepenseResponse]:
    try:
        depense = await transaction_service.update_transaction(
            db, cache, TransactionKind.DEPENSE, depense_id, body, user
        )
    except ValueError as e:
        return ApiResponse.fail(str(e))
    if depense is None:
        return ApiResponse.fail(f"Depense with id {depense_id} not found")
    return ApiResponse.ok(depense_to_response(depense))


@router.delete("/{depense_id}")
async def delete_depense(
    depense_id: int,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    user: User = Depends(require_deleter),
) -> ApiResponse[None]:
    deleted = await transaction_service.delete_transaction(
        db, cache, TransactionKind.DEPENSE, depense_id, user
    )
    if not deleted:
        return ApiResponse.fail(f"Depense with id {depense_id} not found")
    return ApiResponse.ok(None)
