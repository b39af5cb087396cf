from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.database import get_db
from caisse.models.transaction import TransactionKind
from caisse.models.user import User
from caisse.routers.auth import get_current_user, require_deleter, require_writer
from caisse.schemas.common import ApiResponse
from caisse.schemas.transaction import RecetteCreate, RecetteResponse, RecetteUpdate
from caisse.services import transaction_service
from caisse.services.ledger_query import LedgerRepository, recette_to_response
from caisse.utils.cache import TTLCache, get_ledger_cache

router = APIRouter(prefix="/recettes", tags=["recettes"])


@router.get("")
async def get_recettes(
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    _: User = Depends(get_current_user),
) -> ApiResponse[list[RecetteResponse]]:
    items, total = await LedgerRepository(db, cache).list_recettes(page, limit)
    return ApiResponse.ok(items, meta={"total": total, "page": page, "limit": limit})


@router.get("/range")
async def get_recettes_range(
    start_date: date = Query(...),
    end_date: date = Query(...),
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    _: User = Depends(get_current_user),
) -> ApiResponse[list[RecetteResponse]]:
    rows = await LedgerRepository(db, cache).fetch_range(
        TransactionKind.RECETTE, start_date, end_date
    )
    return ApiResponse.ok([recette_to_response(r) for r in rows])


@router.get("/{recette_id}")
async def get_recette(
    recette_id: int,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    _: User = Depends(get_current_user),
) -> ApiResponse[RecetteResponse]:
    recette = await LedgerRepository(db, cache).get(TransactionKind.RECETTE, recette_id)
    if recette is None:
        return ApiResponse.fail(f"Recette with id {recette_id} not found")
    return ApiResponse.ok(recette_to_response(recette))


@router.post("")
async def create_recette(
    body: RecetteCreate,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    user: User = Depends(require_writer),
) -> ApiResponse[RecetteResponse]:
    try:
        recette = await transaction_service.create_recette(db, cache, body, user)
        return ApiResponse.ok(recette_to_response(recette))
    except ValueError as e:
        return ApiResponse.fail(str(e))


@router.put("/{recette_id}")
async def update_recette(
    recette_id: int,
    body: RecetteUpdate,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    user: User = Depends(require_writer),
) -> ApiResponse[RecetteResponse]:
    try:
        recette = await transaction_service.update_transaction(
            db, cache, TransactionKind.RECETTE, recette_id, body, user
        )
    except ValueError as e:
        return ApiResponse.fail(str(e))
    if recette is None:
        return ApiResponse.fail(f"Recette with id {recette_id} not found")
    return ApiResponse.ok(recette_to_response(recette))


@router.delete("/{recette_id}")
async def delete_recette(
    recette_id: int,
    db: AsyncSession = Depends(get_db),
    cache: TTLCache = Depends(get_ledger_cache),
    user: User = Depends(require_deleter),
) -> ApiResponse[None]:
    deleted = await transaction_service.delete_transaction(
        db, cache, TransactionKind.RECETTE, recette_id, user
    )
    if not deleted:
        return ApiResponse.fail(f"Recette with id {recette_id} not found")
    return ApiResponse.ok(None)
