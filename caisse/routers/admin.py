from datetime import date

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.database import get_db
from caisse.models.user import User
from caisse.routers.auth import require_admin
from caisse.schemas.common import ApiResponse
from caisse.schemas.security import (
    AlertResponse,
    AuditLogFilter,
    AuditLogResponse,
    LoginAttemptFilter,
    LoginAttemptResponse,
    NamedCount,
    SecurityDashboard,
)
from caisse.schemas.user import PasswordReset, UserCreate, UserResponse, UserUpdate
from caisse.services import auth_service, security_service

router = APIRouter(prefix="/admin", tags=["admin"])


# --- Users ---


@router.get("/users")
async def get_users(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> ApiResponse[list[UserResponse]]:
    users = await auth_service.get_users(db)
    return ApiResponse.ok([UserResponse.model_validate(u) for u in users])


@router.post("/users")
async def create_user(
    body: UserCreate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ApiResponse[UserResponse]:
    try:
        user = await auth_service.create_user(db, body, admin)
        return ApiResponse.ok(UserResponse.model_validate(user))
    except ValueError as e:
        return ApiResponse.fail(str(e))


@router.put("/users/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ApiResponse[UserResponse]:
    try:
        user = await auth_service.update_user(db, user_id, body, admin)
    except ValueError as e:
        return ApiResponse.fail(str(e))
    if user is None:
        return ApiResponse.fail(f"User with id {user_id} not found")
    return ApiResponse.ok(UserResponse.model_validate(user))


@router.post("/users/{user_id}/reset-password")
async def reset_password(
    user_id: int,
    body: PasswordReset,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ApiResponse[None]:
    if not await auth_service.reset_password(db, user_id, body.new_password, admin):
        return ApiResponse.fail(f"User with id {user_id} not found")
    return ApiResponse.ok(None)


@router.post("/users/{user_id}/unlock")
async def unlock_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> ApiResponse[None]:
    if not await auth_service.unlock_user(db, user_id):
        return ApiResponse.fail(f"User with id {user_id} not found")
    return ApiResponse.ok(None)


@router.delete("/users/{user_id}")
async def delete_user(
    user_id: int,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
) -> ApiResponse[None]:
    try:
        deleted = await auth_service.delete_user(db, user_id, admin)
    except ValueError as e:
        return ApiResponse.fail(str(e))
    if not deleted:
        return ApiResponse.fail(f"User with id {user_id} not found")
    return ApiResponse.ok(None)


# --- Security ---


@router.get("/login-attempts")
async def get_login_attempts(
    username: str | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    success: bool | None = Query(None),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> ApiResponse[list[LoginAttemptResponse]]:
    filters = LoginAttemptFilter(
        username=username, start_date=start_date, end_date=end_date, success=success
    )
    attempts = await security_service.get_login_attempts(db, filters)
    return ApiResponse.ok([LoginAttemptResponse.model_validate(a) for a in attempts])


@router.get("/security-dashboard")
async def get_security_dashboard(
    days: int = Query(7, ge=1, le=90),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> ApiResponse[SecurityDashboard]:
    return ApiResponse.ok(await security_service.get_dashboard(db, days))


@router.get("/audit-logs")
async def get_audit_logs(
    table_name: str | None = Query(None),
    action: str | None = Query(None),
    username: str | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> ApiResponse[list[AuditLogResponse]]:
    filters = AuditLogFilter(
        table_name=table_name,
        action=action,
        username=username,
        start_date=start_date,
        end_date=end_date,
        page=page,
        limit=limit,
    )
    logs, total = await security_service.get_audit_logs(db, filters)
    return ApiResponse.ok(
        [AuditLogResponse.model_validate(log) for log in logs],
        meta={"total": total, "page": page, "limit": limit},
    )


@router.get("/audit-logs/stats")
async def get_audit_stats(
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> ApiResponse[list[NamedCount]]:
    return ApiResponse.ok(await security_service.audit_counts_by_action(db))


# --- Alerts ---


@router.get("/alerts")
async def get_alerts(
    unread_only: bool = Query(False),
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> ApiResponse[list[AlertResponse]]:
    alerts = await security_service.get_alerts(db, unread_only)
    return ApiResponse.ok([AlertResponse.model_validate(a) for a in alerts])


@router.post("/alerts/{alert_id}/read")
async def mark_alert_read(
    alert_id: int,
    db: AsyncSession = Depends(get_db),
    _: User = Depends(require_admin),
) -> ApiResponse[None]:
    if not await security_service.mark_alert_read(db, alert_id):
        return ApiResponse.fail(f"Alert with id {alert_id} not found")
    return ApiResponse.ok(None)
