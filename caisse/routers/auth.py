from fastapi import APIRouter, Cookie, Depends, Header, HTTPException, Request, Response
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.config import settings
from caisse.database import get_db
from caisse.models.user import User
from caisse.schemas.common import ApiResponse
from caisse.schemas.user import LoginRequest, PasswordChange, SessionResponse, UserResponse
from caisse.services import auth_service
from caisse.services.auth_service import AuthError
from caisse.utils.permissions import (
    ADMIN_DENIED_MESSAGE,
    DELETE_DENIED_MESSAGE,
    WRITE_DENIED_MESSAGE,
    can_admin,
    can_delete,
    can_write,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_token(
    cookie_token: str | None, authorization: str | None
) -> str | None:
    if cookie_token:
        return cookie_token
    if authorization and authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return None


async def get_current_user(
    db: AsyncSession = Depends(get_db),
    caisse_session: str | None = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
    authorization: str | None = Header(None),
) -> User:
    """Dependency that returns the current authenticated user."""
    token = _session_token(caisse_session, authorization)
    if token is None:
        raise _unauthorized()
    user = await auth_service.validate_session(db, token)
    if user is None:
        raise _unauthorized()
    return user


def require_writer(user: User = Depends(get_current_user)) -> User:
    if not can_write(user.role):
        raise HTTPException(status_code=403, detail=WRITE_DENIED_MESSAGE)
    return user


def require_deleter(user: User = Depends(get_current_user)) -> User:
    if not can_delete(user.role):
        raise HTTPException(status_code=403, detail=DELETE_DENIED_MESSAGE)
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if not can_admin(user.role):
        raise HTTPException(status_code=403, detail=ADMIN_DENIED_MESSAGE)
    return user


def _unauthorized():
    return HTTPException(status_code=401, detail="Session invalide ou expirée")


@router.post("/login")
async def login(
    body: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> ApiResponse[SessionResponse]:
    try:
        session = await auth_service.login(
            db,
            body.username,
            body.password,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
    except AuthError as e:
        # Keep the failure counter and the attempt log
        await db.commit()
        raise HTTPException(status_code=e.status_code, detail=e.message) from e

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=session.token,
        max_age=settings.SESSION_MAX_AGE,
        httponly=True,
        samesite="lax",
    )
    return ApiResponse.ok(SessionResponse(
        token=session.token,
        expires_at=session.expires_at,
        user=UserResponse.model_validate(session.user),
    ))


@router.post("/logout")
async def logout(
    response: Response,
    db: AsyncSession = Depends(get_db),
    caisse_session: str | None = Cookie(None, alias=settings.SESSION_COOKIE_NAME),
    authorization: str | None = Header(None),
) -> ApiResponse[None]:
    token = _session_token(caisse_session, authorization)
    if token:
        await auth_service.logout(db, token)
    response.delete_cookie(key=settings.SESSION_COOKIE_NAME)
    return ApiResponse.ok(None)


@router.get("/me")
async def get_me(
    user: User = Depends(get_current_user),
) -> ApiResponse[UserResponse]:
    return ApiResponse.ok(UserResponse.model_validate(user))


@router.post("/change-password")
async def change_password(
    body: PasswordChange,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
) -> ApiResponse[None]:
    try:
        await auth_service.change_password(
            db, user, body.current_password, body.new_password
        )
        return ApiResponse.ok(None)
    except ValueError as e:
        return ApiResponse.fail(str(e))
