import logging
import math
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.config import settings
from caisse.models.security import LoginAttempt
from caisse.models.user import User, UserRole, UserSession
from caisse.schemas.user import UserCreate, UserUpdate
from caisse.services import audit_service
from caisse.utils.auth import (
    as_utc,
    generate_token,
    hash_password,
    session_expiry,
    verify_password,
)

logger = logging.getLogger(__name__)

USER_NOT_FOUND = "Utilisateur non trouvé"
WRONG_PASSWORD = "Mot de passe incorrect"
ACCOUNT_LOCKED = "Compte verrouillé"
ACCOUNT_DISABLED = "Compte désactivé"


class AuthError(Exception):
    """Login refused; ``status_code`` is the HTTP status to answer with."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message


def _user_snapshot(user: User) -> dict:
    data = audit_service.snapshot(user)
    data.pop("password_hash", None)
    return data


async def _log_attempt(
    db: AsyncSession,
    username: str,
    success: bool,
    ip_address: str | None,
    user_agent: str | None,
    failure_reason: str | None = None,
) -> None:
    db.add(LoginAttempt(
        username=username,
        success=success,
        ip_address=ip_address,
        user_agent=user_agent,
        failure_reason=failure_reason,
    ))
    await db.flush()


async def get_user_by_username(db: AsyncSession, username: str) -> User | None:
    result = await db.execute(
        select(User).where(User.username == username.strip().lower())
    )
    return result.scalar_one_or_none()


async def login(
    db: AsyncSession,
    username: str,
    password: str,
    ip_address: str | None = None,
    user_agent: str | None = None,
    now: datetime | None = None,
) -> UserSession:
    """Check credentials and open a session.

    Every refusal raises AuthError; the caller must still commit so the
    failure counter and the attempt log are kept.
    """
    now = now or datetime.now(timezone.utc)
    username = username.strip().lower()
    user = await get_user_by_username(db, username)

    if user is None:
        await _log_attempt(db, username, False, ip_address, user_agent, USER_NOT_FOUND)
        logger.warning("Login refused for unknown user %r", username)
        raise AuthError(401, "Identifiants incorrects")

    locked_until = as_utc(user.locked_until)
    if locked_until is not None and locked_until > now:
        remaining = math.ceil((locked_until - now).total_seconds() / 60)
        await _log_attempt(db, username, False, ip_address, user_agent, ACCOUNT_LOCKED)
        raise AuthError(423, f"Compte verrouillé. Réessayez dans {remaining} minute(s)")

    if not user.is_active:
        await _log_attempt(db, username, False, ip_address, user_agent, ACCOUNT_DISABLED)
        raise AuthError(403, "Ce compte est désactivé")

    if not verify_password(password, user.password_hash):
        user.failed_attempts = (user.failed_attempts or 0) + 1
        attempts_left = settings.MAX_FAILED_ATTEMPTS - user.failed_attempts
        if attempts_left <= 0:
            user.locked_until = now + timedelta(minutes=settings.LOCKOUT_MINUTES)
            logger.warning(
                "User %s locked for %d minutes", username, settings.LOCKOUT_MINUTES
            )
        await _log_attempt(db, username, False, ip_address, user_agent, WRONG_PASSWORD)
        if attempts_left > 0:
            raise AuthError(
                401, f"Identifiants incorrects. {attempts_left} tentative(s) restante(s)"
            )
        raise AuthError(401, f"Compte verrouillé pour {settings.LOCKOUT_MINUTES} minutes")

    user.failed_attempts = 0
    user.locked_until = None
    user.last_login_at = now

    session = UserSession(
        user_id=user.id,
        token=generate_token(),
        expires_at=session_expiry(now),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    db.add(session)
    await _log_attempt(db, username, True, ip_address, user_agent)
    await db.refresh(session, ["user"])
    logger.info("User %s logged in", username)
    return session


async def validate_session(
    db: AsyncSession, token: str, now: datetime | None = None
) -> User | None:
    """Return the active user owning a live session token."""
    now = now or datetime.now(timezone.utc)
    result = await db.execute(select(UserSession).where(UserSession.token == token))
    session = result.scalar_one_or_none()
    if session is None:
        return None
    if as_utc(session.expires_at) <= now:
        await db.delete(session)
        await db.flush()
        return None
    user = await db.get(User, session.user_id)
    if user is None or not user.is_active:
        return None
    return user


async def logout(db: AsyncSession, token: str) -> None:
    await db.execute(delete(UserSession).where(UserSession.token == token))
    await db.flush()


async def change_password(
    db: AsyncSession, user: User, current_password: str, new_password: str
) -> None:
    if not verify_password(current_password, user.password_hash):
        raise ValueError("Mot de passe actuel incorrect")
    user.password_hash = hash_password(new_password)
    await db.flush()
    logger.info("User %s changed their password", user.username)


# --- User management ---


async def get_users(db: AsyncSession) -> list[User]:
    result = await db.execute(select(User).order_by(User.username))
    return list(result.scalars().all())


async def create_user(
    db: AsyncSession, data: UserCreate, actor: User | None = None
) -> User:
    username = data.username.strip().lower()
    if await get_user_by_username(db, username) is not None:
        raise ValueError("Ce nom d'utilisateur existe déjà")
    user = User(
        username=username,
        full_name=data.full_name,
        password_hash=hash_password(data.password),
        role=data.role,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    await audit_service.record_audit(
        db, "local_users", user.id, "INSERT", new_data=_user_snapshot(user), user=actor,
    )
    logger.info("User %s created with role %s", username, user.role.value)
    return user


async def update_user(
    db: AsyncSession, user_id: int, data: UserUpdate, actor: User | None = None
) -> User | None:
    user = await db.get(User, user_id)
    if user is None:
        return None
    old_data = _user_snapshot(user)
    if data.username is not None:
        username = data.username.strip().lower()
        existing = await get_user_by_username(db, username)
        if existing is not None and existing.id != user_id:
            raise ValueError("Ce nom d'utilisateur existe déjà")
        user.username = username
    if data.full_name is not None:
        user.full_name = data.full_name
    if data.role is not None:
        user.role = data.role
    if data.is_active is not None:
        user.is_active = data.is_active
    await db.flush()
    await db.refresh(user)
    await audit_service.record_audit(
        db, "local_users", user.id, "UPDATE",
        old_data=old_data, new_data=_user_snapshot(user), user=actor,
    )
    return user


async def reset_password(
    db: AsyncSession, user_id: int, new_password: str, actor: User | None = None
) -> bool:
    user = await db.get(User, user_id)
    if user is None:
        return False
    user.password_hash = hash_password(new_password)
    user.failed_attempts = 0
    user.locked_until = None
    await db.flush()
    logger.info(
        "Password of %s reset by %s", user.username, actor.username if actor else "-"
    )
    return True


async def unlock_user(db: AsyncSession, user_id: int) -> bool:
    user = await db.get(User, user_id)
    if user is None:
        return False
    user.failed_attempts = 0
    user.locked_until = None
    await db.flush()
    logger.info("User %s unlocked", user.username)
    return True


async def delete_user(
    db: AsyncSession, user_id: int, actor: User | None = None
) -> bool:
    user = await db.get(User, user_id)
    if user is None:
        return False
    if user.is_protected:
        raise ValueError("Cet utilisateur est protégé et ne peut pas être supprimé")
    old_data = _user_snapshot(user)
    await db.execute(delete(UserSession).where(UserSession.user_id == user_id))
    await db.delete(user)
    await db.flush()
    await audit_service.record_audit(
        db, "local_users", user_id, "DELETE", old_data=old_data, user=actor,
    )
    logger.info("User %s deleted", old_data["username"])
    return True


async def seed_admin(db: AsyncSession) -> User | None:
    """Create the protected default admin when no user exists."""
    result = await db.execute(select(User).limit(1))
    if result.scalar_one_or_none() is not None:
        return None
    admin = User(
        username=settings.DEFAULT_ADMIN_USERNAME,
        full_name="Administrateur",
        password_hash=hash_password(settings.DEFAULT_ADMIN_PASSWORD),
        role=UserRole.ADMIN,
        is_active=True,
        is_protected=True,
    )
    db.add(admin)
    await db.flush()
    logger.info("Seeded default admin %s", admin.username)
    return admin
