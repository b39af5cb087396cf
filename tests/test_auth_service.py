from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from caisse.models import LoginAttempt, User, UserSession
from caisse.schemas.security import LoginAttemptFilter
from caisse.services import auth_service, security_service
from caisse.services.auth_service import AuthError
from conftest import ADMIN_PASSWORD, USER_PASSWORD

CHROME_UA = "Mozilla/5.0 (Windows NT 10.0) AppleWebKit/537.36 Chrome/120.0 Safari/537.36"
EDGE_UA = CHROME_UA + " Edg/120.0"


def _failing_logins(count, password="wrong"):
    async def _go(db):
        errors = []
        for _ in range(count):
            try:
                await auth_service.login(db, "lumuba", password)
            except AuthError as e:
                errors.append(e)
        return errors

    return _go


def test_seed_admin_only_once(in_session, users):
    admin = users["admin"]
    assert admin.username == "admin"
    assert admin.is_protected is True
    assert in_session(auth_service.seed_admin) is None


def test_login_opens_session(in_session, users):
    async def _go(db):
        session = await auth_service.login(db, "  Lumuba ", USER_PASSWORD, "127.0.0.1", CHROME_UA)
        user = await auth_service.validate_session(db, session.token)
        return session, user

    session, user = in_session(_go)
    assert session.user.username == "lumuba"
    assert user.id == session.user_id
    assert user.failed_attempts == 0
    assert user.last_login_at is not None


def test_unknown_user_is_refused_and_logged(in_session, users):
    async def _go(db):
        with pytest.raises(AuthError) as exc:
            await auth_service.login(db, "nobody", "x")
        attempts = (await db.execute(select(LoginAttempt))).scalars().all()
        return exc.value, attempts

    error, attempts = in_session(_go)
    assert error.status_code == 401
    assert error.message == "Identifiants incorrects"
    assert attempts[-1].failure_reason == auth_service.USER_NOT_FOUND


def test_wrong_password_counts_down(in_session, users):
    errors = in_session(_failing_logins(2))
    assert [e.message for e in errors] == [
        "Identifiants incorrects. 4 tentative(s) restante(s)",
        "Identifiants incorrects. 3 tentative(s) restante(s)",
    ]


def test_lockout_after_five_failures(in_session, users):
    errors = in_session(_failing_logins(5))
    assert errors[-1].message == "Compte verrouillé pour 15 minutes"

    # Even the right password is refused while locked
    locked = in_session(_failing_logins(1, password=USER_PASSWORD))
    assert locked[0].status_code == 423
    assert locked[0].message.startswith("Compte verrouillé. Réessayez dans")

    async def _later(db):
        later = datetime.now(timezone.utc) + timedelta(minutes=16)
        return await auth_service.login(db, "lumuba", USER_PASSWORD, now=later)

    assert in_session(_later).user.failed_attempts == 0


def test_unlock_user(in_session, users):
    in_session(_failing_logins(5))

    async def _unlock(db):
        return await auth_service.unlock_user(db, users["instructeur"].id)

    assert in_session(_unlock) is True
    assert in_session(_failing_logins(1, password=USER_PASSWORD)) == []


def test_inactive_account_is_refused(in_session, users):
    async def _disable(db):
        user = await db.get(User, users["observateur"].id)
        user.is_active = False

    in_session(_disable)

    async def _go(db):
        with pytest.raises(AuthError) as exc:
            await auth_service.login(db, "guest", USER_PASSWORD)
        return exc.value

    assert in_session(_go).status_code == 403


def test_expired_session_is_removed(in_session, users):
    async def _login(db):
        return await auth_service.login(db, "admin", ADMIN_PASSWORD)

    token = in_session(_login).token

    async def _validate(db):
        later = datetime.now(timezone.utc) + timedelta(days=2)
        return await auth_service.validate_session(db, token, now=later)

    assert in_session(_validate) is None

    async def _count(db):
        return (await db.execute(select(UserSession))).scalars().all()

    assert in_session(_count) == []


def test_logout_invalidates_token(in_session, users):
    async def _go(db):
        session = await auth_service.login(db, "admin", ADMIN_PASSWORD)
        await auth_service.logout(db, session.token)
        return await auth_service.validate_session(db, session.token)

    assert in_session(_go) is None


def test_change_password(in_session, users):
    async def _go(db):
        user = await db.get(User, users["instructeur"].id)
        with pytest.raises(ValueError):
            await auth_service.change_password(db, user, "bad", "newpass1")
        await auth_service.change_password(db, user, USER_PASSWORD, "newpass1")

    in_session(_go)

    async def _login(db):
        return await auth_service.login(db, "lumuba", "newpass1")

    assert in_session(_login).token


def test_duplicate_username_is_rejected(in_session, users):
    from caisse.schemas.user import UserCreate

    async def _go(db):
        await auth_service.create_user(db, UserCreate(username="LUMUBA", password="abcd"))

    with pytest.raises(ValueError, match="existe déjà"):
        in_session(_go)


def test_protected_admin_cannot_be_deleted(in_session, users):
    async def _go(db):
        await auth_service.delete_user(db, users["admin"].id)

    with pytest.raises(ValueError, match="protégé"):
        in_session(_go)


def test_delete_user_drops_sessions(in_session, users):
    async def _go(db):
        await auth_service.login(db, "guest", USER_PASSWORD)
        deleted = await auth_service.delete_user(db, users["observateur"].id)
        sessions = (await db.execute(select(UserSession))).scalars().all()
        return deleted, sessions

    deleted, sessions = in_session(_go)
    assert deleted is True
    assert sessions == []


@pytest.mark.parametrize(
    "user_agent, expected",
    [
        (None, "Inconnu"),
        (CHROME_UA, "Chrome"),
        (EDGE_UA, "Edge"),
        ("Mozilla/5.0 (X11; Linux x86_64; rv:121.0) Gecko/20100101 Firefox/121.0", "Firefox"),
        ("curl/8.4.0", "Autre"),
    ],
)
def test_browser_name(user_agent, expected):
    assert security_service.browser_name(user_agent) == expected


def test_security_dashboard(in_session, users):
    async def _go(db):
        await auth_service.login(db, "admin", ADMIN_PASSWORD, "10.0.0.1", CHROME_UA)
        for _ in range(2):
            try:
                await auth_service.login(db, "guest", "nope", "10.0.0.2", EDGE_UA)
            except AuthError:
                pass
        today = datetime.now(timezone.utc).date()
        dashboard = await security_service.get_dashboard(db, days=7, today=today)
        failed_only = await security_service.get_login_attempts(
            db, LoginAttemptFilter(success=False)
        )
        return dashboard, failed_only

    dashboard, failed_only = in_session(_go)

    assert dashboard.stats.total == 3
    assert dashboard.stats.failed == 2
    assert dashboard.stats.unique_users == 2
    assert dashboard.stats.success_rate == 33
    assert len(dashboard.daily) == 8
    assert dashboard.daily[-1].failed == 2
    assert {b.name: b.value for b in dashboard.browsers} == {"Edge": 2, "Chrome": 1}
    assert len(dashboard.recent_failures) == 2
    assert {n.name for n in dashboard.audit_by_action} == {"INSERT"}
    assert len(failed_only) == 2


def test_daily_series_covers_range_without_attempts():
    points = security_service.daily_series([], 3, date(2025, 1, 10))
    assert [p.date for p in points] == [
        date(2025, 1, 7), date(2025, 1, 8), date(2025, 1, 9), date(2025, 1, 10),
    ]
