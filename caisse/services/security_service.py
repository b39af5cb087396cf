from collections import Counter
from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.models.security import Alert, AuditLog, LoginAttempt
from caisse.schemas.security import (
    AuditLogFilter,
    DailyLoginPoint,
    LoginAttemptFilter,
    LoginAttemptResponse,
    LoginStats,
    NamedCount,
    SecurityDashboard,
)
from caisse.utils.auth import as_utc


def _day_start(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def browser_name(user_agent: str | None) -> str:
    """Coarse browser family of a user agent string."""
    if not user_agent:
        return "Inconnu"
    # Edge and Opera also announce Chrome
    if "Edg" in user_agent:
        return "Edge"
    if "OPR" in user_agent or "Opera" in user_agent:
        return "Opera"
    if "Chrome" in user_agent:
        return "Chrome"
    if "Firefox" in user_agent:
        return "Firefox"
    if "Safari" in user_agent:
        return "Safari"
    return "Autre"


# --- Login attempts ---


async def get_login_attempts(
    db: AsyncSession, filters: LoginAttemptFilter, limit: int = 500
) -> list[LoginAttempt]:
    query = select(LoginAttempt)
    if filters.username:
        query = query.where(LoginAttempt.username == filters.username.strip().lower())
    if filters.start_date is not None:
        query = query.where(LoginAttempt.created_at >= _day_start(filters.start_date))
    if filters.end_date is not None:
        query = query.where(
            LoginAttempt.created_at < _day_start(filters.end_date + timedelta(days=1))
        )
    if filters.success is not None:
        query = query.where(LoginAttempt.success.is_(filters.success))
    query = query.order_by(LoginAttempt.created_at.desc(), LoginAttempt.id.desc())
    result = await db.execute(query.limit(limit))
    return list(result.scalars().all())


def login_stats(attempts: list[LoginAttempt]) -> LoginStats:
    total = len(attempts)
    successful = sum(1 for a in attempts if a.success)
    return LoginStats(
        total=total,
        successful=successful,
        failed=total - successful,
        unique_users=len({a.username for a in attempts}),
        success_rate=round(successful / total * 100) if total else 0,
    )


def daily_series(
    attempts: list[LoginAttempt], days: int, today: date
) -> list[DailyLoginPoint]:
    """One point per day from ``today - days`` to ``today`` inclusive."""
    counts: dict[date, list[int]] = {
        today - timedelta(days=i): [0, 0] for i in range(days, -1, -1)
    }
    for a in attempts:
        day = as_utc(a.created_at).date()
        if day in counts:
            counts[day][0 if a.success else 1] += 1
    return [
        DailyLoginPoint(date=day, success=ok, failed=ko)
        for day, (ok, ko) in counts.items()
    ]


def browser_distribution(attempts: list[LoginAttempt]) -> list[NamedCount]:
    counter = Counter(browser_name(a.user_agent) for a in attempts)
    return [NamedCount(name=name, value=value) for name, value in counter.most_common()]


async def get_dashboard(
    db: AsyncSession, days: int = 7, today: date | None = None
) -> SecurityDashboard:
    today = today or datetime.now(timezone.utc).date()
    attempts = await get_login_attempts(
        db,
        LoginAttemptFilter(start_date=today - timedelta(days=days)),
        limit=10_000,
    )
    failures = [a for a in attempts if not a.success][:5]
    return SecurityDashboard(
        stats=login_stats(attempts),
        daily=daily_series(attempts, days, today),
        browsers=browser_distribution(attempts),
        recent_failures=[LoginAttemptResponse.model_validate(a) for a in failures],
        audit_by_action=await audit_counts_by_action(db),
    )


# --- Audit log ---


async def get_audit_logs(
    db: AsyncSession, filters: AuditLogFilter
) -> tuple[list[AuditLog], int]:
    query = select(AuditLog)
    count_query = select(func.count(AuditLog.id))

    conditions = []
    if filters.table_name:
        conditions.append(AuditLog.table_name == filters.table_name)
    if filters.action:
        conditions.append(AuditLog.action == filters.action.upper())
    if filters.username:
        conditions.append(AuditLog.username == filters.username.strip().lower())
    if filters.start_date is not None:
        conditions.append(AuditLog.created_at >= _day_start(filters.start_date))
    if filters.end_date is not None:
        conditions.append(
            AuditLog.created_at < _day_start(filters.end_date + timedelta(days=1))
        )

    if conditions:
        query = query.where(*conditions)
        count_query = count_query.where(*conditions)

    total_result = await db.execute(count_query)
    total = total_result.scalar()

    offset = (filters.page - 1) * filters.limit
    query = query.order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    query = query.offset(offset).limit(filters.limit)

    result = await db.execute(query)
    return list(result.scalars().all()), total


async def audit_counts_by_action(db: AsyncSession) -> list[NamedCount]:
    result = await db.execute(
        select(AuditLog.action, func.count(AuditLog.id))
        .group_by(AuditLog.action)
        .order_by(AuditLog.action)
    )
    return [NamedCount(name=action, value=count) for action, count in result.all()]


# --- Alerts ---


async def get_alerts(db: AsyncSession, unread_only: bool = False) -> list[Alert]:
    query = select(Alert)
    if unread_only:
        query = query.where(Alert.is_read.is_(False))
    result = await db.execute(query.order_by(Alert.created_at.desc(), Alert.id.desc()))
    return list(result.scalars().all())


async def mark_alert_read(db: AsyncSession, alert_id: int) -> bool:
    alert = await db.get(Alert, alert_id)
    if alert is None:
        return False
    alert.is_read = True
    await db.flush()
    return True
