import logging
from datetime import date, datetime, time
from decimal import Decimal

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncSession

from caisse.config import settings
from caisse.models.security import Alert, AuditLog
from caisse.models.user import User
from caisse.utils.currency import format_montant

logger = logging.getLogger(__name__)


def _json_value(value):
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime, time)):
        return value.isoformat()
    if hasattr(value, "value"):  # enums
        return value.value
    return value


def snapshot(obj) -> dict:
    """Column values of an ORM object as a JSON-friendly dict."""
    mapper = inspect(obj).mapper
    return {
        attr.key: _json_value(getattr(obj, attr.key))
        for attr in mapper.column_attrs
    }


def changed_fields(old: dict, new: dict) -> list[str]:
    ignored = {"updated_at"}
    return sorted(k for k in new if k not in ignored and old.get(k) != new.get(k))


async def record_audit(
    db: AsyncSession,
    table_name: str,
    record_id,
    action: str,
    *,
    old_data: dict | None = None,
    new_data: dict | None = None,
    user: User | None = None,
) -> AuditLog:
    """Append one INSERT/UPDATE/DELETE entry to the audit log."""
    entry = AuditLog(
        table_name=table_name,
        record_id=str(record_id),
        action=action,
        old_data=old_data,
        new_data=new_data,
        changed_fields=(
            changed_fields(old_data, new_data)
            if action == "UPDATE" and old_data and new_data
            else None
        ),
        user_id=user.id if user else None,
        username=user.username if user else None,
    )
    db.add(entry)
    await db.flush()
    return entry


async def check_important_expense(
    db: AsyncSession,
    depense,
    threshold: Decimal = settings.IMPORTANT_EXPENSE_THRESHOLD,
) -> Alert | None:
    """Raise an alert when an expense reaches the configured threshold."""
    if depense.amount < threshold:
        return None
    severity = "critical" if depense.amount >= threshold * 2 else "warning"
    alert = Alert(
        alert_type="depense_importante",
        title="Dépense importante",
        message=(
            f"Dépense n° {depense.sequence_number} de "
            f"{format_montant(depense.amount, settings.CURRENCY_SYMBOL)} "
            f"au profit de {depense.beneficiary}"
        ),
        severity=severity,
        amount=depense.amount,
        related_table="depenses",
        related_record_id=depense.id,
    )
    db.add(alert)
    await db.flush()
    logger.warning(
        "Important expense %s: %s (%s)",
        depense.sequence_number, depense.amount, severity,
    )
    return alert
