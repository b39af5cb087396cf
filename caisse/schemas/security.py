from datetime import date, datetime

from pydantic import BaseModel


class LoginAttemptResponse(BaseModel):
    id: int
    username: str
    success: bool
    ip_address: str | None
    user_agent: str | None
    failure_reason: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class LoginAttemptFilter(BaseModel):
    username: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    success: bool | None = None


class LoginStats(BaseModel):
    total: int
    successful: int
    failed: int
    unique_users: int
    success_rate: int


class DailyLoginPoint(BaseModel):
    date: date
    success: int
    failed: int


class NamedCount(BaseModel):
    name: str
    value: int


class SecurityDashboard(BaseModel):
    stats: LoginStats
    daily: list[DailyLoginPoint]
    browsers: list[NamedCount]
    recent_failures: list[LoginAttemptResponse]
    audit_by_action: list[NamedCount]


class AuditLogResponse(BaseModel):
    id: int
    table_name: str
    record_id: str
    action: str
    old_data: dict | None
    new_data: dict | None
    changed_fields: list | None
    user_id: int | None
    username: str | None
    created_at: datetime

    model_config = {"from_attributes": True}


class AuditLogFilter(BaseModel):
    table_name: str | None = None
    action: str | None = None
    username: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    page: int = 1
    limit: int = 50


class AlertResponse(BaseModel):
    id: int
    alert_type: str
    title: str
    message: str
    severity: str
    related_table: str | None
    related_record_id: int | None
    is_read: bool
    created_at: datetime

    model_config = {"from_attributes": True}
