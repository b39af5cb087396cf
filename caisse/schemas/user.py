from datetime import datetime

from pydantic import BaseModel, Field

from caisse.models.user import UserRole


class LoginRequest(BaseModel):
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    password: str = Field(..., min_length=4, max_length=100)
    full_name: str | None = Field(None, max_length=200)
    role: UserRole = UserRole.OBSERVATEUR


class UserUpdate(BaseModel):
    username: str | None = Field(None, min_length=3, max_length=100)
    full_name: str | None = Field(None, max_length=200)
    role: UserRole | None = None
    is_active: bool | None = None


class PasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=4, max_length=100)


class PasswordReset(BaseModel):
    new_password: str = Field(..., min_length=4, max_length=100)


class UserResponse(BaseModel):
    id: int
    username: str
    full_name: str | None
    role: UserRole
    is_active: bool
    is_protected: bool
    failed_attempts: int
    locked_until: datetime | None
    last_login_at: datetime | None

    model_config = {"from_attributes": True}


class SessionResponse(BaseModel):
    token: str
    expires_at: datetime
    user: UserResponse
