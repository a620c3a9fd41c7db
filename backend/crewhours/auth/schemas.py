import uuid
from datetime import datetime

from pydantic import BaseModel, EmailStr, Field, field_validator

from crewhours.auth.models import Role
from crewhours.profiles.validation import sanitize_text


class UserCreate(BaseModel):
    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=6, max_length=128)
    full_name: str = Field(min_length=1, max_length=200)
    company_name: str | None = Field(None, max_length=200)

    @field_validator("full_name", "company_name")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_text(value) if value is not None else None


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: uuid.UUID
    email: str
    full_name: str
    role: Role
    is_active: bool
    created_at: datetime
    last_login_at: datetime | None = None

    model_config = {"from_attributes": True}


class CurrentUserResponse(UserResponse):
    capabilities: list[str]


class UserUpdate(BaseModel):
    full_name: str | None = Field(None, min_length=1, max_length=200)
    password: str | None = Field(None, min_length=6, max_length=128)
    # Required together with a new password.
    current_password: str | None = None

    @field_validator("full_name")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_text(value) if value is not None else None


class UserRoleUpdate(BaseModel):
    role: Role


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class TokenRefreshRequest(BaseModel):
    refresh_token: str
