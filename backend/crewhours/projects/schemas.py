import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from crewhours.profiles.validation import MAX_ADDRESS_LENGTH, reject_nulls, sanitize_text


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    client: str = Field(min_length=1, max_length=200)
    location: str | None = Field(None, max_length=MAX_ADDRESS_LENGTH)
    address: str | None = Field(None, max_length=MAX_ADDRESS_LENGTH)
    standard_hours: float | None = Field(None, gt=0, le=24)
    is_active: bool = True

    @field_validator("name", "client", "location", "address")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_text(value) if value is not None else None


class ProjectUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=200)
    client: str | None = Field(None, min_length=1, max_length=200)
    location: str | None = Field(None, max_length=MAX_ADDRESS_LENGTH)
    address: str | None = Field(None, max_length=MAX_ADDRESS_LENGTH)
    standard_hours: float | None = Field(None, gt=0, le=24)
    is_active: bool | None = None

    @field_validator("name", "client", "location", "address")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_text(value) if value is not None else None

    @model_validator(mode="after")
    def _required_columns(self) -> "ProjectUpdate":
        reject_nulls(self, ("name", "client", "is_active"))
        return self


class ProjectResponse(BaseModel):
    id: uuid.UUID
    name: str
    client: str
    location: str | None
    address: str | None
    standard_hours: float | None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class AssignmentCreate(BaseModel):
    user_id: uuid.UUID


class AssignmentResponse(BaseModel):
    id: uuid.UUID
    project_id: uuid.UUID
    user_id: uuid.UUID
    full_name: str
    created_at: datetime

    model_config = {"from_attributes": True}
