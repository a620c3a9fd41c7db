import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from crewhours.profiles.validation import (
    MAX_ADDRESS_LENGTH,
    MAX_NAME_LENGTH,
    MAX_NOTE_LENGTH,
    reject_nulls,
    sanitize_text,
)

OptionalDate = date | None


class AccommodationCreate(BaseModel):
    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    address: str = Field(min_length=1, max_length=MAX_ADDRESS_LENGTH)
    contact: str | None = Field(None, max_length=MAX_NAME_LENGTH)
    default_price_per_night: float = Field(0.0, ge=0, le=10_000)
    lat: float | None = Field(None, ge=-90, le=90)
    lng: float | None = Field(None, ge=-180, le=180)
    is_active: bool = True

    @field_validator("name", "address", "contact")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_text(value) if value is not None else None


class AccommodationUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)
    address: str | None = Field(None, min_length=1, max_length=MAX_ADDRESS_LENGTH)
    contact: str | None = Field(None, max_length=MAX_NAME_LENGTH)
    default_price_per_night: float | None = Field(None, ge=0, le=10_000)
    lat: float | None = Field(None, ge=-90, le=90)
    lng: float | None = Field(None, ge=-180, le=180)
    is_active: bool | None = None

    @field_validator("name", "address", "contact")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_text(value) if value is not None else None

    @model_validator(mode="after")
    def _required_columns(self) -> "AccommodationUpdate":
        reject_nulls(self, ("name", "address", "default_price_per_night", "is_active"))
        return self


class AccommodationResponse(BaseModel):
    id: uuid.UUID
    name: str
    address: str
    contact: str | None
    default_price_per_night: float
    lat: float | None
    lng: float | None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class AssignmentCreate(BaseModel):
    accommodation_id: uuid.UUID
    user_id: uuid.UUID
    project_id: uuid.UUID | None = None
    check_in: date
    check_out: OptionalDate = None
    # Falls back to the accommodation's default price.
    price_per_night: float | None = Field(None, ge=0, le=10_000)
    note: str | None = Field(None, max_length=MAX_NOTE_LENGTH)

    @field_validator("note")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_text(value) if value is not None else None


class AssignmentCheckout(BaseModel):
    check_out: date


class AssignmentResponse(BaseModel):
    id: uuid.UUID
    accommodation_id: uuid.UUID
    user_id: uuid.UUID
    project_id: uuid.UUID | None
    check_in: date
    check_out: date | None
    price_per_night: float
    total_cost: float | None
    note: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
