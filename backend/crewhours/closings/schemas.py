"""Pydantic schemas for weekly closings."""


import uuid
from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from crewhours.closings.models import ClosingStatus
from crewhours.profiles.validation import MAX_NOTE_LENGTH, sanitize_text
from crewhours.records.schemas import RecordResponse


class WeekSubmit(BaseModel):
    calendar_week: int = Field(ge=1, le=53)
    year: int = Field(ge=2000, le=2100)


class ClosingReturn(BaseModel):
    comment: str = Field(max_length=MAX_NOTE_LENGTH)

    @field_validator("comment")
    @classmethod
    def _non_empty(cls, value: str) -> str:
        value = sanitize_text(value)
        if not value:
            raise ValueError("A comment is required when returning a week.")
        return value


class ClosingResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    calendar_week: int
    year: int
    status: ClosingStatus
    submitted_at: datetime | None
    approved_at: datetime | None
    approved_by: uuid.UUID | None
    return_comment: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ClosingDetail(BaseModel):
    closing: ClosingResponse
    full_name: str
    total_hours: float
    records: list[RecordResponse]


class WeekSummary(BaseModel):
    """A user's week as seen from the weekly closings page."""

    calendar_week: int
    year: int
    closing_id: uuid.UUID | None
    status: ClosingStatus
    return_comment: str | None
    total_hours: float
    can_submit: bool
    records: list[RecordResponse]


class ClosingFilter(BaseModel):
    user_id: uuid.UUID | None = None
    status: ClosingStatus | None = None
    calendar_week: int | None = None
    year: int | None = None
