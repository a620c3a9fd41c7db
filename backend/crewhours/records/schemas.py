import uuid
from datetime import date, datetime, time

from pydantic import BaseModel, Field, field_validator, model_validator

from crewhours.profiles.validation import MAX_NOTE_LENGTH, reject_nulls, sanitize_text
from crewhours.records.models import RecordStatus

# Alias so a field named "date" can default to None without shadowing the type.
OptionalDate = date | None

TIME_FIELDS = ("time_from", "time_to", "break_start", "break_end", "break2_start", "break2_end")


class ProjectSummary(BaseModel):
    id: uuid.UUID
    name: str
    client: str
    location: str | None

    model_config = {"from_attributes": True}


class RecordCreate(BaseModel):
    project_id: uuid.UUID
    date: date
    time_from: time
    time_to: time
    break_start: time | None = None
    break_end: time | None = None
    break2_start: time | None = None
    break2_end: time | None = None
    note: str | None = Field(None, max_length=MAX_NOTE_LENGTH)
    # A value here is a manual override of the calculated hours.
    total_hours: float | None = Field(None, ge=0, le=24)
    # Set by administrators entering hours on behalf of a worker.
    user_id: uuid.UUID | None = None

    @field_validator("note")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_text(value) if value is not None else None


class RecordUpdate(BaseModel):
    project_id: uuid.UUID | None = None
    date: OptionalDate = None
    time_from: time | None = None
    time_to: time | None = None
    break_start: time | None = None
    break_end: time | None = None
    break2_start: time | None = None
    break2_end: time | None = None
    note: str | None = Field(None, max_length=MAX_NOTE_LENGTH)
    total_hours: float | None = Field(None, ge=0, le=24)

    @field_validator("note")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_text(value) if value is not None else None

    @model_validator(mode="after")
    def _required_columns(self) -> "RecordUpdate":
        reject_nulls(self, ("project_id", "date", "time_from", "time_to"))
        return self


class RecordResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    project_id: uuid.UUID
    project: ProjectSummary | None = None
    date: date
    time_from: time
    time_to: time
    break_start: time | None
    break_end: time | None
    break2_start: time | None
    break2_end: time | None
    note: str | None
    total_hours: float
    hours_overridden: bool
    status: RecordStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class RecordFilter(BaseModel):
    user_id: uuid.UUID | None = None
    project_id: uuid.UUID | None = None
    status: RecordStatus | None = None
    date_from: date | None = None
    date_to: date | None = None


class HoursPreviewRequest(BaseModel):
    time_from: time
    time_to: time
    break_start: time | None = None
    break_end: time | None = None
    break2_start: time | None = None
    break2_end: time | None = None
