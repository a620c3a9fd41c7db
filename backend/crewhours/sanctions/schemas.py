import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator, model_validator

from crewhours.profiles.validation import MAX_NOTE_LENGTH, sanitize_text

OptionalDate = date | None


class SanctionCreate(BaseModel):
    user_id: uuid.UUID
    reason: str = Field(min_length=1, max_length=MAX_NOTE_LENGTH)
    amount: float | None = Field(None, gt=0, le=100_000)
    hours_deducted: float | None = Field(None, gt=0, le=24 * 7)
    # Defaults to today.
    sanction_date: OptionalDate = None
    invoice_id: uuid.UUID | None = None

    @field_validator("reason")
    @classmethod
    def _sanitize(cls, value: str) -> str:
        value = sanitize_text(value)
        if not value:
            raise ValueError("A reason is required")
        return value

    @model_validator(mode="after")
    def _has_deduction(self) -> "SanctionCreate":
        if self.amount is None and self.hours_deducted is None:
            raise ValueError("A sanction needs an amount or deducted hours")
        return self


class SanctionResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    admin_id: uuid.UUID | None
    reason: str
    amount: float | None
    hours_deducted: float | None
    sanction_date: date
    invoice_id: uuid.UUID | None
    created_at: datetime

    model_config = {"from_attributes": True}
