import uuid
from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator

from crewhours.profiles.validation import MAX_NOTE_LENGTH, sanitize_text

MAX_ADVANCE_AMOUNT = 100_000


class AdvanceCreate(BaseModel):
    user_id: uuid.UUID
    amount: float = Field(gt=0, le=MAX_ADVANCE_AMOUNT)
    date: date
    note: str | None = Field(None, max_length=MAX_NOTE_LENGTH)

    @field_validator("note")
    @classmethod
    def _sanitize(cls, value: str | None) -> str | None:
        return sanitize_text(value) if value is not None else None


class AdvanceResponse(BaseModel):
    id: uuid.UUID
    user_id: uuid.UUID
    amount: float
    date: date
    note: str | None
    used_in_invoice_id: uuid.UUID | None
    is_used: bool
    created_at: datetime

    model_config = {"from_attributes": True}
