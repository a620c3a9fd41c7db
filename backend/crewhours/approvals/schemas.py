import uuid

from pydantic import BaseModel

from crewhours.closings.schemas import ClosingResponse
from crewhours.records.schemas import RecordResponse


class QueueEntry(BaseModel):
    closing: ClosingResponse
    total_hours: float
    records: list[RecordResponse]
    # Zero for entries that are still waiting for a decision.
    undo_remaining_seconds: int = 0


class UserQueue(BaseModel):
    """Everything awaiting a decision (or still undoable) for one worker."""

    user_id: uuid.UUID
    full_name: str
    total_hours: float
    closings: list[QueueEntry]


class ApprovalQueue(BaseModel):
    pending: list[UserQueue]
    undoable: list[UserQueue]
    # Poll again after this many seconds to see countdowns expire.
    refresh_after_seconds: int | None
