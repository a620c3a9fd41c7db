"""SQLAlchemy models for weekly closings."""


import enum
import uuid
from datetime import datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, Integer, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crewhours.auth.models import User
from crewhours.database import Base, SoftDeleteMixin, TimestampMixin


class ClosingStatus(str, enum.Enum):
    OPEN = "open"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    RETURNED = "returned"
    LOCKED = "locked"


class WeeklyClosing(TimestampMixin, SoftDeleteMixin, Base):
    """One (user, ISO week, ISO year) batch of performance records."""

    __tablename__ = "weekly_closings"
    __table_args__ = (
        # At most one live closing per user and week.
        Index(
            "uq_weekly_closings_live_week",
            "user_id",
            "calendar_week",
            "year",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    calendar_week: Mapped[int] = mapped_column(Integer, nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[ClosingStatus] = mapped_column(
        Enum(ClosingStatus), default=ClosingStatus.SUBMITTED, nullable=False, index=True
    )
    submitted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    approved_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    return_comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped[User] = relationship("User", foreign_keys=[user_id], lazy="selectin")
