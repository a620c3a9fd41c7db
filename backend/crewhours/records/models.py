import enum
import uuid
from datetime import date, time

from sqlalchemy import Boolean, Date, Enum, Float, ForeignKey, Text, Time
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crewhours.auth.models import User
from crewhours.database import Base, SoftDeleteMixin, TimestampMixin
from crewhours.projects.models import Project

# Alias so the column named "date" does not shadow the type in annotations.
CalendarDate = date


class RecordStatus(str, enum.Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"
    RETURNED = "returned"


# The owner may still edit or delete records in these states.
EDITABLE_RECORD_STATUSES = (RecordStatus.DRAFT, RecordStatus.RETURNED)


class PerformanceRecord(TimestampMixin, SoftDeleteMixin, Base):
    """One worker-day of work against one project."""

    __tablename__ = "performance_records"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("projects.id"), nullable=False, index=True
    )
    date: Mapped[CalendarDate] = mapped_column(Date, nullable=False, index=True)
    time_from: Mapped[time] = mapped_column(Time, nullable=False)
    time_to: Mapped[time] = mapped_column(Time, nullable=False)
    break_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    break_end: Mapped[time | None] = mapped_column(Time, nullable=True)
    break2_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    break2_end: Mapped[time | None] = mapped_column(Time, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    total_hours: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    hours_overridden: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    status: Mapped[RecordStatus] = mapped_column(
        Enum(RecordStatus), default=RecordStatus.DRAFT, nullable=False, index=True
    )

    project: Mapped[Project] = relationship("Project", lazy="selectin")
    user: Mapped[User] = relationship("User", lazy="selectin")
