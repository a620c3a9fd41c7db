import uuid
from datetime import date

from sqlalchemy import Boolean, Date, Float, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crewhours.auth.models import User
from crewhours.database import Base, SoftDeleteMixin, TimestampMixin


class Accommodation(TimestampMixin, SoftDeleteMixin, Base):
    __tablename__ = "accommodations"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str] = mapped_column(String(500), nullable=False)
    contact: Mapped[str | None] = mapped_column(String(200), nullable=True)
    default_price_per_night: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    lat: Mapped[float | None] = mapped_column(Float, nullable=True)
    lng: Mapped[float | None] = mapped_column(Float, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)


class AccommodationAssignment(TimestampMixin, SoftDeleteMixin, Base):
    """A worker's stay at an accommodation; open-ended until checked out."""

    __tablename__ = "accommodation_assignments"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    accommodation_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("accommodations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("projects.id"), nullable=True
    )
    check_in: Mapped[date] = mapped_column(Date, nullable=False)
    check_out: Mapped[date | None] = mapped_column(Date, nullable=True)
    price_per_night: Mapped[float] = mapped_column(Float, nullable=False)
    total_cost: Mapped[float | None] = mapped_column(Float, nullable=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)

    accommodation: Mapped[Accommodation] = relationship("Accommodation", lazy="selectin")
    user: Mapped[User] = relationship("User", lazy="selectin")
