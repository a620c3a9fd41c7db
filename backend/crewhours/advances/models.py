import uuid
from datetime import date

from sqlalchemy import Date, Float, ForeignKey, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crewhours.auth.models import User
from crewhours.database import Base, SoftDeleteMixin, TimestampMixin

# Alias so the column named "date" does not shadow the type in annotations.
CalendarDate = date


class Advance(TimestampMixin, SoftDeleteMixin, Base):
    """Cash paid out to a worker ahead of invoicing."""

    __tablename__ = "advances"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    date: Mapped[CalendarDate] = mapped_column(Date, nullable=False)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Set once the advance has been deducted on an invoice.
    used_in_invoice_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    user: Mapped[User] = relationship("User", foreign_keys=[user_id], lazy="selectin")

    @property
    def is_used(self) -> bool:
        return self.used_in_invoice_id is not None
