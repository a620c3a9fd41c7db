import enum
import uuid
from datetime import date, datetime

from sqlalchemy import Boolean, Date, DateTime, Enum, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crewhours.auth.models import User
from crewhours.database import Base, SoftDeleteMixin, TimestampMixin
from crewhours.projects.models import Project


class InvoiceStatus(str, enum.Enum):
    PENDING = "pending"
    DUE_SOON = "due_soon"
    OVERDUE = "overdue"
    PAID = "paid"
    VOID = "void"


# Statuses that are set by hand and never recomputed from the due date.
STICKY_INVOICE_STATUSES = (InvoiceStatus.PAID, InvoiceStatus.VOID)


class TaxPaymentStatus(str, enum.Enum):
    PENDING = "pending"
    PAID = "paid"


class Invoice(TimestampMixin, SoftDeleteMixin, Base):
    """A worker's invoice for one approved week."""

    __tablename__ = "invoices"

    id: Mapped[uuid.UUID] = mapped_column(primary_key=True, default=uuid.uuid4)
    invoice_number: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("projects.id"), nullable=True, index=True
    )
    week_closing_id: Mapped[uuid.UUID | None] = mapped_column(
        ForeignKey("weekly_closings.id"), nullable=True, index=True
    )
    calendar_week: Mapped[int | None] = mapped_column(nullable=True)
    year: Mapped[int | None] = mapped_column(nullable=True)

    total_hours: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    hourly_rate: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    subtotal: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    vat_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    advance_deduction: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    total_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    is_reverse_charge: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_date: Mapped[date] = mapped_column(Date, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    status: Mapped[InvoiceStatus] = mapped_column(
        Enum(InvoiceStatus), default=InvoiceStatus.PENDING, nullable=False, index=True
    )
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    transaction_tax_rate: Mapped[float] = mapped_column(Float, default=0.4, nullable=False)
    transaction_tax_amount: Mapped[float] = mapped_column(Float, default=0.0, nullable=False)
    tax_payment_status: Mapped[TaxPaymentStatus] = mapped_column(
        Enum(TaxPaymentStatus), default=TaxPaymentStatus.PENDING, nullable=False
    )

    is_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_accounted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    user: Mapped[User] = relationship("User", lazy="selectin")
    project: Mapped[Project | None] = relationship("Project", lazy="selectin")
