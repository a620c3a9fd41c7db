import uuid
from datetime import date, datetime

from pydantic import BaseModel

from crewhours.invoicing.models import InvoiceStatus, TaxPaymentStatus

OptionalDate = date | None


class InvoiceGenerate(BaseModel):
    """Options for turning an approved week into an invoice."""

    # Defaults to the project with the most hours in the week.
    project_id: uuid.UUID | None = None
    # Historical invoices may carry older dates.
    issue_date: OptionalDate = None
    delivery_date: OptionalDate = None
    is_reverse_charge: bool = False
    deduct_advances: bool = False


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class InvoiceUpdate(BaseModel):
    is_accounted: bool | None = None
    tax_payment_status: TaxPaymentStatus | None = None


class ProjectRef(BaseModel):
    id: uuid.UUID
    name: str

    model_config = {"from_attributes": True}


class InvoiceResponse(BaseModel):
    id: uuid.UUID
    invoice_number: str
    user_id: uuid.UUID
    project_id: uuid.UUID | None
    project: ProjectRef | None = None
    week_closing_id: uuid.UUID | None
    calendar_week: int | None
    year: int | None
    total_hours: float
    hourly_rate: float
    subtotal: float
    vat_amount: float
    advance_deduction: float
    total_amount: float
    is_reverse_charge: bool
    issue_date: date
    delivery_date: date
    due_date: date
    status: InvoiceStatus
    paid_at: datetime | None
    transaction_tax_rate: float
    transaction_tax_amount: float
    tax_payment_status: TaxPaymentStatus
    is_locked: bool
    is_accounted: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class InvoiceFilter(BaseModel):
    user_id: uuid.UUID | None = None
    status: InvoiceStatus | None = None
    year: int | None = None
