"""Invoice generation from approved weeks, payment status and financial metrics."""

from __future__ import annotations

import logging
import math
import uuid
from collections import Counter
from datetime import date, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.advances.models import Advance
from crewhours.advances.service import unused_advances
from crewhours.auth.models import User
from crewhours.closings.models import ClosingStatus
from crewhours.closings.service import closing_records, get_closing, sum_hours
from crewhours.config import Settings
from crewhours.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from crewhours.core.pagination import PaginationParams, paginate
from crewhours.core.permissions import Capability, has_capability
from crewhours.core.timeutils import utcnow
from crewhours.invoicing.models import STICKY_INVOICE_STATUSES, Invoice, InvoiceStatus
from crewhours.invoicing.schemas import InvoiceFilter, InvoiceGenerate, InvoiceUpdate
from crewhours.profiles.service import find_profile

logger = logging.getLogger(__name__)

INVOICEABLE_CLOSING_STATUSES = (ClosingStatus.APPROVED, ClosingStatus.LOCKED)


# ── Pure calculations ────────────────────────────────────────────────────────


def transaction_tax(total_amount: float, rate_percent: float) -> float:
    """Transaction tax rounded up to the cent."""
    return math.ceil(round(total_amount * rate_percent / 100 * 100, 6)) / 100


def calculate_amounts(
    total_hours: float,
    hourly_rate: float,
    *,
    is_vat_payer: bool,
    is_reverse_charge: bool,
    advance_deduction: float = 0.0,
    vat_rate: float = 0.20,
) -> dict:
    subtotal = round(total_hours * hourly_rate, 2)
    vat_amount = 0.0
    if is_vat_payer and not is_reverse_charge:
        vat_amount = round(subtotal * vat_rate, 2)
    total = round(subtotal + vat_amount - advance_deduction, 2)
    return {
        "subtotal": subtotal,
        "vat_amount": vat_amount,
        "advance_deduction": round(advance_deduction, 2),
        "total_amount": total,
    }


def effective_status(invoice: Invoice, today: date, due_soon_days: int = 3) -> InvoiceStatus:
    """Status derived from the due date; paid and void are kept as set."""
    if invoice.status in STICKY_INVOICE_STATUSES:
        return invoice.status
    days_left = (invoice.due_date - today).days
    if days_left < 0:
        return InvoiceStatus.OVERDUE
    if days_left <= due_soon_days:
        return InvoiceStatus.DUE_SOON
    return InvoiceStatus.PENDING


async def next_invoice_number(db: AsyncSession, user_id: uuid.UUID, year: int) -> str:
    """Next ``YYYYNNN`` number in the user's sequence for *year*."""
    prefix = str(year)
    result = await db.execute(
        select(Invoice.invoice_number).where(
            Invoice.user_id == user_id,
            Invoice.invoice_number.like(f"{prefix}%"),
            Invoice.deleted_at.is_(None),
        )
    )
    sequence = 0
    for number in result.scalars().all():
        suffix = number[len(prefix):]
        if suffix.isdigit():
            sequence = max(sequence, int(suffix))
    return f"{prefix}{sequence + 1:03d}"


# ── Queries ──────────────────────────────────────────────────────────────────


async def get_invoice(db: AsyncSession, invoice_id: uuid.UUID, user: User) -> Invoice:
    result = await db.execute(
        select(Invoice)
        .where(Invoice.id == invoice_id, Invoice.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    invoice = result.scalar_one_or_none()
    if invoice is None:
        raise NotFoundError("Invoice", str(invoice_id))
    if invoice.user_id != user.id and not has_capability(user, Capability.MANAGE_INVOICES):
        raise NotFoundError("Invoice", str(invoice_id))
    return invoice


async def list_invoices(
    db: AsyncSession,
    filters: InvoiceFilter,
    pagination: PaginationParams,
    user: User,
) -> tuple[list[Invoice], dict]:
    query = select(Invoice).where(Invoice.deleted_at.is_(None))

    if not has_capability(user, Capability.MANAGE_INVOICES):
        query = query.where(Invoice.user_id == user.id)
    elif filters.user_id is not None:
        query = query.where(Invoice.user_id == filters.user_id)

    if filters.status is not None:
        query = query.where(Invoice.status == filters.status)
    if filters.year is not None:
        query = query.where(func.extract("year", Invoice.issue_date) == filters.year)

    return await paginate(
        db, query, pagination, Invoice.issue_date.desc(), Invoice.invoice_number.desc()
    )


# ── Generation ───────────────────────────────────────────────────────────────


def _main_project_id(records) -> uuid.UUID | None:
    hours: Counter = Counter()
    for record in records:
        hours[record.project_id] += record.total_hours or 0.0
    if not hours:
        return None
    return hours.most_common(1)[0][0]


async def generate_from_closing(
    db: AsyncSession,
    closing_id: uuid.UUID,
    data: InvoiceGenerate,
    user: User,
    settings: Settings,
    today: date | None = None,
) -> Invoice:
    """Create the invoice for an approved or locked week.

    A week gets at most one live invoice; void or delete the existing one to
    generate it again.
    """
    today = today or date.today()
    closing = await get_closing(db, closing_id)
    if closing.user_id != user.id and not has_capability(user, Capability.MANAGE_INVOICES):
        raise ForbiddenError("You can only invoice your own weeks.")
    if closing.status not in INVOICEABLE_CLOSING_STATUSES:
        raise ValidationError(
            f"KW {closing.calendar_week}/{closing.year} is {closing.status.value}; "
            "only approved weeks can be invoiced."
        )

    existing = await db.execute(
        select(Invoice.invoice_number).where(
            Invoice.week_closing_id == closing.id,
            Invoice.deleted_at.is_(None),
            Invoice.status != InvoiceStatus.VOID,
        )
    )
    number = existing.scalar_one_or_none()
    if number is not None:
        raise ConflictError(f"Invoice {number} already exists for this week.")

    profile = await find_profile(db, closing.user_id)
    if profile is None or not profile.hourly_rate:
        raise ValidationError("The worker has no hourly rate set in their profile.")

    records = await closing_records(db, closing)
    total_hours = sum_hours(records)
    if total_hours <= 0:
        raise ValidationError("The week has no approved hours to invoice.")

    is_vat_payer = profile.is_vat_payer
    gross = calculate_amounts(
        total_hours,
        profile.hourly_rate,
        is_vat_payer=is_vat_payer,
        is_reverse_charge=data.is_reverse_charge,
        vat_rate=settings.vat_rate,
    )["total_amount"]

    advances: list[Advance] = []
    if data.deduct_advances:
        advances = await unused_advances(db, closing.user_id)
    deduction = round(sum(a.amount for a in advances), 2)
    if deduction > gross:
        raise ValidationError(
            f"Open advances ({deduction:.2f}) exceed the invoice amount ({gross:.2f})."
        )

    amounts = calculate_amounts(
        total_hours,
        profile.hourly_rate,
        is_vat_payer=is_vat_payer,
        is_reverse_charge=data.is_reverse_charge,
        advance_deduction=deduction,
        vat_rate=settings.vat_rate,
    )

    issue_date = data.issue_date or today
    invoice = Invoice(
        invoice_number=await next_invoice_number(db, closing.user_id, issue_date.year),
        user_id=closing.user_id,
        project_id=data.project_id or _main_project_id(records),
        week_closing_id=closing.id,
        calendar_week=closing.calendar_week,
        year=closing.year,
        total_hours=total_hours,
        hourly_rate=profile.hourly_rate,
        is_reverse_charge=data.is_reverse_charge,
        issue_date=issue_date,
        delivery_date=data.delivery_date or issue_date,
        due_date=issue_date + timedelta(days=settings.invoice_due_days),
        transaction_tax_rate=settings.transaction_tax_rate,
        transaction_tax_amount=transaction_tax(
            amounts["total_amount"], settings.transaction_tax_rate
        ),
        **amounts,
    )
    invoice.status = effective_status(invoice, today, settings.due_soon_days)

    try:
        db.add(invoice)
        await db.flush()
        for advance in advances:
            advance.used_in_invoice_id = invoice.id
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Invoice %s generated for KW %d/%d of user %s (%.2f %s)",
        invoice.invoice_number, closing.calendar_week, closing.year,
        closing.user_id, invoice.total_amount, settings.currency,
    )
    return await get_invoice(db, invoice.id, user)


# ── Status and bookkeeping ───────────────────────────────────────────────────


async def _release_advances(db: AsyncSession, invoice_id: uuid.UUID) -> None:
    result = await db.execute(select(Advance).where(Advance.used_in_invoice_id == invoice_id))
    for advance in result.scalars().all():
        advance.used_in_invoice_id = None


async def update_status(
    db: AsyncSession,
    invoice_id: uuid.UUID,
    status: InvoiceStatus,
    user: User,
    settings: Settings,
    today: date | None = None,
) -> Invoice:
    """Mark an invoice paid or void, or reopen it.

    Reopening (any other status) recomputes the status from the due date.
    """
    invoice = await get_invoice(db, invoice_id, user)
    if invoice.is_locked:
        raise ValidationError(f"Invoice {invoice.invoice_number} is locked.")
    if invoice.status == InvoiceStatus.VOID:
        raise ValidationError("A void invoice cannot change status.")

    if status == InvoiceStatus.PAID:
        invoice.status = InvoiceStatus.PAID
        invoice.paid_at = utcnow()
    elif status == InvoiceStatus.VOID:
        invoice.status = InvoiceStatus.VOID
        invoice.paid_at = None
        await _release_advances(db, invoice.id)
    else:
        invoice.paid_at = None
        invoice.status = InvoiceStatus.PENDING
        invoice.status = effective_status(invoice, today or date.today(), settings.due_soon_days)

    await db.commit()
    logger.info("Invoice %s marked %s by %s", invoice.invoice_number, invoice.status.value, user.id)
    return await get_invoice(db, invoice.id, user)


async def update_invoice(
    db: AsyncSession, invoice_id: uuid.UUID, data: InvoiceUpdate, user: User
) -> Invoice:
    invoice = await get_invoice(db, invoice_id, user)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(invoice, key, value)
    await db.commit()
    return await get_invoice(db, invoice.id, user)


async def lock_invoice(db: AsyncSession, invoice_id: uuid.UUID, user: User) -> Invoice:
    invoice = await get_invoice(db, invoice_id, user)
    invoice.is_locked = True
    await db.commit()
    return await get_invoice(db, invoice.id, user)


async def delete_invoice(db: AsyncSession, invoice_id: uuid.UUID, user: User) -> None:
    invoice = await get_invoice(db, invoice_id, user)
    if invoice.is_locked:
        raise ValidationError(f"Invoice {invoice.invoice_number} is locked.")
    invoice.soft_delete()
    await _release_advances(db, invoice.id)
    await db.commit()
    logger.info("Invoice %s deleted by %s", invoice.invoice_number, user.id)


async def refresh_invoice_statuses(
    db: AsyncSession, today: date | None = None, due_soon_days: int = 3
) -> int:
    """Persist due-date driven statuses; returns how many invoices changed."""
    today = today or date.today()
    result = await db.execute(
        select(Invoice).where(
            Invoice.deleted_at.is_(None),
            Invoice.status.not_in(STICKY_INVOICE_STATUSES),
        )
    )
    changed = 0
    for invoice in result.scalars().all():
        status = effective_status(invoice, today, due_soon_days)
        if status != invoice.status:
            invoice.status = status
            changed += 1
    if changed:
        await db.commit()
    return changed


async def get_invoice_stats(
    db: AsyncSession, user: User, today: date | None = None, due_soon_days: int = 3
) -> dict:
    """Totals per effective status; void invoices are left out."""
    today = today or date.today()
    query = select(Invoice).where(
        Invoice.deleted_at.is_(None), Invoice.status != InvoiceStatus.VOID
    )
    if not has_capability(user, Capability.MANAGE_INVOICES):
        query = query.where(Invoice.user_id == user.id)
    invoices = (await db.execute(query)).scalars().all()

    by_status = {
        s.value: {"count": 0, "total_amount": 0.0}
        for s in InvoiceStatus
        if s != InvoiceStatus.VOID
    }
    for invoice in invoices:
        bucket = by_status[effective_status(invoice, today, due_soon_days).value]
        bucket["count"] += 1
        bucket["total_amount"] = round(bucket["total_amount"] + invoice.total_amount, 2)

    return {
        "by_status": by_status,
        "invoice_count": len(invoices),
        "total_amount": round(sum(i.total_amount for i in invoices), 2),
        "total_hours": round(sum(i.total_hours for i in invoices), 2),
        "total_vat": round(sum(i.vat_amount for i in invoices), 2),
        "total_transaction_tax": round(sum(i.transaction_tax_amount for i in invoices), 2),
        "outstanding_amount": round(
            sum(i.total_amount for i in invoices if i.status != InvoiceStatus.PAID), 2
        ),
    }
