"""Business logic for weekly closings and their batch status transitions.

Every transition writes the closing row and its member records in one
database transaction. The closing update is conditional on the status the
caller saw, so two sessions racing on the same closing cannot both win.
"""


from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import datetime, timedelta

from sqlalchemy import func, select, update
from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.advances.models import Advance
from crewhours.auth.models import User
from crewhours.closings.models import ClosingStatus, WeeklyClosing
from crewhours.closings.schemas import ClosingFilter
from crewhours.closings.weeks import iso_week_of, week_bounds
from crewhours.closings.workflow import (
    GRACE_PERIOD,
    PHASE_RECORD_STATUSES,
    ClosingAction,
    Transition,
    can_transition,
    ensure_undo_allowed,
    plan_transition,
)
from crewhours.core.exceptions import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from crewhours.core.pagination import PaginationParams, paginate
from crewhours.core.permissions import Capability, has_capability
from crewhours.core.timeutils import utcnow
from crewhours.invoicing.models import Invoice, InvoiceStatus
from crewhours.records.models import EDITABLE_RECORD_STATUSES, PerformanceRecord, RecordStatus

logger = logging.getLogger(__name__)

_UPSERT_DIALECTS = {
    "sqlite": sqlite_insert,
    "postgresql": postgresql_insert,
}


# ── Record helpers ────────────────────────────────────────────────────────────


async def week_records(
    db: AsyncSession,
    user_id: uuid.UUID,
    calendar_week: int,
    year: int,
    statuses: frozenset[RecordStatus] | None = None,
) -> list[PerformanceRecord]:
    """Live records of *user_id* dated inside the given ISO week."""
    monday, sunday = week_bounds(calendar_week, year)
    query = select(PerformanceRecord).where(
        PerformanceRecord.user_id == user_id,
        PerformanceRecord.deleted_at.is_(None),
        PerformanceRecord.date >= monday,
        PerformanceRecord.date <= sunday,
    )
    if statuses is not None:
        query = query.where(PerformanceRecord.status.in_(list(statuses)))
    result = await db.execute(
        query.order_by(PerformanceRecord.date, PerformanceRecord.time_from)
        .execution_options(populate_existing=True)
    )
    return list(result.scalars().all())


def sum_hours(records: list[PerformanceRecord]) -> float:
    return round(sum(r.total_hours or 0.0 for r in records), 2)


async def closing_records(db: AsyncSession, closing: WeeklyClosing) -> list[PerformanceRecord]:
    """Records that count towards the closing in its current phase."""
    return await week_records(
        db,
        closing.user_id,
        closing.calendar_week,
        closing.year,
        PHASE_RECORD_STATUSES[closing.status],
    )


async def _move_records(
    db: AsyncSession,
    user_id: uuid.UUID,
    calendar_week: int,
    year: int,
    transition: Transition,
) -> int:
    monday, sunday = week_bounds(calendar_week, year)
    result = await db.execute(
        update(PerformanceRecord)
        .where(
            PerformanceRecord.user_id == user_id,
            PerformanceRecord.deleted_at.is_(None),
            PerformanceRecord.date >= monday,
            PerformanceRecord.date <= sunday,
            PerformanceRecord.status.in_(list(transition.records_from)),
        )
        .values(status=transition.records_to, updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount


# ── Lookups ───────────────────────────────────────────────────────────────────


async def find_closing(
    db: AsyncSession, user_id: uuid.UUID, calendar_week: int, year: int
) -> WeeklyClosing | None:
    result = await db.execute(
        select(WeeklyClosing)
        .where(
            WeeklyClosing.user_id == user_id,
            WeeklyClosing.calendar_week == calendar_week,
            WeeklyClosing.year == year,
            WeeklyClosing.deleted_at.is_(None),
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def get_closing(db: AsyncSession, closing_id: uuid.UUID) -> WeeklyClosing:
    result = await db.execute(
        select(WeeklyClosing)
        .where(WeeklyClosing.id == closing_id, WeeklyClosing.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    closing = result.scalar_one_or_none()
    if closing is None:
        raise NotFoundError("WeeklyClosing", str(closing_id))
    return closing


async def get_visible_closing(
    db: AsyncSession, closing_id: uuid.UUID, user: User
) -> WeeklyClosing:
    closing = await get_closing(db, closing_id)
    if closing.user_id != user.id and not has_capability(user, Capability.VIEW_ALL_RECORDS):
        raise NotFoundError("WeeklyClosing", str(closing_id))
    return closing


async def get_closing_detail(db: AsyncSession, closing_id: uuid.UUID, user: User) -> dict:
    closing = await get_visible_closing(db, closing_id, user)
    records = await closing_records(db, closing)
    return {
        "closing": closing,
        "full_name": closing.user.full_name if closing.user else "",
        "total_hours": sum_hours(records),
        "records": records,
    }


async def list_closings(
    db: AsyncSession,
    filters: ClosingFilter,
    pagination: PaginationParams,
    user: User,
) -> tuple[list[WeeklyClosing], dict]:
    query = select(WeeklyClosing).where(WeeklyClosing.deleted_at.is_(None))

    if not has_capability(user, Capability.VIEW_ALL_RECORDS):
        query = query.where(WeeklyClosing.user_id == user.id)
    elif filters.user_id is not None:
        query = query.where(WeeklyClosing.user_id == filters.user_id)

    if filters.status is not None:
        query = query.where(WeeklyClosing.status == filters.status)
    if filters.calendar_week is not None:
        query = query.where(WeeklyClosing.calendar_week == filters.calendar_week)
    if filters.year is not None:
        query = query.where(WeeklyClosing.year == filters.year)

    return await paginate(
        db, query, pagination, WeeklyClosing.year.desc(), WeeklyClosing.calendar_week.desc()
    )


async def list_weeks(db: AsyncSession, user_id: uuid.UUID) -> list[dict]:
    """Group a user's records by ISO week together with each week's closing status.

    Weeks without a closing row are reported as ``open``.
    """
    result = await db.execute(
        select(PerformanceRecord)
        .where(PerformanceRecord.user_id == user_id, PerformanceRecord.deleted_at.is_(None))
        .order_by(PerformanceRecord.date, PerformanceRecord.time_from)
        .execution_options(populate_existing=True)
    )
    records = list(result.scalars().all())

    result = await db.execute(
        select(WeeklyClosing).where(
            WeeklyClosing.user_id == user_id, WeeklyClosing.deleted_at.is_(None)
        )
    )
    closings = {(c.calendar_week, c.year): c for c in result.scalars().all()}

    grouped: dict[tuple[int, int], list[PerformanceRecord]] = defaultdict(list)
    for record in records:
        grouped[tuple(iso_week_of(record.date))].append(record)

    weeks = []
    for (week, year), week_recs in grouped.items():
        closing = closings.get((week, year))
        status = closing.status if closing else ClosingStatus.OPEN
        phase = PHASE_RECORD_STATUSES[status]
        weeks.append({
            "calendar_week": week,
            "year": year,
            "closing_id": closing.id if closing else None,
            "status": status,
            "return_comment": closing.return_comment if closing else None,
            "total_hours": sum_hours([r for r in week_recs if r.status in phase]),
            "can_submit": can_transition(status, ClosingAction.SUBMIT)
            and any(r.status in EDITABLE_RECORD_STATUSES for r in week_recs),
            "records": week_recs,
        })

    weeks.sort(key=lambda w: (w["year"], w["calendar_week"]), reverse=True)
    return weeks


# ── Transitions ───────────────────────────────────────────────────────────────


async def _upsert_submitted_closing(
    db: AsyncSession,
    user_id: uuid.UUID,
    calendar_week: int,
    year: int,
    now: datetime,
) -> uuid.UUID | None:
    """Insert the closing as submitted, or flip an open/returned one to submitted.

    Returns the closing id, or None when a live closing exists in a state that
    cannot be submitted.
    """
    insert_fn = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)
    resubmittable = [ClosingStatus.OPEN, ClosingStatus.RETURNED]

    if insert_fn is None:
        # Dialects without ON CONFLICT: the partial unique index still rejects duplicates.
        closing = await find_closing(db, user_id, calendar_week, year)
        if closing is None:
            closing = WeeklyClosing(
                user_id=user_id, calendar_week=calendar_week, year=year,
                status=ClosingStatus.SUBMITTED, submitted_at=now,
            )
            db.add(closing)
        elif closing.status in resubmittable:
            closing.status = ClosingStatus.SUBMITTED
            closing.submitted_at = now
        else:
            return None
        try:
            await db.flush()
        except IntegrityError:
            raise ConflictError(
                f"KW {calendar_week}/{year} was submitted concurrently; reload and try again."
            ) from None
        return closing.id

    stmt = insert_fn(WeeklyClosing).values(
        id=uuid.uuid4(),
        user_id=user_id,
        calendar_week=calendar_week,
        year=year,
        status=ClosingStatus.SUBMITTED,
        submitted_at=now,
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=[WeeklyClosing.user_id, WeeklyClosing.calendar_week, WeeklyClosing.year],
        index_where=WeeklyClosing.deleted_at.is_(None),
        set_={
            "status": ClosingStatus.SUBMITTED,
            "submitted_at": now,
            "updated_at": func.now(),
        },
        where=WeeklyClosing.status.in_(resubmittable),
    ).returning(WeeklyClosing.id)
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def submit_week(
    db: AsyncSession,
    user: User,
    calendar_week: int,
    year: int,
    now: datetime | None = None,
) -> WeeklyClosing:
    """Submit all draft/returned records of a week for approval."""
    now = now or utcnow()
    # Rejects weeks the ISO year does not have (e.g. KW 53/2025) before touching any rows.
    week_bounds(calendar_week, year)

    existing = await find_closing(db, user.id, calendar_week, year)
    current = existing.status if existing else ClosingStatus.OPEN
    transition = plan_transition(current, ClosingAction.SUBMIT)

    pending = await week_records(db, user.id, calendar_week, year, transition.records_from)
    if not pending:
        raise ValidationError(
            f"KW {calendar_week}/{year} has no draft or returned records to submit."
        )

    try:
        closing_id = await _upsert_submitted_closing(db, user.id, calendar_week, year, now)
        if closing_id is None:
            raise ConflictError(
                f"KW {calendar_week}/{year} changed in the meantime; reload and try again."
            )
        moved = await _move_records(db, user.id, calendar_week, year, transition)
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "User %s submitted KW %d/%d with %d records", user.id, calendar_week, year, moved
    )
    return await get_closing(db, closing_id)


async def _apply_transition(
    db: AsyncSession,
    closing: WeeklyClosing,
    action: ClosingAction,
    values: dict,
    actor: User,
) -> WeeklyClosing:
    transition = plan_transition(closing.status, action)
    try:
        result = await db.execute(
            update(WeeklyClosing)
            .where(
                WeeklyClosing.id == closing.id,
                WeeklyClosing.status == closing.status,
                WeeklyClosing.deleted_at.is_(None),
            )
            .values(status=transition.closing_to, updated_at=func.now(), **values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise ConflictError(
                f"KW {closing.calendar_week}/{closing.year} was changed by someone else; "
                "reload and try again."
            )
        moved = 0
        if transition.records_to is not None:
            moved = await _move_records(
                db, closing.user_id, closing.calendar_week, closing.year, transition
            )
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "%s: KW %d/%d of user %s -> %s (%d records) by %s",
        action.value, closing.calendar_week, closing.year, closing.user_id,
        transition.closing_to.value, moved, actor.id,
    )
    return await get_closing(db, closing.id)


async def approve_closing(
    db: AsyncSession,
    closing_id: uuid.UUID,
    approver: User,
    now: datetime | None = None,
) -> WeeklyClosing:
    closing = await get_closing(db, closing_id)
    return await _apply_transition(
        db,
        closing,
        ClosingAction.APPROVE,
        {"approved_at": now or utcnow(), "approved_by": approver.id},
        approver,
    )


async def return_closing(
    db: AsyncSession,
    closing_id: uuid.UUID,
    approver: User,
    comment: str,
) -> WeeklyClosing:
    comment = comment.strip()
    if not comment:
        raise ValidationError("A comment is required when returning a week.")
    closing = await get_closing(db, closing_id)
    return await _apply_transition(
        db, closing, ClosingAction.RETURN, {"return_comment": comment}, approver
    )


async def undo_approval(
    db: AsyncSession,
    closing_id: uuid.UUID,
    user: User,
    now: datetime | None = None,
    grace: timedelta = GRACE_PERIOD,
) -> WeeklyClosing:
    """Revert a fresh approval back to submitted.

    The grace window is checked against the server clock at the moment of the
    request, whatever a client countdown showed.
    """
    closing = await get_closing(db, closing_id)
    plan_transition(closing.status, ClosingAction.UNDO_APPROVAL)
    ensure_undo_allowed(closing.approved_at, now or utcnow(), grace)

    result = await db.execute(
        select(func.count(Invoice.id)).where(
            Invoice.week_closing_id == closing.id,
            Invoice.deleted_at.is_(None),
            Invoice.status != InvoiceStatus.VOID,
        )
    )
    if result.scalar():
        raise InvalidTransitionError(
            "An invoice was already generated for this week; void it before undoing the approval."
        )

    return await _apply_transition(
        db,
        closing,
        ClosingAction.UNDO_APPROVAL,
        {"approved_at": None, "approved_by": None},
        user,
    )


async def lock_closing(
    db: AsyncSession,
    closing_id: uuid.UUID,
    admin: User,
) -> WeeklyClosing:
    """Freeze an approved week for good."""
    closing = await get_closing(db, closing_id)
    return await _apply_transition(db, closing, ClosingAction.LOCK, {}, admin)


async def delete_closing(db: AsyncSession, closing_id: uuid.UUID, admin: User) -> None:
    """Discard a weekly closing together with the invoices generated from it.

    Advances deducted on those invoices become available again, and the
    week's submitted or approved records go back to draft so the worker can
    correct and resubmit them.
    """
    closing = await get_closing(db, closing_id)
    label = f"KW {closing.calendar_week}/{closing.year}"
    try:
        result = await db.execute(
            select(Invoice).where(
                Invoice.week_closing_id == closing.id, Invoice.deleted_at.is_(None)
            )
        )
        invoices = list(result.scalars().all())
        for invoice in invoices:
            invoice.soft_delete()
        if invoices:
            await db.execute(
                update(Advance)
                .where(Advance.used_in_invoice_id.in_([inv.id for inv in invoices]))
                .values(used_in_invoice_id=None)
                .execution_options(synchronize_session=False)
            )

        monday, sunday = week_bounds(closing.calendar_week, closing.year)
        reopened = await db.execute(
            update(PerformanceRecord)
            .where(
                PerformanceRecord.user_id == closing.user_id,
                PerformanceRecord.deleted_at.is_(None),
                PerformanceRecord.date >= monday,
                PerformanceRecord.date <= sunday,
                PerformanceRecord.status.in_([RecordStatus.SUBMITTED, RecordStatus.APPROVED]),
            )
            .values(status=RecordStatus.DRAFT, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        closing.soft_delete()
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Closing %s (%s) deleted by %s with %d invoices; %d records reopened",
        closing_id, label, admin.id, len(invoices), reopened.rowcount,
    )
