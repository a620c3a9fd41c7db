"""Business logic for daily performance records."""

from __future__ import annotations

import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.closings.models import WeeklyClosing
from crewhours.closings.weeks import iso_week_of
from crewhours.closings.workflow import FROZEN_CLOSING_STATUSES
from crewhours.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from crewhours.core.pagination import PaginationParams, paginate
from crewhours.core.permissions import Capability, has_capability
from crewhours.projects.models import Project
from crewhours.records.hours import check_saveable_hours, resolve_total_hours
from crewhours.records.models import EDITABLE_RECORD_STATUSES, PerformanceRecord, RecordStatus
from crewhours.records.schemas import TIME_FIELDS, RecordCreate, RecordFilter, RecordUpdate


async def _assert_week_open(db: AsyncSession, user_id: uuid.UUID, day) -> None:
    """Reject changes to a week whose closing is submitted, approved or locked."""
    week = iso_week_of(day)
    result = await db.execute(
        select(WeeklyClosing.status).where(
            WeeklyClosing.user_id == user_id,
            WeeklyClosing.calendar_week == week.week,
            WeeklyClosing.year == week.year,
            WeeklyClosing.deleted_at.is_(None),
        )
    )
    status = result.scalar_one_or_none()
    if status in FROZEN_CLOSING_STATUSES:
        raise ValidationError(
            f"{week} is {status.value}; its records can no longer be changed."
        )


async def _assert_active_project(db: AsyncSession, project_id: uuid.UUID) -> None:
    result = await db.execute(
        select(Project.id).where(
            Project.id == project_id,
            Project.deleted_at.is_(None),
            Project.is_active.is_(True),
        )
    )
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Project", str(project_id))


def _assert_can_write(record: PerformanceRecord, user: User) -> None:
    if record.user_id != user.id and not has_capability(user, Capability.MANAGE_RECORDS):
        raise ForbiddenError("You can only change your own records.")
    if record.status not in EDITABLE_RECORD_STATUSES:
        raise ValidationError(
            f"A {record.status.value} record can no longer be changed."
        )


async def create_record(db: AsyncSession, data: RecordCreate, user: User) -> PerformanceRecord:
    owner_id = user.id
    if data.user_id is not None and data.user_id != user.id:
        if not has_capability(user, Capability.MANAGE_RECORDS):
            raise ForbiddenError("You can only record your own hours.")
        owner_id = data.user_id

    await _assert_active_project(db, data.project_id)
    await _assert_week_open(db, owner_id, data.date)

    times = data.model_dump(include=set(TIME_FIELDS))
    total_hours, overridden = resolve_total_hours(times, data.total_hours)
    check_saveable_hours(total_hours)

    record = PerformanceRecord(
        user_id=owner_id,
        project_id=data.project_id,
        date=data.date,
        note=data.note or None,
        total_hours=total_hours,
        hours_overridden=overridden,
        status=RecordStatus.DRAFT,
        **times,
    )
    db.add(record)
    await db.commit()
    await db.refresh(record)
    return record


async def list_records(
    db: AsyncSession,
    filters: RecordFilter,
    pagination: PaginationParams,
    user: User,
) -> tuple[list[PerformanceRecord], dict]:
    query = select(PerformanceRecord).where(PerformanceRecord.deleted_at.is_(None))

    if not has_capability(user, Capability.VIEW_ALL_RECORDS):
        query = query.where(PerformanceRecord.user_id == user.id)
    elif filters.user_id is not None:
        query = query.where(PerformanceRecord.user_id == filters.user_id)

    if filters.project_id is not None:
        query = query.where(PerformanceRecord.project_id == filters.project_id)
    if filters.status is not None:
        query = query.where(PerformanceRecord.status == filters.status)
    if filters.date_from is not None:
        query = query.where(PerformanceRecord.date >= filters.date_from)
    if filters.date_to is not None:
        query = query.where(PerformanceRecord.date <= filters.date_to)

    return await paginate(
        db, query, pagination, PerformanceRecord.date.desc(), PerformanceRecord.time_from
    )


async def get_record(db: AsyncSession, record_id: uuid.UUID, user: User) -> PerformanceRecord:
    result = await db.execute(
        select(PerformanceRecord)
        .where(PerformanceRecord.id == record_id, PerformanceRecord.deleted_at.is_(None))
        .execution_options(populate_existing=True)
    )
    record = result.scalar_one_or_none()
    if record is None:
        raise NotFoundError("PerformanceRecord", str(record_id))
    if record.user_id != user.id and not has_capability(user, Capability.VIEW_ALL_RECORDS):
        raise NotFoundError("PerformanceRecord", str(record_id))
    return record


async def update_record(
    db: AsyncSession, record_id: uuid.UUID, data: RecordUpdate, user: User
) -> PerformanceRecord:
    record = await get_record(db, record_id, user)
    _assert_can_write(record, user)
    await _assert_week_open(db, record.user_id, record.date)

    update_data = data.model_dump(exclude_unset=True)
    manual_hours = update_data.pop("total_hours", None)

    if "project_id" in update_data and update_data["project_id"] != record.project_id:
        await _assert_active_project(db, update_data["project_id"])
    if "date" in update_data and update_data["date"] != record.date:
        await _assert_week_open(db, record.user_id, update_data["date"])

    times = {name: getattr(record, name) for name in TIME_FIELDS}
    times_changed = any(
        name in update_data and update_data[name] != times[name] for name in TIME_FIELDS
    )
    times.update({k: v for k, v in update_data.items() if k in TIME_FIELDS})

    total_hours, overridden = resolve_total_hours(
        times,
        manual_hours,
        previous_hours=record.total_hours,
        was_overridden=record.hours_overridden,
        times_changed=times_changed,
    )
    check_saveable_hours(total_hours)

    for key, value in update_data.items():
        setattr(record, key, value)
    record.total_hours = total_hours
    record.hours_overridden = overridden

    await db.commit()
    await db.refresh(record)
    return record


async def delete_record(db: AsyncSession, record_id: uuid.UUID, user: User) -> None:
    """Soft-delete a draft or returned record."""
    record = await get_record(db, record_id, user)
    _assert_can_write(record, user)
    await _assert_week_open(db, record.user_id, record.date)
    record.soft_delete()
    await db.commit()
