"""Approval queue: submitted weeks awaiting a decision and fresh approvals that can still be undone."""

from __future__ import annotations

import math
from collections import defaultdict
from datetime import datetime, timedelta

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.closings.models import ClosingStatus, WeeklyClosing
from crewhours.closings.service import closing_records, sum_hours
from crewhours.closings.workflow import GRACE_PERIOD, undo_remaining
from crewhours.core.timeutils import utcnow


async def _entry(db: AsyncSession, closing: WeeklyClosing, now: datetime, grace: timedelta) -> dict:
    records = await closing_records(db, closing)
    remaining = timedelta(0)
    if closing.status == ClosingStatus.APPROVED:
        remaining = undo_remaining(closing.approved_at, now, grace)
    return {
        "closing": closing,
        "total_hours": sum_hours(records),
        "records": records,
        "undo_remaining_seconds": math.ceil(remaining.total_seconds()),
    }


def _group_by_user(closings: list[WeeklyClosing], entries: list[dict]) -> list[dict]:
    groups: dict = defaultdict(list)
    names = {}
    for closing, entry in zip(closings, entries):
        groups[closing.user_id].append(entry)
        names[closing.user_id] = closing.user.full_name if closing.user else ""

    result = [
        {
            "user_id": user_id,
            "full_name": names[user_id],
            "total_hours": round(sum(e["total_hours"] for e in user_entries), 2),
            "closings": user_entries,
        }
        for user_id, user_entries in groups.items()
    ]
    result.sort(key=lambda g: g["full_name"].lower())
    return result


async def get_queue(
    db: AsyncSession,
    now: datetime | None = None,
    grace: timedelta = GRACE_PERIOD,
) -> dict:
    now = now or utcnow()

    result = await db.execute(
        select(WeeklyClosing)
        .where(
            WeeklyClosing.status == ClosingStatus.SUBMITTED,
            WeeklyClosing.deleted_at.is_(None),
        )
        .order_by(WeeklyClosing.year, WeeklyClosing.calendar_week)
        .execution_options(populate_existing=True)
    )
    pending = list(result.scalars().all())

    # The query window is inclusive; _entry applies the strict grace comparison.
    result = await db.execute(
        select(WeeklyClosing)
        .where(
            WeeklyClosing.status == ClosingStatus.APPROVED,
            WeeklyClosing.deleted_at.is_(None),
            WeeklyClosing.approved_at >= now - grace,
        )
        .order_by(WeeklyClosing.approved_at.desc())
        .execution_options(populate_existing=True)
    )
    recent = list(result.scalars().all())

    pending_entries = [await _entry(db, c, now, grace) for c in pending]
    recent_entries = [await _entry(db, c, now, grace) for c in recent]
    undoable = [(c, e) for c, e in zip(recent, recent_entries) if e["undo_remaining_seconds"] > 0]

    refresh_after = min((e["undo_remaining_seconds"] for _, e in undoable), default=None)
    return {
        "pending": _group_by_user(pending, pending_entries),
        "undoable": _group_by_user([c for c, _ in undoable], [e for _, e in undoable]),
        "refresh_after_seconds": refresh_after,
    }


async def count_pending(db: AsyncSession) -> int:
    result = await db.execute(
        select(func.count(WeeklyClosing.id)).where(
            WeeklyClosing.status == ClosingStatus.SUBMITTED,
            WeeklyClosing.deleted_at.is_(None),
        )
    )
    return result.scalar() or 0
