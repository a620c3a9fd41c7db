import uuid
from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.closings import service
from crewhours.closings.models import ClosingStatus
from crewhours.closings.schemas import (
    ClosingDetail,
    ClosingFilter,
    ClosingResponse,
    ClosingReturn,
    WeekSubmit,
    WeekSummary,
)
from crewhours.config import Settings
from crewhours.core.pagination import PaginationParams, get_pagination
from crewhours.core.permissions import Capability
from crewhours.dependencies import get_current_user, get_db, get_settings, require_capability

router = APIRouter()


@router.get("/weeks")
async def list_weeks(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    """The current user's records grouped by ISO week."""
    weeks = await service.list_weeks(db, current_user.id)
    return {"data": [WeekSummary.model_validate(w, from_attributes=True) for w in weeks]}


@router.post("/submit")
async def submit_week(
    data: WeekSubmit,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    closing = await service.submit_week(db, current_user, data.calendar_week, data.year)
    return {"data": ClosingResponse.model_validate(closing)}


@router.get("")
async def list_closings(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    pagination: Annotated[PaginationParams, Depends(get_pagination)],
    user_id: uuid.UUID | None = Query(None),
    status: ClosingStatus | None = Query(None),
    calendar_week: int | None = Query(None, ge=1, le=53),
    year: int | None = Query(None),
) -> dict:
    filters = ClosingFilter(
        user_id=user_id, status=status, calendar_week=calendar_week, year=year
    )
    closings, meta = await service.list_closings(db, filters, pagination, current_user)
    return {"data": [ClosingResponse.model_validate(c) for c in closings], "meta": meta}


@router.get("/{closing_id}")
async def get_closing(
    closing_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    detail = await service.get_closing_detail(db, closing_id, current_user)
    return {"data": ClosingDetail.model_validate(detail, from_attributes=True)}


@router.post("/{closing_id}/approve")
async def approve_closing(
    closing_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_capability(Capability.APPROVE_WEEKS))],
) -> dict:
    closing = await service.approve_closing(db, closing_id, current_user)
    return {"data": ClosingResponse.model_validate(closing)}


@router.post("/{closing_id}/return")
async def return_closing(
    closing_id: uuid.UUID,
    data: ClosingReturn,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_capability(Capability.APPROVE_WEEKS))],
) -> dict:
    closing = await service.return_closing(db, closing_id, current_user, data.comment)
    return {"data": ClosingResponse.model_validate(closing)}


@router.post("/{closing_id}/undo-approval")
async def undo_approval(
    closing_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    current_user: Annotated[User, Depends(require_capability(Capability.APPROVE_WEEKS))],
) -> dict:
    closing = await service.undo_approval(
        db,
        closing_id,
        current_user,
        grace=timedelta(minutes=settings.grace_period_minutes),
    )
    return {"data": ClosingResponse.model_validate(closing)}


@router.post("/{closing_id}/lock")
async def lock_closing(
    closing_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_capability(Capability.LOCK_WEEKS))],
) -> dict:
    closing = await service.lock_closing(db, closing_id, current_user)
    return {"data": ClosingResponse.model_validate(closing)}


@router.delete("/{closing_id}")
async def delete_closing(
    closing_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_capability(Capability.LOCK_WEEKS))],
) -> dict:
    """Delete a weekly closing and its invoices; the week's records reopen as drafts."""
    await service.delete_closing(db, closing_id, current_user)
    return {"data": {"message": "Weekly closing deleted"}}
