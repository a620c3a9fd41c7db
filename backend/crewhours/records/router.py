import uuid
from datetime import date
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.core.pagination import PaginationParams, get_pagination
from crewhours.dependencies import get_current_user, get_db
from crewhours.records import service
from crewhours.records.hours import calculate_hours
from crewhours.records.models import RecordStatus
from crewhours.records.schemas import (
    HoursPreviewRequest,
    RecordCreate,
    RecordFilter,
    RecordResponse,
    RecordUpdate,
)

router = APIRouter()


@router.post("/calculate")
async def preview_hours(
    data: HoursPreviewRequest,
    _: Annotated[User, Depends(get_current_user)],
) -> dict:
    """Calculate worked hours for the given times without saving anything."""
    hours = calculate_hours(
        data.time_from,
        data.time_to,
        (data.break_start, data.break_end),
        (data.break2_start, data.break2_end),
    )
    return {"data": {"total_hours": hours}}


@router.get("")
async def list_records(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    pagination: Annotated[PaginationParams, Depends(get_pagination)],
    user_id: uuid.UUID | None = Query(None),
    project_id: uuid.UUID | None = Query(None),
    status: RecordStatus | None = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
) -> dict:
    filters = RecordFilter(
        user_id=user_id, project_id=project_id, status=status,
        date_from=date_from, date_to=date_to,
    )
    records, meta = await service.list_records(db, filters, pagination, current_user)
    return {"data": [RecordResponse.model_validate(r) for r in records], "meta": meta}


@router.post("", status_code=201)
async def create_record(
    data: RecordCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    record = await service.create_record(db, data, current_user)
    return {"data": RecordResponse.model_validate(record)}


@router.get("/{record_id}")
async def get_record(
    record_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    record = await service.get_record(db, record_id, current_user)
    return {"data": RecordResponse.model_validate(record)}


@router.put("/{record_id}")
async def update_record(
    record_id: uuid.UUID,
    data: RecordUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    record = await service.update_record(db, record_id, data, current_user)
    return {"data": RecordResponse.model_validate(record)}


@router.delete("/{record_id}")
async def delete_record(
    record_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    await service.delete_record(db, record_id, current_user)
    return {"data": {"message": "Record deleted"}}
