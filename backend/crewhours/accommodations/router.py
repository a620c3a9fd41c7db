import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.accommodations import service
from crewhours.accommodations.schemas import (
    AccommodationCreate,
    AccommodationResponse,
    AccommodationUpdate,
    AssignmentCheckout,
    AssignmentCreate,
    AssignmentResponse,
)
from crewhours.auth.models import User
from crewhours.core.permissions import Capability
from crewhours.dependencies import get_db, require_capability

router = APIRouter()

_Manager = Annotated[User, Depends(require_capability(Capability.MANAGE_ACCOMMODATIONS))]


@router.get("")
async def list_accommodations(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: _Manager,
    include_inactive: bool = Query(False),
) -> dict:
    accommodations = await service.list_accommodations(db, include_inactive)
    return {"data": [AccommodationResponse.model_validate(a) for a in accommodations]}


@router.post("", status_code=201)
async def create_accommodation(
    data: AccommodationCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: _Manager,
) -> dict:
    accommodation = await service.create_accommodation(db, data)
    return {"data": AccommodationResponse.model_validate(accommodation)}


@router.get("/assignments")
async def list_assignments(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: _Manager,
    accommodation_id: uuid.UUID | None = Query(None),
    user_id: uuid.UUID | None = Query(None),
) -> dict:
    assignments = await service.list_assignments(db, accommodation_id, user_id)
    return {"data": [AssignmentResponse.model_validate(a) for a in assignments]}


@router.post("/assignments", status_code=201)
async def create_assignment(
    data: AssignmentCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: _Manager,
) -> dict:
    assignment = await service.create_assignment(db, data)
    return {"data": AssignmentResponse.model_validate(assignment)}


@router.post("/assignments/{assignment_id}/check-out")
async def check_out(
    assignment_id: uuid.UUID,
    data: AssignmentCheckout,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: _Manager,
) -> dict:
    assignment = await service.check_out(db, assignment_id, data.check_out)
    return {"data": AssignmentResponse.model_validate(assignment)}


@router.delete("/assignments/{assignment_id}")
async def delete_assignment(
    assignment_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: _Manager,
) -> dict:
    await service.delete_assignment(db, assignment_id)
    return {"data": {"message": "Assignment deleted"}}


@router.put("/{accommodation_id}")
async def update_accommodation(
    accommodation_id: uuid.UUID,
    data: AccommodationUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: _Manager,
) -> dict:
    accommodation = await service.update_accommodation(db, accommodation_id, data)
    return {"data": AccommodationResponse.model_validate(accommodation)}


@router.delete("/{accommodation_id}")
async def delete_accommodation(
    accommodation_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: _Manager,
) -> dict:
    await service.delete_accommodation(db, accommodation_id)
    return {"data": {"message": "Accommodation deleted"}}
