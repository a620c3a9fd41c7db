import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.advances import service
from crewhours.advances.schemas import AdvanceCreate, AdvanceResponse
from crewhours.auth.models import User
from crewhours.core.permissions import Capability
from crewhours.dependencies import get_current_user, get_db, require_capability

router = APIRouter()


@router.get("")
async def list_advances(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    user_id: uuid.UUID | None = Query(None),
    unused_only: bool = Query(False),
) -> dict:
    advances = await service.list_advances(db, current_user, user_id, unused_only)
    return {"data": [AdvanceResponse.model_validate(a) for a in advances]}


@router.post("", status_code=201)
async def create_advance(
    data: AdvanceCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_capability(Capability.MANAGE_ADVANCES))],
) -> dict:
    advance = await service.create_advance(db, data, current_user)
    return {"data": AdvanceResponse.model_validate(advance)}


@router.delete("/{advance_id}")
async def delete_advance(
    advance_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.MANAGE_ADVANCES))],
) -> dict:
    await service.delete_advance(db, advance_id)
    return {"data": {"message": "Advance deleted"}}
