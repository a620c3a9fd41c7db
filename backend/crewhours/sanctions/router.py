import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.core.permissions import Capability
from crewhours.dependencies import get_current_user, get_db, require_capability
from crewhours.sanctions import service
from crewhours.sanctions.schemas import SanctionCreate, SanctionResponse

router = APIRouter()


@router.get("")
async def list_sanctions(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    user_id: uuid.UUID | None = Query(None),
) -> dict:
    sanctions = await service.list_sanctions(db, current_user, user_id)
    return {"data": [SanctionResponse.model_validate(s) for s in sanctions]}


@router.post("", status_code=201)
async def create_sanction(
    data: SanctionCreate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_capability(Capability.MANAGE_SANCTIONS))],
) -> dict:
    sanction = await service.create_sanction(db, data, current_user)
    return {"data": SanctionResponse.model_validate(sanction)}


@router.delete("/{sanction_id}")
async def delete_sanction(
    sanction_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.MANAGE_SANCTIONS))],
) -> dict:
    await service.delete_sanction(db, sanction_id)
    return {"data": {"message": "Sanction deleted"}}
