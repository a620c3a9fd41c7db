from datetime import timedelta
from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.approvals import service
from crewhours.approvals.schemas import ApprovalQueue
from crewhours.auth.models import User
from crewhours.config import Settings
from crewhours.core.permissions import Capability
from crewhours.dependencies import get_db, get_settings, require_capability

router = APIRouter()


@router.get("")
async def get_queue(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    _: Annotated[User, Depends(require_capability(Capability.APPROVE_WEEKS))],
) -> dict:
    queue = await service.get_queue(db, grace=timedelta(minutes=settings.grace_period_minutes))
    return {"data": ApprovalQueue.model_validate(queue, from_attributes=True)}


@router.get("/count")
async def count_pending(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.APPROVE_WEEKS))],
) -> dict:
    return {"data": {"pending": await service.count_pending(db)}}
