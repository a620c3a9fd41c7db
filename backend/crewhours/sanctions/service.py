import logging
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.core.exceptions import NotFoundError
from crewhours.core.permissions import Capability, has_capability
from crewhours.sanctions.models import Sanction
from crewhours.sanctions.schemas import SanctionCreate

logger = logging.getLogger(__name__)


async def create_sanction(db: AsyncSession, data: SanctionCreate, admin: User) -> Sanction:
    values = data.model_dump()
    values["sanction_date"] = data.sanction_date or date.today()
    sanction = Sanction(**values, admin_id=admin.id)
    db.add(sanction)
    await db.commit()
    await db.refresh(sanction)
    logger.info("Sanction recorded for user %s by %s", sanction.user_id, admin.id)
    return sanction


async def list_sanctions(
    db: AsyncSession, user: User, user_id: uuid.UUID | None = None
) -> list[Sanction]:
    query = select(Sanction).where(Sanction.deleted_at.is_(None))
    if not has_capability(user, Capability.MANAGE_SANCTIONS):
        query = query.where(Sanction.user_id == user.id)
    elif user_id is not None:
        query = query.where(Sanction.user_id == user_id)
    result = await db.execute(query.order_by(Sanction.sanction_date.desc()))
    return list(result.scalars().all())


async def delete_sanction(db: AsyncSession, sanction_id: uuid.UUID) -> None:
    result = await db.execute(
        select(Sanction).where(Sanction.id == sanction_id, Sanction.deleted_at.is_(None))
    )
    sanction = result.scalar_one_or_none()
    if sanction is None:
        raise NotFoundError("Sanction", str(sanction_id))
    sanction.soft_delete()
    await db.commit()
