import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.advances.models import Advance
from crewhours.advances.schemas import AdvanceCreate
from crewhours.auth.models import User
from crewhours.core.exceptions import NotFoundError, ValidationError
from crewhours.core.permissions import Capability, has_capability

logger = logging.getLogger(__name__)


async def create_advance(db: AsyncSession, data: AdvanceCreate, admin: User) -> Advance:
    advance = Advance(**data.model_dump(), created_by=admin.id)
    db.add(advance)
    await db.commit()
    await db.refresh(advance)
    logger.info("Advance of %.2f recorded for user %s", advance.amount, advance.user_id)
    return advance


async def list_advances(
    db: AsyncSession,
    user: User,
    user_id: uuid.UUID | None = None,
    unused_only: bool = False,
) -> list[Advance]:
    query = select(Advance).where(Advance.deleted_at.is_(None))
    if not has_capability(user, Capability.MANAGE_ADVANCES):
        query = query.where(Advance.user_id == user.id)
    elif user_id is not None:
        query = query.where(Advance.user_id == user_id)
    if unused_only:
        query = query.where(Advance.used_in_invoice_id.is_(None))
    result = await db.execute(query.order_by(Advance.date.desc()))
    return list(result.scalars().all())


async def unused_advances(db: AsyncSession, user_id: uuid.UUID) -> list[Advance]:
    result = await db.execute(
        select(Advance)
        .where(
            Advance.user_id == user_id,
            Advance.deleted_at.is_(None),
            Advance.used_in_invoice_id.is_(None),
        )
        .order_by(Advance.date)
    )
    return list(result.scalars().all())


async def unused_total(db: AsyncSession, user_id: uuid.UUID) -> float:
    result = await db.execute(
        select(func.coalesce(func.sum(Advance.amount), 0)).where(
            Advance.user_id == user_id,
            Advance.deleted_at.is_(None),
            Advance.used_in_invoice_id.is_(None),
        )
    )
    return round(float(result.scalar() or 0), 2)


async def delete_advance(db: AsyncSession, advance_id: uuid.UUID) -> None:
    result = await db.execute(
        select(Advance).where(Advance.id == advance_id, Advance.deleted_at.is_(None))
    )
    advance = result.scalar_one_or_none()
    if advance is None:
        raise NotFoundError("Advance", str(advance_id))
    if advance.is_used:
        raise ValidationError("This advance was already deducted on an invoice.")
    advance.soft_delete()
    await db.commit()
