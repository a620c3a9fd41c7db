import logging
import uuid
from datetime import date

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.accommodations.models import Accommodation, AccommodationAssignment
from crewhours.accommodations.schemas import (
    AccommodationCreate,
    AccommodationUpdate,
    AssignmentCreate,
)
from crewhours.core.exceptions import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


def stay_cost(check_in: date, check_out: date | None, price_per_night: float) -> float | None:
    """Nights times price, or None while the stay is still open."""
    if check_out is None:
        return None
    nights = (check_out - check_in).days
    if nights < 0:
        raise ValidationError("Check-out cannot be before check-in.")
    return round(nights * price_per_night, 2)


async def list_accommodations(db: AsyncSession, include_inactive: bool = False) -> list[Accommodation]:
    query = select(Accommodation).where(Accommodation.deleted_at.is_(None))
    if not include_inactive:
        query = query.where(Accommodation.is_active.is_(True))
    result = await db.execute(query.order_by(Accommodation.name))
    return list(result.scalars().all())


async def get_accommodation(db: AsyncSession, accommodation_id: uuid.UUID) -> Accommodation:
    result = await db.execute(
        select(Accommodation).where(
            Accommodation.id == accommodation_id, Accommodation.deleted_at.is_(None)
        )
    )
    accommodation = result.scalar_one_or_none()
    if accommodation is None:
        raise NotFoundError("Accommodation", str(accommodation_id))
    return accommodation


async def create_accommodation(db: AsyncSession, data: AccommodationCreate) -> Accommodation:
    accommodation = Accommodation(**data.model_dump())
    db.add(accommodation)
    await db.commit()
    await db.refresh(accommodation)
    return accommodation


async def update_accommodation(
    db: AsyncSession, accommodation_id: uuid.UUID, data: AccommodationUpdate
) -> Accommodation:
    accommodation = await get_accommodation(db, accommodation_id)
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(accommodation, key, value)
    await db.commit()
    await db.refresh(accommodation)
    return accommodation


async def delete_accommodation(db: AsyncSession, accommodation_id: uuid.UUID) -> None:
    accommodation = await get_accommodation(db, accommodation_id)
    accommodation.soft_delete()
    accommodation.is_active = False
    await db.commit()


async def list_assignments(
    db: AsyncSession,
    accommodation_id: uuid.UUID | None = None,
    user_id: uuid.UUID | None = None,
) -> list[AccommodationAssignment]:
    query = select(AccommodationAssignment).where(AccommodationAssignment.deleted_at.is_(None))
    if accommodation_id is not None:
        query = query.where(AccommodationAssignment.accommodation_id == accommodation_id)
    if user_id is not None:
        query = query.where(AccommodationAssignment.user_id == user_id)
    result = await db.execute(query.order_by(AccommodationAssignment.check_in.desc()))
    return list(result.scalars().all())


async def _get_assignment(db: AsyncSession, assignment_id: uuid.UUID) -> AccommodationAssignment:
    result = await db.execute(
        select(AccommodationAssignment).where(
            AccommodationAssignment.id == assignment_id,
            AccommodationAssignment.deleted_at.is_(None),
        )
    )
    assignment = result.scalar_one_or_none()
    if assignment is None:
        raise NotFoundError("AccommodationAssignment", str(assignment_id))
    return assignment


async def create_assignment(db: AsyncSession, data: AssignmentCreate) -> AccommodationAssignment:
    accommodation = await get_accommodation(db, data.accommodation_id)
    price = (
        data.price_per_night
        if data.price_per_night is not None
        else accommodation.default_price_per_night
    )
    assignment = AccommodationAssignment(
        **data.model_dump(exclude={"price_per_night"}),
        price_per_night=price,
        total_cost=stay_cost(data.check_in, data.check_out, price),
    )
    db.add(assignment)
    await db.commit()
    await db.refresh(assignment)
    logger.info("User %s assigned to accommodation %s", assignment.user_id, accommodation.name)
    return assignment


async def check_out(
    db: AsyncSession, assignment_id: uuid.UUID, check_out_date: date
) -> AccommodationAssignment:
    assignment = await _get_assignment(db, assignment_id)
    assignment.total_cost = stay_cost(assignment.check_in, check_out_date, assignment.price_per_night)
    assignment.check_out = check_out_date
    await db.commit()
    await db.refresh(assignment)
    return assignment


async def delete_assignment(db: AsyncSession, assignment_id: uuid.UUID) -> None:
    assignment = await _get_assignment(db, assignment_id)
    assignment.soft_delete()
    await db.commit()
