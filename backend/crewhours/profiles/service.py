"""Business logic for subcontractor profiles."""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.core.exceptions import NotFoundError
from crewhours.core.storage import SignatureStorage
from crewhours.profiles.models import Profile
from crewhours.profiles.schemas import ProfileUpdate

logger = logging.getLogger(__name__)


async def get_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile:
    """Return the live profile of *user_id*, creating an empty one if missing."""
    result = await db.execute(
        select(Profile).where(Profile.user_id == user_id, Profile.deleted_at.is_(None))
    )
    profile = result.scalar_one_or_none()
    if profile is None:
        profile = Profile(user_id=user_id)
        db.add(profile)
        await db.commit()
        await db.refresh(profile)
    return profile


async def find_profile(db: AsyncSession, user_id: uuid.UUID) -> Profile | None:
    result = await db.execute(
        select(Profile).where(Profile.user_id == user_id, Profile.deleted_at.is_(None))
    )
    return result.scalar_one_or_none()


async def list_profiles(db: AsyncSession) -> list[Profile]:
    result = await db.execute(
        select(Profile).where(Profile.deleted_at.is_(None)).order_by(Profile.created_at)
    )
    return list(result.scalars().all())


async def update_profile(
    db: AsyncSession, user_id: uuid.UUID, data: ProfileUpdate
) -> Profile:
    profile = await find_profile(db, user_id)
    if profile is None:
        raise NotFoundError("Profile", str(user_id))
    for key, value in data.model_dump(exclude_unset=True).items():
        setattr(profile, key, value)
    await db.commit()
    await db.refresh(profile)
    return profile


async def upload_signature(
    db: AsyncSession,
    user_id: uuid.UUID,
    file_data: bytes,
    extension: str,
    storage: SignatureStorage,
) -> Profile:
    """Store a new signature image, replacing the previous one if it exists."""
    profile = await get_profile(db, user_id)

    if profile.signature_path:
        try:
            await storage.delete(profile.signature_path)
        except OSError:
            logger.warning("Failed to delete old signature at %s", profile.signature_path)

    profile.signature_path = await storage.save(user_id.hex, file_data, extension)
    await db.commit()
    await db.refresh(profile)
    return profile
