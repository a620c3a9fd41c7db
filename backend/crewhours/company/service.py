"""Business logic for the company stamp printed on timesheets."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.company.models import CompanySettings
from crewhours.core.storage import SignatureStorage

logger = logging.getLogger(__name__)

# Storage folder shared by every company-wide upload.
COMPANY_OWNER = "company"


async def get_company_settings(db: AsyncSession) -> CompanySettings | None:
    """Return the singleton settings row, or None if not yet created."""
    result = await db.execute(select(CompanySettings).limit(1))
    return result.scalar_one_or_none()


async def get_or_create_company_settings(db: AsyncSession) -> CompanySettings:
    settings = await get_company_settings(db)
    if settings is None:
        settings = CompanySettings()
        db.add(settings)
        await db.commit()
        await db.refresh(settings)
    return settings


async def upload_signature(
    db: AsyncSession,
    file_data: bytes,
    extension: str,
    storage: SignatureStorage,
    user: User,
) -> CompanySettings:
    """Save a new company stamp, replacing the previous one if it exists."""
    settings = await get_or_create_company_settings(db)

    if settings.signature_path:
        try:
            await storage.delete(settings.signature_path)
        except OSError:
            logger.warning("Failed to delete old company stamp at %s", settings.signature_path)

    settings.signature_path = await storage.save(COMPANY_OWNER, file_data, extension)
    settings.updated_by = user.id
    await db.commit()
    await db.refresh(settings)
    logger.info("Company stamp replaced by %s", user.id)
    return settings


async def delete_signature(
    db: AsyncSession, storage: SignatureStorage, user: User
) -> CompanySettings:
    settings = await get_or_create_company_settings(db)

    if settings.signature_path:
        try:
            await storage.delete(settings.signature_path)
        except OSError:
            logger.warning("Failed to delete company stamp at %s", settings.signature_path)
        settings.signature_path = None
        settings.updated_by = user.id
        await db.commit()
        await db.refresh(settings)

    return settings


async def get_signature_bytes(
    db: AsyncSession, storage: SignatureStorage
) -> tuple[bytes, str] | None:
    """Read the stamp image from storage.

    Returns a (bytes, extension) tuple, or None when no stamp is configured
    or its file has gone missing.
    """
    settings = await get_company_settings(db)
    if not settings or not settings.signature_path:
        return None
    try:
        data = await storage.read(settings.signature_path)
    except FileNotFoundError:
        logger.warning("Company stamp missing at %s", settings.signature_path)
        return None
    return data, storage.extension_of(settings.signature_path)
