import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.core.permissions import Capability
from crewhours.core.storage import SignatureStorage
from crewhours.dependencies import get_current_user, get_db, get_storage, require_capability
from crewhours.profiles import service
from crewhours.profiles.schemas import ProfileAdminUpdate, ProfileResponse, ProfileUpdate

router = APIRouter()


@router.get("/me")
async def get_my_profile(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    profile = await service.get_profile(db, current_user.id)
    return {"data": ProfileResponse.model_validate(profile)}


@router.put("/me")
async def update_my_profile(
    data: ProfileUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    await service.get_profile(db, current_user.id)
    profile = await service.update_profile(db, current_user.id, data)
    return {"data": ProfileResponse.model_validate(profile)}


@router.post("/me/signature", status_code=201)
async def upload_my_signature(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    storage: Annotated[SignatureStorage, Depends(get_storage)],
    file: UploadFile = File(...),
) -> dict:
    """Upload the PNG or JPEG signature printed on generated invoices."""
    file_data = await file.read()
    extension = storage.validate(file.filename, file_data)
    profile = await service.upload_signature(db, current_user.id, file_data, extension, storage)
    return {"data": ProfileResponse.model_validate(profile)}


@router.get("")
async def list_profiles(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.VIEW_ALL_RECORDS))],
) -> dict:
    profiles = await service.list_profiles(db)
    return {"data": [ProfileResponse.model_validate(p) for p in profiles]}


@router.put("/{user_id}")
async def update_profile(
    user_id: uuid.UUID,
    data: ProfileAdminUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.MANAGE_USERS))],
) -> dict:
    """Update any subcontractor's profile, including the hourly rate."""
    profile = await service.update_profile(db, user_id, data)
    return {"data": ProfileResponse.model_validate(profile)}
