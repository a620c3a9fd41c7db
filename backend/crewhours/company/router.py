from typing import Annotated

from fastapi import APIRouter, Depends, File, Response, UploadFile
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.company import service
from crewhours.company.schemas import CompanySettingsResponse
from crewhours.core.exceptions import NotFoundError
from crewhours.core.permissions import Capability
from crewhours.core.storage import SignatureStorage
from crewhours.dependencies import get_current_user, get_db, get_storage, require_capability

router = APIRouter()

EXTENSION_CONTENT_TYPES: dict[str, str] = {
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
}


@router.get("")
async def get_settings(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(get_current_user)],
) -> dict:
    settings = await service.get_or_create_company_settings(db)
    return {"data": CompanySettingsResponse.model_validate(settings)}


@router.post("/signature", status_code=201)
async def upload_signature(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_capability(Capability.MANAGE_COMPANY))],
    storage: Annotated[SignatureStorage, Depends(get_storage)],
    file: UploadFile = File(...),
) -> dict:
    """Upload the client stamp placed under the timesheet signature line."""
    file_data = await file.read()
    extension = storage.validate(file.filename, file_data)
    settings = await service.upload_signature(db, file_data, extension, storage, current_user)
    return {"data": CompanySettingsResponse.model_validate(settings)}


@router.delete("/signature")
async def delete_signature(
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_capability(Capability.MANAGE_COMPANY))],
    storage: Annotated[SignatureStorage, Depends(get_storage)],
) -> dict:
    settings = await service.delete_signature(db, storage, current_user)
    return {"data": CompanySettingsResponse.model_validate(settings)}


@router.get("/signature")
async def get_signature(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(get_current_user)],
    storage: Annotated[SignatureStorage, Depends(get_storage)],
) -> Response:
    result = await service.get_signature_bytes(db, storage)
    if result is None:
        raise NotFoundError("Company stamp", "current")
    data, extension = result
    return Response(
        content=data,
        media_type=EXTENSION_CONTENT_TYPES.get(extension, "application/octet-stream"),
    )
