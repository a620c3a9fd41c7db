import uuid
from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse, Response
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.closings.service import get_visible_closing
from crewhours.company.service import get_signature_bytes
from crewhours.core.permissions import Capability
from crewhours.core.storage import SignatureStorage
from crewhours.core.timeutils import utcnow
from crewhours.dependencies import get_current_user, get_db, get_storage, require_capability

from . import service

router = APIRouter()

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _attachment(filename: str) -> dict:
    ascii_name = filename.encode("ascii", "ignore").decode()
    return {
        "Content-Disposition": (
            f"attachment; filename=\"{ascii_name}\"; filename*=UTF-8''{quote(filename)}"
        )
    }


async def _company_stamp(db: AsyncSession, storage: SignatureStorage) -> bytes | None:
    result = await get_signature_bytes(db, storage)
    return result[0] if result else None


@router.get("/timesheet")
async def export_project_timesheet(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.VIEW_ALL_RECORDS))],
    storage: Annotated[SignatureStorage, Depends(get_storage)],
    project_id: uuid.UUID = Query(...),
    calendar_week: int = Query(..., ge=1, le=53),
    year: int = Query(..., ge=2000, le=2100),
) -> Response:
    content, filename = await service.export_project_timesheet(
        db, project_id, calendar_week, year, await _company_stamp(db, storage)
    )
    return Response(content=content, media_type=XLSX_MEDIA_TYPE, headers=_attachment(filename))


@router.get("/closings/{closing_id}/timesheet")
async def export_closing_timesheet(
    closing_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(get_current_user)],
    storage: Annotated[SignatureStorage, Depends(get_storage)],
) -> Response:
    closing = await get_visible_closing(db, closing_id, current_user)
    content, filename = await service.export_closing_timesheet(
        db, closing, await _company_stamp(db, storage)
    )
    return Response(content=content, media_type=XLSX_MEDIA_TYPE, headers=_attachment(filename))


@router.get("/backup")
async def export_backup(
    db: Annotated[AsyncSession, Depends(get_db)],
    _: Annotated[User, Depends(require_capability(Capability.EXPORT_BACKUP))],
) -> JSONResponse:
    backup = await service.export_backup(db)
    filename = f"crewhours-backup-{utcnow():%Y-%m-%d}.json"
    return JSONResponse(content=backup, headers=_attachment(filename))
