import logging
import uuid
from datetime import date
from typing import Annotated
from urllib.parse import quote

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.ext.asyncio import AsyncSession

from crewhours.auth.models import User
from crewhours.config import Settings
from crewhours.core.pagination import PaginationParams, get_pagination
from crewhours.core.permissions import Capability
from crewhours.core.storage import SignatureStorage
from crewhours.dependencies import (
    get_current_user,
    get_db,
    get_settings,
    get_storage,
    require_capability,
)
from crewhours.invoicing import service
from crewhours.invoicing.models import Invoice, InvoiceStatus
from crewhours.invoicing.pdf import generate_invoice_pdf, invoice_filename
from crewhours.invoicing.schemas import (
    InvoiceFilter,
    InvoiceGenerate,
    InvoiceResponse,
    InvoiceStatusUpdate,
    InvoiceUpdate,
)
from crewhours.profiles.service import find_profile

logger = logging.getLogger(__name__)

router = APIRouter()


def _response(invoice: Invoice, settings: Settings) -> InvoiceResponse:
    response = InvoiceResponse.model_validate(invoice)
    status = service.effective_status(invoice, date.today(), settings.due_soon_days)
    return response.model_copy(update={"status": status})


@router.post("/from-closing/{closing_id}", status_code=201)
async def generate_invoice(
    closing_id: uuid.UUID,
    data: InvoiceGenerate,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    invoice = await service.generate_from_closing(db, closing_id, data, current_user, settings)
    return {"data": _response(invoice, settings)}


@router.get("")
async def list_invoices(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    current_user: Annotated[User, Depends(get_current_user)],
    pagination: Annotated[PaginationParams, Depends(get_pagination)],
    user_id: uuid.UUID | None = Query(None),
    status: InvoiceStatus | None = Query(None),
    year: int | None = Query(None),
) -> dict:
    filters = InvoiceFilter(user_id=user_id, status=status, year=year)
    invoices, meta = await service.list_invoices(db, filters, pagination, current_user)
    return {"data": [_response(inv, settings) for inv in invoices], "meta": meta}


@router.get("/stats")
async def invoice_stats(
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    stats = await service.get_invoice_stats(
        db, current_user, due_soon_days=settings.due_soon_days
    )
    return {"data": stats}


@router.get("/{invoice_id}")
async def get_invoice(
    invoice_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> dict:
    invoice = await service.get_invoice(db, invoice_id, current_user)
    return {"data": _response(invoice, settings)}


@router.patch("/{invoice_id}/status")
async def update_status(
    invoice_id: uuid.UUID,
    data: InvoiceStatusUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    current_user: Annotated[User, Depends(require_capability(Capability.MANAGE_INVOICES))],
) -> dict:
    invoice = await service.update_status(db, invoice_id, data.status, current_user, settings)
    return {"data": _response(invoice, settings)}


@router.patch("/{invoice_id}")
async def update_invoice(
    invoice_id: uuid.UUID,
    data: InvoiceUpdate,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    current_user: Annotated[User, Depends(require_capability(Capability.MANAGE_INVOICES))],
) -> dict:
    invoice = await service.update_invoice(db, invoice_id, data, current_user)
    return {"data": _response(invoice, settings)}


@router.post("/{invoice_id}/lock")
async def lock_invoice(
    invoice_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    current_user: Annotated[User, Depends(require_capability(Capability.MANAGE_INVOICES))],
) -> dict:
    invoice = await service.lock_invoice(db, invoice_id, current_user)
    return {"data": _response(invoice, settings)}


@router.get("/{invoice_id}/pdf")
async def get_invoice_pdf(
    invoice_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    settings: Annotated[Settings, Depends(get_settings)],
    storage: Annotated[SignatureStorage, Depends(get_storage)],
    current_user: Annotated[User, Depends(get_current_user)],
) -> Response:
    invoice = await service.get_invoice(db, invoice_id, current_user)
    profile = await find_profile(db, invoice.user_id)

    signature = None
    if profile and profile.signature_path:
        try:
            signature = await storage.read(profile.signature_path)
        except FileNotFoundError:
            logger.warning("Signature %s of user %s is missing", profile.signature_path, invoice.user_id)

    pdf_bytes = generate_invoice_pdf(invoice, profile, settings, signature)
    supplier_name = profile.full_name if profile else invoice.user.full_name
    filename = invoice_filename(
        invoice, supplier_name, invoice.project.name if invoice.project else ""
    )
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={
            "Content-Disposition": (
                f"attachment; filename=\"{filename.encode('ascii', 'ignore').decode()}\"; "
                f"filename*=UTF-8''{quote(filename)}"
            )
        },
    )


@router.delete("/{invoice_id}")
async def delete_invoice(
    invoice_id: uuid.UUID,
    db: Annotated[AsyncSession, Depends(get_db)],
    current_user: Annotated[User, Depends(require_capability(Capability.MANAGE_INVOICES))],
) -> dict:
    await service.delete_invoice(db, invoice_id, current_user)
    return {"data": {"message": "Invoice deleted"}}
