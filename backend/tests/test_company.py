import io
from datetime import date
from pathlib import Path

import pytest
from openpyxl import load_workbook
from PIL import Image

from crewhours.closings import service as closings
from crewhours.export.service import STAMP_LABEL

KW42_MONDAY = date(2025, 10, 13)


def stamp_png() -> bytes:
    output = io.BytesIO()
    Image.new("RGB", (300, 160), "navy").save(output, format="PNG")
    return output.getvalue()


async def upload_stamp(client, headers, content=None):
    return await client.post(
        "/api/company/signature",
        files={"file": ("stamp.png", content or stamp_png(), "image/png")},
        headers=headers,
    )


@pytest.mark.asyncio
async def test_admin_uploads_and_replaces_stamp(client, admin, auth, settings):
    response = await upload_stamp(client, auth(admin))
    assert response.status_code == 201
    first = response.json()["data"]
    assert first["signature_path"].startswith("company/")
    assert first["updated_by"] == str(admin.id)

    response = await upload_stamp(client, auth(admin))
    second = response.json()["data"]
    assert second["id"] == first["id"]
    assert second["signature_path"] != first["signature_path"]

    assert len(list((Path(settings.storage_path) / "company").iterdir())) == 1

    response = await client.get("/api/company/signature", headers=auth(admin))
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/png"
    assert response.content.startswith(b"\x89PNG")


@pytest.mark.asyncio
async def test_only_admins_manage_the_stamp(client, manager, accountant, auth):
    for user in (manager, accountant):
        response = await upload_stamp(client, auth(user))
        assert response.status_code == 403
        response = await client.delete("/api/company/signature", headers=auth(user))
        assert response.status_code == 403


@pytest.mark.asyncio
async def test_stamp_upload_rejects_non_images(client, admin, auth):
    response = await client.post(
        "/api/company/signature",
        files={"file": ("stamp.png", b"not an image", "image/png")},
        headers=auth(admin),
    )
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_delete_stamp(client, admin, worker, auth):
    await upload_stamp(client, auth(admin))

    response = await client.delete("/api/company/signature", headers=auth(admin))
    assert response.status_code == 200
    assert response.json()["data"]["signature_path"] is None

    response = await client.get("/api/company/signature", headers=auth(worker))
    assert response.status_code == 404

    response = await client.get("/api/company", headers=auth(worker))
    assert response.status_code == 200
    assert response.json()["data"]["signature_path"] is None


@pytest.mark.asyncio
async def test_timesheet_embeds_company_stamp(client, db, admin, worker, make_record, auth):
    await make_record(worker, KW42_MONDAY)
    closing = await closings.submit_week(db, worker, 42, 2025)

    response = await client.get(f"/api/export/closings/{closing.id}/timesheet", headers=auth(worker))
    sheet = load_workbook(io.BytesIO(response.content)).active
    # Record on row 5, total on row 6, signature line three rows below.
    assert sheet["A9"].value == STAMP_LABEL
    assert len(sheet._images) == 0

    await upload_stamp(client, auth(admin))
    response = await client.get(f"/api/export/closings/{closing.id}/timesheet", headers=auth(worker))
    assert response.status_code == 200
    sheet = load_workbook(io.BytesIO(response.content)).active
    assert sheet["A9"].value == STAMP_LABEL
    assert len(sheet._images) == 1
    anchor = sheet._images[0].anchor
    assert (anchor._from.col, anchor._from.row) == (0, 9)
    # 150 x 80 px in EMU.
    assert (anchor.ext.cx, anchor.ext.cy) == (150 * 9525, 80 * 9525)
