import io
from datetime import date, timedelta

import pytest
from openpyxl import load_workbook

from crewhours.closings import service as closings
from crewhours.export.service import sheet_title
from crewhours.records.models import RecordStatus

KW42_MONDAY = date(2025, 10, 13)
TIMESHEET = {"calendar_week": 42, "year": 2025}


def test_sheet_title_is_cleaned_and_unique():
    taken: set[str] = set()
    assert sheet_title("Jan Novak", taken) == "Jan Novak"
    assert sheet_title("Jan Novak", taken) == "Jan Novak (2)"
    assert sheet_title("A/B: C?", taken) == "AB C"
    assert len(sheet_title("x" * 40, taken)) == 31


@pytest.mark.asyncio
async def test_project_timesheet_has_one_sheet_per_worker(
    client, worker, admin, manager, project, make_record, auth
):
    await make_record(worker, KW42_MONDAY, status=RecordStatus.APPROVED)
    await make_record(worker, KW42_MONDAY + timedelta(days=1), status=RecordStatus.APPROVED)
    await make_record(admin, KW42_MONDAY, hours=6.0, status=RecordStatus.APPROVED)
    await make_record(admin, KW42_MONDAY + timedelta(days=2))

    response = await client.get(
        "/api/export/timesheet",
        params={"project_id": str(project.id), **TIMESHEET},
        headers=auth(manager),
    )
    assert response.status_code == 200
    assert "Timesheet KW42 2025 Bridge Linz.xlsx" in response.headers["content-disposition"]

    workbook = load_workbook(io.BytesIO(response.content))
    assert workbook.sheetnames == ["Adam Admin", "Jan Novak"]

    sheet = workbook["Jan Novak"]
    assert sheet["A1"].value == "Jan Novak"
    assert sheet["A5"].value == "13.10.2025"
    assert sheet["B5"].value == "Po"
    assert sheet["H7"].value == 16.0

    # Drafts are not exported.
    assert workbook["Adam Admin"]["H6"].value == 6.0


@pytest.mark.asyncio
async def test_timesheet_without_approved_hours(client, manager, project, auth):
    response = await client.get(
        "/api/export/timesheet",
        params={"project_id": str(project.id), **TIMESHEET},
        headers=auth(manager),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_monter_cannot_export_project_timesheet(client, worker, project, auth):
    response = await client.get(
        "/api/export/timesheet",
        params={"project_id": str(project.id), **TIMESHEET},
        headers=auth(worker),
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_worker_exports_own_closing(client, db, worker, make_record, auth):
    await make_record(worker, KW42_MONDAY)
    closing = await closings.submit_week(db, worker, 42, 2025)

    response = await client.get(
        f"/api/export/closings/{closing.id}/timesheet", headers=auth(worker)
    )
    assert response.status_code == 200
    workbook = load_workbook(io.BytesIO(response.content))
    assert workbook.sheetnames == ["Jan Novak"]
    assert workbook.active["H5"].value == 8.0


@pytest.mark.asyncio
async def test_backup_contains_live_rows(client, admin, worker, project, make_record, auth):
    await make_record(worker, KW42_MONDAY)

    response = await client.get("/api/export/backup", headers=auth(admin))
    assert response.status_code == 200
    backup = response.json()
    assert backup["version"] == "1.0"
    assert set(backup["data"]) == {
        "profiles",
        "projects",
        "performance_records",
        "invoices",
        "accommodations",
        "accommodation_assignments",
    }
    assert len(backup["data"]["profiles"]) == 2
    assert backup["data"]["projects"][0]["name"] == "Bridge Linz"
    assert backup["data"]["performance_records"][0]["total_hours"] == 8.0


@pytest.mark.asyncio
async def test_backup_requires_admin(client, accountant, auth):
    response = await client.get("/api/export/backup", headers=auth(accountant))
    assert response.status_code == 403
