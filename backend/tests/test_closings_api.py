from datetime import date, datetime, time, timedelta, timezone

import pytest

from crewhours.closings import service
from crewhours.closings.workflow import ClosingAction
from crewhours.core.exceptions import ConflictError, InvalidTransitionError, ValidationError
from crewhours.records.models import RecordStatus

KW42_MONDAY = date(2025, 10, 13)
KW42 = {"calendar_week": 42, "year": 2025}


async def submit(client, headers, week=KW42):
    return await client.post("/api/closings/submit", json=week, headers=headers)


async def record_statuses(client, headers):
    response = await client.get("/api/records", headers=headers)
    return {r["date"]: r["status"] for r in response.json()["data"]}


@pytest.mark.asyncio
async def test_submit_approve_undo_cycle(client, worker, manager, make_record, auth):
    await make_record(worker, KW42_MONDAY)
    await make_record(worker, KW42_MONDAY + timedelta(days=1), hours=7.5)
    worker_headers, manager_headers = auth(worker), auth(manager)

    response = await submit(client, worker_headers)
    assert response.status_code == 200
    closing = response.json()["data"]
    assert closing["status"] == "submitted"
    assert closing["submitted_at"] is not None

    response = await client.get(f"/api/closings/{closing['id']}", headers=manager_headers)
    detail = response.json()["data"]
    assert detail["total_hours"] == 15.5
    assert detail["full_name"] == "Jan Novak"
    assert len(detail["records"]) == 2

    response = await client.post(f"/api/closings/{closing['id']}/approve", headers=manager_headers)
    assert response.status_code == 200
    approved = response.json()["data"]
    assert approved["status"] == "approved"
    assert approved["approved_at"] is not None
    assert approved["approved_by"] == str(manager.id)
    assert set((await record_statuses(client, worker_headers)).values()) == {"approved"}

    response = await client.post(
        f"/api/closings/{closing['id']}/undo-approval", headers=manager_headers
    )
    assert response.status_code == 200
    undone = response.json()["data"]
    assert undone["status"] == "submitted"
    assert undone["approved_at"] is None
    assert undone["approved_by"] is None
    assert set((await record_statuses(client, worker_headers)).values()) == {"submitted"}

    # The round trip leaves the hours exactly as they were logged.
    response = await client.get("/api/records", headers=worker_headers)
    assert {r["date"]: r["total_hours"] for r in response.json()["data"]} == {
        "2025-10-13": 8.0,
        "2025-10-14": 7.5,
    }
    response = await client.get(f"/api/closings/{closing['id']}", headers=manager_headers)
    assert response.json()["data"]["total_hours"] == 15.5


@pytest.mark.asyncio
async def test_return_edit_and_resubmit(client, worker, manager, make_record, auth):
    record = await make_record(worker, KW42_MONDAY)
    worker_headers, manager_headers = auth(worker), auth(manager)
    closing_id = (await submit(client, worker_headers)).json()["data"]["id"]

    response = await client.post(
        f"/api/closings/{closing_id}/return",
        json={"comment": "missing break times"},
        headers=manager_headers,
    )
    assert response.status_code == 200
    returned = response.json()["data"]
    assert returned["status"] == "returned"
    assert returned["return_comment"] == "missing break times"

    response = await client.put(
        f"/api/records/{record.id}",
        json={"break_start": "12:00", "break_end": "12:30", "time_to": "16:00"},
        headers=worker_headers,
    )
    assert response.status_code == 200
    assert response.json()["data"]["total_hours"] == 8.5
    assert response.json()["data"]["status"] == "returned"

    response = await submit(client, worker_headers)
    assert response.status_code == 200
    resubmitted = response.json()["data"]
    assert resubmitted["id"] == closing_id
    assert resubmitted["status"] == "submitted"
    assert resubmitted["return_comment"] == "missing break times"

    response = await client.get(f"/api/closings/{closing_id}", headers=worker_headers)
    assert response.json()["data"]["total_hours"] == 8.5


@pytest.mark.asyncio
async def test_return_requires_comment(client, worker, manager, make_record, auth):
    await make_record(worker, KW42_MONDAY)
    closing_id = (await submit(client, auth(worker))).json()["data"]["id"]
    response = await client.post(
        f"/api/closings/{closing_id}/return", json={"comment": "   "}, headers=auth(manager)
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_records_outside_the_week_are_untouched(client, worker, make_record, auth):
    await make_record(worker, KW42_MONDAY)
    await make_record(worker, date(2025, 10, 20))
    await make_record(worker, date(2025, 10, 12))

    await submit(client, auth(worker))
    statuses = await record_statuses(client, auth(worker))
    assert statuses == {
        "2025-10-13": "submitted",
        "2025-10-20": "draft",
        "2025-10-12": "draft",
    }


@pytest.mark.asyncio
async def test_week_one_spans_new_year(client, worker, make_record, auth):
    await make_record(worker, date(2024, 12, 30))
    response = await submit(client, auth(worker), {"calendar_week": 1, "year": 2025})
    assert response.status_code == 200
    assert (await record_statuses(client, auth(worker)))["2024-12-30"] == "submitted"


@pytest.mark.asyncio
async def test_submit_without_records(client, worker, auth):
    response = await submit(client, auth(worker))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_submit_twice_is_rejected(client, worker, make_record, auth):
    await make_record(worker, KW42_MONDAY)
    await submit(client, auth(worker))
    response = await submit(client, auth(worker))
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "INVALID_TRANSITION"
    assert response.json()["error"]["details"] == {"current": "submitted", "action": "submit"}


@pytest.mark.asyncio
async def test_monter_cannot_approve(client, worker, make_record, auth):
    await make_record(worker, KW42_MONDAY)
    closing_id = (await submit(client, auth(worker))).json()["data"]["id"]
    response = await client.post(f"/api/closings/{closing_id}/approve", headers=auth(worker))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_lock_requires_admin_and_is_final(client, worker, manager, admin, make_record, auth):
    await make_record(worker, KW42_MONDAY)
    closing_id = (await submit(client, auth(worker))).json()["data"]["id"]
    await client.post(f"/api/closings/{closing_id}/approve", headers=auth(manager))

    response = await client.post(f"/api/closings/{closing_id}/lock", headers=auth(manager))
    assert response.status_code == 403

    response = await client.post(f"/api/closings/{closing_id}/lock", headers=auth(admin))
    assert response.status_code == 200
    assert response.json()["data"]["status"] == "locked"

    response = await client.post(
        f"/api/closings/{closing_id}/undo-approval", headers=auth(admin)
    )
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_weeks_overview(client, worker, make_record, auth):
    await make_record(worker, KW42_MONDAY)
    await make_record(worker, KW42_MONDAY + timedelta(days=2), end=time(16, 0), hours=9.0)
    await make_record(worker, date(2025, 10, 20))
    await submit(client, auth(worker))

    response = await client.get("/api/closings/weeks", headers=auth(worker))
    weeks = response.json()["data"]
    assert [(w["calendar_week"], w["year"]) for w in weeks] == [(43, 2025), (42, 2025)]
    assert weeks[0]["status"] == "open"
    assert weeks[0]["closing_id"] is None
    assert weeks[0]["can_submit"] is True
    assert weeks[1]["status"] == "submitted"
    assert weeks[1]["total_hours"] == 17.0
    assert weeks[1]["can_submit"] is False


@pytest.mark.asyncio
async def test_closing_visibility_follows_role(client, worker, accountant, make_record, auth):
    await make_record(worker, KW42_MONDAY)
    closing_id = (await submit(client, auth(worker))).json()["data"]["id"]
    response = await client.get(f"/api/closings/{closing_id}", headers=auth(accountant))
    assert response.status_code == 200

    response = await client.get("/api/closings", headers=auth(worker))
    assert response.json()["meta"]["total_count"] == 1


# ── Service level: grace window and concurrent changes ───────────────────────

APPROVED_AT = datetime(2025, 10, 20, 9, 0, tzinfo=timezone.utc)


async def approved_closing(db, worker, manager, make_record):
    await make_record(worker, KW42_MONDAY)
    closing = await service.submit_week(db, worker, 42, 2025)
    return await service.approve_closing(db, closing.id, manager, now=APPROVED_AT)


@pytest.mark.asyncio
async def test_undo_inside_grace(db, worker, manager, make_record):
    closing = await approved_closing(db, worker, manager, make_record)
    now = APPROVED_AT + timedelta(minutes=4, seconds=59)

    closing = await service.undo_approval(db, closing.id, manager, now=now)
    assert closing.status.value == "submitted"
    records = await service.week_records(db, worker.id, 42, 2025)
    assert {r.status for r in records} == {RecordStatus.SUBMITTED}


@pytest.mark.asyncio
async def test_undo_after_grace_is_refused(db, worker, manager, make_record):
    closing = await approved_closing(db, worker, manager, make_record)
    now = APPROVED_AT + timedelta(minutes=5, seconds=1)

    with pytest.raises(InvalidTransitionError):
        await service.undo_approval(db, closing.id, manager, now=now)

    closing = await service.get_closing(db, closing.id)
    assert closing.status.value == "approved"
    records = await service.week_records(db, worker.id, 42, 2025)
    assert {r.status for r in records} == {RecordStatus.APPROVED}


@pytest.mark.asyncio
async def test_stale_closing_cannot_be_transitioned(db, session_factory, worker, manager, make_record):
    await make_record(worker, KW42_MONDAY)
    closing = await service.submit_week(db, worker, 42, 2025)
    closing_id = closing.id

    async with session_factory() as other:
        await service.return_closing(other, closing_id, manager, "wrong project")

    # `closing` still believes it is submitted.
    with pytest.raises(ConflictError):
        await service._apply_transition(
            db, closing, ClosingAction.APPROVE, {"approved_by": manager.id}, manager
        )

    closing = await service.get_closing(db, closing_id)
    assert closing.status.value == "returned"


@pytest.mark.asyncio
async def test_submit_rejects_unknown_week(db, worker):
    with pytest.raises(ValidationError):
        await service.submit_week(db, worker, 53, 2025)
