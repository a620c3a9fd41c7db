import pytest


@pytest.mark.asyncio
async def test_admin_issues_sanction_visible_to_worker(client, worker, manager, admin, auth):
    response = await client.post(
        "/api/sanctions",
        json={"user_id": str(worker.id), "reason": "No helmet on site", "amount": 50},
        headers=auth(admin),
    )
    assert response.status_code == 201
    sanction = response.json()["data"]
    assert sanction["admin_id"] == str(admin.id)
    assert sanction["sanction_date"] is not None

    response = await client.get("/api/sanctions", headers=auth(worker))
    assert [s["reason"] for s in response.json()["data"]] == ["No helmet on site"]

    response = await client.get("/api/sanctions", headers=auth(manager))
    assert response.json()["data"] == []


@pytest.mark.asyncio
async def test_sanction_needs_amount_or_hours(client, worker, admin, auth):
    response = await client.post(
        "/api/sanctions",
        json={"user_id": str(worker.id), "reason": "Late"},
        headers=auth(admin),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_worker_cannot_issue_sanctions(client, worker, auth):
    response = await client.post(
        "/api/sanctions",
        json={"user_id": str(worker.id), "reason": "Late", "hours_deducted": 1},
        headers=auth(worker),
    )
    assert response.status_code == 403
