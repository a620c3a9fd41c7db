import uuid

import pytest


@pytest.mark.asyncio
async def test_project_crud(client, admin, worker, auth):
    response = await client.post(
        "/api/projects",
        json={"name": "Hall Graz", "client": "TKJD", "standard_hours": 8},
        headers=auth(admin),
    )
    assert response.status_code == 201
    project_id = response.json()["data"]["id"]

    response = await client.put(
        f"/api/projects/{project_id}", json={"location": "Graz"}, headers=auth(admin)
    )
    assert response.json()["data"]["location"] == "Graz"

    response = await client.post(
        "/api/projects", json={"name": "X", "client": "Y"}, headers=auth(worker)
    )
    assert response.status_code == 403

    response = await client.delete(f"/api/projects/{project_id}", headers=auth(admin))
    assert response.status_code == 200
    response = await client.get(f"/api/projects/{project_id}", headers=auth(worker))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_assign_and_remove_worker(client, admin, manager, worker, project, auth):
    response = await client.post(
        f"/api/projects/{project.id}/assignments",
        json={"user_id": str(worker.id)},
        headers=auth(admin),
    )
    assert response.status_code == 201
    assignment = response.json()["data"]
    assert assignment["user_id"] == str(worker.id)
    assert assignment["full_name"] == "Jan Novak"

    response = await client.get(f"/api/projects/{project.id}/assignments", headers=auth(manager))
    assert [a["id"] for a in response.json()["data"]] == [assignment["id"]]

    response = await client.get("/api/projects/assigned", headers=auth(worker))
    assert [p["name"] for p in response.json()["data"]] == ["Bridge Linz"]

    response = await client.delete(
        f"/api/projects/{project.id}/assignments/{assignment['id']}", headers=auth(admin)
    )
    assert response.status_code == 200
    response = await client.get("/api/projects/assigned", headers=auth(worker))
    assert response.json()["data"] == []


@pytest.mark.asyncio
async def test_duplicate_assignment_conflicts(client, admin, worker, project, auth):
    payload = {"user_id": str(worker.id)}
    first = await client.post(
        f"/api/projects/{project.id}/assignments", json=payload, headers=auth(admin)
    )
    assert first.status_code == 201

    response = await client.post(
        f"/api/projects/{project.id}/assignments", json=payload, headers=auth(admin)
    )
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "CONFLICT"


@pytest.mark.asyncio
async def test_assignment_requires_known_user_and_project(client, admin, worker, project, auth):
    response = await client.post(
        f"/api/projects/{project.id}/assignments",
        json={"user_id": str(uuid.uuid4())},
        headers=auth(admin),
    )
    assert response.status_code == 404

    response = await client.post(
        f"/api/projects/{uuid.uuid4()}/assignments",
        json={"user_id": str(worker.id)},
        headers=auth(admin),
    )
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_workers_cannot_manage_assignments(client, manager, worker, project, auth):
    response = await client.post(
        f"/api/projects/{project.id}/assignments",
        json={"user_id": str(worker.id)},
        headers=auth(manager),
    )
    assert response.status_code == 403

    response = await client.get(f"/api/projects/{project.id}/assignments", headers=auth(worker))
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_assigned_projects_skip_inactive(client, admin, worker, project, auth):
    await client.post(
        f"/api/projects/{project.id}/assignments",
        json={"user_id": str(worker.id)},
        headers=auth(admin),
    )
    await client.put(f"/api/projects/{project.id}", json={"is_active": False}, headers=auth(admin))

    response = await client.get("/api/projects/assigned", headers=auth(worker))
    assert response.json()["data"] == []
