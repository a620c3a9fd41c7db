from datetime import date

import pytest

from crewhours.accommodations.service import stay_cost
from crewhours.core.exceptions import ValidationError


def test_stay_cost():
    assert stay_cost(date(2025, 10, 13), date(2025, 10, 18), 25.5) == 127.5
    assert stay_cost(date(2025, 10, 13), None, 25.5) is None
    assert stay_cost(date(2025, 10, 13), date(2025, 10, 13), 25.5) == 0.0


def test_check_out_before_check_in():
    with pytest.raises(ValidationError):
        stay_cost(date(2025, 10, 13), date(2025, 10, 12), 25.0)


@pytest.mark.asyncio
async def test_assignment_lifecycle(client, worker, admin, project, auth):
    headers = auth(admin)
    response = await client.post(
        "/api/accommodations",
        json={"name": "Pension Donau", "address": "Hafenstrasse 3, Linz", "default_price_per_night": 30},
        headers=headers,
    )
    assert response.status_code == 201
    accommodation_id = response.json()["data"]["id"]

    response = await client.post(
        "/api/accommodations/assignments",
        json={
            "accommodation_id": accommodation_id,
            "user_id": str(worker.id),
            "project_id": str(project.id),
            "check_in": "2025-10-12",
        },
        headers=headers,
    )
    assert response.status_code == 201
    assignment = response.json()["data"]
    assert assignment["price_per_night"] == 30.0
    assert assignment["total_cost"] is None

    response = await client.post(
        f"/api/accommodations/assignments/{assignment['id']}/check-out",
        json={"check_out": "2025-10-17"},
        headers=headers,
    )
    assert response.json()["data"]["total_cost"] == 150.0


@pytest.mark.asyncio
async def test_accommodations_need_admin(client, manager, auth):
    response = await client.get("/api/accommodations", headers=auth(manager))
    assert response.status_code == 403
