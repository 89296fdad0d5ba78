import uuid

import pytest
import requests

from tests.test_config import BASE_URL, auth_headers, get_user_id


pytestmark = pytest.mark.skipif(not BASE_URL, reason="GEARGUARD_BASE_URL is not set")

ADMIN = auth_headers("admin") if BASE_URL else {}
MANAGER = auth_headers("manager") if BASE_URL else {}
TECHNICIAN = auth_headers("technician") if BASE_URL else {}
USER = auth_headers("user") if BASE_URL else {}


def create_team():
    response = requests.post(
        f"{BASE_URL}/api/teams",
        headers=ADMIN,
        json={"name": f"Smoke team {uuid.uuid4().hex[:6]}", "memberIds": [get_user_id("technician")]},
    )
    assert response.status_code == 201, f"Team create failed: {response.text}"
    return response.json()["id"]


def create_equipment(team_id):
    response = requests.post(
        f"{BASE_URL}/api/equipment",
        headers=ADMIN,
        json={
            "name": "Smoke press",
            "serialNumber": f"SN-{uuid.uuid4().hex[:8]}",
            "maintenanceTeamId": team_id,
            "location": "Hall A",
        },
    )
    assert response.status_code == 201, f"Equipment create failed: {response.text}"
    return response.json()["id"]


def create_request(equipment_id, **extra):
    payload = {
        "subject": "Oil Change",
        "type": "Preventive",
        "equipmentId": equipment_id,
        "scheduledDate": "2024-01-01",
    }
    payload.update(extra)
    return requests.post(f"{BASE_URL}/api/requests", headers=USER, json=payload)


def get_request(request_id):
    response = requests.get(f"{BASE_URL}/api/requests", headers=USER, params={"id": request_id})
    assert response.status_code == 200, response.text
    return response.json()


def test_health():
    response = requests.get(f"{BASE_URL}/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_missing_token_is_rejected():
    response = requests.get(f"{BASE_URL}/api/requests")
    assert response.status_code in (401, 403)


def test_preventive_request_requires_scheduled_date():
    equipment_id = create_equipment(create_team())

    response = create_request(equipment_id, scheduledDate=None)

    assert response.status_code == 400
    assert "error" in response.json()


def test_request_lifecycle_end_to_end():
    team_id = create_team()
    equipment_id = create_equipment(team_id)

    response = create_request(equipment_id)
    assert response.status_code == 201, response.text
    created = response.json()
    request_id = created["id"]
    assert created["stage"] == "New"
    assert created["teamId"] == team_id

    assert get_request(request_id)["isOverdue"] is True

    response = requests.post(
        f"{BASE_URL}/api/requests/{request_id}/assign",
        headers=MANAGER,
        json={"userId": get_user_id("technician")},
    )
    assert response.status_code == 200, response.text

    response = requests.post(
        f"{BASE_URL}/api/requests/{request_id}/stage", headers=TECHNICIAN, json={"stage": "In Progress"}
    )
    assert response.status_code == 200, response.text
    assert response.json()["acceptedAt"] is not None

    response = requests.post(
        f"{BASE_URL}/api/tracking-logs",
        headers=TECHNICIAN,
        json={"requestId": request_id, "description": "Drained the old oil"},
    )
    assert response.status_code == 201, response.text

    response = requests.post(
        f"{BASE_URL}/api/requests/{request_id}/stage", headers=TECHNICIAN, json={"stage": "Repaired"}
    )
    assert response.status_code == 200, response.text
    assert get_request(request_id)["isOverdue"] is False

    response = requests.post(
        f"{BASE_URL}/api/requests/{request_id}/stage", headers=MANAGER, json={"stage": "New"}
    )
    assert response.status_code == 400

    history = requests.get(
        f"{BASE_URL}/api/equipment-history", headers=USER, params={"equipmentId": equipment_id}
    ).json()
    assert history["totalMaintenanceCount"] == 1
    assert len(history["trackingLogs"]) == 1

    response = requests.delete(f"{BASE_URL}/api/requests", headers=ADMIN, params={"id": request_id})
    assert response.status_code == 200
    response = requests.delete(f"{BASE_URL}/api/requests", headers=ADMIN, params={"id": request_id})
    assert response.status_code == 404


def test_scrap_cascade():
    equipment_id = create_equipment(create_team())
    first = create_request(equipment_id).json()
    second = create_request(equipment_id).json()

    response = requests.post(
        f"{BASE_URL}/api/requests/{first['id']}/stage", headers=MANAGER, json={"stage": "Scrap"}
    )
    assert response.status_code == 200, response.text

    equipment = requests.get(f"{BASE_URL}/api/equipment", headers=USER, params={"id": equipment_id}).json()
    assert equipment["status"] == "Scrapped"
    assert equipment["scrapDate"] is not None
    assert get_request(second["id"])["stage"] == "Scrap"
