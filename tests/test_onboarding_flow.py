from datetime import timedelta

from fastapi.testclient import TestClient

from main import app
from onboardpro.config import Settings
from onboardpro.models import EmployeeTask, User
from tests.conftest import PASSWORD


def test_employee_onboarding_end_to_end(client, db, hr_headers):
    created = client.post(
        "/employees",
        json={"name": "Erin Example", "email": "erin@example.com", "password": PASSWORD},
        headers=hr_headers,
    )
    assert created.status_code == 201
    employee = created.json()["data"]
    assert employee["onboarding_status"] == "not_started"

    template = client.post(
        "/templates",
        json={
            "name": "Company Basics",
            "estimated_completion_days": 5,
            "tasks": [
                {"title": "Read handbook", "task_type": "read"},
                {"title": "Upload ID", "task_type": "upload"},
                {"title": "Meet your buddy", "task_type": "meeting"},
            ],
        },
        headers=hr_headers,
    ).json()["data"]

    assigned = client.post(f"/templates/{template['id']}/assign/{employee['id']}", headers=hr_headers)
    assert assigned.status_code == 201
    rows = db.query(EmployeeTask).filter(EmployeeTask.employee_id == employee["id"]).all()
    assert all(row.due_date - row.assigned_date == timedelta(days=5) for row in rows)

    progress = client.get(f"/employees/{employee['id']}/progress", headers=hr_headers).json()["data"]
    assert (progress["total"], progress["completed"], progress["percentage"]) == (3, 0, 0)

    login = client.post("/auth/login", json={"email": "erin@example.com", "password": PASSWORD})
    employee_headers = {"Authorization": f"Bearer {login.json()['data']['access_token']}"}
    my_tasks = client.get("/tasks/my-tasks", headers=employee_headers).json()["data"]
    assert [task["task"]["title"] for task in my_tasks] == ["Read handbook", "Upload ID", "Meet your buddy"]

    for task in my_tasks:
        response = client.put(f"/tasks/{task['id']}/status", json={"status": "completed"}, headers=employee_headers)
        assert response.status_code == 200

    progress = client.get(f"/employees/{employee['id']}/progress", headers=hr_headers).json()["data"]
    assert (progress["total"], progress["completed"], progress["percentage"]) == (3, 3, 100)

    db.expire_all()
    erin = db.get(User, employee["id"])
    assert erin.onboarding_status.value == "completed"
    assert erin.onboarding_completed_date is not None


def test_health_reports_database(client):
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "success"
    assert body["message"] == "Server is running"
    assert body["data"]["database"] == "connected"
    assert body["data"]["environment"] == "test"


def _failing_route():
    raise RuntimeError("disk unavailable")


def test_unhandled_errors_include_text_only_in_development(monkeypatch):
    if not any(getattr(route, "path", None) == "/_failing" for route in app.routes):
        app.add_api_route("/_failing", _failing_route)
    client = TestClient(app, raise_server_exceptions=False)

    hidden = client.get("/_failing")
    monkeypatch.setattr(Settings, "ENVIRONMENT", "development")
    shown = client.get("/_failing")

    assert hidden.status_code == 500
    assert hidden.json() == {"status": "error", "message": "Internal server error"}
    assert shown.json()["error"] == "disk unavailable"
