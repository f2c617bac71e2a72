from onboardpro.models import ActivityLog, Department, User, UserRole
from onboardpro.services import user_service
from tests.conftest import PASSWORD


def test_admin_manages_departments(client, db, admin_headers, hr_headers):
    created = client.post("/departments", json={"name": "Engineering", "description": "Builders"}, headers=admin_headers)
    assert created.status_code == 201
    department_id = created.json()["data"]["id"]

    duplicate = client.post("/departments", json={"name": "engineering"}, headers=admin_headers)
    assert duplicate.status_code == 409

    assert client.post("/departments", json={"name": "Sales"}, headers=hr_headers).status_code == 403

    renamed = client.put(f"/departments/{department_id}", json={"name": "Platform"}, headers=admin_headers)
    assert renamed.json()["data"]["name"] == "Platform"

    assert client.delete(f"/departments/{department_id}", headers=admin_headers).status_code == 200
    assert db.get(Department, department_id) is None


def test_department_in_use_cannot_be_deleted(client, db, admin_headers):
    department = Department(name="Finance")
    db.add(department)
    db.commit()
    user_service.create_user(db, "Fin Person", "fin@example.com", PASSWORD, department_id=department.id)

    response = client.delete(f"/departments/{department.id}", headers=admin_headers)

    assert response.status_code == 409


def test_department_list_counts_employees(client, db, employee_headers):
    department = Department(name="Support")
    db.add(department)
    db.commit()
    for index in range(2):
        user_service.create_user(db, f"Support {index}", f"support{index}@example.com", PASSWORD, department_id=department.id)

    listing = client.get("/departments", headers=employee_headers).json()["data"]
    stats = client.get(f"/departments/{department.id}/stats", headers=employee_headers).json()["data"]

    assert listing[0]["employee_count"] == 2
    assert stats["totalEmployees"] == 2
    assert stats["notStarted"] == 2


def test_admin_lists_users_paginated(client, admin_user, hr_user, employee_user, admin_headers, hr_headers):
    response = client.get("/admin/users", params={"page": 1, "limit": 2}, headers=admin_headers)

    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 2
    assert body["pagination"] == {"page": 1, "limit": 2, "total": 3, "totalPages": 2}
    assert client.get("/admin/users", headers=hr_headers).status_code == 403

    only_hr = client.get("/admin/users", params={"role": "hr"}, headers=admin_headers).json()["data"]
    assert [user["email"] for user in only_hr] == ["hr@example.com"]


def test_admin_updates_user_status(client, db, admin_user, employee_user, admin_headers):
    response = client.put(
        f"/admin/users/{employee_user.id}/status", json={"is_active": False, "role": "hr"}, headers=admin_headers
    )

    assert response.status_code == 200
    db.expire_all()
    user = db.get(User, employee_user.id)
    assert user.is_active is False
    assert user.role == UserRole.HR
    assert db.query(ActivityLog).filter(ActivityLog.action == "update_user_status").count() == 1


def test_admin_cannot_demote_self(client, admin_user, admin_headers):
    response = client.put(f"/admin/users/{admin_user.id}/status", json={"is_active": False}, headers=admin_headers)

    assert response.status_code == 400


def test_activity_log_and_scheduler_status(client, employee_user, admin_headers):
    client.post("/auth/login", json={"email": "evan@example.com", "password": PASSWORD})

    logs = client.get("/admin/activity-logs", params={"action": "login"}, headers=admin_headers).json()["data"]
    scheduler = client.get("/admin/scheduler/status", headers=admin_headers).json()["data"]

    assert [entry["user_id"] for entry in logs] == [employee_user.id]
    assert scheduler["status"] == "disabled"


def test_employee_directory(client, db, employee_user, hr_headers, admin_headers):
    user_service.create_user(db, "Second Hire", "second@example.com", PASSWORD)

    listing = client.get("/employees", params={"search": "second"}, headers=hr_headers).json()
    assert listing["pagination"]["total"] == 1
    assert listing["data"][0]["progress"]["total"] == 0

    updated = client.put(f"/employees/{employee_user.id}", json={"position": "Engineer", "role": "admin"}, headers=hr_headers)
    assert updated.json()["data"]["position"] == "Engineer"
    assert updated.json()["data"]["role"] == "employee"

    assert client.delete(f"/employees/{employee_user.id}", params={"hard": True}, headers=hr_headers).status_code == 403
    soft = client.delete(f"/employees/{employee_user.id}", headers=hr_headers)
    assert soft.json()["message"] == "Employee deactivated successfully"

    hard = client.delete(f"/employees/{employee_user.id}", params={"hard": True}, headers=admin_headers)
    assert hard.json()["message"] == "Employee deleted permanently"
    db.expire_all()
    assert db.get(User, employee_user.id) is None


def test_storage_stats_and_orphan_cleanup(client, storage, employee_user, admin_headers, employee_headers):
    client.post(
        "/documents/upload",
        files={"file": ("kept.pdf", b"%PDF-1.4 kept", "application/pdf")},
        headers=employee_headers,
    )
    orphan_dir = storage.upload_dir / storage.DOCUMENTS / str(employee_user.id)
    (orphan_dir / "stray.pdf").write_bytes(b"%PDF-1.4 stray")

    stats = client.get("/admin/storage/stats", headers=admin_headers).json()["data"]
    cleanup = client.post("/admin/storage/cleanup", headers=admin_headers).json()["data"]

    assert stats["total_files"] == 2
    assert cleanup == {"deleted": 1}
    assert not (orphan_dir / "stray.pdf").exists()
    assert len(list(orphan_dir.iterdir())) == 1
