from datetime import timedelta

import pytest

from onboardpro.models import EmployeeTask, Notification, NotificationType, OnboardingStatus, TaskStatus, User
from onboardpro.services import user_service
from onboardpro.services.assignment_service import AssignmentService
from onboardpro.utils.dates import utcnow
from tests.conftest import PASSWORD


def test_assignment_creates_one_pending_row_per_task(client, db, create_template, employee_user, hr_user, hr_headers):
    template = create_template(task_count=3, estimated_completion_days=10)

    response = client.post(
        f"/employees/{employee_user.id}/assign-template",
        json={"templateId": template["id"]},
        headers=hr_headers,
    )

    assert response.status_code == 201
    data = response.json()["data"]
    assert data["tasks_assigned"] == 3

    rows = db.query(EmployeeTask).filter(EmployeeTask.employee_id == employee_user.id).all()
    assert len(rows) == 3
    assert {row.status for row in rows} == {TaskStatus.PENDING}
    assert {row.assigned_by for row in rows} == {hr_user.id}
    for row in rows:
        assert row.due_date - row.assigned_date == timedelta(days=10)

    db.expire_all()
    assert employee_user.onboarding_status == OnboardingStatus.IN_PROGRESS


def test_assignment_notifies_and_emails_employee(client, db, mailer, create_template, assign, employee_user):
    template = create_template(task_count=2)
    assign(employee_user.id, template["id"])

    notifications = (
        db.query(Notification)
        .filter(Notification.user_id == employee_user.id, Notification.notification_type == NotificationType.TASK_ASSIGNED)
        .count()
    )
    assert notifications == 2
    assert len(mailer.sent_to("evan@example.com")) == 1


def test_reassigning_same_template_conflicts_without_new_rows(client, db, create_template, assign, employee_user, hr_headers):
    template = create_template(task_count=2)
    assign(employee_user.id, template["id"])

    response = client.post(
        f"/templates/{template['id']}/assign/{employee_user.id}",
        headers=hr_headers,
    )

    assert response.status_code == 409
    assert db.query(EmployeeTask).filter(EmployeeTask.employee_id == employee_user.id).count() == 2


def test_two_templates_can_be_assigned_to_one_employee(db, create_template, assign, employee_user):
    first = create_template("First", task_count=2)
    second = create_template("Second", task_count=1)

    assign(employee_user.id, first["id"])
    assign(employee_user.id, second["id"])

    assert db.query(EmployeeTask).filter(EmployeeTask.employee_id == employee_user.id).count() == 3


def test_template_without_tasks_cannot_be_assigned(client, create_template, employee_user, hr_headers):
    template = create_template(task_count=0)

    response = client.post(f"/templates/{template['id']}/assign/{employee_user.id}", headers=hr_headers)

    assert response.status_code == 400
    assert response.json()["message"] == "Cannot assign template without tasks"


def test_inactive_template_cannot_be_assigned(client, create_template, employee_user, hr_headers):
    template = create_template()
    client.delete(f"/templates/{template['id']}", headers=hr_headers)

    response = client.post(f"/templates/{template['id']}/assign/{employee_user.id}", headers=hr_headers)

    assert response.status_code == 404


def test_only_active_employees_can_receive_templates(client, db, create_template, hr_user, hr_headers):
    template = create_template()
    inactive = user_service.create_user(db, "Ina Active", "ina@example.com", PASSWORD)
    inactive.is_active = False
    db.commit()

    assert client.post(f"/templates/{template['id']}/assign/{inactive.id}", headers=hr_headers).status_code == 400
    assert client.post(f"/templates/{template['id']}/assign/{hr_user.id}", headers=hr_headers).status_code == 400
    assert client.post(f"/templates/{template['id']}/assign/9999", headers=hr_headers).status_code == 404


def test_assignment_requires_staff(client, create_template, employee_user, employee_headers):
    template = create_template()

    response = client.post(
        f"/employees/{employee_user.id}/assign-template",
        json={"templateId": template["id"]},
        headers=employee_headers,
    )

    assert response.status_code == 403


def test_insert_skips_existing_pairs(db, create_template, employee_user, hr_user):
    template = create_template(task_count=2)
    now = utcnow()
    rows = [
        {
            "employee_id": employee_user.id,
            "task_id": task["id"],
            "status": TaskStatus.PENDING,
            "assigned_date": now,
            "due_date": now + timedelta(days=7),
            "is_read": False,
            "assigned_by": hr_user.id,
            "created_at": now,
            "updated_at": now,
        }
        for task in template["tasks"]
    ]

    AssignmentService._insert_ignoring_conflicts(db, rows)
    AssignmentService._insert_ignoring_conflicts(db, rows)
    db.commit()

    assert db.query(EmployeeTask).count() == 2
    assert AssignmentService.is_template_assigned(db, employee_user.id, template["id"])


def test_create_employee_generates_password_and_sends_welcome(client, db, mailer, hr_headers):
    response = client.post(
        "/employees",
        json={"name": "Fresh Start", "email": "fresh@example.com", "position": "Analyst"},
        headers=hr_headers,
    )

    assert response.status_code == 201
    employee = db.query(User).filter(User.email == "fresh@example.com").one()
    assert employee.role.value == "employee"
    welcome = mailer.sent_to("fresh@example.com")
    assert len(welcome) == 1
    assert "temporary password" in welcome[0].get_body(preferencelist=("html",)).get_content()


def test_failed_fan_out_rolls_back_every_insert(db, monkeypatch, create_template, employee_user, hr_user):
    template = create_template(task_count=3)
    insert_rows = AssignmentService._insert_ignoring_conflicts

    def insert_then_fail(session, rows):
        insert_rows(session, rows)
        raise RuntimeError("connection lost")

    monkeypatch.setattr(AssignmentService, "_insert_ignoring_conflicts", staticmethod(insert_then_fail))

    with pytest.raises(RuntimeError):
        AssignmentService.assign(db, employee_user.id, template["id"], hr_user.id)

    assert db.query(EmployeeTask).filter(EmployeeTask.employee_id == employee_user.id).count() == 0
    db.expire_all()
    assert db.get(User, employee_user.id).onboarding_status == OnboardingStatus.NOT_STARTED
