from datetime import timedelta

from onboardpro.models import EmployeeTask, OnboardingStatus, TaskStatus
from onboardpro.services import user_service
from onboardpro.utils.dates import utcnow
from tests.conftest import PASSWORD


def test_dashboard_stats(client, db, create_template, assign, employee_user, hr_headers):
    finished = user_service.create_user(
        db, "Fiona Finished", "fiona@example.com", PASSWORD, start_date=utcnow().date() - timedelta(days=10)
    )
    finished.onboarding_status = OnboardingStatus.COMPLETED
    finished.onboarding_completed_date = utcnow()
    db.commit()

    template = create_template(task_count=2)
    data = assign(employee_user.id, template["id"])
    late = db.get(EmployeeTask, data["assignments"][0]["id"])
    late.due_date = utcnow() - timedelta(days=1)
    db.commit()

    response = client.get("/analytics/dashboard-stats", headers=hr_headers)

    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["totalEmployees"] == 2
    assert stats["onboardingInProgress"] == 1
    assert stats["onboardingCompleted"] == 1
    assert stats["notStarted"] == 0
    # past-due open rows count even before the sweep marks them
    assert stats["overdueTasks"] == 1
    assert stats["completionRate"] == 50
    assert 10 <= stats["averageCompletionDays"] <= 11


def test_analytics_requires_staff(client, employee_headers):
    assert client.get("/analytics/dashboard-stats", headers=employee_headers).status_code == 403


def test_task_status_distribution(client, db, create_template, assign, employee_user, hr_headers):
    template = create_template(task_count=3)
    data = assign(employee_user.id, template["id"])
    done = db.get(EmployeeTask, data["assignments"][0]["id"])
    done.status = TaskStatus.COMPLETED
    db.commit()

    distribution = client.get("/analytics/task-status", headers=hr_headers).json()["data"]

    assert distribution["byStatus"]["pending"] == 2
    assert distribution["byStatus"]["completed"] == 1
    assert distribution["byType"] == {"read": 3}
    assert distribution["total"] == 3


def test_trends_period_validation(client, employee_user, hr_headers):
    week = client.get("/analytics/trends", params={"period": "week"}, headers=hr_headers)
    bad = client.get("/analytics/trends", params={"period": "decade"}, headers=hr_headers)

    assert week.status_code == 200
    assert len(week.json()["data"]) == 8
    assert sum(day["started"] for day in week.json()["data"]) == 1
    assert bad.status_code == 400


def test_overdue_tasks_report(client, db, create_template, assign, employee_user, hr_headers):
    template = create_template(task_count=1)
    data = assign(employee_user.id, template["id"])
    row = db.get(EmployeeTask, data["assignments"][0]["id"])
    row.due_date = utcnow() - timedelta(days=3, hours=1)
    db.commit()

    report = client.get("/analytics/overdue-tasks", headers=hr_headers).json()["data"]

    assert len(report) == 1
    assert report[0]["employeeName"] == "Evan Employee"
    assert report[0]["daysOverdue"] == 3


def test_employee_timeline(client, create_template, assign, employee_user, hr_headers, employee_headers):
    template = create_template(task_count=1)
    data = assign(employee_user.id, template["id"])
    client.put(f"/tasks/{data['assignments'][0]['id']}/status", json={"status": "completed"}, headers=employee_headers)

    timeline = client.get(f"/analytics/employee/{employee_user.id}/timeline", headers=hr_headers).json()["data"]

    events = [event["event"] for event in timeline["events"]]
    assert events[0] == "task_assigned"
    assert "task_completed" in events
    assert "onboarding_completed" in events
    assert timeline["progress"]["percentage"] == 100
    assert client.get("/analytics/employee/9999/timeline", headers=hr_headers).status_code == 404


def test_other_reports_respond(client, hr_headers):
    for path in ("/analytics/department", "/analytics/document-status", "/analytics/time-to-completion"):
        response = client.get(path, headers=hr_headers)
        assert response.status_code == 200, path


def test_role_dashboards(client, create_template, assign, employee_user, employee_headers, hr_headers, admin_headers):
    template = create_template(task_count=2)
    assign(employee_user.id, template["id"])

    employee = client.get("/dashboard/employee", headers=employee_headers).json()["data"]
    hr = client.get("/dashboard/hr", headers=hr_headers).json()["data"]
    admin = client.get("/dashboard/admin", headers=admin_headers).json()["data"]

    assert employee["progress"]["total"] == 2
    assert len(employee["pendingTasks"]) == 2
    assert len(employee["completionTrend"]) == 7
    assert hr["stats"]["totalEmployees"] == 1
    assert admin["usersByRole"] == {"admin": 1, "hr": 1, "employee": 1}
    assert client.get("/dashboard/hr", headers=employee_headers).status_code == 403
    assert client.get("/dashboard/admin", headers=hr_headers).status_code == 403
