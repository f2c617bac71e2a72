import inspect
from datetime import timedelta

from onboardpro.models import EmployeeTask, Notification, NotificationType, OnboardingStatus, TaskStatus
from onboardpro.services.overdue_service import cleanup_read_notifications, mark_overdue, send_overdue_reminders
from onboardpro.services.scheduler import OnboardingScheduler
from onboardpro.utils.dates import utcnow


def _assignments(db, data):
    return [db.get(EmployeeTask, row["id"]) for row in data["assignments"]]


def test_mark_overdue_only_touches_open_past_due_rows(db, create_template, assign, employee_user):
    template = create_template(task_count=4)
    past_pending, past_in_progress, past_completed, future_pending = _assignments(
        db, assign(employee_user.id, template["id"])
    )
    yesterday = utcnow() - timedelta(days=1)
    past_pending.due_date = yesterday
    past_in_progress.due_date = yesterday
    past_in_progress.status = TaskStatus.IN_PROGRESS
    past_completed.due_date = yesterday
    past_completed.status = TaskStatus.COMPLETED
    db.commit()

    assert mark_overdue(db) == 2

    db.expire_all()
    assert past_pending.status == TaskStatus.OVERDUE
    assert past_in_progress.status == TaskStatus.OVERDUE
    assert past_completed.status == TaskStatus.COMPLETED
    assert future_pending.status == TaskStatus.PENDING
    # the employee's onboarding status is left alone
    assert employee_user.onboarding_status == OnboardingStatus.IN_PROGRESS


def test_mark_overdue_is_idempotent(db, create_template, assign, employee_user):
    template = create_template(task_count=2)
    for assignment in _assignments(db, assign(employee_user.id, template["id"])):
        assignment.due_date = utcnow() - timedelta(hours=1)
    db.commit()

    assert mark_overdue(db) == 2
    assert mark_overdue(db) == 0


def test_overdue_reminders_are_sent_once_per_day(db, mailer, create_template, assign, employee_user):
    template = create_template(task_count=2)
    for assignment in _assignments(db, assign(employee_user.id, template["id"])):
        assignment.due_date = utcnow() - timedelta(days=2)
    db.commit()
    mark_overdue(db)

    first = send_overdue_reminders(db, mailer)
    second = send_overdue_reminders(db, mailer)

    assert first == {"overdue_tasks": 2, "notifications": 2, "emails": 1}
    assert second == {"overdue_tasks": 2, "notifications": 0, "emails": 0}
    reminders = db.query(Notification).filter(Notification.notification_type == NotificationType.TASK_REMINDER)
    assert reminders.count() == 2
    assert mailer.sent_to("evan@example.com")[-1]["Subject"] == "Overdue onboarding tasks"


def test_cleanup_removes_only_old_read_notifications(db, employee_user):
    old_read = Notification(user_id=employee_user.id, title="Old", message="read", is_read=True,
                            created_at=utcnow() - timedelta(days=45))
    old_unread = Notification(user_id=employee_user.id, title="Old", message="unread",
                              created_at=utcnow() - timedelta(days=45))
    recent_read = Notification(user_id=employee_user.id, title="New", message="read", is_read=True)
    db.add_all([old_read, old_unread, recent_read])
    db.commit()

    assert cleanup_read_notifications(db, days=30) == 1
    assert db.query(Notification).count() == 2


def test_admin_job_routes(client, db, create_template, assign, employee_user, admin_headers, hr_headers):
    template = create_template(task_count=1)
    (assignment,) = _assignments(db, assign(employee_user.id, template["id"]))
    assignment.due_date = utcnow() - timedelta(days=1)
    db.commit()

    marked = client.post("/admin/jobs/mark-overdue", headers=admin_headers)
    reminded = client.post("/admin/jobs/send-overdue-reminders", headers=admin_headers)

    assert marked.json()["data"] == {"updated": 1}
    assert reminded.json()["data"]["notifications"] == 1
    assert client.post("/admin/jobs/mark-overdue", headers=hr_headers).status_code == 403


def test_send_reminder_to_employee(client, db, mailer, create_template, assign, employee_user, hr_headers):
    template = create_template(task_count=3)
    assign(employee_user.id, template["id"])

    response = client.post(f"/employees/{employee_user.id}/send-reminder", headers=hr_headers)

    assert response.status_code == 200
    assert response.json()["data"]["open_tasks"] == 3
    assert mailer.sent_to("evan@example.com")[-1]["Subject"] == "Onboarding task reminder"


def test_scheduler_jobs_run_outside_the_event_loop(db, mailer, create_template, assign, employee_user):
    scheduler = OnboardingScheduler(mailer=mailer)
    for job in (scheduler.run_mark_overdue, scheduler.run_overdue_reminders, scheduler.run_notification_cleanup):
        assert not inspect.iscoroutinefunction(job)

    template = create_template(task_count=1)
    (assignment,) = _assignments(db, assign(employee_user.id, template["id"]))
    assignment.due_date = utcnow() - timedelta(days=1)
    db.commit()

    scheduler.run_mark_overdue()
    scheduler.run_overdue_reminders()

    db.expire_all()
    assert assignment.status == TaskStatus.OVERDUE
    assert mailer.sent_to("evan@example.com")[-1]["Subject"] == "Overdue onboarding tasks"
