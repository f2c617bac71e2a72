from onboardpro.models import EmployeeTask, OnboardingStatus, TaskStatus
from onboardpro.services.progress_service import (
    calculate_percentage,
    get_progress,
    sync_onboarding_status,
    update_task_status,
)


def test_progress_without_assignments(db, employee_user):
    progress = get_progress(db, employee_user.id)

    assert progress == {"total": 0, "completed": 0, "pending": 0, "in_progress": 0, "overdue": 0, "percentage": 0}


def test_percentage_is_rounded_to_two_places():
    assert calculate_percentage(1, 3) == 33.33
    assert calculate_percentage(0, 0) == 0
    assert calculate_percentage(4, 4) == 100


def test_progress_counts_each_status(db, create_template, assign, employee_user):
    template = create_template(task_count=4)
    data = assign(employee_user.id, template["id"])
    first, second = (db.get(EmployeeTask, row["id"]) for row in data["assignments"][:2])
    first.status = TaskStatus.COMPLETED
    second.status = TaskStatus.IN_PROGRESS
    db.commit()

    progress = get_progress(db, employee_user.id)

    assert progress["total"] == 4
    assert progress["completed"] == 1
    assert progress["in_progress"] == 1
    assert progress["pending"] == 2
    assert progress["percentage"] == 25


def test_progress_can_be_narrowed_to_one_template(db, create_template, assign, employee_user):
    first = create_template("First", task_count=2)
    second = create_template("Second", task_count=3)
    assign(employee_user.id, first["id"])
    assign(employee_user.id, second["id"])

    assert get_progress(db, employee_user.id)["total"] == 5
    assert get_progress(db, employee_user.id, template_id=second["id"])["total"] == 3


def test_completing_every_task_completes_onboarding(db, create_template, assign, employee_user):
    template = create_template(task_count=2)
    data = assign(employee_user.id, template["id"])
    assignments = [db.get(EmployeeTask, row["id"]) for row in data["assignments"]]

    update_task_status(db, assignments[0], TaskStatus.COMPLETED)
    db.refresh(employee_user)
    assert employee_user.onboarding_status == OnboardingStatus.IN_PROGRESS

    progress = update_task_status(db, assignments[1], TaskStatus.COMPLETED, notes="done")
    db.refresh(employee_user)
    assert progress["percentage"] == 100
    assert employee_user.onboarding_status == OnboardingStatus.COMPLETED
    assert employee_user.onboarding_completed_date is not None
    assert assignments[1].completed_date is not None
    assert assignments[1].notes == "done"


def test_reopening_a_task_returns_employee_to_in_progress(db, create_template, assign, employee_user):
    template = create_template(task_count=1)
    data = assign(employee_user.id, template["id"])
    assignment = db.get(EmployeeTask, data["assignments"][0]["id"])
    update_task_status(db, assignment, TaskStatus.COMPLETED)

    update_task_status(db, assignment, TaskStatus.PENDING)

    db.refresh(employee_user)
    assert assignment.completed_date is None
    assert employee_user.onboarding_status == OnboardingStatus.IN_PROGRESS
    assert employee_user.onboarding_completed_date is None


def test_sync_leaves_employee_without_tasks_untouched(db, employee_user):
    sync_onboarding_status(db, employee_user)

    assert employee_user.onboarding_status == OnboardingStatus.NOT_STARTED
