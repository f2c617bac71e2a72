# onboardpro/services/progress_service.py
"""
Onboarding progress aggregation and the status transitions derived from it
"""

import logging
from typing import Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from onboardpro.models import EmployeeTask, OnboardingStatus, Task, TaskStatus, User
from onboardpro.utils.dates import utcnow
from onboardpro.utils.errors import NotFoundError

logger = logging.getLogger(__name__)


def empty_progress() -> Dict[str, float]:
    return {"total": 0, "completed": 0, "pending": 0, "in_progress": 0, "overdue": 0, "percentage": 0}


def calculate_percentage(completed: int, total: int) -> float:
    if not total:
        return 0
    return round(completed / total * 100, 2)


def get_progress(db: Session, employee_id: int, template_id: Optional[int] = None) -> Dict[str, float]:
    """Count an employee's assignments per status.

    ``template_id`` narrows the count to the tasks of one template.
    """
    query = db.query(EmployeeTask.status, func.count(EmployeeTask.id)).filter(EmployeeTask.employee_id == employee_id)
    if template_id is not None:
        query = query.join(Task, Task.id == EmployeeTask.task_id).filter(Task.template_id == template_id)

    progress = empty_progress()
    for status, count in query.group_by(EmployeeTask.status).all():
        progress[TaskStatus(status).value] = count
        progress["total"] += count

    progress["percentage"] = calculate_percentage(progress["completed"], progress["total"])
    return progress


def get_employee_progress(db: Session, employee_id: int) -> Dict[str, float]:
    employee = db.query(User).filter(User.id == employee_id).first()
    if not employee:
        raise NotFoundError("Employee not found")
    return get_progress(db, employee_id)


def sync_onboarding_status(db: Session, employee: User) -> Dict[str, float]:
    """Align ``employee.onboarding_status`` with assignment completion.

    Caller is responsible for committing.
    """
    db.flush()
    progress = get_progress(db, employee.id)

    if progress["total"] and progress["percentage"] >= 100:
        if employee.onboarding_status != OnboardingStatus.COMPLETED:
            employee.onboarding_status = OnboardingStatus.COMPLETED
            employee.onboarding_completed_date = utcnow()
            logger.info(f"Employee {employee.id} completed onboarding")
    elif employee.onboarding_status == OnboardingStatus.COMPLETED:
        employee.onboarding_status = OnboardingStatus.IN_PROGRESS
        employee.onboarding_completed_date = None
        logger.info(f"Employee {employee.id} returned to in-progress onboarding")

    return progress


def apply_task_status(employee_task: EmployeeTask, status: TaskStatus, notes: Optional[str] = None):
    """Set an assignment's status, stamping or clearing its completion date."""
    employee_task.status = status
    if status == TaskStatus.COMPLETED:
        employee_task.completed_date = employee_task.completed_date or utcnow()
    else:
        employee_task.completed_date = None
    if notes is not None:
        employee_task.notes = notes


def update_task_status(
    db: Session, employee_task: EmployeeTask, status: TaskStatus, notes: Optional[str] = None
) -> Dict[str, float]:
    """Change one assignment's status and propagate to the employee. Commits."""
    previous = employee_task.status
    try:
        apply_task_status(employee_task, status, notes)
        progress = sync_onboarding_status(db, employee_task.employee)
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(employee_task)
    logger.info(
        f"Employee task {employee_task.id} moved from {TaskStatus(previous).value} to {TaskStatus(status).value}"
    )
    return progress
