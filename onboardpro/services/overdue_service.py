# onboardpro/services/overdue_service.py
"""
Periodic onboarding jobs: overdue sweep, reminder fan-out and notification
cleanup. Plain functions; the scheduler and the admin trigger routes both
call them.
"""

import logging
from collections import defaultdict
from datetime import timedelta
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from onboardpro.models import (
    EmployeeTask,
    Notification,
    NotificationType,
    OPEN_TASK_STATUSES,
    TaskStatus,
    User,
)
from onboardpro.services.email_service import Mailer
from onboardpro.utils.dates import start_of_day, utcnow
from onboardpro.utils.notifications import create_task_notification

logger = logging.getLogger(__name__)


def mark_overdue(db: Session) -> int:
    """Move every open assignment past its due date to ``overdue``. Returns rows changed."""
    now = utcnow()
    try:
        updated = (
            db.query(EmployeeTask)
            .filter(
                EmployeeTask.status.in_(OPEN_TASK_STATUSES),
                EmployeeTask.due_date.isnot(None),
                EmployeeTask.due_date < now,
            )
            .update({EmployeeTask.status: TaskStatus.OVERDUE, EmployeeTask.updated_at: now}, synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Marked {updated} employee task(s) as overdue")
    return updated


def _reminded_today(db: Session, employee_task_id: int) -> bool:
    return (
        db.query(Notification.id)
        .filter(
            Notification.notification_type == NotificationType.TASK_REMINDER,
            Notification.related_entity_type == "employee_task",
            Notification.related_entity_id == employee_task_id,
            Notification.created_at >= start_of_day(utcnow()),
        )
        .first()
        is not None
    )


def send_overdue_reminders(db: Session, mailer: Optional[Mailer] = None) -> Dict[str, int]:
    """Notify and email each employee about their overdue assignments, once per task per day."""
    overdue = (
        db.query(EmployeeTask)
        .options(joinedload(EmployeeTask.task), joinedload(EmployeeTask.employee))
        .filter(EmployeeTask.status == TaskStatus.OVERDUE)
        .all()
    )

    by_employee: Dict[int, List[EmployeeTask]] = defaultdict(list)
    notifications = 0
    for employee_task in overdue:
        if not employee_task.employee.is_active or _reminded_today(db, employee_task.id):
            continue
        if create_task_notification(
            db,
            employee_task.employee_id,
            NotificationType.TASK_REMINDER,
            employee_task.task.title,
            link="/tasks",
            related_entity_type="employee_task",
            related_entity_id=employee_task.id,
        ):
            notifications += 1
        by_employee[employee_task.employee_id].append(employee_task)

    emails = 0
    if mailer is not None:
        for employee_tasks in by_employee.values():
            employee = employee_tasks[0].employee
            if mailer.send_task_reminder_email(
                employee.name, employee.email, [et.task.title for et in employee_tasks], overdue=True
            ):
                emails += 1

    logger.info(f"Overdue reminders: {notifications} notification(s), {emails} email(s)")
    return {"overdue_tasks": len(overdue), "notifications": notifications, "emails": emails}


def open_tasks_for(db: Session, employee: User) -> List[EmployeeTask]:
    return (
        db.query(EmployeeTask)
        .options(joinedload(EmployeeTask.task))
        .filter(
            EmployeeTask.employee_id == employee.id,
            EmployeeTask.status.in_(OPEN_TASK_STATUSES + (TaskStatus.OVERDUE,)),
        )
        .order_by(EmployeeTask.due_date)
        .all()
    )


def remind_employee(db: Session, employee: User) -> List[str]:
    """Create reminder notifications for an employee's open tasks and return their titles."""
    titles = []
    for employee_task in open_tasks_for(db, employee):
        create_task_notification(
            db,
            employee.id,
            NotificationType.TASK_REMINDER,
            employee_task.task.title,
            link="/tasks",
            related_entity_type="employee_task",
            related_entity_id=employee_task.id,
        )
        titles.append(employee_task.task.title)
    return titles


def cleanup_read_notifications(db: Session, days: int = 30) -> int:
    """Delete read notifications older than ``days``."""
    cutoff = utcnow() - timedelta(days=days)
    try:
        deleted = (
            db.query(Notification)
            .filter(Notification.is_read == True, Notification.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Cleaned up {deleted} read notification(s) older than {days} days")
    return deleted
