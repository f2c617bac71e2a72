# onboardpro/services/assignment_service.py
"""
Assign onboarding templates to employees.

Assigning a template instantiates one EmployeeTask per template task. The
whole fan-out (inserts plus the employee status change) commits or rolls
back as a unit.
"""

import logging
from datetime import timedelta
from typing import List, Tuple

from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session, joinedload

from onboardpro.config import Settings
from onboardpro.models import (
    EmployeeTask,
    NotificationType,
    OnboardingStatus,
    Task,
    TaskStatus,
    Template,
    User,
    UserRole,
)
from onboardpro.utils.dates import utcnow
from onboardpro.utils.errors import BadRequestError, ConflictError, NotFoundError
from onboardpro.utils.notifications import create_task_notification

logger = logging.getLogger(__name__)

_CONFLICT_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


class AssignmentService:
    @staticmethod
    def is_template_assigned(db: Session, employee_id: int, template_id: int) -> bool:
        """True when the employee already holds an assignment for any task of the template."""
        return (
            db.query(EmployeeTask.id)
            .join(Task, Task.id == EmployeeTask.task_id)
            .filter(EmployeeTask.employee_id == employee_id, Task.template_id == template_id)
            .first()
            is not None
        )

    @staticmethod
    def _insert_ignoring_conflicts(db: Session, rows: List[dict]):
        """Insert assignment rows, skipping (employee, task) pairs that already exist."""
        insert = _CONFLICT_INSERTS.get(db.get_bind().dialect.name)
        if insert is not None:
            stmt = insert(EmployeeTask).values(rows).on_conflict_do_nothing(
                index_elements=["employee_id", "task_id"]
            )
            db.execute(stmt)
            return

        employee_ids = {row["employee_id"] for row in rows}
        existing = {
            (employee_id, task_id)
            for employee_id, task_id in db.query(EmployeeTask.employee_id, EmployeeTask.task_id)
            .filter(EmployeeTask.employee_id.in_(employee_ids))
            .all()
        }
        db.add_all(EmployeeTask(**row) for row in rows if (row["employee_id"], row["task_id"]) not in existing)
        db.flush()

    @staticmethod
    def validate(db: Session, employee_id: int, template_id: int) -> Tuple[Template, User]:
        """Check every precondition of an assignment before anything is written."""
        template = (
            db.query(Template)
            .options(joinedload(Template.tasks))
            .filter(Template.id == template_id, Template.is_active == True)
            .first()
        )
        if not template:
            raise NotFoundError("Template not found or inactive")

        if not template.tasks:
            raise BadRequestError("Cannot assign template without tasks")

        employee = db.query(User).filter(User.id == employee_id).first()
        if not employee:
            raise NotFoundError("Employee not found")
        if not employee.is_active:
            raise BadRequestError("Cannot assign template to an inactive employee")
        if employee.role != UserRole.EMPLOYEE:
            raise BadRequestError("Templates can only be assigned to users with the employee role")

        if AssignmentService.is_template_assigned(db, employee_id, template_id):
            raise ConflictError("Template is already assigned to this employee")

        return template, employee

    @staticmethod
    def assign(db: Session, employee_id: int, template_id: int, assigned_by: int) -> Tuple[Template, User, List[EmployeeTask]]:
        """
        Assign a template to an employee

        Args:
            db: Database session
            employee_id: Target employee
            template_id: Template to instantiate
            assigned_by: ID of the acting HR/admin user

        Returns:
            Tuple of (template, employee, created assignments in task order)
        """
        template, employee = AssignmentService.validate(db, employee_id, template_id)

        now = utcnow()
        due_date = now + timedelta(days=template.estimated_completion_days or Settings.DEFAULT_COMPLETION_DAYS)
        tasks = sorted(template.tasks, key=lambda task: task.order_index)
        rows = [
            {
                "employee_id": employee.id,
                "task_id": task.id,
                "status": TaskStatus.PENDING,
                "assigned_date": now,
                "due_date": due_date,
                "is_read": False,
                "assigned_by": assigned_by,
                "created_at": now,
                "updated_at": now,
            }
            for task in tasks
        ]

        try:
            AssignmentService._insert_ignoring_conflicts(db, rows)
            if employee.onboarding_status == OnboardingStatus.NOT_STARTED:
                employee.onboarding_status = OnboardingStatus.IN_PROGRESS
            db.commit()
        except Exception as e:
            db.rollback()
            logger.error(f"Assignment of template {template.id} to employee {employee.id} rolled back: {str(e)}")
            raise

        assignments = (
            db.query(EmployeeTask)
            .join(Task, Task.id == EmployeeTask.task_id)
            .options(joinedload(EmployeeTask.task))
            .filter(EmployeeTask.employee_id == employee.id, Task.template_id == template.id)
            .order_by(Task.order_index, EmployeeTask.id)
            .all()
        )
        logger.info(
            f"Template {template.id} assigned to employee {employee.id}: {len(assignments)} task(s) due {due_date.date()}"
        )

        for assignment in assignments:
            create_task_notification(
                db,
                employee.id,
                NotificationType.TASK_ASSIGNED,
                assignment.task.title,
                link="/tasks",
                related_entity_type="employee_task",
                related_entity_id=assignment.id,
            )

        return template, employee, assignments
