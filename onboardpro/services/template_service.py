# onboardpro/services/template_service.py
import logging
from typing import List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from onboardpro.models import (
    Department,
    EmployeeTask,
    Task,
    TaskStatus,
    Template,
    User,
    UserRole,
)
from onboardpro.schemas.template import TaskCreate, TaskUpdate, TemplateCreate, TemplateUpdate
from onboardpro.services.progress_service import get_progress
from onboardpro.utils.dates import days_between
from onboardpro.utils.errors import BadRequestError, ConflictError, NotFoundError

logger = logging.getLogger(__name__)

TEMPLATE_UPDATABLE_FIELDS = ("name", "description", "department_id", "estimated_completion_days", "is_active")
TASK_UPDATABLE_FIELDS = ("title", "description", "task_type", "is_required", "estimated_time", "order_index", "resource_url")


def _build_task(data: TaskCreate, position: int) -> Task:
    return Task(
        title=data.title,
        description=data.description,
        task_type=data.task_type,
        is_required=data.is_required,
        estimated_time=data.estimated_time,
        order_index=data.order_index or position,
        resource_url=data.resource_url,
    )


class TemplateService:
    @staticmethod
    def get_template(db: Session, template_id: int) -> Template:
        template = (
            db.query(Template)
            .options(joinedload(Template.tasks), joinedload(Template.department))
            .filter(Template.id == template_id)
            .first()
        )
        if not template:
            raise NotFoundError("Template not found")
        return template

    @staticmethod
    def list_templates(
        db: Session,
        department_id: Optional[int] = None,
        is_active: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> List[Template]:
        query = db.query(Template).options(joinedload(Template.tasks), joinedload(Template.department))
        if department_id is not None:
            query = query.filter(Template.department_id == department_id)
        if is_active is not None:
            query = query.filter(Template.is_active == is_active)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(Template.name.ilike(pattern), Template.description.ilike(pattern)))
        return query.order_by(Template.created_at.desc(), Template.id.desc()).all()

    @staticmethod
    def _check_department(db: Session, department_id: Optional[int]):
        if department_id is not None and not db.query(Department.id).filter(Department.id == department_id).first():
            raise NotFoundError("Department not found")

    @staticmethod
    def has_assignments(db: Session, template_id: int) -> bool:
        return (
            db.query(EmployeeTask.id)
            .join(Task, Task.id == EmployeeTask.task_id)
            .filter(Task.template_id == template_id)
            .first()
            is not None
        )

    @staticmethod
    def create_template(db: Session, data: TemplateCreate, created_by: int) -> Template:
        TemplateService._check_department(db, data.department_id)
        template = Template(
            name=data.name,
            description=data.description,
            department_id=data.department_id,
            estimated_completion_days=data.estimated_completion_days or 7,
            created_by=created_by,
        )
        template.tasks = [_build_task(task, position) for position, task in enumerate(data.tasks, start=1)]

        try:
            db.add(template)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(template)
        logger.info(f"Template created: {template.id} ({template.name}) with {len(template.tasks)} task(s)")
        return template

    @staticmethod
    def update_template(db: Session, template: Template, data: TemplateUpdate) -> Template:
        """Patch allow-listed fields. A supplied ``tasks`` list replaces every existing task."""
        changes = data.model_dump(exclude_unset=True)
        if "department_id" in changes:
            TemplateService._check_department(db, changes["department_id"])

        if data.tasks is not None and TemplateService.has_assignments(db, template.id):
            raise ConflictError("Cannot replace tasks of a template that is assigned to employees")

        try:
            for field in TEMPLATE_UPDATABLE_FIELDS:
                if field in changes:
                    setattr(template, field, changes[field])

            if data.tasks is not None:
                template.tasks.clear()
                db.flush()
                template.tasks.extend(_build_task(task, position) for position, task in enumerate(data.tasks, start=1))

            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(template)
        logger.info(f"Template updated: {template.id}")
        return template

    @staticmethod
    def delete_template(db: Session, template: Template) -> Template:
        if TemplateService.has_assignments(db, template.id):
            raise ConflictError("Cannot delete template that is assigned to employees. Unassign it first.")

        template.is_active = False
        db.commit()
        db.refresh(template)
        logger.info(f"Template deactivated: {template.id}")
        return template

    @staticmethod
    def duplicate_template(db: Session, template: Template, created_by: int) -> Template:
        copy = Template(
            name=f"{template.name} (Copy)",
            description=template.description,
            department_id=template.department_id,
            estimated_completion_days=template.estimated_completion_days,
            is_active=True,
            created_by=created_by,
        )
        copy.tasks = [
            Task(
                title=task.title,
                description=task.description,
                task_type=task.task_type,
                is_required=task.is_required,
                estimated_time=task.estimated_time,
                order_index=task.order_index,
                resource_url=task.resource_url,
            )
            for task in template.tasks
        ]

        try:
            db.add(copy)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(copy)
        logger.info(f"Template {template.id} duplicated as {copy.id}")
        return copy

    # Task sub-resources

    @staticmethod
    def _get_template_task(db: Session, template: Template, task_id: int) -> Task:
        task = db.query(Task).filter(Task.id == task_id).first()
        if not task:
            raise NotFoundError("Task not found")
        if task.template_id != template.id:
            raise BadRequestError("Task does not belong to this template")
        return task

    @staticmethod
    def add_task(db: Session, template: Template, data: TaskCreate) -> Task:
        next_index = (db.query(func.max(Task.order_index)).filter(Task.template_id == template.id).scalar() or 0) + 1
        task = _build_task(data, next_index)
        task.template_id = template.id
        db.add(task)
        db.commit()
        db.refresh(task)
        logger.info(f"Task {task.id} added to template {template.id}")
        return task

    @staticmethod
    def update_task(db: Session, template: Template, task_id: int, data: TaskUpdate) -> Task:
        task = TemplateService._get_template_task(db, template, task_id)
        changes = data.model_dump(exclude_unset=True)
        for field in TASK_UPDATABLE_FIELDS:
            if field in changes and changes[field] is not None:
                setattr(task, field, changes[field])
        db.commit()
        db.refresh(task)
        return task

    @staticmethod
    def remove_task(db: Session, template: Template, task_id: int):
        task = TemplateService._get_template_task(db, template, task_id)
        if db.query(EmployeeTask.id).filter(EmployeeTask.task_id == task.id).first():
            raise ConflictError("Cannot delete a task that is assigned to employees")
        db.delete(task)
        db.commit()
        logger.info(f"Task {task_id} removed from template {template.id}")

    # Reporting

    @staticmethod
    def assigned_employee_ids(db: Session, template_id: int) -> List[int]:
        rows = (
            db.query(EmployeeTask.employee_id)
            .join(Task, Task.id == EmployeeTask.task_id)
            .filter(Task.template_id == template_id)
            .distinct()
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def get_assignments(db: Session, template_id: int) -> List[dict]:
        employee_ids = TemplateService.assigned_employee_ids(db, template_id)
        if not employee_ids:
            return []
        employees = db.query(User).filter(User.id.in_(employee_ids)).order_by(User.name).all()
        assignments = []
        for employee in employees:
            first_assigned = (
                db.query(func.min(EmployeeTask.assigned_date))
                .join(Task, Task.id == EmployeeTask.task_id)
                .filter(EmployeeTask.employee_id == employee.id, Task.template_id == template_id)
                .scalar()
            )
            assignments.append({
                "employee_id": employee.id,
                "name": employee.name,
                "email": employee.email,
                "employee_code": employee.employee_id,
                "assigned_date": first_assigned,
                "progress": get_progress(db, employee.id, template_id=template_id),
            })
        return assignments

    @staticmethod
    def get_analytics(db: Session, template: Template) -> dict:
        assignments = TemplateService.get_assignments(db, template.id)
        completed = [a for a in assignments if a["progress"]["total"] and a["progress"]["percentage"] >= 100]

        completion_days = []
        for assignment in completed:
            last_completed = (
                db.query(func.max(EmployeeTask.completed_date))
                .join(Task, Task.id == EmployeeTask.task_id)
                .filter(EmployeeTask.employee_id == assignment["employee_id"], Task.template_id == template.id)
                .scalar()
            )
            days = days_between(assignment["assigned_date"], last_completed)
            if days is not None:
                completion_days.append(days)

        status_counts = {status.value: 0 for status in TaskStatus}
        rows = (
            db.query(EmployeeTask.status, func.count(EmployeeTask.id))
            .join(Task, Task.id == EmployeeTask.task_id)
            .filter(Task.template_id == template.id)
            .group_by(EmployeeTask.status)
            .all()
        )
        for status, count in rows:
            status_counts[TaskStatus(status).value] = count

        total = len(assignments)
        return {
            "template_id": template.id,
            "template_name": template.name,
            "task_count": len(template.tasks),
            "assigned_employees": total,
            "completed_employees": len(completed),
            "completion_rate": round(len(completed) / total * 100, 2) if total else 0,
            "average_completion_days": round(sum(completion_days) / len(completion_days), 1) if completion_days else 0,
            "task_status": status_counts,
        }

    @staticmethod
    def employees_for_assignment(db: Session, template_id: Optional[int] = None) -> List[dict]:
        employees = (
            db.query(User)
            .filter(User.role == UserRole.EMPLOYEE, User.is_active == True)
            .order_by(User.name)
            .all()
        )
        assigned = set(TemplateService.assigned_employee_ids(db, template_id)) if template_id else set()
        return [
            {
                "id": employee.id,
                "name": employee.name,
                "email": employee.email,
                "employee_id": employee.employee_id,
                "department_id": employee.department_id,
                "department_name": employee.department_name,
                "onboarding_status": employee.onboarding_status,
                "is_assigned": employee.id in assigned,
            }
            for employee in employees
        ]

    @staticmethod
    def all_employees_progress(db: Session) -> List[dict]:
        employees = (
            db.query(User)
            .filter(User.role == UserRole.EMPLOYEE, User.is_active == True)
            .order_by(User.name)
            .all()
        )
        return [
            {
                "id": employee.id,
                "name": employee.name,
                "email": employee.email,
                "employee_id": employee.employee_id,
                "department_name": employee.department_name,
                "onboarding_status": employee.onboarding_status,
                "progress": get_progress(db, employee.id),
            }
            for employee in employees
        ]
