# onboardpro/routers/templates.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.orm import Session

from onboardpro.database import get_db
from onboardpro.models import User
from onboardpro.routers.employees import assignment_response, notify_assignment_by_email
from onboardpro.schemas import (
    TaskCreate,
    TaskOut,
    TaskUpdate,
    TemplateCreate,
    TemplateDetailOut,
    TemplateOut,
    TemplateUpdate,
)
from onboardpro.services.activity_service import log_activity
from onboardpro.services.assignment_service import AssignmentService
from onboardpro.services.email_service import Mailer, get_mailer
from onboardpro.services.template_service import TemplateService
from onboardpro.utils.auth import get_current_user, require_staff
from onboardpro.utils.responses import success_response

router = APIRouter(prefix="/templates", tags=["templates"])


@router.get("")
def list_templates(
    department_id: Optional[int] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List onboarding templates with their task counts"""
    templates = TemplateService.list_templates(db, department_id, is_active, search)
    return success_response(
        "Templates retrieved successfully",
        [TemplateOut.model_validate(template) for template in templates],
    )


@router.get("/employees/for-assignment")
def employees_for_assignment(
    template_id: Optional[int] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Active employees, flagged when the given template is already assigned to them"""
    return success_response(
        "Employees retrieved successfully",
        TemplateService.employees_for_assignment(db, template_id),
    )


@router.get("/employees/progress")
def all_employees_progress(db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Onboarding progress of every active employee"""
    return success_response("Employee progress retrieved successfully", TemplateService.all_employees_progress(db))


@router.get("/{template_id}")
def get_template(template_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Get a template with its ordered tasks"""
    template = TemplateService.get_template(db, template_id)
    return success_response("Template retrieved successfully", TemplateDetailOut.model_validate(template))


@router.post("", status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Create a template together with its tasks"""
    template = TemplateService.create_template(db, payload, current_user.id)
    log_activity(db, current_user.id, "create_template", "template", template.id, {"name": template.name}, request)
    return success_response(
        "Template created successfully",
        TemplateDetailOut.model_validate(template),
        status.HTTP_201_CREATED,
    )


@router.put("/{template_id}")
def update_template(
    template_id: int,
    payload: TemplateUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Update a template. Supplying ``tasks`` replaces all of its existing tasks."""
    template = TemplateService.get_template(db, template_id)
    template = TemplateService.update_template(db, template, payload)
    log_activity(
        db, current_user.id, "update_template", "template", template.id,
        {"tasks_replaced": payload.tasks is not None}, request,
    )
    return success_response("Template updated successfully", TemplateDetailOut.model_validate(template))


@router.delete("/{template_id}")
def delete_template(
    template_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Deactivate a template that is not assigned to anyone"""
    template = TemplateService.get_template(db, template_id)
    TemplateService.delete_template(db, template)
    log_activity(db, current_user.id, "delete_template", "template", template_id, request=request)
    return success_response("Template deleted successfully", {"id": template_id})


@router.post("/{template_id}/duplicate", status_code=status.HTTP_201_CREATED)
def duplicate_template(
    template_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Copy a template and all of its tasks"""
    template = TemplateService.get_template(db, template_id)
    copy = TemplateService.duplicate_template(db, template, current_user.id)
    log_activity(db, current_user.id, "duplicate_template", "template", copy.id, {"source": template_id}, request)
    return success_response(
        "Template duplicated successfully",
        TemplateDetailOut.model_validate(copy),
        status.HTTP_201_CREATED,
    )


@router.get("/{template_id}/tasks")
def list_template_tasks(template_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Tasks of a template in order"""
    template = TemplateService.get_template(db, template_id)
    return success_response("Tasks retrieved successfully", [TaskOut.model_validate(task) for task in template.tasks])


@router.post("/{template_id}/tasks", status_code=status.HTTP_201_CREATED)
def add_template_task(
    template_id: int,
    payload: TaskCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Append a task to a template"""
    template = TemplateService.get_template(db, template_id)
    task = TemplateService.add_task(db, template, payload)
    return success_response("Task added successfully", TaskOut.model_validate(task), status.HTTP_201_CREATED)


@router.put("/{template_id}/tasks/{task_id}")
def update_template_task(
    template_id: int,
    task_id: int,
    payload: TaskUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Update one task of a template"""
    template = TemplateService.get_template(db, template_id)
    task = TemplateService.update_task(db, template, task_id, payload)
    return success_response("Task updated successfully", TaskOut.model_validate(task))


@router.delete("/{template_id}/tasks/{task_id}")
def remove_template_task(
    template_id: int,
    task_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Remove a task that has not been assigned yet"""
    template = TemplateService.get_template(db, template_id)
    TemplateService.remove_task(db, template, task_id)
    return success_response("Task removed successfully", {"id": task_id})


@router.post("/{template_id}/assign/{employee_id}", status_code=status.HTTP_201_CREATED)
def assign_template(
    template_id: int,
    employee_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(require_staff),
):
    """Assign this template to an employee"""
    template, employee, assignments = AssignmentService.assign(db, employee_id, template_id, current_user.id)
    log_activity(
        db, current_user.id, "assign_template", "template", template.id,
        {"employee_id": employee.id, "tasks": len(assignments)}, request,
    )
    notify_assignment_by_email(background_tasks, mailer, template, employee, assignments)
    return success_response(
        "Template assigned successfully",
        assignment_response(template, employee, assignments),
        status.HTTP_201_CREATED,
    )


@router.get("/{template_id}/assignments")
def template_assignments(template_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Employees holding this template, with their progress on it"""
    template = TemplateService.get_template(db, template_id)
    return success_response("Assignments retrieved successfully", TemplateService.get_assignments(db, template.id))


@router.get("/{template_id}/analytics")
def template_analytics(template_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Completion figures for one template"""
    template = TemplateService.get_template(db, template_id)
    return success_response("Template analytics retrieved successfully", TemplateService.get_analytics(db, template))
