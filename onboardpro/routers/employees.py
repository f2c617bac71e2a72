# onboardpro/routers/employees.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request, status
from sqlalchemy.orm import Session, joinedload

from onboardpro.database import get_db
from onboardpro.models import EmployeeTask, OnboardingStatus, Task, User, UserRole
from onboardpro.schemas import (
    AssignTemplateRequest,
    EmployeeCreate,
    EmployeeTaskOut,
    EmployeeUpdate,
    ProgressOut,
    UserOut,
)
from onboardpro.services import user_service
from onboardpro.services.activity_service import log_activity
from onboardpro.services.assignment_service import AssignmentService
from onboardpro.services.email_service import Mailer, get_mailer
from onboardpro.services.file_storage import FileStorageService, get_file_storage
from onboardpro.services.overdue_service import remind_employee
from onboardpro.services.progress_service import get_employee_progress, get_progress
from onboardpro.utils.auth import require_staff
from onboardpro.utils.errors import ForbiddenError
from onboardpro.utils.responses import paginated_response, success_response
from onboardpro.utils.security import generate_temporary_password

router = APIRouter(prefix="/employees", tags=["employees"])


def assignment_response(template, employee, assignments) -> dict:
    return {
        "template_id": template.id,
        "template_name": template.name,
        "employee_id": employee.id,
        "employee_name": employee.name,
        "tasks_assigned": len(assignments),
        "assignments": [EmployeeTaskOut.model_validate(assignment) for assignment in assignments],
    }


def notify_assignment_by_email(background_tasks: BackgroundTasks, mailer: Mailer, template, employee, assignments):
    due_date = assignments[0].due_date if assignments else None
    background_tasks.add_task(
        mailer.send_template_assigned_email, employee.name, employee.email, template.name, len(assignments), due_date
    )


@router.get("")
def list_employees(
    department_id: Optional[int] = Query(None),
    onboarding_status: Optional[OnboardingStatus] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """List employees with optional filters"""
    employees, total = user_service.list_users(
        db,
        role=UserRole.EMPLOYEE,
        department_id=department_id,
        onboarding_status=onboarding_status,
        is_active=is_active,
        search=search,
        page=page,
        limit=limit,
    )
    data = [
        {**UserOut.model_validate(employee).model_dump(), "progress": get_progress(db, employee.id)}
        for employee in employees
    ]
    return paginated_response("Employees retrieved successfully", data, page, limit, total)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_employee(
    payload: EmployeeCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(require_staff),
):
    """Create an employee account. A temporary password is generated when none is given."""
    temporary_password = None if payload.password else generate_temporary_password()
    fields = payload.model_dump(exclude={"name", "email", "password", "employee_id"}, exclude_none=True)
    employee = user_service.create_user(
        db,
        name=payload.name,
        email=payload.email,
        password=payload.password or temporary_password,
        role=UserRole.EMPLOYEE,
        employee_id=payload.employee_id,
        **fields,
    )
    log_activity(db, current_user.id, "create_employee", "user", employee.id, {"email": employee.email}, request)
    background_tasks.add_task(mailer.send_welcome_email, employee.name, employee.email, temporary_password)
    return success_response("Employee created successfully", UserOut.model_validate(employee), status.HTTP_201_CREATED)


@router.get("/{employee_id}")
def get_employee(employee_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Get an employee with their onboarding progress"""
    employee = user_service.get_employee(db, employee_id)
    data = {**UserOut.model_validate(employee).model_dump(), "progress": get_progress(db, employee.id)}
    return success_response("Employee retrieved successfully", data)


@router.put("/{employee_id}")
def update_employee(
    employee_id: int,
    payload: EmployeeUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Update allow-listed employee fields"""
    employee = user_service.get_employee(db, employee_id)
    changes = payload.model_dump(exclude_unset=True)
    employee = user_service.update_user(db, employee, changes)
    log_activity(db, current_user.id, "update_employee", "user", employee.id, {"fields": sorted(changes)}, request)
    return success_response("Employee updated successfully", UserOut.model_validate(employee))


@router.delete("/{employee_id}")
def delete_employee(
    employee_id: int,
    request: Request,
    hard: bool = Query(False),
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(require_staff),
):
    """Deactivate an employee; ``hard=true`` (admin only) removes the record entirely"""
    if hard and current_user.role != UserRole.ADMIN:
        raise ForbiddenError("Only administrators can permanently delete employees")

    employee = user_service.get_employee(db, employee_id)
    removed = user_service.delete_user(db, storage, employee, hard=hard)
    log_activity(db, current_user.id, "delete_employee", "user", employee_id, {"hard": removed}, request)
    message = "Employee deleted permanently" if removed else "Employee deactivated successfully"
    return success_response(message, {"id": employee_id})


@router.post("/{employee_id}/assign-template", status_code=status.HTTP_201_CREATED)
def assign_template(
    employee_id: int,
    payload: AssignTemplateRequest,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(require_staff),
):
    """Instantiate every task of a template for this employee"""
    template, employee, assignments = AssignmentService.assign(db, employee_id, payload.template_id, current_user.id)
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


@router.get("/{employee_id}/progress")
def employee_progress(employee_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Assignment counts per status and the completion percentage"""
    return success_response("Progress retrieved successfully", ProgressOut(**get_employee_progress(db, employee_id)))


@router.get("/{employee_id}/tasks")
def employee_tasks(employee_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """All assignments of an employee in task order"""
    employee = user_service.get_employee(db, employee_id)
    assignments = (
        db.query(EmployeeTask)
        .join(Task, Task.id == EmployeeTask.task_id)
        .options(joinedload(EmployeeTask.task))
        .filter(EmployeeTask.employee_id == employee.id)
        .order_by(Task.template_id, Task.order_index)
        .all()
    )
    return success_response(
        "Employee tasks retrieved successfully",
        [EmployeeTaskOut.model_validate(assignment) for assignment in assignments],
    )


@router.post("/{employee_id}/send-reminder")
def send_reminder(
    employee_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(require_staff),
):
    """Remind an employee about their open tasks by notification and email"""
    employee = user_service.get_employee(db, employee_id)
    titles = remind_employee(db, employee)
    if titles:
        background_tasks.add_task(mailer.send_task_reminder_email, employee.name, employee.email, titles)
    return success_response("Reminder sent successfully", {"open_tasks": len(titles)})
