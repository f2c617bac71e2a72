# onboardpro/routers/tasks.py
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile, status
from sqlalchemy.orm import Session, joinedload

from onboardpro.database import get_db
from onboardpro.models import EmployeeTask, NotificationType, Task, TaskStatus, User
from onboardpro.schemas import DocumentOut, EmployeeTaskOut, ProgressOut, TaskStatusUpdate
from onboardpro.services import user_service
from onboardpro.services.activity_service import log_activity
from onboardpro.services.document_service import DocumentService
from onboardpro.services.file_storage import FileStorageService, get_file_storage
from onboardpro.services.progress_service import get_progress, update_task_status
from onboardpro.utils.auth import ensure_owner_or_staff, get_current_user, require_staff
from onboardpro.utils.errors import NotFoundError
from onboardpro.utils.notifications import notify_staff
from onboardpro.utils.responses import success_response

router = APIRouter(prefix="/tasks", tags=["tasks"])


def _get_employee_task(db: Session, employee_task_id: int, user: User) -> EmployeeTask:
    employee_task = (
        db.query(EmployeeTask)
        .options(joinedload(EmployeeTask.task), joinedload(EmployeeTask.employee))
        .filter(EmployeeTask.id == employee_task_id)
        .first()
    )
    if not employee_task:
        raise NotFoundError("Task not found")
    ensure_owner_or_staff(user, employee_task.employee_id, "Access denied to this task")
    return employee_task


def _tasks_for(db: Session, employee_id: int, status_filter: Optional[TaskStatus] = None):
    query = (
        db.query(EmployeeTask)
        .join(Task, Task.id == EmployeeTask.task_id)
        .options(joinedload(EmployeeTask.task))
        .filter(EmployeeTask.employee_id == employee_id)
    )
    if status_filter is not None:
        query = query.filter(EmployeeTask.status == status_filter)
    return query.order_by(Task.template_id, Task.order_index).all()


@router.get("/my-tasks")
def my_tasks(
    status_filter: Optional[TaskStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Assignments of the signed-in employee in task order"""
    assignments = _tasks_for(db, current_user.id, status_filter)
    return success_response(
        "Tasks retrieved successfully",
        [EmployeeTaskOut.model_validate(assignment) for assignment in assignments],
    )


@router.get("/my-progress")
def my_progress(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Progress of the signed-in employee"""
    return success_response("Progress retrieved successfully", ProgressOut(**get_progress(db, current_user.id)))


@router.get("/employee/{employee_id}")
def tasks_for_employee(employee_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Assignments of any employee (HR/Admin)"""
    employee = user_service.get_employee(db, employee_id)
    return success_response(
        "Tasks retrieved successfully",
        [EmployeeTaskOut.model_validate(assignment) for assignment in _tasks_for(db, employee.id)],
    )


@router.get("/{employee_task_id}")
def get_task(employee_task_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """One assignment with its task definition"""
    employee_task = _get_employee_task(db, employee_task_id, current_user)
    return success_response("Task retrieved successfully", EmployeeTaskOut.model_validate(employee_task))


@router.put("/{employee_task_id}/status")
def update_status(
    employee_task_id: int,
    payload: TaskStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Move an assignment to a new status and refresh the employee's onboarding state"""
    employee_task = _get_employee_task(db, employee_task_id, current_user)
    progress = update_task_status(db, employee_task, payload.status, payload.notes)

    if payload.status == TaskStatus.COMPLETED:
        notify_staff(
            db,
            NotificationType.TASK_COMPLETED,
            employee_task.task.title,
            employee=employee_task.employee.name,
            link=f"/employees/{employee_task.employee_id}",
            related_entity_type="employee_task",
            related_entity_id=employee_task.id,
        )
    log_activity(
        db, current_user.id, "update_task_status", "employee_task", employee_task.id,
        {"status": payload.status.value}, request,
    )

    return success_response(
        "Task status updated successfully",
        {"task": EmployeeTaskOut.model_validate(employee_task), "progress": progress},
    )


@router.post("/{employee_task_id}/mark-read")
def mark_read(employee_task_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Flag an assignment as seen"""
    employee_task = _get_employee_task(db, employee_task_id, current_user)
    employee_task.is_read = True
    db.commit()
    return success_response("Task marked as read", {"id": employee_task.id, "is_read": True})


@router.post("/{employee_task_id}/upload", status_code=status.HTTP_201_CREATED)
def upload_for_task(
    employee_task_id: int,
    request: Request,
    file: UploadFile = File(...),
    document_type: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    """Upload evidence for an assignment and mark it completed"""
    employee_task = _get_employee_task(db, employee_task_id, current_user)
    document = DocumentService.upload(
        db,
        storage,
        file,
        current_user,
        employee_task_id=employee_task.id,
        document_type=document_type,
        complete_task=True,
    )

    notify_staff(
        db,
        NotificationType.DOCUMENT_UPLOADED,
        document.original_filename,
        employee=employee_task.employee.name,
        link="/documents/pending",
        related_entity_type="document",
        related_entity_id=document.id,
    )
    log_activity(db, current_user.id, "upload_document", "document", document.id, {"employee_task_id": employee_task.id}, request)

    db.refresh(employee_task)
    return success_response(
        "File uploaded successfully",
        {"document": DocumentOut.model_validate(document), "task": EmployeeTaskOut.model_validate(employee_task)},
        status.HTTP_201_CREATED,
    )
