# onboardpro/routers/departments.py
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from onboardpro.database import get_db
from onboardpro.models import Department, Template, User, UserRole
from onboardpro.schemas import DepartmentCreate, DepartmentOut, DepartmentUpdate
from onboardpro.services.activity_service import log_activity
from onboardpro.services.analytics_service import department_analytics
from onboardpro.utils.auth import get_current_user, require_admin
from onboardpro.utils.errors import ConflictError, NotFoundError
from onboardpro.utils.responses import success_response

router = APIRouter(prefix="/departments", tags=["departments"])


def _get_department(db: Session, department_id: int) -> Department:
    department = db.query(Department).filter(Department.id == department_id).first()
    if not department:
        raise NotFoundError("Department not found")
    return department


def _check_unique_name(db: Session, name: str, exclude_id: int = None):
    query = db.query(Department.id).filter(func.lower(Department.name) == name.lower())
    if exclude_id is not None:
        query = query.filter(Department.id != exclude_id)
    if query.first():
        raise ConflictError("Department with this name already exists")


@router.get("")
def list_departments(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """All departments with their employee counts"""
    counts = dict(
        db.query(User.department_id, func.count(User.id))
        .filter(User.role == UserRole.EMPLOYEE, User.department_id.isnot(None))
        .group_by(User.department_id)
        .all()
    )
    departments = db.query(Department).order_by(Department.name).all()
    data = [
        {**DepartmentOut.model_validate(department).model_dump(), "employee_count": counts.get(department.id, 0)}
        for department in departments
    ]
    return success_response("Departments retrieved successfully", data)


@router.get("/{department_id}")
def get_department(department_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    department = _get_department(db, department_id)
    return success_response("Department retrieved successfully", DepartmentOut.model_validate(department))


@router.get("/{department_id}/stats")
def department_stats(department_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Onboarding figures for one department"""
    _get_department(db, department_id)
    stats = next(row for row in department_analytics(db) if row["departmentId"] == department_id)
    stats["templates"] = (
        db.query(Template).filter(Template.department_id == department_id, Template.is_active == True).count()
    )
    return success_response("Department statistics retrieved successfully", stats)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_department(
    payload: DepartmentCreate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    _check_unique_name(db, payload.name)
    if payload.manager_id is not None and not db.query(User.id).filter(User.id == payload.manager_id).first():
        raise NotFoundError("Manager not found")

    department = Department(**payload.model_dump())
    db.add(department)
    db.commit()
    db.refresh(department)
    log_activity(db, current_user.id, "create_department", "department", department.id, request=request)
    return success_response(
        "Department created successfully",
        DepartmentOut.model_validate(department),
        status.HTTP_201_CREATED,
    )


@router.put("/{department_id}")
def update_department(
    department_id: int,
    payload: DepartmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    department = _get_department(db, department_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name"):
        _check_unique_name(db, changes["name"], exclude_id=department.id)
    if changes.get("manager_id") is not None and not db.query(User.id).filter(User.id == changes["manager_id"]).first():
        raise NotFoundError("Manager not found")

    for field in ("name", "description", "manager_id"):
        if field in changes:
            setattr(department, field, changes[field])
    db.commit()
    db.refresh(department)
    return success_response("Department updated successfully", DepartmentOut.model_validate(department))


@router.delete("/{department_id}")
def delete_department(
    department_id: int,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Delete a department that no user or template references"""
    department = _get_department(db, department_id)
    in_use = (
        db.query(User.id).filter(User.department_id == department_id).first()
        or db.query(Template.id).filter(Template.department_id == department_id).first()
    )
    if in_use:
        raise ConflictError("Cannot delete department with assigned users or templates")

    db.delete(department)
    db.commit()
    log_activity(db, current_user.id, "delete_department", "department", department_id, request=request)
    return success_response("Department deleted successfully", {"id": department_id})
