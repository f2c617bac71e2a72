# onboardpro/services/user_service.py
import logging
import secrets
import time
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from onboardpro.models import Department, OnboardingStatus, User, UserRole
from onboardpro.services.file_storage import FileStorageService
from onboardpro.utils.errors import ConflictError, NotFoundError
from onboardpro.utils.security import hash_password

logger = logging.getLogger(__name__)

EMPLOYEE_UPDATABLE_FIELDS = (
    "name",
    "email",
    "phone",
    "date_of_birth",
    "address",
    "department_id",
    "manager_id",
    "position",
    "start_date",
    "onboarding_status",
    "is_active",
)
PROFILE_UPDATABLE_FIELDS = ("name", "phone", "date_of_birth", "address")


def generate_employee_code(db: Session) -> str:
    """``EMP`` followed by the last six digits of the current millisecond timestamp."""
    code = f"EMP{str(int(time.time() * 1000))[-6:]}"
    while db.query(User.id).filter(User.employee_id == code).first():
        code = f"EMP{secrets.randbelow(1000000):06d}"
    return code


def _check_references(db: Session, department_id: Optional[int] = None, manager_id: Optional[int] = None):
    if department_id is not None and not db.query(Department.id).filter(Department.id == department_id).first():
        raise NotFoundError("Department not found")
    if manager_id is not None and not db.query(User.id).filter(User.id == manager_id).first():
        raise NotFoundError("Manager not found")


def create_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: UserRole = UserRole.EMPLOYEE,
    employee_id: Optional[str] = None,
    **fields,
) -> User:
    email = email.lower()
    if db.query(User.id).filter(User.email == email).first():
        raise ConflictError("User with this email already exists")
    if employee_id and db.query(User.id).filter(User.employee_id == employee_id).first():
        raise ConflictError("Employee ID already in use")
    _check_references(db, fields.get("department_id"), fields.get("manager_id"))

    user = User(
        name=name,
        email=email,
        hashed_password=hash_password(password),
        role=role,
        employee_id=employee_id or generate_employee_code(db),
        onboarding_status=OnboardingStatus.NOT_STARTED,
        **fields,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User created: {user.id} ({user.email}, {user.role.value})")
    return user


def get_employee(db: Session, employee_id: int) -> User:
    employee = (
        db.query(User)
        .options(joinedload(User.department))
        .filter(User.id == employee_id, User.role == UserRole.EMPLOYEE)
        .first()
    )
    if not employee:
        raise NotFoundError("Employee not found")
    return employee


def list_users(
    db: Session,
    role: Optional[UserRole] = None,
    department_id: Optional[int] = None,
    onboarding_status: Optional[OnboardingStatus] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = 1,
    limit: int = 20,
) -> Tuple[List[User], int]:
    query = db.query(User).options(joinedload(User.department))
    if role is not None:
        query = query.filter(User.role == role)
    if department_id is not None:
        query = query.filter(User.department_id == department_id)
    if onboarding_status is not None:
        query = query.filter(User.onboarding_status == onboarding_status)
    if is_active is not None:
        query = query.filter(User.is_active == is_active)
    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(User.name.ilike(pattern), User.email.ilike(pattern), User.employee_id.ilike(pattern)))

    total = query.count()
    users = query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * limit).limit(limit).all()
    return users, total


def update_user(db: Session, user: User, changes: dict, allowed_fields=EMPLOYEE_UPDATABLE_FIELDS) -> User:
    """Apply only allow-listed fields from ``changes``."""
    updates = {field: changes[field] for field in allowed_fields if field in changes}
    if "email" in updates and updates["email"]:
        updates["email"] = updates["email"].lower()
        clash = db.query(User.id).filter(User.email == updates["email"], User.id != user.id).first()
        if clash:
            raise ConflictError("User with this email already exists")
    _check_references(db, updates.get("department_id"), updates.get("manager_id"))

    for field, value in updates.items():
        setattr(user, field, value)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} updated: {', '.join(sorted(updates)) or 'no changes'}")
    return user


def delete_user(db: Session, storage: FileStorageService, user: User, hard: bool = False) -> bool:
    """Deactivate a user, or remove the row and its stored documents when ``hard``."""
    if not hard:
        user.is_active = False
        db.commit()
        logger.info(f"User {user.id} deactivated")
        return False

    file_paths = [document.file_path for document in user.documents]
    picture = storage.profile_picture_path(user.profile_picture)
    try:
        db.delete(user)
        db.commit()
    except Exception:
        db.rollback()
        raise

    for path in file_paths + ([picture] if picture else []):
        storage.delete_file(path)
    logger.info(f"User {user.id} permanently deleted")
    return True
