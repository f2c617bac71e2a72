# onboardpro/routers/admin.py
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from onboardpro.database import get_db
from onboardpro.models import User, UserRole
from onboardpro.schemas import ActivityLogOut, UserOut, UserStatusUpdate
from onboardpro.services import user_service
from onboardpro.services.activity_service import find_activity, log_activity
from onboardpro.services.email_service import Mailer, get_mailer
from onboardpro.services.file_storage import FileStorageService, get_file_storage
from onboardpro.services.overdue_service import mark_overdue, send_overdue_reminders
from onboardpro.utils.auth import require_admin
from onboardpro.utils.errors import BadRequestError, NotFoundError
from onboardpro.utils.responses import paginated_response, success_response

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/users")
def list_users(
    role: Optional[UserRole] = Query(None),
    is_active: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Every account in the system, any role"""
    users, total = user_service.list_users(
        db, role=role, is_active=is_active, search=search, page=page, limit=limit
    )
    data = [UserOut.model_validate(user) for user in users]
    return paginated_response("Users retrieved successfully", data, page, limit, total)


@router.put("/users/{user_id}/status")
def update_user_status(
    user_id: int,
    payload: UserStatusUpdate,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    """Activate, deactivate or change the role of an account"""
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")
    if user.id == current_user.id and (payload.is_active is False or (payload.role and payload.role != UserRole.ADMIN)):
        raise BadRequestError("You cannot deactivate or demote your own account")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(user, field, value)
    if changes.get("is_active"):
        user.login_attempts = 0
        user.account_locked_until = None
    db.commit()
    db.refresh(user)

    log_activity(db, current_user.id, "update_user_status", "user", user.id, changes, request)
    return success_response("User status updated successfully", UserOut.model_validate(user))


@router.get("/activity-logs")
def activity_logs(
    user_id: Optional[int] = Query(None),
    action: Optional[str] = Query(None),
    entity_type: Optional[str] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin),
):
    entries = find_activity(db, user_id=user_id, action=action, entity_type=entity_type, limit=limit)
    return success_response(
        "Activity logs retrieved successfully",
        [ActivityLogOut.model_validate(entry) for entry in entries],
    )


@router.post("/jobs/mark-overdue")
def run_mark_overdue(db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    """Run the overdue sweep now"""
    updated = mark_overdue(db)
    return success_response("Overdue tasks marked successfully", {"updated": updated})


@router.post("/jobs/send-overdue-reminders")
def run_overdue_reminders(
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(require_admin),
):
    """Notify and email every employee with overdue tasks now"""
    result = send_overdue_reminders(db, mailer)
    return success_response("Overdue reminders sent successfully", result)


@router.get("/scheduler/status")
def scheduler_status(request: Request, current_user: User = Depends(require_admin)):
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        data = {"status": "disabled", "enabled": False, "jobs": []}
    else:
        data = scheduler.get_status()
    return success_response("Scheduler status retrieved successfully", data)


@router.get("/storage/stats")
def storage_stats(storage: FileStorageService = Depends(get_file_storage), current_user: User = Depends(require_admin)):
    return success_response("Storage statistics retrieved successfully", storage.get_storage_stats())


@router.post("/storage/cleanup")
def cleanup_storage(
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(require_admin),
):
    """Delete stored documents that no database row points at"""
    deleted = storage.cleanup_orphaned_files(db)
    return success_response("Orphaned files removed", {"deleted": deleted})
