# onboardpro/routers/notifications.py
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from onboardpro.database import get_db
from onboardpro.models import Notification, User
from onboardpro.schemas import NotificationCreate, NotificationOut
from onboardpro.utils.auth import get_current_user, require_staff
from onboardpro.utils.dates import utcnow
from onboardpro.utils.errors import NotFoundError
from onboardpro.utils.notifications import create_notification
from onboardpro.utils.responses import success_response

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _own_notification(db: Session, notification_id: int, user: User) -> Notification:
    notification = (
        db.query(Notification)
        .filter(Notification.id == notification_id, Notification.user_id == user.id)
        .first()
    )
    if not notification:
        raise NotFoundError("Notification not found")
    return notification


@router.get("")
def get_notifications(
    limit: int = Query(20, ge=1, le=100),
    unread_only: bool = Query(False),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Most recent notifications of the signed-in user"""
    query = db.query(Notification).filter(Notification.user_id == current_user.id)
    if unread_only:
        query = query.filter(Notification.is_read == False)
    notifications = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()
    return success_response(
        "Notifications retrieved successfully",
        [NotificationOut.model_validate(notification) for notification in notifications],
    )


@router.get("/unread-count")
def unread_count(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Number of unread notifications"""
    count = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.is_read == False)
        .count()
    )
    return success_response("Unread count retrieved successfully", {"count": count})


@router.put("/read-all")
def mark_all_read(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Mark every notification of the signed-in user as read"""
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id, Notification.is_read == False)
        .update({Notification.is_read: True, Notification.read_at: utcnow()}, synchronize_session=False)
    )
    db.commit()
    return success_response("All notifications marked as read", {"updated": updated})


@router.delete("/clear-all")
def clear_all(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Delete every notification of the signed-in user"""
    deleted = (
        db.query(Notification)
        .filter(Notification.user_id == current_user.id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return success_response("All notifications cleared", {"deleted": deleted})


@router.put("/{notification_id}/read")
def mark_read(notification_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Mark one notification as read"""
    notification = _own_notification(db, notification_id, current_user)
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = utcnow()
        db.commit()
        db.refresh(notification)
    return success_response("Notification marked as read", NotificationOut.model_validate(notification))


@router.delete("/{notification_id}")
def delete_notification(notification_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Delete one notification"""
    notification = _own_notification(db, notification_id, current_user)
    db.delete(notification)
    db.commit()
    return success_response("Notification deleted successfully", {"id": notification_id})


@router.post("", status_code=status.HTTP_201_CREATED)
def send_notification(
    payload: NotificationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Create a notification for any user (HR/Admin)"""
    if not db.query(User.id).filter(User.id == payload.user_id).first():
        raise NotFoundError("User not found")
    notification = create_notification(db, **payload.model_dump())
    return success_response(
        "Notification created successfully",
        NotificationOut.model_validate(notification),
        status.HTTP_201_CREATED,
    )
