# onboardpro/utils/notifications.py
"""
Utility functions for creating notifications
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from onboardpro.models import Notification, NotificationType, User, UserRole

logger = logging.getLogger(__name__)


def create_notification(
    db: Session,
    user_id: int,
    title: str,
    message: str,
    notification_type: NotificationType = NotificationType.SYSTEM,
    link: Optional[str] = None,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[int] = None,
) -> Notification:
    """
    Create a new notification for a user

    Args:
        db: Database session
        user_id: ID of the user to notify
        title: Notification title
        message: Notification message
        notification_type: Type of notification
        link: Optional frontend link
        related_entity_type: Type of related entity (e.g., 'employee_task', 'document')
        related_entity_id: ID of related entity

    Returns:
        Created notification object
    """
    notification = Notification(
        user_id=user_id,
        title=title,
        message=message,
        notification_type=notification_type,
        link=link,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
    )

    db.add(notification)
    db.commit()
    db.refresh(notification)

    return notification


def notify_safely(db: Session, **kwargs) -> Optional[Notification]:
    """Create a notification; failures are logged and never propagate."""
    try:
        return create_notification(db, **kwargs)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to create notification for user {kwargs.get('user_id')}: {str(e)}")
        return None


_TASK_CONTENT = {
    NotificationType.TASK_ASSIGNED: ("New Task Assigned", "You have been assigned a new onboarding task: {title}"),
    NotificationType.TASK_REMINDER: ("Task Reminder", "Reminder: your onboarding task '{title}' is still open"),
    NotificationType.TASK_COMPLETED: ("Task Completed", "{employee} completed the onboarding task: {title}"),
    NotificationType.DOCUMENT_UPLOADED: ("Document Uploaded", "{employee} uploaded a document for review: {title}"),
    NotificationType.DOCUMENT_APPROVED: ("Document Approved", "Your document '{title}' has been approved"),
    NotificationType.DOCUMENT_REJECTED: ("Document Rejected", "Your document '{title}' was rejected. Reason: {reason}"),
}


def create_task_notification(
    db: Session,
    user_id: int,
    notification_type: NotificationType,
    title: str,
    employee: str = "",
    reason: str = "",
    link: Optional[str] = None,
    related_entity_type: Optional[str] = None,
    related_entity_id: Optional[int] = None,
) -> Optional[Notification]:
    """Create one of the standard onboarding notifications, swallowing failures."""
    heading, template = _TASK_CONTENT[notification_type]
    return notify_safely(
        db,
        user_id=user_id,
        title=heading,
        message=template.format(title=title, employee=employee, reason=reason),
        notification_type=notification_type,
        link=link,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
    )


def notify_staff(db: Session, notification_type: NotificationType, title: str, employee: str, **kwargs) -> int:
    """Send a standard notification to every active HR user. Returns the count sent."""
    staff = db.query(User).filter(User.role == UserRole.HR, User.is_active == True).all()
    sent = 0
    for member in staff:
        if create_task_notification(db, member.id, notification_type, title, employee=employee, **kwargs):
            sent += 1
    return sent
