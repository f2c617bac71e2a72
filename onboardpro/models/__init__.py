from .enums import (
    UserRole,
    OnboardingStatus,
    TaskType,
    TaskStatus,
    DocumentStatus,
    NotificationType,
    STAFF_ROLES,
    OPEN_TASK_STATUSES,
)
from .user import User
from .department import Department
from .template import Template
from .task import Task
from .employee_task import EmployeeTask
from .document import Document
from .notification import Notification
from .activity_log import ActivityLog
