from .user import (
    UserCreate,
    UserLogin,
    UserOut,
    UserBasic,
    EmployeeCreate,
    EmployeeUpdate,
    ProfileUpdate,
    UserStatusUpdate,
    PasswordChange,
    ForgotPasswordRequest,
    ResetPasswordRequest,
)
from .tokens import Token, RefreshRequest
from .department import DepartmentCreate, DepartmentUpdate, DepartmentOut
from .template import (
    TaskCreate,
    TaskUpdate,
    TaskOut,
    TemplateCreate,
    TemplateUpdate,
    TemplateOut,
    TemplateDetailOut,
    AssignTemplateRequest,
)
from .employee_task import EmployeeTaskOut, TaskStatusUpdate, ProgressOut
from .document import DocumentOut, DocumentReject
from .notification import NotificationCreate, NotificationOut
from .activity_log import ActivityLogOut
