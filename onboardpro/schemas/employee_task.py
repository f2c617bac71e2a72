# onboardpro/schemas/employee_task.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from onboardpro.models.enums import TaskStatus, TaskType


class TaskSummary(BaseModel):
    id: int
    template_id: int
    title: str
    description: Optional[str] = None
    task_type: TaskType
    is_required: bool
    estimated_time: Optional[int] = None
    order_index: int
    resource_url: Optional[str] = None

    class Config:
        from_attributes = True


class EmployeeTaskOut(BaseModel):
    id: int
    employee_id: int
    task_id: int
    status: TaskStatus
    assigned_date: datetime
    due_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None
    notes: Optional[str] = None
    is_read: bool
    assigned_by: Optional[int] = None
    task: Optional[TaskSummary] = None

    class Config:
        from_attributes = True


class TaskStatusUpdate(BaseModel):
    status: TaskStatus
    notes: Optional[str] = Field(None, max_length=500)


class ProgressOut(BaseModel):
    total: int = 0
    completed: int = 0
    pending: int = 0
    in_progress: int = 0
    overdue: int = 0
    percentage: float = 0
