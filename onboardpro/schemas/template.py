# onboardpro/schemas/template.py
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from onboardpro.models.enums import TaskType


class TaskBase(BaseModel):
    title: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    task_type: TaskType
    is_required: bool = True
    estimated_time: Optional[int] = Field(None, ge=1)
    order_index: Optional[int] = Field(None, ge=1)
    resource_url: Optional[str] = Field(None, max_length=500)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Task title must be between 2 and 200 characters")
        return v


class TaskCreate(TaskBase):
    pass


class TaskUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    task_type: Optional[TaskType] = None
    is_required: Optional[bool] = None
    estimated_time: Optional[int] = Field(None, ge=1)
    order_index: Optional[int] = Field(None, ge=1)
    resource_url: Optional[str] = Field(None, max_length=500)


class TaskOut(BaseModel):
    id: int
    template_id: int
    title: str
    description: Optional[str] = None
    task_type: TaskType
    is_required: bool
    estimated_time: Optional[int] = None
    order_index: int
    resource_url: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TemplateBase(BaseModel):
    name: str = Field(..., min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    department_id: Optional[int] = None
    estimated_completion_days: Optional[int] = Field(None, ge=1, le=365)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v):
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Template name must be between 2 and 200 characters")
        return v


class TemplateCreate(TemplateBase):
    tasks: List[TaskCreate] = []


class TemplateUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=200)
    description: Optional[str] = Field(None, max_length=1000)
    department_id: Optional[int] = None
    estimated_completion_days: Optional[int] = Field(None, ge=1, le=365)
    is_active: Optional[bool] = None
    # Supplying tasks replaces every existing task of the template
    tasks: Optional[List[TaskCreate]] = None


class TemplateOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    estimated_completion_days: Optional[int] = None
    is_active: bool
    created_by: Optional[int] = None
    task_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TemplateDetailOut(TemplateOut):
    tasks: List[TaskOut] = []


class AssignTemplateRequest(BaseModel):
    template_id: int = Field(..., alias="templateId")

    class Config:
        populate_by_name = True
