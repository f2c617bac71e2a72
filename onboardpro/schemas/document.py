# onboardpro/schemas/document.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from onboardpro.models.enums import DocumentStatus


class DocumentOut(BaseModel):
    id: int
    employee_id: int
    employee_name: Optional[str] = None
    employee_task_id: Optional[int] = None
    task_title: Optional[str] = None
    document_type: Optional[str] = None
    filename: str
    original_filename: str
    file_size: int
    mime_type: str
    status: DocumentStatus
    reviewed_by: Optional[int] = None
    reviewed_date: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    uploaded_date: datetime

    class Config:
        from_attributes = True


class DocumentReject(BaseModel):
    reason: str = Field(..., max_length=1000)

    @field_validator("reason")
    @classmethod
    def reason_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Rejection reason is required")
        return v.strip()
