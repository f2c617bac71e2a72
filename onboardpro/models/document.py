# onboardpro/models/document.py
from sqlalchemy import Column, Integer, String, Text, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship

from onboardpro.database import Base
from onboardpro.models.enums import DocumentStatus, enum_values
from onboardpro.utils.dates import utcnow


class Document(Base):
    __tablename__ = "documents"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    employee_task_id = Column(Integer, ForeignKey("employee_tasks.id", ondelete="SET NULL"), nullable=True, index=True)
    document_type = Column(String(100), nullable=True)
    filename = Column(String(255), nullable=False)  # Stored filename (with UUID)
    original_filename = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False)
    status = Column(
        Enum(DocumentStatus, name="document_status", values_callable=enum_values),
        nullable=False,
        default=DocumentStatus.PENDING,
        index=True,
    )
    reviewed_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    reviewed_date = Column(DateTime, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    uploaded_date = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    employee = relationship("User", back_populates="documents", foreign_keys=[employee_id])
    reviewer = relationship("User", foreign_keys=[reviewed_by])
    employee_task = relationship("EmployeeTask", back_populates="documents")

    @property
    def employee_name(self):
        return self.employee.name if self.employee else None

    @property
    def task_title(self):
        if self.employee_task and self.employee_task.task:
            return self.employee_task.task.title
        return None

    def __repr__(self):
        return f"<Document(id={self.id}, employee_id={self.employee_id}, status='{self.status}')>"
