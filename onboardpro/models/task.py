# onboardpro/models/task.py
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship

from onboardpro.database import Base
from onboardpro.models.enums import TaskType, enum_values
from onboardpro.utils.dates import utcnow


class Task(Base):
    """One step of an onboarding template."""

    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    template_id = Column(Integer, ForeignKey("templates.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    task_type = Column(Enum(TaskType, name="task_type", values_callable=enum_values), nullable=False)
    is_required = Column(Boolean, default=True, nullable=False)
    estimated_time = Column(Integer, nullable=True)  # minutes
    order_index = Column(Integer, nullable=False, default=1)
    resource_url = Column(String(500), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    template = relationship("Template", back_populates="tasks")
    employee_tasks = relationship("EmployeeTask", back_populates="task")

    def __repr__(self):
        return f"<Task(id={self.id}, template_id={self.template_id}, title='{self.title}')>"
