# onboardpro/models/employee_task.py
from sqlalchemy import Column, Integer, Text, Boolean, DateTime, ForeignKey, Enum, UniqueConstraint
from sqlalchemy.orm import relationship

from onboardpro.database import Base
from onboardpro.models.enums import TaskStatus, enum_values
from onboardpro.utils.dates import utcnow


class EmployeeTask(Base):
    """A template task instantiated for one employee."""

    __tablename__ = "employee_tasks"
    __table_args__ = (
        UniqueConstraint("employee_id", "task_id", name="uq_employee_task"),
    )

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id"), nullable=False, index=True)
    status = Column(
        Enum(TaskStatus, name="task_status", values_callable=enum_values),
        nullable=False,
        default=TaskStatus.PENDING,
        index=True,
    )
    assigned_date = Column(DateTime, default=utcnow, nullable=False)
    due_date = Column(DateTime, nullable=True)
    completed_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    is_read = Column(Boolean, default=False, nullable=False)
    assigned_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    employee = relationship("User", back_populates="employee_tasks", foreign_keys=[employee_id])
    assigner = relationship("User", foreign_keys=[assigned_by])
    task = relationship("Task", back_populates="employee_tasks")
    documents = relationship("Document", back_populates="employee_task")

    def __repr__(self):
        return f"<EmployeeTask(id={self.id}, employee_id={self.employee_id}, task_id={self.task_id}, status='{self.status}')>"
