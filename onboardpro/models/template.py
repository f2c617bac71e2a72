# onboardpro/models/template.py
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from onboardpro.database import Base
from onboardpro.utils.dates import utcnow


class Template(Base):
    __tablename__ = "templates"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    department_id = Column(Integer, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True, index=True)
    estimated_completion_days = Column(Integer, nullable=True, default=7)
    is_active = Column(Boolean, default=True, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    department = relationship("Department", back_populates="templates")
    creator = relationship("User", foreign_keys=[created_by])
    tasks = relationship(
        "Task",
        back_populates="template",
        order_by="Task.order_index",
        cascade="all, delete-orphan",
    )

    @property
    def department_name(self):
        return self.department.name if self.department else None

    @property
    def task_count(self) -> int:
        return len(self.tasks)

    def __repr__(self):
        return f"<Template(id={self.id}, name='{self.name}', active={self.is_active})>"
