# onboardpro/models/user.py
from sqlalchemy import Column, Integer, String, Text, Boolean, Date, DateTime, ForeignKey, Enum
from sqlalchemy.orm import relationship

from onboardpro.database import Base
from onboardpro.models.enums import UserRole, OnboardingStatus, enum_values
from onboardpro.utils.dates import utcnow


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    hashed_password = Column(String(255), nullable=False)
    role = Column(Enum(UserRole, name="user_role", values_callable=enum_values), nullable=False, default=UserRole.EMPLOYEE)
    employee_id = Column(String(50), unique=True, index=True, nullable=True)

    phone = Column(String(30), nullable=True)
    date_of_birth = Column(Date, nullable=True)
    address = Column(Text, nullable=True)
    position = Column(String(100), nullable=True)
    profile_picture = Column(String(500), nullable=True)

    department_id = Column(Integer, ForeignKey("departments.id", ondelete="SET NULL"), nullable=True, index=True)
    manager_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Onboarding lifecycle
    start_date = Column(Date, nullable=True)
    onboarding_status = Column(
        Enum(OnboardingStatus, name="onboarding_status", values_callable=enum_values),
        nullable=False,
        default=OnboardingStatus.NOT_STARTED,
    )
    onboarding_completed_date = Column(DateTime, nullable=True)

    # Account state
    is_active = Column(Boolean, default=True, nullable=False)
    login_attempts = Column(Integer, default=0, nullable=False)
    account_locked_until = Column(DateTime, nullable=True)
    last_login = Column(DateTime, nullable=True)
    reset_password_token = Column(String(255), nullable=True)
    reset_password_expires = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    department = relationship("Department", back_populates="employees", foreign_keys=[department_id])
    manager = relationship("User", remote_side=[id])
    employee_tasks = relationship(
        "EmployeeTask",
        back_populates="employee",
        foreign_keys="EmployeeTask.employee_id",
        cascade="all, delete-orphan",
    )
    documents = relationship(
        "Document",
        back_populates="employee",
        foreign_keys="Document.employee_id",
        cascade="all, delete-orphan",
    )
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    @property
    def department_name(self):
        return self.department.name if self.department else None

    def has_role(self, *roles) -> bool:
        return self.role in roles

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}', role='{self.role}')>"
