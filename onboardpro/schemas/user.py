# onboardpro/schemas/user.py
import re
from datetime import date, datetime
from typing import Annotated, Optional

from pydantic import AfterValidator, BaseModel, EmailStr, Field, model_validator

from onboardpro.models.enums import UserRole, OnboardingStatus

PHONE_PATTERN = re.compile(r"^[\+]?[(]?[0-9]{3}[)]?[-\s\.]?[0-9]{3}[-\s\.]?[0-9]{4,6}$")


def _check_phone(value: Optional[str]) -> Optional[str]:
    if value is None or value == "":
        return None
    value = value.strip()
    if not PHONE_PATTERN.match(value):
        raise ValueError("Invalid phone number")
    return value


def _check_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not 2 <= len(value) <= 100:
        raise ValueError("Name must be between 2 and 100 characters")
    return value


PersonName = Annotated[str, AfterValidator(_check_name)]
OptionalName = Annotated[Optional[str], AfterValidator(_check_name)]
Phone = Annotated[Optional[str], AfterValidator(_check_phone)]


class UserCreate(BaseModel):
    name: PersonName
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: UserRole = UserRole.EMPLOYEE
    employee_id: Optional[str] = Field(None, max_length=50)
    phone: Phone = None
    department_id: Optional[int] = None
    position: Optional[str] = Field(None, max_length=100)
    start_date: Optional[date] = None


class UserLogin(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)


class EmployeeCreate(BaseModel):
    name: PersonName
    email: EmailStr
    password: Optional[str] = Field(None, min_length=6)
    employee_id: Optional[str] = Field(None, max_length=50)
    phone: Phone = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    department_id: Optional[int] = None
    manager_id: Optional[int] = None
    position: Optional[str] = Field(None, max_length=100)
    start_date: Optional[date] = None


class EmployeeUpdate(BaseModel):
    name: OptionalName = None
    email: Optional[EmailStr] = None
    phone: Phone = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    department_id: Optional[int] = None
    manager_id: Optional[int] = None
    position: Optional[str] = Field(None, max_length=100)
    start_date: Optional[date] = None
    onboarding_status: Optional[OnboardingStatus] = None
    is_active: Optional[bool] = None


class ProfileUpdate(BaseModel):
    name: OptionalName = None
    phone: Phone = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None


class UserStatusUpdate(BaseModel):
    is_active: Optional[bool] = None
    role: Optional[UserRole] = None


class PasswordChange(BaseModel):
    current_password: str = Field(..., alias="currentPassword", min_length=1)
    new_password: str = Field(..., alias="newPassword", min_length=6)
    confirm_password: str = Field(..., alias="confirmPassword")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    email: EmailStr
    otp: str = Field(..., pattern=r"^[0-9]{6}$")
    password: str = Field(..., min_length=8)
    confirm_password: Optional[str] = Field(None, alias="confirmPassword")

    class Config:
        populate_by_name = True

    @model_validator(mode="after")
    def passwords_match(self):
        if self.confirm_password and self.confirm_password != self.password:
            raise ValueError("Passwords do not match")
        return self


class UserBasic(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    employee_id: Optional[str] = None

    class Config:
        from_attributes = True


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    role: UserRole
    employee_id: Optional[str] = None
    phone: Phone = None
    date_of_birth: Optional[date] = None
    address: Optional[str] = None
    position: Optional[str] = None
    profile_picture: Optional[str] = None
    department_id: Optional[int] = None
    department_name: Optional[str] = None
    manager_id: Optional[int] = None
    start_date: Optional[date] = None
    onboarding_status: OnboardingStatus
    onboarding_completed_date: Optional[datetime] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
