# onboardpro/routers/dashboard.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from onboardpro.database import get_db
from onboardpro.models import User
from onboardpro.services.analytics_service import admin_dashboard, employee_dashboard, hr_dashboard
from onboardpro.utils.auth import get_current_user, require_admin, require_staff
from onboardpro.utils.responses import success_response

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/employee")
def get_employee_dashboard(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Progress, upcoming tasks and recent documents of the signed-in user"""
    return success_response("Dashboard data retrieved successfully", employee_dashboard(db, current_user))


@router.get("/hr")
def get_hr_dashboard(db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Organisation-wide onboarding overview for HR"""
    return success_response("Dashboard data retrieved successfully", hr_dashboard(db))


@router.get("/admin")
def get_admin_dashboard(db: Session = Depends(get_db), current_user: User = Depends(require_admin)):
    return success_response("Dashboard data retrieved successfully", admin_dashboard(db))
