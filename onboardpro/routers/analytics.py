# onboardpro/routers/analytics.py
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from onboardpro.database import get_db
from onboardpro.models import User
from onboardpro.services import analytics_service
from onboardpro.utils.auth import require_staff
from onboardpro.utils.responses import success_response

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get("/dashboard-stats")
def dashboard_stats(db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Headline onboarding figures"""
    return success_response("Dashboard statistics retrieved successfully", analytics_service.dashboard_stats(db))


@router.get("/department")
def department_analytics(db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    return success_response("Department analytics retrieved successfully", analytics_service.department_analytics(db))


@router.get("/task-status")
def task_status_distribution(db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Count and share of assignments per status"""
    return success_response(
        "Task status distribution retrieved successfully", analytics_service.task_status_distribution(db)
    )


@router.get("/trends")
def onboarding_trends(
    period: str = Query("month"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """Employees started and completed per day over ``period`` (week, month, quarter, year)"""
    return success_response("Onboarding trends retrieved successfully", analytics_service.onboarding_trends(db, period))


@router.get("/overdue-tasks")
def overdue_tasks(
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    return success_response("Overdue tasks retrieved successfully", analytics_service.overdue_tasks(db, limit))


@router.get("/document-status")
def document_status(db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    return success_response("Document status retrieved successfully", analytics_service.document_status(db))


@router.get("/time-to-completion")
def time_to_completion(db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Average days from start date to completed onboarding"""
    return success_response(
        "Time to completion retrieved successfully", analytics_service.time_to_completion(db)
    )


@router.get("/employee/{employee_id}/timeline")
def employee_timeline(employee_id: int, db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Chronological assignment, document and completion events of one employee"""
    return success_response(
        "Employee timeline retrieved successfully", analytics_service.employee_timeline(db, employee_id)
    )
