# onboardpro/services/analytics_service.py
"""
Read-only aggregates for dashboards and the analytics routes
"""

import logging
from collections import Counter
from datetime import timedelta
from typing import Dict, List

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session, joinedload

from onboardpro.models import (
    Department,
    Document,
    DocumentStatus,
    EmployeeTask,
    OnboardingStatus,
    OPEN_TASK_STATUSES,
    Task,
    TaskStatus,
    User,
    UserRole,
)
from onboardpro.schemas import ActivityLogOut, DocumentOut, EmployeeTaskOut, UserBasic
from onboardpro.services.activity_service import recent_activity
from onboardpro.services.progress_service import calculate_percentage, get_progress
from onboardpro.utils.dates import days_between, period_start, start_of_day, utcnow
from onboardpro.utils.errors import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)

TREND_PERIODS = ("week", "month", "quarter", "year")


def _employees(db: Session):
    return db.query(User).filter(User.role == UserRole.EMPLOYEE, User.is_active == True)


def _overdue_filter(now):
    return or_(
        EmployeeTask.status == TaskStatus.OVERDUE,
        and_(EmployeeTask.status.in_(OPEN_TASK_STATUSES), EmployeeTask.due_date < now),
    )


def average_completion_days(employees: List[User]) -> float:
    """Mean of ``onboarding_completed_date - start_date`` over completed employees."""
    durations = [
        days_between(employee.start_date, employee.onboarding_completed_date)
        for employee in employees
        if employee.onboarding_status == OnboardingStatus.COMPLETED
    ]
    durations = [days for days in durations if days is not None]
    if not durations:
        return 0
    return round(sum(durations) / len(durations), 1)


def dashboard_stats(db: Session) -> Dict[str, float]:
    employees = _employees(db).all()
    statuses = Counter(OnboardingStatus(employee.onboarding_status).value for employee in employees)
    total = len(employees)
    completed = statuses[OnboardingStatus.COMPLETED.value]
    overdue_tasks = db.query(func.count(EmployeeTask.id)).filter(_overdue_filter(utcnow())).scalar() or 0
    pending_documents = (
        db.query(func.count(Document.id)).filter(Document.status == DocumentStatus.PENDING).scalar() or 0
    )

    return {
        "totalEmployees": total,
        "onboardingInProgress": statuses[OnboardingStatus.IN_PROGRESS.value],
        "onboardingCompleted": completed,
        "notStarted": statuses[OnboardingStatus.NOT_STARTED.value],
        "overdueTasks": overdue_tasks,
        "pendingDocuments": pending_documents,
        "averageCompletionDays": average_completion_days(employees),
        "completionRate": calculate_percentage(completed, total),
    }


def department_analytics(db: Session) -> List[dict]:
    departments = db.query(Department).order_by(Department.name).all()
    results = []
    for department in departments:
        employees = _employees(db).filter(User.department_id == department.id).all()
        statuses = Counter(OnboardingStatus(employee.onboarding_status).value for employee in employees)
        results.append({
            "departmentId": department.id,
            "departmentName": department.name,
            "totalEmployees": len(employees),
            "completed": statuses[OnboardingStatus.COMPLETED.value],
            "inProgress": statuses[OnboardingStatus.IN_PROGRESS.value],
            "notStarted": statuses[OnboardingStatus.NOT_STARTED.value],
            "completionRate": calculate_percentage(statuses[OnboardingStatus.COMPLETED.value], len(employees)),
            "averageCompletionDays": average_completion_days(employees),
        })
    return results


def task_status_distribution(db: Session) -> Dict[str, dict]:
    by_status = {status.value: 0 for status in TaskStatus}
    for status, count in db.query(EmployeeTask.status, func.count(EmployeeTask.id)).group_by(EmployeeTask.status).all():
        by_status[TaskStatus(status).value] = count

    by_type: Dict[str, int] = {}
    rows = (
        db.query(Task.task_type, func.count(EmployeeTask.id))
        .join(EmployeeTask, EmployeeTask.task_id == Task.id)
        .group_by(Task.task_type)
        .all()
    )
    for task_type, count in rows:
        by_type[task_type.value] = count

    return {"byStatus": by_status, "byType": by_type, "total": sum(by_status.values())}


def onboarding_trends(db: Session, period: str = "month") -> List[dict]:
    """Employees started and completed per day within the period."""
    if period not in TREND_PERIODS:
        raise BadRequestError(f"Invalid period. Use one of: {', '.join(TREND_PERIODS)}")

    start = period_start(period)
    today = start_of_day(utcnow())
    started = Counter()
    completed = Counter()
    for employee in _employees(db).all():
        started_on = employee.start_date or employee.created_at.date()
        if started_on >= start.date():
            started[started_on.isoformat()] += 1
        if employee.onboarding_completed_date and employee.onboarding_completed_date >= start:
            completed[employee.onboarding_completed_date.date().isoformat()] += 1

    trend = []
    day = start
    while day <= today:
        key = day.date().isoformat()
        trend.append({"date": key, "started": started[key], "completed": completed[key]})
        day += timedelta(days=1)
    return trend


def overdue_tasks(db: Session, limit: int = 50) -> List[dict]:
    now = utcnow()
    rows = (
        db.query(EmployeeTask)
        .options(joinedload(EmployeeTask.task), joinedload(EmployeeTask.employee))
        .filter(_overdue_filter(now))
        .order_by(EmployeeTask.due_date)
        .limit(limit)
        .all()
    )
    return [
        {
            "id": employee_task.id,
            "employeeId": employee_task.employee_id,
            "employeeName": employee_task.employee.name,
            "taskTitle": employee_task.task.title,
            "status": employee_task.status,
            "dueDate": employee_task.due_date,
            "daysOverdue": int(days_between(employee_task.due_date, now) or 0),
        }
        for employee_task in rows
    ]


def document_status(db: Session) -> Dict[str, dict]:
    by_status = {status.value: 0 for status in DocumentStatus}
    for status, count in db.query(Document.status, func.count(Document.id)).group_by(Document.status).all():
        by_status[DocumentStatus(status).value] = count
    by_type = {
        mime_type: count
        for mime_type, count in db.query(Document.mime_type, func.count(Document.id)).group_by(Document.mime_type).all()
    }
    return {"byStatus": by_status, "byMimeType": by_type, "total": sum(by_status.values())}


def time_to_completion(db: Session) -> dict:
    employees = _employees(db).all()
    durations = [
        days_between(employee.start_date, employee.onboarding_completed_date)
        for employee in employees
        if employee.onboarding_status == OnboardingStatus.COMPLETED
    ]
    durations = [days for days in durations if days is not None]
    return {
        "completedEmployees": len(durations),
        "averageDays": round(sum(durations) / len(durations), 1) if durations else 0,
        "minDays": round(min(durations), 1) if durations else 0,
        "maxDays": round(max(durations), 1) if durations else 0,
        "byDepartment": [
            {"departmentName": row["departmentName"], "averageDays": row["averageCompletionDays"]}
            for row in department_analytics(db)
        ],
    }


def employee_timeline(db: Session, employee_id: int) -> dict:
    employee = db.query(User).filter(User.id == employee_id).first()
    if not employee:
        raise NotFoundError("Employee not found")

    events = []
    employee_tasks = (
        db.query(EmployeeTask)
        .options(joinedload(EmployeeTask.task))
        .filter(EmployeeTask.employee_id == employee_id)
        .all()
    )
    for employee_task in employee_tasks:
        events.append({"date": employee_task.assigned_date, "event": "task_assigned", "title": employee_task.task.title})
        if employee_task.completed_date:
            events.append({"date": employee_task.completed_date, "event": "task_completed", "title": employee_task.task.title})
    for document in db.query(Document).filter(Document.employee_id == employee_id).all():
        events.append({"date": document.uploaded_date, "event": "document_uploaded", "title": document.original_filename})
        if document.reviewed_date:
            events.append({
                "date": document.reviewed_date,
                "event": f"document_{DocumentStatus(document.status).value}",
                "title": document.original_filename,
            })
    if employee.onboarding_completed_date:
        events.append({"date": employee.onboarding_completed_date, "event": "onboarding_completed", "title": employee.name})

    events.sort(key=lambda event: event["date"])
    return {
        "employee": UserBasic.model_validate(employee),
        "startDate": employee.start_date,
        "onboardingStatus": employee.onboarding_status,
        "progress": get_progress(db, employee_id),
        "events": events,
    }


def completion_trend(db: Session, employee_id: int, days: int = 7) -> List[dict]:
    """Assignments completed per day over the last ``days`` days, zero-filled."""
    today = start_of_day(utcnow())
    first_day = today - timedelta(days=days - 1)
    completed_dates = (
        db.query(EmployeeTask.completed_date)
        .filter(
            EmployeeTask.employee_id == employee_id,
            EmployeeTask.status == TaskStatus.COMPLETED,
            EmployeeTask.completed_date >= first_day,
        )
        .all()
    )
    counts = Counter(row[0].date().isoformat() for row in completed_dates if row[0])
    trend = []
    for offset in range(days):
        key = (first_day + timedelta(days=offset)).date().isoformat()
        trend.append({"date": key, "completed": counts[key]})
    return trend


def employee_dashboard(db: Session, user: User) -> dict:
    now = utcnow()
    base = db.query(EmployeeTask).options(joinedload(EmployeeTask.task)).filter(EmployeeTask.employee_id == user.id)
    upcoming = (
        base.filter(EmployeeTask.status.in_(OPEN_TASK_STATUSES))
        .order_by(EmployeeTask.due_date)
        .limit(5)
        .all()
    )
    overdue = base.filter(_overdue_filter(now)).order_by(EmployeeTask.due_date).all()
    documents = (
        db.query(Document)
        .filter(Document.employee_id == user.id)
        .order_by(Document.uploaded_date.desc(), Document.id.desc())
        .limit(5)
        .all()
    )

    return {
        "user": UserBasic.model_validate(user),
        "onboardingStatus": user.onboarding_status,
        "progress": get_progress(db, user.id),
        "pendingTasks": [EmployeeTaskOut.model_validate(et) for et in upcoming],
        "overdueTasks": [EmployeeTaskOut.model_validate(et) for et in overdue],
        "recentDocuments": [DocumentOut.model_validate(document) for document in documents],
        "completionTrend": completion_trend(db, user.id),
    }


def hr_dashboard(db: Session) -> dict:
    recent_employees = _employees(db).order_by(User.created_at.desc(), User.id.desc()).limit(5).all()
    pending_documents = (
        db.query(Document)
        .options(joinedload(Document.employee))
        .filter(Document.status == DocumentStatus.PENDING)
        .order_by(Document.uploaded_date.desc(), Document.id.desc())
        .limit(10)
        .all()
    )
    return {
        "stats": dashboard_stats(db),
        "recentEmployees": [
            {**UserBasic.model_validate(employee).model_dump(), "onboardingStatus": employee.onboarding_status,
             "progress": get_progress(db, employee.id)}
            for employee in recent_employees
        ],
        "pendingDocuments": [DocumentOut.model_validate(document) for document in pending_documents],
    }


def admin_dashboard(db: Session) -> dict:
    users_by_role = {role.value: 0 for role in UserRole}
    for role, count in db.query(User.role, func.count(User.id)).group_by(User.role).all():
        users_by_role[UserRole(role).value] = count

    return {
        "stats": dashboard_stats(db),
        "usersByRole": users_by_role,
        "departments": department_analytics(db),
        "recentActivity": [ActivityLogOut.model_validate(entry) for entry in recent_activity(db, limit=20)],
    }
