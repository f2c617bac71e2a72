# onboardpro/services/scheduler.py
"""
Optional in-process scheduler for the periodic onboarding jobs
"""

import logging
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from onboardpro.config import Settings
from onboardpro.database import SessionLocal
from onboardpro.services.email_service import Mailer
from onboardpro.services.overdue_service import (
    cleanup_read_notifications,
    mark_overdue,
    send_overdue_reminders,
)

logger = logging.getLogger(__name__)


class OnboardingScheduler:
    """Runs the overdue sweep, reminder fan-out and notification cleanup on a timer"""

    def __init__(self, mailer: Optional[Mailer] = None, config: Optional[Dict[str, Any]] = None):
        self.scheduler = AsyncIOScheduler()
        self.mailer = mailer
        self.config = config or Settings.SCHEDULER
        self.is_running = False

    def start(self):
        """Start the scheduler"""
        if self.is_running:
            return

        self.scheduler.add_job(
            self.run_mark_overdue,
            trigger=IntervalTrigger(minutes=self.config["overdue_interval_minutes"]),
            id="mark_overdue_tasks",
            name="Mark Overdue Tasks",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_overdue_reminders,
            trigger=CronTrigger(hour=self.config["reminder_hour"], minute=0),
            id="overdue_reminders",
            name="Daily Overdue Reminders",
            replace_existing=True,
        )
        self.scheduler.add_job(
            self.run_notification_cleanup,
            trigger=CronTrigger(hour=0, minute=0),
            id="cleanup_notifications",
            name="Cleanup Read Notifications",
            replace_existing=True,
        )

        self.scheduler.start()
        self.is_running = True
        logger.info("Onboarding scheduler started")

    def stop(self):
        """Stop the scheduler"""
        if self.is_running:
            self.scheduler.shutdown()
            self.is_running = False
            logger.info("Onboarding scheduler stopped")

    def run_mark_overdue(self):
        db = SessionLocal()
        try:
            mark_overdue(db)
        except Exception as e:
            logger.error(f"Error marking overdue tasks: {e}")
        finally:
            db.close()

    def run_overdue_reminders(self):
        db = SessionLocal()
        try:
            send_overdue_reminders(db, self.mailer)
        except Exception as e:
            logger.error(f"Error sending overdue reminders: {e}")
        finally:
            db.close()

    def run_notification_cleanup(self):
        db = SessionLocal()
        try:
            cleanup_read_notifications(db, self.config["notification_retention_days"])
        except Exception as e:
            logger.error(f"Error cleaning up notifications: {e}")
        finally:
            db.close()

    def get_status(self) -> Dict[str, Any]:
        """Get scheduler status and job information"""
        if not self.is_running:
            return {"status": "stopped", "enabled": self.config["enabled"], "jobs": []}

        jobs = [
            {
                "id": job.id,
                "name": job.name,
                "next_run_time": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        ]
        return {"status": "running", "enabled": True, "jobs": jobs}
