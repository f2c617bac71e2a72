# onboardpro/services/email_service.py
"""
Outbound email for onboarding events.

A single Mailer is built at startup and shared through ``app.state``.
Every public ``send_*`` helper returns a bool and never raises.
"""

import logging
import smtplib
from email.message import EmailMessage
from html import escape, unescape
from typing import Iterable, List, Optional

from fastapi import Request

from onboardpro.config import Settings

logger = logging.getLogger(__name__)


class Mailer:
    """SMTP-backed mail transport"""

    def __init__(
        self,
        host: str,
        port: int = 587,
        user: str = "",
        password: str = "",
        from_address: str = "noreply@onboardpro.local",
        use_tls: bool = True,
        timeout: int = 10,
        frontend_url: str = "http://localhost:3000",
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.from_address = from_address
        self.use_tls = use_tls
        self.timeout = timeout
        self.frontend_url = frontend_url.rstrip("/")
        self.sent_count = 0

    @classmethod
    def from_settings(cls) -> "Mailer":
        smtp = Settings.SMTP
        return cls(
            host=smtp["host"],
            port=smtp["port"],
            user=smtp["user"],
            password=smtp["password"],
            from_address=smtp["from_address"],
            use_tls=smtp["use_tls"],
            timeout=smtp["timeout"],
            frontend_url=Settings.FRONTEND_URL,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.host)

    def open(self):
        if self.enabled:
            logger.info(f"Mailer ready ({self.host}:{self.port})")
        else:
            logger.warning("SMTP host not configured, outgoing email is disabled")

    def close(self):
        logger.info(f"Mailer closed after {self.sent_count} message(s)")

    def deliver(self, message: EmailMessage):
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.use_tls:
                server.starttls()
            if self.user:
                server.login(self.user, self.password)
            server.send_message(message)

    def send(self, to: str, subject: str, html: str, text: Optional[str] = None) -> bool:
        """Build and deliver one message; failures are logged, not raised."""
        if not self.enabled:
            logger.info(f"Email to {to} skipped (SMTP disabled): {subject}")
            return False

        message = EmailMessage()
        message["Subject"] = subject
        message["From"] = self.from_address
        message["To"] = to
        message.set_content(text or _strip_tags(html))
        message.add_alternative(html, subtype="html")

        try:
            self.deliver(message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to}: {str(e)}")
            return False

        self.sent_count += 1
        logger.info(f"Email sent to {to}: {subject}")
        return True

    # Message builders

    def send_welcome_email(self, name: str, email: str, temporary_password: Optional[str] = None) -> bool:
        login_url = f"{self.frontend_url}/login"
        password_line = (
            f"<p>Your temporary password is <strong>{escape(temporary_password)}</strong>. Please change it after signing in.</p>"
            if temporary_password
            else ""
        )
        html = (
            f"<h2>Welcome to OnboardPro, {escape(name)}!</h2>"
            f"<p>Your account has been created. You can sign in at <a href=\"{login_url}\">{login_url}</a>.</p>"
            f"{password_line}"
        )
        return self.send(email, "Welcome to OnboardPro", html)

    def send_password_reset_otp(self, name: str, email: str, otp: str, expires_minutes: int) -> bool:
        html = (
            f"<p>Hello {escape(name)},</p>"
            f"<p>Your password reset code is <strong>{otp}</strong>.</p>"
            f"<p>The code expires in {expires_minutes} minutes. If you did not request a reset, ignore this email.</p>"
        )
        return self.send(email, "Your OnboardPro password reset code", html)

    def send_template_assigned_email(self, name: str, email: str, template_name: str, task_count: int, due_date) -> bool:
        due = due_date.strftime("%B %d, %Y") if due_date else "soon"
        html = (
            f"<p>Hello {escape(name)},</p>"
            f"<p>The onboarding plan <strong>{escape(template_name)}</strong> has been assigned to you "
            f"with {task_count} task(s). Please complete them by {due}.</p>"
            f"<p><a href=\"{self.frontend_url}/tasks\">View your tasks</a></p>"
        )
        return self.send(email, f"New onboarding tasks: {template_name}", html)

    def send_task_reminder_email(self, name: str, email: str, task_titles: Iterable[str], overdue: bool = False) -> bool:
        titles: List[str] = list(task_titles)
        items = "".join(f"<li>{escape(title)}</li>" for title in titles)
        heading = "The following tasks are overdue" if overdue else "You still have open onboarding tasks"
        html = f"<p>Hello {escape(name)},</p><p>{heading}:</p><ul>{items}</ul>"
        subject = "Overdue onboarding tasks" if overdue else "Onboarding task reminder"
        return self.send(email, subject, html)

    def send_document_reviewed_email(
        self, name: str, email: str, filename: str, approved: bool, reason: Optional[str] = None
    ) -> bool:
        if approved:
            subject = "Your document has been approved"
            body = f"<p>Your document <strong>{escape(filename)}</strong> has been approved.</p>"
        else:
            subject = "Your document needs attention"
            body = (
                f"<p>Your document <strong>{escape(filename)}</strong> was rejected.</p>"
                f"<p>Reason: {escape(reason or '')}</p><p>Please upload a corrected version.</p>"
            )
        return self.send(email, subject, f"<p>Hello {escape(name)},</p>{body}")


def _strip_tags(html: str) -> str:
    out, inside = [], False
    for char in html:
        if char == "<":
            inside = True
        elif char == ">":
            inside = False
            out.append(" ")
        elif not inside:
            out.append(char)
    return unescape(" ".join("".join(out).split()))


def get_mailer(request: Request) -> Mailer:
    return request.app.state.mailer
