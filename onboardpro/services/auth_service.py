# onboardpro/services/auth_service.py
"""
Credential checks: login lockout, password reset codes and password changes
"""

import logging
import math
from datetime import timedelta
from typing import Optional

from sqlalchemy.orm import Session

from onboardpro.config import Settings
from onboardpro.models import User
from onboardpro.utils.dates import utcnow
from onboardpro.utils.errors import BadRequestError, ForbiddenError, UnauthorizedError
from onboardpro.utils.security import generate_otp, hash_password, verify_password

logger = logging.getLogger(__name__)


def authenticate(db: Session, email: str, password: str) -> User:
    """Verify credentials, applying the failed-attempt lockout."""
    user = db.query(User).filter(User.email == email.lower()).first()
    if not user:
        logger.warning(f"Login attempt for unknown email: {email}")
        raise UnauthorizedError("Invalid email or password")

    now = utcnow()
    if user.account_locked_until and user.account_locked_until > now:
        minutes = math.ceil((user.account_locked_until - now).total_seconds() / 60)
        raise ForbiddenError(f"Account is locked. Try again in {minutes} minute(s).")

    if not user.is_active:
        raise ForbiddenError("Account is deactivated. Please contact administrator.")

    if not verify_password(password, user.hashed_password):
        user.login_attempts = (user.login_attempts or 0) + 1
        if user.login_attempts >= Settings.AUTH["max_login_attempts"]:
            user.account_locked_until = now + timedelta(minutes=Settings.AUTH["lockout_minutes"])
            user.login_attempts = 0
            logger.warning(f"Account locked after repeated failures: {user.email}")
        db.commit()
        logger.warning(f"Failed login for {user.email}")
        raise UnauthorizedError("Invalid email or password")

    user.login_attempts = 0
    user.account_locked_until = None
    user.last_login = now
    db.commit()
    db.refresh(user)
    logger.info(f"User logged in: {user.email}")
    return user


def start_password_reset(db: Session, email: str) -> Optional[str]:
    """Issue a reset code for an active user. Returns the code, or None for unknown emails."""
    user = db.query(User).filter(User.email == email.lower(), User.is_active == True).first()
    if not user:
        logger.info(f"Password reset requested for unknown email: {email}")
        return None

    otp = generate_otp()
    user.reset_password_token = otp
    user.reset_password_expires = utcnow() + timedelta(minutes=Settings.AUTH["otp_expire_minutes"])
    db.commit()
    logger.info(f"Password reset code issued for user {user.id}")
    return otp


def reset_password(db: Session, email: str, otp: str, new_password: str) -> User:
    user = (
        db.query(User)
        .filter(
            User.email == email.lower(),
            User.reset_password_token == otp,
            User.reset_password_expires > utcnow(),
        )
        .first()
    )
    if not user:
        raise BadRequestError("Invalid or expired OTP")

    user.hashed_password = hash_password(new_password)
    user.reset_password_token = None
    user.reset_password_expires = None
    user.login_attempts = 0
    user.account_locked_until = None
    db.commit()
    db.refresh(user)
    logger.info(f"Password reset successful for user {user.id}")
    return user


def change_password(db: Session, user: User, current_password: str, new_password: str) -> User:
    if not verify_password(current_password, user.hashed_password):
        logger.warning(f"Failed password change attempt for user {user.id}")
        raise UnauthorizedError("Current password is incorrect")
    if verify_password(new_password, user.hashed_password):
        raise BadRequestError("New password must be different from current password")

    user.hashed_password = hash_password(new_password)
    db.commit()
    logger.info(f"Password changed for user {user.id}")
    return user
