# onboardpro/utils/auth.py
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from onboardpro.database import get_db
from onboardpro.models import STAFF_ROLES, User, UserRole
from onboardpro.utils.errors import UnauthorizedError, ForbiddenError
from onboardpro.utils.security import decode_token

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login")


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    payload = decode_token(token)
    if payload is None or payload.get("sub") is None:
        raise UnauthorizedError("Invalid or expired token")

    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError("Invalid or expired token")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise UnauthorizedError("User not found")

    # Check if user is active
    if not user.is_active:
        raise UnauthorizedError("Account has been deactivated. Please contact administrator.")

    return user


def require_roles(*roles: UserRole):
    """Dependency factory restricting a route to the given roles."""
    allowed = set(roles)

    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if not current_user.has_role(*allowed):
            raise ForbiddenError("Access denied. Insufficient permissions.")
        return current_user

    return role_checker


require_staff = require_roles(*STAFF_ROLES)
require_admin = require_roles(UserRole.ADMIN)


def is_staff(user: User) -> bool:
    return user.has_role(*STAFF_ROLES)


def ensure_owner_or_staff(user: User, owner_id: int, detail: str = "Access denied"):
    """Raise 403 unless the caller owns the resource or holds an hr/admin role."""
    if user.id != owner_id and not is_staff(user):
        raise ForbiddenError(detail)
