# onboardpro/utils/errors.py
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class BadRequestError(HTTPException):
    def __init__(self, detail: str = "Bad request"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(HTTPException):
    def __init__(self, detail: str = "You do not have permission to perform this action"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Resource not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Resource already exists"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail)


class TooManyRequestsError(HTTPException):
    def __init__(self, detail: str = "Too many requests", headers: Optional[Dict[str, Any]] = None):
        super().__init__(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=detail, headers=headers)


# Database constraint violations mapped to user-facing responses.
# Keys are PostgreSQL SQLSTATE codes; the text fragments cover SQLite.
CONSTRAINT_ERRORS = {
    "23505": (status.HTTP_409_CONFLICT, "Resource already exists", "unique constraint failed"),
    "23503": (status.HTTP_400_BAD_REQUEST, "Referenced resource not found", "foreign key constraint failed"),
    "23502": (status.HTTP_400_BAD_REQUEST, "Required field missing", "not null constraint failed"),
}


def describe_integrity_error(exc) -> tuple:
    """Return (status_code, message) for an IntegrityError."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None)
    if code in CONSTRAINT_ERRORS:
        status_code, message, _ = CONSTRAINT_ERRORS[code]
        return status_code, message

    text = str(orig or exc).lower()
    for status_code, message, fragment in CONSTRAINT_ERRORS.values():
        if fragment in text:
            return status_code, message
    return status.HTTP_400_BAD_REQUEST, "Database constraint violation"
