# onboardpro/routers/auth.py
from fastapi import APIRouter, BackgroundTasks, Depends, File, Request, UploadFile, status
from sqlalchemy.orm import Session

from onboardpro.config import Settings
from onboardpro.database import get_db
from onboardpro.models import User
from onboardpro.schemas import (
    ForgotPasswordRequest,
    PasswordChange,
    ProfileUpdate,
    RefreshRequest,
    ResetPasswordRequest,
    Token,
    UserCreate,
    UserLogin,
    UserOut,
)
from onboardpro.services import auth_service, user_service
from onboardpro.services.activity_service import log_activity
from onboardpro.services.email_service import Mailer, get_mailer
from onboardpro.services.file_storage import FileStorageService, get_file_storage
from onboardpro.utils.auth import get_current_user
from onboardpro.utils.errors import BadRequestError, UnauthorizedError
from onboardpro.utils.responses import success_response
from onboardpro.utils.security import REFRESH_TOKEN, create_token_pair, decode_token

router = APIRouter(prefix="/auth", tags=["auth"])

RESET_REQUESTED_MESSAGE = "If an account exists with this email, a password reset code has been sent."


def _session_payload(user: User) -> Token:
    return Token(user=UserOut.model_validate(user), **create_token_pair(user))


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    payload: UserCreate,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Create an account and return a token pair"""
    user = user_service.create_user(
        db,
        name=payload.name,
        email=payload.email,
        password=payload.password,
        role=payload.role,
        employee_id=payload.employee_id,
        phone=payload.phone,
        department_id=payload.department_id,
        position=payload.position,
        start_date=payload.start_date,
    )
    log_activity(db, user.id, "register", "user", user.id, request=request)
    background_tasks.add_task(mailer.send_welcome_email, user.name, user.email)
    return success_response("User registered successfully", _session_payload(user), status.HTTP_201_CREATED)


@router.post("/login")
def login(payload: UserLogin, request: Request, db: Session = Depends(get_db)):
    """Exchange credentials for a token pair"""
    user = auth_service.authenticate(db, payload.email, payload.password)
    log_activity(db, user.id, "login", "user", user.id, request=request)
    return success_response("Login successful", _session_payload(user))


@router.post("/forgot-password")
def forgot_password(
    payload: ForgotPasswordRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
):
    """Email a six-digit reset code. The response never reveals whether the account exists."""
    otp = auth_service.start_password_reset(db, payload.email)
    if otp:
        user = db.query(User).filter(User.email == payload.email.lower()).first()
        background_tasks.add_task(
            mailer.send_password_reset_otp, user.name, user.email, otp, Settings.AUTH["otp_expire_minutes"]
        )
    return success_response(RESET_REQUESTED_MESSAGE)


@router.post("/reset-password")
def reset_password(payload: ResetPasswordRequest, db: Session = Depends(get_db)):
    """Set a new password using the emailed reset code"""
    user = auth_service.reset_password(db, payload.email, payload.otp, payload.password)
    return success_response(
        "Password reset successful. You can now login with your new password.",
        {"id": user.id, "email": user.email},
    )


@router.post("/refresh")
def refresh(payload: RefreshRequest, db: Session = Depends(get_db)):
    """Issue a new token pair from a refresh token"""
    claims = decode_token(payload.refresh_token, REFRESH_TOKEN)
    if claims is None or claims.get("sub") is None:
        raise UnauthorizedError("Invalid or expired refresh token")

    user = db.query(User).filter(User.id == int(claims["sub"])).first()
    if not user or not user.is_active:
        raise UnauthorizedError("Invalid or expired refresh token")

    return success_response("Token refreshed successfully", _session_payload(user))


@router.get("/profile")
def get_profile(current_user: User = Depends(get_current_user)):
    """Get the signed-in user's profile"""
    return success_response("Profile retrieved successfully", UserOut.model_validate(current_user))


@router.put("/profile")
def update_profile(
    payload: ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Update name, phone, date of birth or address"""
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise BadRequestError("At least one field is required to update")

    user = user_service.update_user(db, current_user, changes, allowed_fields=user_service.PROFILE_UPDATABLE_FIELDS)
    return success_response("Profile updated successfully", UserOut.model_validate(user))


@router.put("/change-password")
def change_password(
    payload: PasswordChange,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Change password after confirming the current one"""
    auth_service.change_password(db, current_user, payload.current_password, payload.new_password)
    log_activity(db, current_user.id, "change_password", "user", current_user.id, request=request)
    return success_response("Password changed successfully")


@router.post("/logout")
def logout(request: Request, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Tokens are stateless; the client discards them. Recorded for the audit trail."""
    log_activity(db, current_user.id, "logout", "user", current_user.id, request=request)
    return success_response("Logged out successfully")


@router.get("/verify")
def verify(current_user: User = Depends(get_current_user)):
    """Check that the bearer token is still valid"""
    return success_response("Token is valid", {"user": UserOut.model_validate(current_user)})


@router.post("/profile/picture")
def upload_profile_picture(
    file: UploadFile = File(...),
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    """Upload a JPEG or PNG profile picture"""
    file_path, _, _, _ = storage.save_file(
        file,
        current_user.id,
        category=FileStorageService.PROFILES,
        allowed_mime_types=Settings.FILE_UPLOAD["profile_picture_mime_types"],
    )
    previous = storage.profile_picture_path(current_user.profile_picture)
    current_user.profile_picture = storage.profile_picture_url(file_path)
    db.commit()
    if previous:
        storage.delete_file(previous)
    return success_response("Profile picture updated successfully", {"profile_picture": current_user.profile_picture})


@router.delete("/profile/picture")
def delete_profile_picture(
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    """Remove the current profile picture"""
    previous = storage.profile_picture_path(current_user.profile_picture)
    current_user.profile_picture = None
    db.commit()
    if previous:
        storage.delete_file(previous)
    return success_response("Profile picture removed successfully")
