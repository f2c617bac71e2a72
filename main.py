import logging
import time

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from onboardpro.config import Settings
from onboardpro.config.logging_config import setup_logging
from onboardpro.database import check_connection, close_db, init_db
from onboardpro.routers import (
    admin,
    analytics,
    auth,
    dashboard,
    departments,
    documents,
    employees,
    notifications,
    tasks,
    templates,
)
from onboardpro.services.email_service import Mailer
from onboardpro.services.file_storage import FileStorageService
from onboardpro.services.scheduler import OnboardingScheduler
from onboardpro.utils.dates import utcnow
from onboardpro.utils.errors import describe_integrity_error
from onboardpro.utils.responses import error_response, success_response

setup_logging()
logger = logging.getLogger("onboardpro")

app = FastAPI(title="OnboardPro API", version="1.0.0")

app.state.mailer = Mailer.from_settings()
app.state.file_storage = FileStorageService.from_settings()
app.state.scheduler = None

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=Settings.cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    duration = (time.perf_counter() - started) * 1000
    logger.info(f"{request.method} {request.url.path} {response.status_code} {duration:.1f}ms")
    return response


# Error handling
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return error_response(str(exc.detail), exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in error["loc"] if part not in ("body", "query", "path")),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return error_response("Validation error", status.HTTP_400_BAD_REQUEST, errors=errors)


@app.exception_handler(IntegrityError)
async def integrity_exception_handler(request: Request, exc: IntegrityError):
    status_code, message = describe_integrity_error(exc)
    logger.warning(f"Integrity error on {request.method} {request.url.path}: {exc.orig}")
    return error_response(message, status_code)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return error_response(
        "Internal server error",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        error=str(exc) if Settings.is_development() else None,
    )


# Route registration
app.include_router(auth.router)
app.include_router(employees.router)
app.include_router(templates.router)
app.include_router(tasks.router)
app.include_router(documents.router)
app.include_router(notifications.router)
app.include_router(departments.router)
app.include_router(dashboard.router)
app.include_router(analytics.router)
app.include_router(admin.router)

app.mount(
    "/uploads/profiles",
    StaticFiles(directory=str(app.state.file_storage.profiles_dir)),
    name="profile-pictures",
)


# Startup and shutdown events
@app.on_event("startup")
async def startup_event():
    logger.info(f"Starting OnboardPro API ({Settings.ENVIRONMENT})...")
    init_db()
    app.state.mailer.open()
    if Settings.SCHEDULER["enabled"]:
        app.state.scheduler = OnboardingScheduler(mailer=app.state.mailer)
        app.state.scheduler.start()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Shutting down OnboardPro API...")
    if app.state.scheduler is not None:
        app.state.scheduler.stop()
        app.state.scheduler = None
    app.state.mailer.close()
    close_db()


@app.get("/")
def read_root():
    return {"message": "OnboardPro API"}


@app.get("/health")
def health():
    return success_response(
        "Server is running",
        {
            "timestamp": utcnow(),
            "environment": Settings.ENVIRONMENT,
            "database": "connected" if check_connection() else "unavailable",
        },
    )
