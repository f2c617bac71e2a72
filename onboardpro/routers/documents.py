# onboardpro/routers/documents.py
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, Query, Request, UploadFile, status
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session

from onboardpro.database import get_db
from onboardpro.models import Document, DocumentStatus, NotificationType, User
from onboardpro.schemas import DocumentOut, DocumentReject
from onboardpro.services.activity_service import log_activity
from onboardpro.services.document_service import DocumentService
from onboardpro.services.email_service import Mailer, get_mailer
from onboardpro.services.file_storage import FileStorageService, get_file_storage
from onboardpro.utils.auth import get_current_user, require_staff
from onboardpro.utils.errors import NotFoundError
from onboardpro.utils.notifications import create_task_notification, notify_staff
from onboardpro.utils.responses import success_response

router = APIRouter(prefix="/documents", tags=["documents"])


def _review_side_effects(db: Session, background_tasks: BackgroundTasks, mailer: Mailer, document: Document, approved: bool):
    notification_type = NotificationType.DOCUMENT_APPROVED if approved else NotificationType.DOCUMENT_REJECTED
    create_task_notification(
        db,
        document.employee_id,
        notification_type,
        document.original_filename,
        reason=document.rejection_reason or "",
        link="/documents",
        related_entity_type="document",
        related_entity_id=document.id,
    )
    employee = document.employee
    background_tasks.add_task(
        mailer.send_document_reviewed_email,
        employee.name,
        employee.email,
        document.original_filename,
        approved,
        document.rejection_reason,
    )


@router.post("/upload", status_code=status.HTTP_201_CREATED)
def upload_document(
    request: Request,
    file: UploadFile = File(...),
    employee_task_id: Optional[int] = Form(None),
    document_type: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    """Upload a document, optionally as evidence for one assignment"""
    document = DocumentService.upload(
        db, storage, file, current_user, employee_task_id=employee_task_id, document_type=document_type
    )
    notify_staff(
        db,
        NotificationType.DOCUMENT_UPLOADED,
        document.original_filename,
        employee=document.employee.name,
        link="/documents/pending",
        related_entity_type="document",
        related_entity_id=document.id,
    )
    log_activity(db, current_user.id, "upload_document", "document", document.id, request=request)
    return success_response("Document uploaded successfully", DocumentOut.model_validate(document), status.HTTP_201_CREATED)


@router.get("/my-documents")
def my_documents(db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Documents of the signed-in user"""
    documents = DocumentService.list_documents(db, employee_id=current_user.id)
    return success_response("Documents retrieved successfully", [DocumentOut.model_validate(d) for d in documents])


@router.get("/pending")
def pending_documents(db: Session = Depends(get_db), current_user: User = Depends(require_staff)):
    """Documents awaiting review"""
    documents = DocumentService.list_documents(db, status=DocumentStatus.PENDING)
    return success_response("Pending documents retrieved successfully", [DocumentOut.model_validate(d) for d in documents])


@router.get("")
def list_documents(
    status_filter: Optional[DocumentStatus] = Query(None, alias="status"),
    employee_id: Optional[int] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_staff),
):
    """All documents, filterable by status and employee"""
    documents = DocumentService.list_documents(db, status=status_filter, employee_id=employee_id, limit=limit)
    return success_response("Documents retrieved successfully", [DocumentOut.model_validate(d) for d in documents])


@router.get("/{document_id}")
def get_document(document_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_user)):
    """Document metadata (owner or HR/Admin)"""
    document = DocumentService.get_for_user(db, document_id, current_user)
    return success_response("Document retrieved successfully", DocumentOut.model_validate(document))


@router.get("/{document_id}/download")
def download_document(
    document_id: int,
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    """Stream the stored file back (owner or HR/Admin)"""
    document = DocumentService.get_for_user(db, document_id, current_user)
    if not storage.exists(document.file_path):
        raise NotFoundError("File not found on server")
    return FileResponse(document.file_path, media_type=document.mime_type, filename=document.original_filename)


@router.put("/{document_id}/approve")
def approve_document(
    document_id: int,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(require_staff),
):
    """Approve a document and complete its linked assignment"""
    document = DocumentService.approve(db, document_id, current_user)
    _review_side_effects(db, background_tasks, mailer, document, approved=True)
    log_activity(db, current_user.id, "approve_document", "document", document.id, request=request)
    return success_response("Document approved successfully", DocumentOut.model_validate(document))


@router.put("/{document_id}/reject")
def reject_document(
    document_id: int,
    payload: DocumentReject,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    current_user: User = Depends(require_staff),
):
    """Reject a document with a reason and reopen its linked assignment"""
    document = DocumentService.reject(db, document_id, current_user, payload.reason)
    _review_side_effects(db, background_tasks, mailer, document, approved=False)
    log_activity(db, current_user.id, "reject_document", "document", document.id, {"reason": payload.reason}, request)
    return success_response("Document rejected successfully", DocumentOut.model_validate(document))


@router.delete("/{document_id}")
def delete_document(
    document_id: int,
    request: Request,
    db: Session = Depends(get_db),
    storage: FileStorageService = Depends(get_file_storage),
    current_user: User = Depends(get_current_user),
):
    """Delete a document (owner or HR/Admin)"""
    result = DocumentService.delete(db, storage, document_id, current_user)
    log_activity(db, current_user.id, "delete_document", "document", document_id, result, request)
    return success_response("Document deleted successfully", result)
