# onboardpro/services/document_service.py
"""
Document upload and review.

Review decisions propagate to the linked assignment: approval completes it,
rejection reopens it, and removing the last document of an assignment
reopens it as well.
"""

import logging
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy.orm import Session, joinedload

from onboardpro.models import Document, DocumentStatus, EmployeeTask, TaskStatus, User
from onboardpro.services.file_storage import FileStorageService
from onboardpro.services.progress_service import apply_task_status, sync_onboarding_status
from onboardpro.utils.auth import ensure_owner_or_staff
from onboardpro.utils.dates import utcnow
from onboardpro.utils.errors import BadRequestError, NotFoundError

logger = logging.getLogger(__name__)


class DocumentService:
    @staticmethod
    def get_document(db: Session, document_id: int) -> Document:
        document = (
            db.query(Document)
            .options(joinedload(Document.employee), joinedload(Document.employee_task).joinedload(EmployeeTask.task))
            .filter(Document.id == document_id)
            .first()
        )
        if not document:
            raise NotFoundError("Document not found")
        return document

    @staticmethod
    def get_for_user(db: Session, document_id: int, user: User) -> Document:
        document = DocumentService.get_document(db, document_id)
        ensure_owner_or_staff(user, document.employee_id, "Access denied to this document")
        return document

    @staticmethod
    def list_documents(
        db: Session,
        status: Optional[DocumentStatus] = None,
        employee_id: Optional[int] = None,
        limit: int = 100,
    ) -> List[Document]:
        query = db.query(Document).options(joinedload(Document.employee))
        if status is not None:
            query = query.filter(Document.status == status)
        if employee_id is not None:
            query = query.filter(Document.employee_id == employee_id)
        return query.order_by(Document.uploaded_date.desc(), Document.id.desc()).limit(limit).all()

    @staticmethod
    def upload(
        db: Session,
        storage: FileStorageService,
        file: UploadFile,
        owner: User,
        employee_task_id: Optional[int] = None,
        document_type: Optional[str] = None,
        complete_task: bool = False,
    ) -> Document:
        """
        Store an uploaded file and record it

        Args:
            owner: Employee the document belongs to
            employee_task_id: Assignment the document is evidence for
            complete_task: Mark the linked assignment completed
        """
        employee_task = None
        if employee_task_id is not None:
            employee_task = db.query(EmployeeTask).filter(EmployeeTask.id == employee_task_id).first()
            if not employee_task:
                raise NotFoundError("Task not found")
            ensure_owner_or_staff(owner, employee_task.employee_id, "Access denied to this task")

        employee_id = employee_task.employee_id if employee_task else owner.id
        file_path, filename, file_size, mime_type = storage.save_file(file, employee_id)

        document = Document(
            employee_id=employee_id,
            employee_task_id=employee_task.id if employee_task else None,
            document_type=document_type,
            filename=filename,
            original_filename=file.filename,
            file_path=file_path,
            file_size=file_size,
            mime_type=mime_type,
            status=DocumentStatus.PENDING,
        )

        try:
            db.add(document)
            if employee_task is not None and complete_task:
                apply_task_status(employee_task, TaskStatus.COMPLETED)
                sync_onboarding_status(db, employee_task.employee)
            db.commit()
        except Exception:
            db.rollback()
            storage.delete_file(file_path)
            raise

        db.refresh(document)
        logger.info(f"Document {document.id} uploaded for employee {employee_id}")
        return document

    @staticmethod
    def approve(db: Session, document_id: int, reviewer: User) -> Document:
        document = DocumentService.get_document(db, document_id)

        try:
            document.status = DocumentStatus.APPROVED
            document.reviewed_by = reviewer.id
            document.reviewed_date = utcnow()
            document.rejection_reason = None
            if document.employee_task is not None:
                apply_task_status(document.employee_task, TaskStatus.COMPLETED)
                sync_onboarding_status(db, document.employee)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(document)
        logger.info(f"Document {document.id} approved by user {reviewer.id}")
        return document

    @staticmethod
    def reject(db: Session, document_id: int, reviewer: User, reason: Optional[str]) -> Document:
        if not reason or not reason.strip():
            raise BadRequestError("Rejection reason is required")

        document = DocumentService.get_document(db, document_id)

        try:
            document.status = DocumentStatus.REJECTED
            document.reviewed_by = reviewer.id
            document.reviewed_date = utcnow()
            document.rejection_reason = reason.strip()
            if document.employee_task is not None:
                apply_task_status(document.employee_task, TaskStatus.PENDING)
                sync_onboarding_status(db, document.employee)
            db.commit()
        except Exception:
            db.rollback()
            raise

        db.refresh(document)
        logger.info(f"Document {document.id} rejected by user {reviewer.id}")
        return document

    @staticmethod
    def delete(db: Session, storage: FileStorageService, document_id: int, user: User) -> dict:
        """Remove the stored file, then the row; reopen the assignment if no evidence is left."""
        document = DocumentService.get_for_user(db, document_id, user)
        employee_task = document.employee_task
        employee = document.employee

        storage.delete_file(document.file_path)

        reverted = False
        try:
            db.delete(document)
            db.flush()

            if employee_task is not None:
                remaining = (
                    db.query(Document.id)
                    .filter(
                        Document.employee_task_id == employee_task.id,
                        Document.employee_id == employee.id,
                    )
                    .count()
                )
                if remaining == 0:
                    apply_task_status(employee_task, TaskStatus.PENDING)
                    sync_onboarding_status(db, employee)
                    reverted = True
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Document {document_id} deleted by user {user.id}"
            + (f"; employee task {employee_task.id} reverted to pending" if reverted else "")
        )
        return {"id": document_id, "task_reverted": reverted}

