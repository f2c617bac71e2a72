# onboardpro/services/file_storage.py
import logging
import time
import uuid
from collections import defaultdict, deque
from pathlib import Path
from typing import Dict, Optional, Set, Tuple

import magic
from fastapi import UploadFile, Request
from sqlalchemy.orm import Session

from onboardpro.config import Settings
from onboardpro.models import Document
from onboardpro.utils.errors import BadRequestError, TooManyRequestsError

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024

# Executable headers refused regardless of the declared content type
EXECUTABLE_SIGNATURES = {
    b"\x4d\x5a": "PE executable",
    b"\x7f\x45\x4c\x46": "ELF executable",
    b"\xfe\xed\xfa": "Mach-O executable",
    b"\xce\xfa\xed\xfe": "Mach-O executable",
    b"\xca\xfe\xba\xbe": "Java class file",
    b"#!": "Script",
}

CONTAINER_MIME_TYPES = {
    ("application/zip", ".docx"): "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ("application/x-ole-storage", ".doc"): "application/msword",
    ("application/cdfv2", ".doc"): "application/msword",
}


class FileStorageService:
    """Service for handling document and profile picture uploads on disk"""

    DOCUMENTS = "documents"
    PROFILES = "profiles"

    def __init__(
        self,
        upload_dir: str = "uploads",
        max_file_size: int = 10 * 1024 * 1024,
        allowed_mime_types: Optional[Set[str]] = None,
        allowed_extensions: Optional[Set[str]] = None,
        rate_limits: Optional[Dict[str, int]] = None,
    ):
        self.upload_dir = Path(upload_dir)
        self.max_file_size = max_file_size
        self.allowed_mime_types = allowed_mime_types or set(Settings.FILE_UPLOAD["allowed_mime_types"])
        self.allowed_extensions = allowed_extensions or set(Settings.FILE_UPLOAD["allowed_extensions"])
        self.rate_limits = rate_limits or dict(Settings.RATE_LIMITS)

        # Track uploads per user
        self.user_uploads = defaultdict(lambda: {
            "uploads": deque(),
            "size_uploads": deque(),
            "last_cleanup": time.time(),
        })

        self.upload_dir.mkdir(parents=True, exist_ok=True)
        (self.upload_dir / self.DOCUMENTS).mkdir(exist_ok=True)
        (self.upload_dir / self.PROFILES).mkdir(exist_ok=True)

    @classmethod
    def from_settings(cls) -> "FileStorageService":
        return cls(
            upload_dir=Settings.FILE_UPLOAD["upload_dir"],
            max_file_size=Settings.FILE_UPLOAD["max_file_size"],
        )

    @property
    def profiles_dir(self) -> Path:
        return self.upload_dir / self.PROFILES

    def _cleanup_old_uploads(self, user_id: int):
        """Drop rate-limit records older than one day"""
        current_time = time.time()
        user_data = self.user_uploads[user_id]

        while user_data["uploads"] and current_time - user_data["uploads"][0] > 86400:
            user_data["uploads"].popleft()
        while user_data["size_uploads"] and current_time - user_data["size_uploads"][0][0] > 86400:
            user_data["size_uploads"].popleft()

        user_data["last_cleanup"] = current_time

    def _check_rate_limits(self, user_id: int, file_size: int) -> Tuple[bool, str]:
        """Check if user has exceeded rate limits"""
        current_time = time.time()
        user_data = self.user_uploads[user_id]

        if current_time - user_data["last_cleanup"] > 300:
            self._cleanup_old_uploads(user_id)

        minute_ago = current_time - 60
        hour_ago = current_time - 3600
        day_ago = current_time - 86400

        uploads_last_minute = sum(1 for t in user_data["uploads"] if t > minute_ago)
        uploads_last_hour = sum(1 for t in user_data["uploads"] if t > hour_ago)
        uploads_last_day = sum(1 for t in user_data["uploads"] if t > day_ago)

        if uploads_last_minute >= self.rate_limits["uploads_per_minute"]:
            return False, f"Upload rate limit exceeded: {self.rate_limits['uploads_per_minute']} uploads per minute"
        if uploads_last_hour >= self.rate_limits["uploads_per_hour"]:
            return False, f"Upload rate limit exceeded: {self.rate_limits['uploads_per_hour']} uploads per hour"
        if uploads_last_day >= self.rate_limits["uploads_per_day"]:
            return False, f"Upload rate limit exceeded: {self.rate_limits['uploads_per_day']} uploads per day"

        size_last_hour = sum(size for t, size in user_data["size_uploads"] if t > hour_ago)
        size_last_day = sum(size for t, size in user_data["size_uploads"] if t > day_ago)

        if size_last_hour + file_size > self.rate_limits["total_size_per_hour"]:
            return False, f"Size limit exceeded: {self.rate_limits['total_size_per_hour'] // (1024 * 1024)}MB per hour"
        if size_last_day + file_size > self.rate_limits["total_size_per_day"]:
            return False, f"Size limit exceeded: {self.rate_limits['total_size_per_day'] // (1024 * 1024)}MB per day"

        return True, ""

    def _record_upload(self, user_id: int, file_size: int):
        current_time = time.time()
        user_data = self.user_uploads[user_id]
        user_data["uploads"].append(current_time)
        user_data["size_uploads"].append((current_time, file_size))

    def detect_mime_type(self, file_path: Path) -> str:
        """Sniff the stored bytes with libmagic"""
        actual = magic.from_file(str(file_path), mime=True).lower()
        # Older libmagic builds report Office files by their container format
        return CONTAINER_MIME_TYPES.get((actual, file_path.suffix.lower()), actual)

    def validate_mime_type(self, file_path: Path, allowed_mime_types: Set[str]) -> Tuple[bool, str, str]:
        """
        Validate the actual content type of a stored file

        Returns:
            Tuple of (is_valid, error_message, actual_mime_type)
        """
        actual_mime_type = self.detect_mime_type(file_path)
        if actual_mime_type not in allowed_mime_types:
            return False, f"File content type '{actual_mime_type}' is not allowed", actual_mime_type
        return True, "", actual_mime_type

    def validate_file(self, file: UploadFile) -> Tuple[bool, str]:
        """
        Validate an upload's name and declared size before it is written

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not file.filename:
            return False, "File must have a filename"

        if file.size and file.size > self.max_file_size:
            return False, f"File size exceeds maximum allowed size of {self.max_file_size / (1024 * 1024):.1f}MB"

        if any(pattern in file.filename for pattern in ("..", "/", "\\", "<", ">", "|", "\x00")):
            return False, "Filename contains invalid characters"

        file_ext = Path(file.filename).suffix.lower()
        if file_ext not in self.allowed_extensions:
            return False, f"File type '{file_ext}' is not allowed"

        return True, ""

    @staticmethod
    def check_signature(header: bytes) -> Tuple[bool, str]:
        for signature, description in EXECUTABLE_SIGNATURES.items():
            if header.startswith(signature):
                return False, f"Uploaded content looks like a {description}"
        return True, ""

    def generate_unique_filename(self, original_filename: str) -> str:
        file_ext = Path(original_filename).suffix.lower()
        return f"{uuid.uuid4()}{file_ext}"

    def save_file(
        self,
        file: UploadFile,
        owner_id: int,
        category: str = DOCUMENTS,
        allowed_mime_types: Optional[Set[str]] = None,
    ) -> Tuple[str, str, int, str]:
        """
        Save an uploaded file under ``<upload_dir>/<category>/<owner_id>/``

        Returns:
            Tuple of (file_path, stored_filename, file_size, mime_type)
        """
        is_valid, error_msg = self.validate_file(file)
        if not is_valid:
            raise BadRequestError(error_msg)

        rate_ok, rate_error = self._check_rate_limits(owner_id, file.size or 0)
        if not rate_ok:
            raise TooManyRequestsError(rate_error)

        target_dir = self.upload_dir / category / str(owner_id)
        target_dir.mkdir(parents=True, exist_ok=True)
        unique_filename = self.generate_unique_filename(file.filename)
        file_path = target_dir / unique_filename

        file_size = 0
        header = b""
        with open(file_path, "wb") as buffer:
            while True:
                chunk = file.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                if not header:
                    header = chunk[:16]
                file_size += len(chunk)
                if file_size > self.max_file_size:
                    break
                buffer.write(chunk)

        if file_size > self.max_file_size:
            file_path.unlink()
            raise BadRequestError(
                f"File size exceeds maximum allowed size of {self.max_file_size / (1024 * 1024):.1f}MB"
            )
        if file_size == 0:
            file_path.unlink()
            raise BadRequestError("Uploaded file is empty")

        signature_ok, signature_error = self.check_signature(header)
        if not signature_ok:
            file_path.unlink()
            logger.warning(f"Rejected upload from user {owner_id}: {signature_error}")
            raise BadRequestError(signature_error)

        mime_ok, mime_error, mime_type = self.validate_mime_type(
            file_path, allowed_mime_types or self.allowed_mime_types
        )
        if not mime_ok:
            file_path.unlink()
            logger.warning(f"Rejected upload from user {owner_id}: {mime_error}")
            raise BadRequestError("Invalid file type. Only JPEG, PNG, PDF, and Word documents are allowed.")

        self._record_upload(owner_id, file_size)

        logger.info(f"File saved successfully: {file_path}")
        return str(file_path), unique_filename, file_size, mime_type

    def delete_file(self, file_path: Optional[str]) -> bool:
        """
        Delete file from disk. A missing file counts as already deleted.

        Returns:
            True if a file was removed, False if there was nothing to remove
        """
        if not file_path:
            return False
        path = Path(file_path)
        if path.exists():
            path.unlink()
            logger.info(f"File deleted successfully: {file_path}")
            return True
        logger.warning(f"File not found for deletion: {file_path}")
        return False

    def exists(self, file_path: Optional[str]) -> bool:
        return bool(file_path) and Path(file_path).is_file()

    def profile_picture_url(self, file_path: str) -> str:
        """Public URL of a stored profile picture under the static mount"""
        path = Path(file_path)
        return f"/uploads/profiles/{path.parent.name}/{path.name}"

    def profile_picture_path(self, url: Optional[str]) -> Optional[str]:
        if not url or not url.startswith("/uploads/profiles/"):
            return None
        return str(self.profiles_dir / url[len("/uploads/profiles/"):])

    def cleanup_orphaned_files(self, db: Session) -> int:
        """Remove stored documents no longer referenced by any Document row"""
        db_file_paths = {row[0] for row in db.query(Document.file_path).all()}
        deleted_count = 0
        for owner_dir in (self.upload_dir / self.DOCUMENTS).iterdir():
            if not owner_dir.is_dir():
                continue
            for file_path in owner_dir.iterdir():
                if file_path.is_file() and str(file_path) not in db_file_paths:
                    if self.delete_file(str(file_path)):
                        deleted_count += 1

        logger.info(f"Cleaned up {deleted_count} orphaned files")
        return deleted_count

    def get_storage_stats(self) -> dict:
        total_size = 0
        file_count = 0
        for file_path in self.upload_dir.rglob("*"):
            if file_path.is_file():
                total_size += file_path.stat().st_size
                file_count += 1
        return {
            "total_files": file_count,
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "upload_directory": str(self.upload_dir),
        }


def get_file_storage(request: Request) -> FileStorageService:
    return request.app.state.file_storage
