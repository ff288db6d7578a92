"""
File Delivery - resolve a resume id to its GridFS blob and stream it.

Two different 404s exist: the resume row is missing/inactive, or the row
is fine but its blob is gone (orphan metadata). Both surface as
NotFoundError; the blob case is logged separately.
"""

import uuid
from dataclasses import dataclass
from typing import Iterator, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.orm import sessionmaker

from resume_vault.core.errors import BlobNotFoundError, NotFoundError, ValidationError
from resume_vault.db.postgres import get_db_session
from resume_vault.models import Resume
from resume_vault.services.blob_store import PDF_CONTENT_TYPE
from resume_vault.utils.file_upload import sanitize_filename

logger = structlog.get_logger(__name__)

RESUME_FILE_PATH = "/api/resumes/{resume_id}/file"


def parse_resume_id(raw_id: str) -> str:
    """Canonical resume id, or ValidationError for anything that is not a UUID."""
    try:
        return str(uuid.UUID(str(raw_id)))
    except (ValueError, AttributeError, TypeError):
        raise ValidationError("Invalid resume ID.")


def file_url(resume_id: str, base_url: str = "") -> str:
    """Stable file link built from the resume id (never the blob id)."""
    return base_url.rstrip("/") + RESUME_FILE_PATH.format(resume_id=resume_id)


def file_url_for(resume: Resume, base_url: str = "") -> Optional[str]:
    return file_url(resume.id, base_url) if resume.blob_id else None


def download_filename(name: Optional[str]) -> str:
    return f"{sanitize_filename(name or 'resume')}.pdf"


@dataclass
class FileDownload:
    filename: str
    length: int
    chunks: Iterator[bytes]
    media_type: str = PDF_CONTENT_TYPE

    @property
    def headers(self) -> dict:
        return {
            "Content-Disposition": f'inline; filename="{self.filename}"',
            "Content-Length": str(self.length),
        }


class FileDelivery:
    def __init__(self, blob_store, session_factory: Optional[sessionmaker] = None):
        self.blob_store = blob_store
        self.session_factory = session_factory

    def open(self, raw_id: str) -> FileDownload:
        """
        Look up the active resume and open its blob.
        Everything that can 404 is checked before the first byte is sent.
        """
        resume_id = parse_resume_id(raw_id)
        with get_db_session(self.session_factory) as db:
            row = db.execute(
                select(Resume.blob_id, Resume.name).where(Resume.id == resume_id, Resume.is_active.is_(True))
            ).first()

        if row is None or not row.blob_id:
            raise NotFoundError("Resume or file not found.")

        try:
            stream = self.blob_store.open(row.blob_id)
        except BlobNotFoundError:
            logger.warning("orphan_metadata", resume_id=resume_id, blob_id=row.blob_id)
            raise NotFoundError("Resume or file not found.")

        return FileDownload(
            filename=download_filename(row.name),
            length=stream.info.length,
            chunks=iter(stream),
        )
