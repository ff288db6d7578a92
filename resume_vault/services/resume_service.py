"""
Resume Service - detail, update and delete for stored resumes.

Deletion is soft: is_active flips to False and the blob is queued for
removal in the same transaction. The actual GridFS delete happens later,
outside the request, via BlobCleanupQueue.
"""

from typing import List, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from resume_vault.core.auth import Principal
from resume_vault.core.errors import DatabaseError, NotFoundError, PermissionDeniedError
from resume_vault.db.postgres import get_db_session
from resume_vault.models import Company, Keyword, Resume
from resume_vault.schemas.schemas import ResumeDetail, ResumeSummary, UploaderRef
from resume_vault.services.blob_cleanup import BlobCleanupQueue
from resume_vault.services.file_delivery import file_url_for, parse_resume_id
from resume_vault.services.ingestion import clamp_graduation_year, clamp_text
from resume_vault.services.search import project_summary
from resume_vault.services.tag_resolver import TagKind, TagResolver

logger = structlog.get_logger(__name__)


def _get_active(db: Session, resume_id: str) -> Resume:
    resume = db.execute(
        select(Resume).where(Resume.id == resume_id, Resume.is_active.is_(True))
    ).scalar_one_or_none()
    if resume is None:
        raise NotFoundError("Resume not found.")
    return resume


def _filled(value: Optional[str]) -> Optional[str]:
    """Stripped value, or None when nothing usable was supplied."""
    value = value.strip() if value else ""
    return value or None


def _check_permission(principal: Principal, resume: Resume) -> None:
    if not principal.can_modify(resume.uploaded_by):
        raise PermissionDeniedError("Permission denied.")


class ResumeService:
    def __init__(self, tag_resolver: TagResolver, session_factory: Optional[sessionmaker] = None):
        self.tag_resolver = tag_resolver
        self.session_factory = session_factory

    def get_detail(self, raw_id: str, base_url: str = "") -> ResumeDetail:
        resume_id = parse_resume_id(raw_id)
        with get_db_session(self.session_factory) as db:
            resume = _get_active(db, resume_id)
            return ResumeDetail(
                id=resume.id,
                name=resume.name,
                major=resume.major,
                graduation_year=resume.graduation_year,
                file_url=file_url_for(resume, base_url),
                companies=resume.company_names,
                keywords=resume.keyword_names,
                uploader=UploaderRef(id=resume.uploaded_by) if resume.uploaded_by else None,
                created_at=resume.created_at,
                updated_at=resume.updated_at,
            )

    def update(
        self,
        raw_id: str,
        principal: Principal,
        name: Optional[str] = None,
        major: Optional[str] = None,
        graduation_year: Optional[str] = None,
        companies: Optional[List[str]] = None,
        keywords: Optional[List[str]] = None,
        base_url: str = "",
    ) -> ResumeSummary:
        """
        Update fields in place. Blank or missing text fields are left alone;
        supplied ones are trimmed and clamped like at upload.

        Supplied tag lists replace the existing ones. They are resolved as
        given, without de-duplication; resolution itself is idempotent.
        """
        resume_id = parse_resume_id(raw_id)
        name, major, graduation_year = _filled(name), _filled(major), _filled(graduation_year)

        # Existence and permission are checked before any tag gets created
        with get_db_session(self.session_factory) as db:
            _check_permission(principal, _get_active(db, resume_id))

        company_refs = self.tag_resolver.resolve_many(TagKind.company, companies) if companies is not None else None
        keyword_refs = self.tag_resolver.resolve_many(TagKind.keyword, keywords) if keywords is not None else None

        try:
            with get_db_session(self.session_factory) as db:
                resume = _get_active(db, resume_id)
                _check_permission(principal, resume)
                if name:
                    resume.name = clamp_text(name)
                if major:
                    resume.major = clamp_text(major)
                if graduation_year:
                    resume.graduation_year = clamp_graduation_year(graduation_year)
                if company_refs is not None:
                    resume.companies = [db.get(Company, ref.id) for ref in company_refs]
                if keyword_refs is not None:
                    resume.keywords = [db.get(Keyword, ref.id) for ref in keyword_refs]
                db.flush()
                summary = project_summary(resume, base_url)
        except SQLAlchemyError as e:
            raise DatabaseError("Error updating resume.", details=str(e)) from e

        logger.info("resume_updated", resume_id=resume_id, by=principal.id)
        return summary

    def soft_delete(self, raw_id: str, principal: Principal) -> str:
        """
        Deactivate one resume and queue its blob.
        Returns the blob id so the caller can schedule the cleanup.
        """
        resume_id = parse_resume_id(raw_id)
        try:
            with get_db_session(self.session_factory) as db:
                resume = _get_active(db, resume_id)
                _check_permission(principal, resume)
                resume.is_active = False
                BlobCleanupQueue.enqueue(db, resume.blob_id, resume_id=resume.id, reason="soft_delete")
                blob_id = resume.blob_id
        except SQLAlchemyError as e:
            raise DatabaseError("Error deleting resume.", details=str(e)) from e

        logger.info("resume_deleted", resume_id=resume_id, blob_id=blob_id, by=principal.id)
        return blob_id

    def soft_delete_all(self, principal: Principal) -> List[str]:
        """
        Deactivate every active resume in one bulk update (admins only).
        Returns the queued blob ids.
        """
        if not principal.is_admin:
            raise PermissionDeniedError("Permission denied. Admin access required.")

        try:
            with get_db_session(self.session_factory) as db:
                rows = db.execute(
                    select(Resume.id, Resume.blob_id).where(Resume.is_active.is_(True))
                ).all()
                if not rows:
                    raise NotFoundError("No active resumes found to delete.")

                ids = [row.id for row in rows]
                db.execute(
                    update(Resume)
                    .where(Resume.id.in_(ids))
                    .values(is_active=False)
                    .execution_options(synchronize_session=False)
                )
                for row in rows:
                    BlobCleanupQueue.enqueue(db, row.blob_id, resume_id=row.id, reason="delete_all")
        except SQLAlchemyError as e:
            raise DatabaseError("Error deleting all resumes.", details=str(e)) from e

        logger.info("resumes_deleted", count=len(rows), by=principal.id)
        return [row.blob_id for row in rows if row.blob_id]
