"""
Ingestion Orchestrator - turns an uploaded PDF into a stored resume.

Pipeline (strictly in order):
1. validate      - presence, size ceiling, %PDF signature
2. extract       - best-effort metadata, falls back to the filename
3. normalize     - caller value > extracted value > fallback, clamp lengths
4. blob_upload   - GridFS write (compensated by deleting the blob)
5. resolve_tags  - find-or-create companies/keywords, per-name failures skipped
6. commit        - one metadata transaction creating the resume row

The blob write and the metadata commit are in different stores, so there is
no shared transaction: a failure after step 4 deletes the blob again
(best effort). A crash in that window leaves an orphan blob for the
OrphanSweeper.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from resume_vault.core.errors import DatabaseError, StorageError, ValidationError
from resume_vault.db.postgres import get_db_session
from resume_vault.models import Company, Keyword, Resume
from resume_vault.models.tables import FIELD_MAX_LENGTH
from resume_vault.services.blob_store import PDF_CONTENT_TYPE
from resume_vault.services.extractor import UNSPECIFIED, ExtractedMetadata
from resume_vault.services.saga import Saga, SagaStep
from resume_vault.services.tag_resolver import TagKind, TagRef, TagResolver
from resume_vault.utils.file_upload import filename_stem, sanitize_filename

logger = structlog.get_logger(__name__)

PDF_SIGNATURE = b"%PDF"
ELLIPSIS = "..."


@dataclass
class UploadRequest:
    content: Optional[bytes]
    filename: Optional[str]
    uploaded_by: str
    name: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[str] = None
    companies: Optional[List[str]] = None
    keywords: Optional[List[str]] = None


@dataclass
class IngestionResult:
    id: str
    name: str
    major: str
    graduation_year: str
    companies: List[str]
    keywords: List[str]
    parsing_warning: Optional[str]
    created_at: Optional[datetime] = None


@dataclass
class _IngestionContext:
    request: UploadRequest
    display_name: str
    stage: str = "initialization"
    extracted: Optional[ExtractedMetadata] = None
    parsing_warning: Optional[str] = None
    name: str = ""
    major: str = ""
    graduation_year: str = ""
    company_names: List[str] = field(default_factory=list)
    keyword_names: List[str] = field(default_factory=list)
    blob_id: Optional[str] = None
    company_refs: List[TagRef] = field(default_factory=list)
    keyword_refs: List[TagRef] = field(default_factory=list)
    resume_id: Optional[str] = None
    created_at: Optional[datetime] = None


def clamp_text(value: str, limit: int = FIELD_MAX_LENGTH) -> str:
    """Truncate to limit characters, marking the cut with an ellipsis."""
    if len(value) <= limit:
        return value
    return value[: limit - len(ELLIPSIS)] + ELLIPSIS


def clamp_graduation_year(value: str, limit: int = FIELD_MAX_LENGTH) -> str:
    """An over-long year is never meaningful, so it becomes Unspecified."""
    return UNSPECIFIED if len(value) > limit else value


def dedupe_and_cap(items: List[str], cap: int) -> List[str]:
    """Drop blanks and exact duplicates (order kept), then keep the first cap."""
    unique = []
    for item in items:
        item = item.strip() if isinstance(item, str) else ""
        if item and item not in unique:
            unique.append(item)
    return unique[:cap]


def _first_filled(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


class IngestionOrchestrator:
    """
    Usage:
        orchestrator = IngestionOrchestrator(blob_store, extractor, TagResolver(factory), factory)
        result = orchestrator.ingest(UploadRequest(content=data, filename="alice.pdf", uploaded_by="u1"))
    """

    def __init__(
        self,
        blob_store,
        extractor,
        tag_resolver: TagResolver,
        session_factory: Optional[sessionmaker] = None,
        max_upload_bytes: int = 10 * 1024 * 1024,
        max_tags: int = 100,
    ):
        self.blob_store = blob_store
        self.extractor = extractor
        self.tag_resolver = tag_resolver
        self.session_factory = session_factory
        self.max_upload_bytes = max_upload_bytes
        self.max_tags = max_tags

    def ingest(self, request: UploadRequest) -> IngestionResult:
        display_name = request.filename or "Unnamed file"
        log = logger.bind(upload=display_name, size=len(request.content or b""))
        context = _IngestionContext(request=request, display_name=display_name)

        saga = Saga(
            [
                SagaStep("validation", self._validate),
                SagaStep("resume_parsing", self._extract),
                SagaStep("data_processing", self._normalize),
                SagaStep("blob_upload", self._upload_blob, compensation=self._delete_blob),
                SagaStep("tag_resolution", self._resolve_tags),
                SagaStep("database_create", self._commit),
            ],
            log=log,
        )
        log.info("ingestion_started")
        try:
            saga.run(context)
        except Exception as e:
            log.error("ingestion_failed", stage=context.stage, error=str(e))
            raise
        log.info("ingestion_completed", resume_id=context.resume_id, blob_id=context.blob_id)

        return IngestionResult(
            id=context.resume_id,
            name=context.name,
            major=context.major,
            graduation_year=context.graduation_year,
            companies=[ref.name for ref in _unique_refs(context.company_refs)],
            keywords=[ref.name for ref in _unique_refs(context.keyword_refs)],
            parsing_warning=context.parsing_warning,
            created_at=context.created_at,
        )

    # ------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------

    def _validate(self, ctx: _IngestionContext) -> None:
        content = ctx.request.content
        if content is None:
            raise ValidationError("No PDF file uploaded.")
        if len(content) == 0:
            raise ValidationError("Empty file content.")
        if len(content) > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes // (1024 * 1024)
            raise ValidationError(f"File too large. Maximum file size is {limit_mb}MB.")
        if content[:4] != PDF_SIGNATURE:
            raise ValidationError("Invalid PDF file format.")

    def _extract(self, ctx: _IngestionContext) -> None:
        stem = filename_stem(ctx.request.filename)
        try:
            ctx.extracted = self.extractor.extract(ctx.request.content, stem)
        except Exception as e:
            ctx.parsing_warning = str(e) or "Unknown parsing error"
            ctx.extracted = ExtractedMetadata.fallback(stem)
            logger.warning("extraction_failed_using_fallback", upload=ctx.display_name, error=ctx.parsing_warning)

    def _normalize(self, ctx: _IngestionContext) -> None:
        req, extracted = ctx.request, ctx.extracted
        stem = filename_stem(req.filename)

        name = _first_filled(req.name, extracted.name, stem) or f"Unknown_Resume_{int(time.time() * 1000)}"
        major = _first_filled(req.major, extracted.major) or UNSPECIFIED
        graduation_year = _first_filled(req.graduation_year, extracted.graduation_year) or UNSPECIFIED

        ctx.name = clamp_text(name)
        ctx.major = clamp_text(major)
        ctx.graduation_year = clamp_graduation_year(graduation_year)

        companies = req.companies if req.companies else (extracted.companies or [])
        keywords = req.keywords if req.keywords else (extracted.keywords or [])
        ctx.company_names = dedupe_and_cap(companies, self.max_tags)
        ctx.keyword_names = dedupe_and_cap(keywords, self.max_tags)

    def _upload_blob(self, ctx: _IngestionContext) -> None:
        safe_name = sanitize_filename(ctx.request.filename or f"resume_{int(time.time() * 1000)}.pdf")
        try:
            ctx.blob_id = self.blob_store.upload(ctx.request.content, safe_name, PDF_CONTENT_TYPE)
        except StorageError as e:
            raise StorageError(
                f'Error storing the file for resume "{ctx.display_name}". Please try again.',
                details=e.details or e.message,
            ) from e

    def _delete_blob(self, ctx: _IngestionContext) -> None:
        if ctx.blob_id:
            self.blob_store.delete(ctx.blob_id)

    def _resolve_tags(self, ctx: _IngestionContext) -> None:
        ctx.company_refs = self.tag_resolver.resolve_many(TagKind.company, ctx.company_names)
        ctx.keyword_refs = self.tag_resolver.resolve_many(TagKind.keyword, ctx.keyword_names)

    def _commit(self, ctx: _IngestionContext) -> None:
        try:
            with get_db_session(self.session_factory) as db:
                resume = Resume(
                    name=ctx.name,
                    major=ctx.major,
                    graduation_year=ctx.graduation_year,
                    blob_id=ctx.blob_id,
                    uploaded_by=ctx.request.uploaded_by,
                )
                resume.companies = [db.get(Company, ref.id) for ref in _unique_refs(ctx.company_refs)]
                resume.keywords = [db.get(Keyword, ref.id) for ref in _unique_refs(ctx.keyword_refs)]
                db.add(resume)
                db.flush()
                ctx.resume_id = resume.id
                ctx.created_at = resume.created_at
        except SQLAlchemyError as e:
            raise DatabaseError(
                f'Failed to save resume "{ctx.display_name}".',
                details=str(e),
            ) from e


def _unique_refs(refs: List[TagRef]) -> List[TagRef]:
    """Distinct names can normalize to the same tag ("google" / "GOOGLE")."""
    seen, unique = set(), []
    for ref in refs:
        if ref.id not in seen:
            seen.add(ref.id)
            unique.append(ref)
    return unique
