"""
Dependency providers. Tests swap these through app.dependency_overrides.
"""

from datetime import timedelta
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import sessionmaker

from resume_vault.core.config import get_settings
from resume_vault.db.mongodb import get_gridfs_bucket
from resume_vault.db.postgres import get_session_factory
from resume_vault.services.blob_cleanup import BlobCleanupQueue, OrphanSweeper
from resume_vault.services.blob_store import GridFSBlobStore
from resume_vault.services.deepseek_client import get_deepseek_client
from resume_vault.services.extractor import ResumeExtractor
from resume_vault.services.file_delivery import FileDelivery
from resume_vault.services.ingestion import IngestionOrchestrator
from resume_vault.services.resume_service import ResumeService
from resume_vault.services.search import SearchCompiler
from resume_vault.services.tag_resolver import TagResolver


@lru_cache()
def get_blob_store() -> GridFSBlobStore:
    return GridFSBlobStore(get_gridfs_bucket())


def get_extractor() -> ResumeExtractor:
    return ResumeExtractor(get_deepseek_client())


def get_tag_resolver(factory: sessionmaker = Depends(get_session_factory)) -> TagResolver:
    return TagResolver(factory)


def get_ingestion_orchestrator(
    blob_store=Depends(get_blob_store),
    extractor=Depends(get_extractor),
    tag_resolver: TagResolver = Depends(get_tag_resolver),
    factory: sessionmaker = Depends(get_session_factory),
) -> IngestionOrchestrator:
    settings = get_settings()
    return IngestionOrchestrator(
        blob_store,
        extractor,
        tag_resolver,
        factory,
        max_upload_bytes=settings.max_upload_bytes,
        max_tags=settings.max_tags_per_resume,
    )


def get_search_compiler(
    tag_resolver: TagResolver = Depends(get_tag_resolver),
    factory: sessionmaker = Depends(get_session_factory),
) -> SearchCompiler:
    return SearchCompiler(tag_resolver, factory)


def get_file_delivery(
    blob_store=Depends(get_blob_store),
    factory: sessionmaker = Depends(get_session_factory),
) -> FileDelivery:
    return FileDelivery(blob_store, factory)


def get_resume_service(
    tag_resolver: TagResolver = Depends(get_tag_resolver),
    factory: sessionmaker = Depends(get_session_factory),
) -> ResumeService:
    return ResumeService(tag_resolver, factory)


def get_cleanup_queue(
    blob_store=Depends(get_blob_store),
    factory: sessionmaker = Depends(get_session_factory),
) -> BlobCleanupQueue:
    return BlobCleanupQueue(blob_store, factory, max_attempts=get_settings().cleanup_max_attempts)


def build_orphan_sweeper(blob_store, factory: sessionmaker) -> OrphanSweeper:
    return OrphanSweeper(blob_store, factory, grace=timedelta(hours=get_settings().orphan_grace_hours))
