"""
Blob cleanup - deferred GridFS deletion and orphan reclamation.

BlobCleanupQueue
    Soft-deletes write a blob_deletions row in the same transaction that
    deactivates the resume. After the response, a background task drains
    the queue. Failed deletions stay pending with attempts/last_error set
    and are retried by later drains until max_attempts.

OrphanSweeper
    Blobs can outlive their metadata (crash between GridFS write and commit,
    or a soft delete whose cleanup never succeeded). The sweep deletes blobs
    older than a grace period that no active resume references.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, sessionmaker

from resume_vault.core.errors import BlobNotFoundError
from resume_vault.db.postgres import get_db_session
from resume_vault.models import BlobDeletion, Resume

logger = structlog.get_logger(__name__)


@dataclass
class CleanupReport:
    deleted: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BlobCleanupQueue:
    def __init__(self, blob_store, session_factory: Optional[sessionmaker] = None, max_attempts: int = 5):
        self.blob_store = blob_store
        self.session_factory = session_factory
        self.max_attempts = max_attempts

    @staticmethod
    def enqueue(db: Session, blob_id: str, resume_id: Optional[str] = None, reason: str = "soft_delete") -> None:
        """Queue a blob for deletion inside the caller's transaction."""
        if not blob_id:
            return
        existing = db.execute(select(BlobDeletion).where(BlobDeletion.blob_id == blob_id)).scalar_one_or_none()
        if existing is None:
            db.add(BlobDeletion(blob_id=blob_id, resume_id=resume_id, reason=reason))

    def pending(self) -> List[BlobDeletion]:
        with get_db_session(self.session_factory) as db:
            return list(
                db.execute(
                    select(BlobDeletion)
                    .where(BlobDeletion.completed_at.is_(None), BlobDeletion.attempts < self.max_attempts)
                    .order_by(BlobDeletion.created_at)
                ).scalars()
            )

    def process(self, blob_id: str) -> bool:
        """
        Attempt one queued deletion.
        Returns True when the blob is gone (deleted now or already missing).
        """
        try:
            self.blob_store.delete(blob_id)
            error = None
        except BlobNotFoundError:
            error = None
        except Exception as e:
            error = str(e) or e.__class__.__name__

        with get_db_session(self.session_factory) as db:
            job = db.execute(select(BlobDeletion).where(BlobDeletion.blob_id == blob_id)).scalar_one_or_none()
            if job is not None:
                job.attempts += 1
                if error is None:
                    job.completed_at = _utcnow()
                    job.last_error = None
                else:
                    job.last_error = error

        if error is None:
            logger.info("blob_cleanup_succeeded", blob_id=blob_id)
            return True
        logger.warning("blob_cleanup_failed", blob_id=blob_id, error=error)
        return False

    def drain(self, blob_ids: Optional[Iterable[str]] = None) -> CleanupReport:
        """
        Process pending deletions, each independently.
        With blob_ids, only those are attempted (used right after a delete).
        """
        targets = [job.blob_id for job in self.pending()]
        if blob_ids is not None:
            wanted = set(blob_ids)
            targets = [blob_id for blob_id in targets if blob_id in wanted]

        report = CleanupReport()
        for blob_id in targets:
            if self.process(blob_id):
                report.deleted.append(blob_id)
            else:
                report.failed.append(blob_id)
        if targets:
            logger.info("blob_cleanup_drained", deleted=len(report.deleted), failed=len(report.failed))
        return report


class OrphanSweeper:
    """
    Usage:
        sweeper = OrphanSweeper(blob_store, factory, grace=timedelta(hours=24))
        reclaimed = sweeper.sweep()
    """

    def __init__(self, blob_store, session_factory: Optional[sessionmaker] = None, grace: timedelta = timedelta(hours=24)):
        self.blob_store = blob_store
        self.session_factory = session_factory
        self.grace = grace

    def sweep(self, now: Optional[datetime] = None) -> List[str]:
        cutoff = (now or _utcnow()) - self.grace
        candidates = self.blob_store.list_blobs(uploaded_before=cutoff)
        if not candidates:
            return []

        with get_db_session(self.session_factory) as db:
            referenced = set(db.execute(select(Resume.blob_id).where(Resume.is_active.is_(True))).scalars())

        reclaimed = []
        for blob in candidates:
            if blob.blob_id in referenced:
                continue
            try:
                self.blob_store.delete(blob.blob_id)
            except BlobNotFoundError:
                continue
            except Exception as e:
                logger.warning("orphan_delete_failed", blob_id=blob.blob_id, error=str(e))
                continue
            reclaimed.append(blob.blob_id)

        logger.info("orphan_sweep_finished", candidates=len(candidates), reclaimed=len(reclaimed))
        return reclaimed
