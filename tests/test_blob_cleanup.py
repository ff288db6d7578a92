from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select

from resume_vault.db.postgres import get_db_session
from resume_vault.models import BlobDeletion, Resume
from resume_vault.services.blob_cleanup import BlobCleanupQueue, OrphanSweeper
from tests.conftest import PDF_BYTES


@pytest.fixture
def queue(blob_store, session_factory):
    return BlobCleanupQueue(blob_store, session_factory, max_attempts=2)


def _queue_blob(factory, blob_id, resume_id=None):
    with get_db_session(factory) as db:
        BlobCleanupQueue.enqueue(db, blob_id, resume_id=resume_id)


def _job(factory, blob_id):
    with factory() as db:
        return db.execute(select(BlobDeletion).where(BlobDeletion.blob_id == blob_id)).scalar_one()


def _add_resume(factory, blob_id, active=True):
    with get_db_session(factory) as db:
        db.add(Resume(name="r", blob_id=blob_id, uploaded_by="u1", is_active=active))


def test_drain_deletes_queued_blob(queue, blob_store, session_factory):
    blob_id = blob_store.upload(PDF_BYTES, "a.pdf")
    _queue_blob(session_factory, blob_id)

    report = queue.drain()

    assert report.deleted == [blob_id]
    assert blob_id not in blob_store.blobs
    job = _job(session_factory, blob_id)
    assert job.attempts == 1
    assert job.completed_at is not None
    assert queue.pending() == []


def test_enqueue_is_idempotent(session_factory):
    _queue_blob(session_factory, "blob-1")
    _queue_blob(session_factory, "blob-1")
    with session_factory() as db:
        assert len(db.execute(select(BlobDeletion)).scalars().all()) == 1


def test_already_missing_blob_counts_as_done(queue, session_factory):
    _queue_blob(session_factory, "never-stored")

    assert queue.drain().deleted == ["never-stored"]
    assert _job(session_factory, "never-stored").completed_at is not None


def test_failed_delete_is_retried(queue, blob_store, session_factory):
    blob_id = blob_store.upload(PDF_BYTES, "a.pdf")
    _queue_blob(session_factory, blob_id)
    blob_store.fail_delete = True

    assert queue.drain().failed == [blob_id]
    job = _job(session_factory, blob_id)
    assert job.attempts == 1
    assert job.completed_at is None
    assert job.last_error

    blob_store.fail_delete = False
    assert queue.drain().deleted == [blob_id]
    job = _job(session_factory, blob_id)
    assert job.attempts == 2
    assert job.last_error is None


def test_gives_up_after_max_attempts(queue, blob_store, session_factory):
    blob_id = blob_store.upload(PDF_BYTES, "a.pdf")
    _queue_blob(session_factory, blob_id)
    blob_store.fail_delete = True

    queue.drain()
    queue.drain()
    report = queue.drain()

    assert report.deleted == [] and report.failed == []
    assert _job(session_factory, blob_id).attempts == 2
    assert len(blob_store.delete_calls) == 2


def test_drain_can_target_specific_blobs(queue, blob_store, session_factory):
    first = blob_store.upload(PDF_BYTES, "a.pdf")
    second = blob_store.upload(PDF_BYTES, "b.pdf")
    _queue_blob(session_factory, first)
    _queue_blob(session_factory, second)

    assert queue.drain([second]).deleted == [second]
    assert first in blob_store.blobs
    assert [job.blob_id for job in queue.pending()] == [first]


def test_orphan_sweep_respects_grace_and_references(blob_store, session_factory):
    now = datetime(2026, 3, 1, 12, tzinfo=timezone.utc)
    old = now - timedelta(hours=48)

    referenced = blob_store.upload(PDF_BYTES, "kept.pdf")
    orphan = blob_store.upload(PDF_BYTES, "orphan.pdf")
    deleted_owner = blob_store.upload(PDF_BYTES, "deleted.pdf")
    fresh = blob_store.upload(PDF_BYTES, "fresh.pdf")
    for blob_id in (referenced, orphan, deleted_owner):
        blob_store.blobs[blob_id]["uploaded_at"] = old
    blob_store.blobs[fresh]["uploaded_at"] = now - timedelta(minutes=5)

    _add_resume(session_factory, referenced)
    _add_resume(session_factory, deleted_owner, active=False)

    sweeper = OrphanSweeper(blob_store, session_factory, grace=timedelta(hours=24))
    reclaimed = sweeper.sweep(now=now)

    assert sorted(reclaimed) == sorted([orphan, deleted_owner])
    assert set(blob_store.blobs) == {referenced, fresh}


def test_orphan_sweep_continues_past_failures(blob_store, session_factory):
    now = datetime(2026, 3, 1, tzinfo=timezone.utc)
    blob_id = blob_store.upload(PDF_BYTES, "orphan.pdf")
    blob_store.blobs[blob_id]["uploaded_at"] = now - timedelta(days=3)
    blob_store.fail_delete = True

    assert OrphanSweeper(blob_store, session_factory).sweep(now=now) == []
    assert blob_id in blob_store.blobs
