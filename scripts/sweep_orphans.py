#!/usr/bin/env python3
"""
Blob maintenance

1. Retries queued GridFS deletions left behind by soft deletes
2. Reclaims orphan blobs (no active resume references them) older than
   ORPHAN_GRACE_HOURS

Usage: python scripts/sweep_orphans.py [--skip-sweep]
Meant to be run from cron.
"""

import argparse

import structlog

from resume_vault.api.deps import build_orphan_sweeper, get_blob_store
from resume_vault.core.config import get_settings
from resume_vault.core.logging_config import setup_logging
from resume_vault.db.postgres import get_session_factory, init_models
from resume_vault.services.blob_cleanup import BlobCleanupQueue

logger = structlog.get_logger("sweep_orphans")


def main():
    parser = argparse.ArgumentParser(description="Drain the blob cleanup queue and reclaim orphan blobs.")
    parser.add_argument("--skip-sweep", action="store_true", help="Only drain the cleanup queue")
    args = parser.parse_args()

    setup_logging()
    init_models()
    settings = get_settings()
    factory = get_session_factory()
    store = get_blob_store()

    queue = BlobCleanupQueue(store, factory, max_attempts=settings.cleanup_max_attempts)
    report = queue.drain()
    logger.info("queue_drained", deleted=len(report.deleted), failed=len(report.failed))

    if not args.skip_sweep:
        reclaimed = build_orphan_sweeper(store, factory).sweep()
        logger.info("orphans_reclaimed", count=len(reclaimed))


if __name__ == "__main__":
    main()
