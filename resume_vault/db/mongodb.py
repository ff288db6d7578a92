"""
MongoDB Connection Utility

MongoDB holds only the original PDF bytes, in a GridFS bucket
(<bucket>.files / <bucket>.chunks). Everything searchable lives in
PostgreSQL and points at the GridFS file id.
"""
from typing import Optional

import gridfs
import structlog
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

from resume_vault.core.config import get_settings

logger = structlog.get_logger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: Optional[MongoClient] = None
_db: Optional[Database] = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(get_settings().mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the blob database"""
    global _db
    if _db is None:
        _db = get_mongo_client()[get_settings().mongodb_db]
    return _db


def get_gridfs_bucket() -> gridfs.GridFSBucket:
    """GridFS bucket that stores resume PDFs."""
    return gridfs.GridFSBucket(get_mongo_db(), bucket_name=get_settings().gridfs_bucket)


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        # ping command checks connection
        get_mongo_client().admin.command("ping")
        return True
    except Exception as e:
        logger.warning("blob_store_unreachable", error=str(e))
        return False


def init_mongo_indexes() -> None:
    """
    Create indexes for the GridFS bucket.
    The orphan sweep scans files by upload date.
    """
    db = get_mongo_db()
    bucket = get_settings().gridfs_bucket
    db[f"{bucket}.files"].create_index([("uploadDate", ASCENDING)])
    logger.info("mongo_indexes_ready", bucket=bucket)
