"""
Database module - PostgreSQL (metadata) and MongoDB (GridFS blobs) connections.
"""
from resume_vault.db.postgres import get_db_session, get_session_factory, test_postgres_connection
from resume_vault.db.mongodb import get_mongo_db, test_mongo_connection

__all__ = [
    "get_db_session",
    "get_session_factory",
    "test_postgres_connection",
    "get_mongo_db",
    "test_mongo_connection",
]
