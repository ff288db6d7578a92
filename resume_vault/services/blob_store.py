"""
Blob Store Adapter - GridFS storage for the original PDF bytes.

Writes are append-only: every upload gets a new ObjectId. Reads stream the
stored chunks back; deletes are explicit. All pymongo / gridfs failures are
translated into StorageError, a missing file into BlobNotFoundError.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterator, List, Optional

import gridfs
import structlog
from bson import ObjectId
from bson.errors import InvalidId
from gridfs.errors import NoFile
from pymongo.errors import PyMongoError

from resume_vault.core.errors import BlobNotFoundError, StorageError

logger = structlog.get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"
STREAM_CHUNK_SIZE = 255 * 1024  # GridFS default chunk size


@dataclass
class BlobInfo:
    blob_id: str
    filename: str
    length: int
    uploaded_at: Optional[datetime] = None


class BlobStream:
    """An opened blob: metadata plus an iterator over its bytes."""

    def __init__(self, info: BlobInfo, chunks: Iterator[bytes]):
        self.info = info
        self._chunks = chunks

    def __iter__(self) -> Iterator[bytes]:
        return self._chunks

    def read(self) -> bytes:
        return b"".join(self._chunks)


def _to_object_id(blob_id: str) -> ObjectId:
    try:
        return ObjectId(blob_id)
    except (InvalidId, TypeError):
        raise BlobNotFoundError(f"Blob {blob_id} not found.")


class GridFSBlobStore:
    """
    Blob store backed by a GridFS bucket.

    Usage:
        store = GridFSBlobStore(get_gridfs_bucket())
        blob_id = store.upload(data, "resume.pdf")
        for chunk in store.open(blob_id):
            ...
    """

    def __init__(self, bucket: gridfs.GridFSBucket):
        self.bucket = bucket

    def upload(self, data: bytes, filename: str, content_type: str = PDF_CONTENT_TYPE) -> str:
        """Store bytes and return the new blob id."""
        try:
            file_id = self.bucket.upload_from_stream(
                filename,
                data,
                metadata={"contentType": content_type},
            )
        except PyMongoError as e:
            raise StorageError("File storage failed.", details=str(e))
        logger.info("blob_uploaded", blob_id=str(file_id), filename=filename, size=len(data))
        return str(file_id)

    def open(self, blob_id: str) -> BlobStream:
        """
        Open a blob for streaming.
        Raises BlobNotFoundError before any byte is produced if it is missing.
        """
        oid = _to_object_id(blob_id)
        try:
            grid_out = self.bucket.open_download_stream(oid)
        except NoFile:
            raise BlobNotFoundError(f"Blob {blob_id} not found.")
        except PyMongoError as e:
            raise StorageError("Error retrieving file.", details=str(e))

        info = BlobInfo(
            blob_id=blob_id,
            filename=grid_out.filename,
            length=grid_out.length,
            uploaded_at=grid_out.upload_date,
        )
        return BlobStream(info, self._iter_chunks(grid_out))

    @staticmethod
    def _iter_chunks(grid_out) -> Iterator[bytes]:
        try:
            while True:
                chunk = grid_out.read(STREAM_CHUNK_SIZE)
                if not chunk:
                    break
                yield chunk
        finally:
            grid_out.close()

    def delete(self, blob_id: str) -> None:
        oid = _to_object_id(blob_id)
        try:
            self.bucket.delete(oid)
        except NoFile:
            raise BlobNotFoundError(f"Blob {blob_id} not found.")
        except PyMongoError as e:
            raise StorageError(f"Failed to delete blob {blob_id}.", details=str(e))
        logger.info("blob_deleted", blob_id=blob_id)

    def list_blobs(self, uploaded_before: Optional[datetime] = None) -> List[BlobInfo]:
        """List stored blobs, optionally only those uploaded before a cutoff."""
        query = {"uploadDate": {"$lt": uploaded_before}} if uploaded_before else {}
        try:
            return [
                BlobInfo(
                    blob_id=str(grid_out._id),
                    filename=grid_out.filename,
                    length=grid_out.length,
                    uploaded_at=grid_out.upload_date,
                )
                for grid_out in self.bucket.find(query)
            ]
        except PyMongoError as e:
            raise StorageError("Error listing files.", details=str(e))
