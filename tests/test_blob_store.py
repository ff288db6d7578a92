from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from gridfs.errors import NoFile
from pymongo.errors import PyMongoError

from resume_vault.core.errors import BlobNotFoundError, StorageError
from resume_vault.services.blob_store import GridFSBlobStore


@pytest.fixture
def bucket():
    return MagicMock()


@pytest.fixture
def store(bucket):
    return GridFSBlobStore(bucket)


def _grid_out(chunks, filename="alice.pdf"):
    grid_out = MagicMock()
    grid_out.filename = filename
    grid_out.length = sum(len(c) for c in chunks)
    grid_out.upload_date = datetime(2026, 1, 1, tzinfo=timezone.utc)
    grid_out.read.side_effect = list(chunks) + [b""]
    return grid_out


def test_upload_returns_string_id(store, bucket):
    oid = ObjectId()
    bucket.upload_from_stream.return_value = oid

    assert store.upload(b"%PDF-1.4", "alice.pdf") == str(oid)
    bucket.upload_from_stream.assert_called_once_with(
        "alice.pdf", b"%PDF-1.4", metadata={"contentType": "application/pdf"}
    )


def test_upload_failure_is_storage_error(store, bucket):
    bucket.upload_from_stream.side_effect = PyMongoError("connection reset")
    with pytest.raises(StorageError) as exc_info:
        store.upload(b"%PDF", "a.pdf")
    assert "connection reset" in exc_info.value.details


def test_open_streams_chunks(store, bucket):
    grid_out = _grid_out([b"%PDF-", b"1.4"])
    bucket.open_download_stream.return_value = grid_out
    oid = ObjectId()

    stream = store.open(str(oid))

    assert stream.info.filename == "alice.pdf"
    assert stream.info.length == 8
    assert list(stream) == [b"%PDF-", b"1.4"]
    bucket.open_download_stream.assert_called_once_with(oid)
    grid_out.close.assert_called_once()


def test_open_missing_blob(store, bucket):
    bucket.open_download_stream.side_effect = NoFile("no file")
    with pytest.raises(BlobNotFoundError):
        store.open(str(ObjectId()))


def test_open_malformed_id_is_not_found(store, bucket):
    with pytest.raises(BlobNotFoundError):
        store.open("not-an-object-id")
    bucket.open_download_stream.assert_not_called()


def test_open_driver_error(store, bucket):
    bucket.open_download_stream.side_effect = PyMongoError("timeout")
    with pytest.raises(StorageError):
        store.open(str(ObjectId()))


def test_delete(store, bucket):
    oid = ObjectId()
    store.delete(str(oid))
    bucket.delete.assert_called_once_with(oid)


def test_delete_errors(store, bucket):
    bucket.delete.side_effect = NoFile("gone")
    with pytest.raises(BlobNotFoundError):
        store.delete(str(ObjectId()))

    bucket.delete.side_effect = PyMongoError("down")
    with pytest.raises(StorageError):
        store.delete(str(ObjectId()))


def test_list_blobs_with_cutoff(store, bucket):
    cutoff = datetime(2026, 1, 2, tzinfo=timezone.utc)
    grid_out = _grid_out([b"abc"])
    grid_out._id = ObjectId()
    bucket.find.return_value = [grid_out]

    blobs = store.list_blobs(uploaded_before=cutoff)

    bucket.find.assert_called_once_with({"uploadDate": {"$lt": cutoff}})
    assert [b.blob_id for b in blobs] == [str(grid_out._id)]
    assert blobs[0].length == 3
