import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import func, select
from sqlalchemy.orm import sessionmaker

from resume_vault.api import deps
from resume_vault.core.auth import create_access_token
from resume_vault.core.errors import BlobNotFoundError, StorageError
from resume_vault.db.postgres import build_engine, get_session_factory, init_models
from resume_vault.main import create_app
from resume_vault.models import Resume
from resume_vault.services.blob_store import BlobInfo, BlobStream
from resume_vault.services.extractor import ExtractedMetadata

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\ntrailer << /Root 1 0 R >>\n%%EOF\n"


class InMemoryBlobStore:
    """Blob store with the GridFSBlobStore interface and switchable failures."""

    def __init__(self):
        self.blobs = {}
        self.fail_upload = False
        self.fail_delete = False
        self.delete_calls = []

    def upload(self, data, filename, content_type="application/pdf"):
        if self.fail_upload:
            raise StorageError("File storage failed.", details="injected upload failure")
        blob_id = uuid.uuid4().hex[:24]
        self.blobs[blob_id] = {
            "data": bytes(data),
            "filename": filename,
            "content_type": content_type,
            "uploaded_at": datetime.now(timezone.utc),
        }
        return blob_id

    def open(self, blob_id):
        blob = self.blobs.get(blob_id)
        if blob is None:
            raise BlobNotFoundError(f"Blob {blob_id} not found.")
        data = blob["data"]
        info = BlobInfo(blob_id, blob["filename"], len(data), blob["uploaded_at"])
        return BlobStream(info, iter([data[i:i + 16] for i in range(0, len(data), 16)]))

    def delete(self, blob_id):
        self.delete_calls.append(blob_id)
        if self.fail_delete:
            raise StorageError(f"Failed to delete blob {blob_id}.", details="injected delete failure")
        if self.blobs.pop(blob_id, None) is None:
            raise BlobNotFoundError(f"Blob {blob_id} not found.")

    def list_blobs(self, uploaded_before=None):
        return [
            BlobInfo(blob_id, blob["filename"], len(blob["data"]), blob["uploaded_at"])
            for blob_id, blob in self.blobs.items()
            if uploaded_before is None or blob["uploaded_at"] < uploaded_before
        ]


class StubExtractor:
    """Returns a fixed result, or raises error when set."""

    def __init__(self):
        self.result = None
        self.error = None
        self.calls = []

    def extract(self, content, fallback_name):
        self.calls.append(fallback_name)
        if self.error is not None:
            raise self.error
        return self.result or ExtractedMetadata(name=fallback_name)


@pytest.fixture
def session_factory(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'metadata.db'}")
    init_models(engine)
    yield sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    engine.dispose()


@pytest.fixture
def blob_store():
    return InMemoryBlobStore()


@pytest.fixture
def extractor():
    return StubExtractor()


@pytest.fixture
def app(session_factory, blob_store, extractor):
    app = create_app(run_startup=False)
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[deps.get_blob_store] = lambda: blob_store
    app.dependency_overrides[deps.get_extractor] = lambda: extractor
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


def auth_header(sub="user-1", role="user"):
    return {"Authorization": f"Bearer {create_access_token({'sub': sub, 'role': role})}"}


@pytest.fixture
def user_headers():
    return auth_header("user-1")


@pytest.fixture
def other_headers():
    return auth_header("user-2")


@pytest.fixture
def admin_headers():
    return auth_header("admin-1", role="admin")


@pytest.fixture
def upload(client, user_headers):
    """Upload helper: upload(filename="alice.pdf", data=PDF_BYTES, headers=None, **form)."""

    def _upload(filename="resume.pdf", data=PDF_BYTES, headers=None, **form):
        return client.post(
            "/api/resumes",
            files={"file": (filename, data, "application/pdf")},
            data=form,
            headers=headers or user_headers,
        )

    return _upload


def count_active(factory):
    with factory() as db:
        return db.execute(select(func.count()).select_from(Resume).where(Resume.is_active.is_(True))).scalar()
