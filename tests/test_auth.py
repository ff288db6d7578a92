from datetime import timedelta

from resume_vault.core.auth import Principal, create_access_token, decode_token
from tests.conftest import PDF_BYTES


def _post(client, headers=None):
    return client.post(
        "/api/resumes",
        files={"file": ("a.pdf", PDF_BYTES, "application/pdf")},
        headers=headers or {},
    )


def test_missing_token(client):
    r = _post(client)
    assert r.status_code == 401
    assert r.headers["www-authenticate"] == "Bearer"


def test_garbage_token(client):
    assert _post(client, {"Authorization": "Bearer not.a.jwt"}).status_code == 401


def test_expired_token(client):
    token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(minutes=-5))
    assert _post(client, {"Authorization": f"Bearer {token}"}).status_code == 401


def test_token_without_subject(client):
    token = create_access_token({"role": "admin"})
    assert _post(client, {"Authorization": f"Bearer {token}"}).status_code == 401


def test_reads_are_public(client):
    assert client.get("/api/resumes/search").status_code == 200
    assert client.get("/api/resumes/filters").status_code == 200


def test_token_round_trip():
    payload = decode_token(create_access_token({"sub": "u1", "role": "admin"}))
    assert payload["sub"] == "u1"
    assert payload["role"] == "admin"
    assert decode_token("garbage") is None


def test_principal_permissions():
    owner = Principal("u1")
    admin = Principal("root", role="admin")

    assert owner.can_modify("u1")
    assert not owner.can_modify("u2")
    assert admin.can_modify("u2")
    assert admin.is_admin and not owner.is_admin
