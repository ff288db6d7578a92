from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import update

from resume_vault.models import Resume
from resume_vault.services.search import SearchCompiler, SearchFilters
from resume_vault.services.tag_resolver import TagResolver


@pytest.fixture
def seeded(upload, session_factory):
    """Three resumes, created oldest to newest: alice, bob, cara."""
    rows = [
        dict(name="Alice Wong", major="Computer Science", graduationYear="2024",
             companies="Google, Acme Corp", keywords="Python, SQL"),
        dict(name="Bob Stone", major="Mathematics", graduationYear="2025",
             companies="Microsoft", keywords="R, Statistics"),
        dict(name="Cara Diaz", major="Physics", graduationYear="2025",
             companies="google", keywords="Python"),
    ]
    ids = {}
    for row in rows:
        r = upload(f"{row['name'].split()[0].lower()}.pdf", **row)
        assert r.status_code == 201
        ids[row["name"].split()[0].lower()] = r.json()["data"]["id"]

    base = datetime(2026, 1, 1, tzinfo=timezone.utc)
    with session_factory() as db:
        for offset, key in enumerate(["alice", "bob", "cara"]):
            db.execute(update(Resume).where(Resume.id == ids[key]).values(created_at=base + timedelta(hours=offset)))
        db.commit()
    return ids


def _names(response):
    body = response.json()
    assert body["error"] is False
    assert body["count"] == len(body["data"])
    return [item["name"] for item in body["data"]]


def test_no_filters_returns_all_newest_first(client, seeded):
    r = client.get("/api/resumes/search")
    assert r.status_code == 200
    assert _names(r) == ["Cara Diaz", "Bob Stone", "Alice Wong"]


def test_summary_shape(client, seeded):
    item = client.get("/api/resumes/search", params={"name": "alice"}).json()["data"][0]
    assert item["id"] == seeded["alice"]
    assert item["graduationYear"] == "2024"
    assert item["companies"] == ["Google", "Acme Corp"]
    assert item["keywords"] == ["Python", "SQL"]
    assert item["fileUrl"].endswith(f"/api/resumes/{seeded['alice']}/file")


def test_major_is_substring_match(client, seeded):
    assert _names(client.get("/api/resumes/search", params={"major": "computer"})) == ["Alice Wong"]


def test_multi_value_major_ors_values(client, seeded):
    r = client.get("/api/resumes/search", params={"major": "Math, Physics"})
    assert _names(r) == ["Cara Diaz", "Bob Stone"]


def test_graduation_year_is_exact(client, seeded):
    assert _names(client.get("/api/resumes/search", params={"graduationYear": "2025"})) == ["Cara Diaz", "Bob Stone"]
    assert _names(client.get("/api/resumes/search", params={"graduationYear": "202"})) == []
    assert len(_names(client.get("/api/resumes/search", params={"graduationYear": "2024,2025"}))) == 3


def test_company_filter_matches_tag_substring(client, seeded):
    assert _names(client.get("/api/resumes/search", params={"company": "goo"})) == ["Cara Diaz", "Alice Wong"]
    assert _names(client.get("/api/resumes/search", params={"company": "acme,microsoft"})) == ["Bob Stone", "Alice Wong"]


def test_unknown_company_returns_empty(client, seeded):
    r = client.get("/api/resumes/search", params={"company": "NonExistentCo123"})
    assert r.status_code == 200
    assert r.json()["count"] == 0
    assert r.json()["data"] == []


def test_keyword_filter(client, seeded):
    assert _names(client.get("/api/resumes/search", params={"keyword": "python"})) == ["Cara Diaz", "Alice Wong"]


def test_filters_are_anded(client, seeded):
    r = client.get("/api/resumes/search", params={"company": "google", "graduationYear": "2024"})
    assert _names(r) == ["Alice Wong"]


@pytest.mark.parametrize(
    "query, expected",
    [
        ("acme", ["Alice Wong"]),
        ("statistics", ["Bob Stone"]),
        ("2025", ["Cara Diaz", "Bob Stone"]),
        ("PHYS", ["Cara Diaz"]),
        ("stone", ["Bob Stone"]),
        ("nothing-matches-this", []),
    ],
)
def test_free_text_query(client, seeded, query, expected):
    assert _names(client.get("/api/resumes/search", params={"query": query})) == expected


def test_deleted_resumes_are_hidden(client, seeded, user_headers):
    assert client.delete(f"/api/resumes/{seeded['bob']}", headers=user_headers).status_code == 200

    assert _names(client.get("/api/resumes/search")) == ["Cara Diaz", "Alice Wong"]
    assert _names(client.get("/api/resumes/search", params={"company": "microsoft"})) == []


def test_filters_endpoint(client, seeded, user_headers):
    r = client.get("/api/resumes/filters")
    assert r.status_code == 200
    assert r.json()["data"] == {
        "majors": ["Computer Science", "Mathematics", "Physics"],
        "graduationYears": ["2024", "2025"],
        "companies": ["Acme Corp", "Google", "Microsoft"],
        "keywords": ["Python", "R", "SQL", "Statistics"],
    }

    client.delete(f"/api/resumes/{seeded['bob']}", headers=user_headers)

    data = client.get("/api/resumes/filters").json()["data"]
    assert data["majors"] == ["Computer Science", "Physics"]
    assert data["companies"] == ["Acme Corp", "Google"]
    assert data["keywords"] == ["Python", "SQL"]


def test_filters_empty_store(client):
    assert client.get("/api/resumes/filters").json()["data"] == {
        "majors": [],
        "graduationYears": [],
        "companies": [],
        "keywords": [],
    }


def test_compile_short_circuits_on_unknown_tag(session_factory):
    compiler = SearchCompiler(TagResolver(session_factory), session_factory)
    with session_factory() as db:
        assert compiler.compile(db, SearchFilters(keyword="Cobol")) is None
        assert compiler.compile(db, SearchFilters(major="Math")) is not None
