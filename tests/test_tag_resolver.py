import pytest
from sqlalchemy import func, select

from resume_vault.models import Company, Keyword
from resume_vault.services.tag_resolver import (
    TagKind,
    TagResolver,
    format_title_case,
    normalize_tag_name,
)


@pytest.fixture
def resolver(session_factory):
    return TagResolver(session_factory)


def _count(factory, model):
    with factory() as db:
        return db.execute(select(func.count()).select_from(model)).scalar()


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("google", "Google"),
        ("GOOGLE", "Google"),
        ("bank of AMERICA", "Bank of America"),
        ("the home depot", "The Home Depot"),
        ("aws llc", "AWS LLC"),
        ("ibm", "IBM"),
        ("general electric us", "General Electric US"),
        ("ai for the people", "AI for the People"),
    ],
)
def test_company_title_case(raw, expected):
    assert format_title_case(raw) == expected


def test_keywords_are_only_trimmed():
    assert normalize_tag_name(TagKind.keyword, "  machine learning ") == "machine learning"
    assert normalize_tag_name(TagKind.company, "  acme corp ") == "Acme Corp"


def test_case_variants_resolve_to_one_company(resolver, session_factory):
    refs = [resolver.resolve(TagKind.company, n) for n in ("google", "Google", "GOOGLE")]

    assert {ref.id for ref in refs} == {refs[0].id}
    assert refs[0].name == "Google"
    assert _count(session_factory, Company) == 1


def test_keywords_keep_their_case(resolver, session_factory):
    a = resolver.resolve(TagKind.keyword, "Python")
    b = resolver.resolve(TagKind.keyword, "python")

    assert a.id != b.id
    assert _count(session_factory, Keyword) == 2


def test_blank_name_rejected(resolver):
    with pytest.raises(ValueError):
        resolver.resolve(TagKind.company, "   ")


def test_concurrent_create_rereads_winner(resolver, session_factory, monkeypatch):
    winner = resolver.resolve(TagKind.company, "Initech")

    # The first lookup misses, as if another request inserted in between
    real_find = resolver._find
    calls = []

    def racing_find(db, model, name):
        calls.append(name)
        if len(calls) == 1:
            return None
        return real_find(db, model, name)

    monkeypatch.setattr(resolver, "_find", racing_find)

    ref = resolver.resolve(TagKind.company, "initech")

    assert ref == winner
    assert len(calls) == 2
    assert _count(session_factory, Company) == 1


def test_resolve_many_skips_failures(resolver):
    refs = resolver.resolve_many(TagKind.keyword, ["Go", "", "Rust"])
    assert [ref.name for ref in refs] == ["Go", "Rust"]


def test_match_ids_is_case_insensitive_substring(resolver, session_factory):
    google = resolver.resolve(TagKind.company, "Google")
    microsoft = resolver.resolve(TagKind.company, "Microsoft")
    resolver.resolve(TagKind.company, "Initech")

    with session_factory() as db:
        assert resolver.match_ids(db, TagKind.company, ["GOO"]) == [google.id]
        assert set(resolver.match_ids(db, TagKind.company, ["goo", "soft"])) == {google.id, microsoft.id}
        assert resolver.match_ids(db, TagKind.company, ["%"]) == []
        assert resolver.match_ids(db, TagKind.company, []) == []
