"""
Tag Resolver - idempotent find-or-create for Company and Keyword rows.

Companies are stored in a title-cased canonical form, keywords trimmed only.
Resolution is an atomic upsert: the unique constraint on name decides the
winner when two requests create the same tag, and the loser re-reads it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, List, Optional, Type, Union

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from resume_vault.db.postgres import get_db_session
from resume_vault.models import Company, Keyword

logger = structlog.get_logger(__name__)

# Always upper-cased, wherever they appear
UPPERCASE_WORDS = frozenset(
    ["LLC", "LLP", "USA", "US", "UK", "AI", "IT", "IBM", "HP", "AWS", "GE"]
)
# Lower-cased unless first word
LOWERCASE_WORDS = frozenset(
    ["of", "the", "and", "a", "an", "in", "on", "at", "by", "for", "with", "to"]
)


class TagKind(str, Enum):
    company = "company"
    keyword = "keyword"


TagModel = Union[Company, Keyword]

_MODELS = {TagKind.company: Company, TagKind.keyword: Keyword}


@dataclass(frozen=True)
class TagRef:
    id: str
    name: str


def format_title_case(text: str) -> str:
    """
    Title-case a company name word by word.

    >>> format_title_case("bank of AMERICA")
    'Bank of America'
    >>> format_title_case("aws llc")
    'AWS LLC'
    """
    if not text:
        return ""
    words = []
    for index, word in enumerate(text.split(" ")):
        if word.upper() in UPPERCASE_WORDS:
            words.append(word.upper())
        elif index > 0 and word.lower() in LOWERCASE_WORDS:
            words.append(word.lower())
        else:
            words.append(word[:1].upper() + word[1:].lower())
    return " ".join(words)


def normalize_tag_name(kind: TagKind, name: str) -> str:
    stripped = (name or "").strip()
    if kind == TagKind.company:
        return format_title_case(stripped)
    return stripped


def model_for(kind: TagKind) -> Type[TagModel]:
    return _MODELS[kind]


class TagResolver:
    """
    Usage:
        resolver = TagResolver(session_factory)
        ref = resolver.resolve(TagKind.company, "google")   # -> TagRef(id, "Google")
    """

    def __init__(self, session_factory: Optional[sessionmaker] = None):
        self.session_factory = session_factory

    def _find(self, db: Session, model: Type[TagModel], name: str) -> Optional[TagModel]:
        return db.execute(select(model).where(model.name == name)).scalar_one_or_none()

    def resolve(self, kind: TagKind, name: str) -> TagRef:
        """
        Return the canonical tag for name, creating it if absent.

        Each call runs in its own transaction so a failure here never poisons
        the caller's transaction.
        """
        canonical = normalize_tag_name(kind, name)
        if not canonical:
            raise ValueError(f"Empty {kind.value} name")
        model = model_for(kind)

        with get_db_session(self.session_factory) as db:
            existing = self._find(db, model, canonical)
            if existing is not None:
                return TagRef(existing.id, existing.name)

        try:
            with get_db_session(self.session_factory) as db:
                created = model(name=canonical)
                db.add(created)
                db.flush()
                ref = TagRef(created.id, created.name)
            logger.info("tag_created", kind=kind.value, name=canonical)
            return ref
        except IntegrityError:
            # Another request created it between our find and insert
            logger.info("tag_create_conflict", kind=kind.value, name=canonical)

        with get_db_session(self.session_factory) as db:
            winner = self._find(db, model, canonical)
            if winner is None:
                raise LookupError(f"{kind.value} {canonical!r} vanished after conflict")
            return TagRef(winner.id, winner.name)

    def resolve_many(self, kind: TagKind, names: Iterable[str]) -> List[TagRef]:
        """
        Resolve each name independently.
        Failures are logged and skipped; the rest still resolve.
        """
        refs = []
        for name in names:
            try:
                refs.append(self.resolve(kind, name))
            except Exception as e:
                logger.error("tag_resolution_failed", kind=kind.value, name=name, error=str(e))
        return refs

    def match_ids(self, db: Session, kind: TagKind, fragments: Iterable[str]) -> List[str]:
        """Ids of tags whose name contains any fragment, case-insensitively."""
        model = model_for(kind)
        conditions = [model.name.icontains(f, autoescape=True) for f in fragments if f]
        if not conditions:
            return []
        return list(db.execute(select(model.id).where(or_(*conditions))).scalars())
