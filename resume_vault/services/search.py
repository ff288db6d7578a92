"""
Search Compiler - filter parameters -> one SQL query over active resumes.

All supplied filters are AND'ed. Multi-value filters (comma separated) OR
their values. Company/keyword filters are first resolved to tag ids; when
none match, the search returns nothing without touching the resumes table.
"""

from dataclasses import dataclass
from typing import List, Optional

import structlog
from sqlalchemy import and_, distinct, or_, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.sql import Select

from resume_vault.db.postgres import get_db_session
from resume_vault.models import Company, Keyword, Resume, ResumeCompany, ResumeKeyword
from resume_vault.schemas.schemas import ResumeFilters, ResumeSummary
from resume_vault.services.file_delivery import file_url_for
from resume_vault.services.tag_resolver import TagKind, TagResolver
from resume_vault.utils.file_upload import split_csv

logger = structlog.get_logger(__name__)


@dataclass
class SearchFilters:
    query: Optional[str] = None
    name: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[str] = None
    company: Optional[str] = None
    keyword: Optional[str] = None


def _contains(column, value: str):
    return column.icontains(value, autoescape=True)


def project_summary(resume: Resume, base_url: str = "") -> ResumeSummary:
    return ResumeSummary(
        id=resume.id,
        name=resume.name,
        major=resume.major,
        graduation_year=resume.graduation_year,
        file_url=file_url_for(resume, base_url),
        companies=resume.company_names,
        keywords=resume.keyword_names,
    )


class SearchCompiler:
    """
    Usage:
        compiler = SearchCompiler(TagResolver(factory), factory)
        summaries = compiler.search(SearchFilters(major="Computer Science,Math"))
    """

    def __init__(self, tag_resolver: TagResolver, session_factory: Optional[sessionmaker] = None):
        self.tag_resolver = tag_resolver
        self.session_factory = session_factory

    def compile(self, db: Session, filters: SearchFilters) -> Optional[Select]:
        """
        Build the resume query.
        Returns None when a tag filter matched no tag at all.
        """
        conditions = [Resume.is_active.is_(True)]

        if filters.query and filters.query.strip():
            conditions.append(self._free_text(db, filters.query.strip()))

        if filters.name and filters.name.strip():
            conditions.append(_contains(Resume.name, filters.name.strip()))

        majors = split_csv(filters.major) or []
        if len(majors) == 1:
            conditions.append(_contains(Resume.major, majors[0]))
        elif majors:
            conditions.append(or_(*[_contains(Resume.major, m) for m in majors]))

        years = split_csv(filters.graduation_year) or []
        if len(years) == 1:
            conditions.append(Resume.graduation_year == years[0])
        elif years:
            conditions.append(Resume.graduation_year.in_(years))

        companies = split_csv(filters.company) or []
        if companies:
            company_ids = self.tag_resolver.match_ids(db, TagKind.company, companies)
            if not company_ids:
                return None
            conditions.append(Resume.company_links.any(ResumeCompany.company_id.in_(company_ids)))

        keywords = split_csv(filters.keyword) or []
        if keywords:
            keyword_ids = self.tag_resolver.match_ids(db, TagKind.keyword, keywords)
            if not keyword_ids:
                return None
            conditions.append(Resume.keyword_links.any(ResumeKeyword.keyword_id.in_(keyword_ids)))

        return select(Resume).where(and_(*conditions)).order_by(Resume.created_at.desc())

    def _free_text(self, db: Session, query: str):
        """Substring match over the text fields and the tag names."""
        alternatives = [
            _contains(Resume.name, query),
            _contains(Resume.major, query),
            _contains(Resume.graduation_year, query),
        ]
        company_ids = self.tag_resolver.match_ids(db, TagKind.company, [query])
        if company_ids:
            alternatives.append(Resume.company_links.any(ResumeCompany.company_id.in_(company_ids)))
        keyword_ids = self.tag_resolver.match_ids(db, TagKind.keyword, [query])
        if keyword_ids:
            alternatives.append(Resume.keyword_links.any(ResumeKeyword.keyword_id.in_(keyword_ids)))
        return or_(*alternatives)

    def search(self, filters: SearchFilters, base_url: str = "") -> List[ResumeSummary]:
        with get_db_session(self.session_factory) as db:
            statement = self.compile(db, filters)
            if statement is None:
                logger.debug("search_short_circuit", filters=filters)
                return []
            resumes = db.execute(statement).scalars().unique().all()
            return [project_summary(resume, base_url) for resume in resumes]

    def available_filters(self) -> ResumeFilters:
        """Distinct values present on active resumes, sorted."""
        with get_db_session(self.session_factory) as db:
            majors = db.execute(
                select(distinct(Resume.major)).where(Resume.is_active.is_(True), Resume.major != "")
            ).scalars().all()
            years = db.execute(
                select(distinct(Resume.graduation_year)).where(
                    Resume.is_active.is_(True), Resume.graduation_year != ""
                )
            ).scalars().all()
            companies = db.execute(
                select(distinct(Company.name))
                .join(ResumeCompany, ResumeCompany.company_id == Company.id)
                .join(Resume, Resume.id == ResumeCompany.resume_id)
                .where(Resume.is_active.is_(True))
            ).scalars().all()
            keywords = db.execute(
                select(distinct(Keyword.name))
                .join(ResumeKeyword, ResumeKeyword.keyword_id == Keyword.id)
                .join(Resume, Resume.id == ResumeKeyword.resume_id)
                .where(Resume.is_active.is_(True))
            ).scalars().all()

        return ResumeFilters(
            majors=sorted(m for m in majors if m),
            graduation_years=sorted(y for y in years if y),
            companies=sorted(c for c in companies if c),
            keywords=sorted(k for k in keywords if k),
        )
