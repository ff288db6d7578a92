"""
Metadata store tables.

resumes              - one row per uploaded PDF; blob_id points into GridFS
companies / keywords - append-only tag reference data, unique canonical name
resume_companies     - ordered resume -> company links
resume_keywords      - ordered resume -> keyword links
blob_deletions       - outbox of GridFS files waiting to be removed
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.ext.associationproxy import association_proxy
from sqlalchemy.ext.orderinglist import ordering_list
from sqlalchemy.orm import relationship

from resume_vault.models.base import Base

FIELD_MAX_LENGTH = 255


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Company(Base):
    __tablename__ = "companies"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(FIELD_MAX_LENGTH), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Company {self.name}>"


class Keyword(Base):
    __tablename__ = "keywords"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(FIELD_MAX_LENGTH), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    def __repr__(self):
        return f"<Keyword {self.name}>"


class ResumeCompany(Base):
    __tablename__ = "resume_companies"

    id = Column(Integer, primary_key=True, autoincrement=True)
    resume_id = Column(String(36), ForeignKey("resumes.id", ondelete="CASCADE"), nullable=False, index=True)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    company = relationship(Company, lazy="joined")


class ResumeKeyword(Base):
    __tablename__ = "resume_keywords"

    id = Column(Integer, primary_key=True, autoincrement=True)
    resume_id = Column(String(36), ForeignKey("resumes.id", ondelete="CASCADE"), nullable=False, index=True)
    keyword_id = Column(String(36), ForeignKey("keywords.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    keyword = relationship(Keyword, lazy="joined")


class Resume(Base):
    __tablename__ = "resumes"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(FIELD_MAX_LENGTH), nullable=False)
    major = Column(String(FIELD_MAX_LENGTH), nullable=False, default="Unspecified")
    graduation_year = Column(String(FIELD_MAX_LENGTH), nullable=False, default="Unspecified")
    blob_id = Column(String(64), nullable=False)
    uploaded_by = Column(String(FIELD_MAX_LENGTH), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    company_links = relationship(
        ResumeCompany,
        order_by=ResumeCompany.position,
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    keyword_links = relationship(
        ResumeKeyword,
        order_by=ResumeKeyword.position,
        collection_class=ordering_list("position"),
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    # Ordered lists of Company / Keyword objects
    companies = association_proxy(
        "company_links", "company", creator=lambda company: ResumeCompany(company=company)
    )
    keywords = association_proxy(
        "keyword_links", "keyword", creator=lambda keyword: ResumeKeyword(keyword=keyword)
    )

    @property
    def company_names(self) -> list[str]:
        return [link.company.name for link in self.company_links]

    @property
    def keyword_names(self) -> list[str]:
        return [link.keyword.name for link in self.keyword_links]

    def __repr__(self):
        status = "active" if self.is_active else "deleted"
        return f"<Resume {self.id} - {self.name} ({status})>"


class BlobDeletion(Base):
    """
    Pending GridFS deletion. Written in the same transaction that
    deactivates the resume; completed_at stays NULL until the blob is gone.
    """
    __tablename__ = "blob_deletions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    blob_id = Column(String(64), nullable=False, unique=True)
    resume_id = Column(String(36), nullable=True)
    reason = Column(String(32), nullable=False, default="soft_delete")
    attempts = Column(Integer, nullable=False, default=0)
    last_error = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    completed_at = Column(DateTime(timezone=True), nullable=True, index=True)
