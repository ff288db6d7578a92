"""
Models module - SQLAlchemy tables for the metadata store.
"""
from resume_vault.models.base import Base
from resume_vault.models.tables import (
    BlobDeletion,
    Company,
    Keyword,
    Resume,
    ResumeCompany,
    ResumeKeyword,
)

__all__ = [
    "Base",
    "BlobDeletion",
    "Company",
    "Keyword",
    "Resume",
    "ResumeCompany",
    "ResumeKeyword",
]
