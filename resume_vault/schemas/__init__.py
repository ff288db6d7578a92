"""
Schemas module - Request/Response schemas for API endpoints.
"""
from resume_vault.schemas.schemas import (
    DeleteAllResponse,
    ErrorResponse,
    FiltersResponse,
    MessageResponse,
    ResumeDetail,
    ResumeFilters,
    ResumeResponse,
    ResumeSummary,
    ResumeUpdate,
    SearchResponse,
    UpdateResponse,
    UploadedResume,
    UploadResponse,
)

__all__ = [
    "DeleteAllResponse",
    "ErrorResponse",
    "FiltersResponse",
    "MessageResponse",
    "ResumeDetail",
    "ResumeFilters",
    "ResumeResponse",
    "ResumeSummary",
    "ResumeUpdate",
    "SearchResponse",
    "UpdateResponse",
    "UploadedResume",
    "UploadResponse",
]
