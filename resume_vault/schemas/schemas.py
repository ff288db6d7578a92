"""
Pydantic Schemas - API response shapes.

Field names are snake_case in Python and camelCase on the wire
(graduationYear, fileUrl, parsingWarning, ...).
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================
# RESUME SCHEMAS
# ============================================================

class ResumeSummary(CamelModel):
    id: str
    name: str
    major: str
    graduation_year: str
    file_url: Optional[str] = None
    companies: List[str] = []
    keywords: List[str] = []


class UploaderRef(CamelModel):
    id: str


class ResumeDetail(ResumeSummary):
    uploader: Optional[UploaderRef] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UploadedResume(ResumeSummary):
    parsing_warning: Optional[str] = None
    created_at: Optional[datetime] = None


class ResumeFilters(CamelModel):
    majors: List[str] = []
    graduation_years: List[str] = []
    companies: List[str] = []
    keywords: List[str] = []


class DeletedCount(CamelModel):
    deleted: int


# ============================================================
# RESPONSE ENVELOPES
# ============================================================

class Envelope(CamelModel):
    error: bool = False
    message: Optional[str] = None


class UploadResponse(Envelope):
    data: UploadedResume


class ResumeResponse(Envelope):
    data: ResumeDetail


class UpdateResponse(Envelope):
    data: ResumeSummary


class SearchResponse(Envelope):
    count: int
    data: List[ResumeSummary]


class FiltersResponse(Envelope):
    data: ResumeFilters


class DeleteAllResponse(Envelope):
    data: DeletedCount


class MessageResponse(Envelope):
    pass


class ErrorResponse(BaseModel):
    error: bool = True
    message: str
    details: Optional[str] = None
    stage: Optional[str] = None


# ============================================================
# REQUEST SCHEMAS
# ============================================================

class ResumeUpdate(CamelModel):
    name: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[str] = None
    companies: Optional[str] = None  # comma separated
    keywords: Optional[str] = None  # comma separated
