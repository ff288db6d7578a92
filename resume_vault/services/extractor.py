"""
Content Extractor - best-effort resume metadata from PDF bytes.

PURPOSE:
Pre-fill name, major, graduation year, companies and keywords so uploaders
do not have to type them. Extraction is never required: the ingestion
pipeline catches ExtractionError and falls back to filename-based metadata.

Two strategies:
1. DeepSeek AI on the extracted text (when an API key is configured)
2. Rule-based heuristics (always available, also the AI fallback)
"""

import io
import re
from dataclasses import dataclass, field
from typing import List, Optional

import structlog
from PyPDF2 import PdfReader

from resume_vault.services.deepseek_client import DeepSeekClient

logger = structlog.get_logger(__name__)

UNSPECIFIED = "Unspecified"

# Skills we recognise in free text, in their display spelling
KNOWN_KEYWORDS = [
    "Python", "Java", "JavaScript", "TypeScript", "C++", "C#", "Go", "Rust", "Ruby",
    "Kotlin", "Swift", "SQL", "PostgreSQL", "MySQL", "MongoDB", "Redis", "GraphQL",
    "React", "Angular", "Vue", "Node.js", "Django", "Flask", "FastAPI", "Spring",
    "Docker", "Kubernetes", "Terraform", "AWS", "Azure", "GCP", "Linux", "Git",
    "Machine Learning", "Deep Learning", "NLP", "Computer Vision", "TensorFlow",
    "PyTorch", "Pandas", "NumPy", "Spark", "Hadoop", "Tableau", "Excel", "MATLAB",
    "Data Analysis", "Statistics", "Figma", "Agile", "Scrum",
]

_KEYWORD_PATTERNS = [
    (kw, re.compile(r"(?<![\w+#.])" + re.escape(kw) + r"(?![\w+#])", re.IGNORECASE))
    for kw in KNOWN_KEYWORDS
]

_DEGREE_RE = re.compile(
    r"(?:Bachelor|Master|Doctor|B\.?\s?S\.?|B\.?\s?A\.?|M\.?\s?S\.?|B\.?\s?Tech|M\.?\s?Tech|Ph\.?\s?D\.?|"
    r"B\.?\s?Sc\.?|M\.?\s?Sc\.?|B\.?\s?Eng\.?)"
    r"[^\n]{0,30}?\b(?:in|of)\s+([A-Z][A-Za-z&/ ]{2,60})"
)
_MAJOR_LABEL_RE = re.compile(r"\bMajor\s*[:\-]\s*([A-Za-z&/ ]{2,60})", re.IGNORECASE)
_GRAD_YEAR_RE = re.compile(
    r"(?:Expected|Graduat\w*|Class of|Anticipated)[^\n]{0,40}?\b((?:19|20)\d{2})\b",
    re.IGNORECASE,
)
_YEAR_RE = re.compile(r"\b((?:19|20)\d{2})\b")
_COMPANY_SUFFIX_RE = re.compile(
    r"\b([A-Z][\w&.\-]*(?:\s+[A-Z][\w&.\-]*){0,3}\s+(?:Inc|LLC|LLP|Corp|Corporation|Ltd|Co|Group|Technologies|Labs)\.?)(?=\W|$)"
)
_COMPANY_AT_RE = re.compile(
    r"\b(?:Intern|Engineer|Developer|Analyst|Consultant|Manager|Scientist|Assistant|Associate)\w*"
    r"\s+(?:at|@)\s+([A-Z][\w&.\-]*(?:\s+[A-Z][\w&.\-]*){0,3})"
)
_NAME_LINE_RE = re.compile(r"^[A-Za-z][A-Za-z.'\-]*(?:\s+[A-Za-z][A-Za-z.'\-]*){1,3}$")
_SECTION_WORDS = {"resume", "curriculum vitae", "cv", "education", "experience", "skills", "summary"}


class ExtractionError(Exception):
    """Extraction could not produce anything usable."""


@dataclass
class ExtractedMetadata:
    name: Optional[str] = None
    major: Optional[str] = None
    graduation_year: Optional[str] = None
    companies: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)

    @classmethod
    def fallback(cls, filename_stem: str) -> "ExtractedMetadata":
        return cls(
            name=filename_stem,
            major=UNSPECIFIED,
            graduation_year=UNSPECIFIED,
            companies=[],
            keywords=[],
        )


def extract_text_from_pdf(content: bytes) -> str:
    """Extract text from PDF bytes."""
    try:
        reader = PdfReader(io.BytesIO(content))
        text_parts = []
        for page in reader.pages:
            page_text = page.extract_text()
            if page_text:
                text_parts.append(page_text)
    except Exception as e:
        raise ExtractionError(f"Error reading PDF: {e}") from e
    return "\n".join(text_parts)


def _clean(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = re.sub(r"\s+", " ", str(value)).strip(" ,;:-|")
    return value or None


def _unique(items) -> List[str]:
    seen = []
    for item in items:
        item = _clean(item)
        if item and item not in seen:
            seen.append(item)
    return seen


def guess_name(lines: List[str]) -> Optional[str]:
    for line in lines[:5]:
        candidate = line.strip()
        if candidate.lower() in _SECTION_WORDS:
            continue
        if _NAME_LINE_RE.match(candidate):
            return candidate
    return None


def guess_major(text: str) -> Optional[str]:
    match = _MAJOR_LABEL_RE.search(text) or _DEGREE_RE.search(text)
    if not match:
        return None
    # Degree lines often continue with the school name after a comma
    return _clean(re.split(r",|\||\bat\b|\(", match.group(1))[0])


def guess_graduation_year(text: str) -> Optional[str]:
    match = _GRAD_YEAR_RE.search(text)
    if match:
        return match.group(1)
    years = _YEAR_RE.findall(text)
    return max(years) if years else None


def guess_companies(text: str) -> List[str]:
    found = [m.group(1) for m in _COMPANY_AT_RE.finditer(text)]
    found += [m.group(1) for m in _COMPANY_SUFFIX_RE.finditer(text)]
    return _unique(found)


def guess_keywords(text: str) -> List[str]:
    return [kw for kw, pattern in _KEYWORD_PATTERNS if pattern.search(text)]


def heuristic_extract(text: str, fallback_name: str) -> ExtractedMetadata:
    lines = [line for line in text.splitlines() if line.strip()]
    return ExtractedMetadata(
        name=guess_name(lines) or fallback_name,
        major=guess_major(text),
        graduation_year=guess_graduation_year(text),
        companies=guess_companies(text),
        keywords=guess_keywords(text),
    )


def validate_ai_metadata(data: dict, fallback_name: str) -> ExtractedMetadata:
    """
    Validate and sanitize the AI payload.
    Ensures every field exists with the right type.
    """
    companies = data.get("companies") or []
    keywords = data.get("keywords") or []
    year = data.get("graduationYear") or data.get("graduation_year")
    return ExtractedMetadata(
        name=_clean(data.get("name")) or fallback_name,
        major=_clean(data.get("major")),
        graduation_year=_clean(str(year)) if year else None,
        companies=_unique(companies) if isinstance(companies, list) else [],
        keywords=_unique(keywords) if isinstance(keywords, list) else [],
    )


class ResumeExtractor:
    """
    Usage:
        extractor = ResumeExtractor(get_deepseek_client())
        metadata = extractor.extract(pdf_bytes, "alice")
    """

    def __init__(self, ai_client: Optional[DeepSeekClient] = None):
        self.ai_client = ai_client

    def extract(self, content: bytes, fallback_name: str) -> ExtractedMetadata:
        text = extract_text_from_pdf(content)
        if not text.strip():
            raise ExtractionError("No extractable text. The PDF may be scanned or password-protected.")

        if self.ai_client is not None:
            try:
                return validate_ai_metadata(self.ai_client.parse_resume(text), fallback_name)
            except Exception as e:
                logger.warning("ai_extraction_failed", error=str(e))

        return heuristic_extract(text, fallback_name)
