"""
Resume Vault
Stores uploaded PDF resumes with searchable metadata.

Architecture:
- PostgreSQL: Structured metadata (resumes, companies, keywords, cleanup queue)
- MongoDB GridFS: The original PDF bytes
- PyPDF2 / DeepSeek AI: Best-effort metadata extraction (never required)
"""

__version__ = "1.0.0"
