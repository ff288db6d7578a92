"""
Error taxonomy shared by every service.

Each error carries the HTTP status it maps to; the exception handler in
main.py renders them as {"error": true, "message": ...}.
"""

from typing import Optional


class ResumeVaultError(Exception):
    status_code = 500

    def __init__(self, message: str, details: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        body = {"error": True, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ResumeVaultError):
    """Bad id or bad file. Raised before any side effect."""
    status_code = 400


class PermissionDeniedError(ResumeVaultError):
    status_code = 403


class NotFoundError(ResumeVaultError):
    status_code = 404


class BlobNotFoundError(NotFoundError):
    """The blob store has no object under the requested id."""


class StorageError(ResumeVaultError):
    """Blob store write/read/delete failed."""
    status_code = 500


class DatabaseError(ResumeVaultError):
    """Metadata store transaction failed."""
    status_code = 500


class UnexpectedError(ResumeVaultError):
    status_code = 500

    def __init__(self, message: str, stage: str, details: Optional[str] = None):
        super().__init__(message, details)
        self.stage = stage

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["stage"] = self.stage
        return body
