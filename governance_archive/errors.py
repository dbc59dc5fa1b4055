"""
Error taxonomy for artifact resolution and promotion.

Every error carries a stable ``code`` for programmatic handling and a
human-readable ``message`` that views render as-is. Lane mismatches are not
errors: mismatched candidates are filtered out silently.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ArchiveError(Exception):
    """
    Base class for engine errors.

    Attributes:
        code: Stable error code for programmatic handling
        message: Human-readable error description
    """

    default_code = "ARCHIVE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        self.code = code or self.default_code
        self.message = message
        super().__init__(f"{self.code}: {message}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "error": self.category,
            "code": self.code,
            "message": self.message,
        }

    @property
    def category(self) -> str:
        return "archive_error"


class StorageNotFound(ArchiveError):
    """The requested object does not exist, even after repair search."""

    default_code = "OBJECT_NOT_FOUND"

    def __init__(self, bucket: str, path: str, message: Optional[str] = None):
        self.bucket = bucket
        self.path = path
        super().__init__(
            message or f'Object not found in bucket "{bucket}" for "{path}".'
        )

    @property
    def category(self) -> str:
        return "not_found"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"bucket": self.bucket, "path": self.path})
        return data


class AccessError(ArchiveError):
    """Permission or transport failure from storage, datastore or a remote function.

    Never triggers repair; always surfaced to the caller.
    """

    default_code = "TRANSPORT_FAILED"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        self.status_code = status_code
        super().__init__(message, code)

    @property
    def category(self) -> str:
        return "access_error"


class ValidationError(ArchiveError):
    """Caller-side guard failure, raised before any network call."""

    default_code = "INVALID_REQUEST"

    @property
    def category(self) -> str:
        return "validation_error"


class CertificationFailure(ArchiveError):
    """The certification function answered ``ok: false``.

    The remote error text is kept verbatim in ``message``.
    """

    default_code = "CERTIFICATION_FAILED"

    def __init__(self, message: str, details: Any = None):
        self.details = details
        super().__init__(message)

    @property
    def category(self) -> str:
        return "certification_failure"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        if self.details is not None:
            data["details"] = self.details
        return data
