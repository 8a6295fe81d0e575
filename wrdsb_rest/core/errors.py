"""
errors.py — REST Error Types

Every failure the API reports carries a machine-readable `code`, a
human-readable `message` and an HTTP `status`. Controllers raise these;
`main.py` renders them as `{"code", "message", "status"}`.

Taxonomy:
- NotFoundError    → resource absent or identifier empty (404)
- ForbiddenError   → authorization failed (401 anonymous / 403 logged in)
- ValidationError  → malformed or conflicting field value (400 unless overridden)
- DirectoryError   → the directory rejected a write; re-raised verbatim
"""

from typing import Any, Dict


class RestError(Exception):
    """Base class for errors surfaced to REST clients."""

    status = 500

    def __init__(self, code: str, message: str, status: int = None):
        super().__init__(message)
        self.code = code
        self.message = message
        if status is not None:
            self.status = status

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "status": self.status}

    def __repr__(self):
        return f"<{type(self).__name__} {self.code} ({self.status})>"


class NotFoundError(RestError):
    status = 404


class ForbiddenError(RestError):
    status = 403


class ValidationError(RestError):
    status = 400


class DirectoryError(RestError):
    """Raised by the user directory when it refuses a write."""

    status = 400
