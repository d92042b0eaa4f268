"""Error taxonomy shared by the governance pipeline and the callable functions.

Every error carries a short machine-readable ``code`` (the callable protocol
status) and the HTTP status the web transport answers with.
"""

from __future__ import annotations


class ModcertError(Exception):
    """Base class for errors that are safe to show to the caller."""

    code = "internal"
    http_status = 500

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, str]:
        return {"status": self.code, "message": self.message}


class ValidationError(ModcertError):
    """Missing or malformed input."""

    code = "invalid-argument"
    http_status = 400


class AuthError(ModcertError):
    """No caller identity, or one that does not map to an active user."""

    code = "unauthenticated"
    http_status = 401


class ForbiddenError(ModcertError):
    """Authenticated, but not allowed to do this right now."""

    code = "permission-denied"
    http_status = 403


class NotFoundError(ModcertError):
    code = "not-found"
    http_status = 404


class RateLimitError(ModcertError):
    code = "resource-exhausted"
    http_status = 429


class DuplicateSubmissionError(RateLimitError):
    pass


class InternalError(ModcertError):
    code = "internal"
    http_status = 500
