"""
Domain errors shared by all MovieMatch modules.

Every error carries the HTTP status it is surfaced with and a stable
``kind`` string that clients can switch on.
"""

from typing import Any, Dict, List, Optional


class MovieMatchError(Exception):
    """Base class for errors recovered at the request boundary."""

    status_code: int = 400
    kind: str = "MovieMatchError"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        """Structured error body."""
        return {"error": self.message, "kind": self.kind}


class SessionNotFound(MovieMatchError):
    status_code = 404
    kind = "SessionNotFound"

    def __init__(self, code: str):
        super().__init__(f"Session code not found: {code}")
        self.code = code


class SessionFull(MovieMatchError):
    status_code = 409
    kind = "SessionFull"

    def __init__(self, code: str):
        super().__init__(f"Session {code} is full (two users already joined)")
        self.code = code


class InvalidSlot(MovieMatchError):
    status_code = 400
    kind = "InvalidSlot"

    def __init__(self, slot: str):
        super().__init__(f"Invalid participant slot: {slot!r}")
        self.slot = slot


class IncompleteRatings(MovieMatchError):
    """Raised when a recommendation is requested before every movie is rated."""

    status_code = 409
    kind = "IncompleteRatings"

    def __init__(self, missing: Dict[str, List[int]]):
        super().__init__("Both users have not finished rating yet")
        self.missing = missing

    def to_dict(self) -> Dict[str, Any]:
        body = super().to_dict()
        body["missing"] = self.missing
        return body


class UpstreamUnavailable(MovieMatchError):
    status_code = 502
    kind = "UpstreamUnavailable"

    def __init__(self, message: str = "Error fetching movie list", cause: Optional[Exception] = None):
        super().__init__(message)
        self.cause = cause


class ServiceUnavailable(MovieMatchError):
    status_code = 503
    kind = "ServiceUnavailable"

    def __init__(self, message: str = "Service not initialized"):
        super().__init__(message)


class ExhaustedCodespace(MovieMatchError):
    status_code = 503
    kind = "ExhaustedCodespace"

    def __init__(self, attempts: int):
        super().__init__(f"Could not generate a unique session code after {attempts} attempts")
        self.attempts = attempts


__all__ = [
    "MovieMatchError",
    "SessionNotFound",
    "SessionFull",
    "InvalidSlot",
    "IncompleteRatings",
    "UpstreamUnavailable",
    "ExhaustedCodespace",
    "ServiceUnavailable",
]
