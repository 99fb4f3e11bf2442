"""Error taxonomy for the whitelist application service."""

from typing import Dict, Optional


class ApplicationError(Exception):
    """Base class for errors surfaced to API callers.

    Attributes:
        message: Human-readable error message.
        status_code: HTTP status code the API responds with.
    """

    status_code = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> Dict:
        return {"status": "failed", "error": self.message}


class ValidationError(ApplicationError):
    """Malformed submission or decision payload, reported field by field."""

    status_code = 400

    def __init__(self, message: str, fields: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.fields = fields or {}

    def to_dict(self) -> Dict:
        payload = super().to_dict()
        payload["fields"] = self.fields
        return payload


class Unauthorized(ApplicationError):
    """No caller identity was supplied."""

    status_code = 401

    def __init__(self, message: str = "Unauthorized") -> None:
        super().__init__(message)


class Forbidden(ApplicationError):
    """Caller identity is present but lacks admin privileges."""

    status_code = 403

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class NotFound(ApplicationError):
    status_code = 404


class Conflict(ApplicationError):
    status_code = 409


class StoreIOError(ApplicationError):
    """Underlying durable storage failed; details stay in the logs."""

    status_code = 500

    def to_dict(self) -> Dict:
        return {"status": "failed", "error": "Internal server error"}
