# Overview: Service error taxonomy shared by workflows and routes.

from __future__ import annotations


class ServiceError(Exception):
    """Base class for errors a workflow reports back to its caller."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(ServiceError):
    """400-level input problem."""
    status_code = 400

    @classmethod
    def missing(cls, fields: list[str]) -> "ValidationError":
        return cls(
            f"Missing required fields: {', '.join(fields)}",
            details={"missing_fields": fields},
        )


class AccessDeniedError(ServiceError):
    """Caller's scope does not cover the requested store or action."""
    status_code = 403


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    """409-level state machine violation (already voided, already reviewed)."""
    status_code = 409


class PersistenceError(ServiceError):
    """Backing store failure. The workflow has been rolled back in full."""
    status_code = 500

    def __init__(self, message: str = "Internal server error"):
        super().__init__(message)


def require_fields(data: dict, fields: list[str]) -> None:
    """Raise ValidationError naming every field that is absent or empty."""
    missing = [f for f in fields if data.get(f) in (None, "", [])]
    if missing:
        raise ValidationError.missing(missing)
