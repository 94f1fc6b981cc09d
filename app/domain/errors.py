"""
Application errors

One exception type tagged with an ErrorKind. The kind carries the HTTP status
and the envelope status ("fail" for 4xx, "error" for 5xx); the API layer
renders it, services only raise it.
"""
from enum import Enum
from typing import List, Optional


class ErrorKind(Enum):
    NOT_FOUND = 404
    VALIDATION_FAILED = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    CONFLICT = 409

    @property
    def status_code(self) -> int:
        return self.value

    @property
    def status(self) -> str:
        return "fail" if 400 <= self.value < 500 else "error"


_DEFAULT_MESSAGES = {
    ErrorKind.NOT_FOUND: "Resource not found",
    ErrorKind.VALIDATION_FAILED: "Validation failed",
    ErrorKind.UNAUTHORIZED: "Unauthorized access",
    ErrorKind.FORBIDDEN: "Access forbidden",
    ErrorKind.CONFLICT: "Resource already exists",
}


class AppError(Exception):
    """
    Expected, user-facing error

    Args:
        kind: error category (defines HTTP status)
        message: human-readable message returned to the client
        details: per-field messages for VALIDATION_FAILED
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: Optional[str] = None,
        details: Optional[List[str]] = None,
    ):
        self.kind = kind
        self.message = message or _DEFAULT_MESSAGES[kind]
        self.details = details
        super().__init__(self.message)

    @property
    def status_code(self) -> int:
        return self.kind.status_code

    def __repr__(self) -> str:
        return f"AppError({self.kind.name}, {self.message!r})"


def not_found(resource: str = "Resource", resource_id: str = "") -> AppError:
    if resource_id:
        return AppError(ErrorKind.NOT_FOUND, f"{resource} with id '{resource_id}' not found")
    return AppError(ErrorKind.NOT_FOUND, f"{resource} not found")


def unauthorized(message: str = "Unauthorized access") -> AppError:
    return AppError(ErrorKind.UNAUTHORIZED, message)


def validation_failed(message: str = "Validation failed", details: Optional[List[str]] = None) -> AppError:
    return AppError(ErrorKind.VALIDATION_FAILED, message, details or [])


def conflict(message: str = "Resource already exists") -> AppError:
    return AppError(ErrorKind.CONFLICT, message)
