"""Operation results and the error taxonomy shared by the store, service and routers."""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure kinds an operation can report."""

    VALIDATION = "validation_error"
    DUPLICATE_EMAIL = "duplicate_email"
    NOT_FOUND = "not_found"
    INVALID_REFERENCE = "invalid_reference"
    AUTHENTICATION_FAILURE = "authentication_failure"
    UNEXPECTED = "unexpected"


STATUS_BY_ERROR: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.DUPLICATE_EMAIL: 409,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_REFERENCE: 400,
    ErrorKind.AUTHENTICATION_FAILURE: 401,
    ErrorKind.UNEXPECTED: 500,
}


@dataclass
class Result(Generic[T]):
    """Either a value or an error kind with a human readable message."""

    value: T | None = None
    error: ErrorKind | None = None
    message: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None

    @property
    def status_code(self) -> int:
        """HTTP status for a failed result."""
        if self.error is None:
            raise ValueError("Successful result has no error status")
        return STATUS_BY_ERROR[self.error]

    @classmethod
    def ok(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def fail(cls, error: ErrorKind, message: str) -> "Result[T]":
        return cls(error=error, message=message)
