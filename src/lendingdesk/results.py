"""Operation results returned across the public API.

Every lending operation reports success or a typed failure instead of raising,
so callers can branch on ``result.error`` and show ``result.message``.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Machine-readable failure category."""

    NOT_FOUND = "not_found"
    INVALID_INPUT = "invalid_input"
    PRECONDITION_FAILED = "precondition_failed"
    CONFLICT = "conflict"
    UNAUTHORIZED = "unauthorized"
    STORE_FAILURE = "store_failure"


@dataclass
class Result(Generic[T]):
    """Outcome of an operation."""

    ok: bool
    value: Optional[T] = None
    error: Optional[ErrorKind] = None
    message: str = ""

    @classmethod
    def success(cls, value: Optional[T] = None, message: str = "") -> "Result[T]":
        return cls(ok=True, value=value, message=message)

    @classmethod
    def failure(cls, error: ErrorKind, message: str) -> "Result[T]":
        return cls(ok=False, error=error, message=message)

    def __bool__(self) -> bool:
        return self.ok


def not_found(what: str, identifier: Optional[str]) -> Result:
    """Build the standard NOT_FOUND failure for an unknown id."""
    if not identifier:
        return Result.failure(ErrorKind.NOT_FOUND, f"{what} id is required")
    return Result.failure(ErrorKind.NOT_FOUND, f"{what} not found: {identifier}")
