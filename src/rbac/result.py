"""Typed outcome of RBAC operations.

Expected refusals (self-targeting, system-role mutation, referenced-role
deletion, stale ids) come back as a failed Result instead of an exception.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories shared by every service."""

    VALIDATION = "validation"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class Result(Generic[T]):
    """Success value or failure kind plus a user-facing message."""

    ok: bool
    value: T | None = None
    kind: ErrorKind | None = None
    message: str | None = None

    @classmethod
    def success(cls, value: Any = None) -> "Result[Any]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "Result[Any]":
        return cls(ok=False, kind=kind, message=message)

    @classmethod
    def validation(cls, message: str) -> "Result[Any]":
        return cls.failure(ErrorKind.VALIDATION, message)

    @classmethod
    def forbidden(cls, message: str) -> "Result[Any]":
        return cls.failure(ErrorKind.FORBIDDEN, message)

    @classmethod
    def conflict(cls, message: str) -> "Result[Any]":
        return cls.failure(ErrorKind.CONFLICT, message)

    @classmethod
    def not_found(cls, message: str) -> "Result[Any]":
        return cls.failure(ErrorKind.NOT_FOUND, message)

    def __bool__(self) -> bool:
        return self.ok
