"""Explicit success/failure results returned across the action boundary."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from dealflow.core.exceptions import (
    AuthenticationError,
    ConflictError,
    DealflowException,
    PersistenceError,
)

T = TypeVar("T")

GENERIC_RETRY_MESSAGE = "Something went wrong while saving your changes. Please try again."
AUTH_REQUIRED_MESSAGE = "Your session has expired. Please sign in again."


@dataclass(frozen=True)
class OutcomeError:
    code: str
    message: str
    count: int | None = None


@dataclass(frozen=True)
class Outcome(Generic[T]):
    success: bool
    data: T | None = None
    error: OutcomeError | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: T | None = None, **meta: Any) -> "Outcome[T]":
        return cls(success=True, data=data, meta=meta)

    @classmethod
    def fail(cls, exc: DealflowException) -> "Outcome[T]":
        return cls(success=False, error=to_outcome_error(exc))

    @property
    def message(self) -> str | None:
        return self.error.message if self.error else None


def to_outcome_error(exc: DealflowException) -> OutcomeError:
    """Translate an exception into a user-presentable error."""
    if isinstance(exc, AuthenticationError):
        return OutcomeError(code=exc.code, message=AUTH_REQUIRED_MESSAGE)
    if isinstance(exc, PersistenceError):
        return OutcomeError(code=exc.code, message=GENERIC_RETRY_MESSAGE)
    if isinstance(exc, ConflictError):
        return OutcomeError(code=exc.code, message=str(exc), count=exc.count)
    return OutcomeError(code=exc.code, message=str(exc))
