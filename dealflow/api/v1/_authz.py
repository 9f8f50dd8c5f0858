"""Shared identity and outcome helpers for API v1 route modules."""

from __future__ import annotations

from typing import TypeVar

from fastapi import HTTPException, status

from dealflow.auth.identity import TokenIdentity, bearer_identity
from dealflow.core.outcome import Outcome
from dealflow.schemas.common import ErrorEnvelope

T = TypeVar("T")

ERROR_STATUS: dict[str, int] = {
    "authentication_error": status.HTTP_401_UNAUTHORIZED,
    "validation_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "not_found": status.HTTP_404_NOT_FOUND,
    "conflict": status.HTTP_409_CONFLICT,
    "persistence_error": status.HTTP_503_SERVICE_UNAVAILABLE,
}


def identity_from_header(authorization: str | None) -> TokenIdentity:
    return bearer_identity(authorization)


def unwrap(outcome: Outcome[T]) -> T:
    """Return outcome data or raise the matching HTTP error."""
    if outcome.success:
        return outcome.data
    error = outcome.error
    code = ERROR_STATUS.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR) if error else 500
    envelope = ErrorEnvelope(
        error_code=error.code if error else "error",
        detail=outcome.message or "Request failed.",
        count=error.count if error else None,
    )
    raise HTTPException(status_code=code, detail=envelope.model_dump(exclude_none=True))
