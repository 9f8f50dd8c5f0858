"""Shared runner turning engine calls into explicit outcomes."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import TypeVar

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dealflow.auth.identity import IdentityProvider
from dealflow.core.exceptions import (
    AuthenticationError,
    DealflowException,
    PersistenceError,
    ValidationError,
)
from dealflow.core.outcome import Outcome
from dealflow.database.db import get_db_session
from dealflow.services.revalidation import ViewInvalidator, notify_changed

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _pydantic_message(exc: PydanticValidationError) -> str:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ())) or "input"
    return f"Invalid {location}: {first.get('msg', 'invalid value')}."


def run_action(
    operation: str,
    identity: IdentityProvider,
    body: Callable[[Session, int], T],
    invalidate: Iterable[str] | Callable[[T], Iterable[str]] = (),
    invalidator: ViewInvalidator | None = None,
) -> Outcome[T]:
    """Authenticate, run `body` in a session and report the result as an Outcome."""
    try:
        owner_id = identity.get_current_owner()
        with get_db_session() as session:
            data = body(session, owner_id)
    except PydanticValidationError as exc:
        return _failed(operation, ValidationError(_pydantic_message(exc)))
    except DealflowException as exc:
        return _failed(operation, exc)
    except SQLAlchemyError as exc:
        logger.exception(f"{operation}.database_error", extra={"event": f"{operation}.database_error"})
        return _failed(operation, PersistenceError(str(exc)))

    paths = invalidate(data) if callable(invalidate) else invalidate
    paths = list(paths)
    if paths:
        notify_changed(invalidator, *paths)
    return Outcome.ok(data)


def _failed(operation: str, exc: DealflowException) -> Outcome:
    event = f"{operation}.failed"
    level = logging.ERROR if isinstance(exc, (PersistenceError, AuthenticationError)) else logging.INFO
    logger.log(level, event, extra={"event": event, "context": {"error_code": exc.code, "detail": str(exc)}})
    return Outcome.fail(exc)
