"""Engine and session factory for the deal store.

The engine is module state so that `init_db` and tests can rebind it to
another URL. Callers go through `new_session`, `get_db_session` and
`get_engine` instead of importing `engine` or `SessionLocal` by name, which
would pin them to whichever engine was bound at import time.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Engine, create_engine, text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from dealflow.core.config import get_config

logger = logging.getLogger(__name__)

# Server databases only; sqlite keeps SQLAlchemy's default pool for its URL kind.
SERVER_POOL_OPTIONS: dict[str, Any] = {
    "pool_pre_ping": True,
    "pool_recycle": 3600,
    "pool_size": 10,
    "max_overflow": 20,
}

engine: Engine
SessionLocal: sessionmaker[Session]
_database_url: str


def _engine_options(database_url: str) -> dict[str, Any]:
    options: dict[str, Any] = {"echo": get_config().DEBUG}
    if make_url(database_url).get_backend_name() == "sqlite":
        # Board moves reconcile from worker threads.
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(SERVER_POOL_OPTIONS)
    return options


def _bind(database_url: str) -> None:
    global engine, SessionLocal, _database_url
    engine = create_engine(database_url, **_engine_options(database_url))
    SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    _database_url = database_url
    logger.debug(
        "database.bound",
        extra={"event": "database.bound", "context": {"backend": engine.dialect.name}},
    )


_bind(get_config().DATABASE_URL)


def get_engine() -> Engine:
    return engine


def get_active_database_url() -> str:
    return _database_url


def reset_engine(database_url: str | None = None) -> None:
    """Dispose the current engine and bind a new one (same URL when omitted)."""
    previous = engine
    _bind(database_url or _database_url)
    previous.dispose()


def new_session() -> Session:
    """Open a session on the engine bound right now."""
    return SessionLocal()


@contextmanager
def get_db_session() -> Generator[Session, None, None]:
    db = new_session()
    try:
        yield db
    finally:
        db.close()


def verify_database_connection() -> bool:
    """Run a trivial query; startup decides what a failure means."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:  # pragma: no cover - exercised in deployment.
        logger.error(
            "database.connection_failed",
            extra={
                "event": "database.connection_failed",
                "context": {"backend": engine.dialect.name, "detail": str(exc)},
            },
        )
        return False
