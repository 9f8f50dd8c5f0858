from __future__ import annotations

from contextlib import contextmanager

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import dealflow.actions.base as actions_base
from dealflow.auth.identity import StaticIdentity
from dealflow.models import Base, User


def _build_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)


def _seed_users(TestingSessionLocal) -> None:
    session = TestingSessionLocal()
    session.add_all(
        [
            User(id=1, email="owner@example.com", name="Owner"),
            User(id=2, email="other@example.com", name="Other"),
        ]
    )
    session.commit()
    session.close()


@pytest.fixture
def session_factory():
    TestingSessionLocal = _build_session_factory()
    _seed_users(TestingSessionLocal)
    return TestingSessionLocal


@pytest.fixture
def session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def patched_sessions(monkeypatch, session_factory):
    @contextmanager
    def _get_db_session():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    monkeypatch.setattr(actions_base, "get_db_session", _get_db_session)
    return session_factory


class RecordingInvalidator:
    def __init__(self) -> None:
        self.calls: list[tuple[str, ...]] = []

    def revalidate(self, paths) -> None:
        self.calls.append(tuple(paths))


@pytest.fixture
def invalidator():
    return RecordingInvalidator()


@pytest.fixture
def owner():
    return StaticIdentity(owner_id=1)


@pytest.fixture
def other_owner():
    return StaticIdentity(owner_id=2)
