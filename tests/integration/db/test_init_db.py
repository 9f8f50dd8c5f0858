from __future__ import annotations

import pytest
from sqlalchemy import inspect

import dealflow.database.db as db_module
from dealflow.database.init_db import init_db, seed_default_stages
from dealflow.services.stage_service import StageService


@pytest.fixture
def rebind_engine():
    original = db_module.get_active_database_url()
    yield db_module.reset_engine
    db_module.reset_engine(original)


def test_init_db_creates_schema_and_seeds_default_stages(rebind_engine):
    rebind_engine("sqlite:///:memory:")

    init_db()

    with db_module.get_db_session() as session:
        names = [stage.name for stage in StageService(db=session).list_stages()]
    assert names == ["Lead", "Qualification", "Proposal", "Negotiation", "Closing"]
    assert seed_default_stages() is False


def test_init_db_runs_migrations_for_file_databases(rebind_engine, tmp_path):
    rebind_engine(f"sqlite:///{tmp_path / 'dealflow.db'}")

    init_db()

    tables = set(inspect(db_module.get_engine()).get_table_names())
    assert {"users", "pipeline_stages", "deals", "alembic_version"}.issubset(tables)
    columns = {column["name"] for column in inspect(db_module.get_engine()).get_columns("deals")}
    assert {"status", "probability", "closed_at", "lost_reason", "stage_id"}.issubset(columns)


def test_services_open_sessions_on_the_rebound_engine(rebind_engine, tmp_path):
    target = f"sqlite:///{tmp_path / 'rebound.db'}"
    rebind_engine(target)

    with StageService() as service:
        assert str(service.db.get_bind().url) == target

    with db_module.get_db_session() as session:
        assert session.get_bind() is db_module.get_engine()
