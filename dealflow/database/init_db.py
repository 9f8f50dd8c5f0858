"""Schema creation and first-run seeding."""

from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config as AlembicConfig

import dealflow.database.db as db_module
from dealflow.core.config import get_config
from dealflow.models import Base
from dealflow.services.stage_service import StageService

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


def _build_alembic_config(database_url: str) -> AlembicConfig:
    cfg = AlembicConfig(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def create_schema(use_migrations: bool = True) -> None:
    """Bring the schema to head; throwaway databases use create_all."""
    database_url = db_module.get_active_database_url()
    if use_migrations and ":memory:" not in database_url:
        command.upgrade(_build_alembic_config(database_url), "head")
        logger.info("database.migrated", extra={"event": "database.migrated"})
        return
    Base.metadata.create_all(bind=db_module.get_engine())
    logger.info("database.created", extra={"event": "database.created"})


def seed_default_stages() -> bool:
    with db_module.get_db_session() as session:
        return StageService(db=session).ensure_default_stages()


def init_db(use_migrations: bool = True) -> None:
    create_schema(use_migrations=use_migrations)
    if get_config().SEED_DEFAULT_STAGES:
        seed_default_stages()


if __name__ == "__main__":
    from dealflow.core.startup import bootstrap

    bootstrap()
    init_db()
