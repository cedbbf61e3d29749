from __future__ import annotations

import logging
import os
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect
from sqlalchemy.engine import Engine

from app.core.config import DATABASE_URL
from app.core.database import Base
import app.models  # noqa: F401

logger = logging.getLogger(__name__)
MIGRATIONS_PREFIX = "[MIGRATIONS]"


def _current_env() -> str:
    return os.getenv("ENVIRONMENT", os.getenv("ENV", "dev")).strip().lower()


def _is_sqlite(url: str) -> bool:
    return url.startswith("sqlite")


def validate_database_environment() -> None:
    if _current_env() in {"prod", "production"} and _is_sqlite(DATABASE_URL):
        logger.critical("%s SQLite is forbidden in production", MIGRATIONS_PREFIX)
        raise RuntimeError("SQLite is forbidden in production environment")


def expected_heads(alembic_config_path: Path) -> set[str]:
    if not alembic_config_path.exists():
        logger.critical("%s alembic config not found path=%s", MIGRATIONS_PREFIX, alembic_config_path)
        raise RuntimeError("alembic config not found")
    script_directory = ScriptDirectory.from_config(Config(str(alembic_config_path)))
    return set(script_directory.get_heads())


def applied_heads(engine: Engine) -> set[str]:
    with engine.connect() as connection:
        if "alembic_version" not in inspect(connection).get_table_names():
            logger.critical("%s alembic_version table missing", MIGRATIONS_PREFIX)
            raise RuntimeError("Database has no migration state")
        rows = connection.exec_driver_sql("SELECT version_num FROM alembic_version").fetchall()
    return {row[0] for row in rows if row and row[0]}


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path) -> None:
    if _current_env() == "test":
        logger.info("%s skipped migration check in test environment", MIGRATIONS_PREFIX)
        return

    expected = expected_heads(alembic_config_path)
    current = applied_heads(engine)
    if current != expected:
        logger.critical(
            "%s pending migration detected current=%s expected=%s",
            MIGRATIONS_PREFIX,
            sorted(current),
            sorted(expected),
        )
        raise RuntimeError("Pending migrations detected. Run: alembic upgrade head")

    logger.info("%s schema at head=%s", MIGRATIONS_PREFIX, sorted(current))


def prepare_database(*, engine: Engine, alembic_config_path: Path) -> None:
    """SQLite de desenvolvimento ganha create_all; qualquer outro banco precisa estar no head."""
    validate_database_environment()
    if _is_sqlite(str(engine.url)):
        Base.metadata.create_all(bind=engine)
        logger.info("%s sqlite schema ensured via create_all", MIGRATIONS_PREFIX)
        return
    ensure_migrations_applied(engine=engine, alembic_config_path=alembic_config_path)
