from __future__ import annotations

import logging
from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine

from app.core.config import DATABASE_URL, ENV_NORMALIZED, LEGACY_NULL_COMPANY_VISIBLE

logger = logging.getLogger(__name__)
MIGRATIONS_PREFIX = "[MIGRATIONS]"


def validate_database_environment(env: str | None = None, database_url: str | None = None) -> None:
    env = (env or ENV_NORMALIZED).strip().lower()
    database_url = database_url or DATABASE_URL
    if env in {"prod", "production"} and database_url.startswith("sqlite"):
        logger.critical("%s SQLite is forbidden in production", MIGRATIONS_PREFIX)
        raise RuntimeError("SQLite is forbidden in production environment")


def ensure_migrations_applied(*, engine: Engine, alembic_config_path: Path, env: str | None = None) -> None:
    """Refuse to start when the database is behind the migration heads."""
    env = (env or ENV_NORMALIZED).strip().lower()
    if env == "test":
        logger.info("%s skipped migration check in test environment", MIGRATIONS_PREFIX)
        return

    if not alembic_config_path.exists():
        logger.critical("%s alembic config not found path=%s", MIGRATIONS_PREFIX, alembic_config_path)
        raise RuntimeError("alembic config not found")

    expected_heads = set(ScriptDirectory.from_config(Config(str(alembic_config_path))).get_heads())

    with engine.connect() as connection:
        current_heads = set(MigrationContext.configure(connection).get_current_heads())

    if not current_heads:
        logger.critical("%s database has no migration state", MIGRATIONS_PREFIX)
        raise RuntimeError("Database has no migration state")

    if current_heads != expected_heads:
        logger.critical(
            "%s pending migration detected current=%s expected=%s",
            MIGRATIONS_PREFIX,
            sorted(current_heads),
            sorted(expected_heads),
        )
        raise RuntimeError("Pending migrations detected")

    logger.info("%s migration state verified", MIGRATIONS_PREFIX)


def warn_legacy_visibility(enabled: bool | None = None) -> bool:
    enabled = LEGACY_NULL_COMPANY_VISIBLE if enabled is None else enabled
    if enabled:
        logger.warning(
            "Records without company_id are visible to every company; "
            "run the backfill and set LEGACY_NULL_COMPANY_VISIBLE=false"
        )
    return enabled
