"""
Alembic env - sync engine for migrations (Alembic runs in sync context).
Async URLs from settings are mapped to their sync drivers.
"""

from logging.config import fileConfig

from sqlalchemy import engine_from_config, pool
from alembic import context

from lendhub.config import get_settings
from lendhub.db.base import Base
import lendhub.db.models  # noqa: F401 - ensure models are registered

SYNC_DRIVERS = {
    "postgresql+asyncpg": "postgresql+psycopg2",
    "sqlite+aiosqlite": "sqlite",
}

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)


def sync_database_url(url: str) -> str:
    for async_prefix, sync_prefix in SYNC_DRIVERS.items():
        if url.startswith(async_prefix):
            return sync_prefix + url[len(async_prefix) :]
    return url


config.set_main_option("sqlalchemy.url", sync_database_url(get_settings().database_url))

target_metadata = Base.metadata


def _configure_options(url: str) -> dict:
    # SQLite cannot ALTER most constraints in place
    return {"compare_type": True, "render_as_batch": url.startswith("sqlite")}


def run_migrations_offline() -> None:
    """Emit SQL only, no DB connection."""
    url = config.get_main_option("sqlalchemy.url")
    context.configure(
        url=url,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **_configure_options(url),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        config.get_section(config.config_ini_section, {}),
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            **_configure_options(config.get_main_option("sqlalchemy.url")),
        )
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
