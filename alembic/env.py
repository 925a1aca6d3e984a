# alembic/env.py
from __future__ import annotations

import os
from logging.config import fileConfig

from alembic import context
from sqlalchemy import create_engine
from sqlalchemy.pool import NullPool

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# models are loaded lazily through init_models()
from storefront.db.base import Base, init_models  # noqa: E402
from storefront.db.session import normalize_sync_dsn  # noqa: E402


# ---------------------------------------------------------------------------
# include_object: never autogenerate drops for objects the models don't know
# ---------------------------------------------------------------------------


def include_object(obj, name, type_, reflected, compare_to) -> bool:
    if reflected and compare_to is None:
        return False
    return True


# ---------------------------------------------------------------------------
# URL: STOREFRONT_DATABASE_URL > DATABASE_URL > alembic.ini sqlalchemy.url
# ---------------------------------------------------------------------------


def get_url() -> str:
    url = (
        os.getenv("STOREFRONT_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.get_main_option("sqlalchemy.url")
    )
    if not url:
        raise RuntimeError(
            "Alembic cannot determine the database URL: "
            "set STOREFRONT_DATABASE_URL / DATABASE_URL or sqlalchemy.url in alembic.ini"
        )

    url = url.strip()
    if (url.startswith('"') and url.endswith('"')) or (url.startswith("'") and url.endswith("'")):
        url = url[1:-1].strip()
    return normalize_sync_dsn(url)


# ---------------------------------------------------------------------------
# runners
# ---------------------------------------------------------------------------


def run_migrations_offline() -> None:
    """Offline: emit SQL only."""
    init_models()
    context.configure(
        url=get_url(),
        target_metadata=Base.metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
        compare_server_default=False,
        include_object=include_object,
    )

    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    init_models()
    engine = create_engine(get_url(), poolclass=NullPool, future=True)
    db_schema = os.getenv("DB_SCHEMA")

    with engine.connect() as connection:
        if db_schema:
            connection.exec_driver_sql(f"SET search_path TO {db_schema}")

        context.configure(
            connection=connection,
            target_metadata=Base.metadata,
            compare_type=True,
            compare_server_default=False,
            include_object=include_object,
            version_table_schema=db_schema if db_schema else None,
            include_schemas=bool(db_schema),
        )

        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
