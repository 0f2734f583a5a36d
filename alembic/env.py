from __future__ import annotations

import logging
import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from dotenv import load_dotenv

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))
load_dotenv(ROOT_DIR / ".env")

from bingoscape.db.engine import DEFAULT_SQLITE_URL, make_engine  # noqa: E402
from bingoscape.db.utils import resolve_sqlite_url  # noqa: E402
from bingoscape.models import Base  # noqa: E402

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

logger = logging.getLogger("alembic.env")

target_metadata = Base.metadata

COMPARE_OPTS = {"compare_type": True, "compare_server_default": True}


def database_url() -> str:
    """URL from ``DB_URL``, falling back to the project's SQLite file."""
    url = os.getenv("DB_URL")
    return resolve_sqlite_url(url, ROOT_DIR) if url else DEFAULT_SQLITE_URL


DATABASE_URL = database_url()
# ConfigParser interpolation treats "%" specially.
config.set_main_option("sqlalchemy.url", DATABASE_URL.replace("%", "%%"))


def run_offline() -> None:
    """Emit SQL for the bingo schema without connecting."""
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **COMPARE_OPTS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    """Apply migrations over a live connection.

    SQLite cannot ALTER most constraints, so batch mode is enabled there.
    """
    engine = make_engine(database_url=DATABASE_URL)
    with engine.connect() as connection:
        is_sqlite = connection.dialect.name == "sqlite"
        logger.info(f"Running migrations against {engine.url.render_as_string()}")
        context.configure(
            connection=connection,
            target_metadata=target_metadata,
            render_as_batch=is_sqlite,
            **COMPARE_OPTS,
        )
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
