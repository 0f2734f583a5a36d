import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from dotenv import load_dotenv
from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker

from .utils import resolve_sqlite_url

logger = logging.getLogger(__name__)

load_dotenv()
ROOT_DIR = Path(__file__).resolve().parents[2]
DEFAULT_SQLITE_URL = resolve_sqlite_url(
    os.getenv("DB_URL", "sqlite:///./dev.db"), ROOT_DIR
)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    # SQLite ignores ON DELETE CASCADE unless this is set per connection.
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(database_url: Optional[str] = None, echo: bool = False) -> Engine:
    """Create the engine for ``database_url`` (``DB_URL`` by default)."""
    url = database_url or DEFAULT_SQLITE_URL
    engine = create_engine(url, echo=echo)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    logger.debug(f"Created engine for {engine.url.render_as_string()}")
    return engine


def get_sessionmaker(engine: Engine) -> sessionmaker[Session]:
    # Scoring results are read after commit, so keep attributes loaded.
    return sessionmaker(bind=engine, expire_on_commit=False)


@contextmanager
def session_scope(engine: Optional[Engine] = None) -> Iterator[Session]:
    """Session that commits on success and rolls back on error."""
    factory = get_sessionmaker(engine or make_engine())
    with factory() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            logger.exception("Rolled back session after error")
            raise
