from pathlib import Path
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.engine import make_url


def resolve_sqlite_url(url: str, project_root: Path) -> str:
    """Anchor a relative SQLite database path at ``project_root``.

    ``sqlite:///./dev.db`` and ``sqlite+pysqlite:///data/dev.db`` become
    absolute. In-memory databases, absolute paths and non-SQLite URLs are
    returned unchanged.
    """
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return url
    database = parsed.database
    if not database or database == ":memory:" or Path(database).is_absolute():
        return url
    absolute = (project_root / database).resolve()
    return parsed.set(database=str(absolute)).render_as_string(hide_password=False)


def dt_iso(dt: Optional[datetime]) -> Optional[str]:
    """Convert a datetime to an ISO 8601 string in UTC, or return None.

    Naive datetimes (SQLite drops tzinfo on read) are assumed to be UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()
