from datetime import datetime, timezone

from sqlalchemy import BigInteger, Integer
from sqlalchemy.orm import DeclarativeBase

from ..db.metadata import metadata_obj

# BigInteger keys, except on SQLite where only INTEGER PRIMARY KEY autoincrements.
ID_TYPE = BigInteger().with_variant(Integer, "sqlite")


def utcnow() -> datetime:
    """Timezone-aware column default for created/updated timestamps."""
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    metadata = metadata_obj
