from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import DateTime, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from .base import ID_TYPE, Base, utcnow
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .event import TeamMember


class User(Base):
    """A BingoScape account, optionally linked to a RuneScape character."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    email: Mapped[Optional[str]] = mapped_column(
        String(255), unique=True, index=True, nullable=True
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    runescape_name: Mapped[Optional[str]] = mapped_column(String(12), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    team_memberships: Mapped[list["TeamMember"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name!r}, runescape_name={self.runescape_name!r})>"

    @validates("email")
    def _normalize_email(self, _key: str, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        normalized = value.strip().lower()
        return normalized or None

    @classmethod
    def get_by_email(cls, session: Session, email: str) -> Optional["User"]:
        """Get a user by email address (case-insensitive)."""
        return session.scalar(select(cls).where(cls.email == email.strip().lower()))

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "runescapeName": self.runescape_name,
            "createdAt": dt_iso(self.created_at),
        }
