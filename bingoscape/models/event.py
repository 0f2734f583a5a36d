from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    exists,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import ID_TYPE, Base, utcnow
from ..db.utils import dt_iso

if TYPE_CHECKING:
    from .bingo import Bingo
    from .user import User


class Event(Base):
    """A clan bingo event. Owns its boards and teams."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    end_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    bingos: Mapped[list["Bingo"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="Bingo.created_at",
    )
    teams: Mapped[list["Team"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
        order_by="Team.name",
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title!r})>"

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "startDate": dt_iso(self.start_date),
            "endDate": dt_iso(self.end_date),
            "locked": self.locked,
        }


class Team(Base):
    """A team competing in one :class:`Event`."""

    __tablename__ = "teams"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    event: Mapped["Event"] = relationship(back_populates="teams")
    members: Mapped[list["TeamMember"]] = relationship(
        back_populates="team", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Team(id={self.id}, event_id={self.event_id}, name={self.name!r})>"

    @classmethod
    def find_for_user(
        cls, session: Session, event_id: int, user_id: int
    ) -> Optional["Team"]:
        """Return the user's team in ``event_id``.

        ``None`` when the user has no membership row for any team of the
        event; callers treat that as "no team" rather than an error.
        """
        membership = exists().where(
            TeamMember.team_id == cls.id, TeamMember.user_id == user_id
        )
        stmt = select(cls).where(cls.event_id == event_id, membership).order_by(cls.id)
        return session.scalars(stmt).first()

    @classmethod
    def list_for_user(cls, session: Session, user_id: int) -> list["Team"]:
        """Every team the user belongs to, across events."""
        stmt = (
            select(cls)
            .join(TeamMember, TeamMember.team_id == cls.id)
            .where(TeamMember.user_id == user_id)
            .order_by(cls.id)
        )
        return list(session.scalars(stmt))

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id, "eventId": self.event_id, "name": self.name}


class TeamMember(Base):
    __tablename__ = "team_members"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    team_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    is_leader: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    team: Mapped["Team"] = relationship(back_populates="members")
    user: Mapped["User"] = relationship(back_populates="team_memberships")

    __table_args__ = (UniqueConstraint("team_id", "user_id", name="uq_team_member"),)

    def __repr__(self) -> str:
        return f"<TeamMember(team_id={self.team_id}, user_id={self.user_id})>"
