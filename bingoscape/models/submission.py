from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship, validates

from .base import ID_TYPE, Base, utcnow
from ..db.utils import dt_iso
from ..scoring.xp import PENDING, SUBMISSION_STATUSES

if TYPE_CHECKING:
    from .bingo import Tile
    from .event import Team
    from .goal import Goal
    from .user import User


_STATUS_CHECK = "status IN ('pending','accepted','requires_interaction','declined')"


def _validate_status(status: str) -> str:
    if status not in SUBMISSION_STATUSES:
        raise ValueError(
            f"Unknown submission status {status!r}; expected one of {SUBMISSION_STATUSES}"
        )
    return status


class TeamTileSubmission(Base):
    """Review state of one tile for one team.

    A tile with no row for a team is ``not_submitted``.
    """

    __tablename__ = "team_tile_submissions"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    tile_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("tiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    team_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=PENDING)
    reviewed_by: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
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

    tile: Mapped["Tile"] = relationship(back_populates="team_submissions")
    team: Mapped["Team"] = relationship()
    submissions: Mapped[list["Submission"]] = relationship(
        back_populates="team_tile_submission",
        cascade="all, delete-orphan",
        order_by="Submission.id",
    )

    __table_args__ = (
        UniqueConstraint("tile_id", "team_id", name="uq_team_tile_submission"),
        CheckConstraint(_STATUS_CHECK, name="team_tile_submission_status_enum"),
    )

    def __repr__(self) -> str:
        return (
            f"<TeamTileSubmission(id={self.id}, tile_id={self.tile_id}, "
            f"team_id={self.team_id}, status='{self.status}')>"
        )

    @validates("status")
    def _check_status(self, key: str, value: str) -> str:
        return _validate_status(value)

    @classmethod
    def get_for(
        cls, session: Session, tile_id: int, team_id: int
    ) -> Optional["TeamTileSubmission"]:
        stmt = select(cls).where(cls.tile_id == tile_id, cls.team_id == team_id)
        return session.scalars(stmt).first()

    @property
    def latest_submission(self) -> Optional["Submission"]:
        return self.submissions[-1] if self.submissions else None

    def to_json(self) -> dict[str, Any]:
        latest = self.latest_submission
        return {
            "id": self.id,
            "status": self.status,
            "lastUpdated": dt_iso(self.updated_at),
            "submissionCount": len(self.submissions),
            "latestSubmission": latest.to_json() if latest is not None else None,
        }


class Submission(Base):
    """One piece of evidence submitted under a :class:`TeamTileSubmission`.

    ``goal_id`` ties the evidence to a goal of the tile and
    ``submission_value`` is the amount it contributes to that goal.
    """

    __tablename__ = "submissions"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    team_tile_submission_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("team_tile_submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    submitted_by: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    goal_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("goals.id", ondelete="SET NULL"), nullable=True, index=True
    )
    submission_value: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default=PENDING)
    image_path: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    is_auto_submission: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    source_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    source_item_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    plugin_account_name: Mapped[Optional[str]] = mapped_column(
        String(12), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    team_tile_submission: Mapped["TeamTileSubmission"] = relationship(
        back_populates="submissions"
    )
    user: Mapped["User"] = relationship()
    goal: Mapped[Optional["Goal"]] = relationship()

    __table_args__ = (
        CheckConstraint(_STATUS_CHECK, name="submission_status_enum"),
        CheckConstraint("submission_value >= 0", name="submission_value_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Submission(id={self.id}, goal_id={self.goal_id}, "
            f"value={self.submission_value}, status='{self.status}')>"
        )

    @validates("status")
    def _check_status(self, key: str, value: str) -> str:
        return _validate_status(value)

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "submittedBy": self.submitted_by,
            "goalId": self.goal_id,
            "submissionValue": self.submission_value,
            "status": self.status,
            "isAutoSubmission": self.is_auto_submission,
            "sourceName": self.source_name,
            "createdAt": dt_iso(self.created_at),
        }
