from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    select,
)
from sqlalchemy.orm import Mapped, Session, mapped_column, relationship

from .base import ID_TYPE, Base, utcnow
from ..db.utils import dt_iso
from ..scoring.grid import build_status_grid, tile_position
from ..scoring.patterns import PatternBonusSchedule
from ..scoring.progression import PROGRESSION, STANDARD, TierRequirement
from ..scoring.xp import ACCEPTED

if TYPE_CHECKING:
    from .event import Event, Team
    from .goal import Goal, GoalGroup
    from .submission import TeamTileSubmission


class Bingo(Base):
    """A bingo board belonging to an :class:`Event`.

    Boards are either ``standard`` (every tile visible, pattern bonuses apply)
    or ``progression`` (tiles grouped in tiers that unlock with team XP).
    """

    __tablename__ = "bingos"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    event_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    rows: Mapped[int] = mapped_column(Integer, nullable=False)
    columns: Mapped[int] = mapped_column(Integer, nullable=False)
    codephrase: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    bingo_type: Mapped[str] = mapped_column(String(20), nullable=False, default=STANDARD)
    main_diagonal_bonus_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    anti_diagonal_bonus_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    complete_board_bonus_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
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

    event: Mapped["Event"] = relationship(back_populates="bingos")
    tiles: Mapped[list["Tile"]] = relationship(
        back_populates="bingo", cascade="all, delete-orphan", order_by="Tile.index"
    )
    row_bonuses: Mapped[list["RowBonus"]] = relationship(
        back_populates="bingo", cascade="all, delete-orphan"
    )
    column_bonuses: Mapped[list["ColumnBonus"]] = relationship(
        back_populates="bingo", cascade="all, delete-orphan"
    )
    tier_xp_requirements: Mapped[list["TierXpRequirement"]] = relationship(
        back_populates="bingo",
        cascade="all, delete-orphan",
        order_by="TierXpRequirement.tier",
    )
    tier_progress: Mapped[list["TeamTierProgress"]] = relationship(
        back_populates="bingo", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint('"rows" > 0 AND "columns" > 0', name="dimensions_positive"),
        CheckConstraint(
            "bingo_type IN ('standard','progression')", name="bingo_type_enum"
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Bingo(id={self.id}, title={self.title!r}, rows={self.rows}, "
            f"columns={self.columns}, bingo_type='{self.bingo_type}')>"
        )

    @property
    def is_progression(self) -> bool:
        return self.bingo_type == PROGRESSION

    @property
    def pattern_bonus_schedule(self) -> PatternBonusSchedule:
        """Bonus XP configuration stored on this board.

        Rows and columns without a bonus row award 0.
        """
        return PatternBonusSchedule(
            main_diagonal_bonus_xp=self.main_diagonal_bonus_xp or 0,
            anti_diagonal_bonus_xp=self.anti_diagonal_bonus_xp or 0,
            complete_board_bonus_xp=self.complete_board_bonus_xp or 0,
            row_overrides={b.row_index: b.bonus_xp for b in self.row_bonuses},
            column_overrides={b.column_index: b.bonus_xp for b in self.column_bonuses},
        )

    @property
    def tier_requirements(self) -> list[TierRequirement]:
        """Tier thresholds ordered by tier.

        The base tier (0) is open from the start unless a threshold is
        configured for it explicitly.
        """
        requirements = {
            req.tier: TierRequirement(tier=req.tier, required_xp=req.xp_required)
            for req in self.tier_xp_requirements
        }
        requirements.setdefault(0, TierRequirement(tier=0, required_xp=0))
        return [requirements[tier] for tier in sorted(requirements)]

    def accepted_tile_ids(self, session: Session, team: "Team") -> set[int]:
        """Ids of this board's tiles that ``team`` has an accepted submission for."""
        from .submission import TeamTileSubmission

        stmt = (
            select(TeamTileSubmission.tile_id)
            .join(Tile, Tile.id == TeamTileSubmission.tile_id)
            .where(
                Tile.bingo_id == self.id,
                TeamTileSubmission.team_id == team.id,
                TeamTileSubmission.status == ACCEPTED,
            )
        )
        return set(session.scalars(stmt))

    def status_grid(self, session: Session, team: "Team") -> dict[int, bool]:
        return build_status_grid(self.tiles, self.accepted_tile_ids(session, team))

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "eventId": self.event_id,
            "title": self.title,
            "description": self.description,
            "rows": self.rows,
            "columns": self.columns,
            "codephrase": self.codephrase,
            "locked": self.locked,
            "visible": self.visible,
            "bingoType": self.bingo_type,
            "createdAt": dt_iso(self.created_at),
        }


class Tile(Base):
    """One cell of a :class:`Bingo` board, worth ``weight`` XP when accepted."""

    __tablename__ = "tiles"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    bingo_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("bingos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    header_image: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    weight: Mapped[int] = mapped_column(Integer, nullable=False)
    index: Mapped[int] = mapped_column(Integer, nullable=False)
    tier: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_hidden: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
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

    bingo: Mapped["Bingo"] = relationship(back_populates="tiles")
    goals: Mapped[list["Goal"]] = relationship(
        back_populates="tile", cascade="all, delete-orphan", order_by="Goal.order_index"
    )
    goal_groups: Mapped[list["GoalGroup"]] = relationship(
        back_populates="tile",
        cascade="all, delete-orphan",
        order_by="GoalGroup.order_index",
    )
    team_submissions: Mapped[list["TeamTileSubmission"]] = relationship(
        back_populates="tile", cascade="all, delete-orphan"
    )

    __table_args__ = (
        UniqueConstraint("bingo_id", "index", name="uq_tile_bingo_index"),
        CheckConstraint("weight >= 0", name="weight_non_negative"),
        CheckConstraint('"index" >= 0', name="index_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Tile(id={self.id}, bingo_id={self.bingo_id}, index={self.index}, "
            f"weight={self.weight}, tier={self.tier})>"
        )

    @property
    def row(self) -> int:
        return tile_position(self.index, self.bingo.columns)[0]

    @property
    def column(self) -> int:
        return tile_position(self.index, self.bingo.columns)[1]

    @property
    def root_goals(self) -> list["Goal"]:
        return [g for g in self.goals if g.parent_group_id is None]

    @property
    def root_goal_groups(self) -> list["GoalGroup"]:
        return [g for g in self.goal_groups if g.parent_group_id is None]

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "headerImage": self.header_image,
            "weight": self.weight,
            "index": self.index,
            "tier": self.tier,
            "isHidden": self.is_hidden,
        }


class RowBonus(Base):
    __tablename__ = "row_bonuses"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    bingo_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("bingos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    row_index: Mapped[int] = mapped_column(Integer, nullable=False)
    bonus_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    bingo: Mapped["Bingo"] = relationship(back_populates="row_bonuses")

    __table_args__ = (UniqueConstraint("bingo_id", "row_index", name="uq_row_bonus"),)


class ColumnBonus(Base):
    __tablename__ = "column_bonuses"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    bingo_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("bingos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    column_index: Mapped[int] = mapped_column(Integer, nullable=False)
    bonus_xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    bingo: Mapped["Bingo"] = relationship(back_populates="column_bonuses")

    __table_args__ = (
        UniqueConstraint("bingo_id", "column_index", name="uq_column_bonus"),
    )


class TierXpRequirement(Base):
    """XP a team needs to unlock the tiles of ``tier`` on a progression board."""

    __tablename__ = "tier_xp_requirements"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    bingo_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("bingos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tier: Mapped[int] = mapped_column(Integer, nullable=False)
    xp_required: Mapped[int] = mapped_column(Integer, nullable=False, default=5)

    bingo: Mapped["Bingo"] = relationship(back_populates="tier_xp_requirements")

    __table_args__ = (UniqueConstraint("bingo_id", "tier", name="uq_bingo_tier"),)


class TeamTierProgress(Base):
    """Persisted unlock state of one tier for one team."""

    __tablename__ = "team_tier_progress"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    team_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    bingo_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("bingos.id", ondelete="CASCADE"), nullable=False, index=True
    )
    tier: Mapped[int] = mapped_column(Integer, nullable=False)
    is_unlocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    unlocked_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    bingo: Mapped["Bingo"] = relationship(back_populates="tier_progress")

    __table_args__ = (
        UniqueConstraint("team_id", "bingo_id", "tier", name="uq_team_bingo_tier"),
    )

    def to_json(self) -> dict[str, Any]:
        return {
            "tier": self.tier,
            "isUnlocked": self.is_unlocked,
            "unlockedAt": dt_iso(self.unlocked_at),
        }
