from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Float,
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

if TYPE_CHECKING:
    from .bingo import Tile
    from .event import Team

GENERIC = "generic"
ITEM = "item"


class GoalGroup(Base):
    """AND/OR node grouping goals and nested groups of a tile.

    ``min_required_goals`` only matters for ``OR`` groups.
    """

    __tablename__ = "goal_groups"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    tile_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("tiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_group_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("goal_groups.id", ondelete="CASCADE"), nullable=True
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    logical_operator: Mapped[str] = mapped_column(String(3), nullable=False)
    min_required_goals: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    tile: Mapped["Tile"] = relationship(back_populates="goal_groups")
    parent_group: Mapped[Optional["GoalGroup"]] = relationship(
        back_populates="child_groups", remote_side=[id]
    )
    child_groups: Mapped[list["GoalGroup"]] = relationship(
        back_populates="parent_group", order_by="GoalGroup.order_index"
    )
    goals: Mapped[list["Goal"]] = relationship(
        back_populates="parent_group", order_by="Goal.order_index"
    )

    __table_args__ = (
        CheckConstraint("logical_operator IN ('AND','OR')", name="logical_operator_enum"),
        CheckConstraint("min_required_goals >= 1", name="min_required_goals_positive"),
    )

    def __repr__(self) -> str:
        return (
            f"<GoalGroup(id={self.id}, tile_id={self.tile_id}, "
            f"operator='{self.logical_operator}')>"
        )


class Goal(Base):
    __tablename__ = "goals"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    tile_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("tiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_group_id: Mapped[Optional[int]] = mapped_column(
        ID_TYPE, ForeignKey("goal_groups.id", ondelete="CASCADE"), nullable=True
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)
    target_value: Mapped[int] = mapped_column(Integer, nullable=False)
    goal_type: Mapped[str] = mapped_column(String(16), nullable=False, default=GENERIC)
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )

    tile: Mapped["Tile"] = relationship(back_populates="goals")
    parent_group: Mapped[Optional["GoalGroup"]] = relationship(back_populates="goals")
    goal_values: Mapped[list["GoalValue"]] = relationship(
        back_populates="goal", cascade="all, delete-orphan"
    )
    item_goal: Mapped[Optional["ItemGoal"]] = relationship(
        back_populates="goal", cascade="all, delete-orphan", uselist=False
    )
    team_progress: Mapped[list["TeamGoalProgress"]] = relationship(
        back_populates="goal", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint("goal_type IN ('generic','item')", name="goal_type_enum"),
        CheckConstraint("target_value >= 0", name="target_value_non_negative"),
    )

    def __repr__(self) -> str:
        return (
            f"<Goal(id={self.id}, tile_id={self.tile_id}, "
            f"target_value={self.target_value}, goal_type='{self.goal_type}')>"
        )

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "description": self.description,
            "targetValue": self.target_value,
            "goalType": self.goal_type,
            "goalValues": [v.to_json() for v in self.goal_values],
        }
        if self.item_goal is not None:
            data["itemGoal"] = self.item_goal.to_json()
        return data


class GoalValue(Base):
    """Preset contribution amount offered when submitting toward a goal."""

    __tablename__ = "goal_values"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    goal_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    value: Mapped[float] = mapped_column(Float, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    goal: Mapped["Goal"] = relationship(back_populates="goal_values")

    def to_json(self) -> dict[str, Any]:
        return {"id": self.id, "value": self.value, "description": self.description}


class ItemGoal(Base):
    """Item requirement attached to an ``item`` goal."""

    __tablename__ = "item_goals"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    goal_id: Mapped[int] = mapped_column(
        ID_TYPE,
        ForeignKey("goals.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    item_id: Mapped[int] = mapped_column(Integer, nullable=False)
    base_name: Mapped[str] = mapped_column(String(255), nullable=False)
    exact_variant: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    image_url: Mapped[str] = mapped_column(Text, nullable=False, default="")

    goal: Mapped["Goal"] = relationship(back_populates="item_goal")

    def __repr__(self) -> str:
        return f"<ItemGoal(goal_id={self.goal_id}, base_name={self.base_name!r})>"

    def to_json(self) -> dict[str, Any]:
        return {
            "itemId": self.item_id,
            "baseName": self.base_name,
            "exactVariant": self.exact_variant,
            "imageUrl": self.image_url,
        }


class TeamGoalProgress(Base):
    __tablename__ = "team_goal_progress"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    team_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True
    )
    goal_id: Mapped[int] = mapped_column(
        ID_TYPE, ForeignKey("goals.id", ondelete="CASCADE"), nullable=False, index=True
    )
    current_value: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    goal: Mapped["Goal"] = relationship(back_populates="team_progress")
    team: Mapped["Team"] = relationship()

    __table_args__ = (UniqueConstraint("goal_id", "team_id", name="uq_goal_team"),)

    @classmethod
    def values_for_team(
        cls, session: Session, team_id: int, goal_ids: list[int]
    ) -> dict[int, int]:
        """Map ``goal_id -> current_value`` for the given goals of one team."""
        if not goal_ids:
            return {}
        stmt = select(cls).where(cls.team_id == team_id, cls.goal_id.in_(goal_ids))
        return {row.goal_id: row.current_value for row in session.scalars(stmt)}

    def to_json(self) -> dict[str, Any]:
        return {
            "goalId": self.goal_id,
            "teamId": self.team_id,
            "currentValue": self.current_value,
            "updatedAt": dt_iso(self.updated_at),
        }
