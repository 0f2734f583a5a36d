from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .user import User  # noqa: F401
from .event import Event, Team, TeamMember  # noqa: F401
from .bingo import (  # noqa: F401
    Bingo,
    ColumnBonus,
    RowBonus,
    TeamTierProgress,
    TierXpRequirement,
    Tile,
)
from .goal import Goal, GoalGroup, GoalValue, ItemGoal, TeamGoalProgress  # noqa: F401
from .submission import Submission, TeamTileSubmission  # noqa: F401

__all__ = [
    "Base",
    "User",
    "Event",
    "Team",
    "TeamMember",
    "Bingo",
    "Tile",
    "RowBonus",
    "ColumnBonus",
    "TierXpRequirement",
    "TeamTierProgress",
    "Goal",
    "GoalGroup",
    "GoalValue",
    "ItemGoal",
    "TeamGoalProgress",
    "TeamTileSubmission",
    "Submission",
]
