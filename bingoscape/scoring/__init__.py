"""Pure evaluators for bingo board scoring."""

from .goals import GoalNode, GoalProgress, evaluate_goal_tree, goal_progress, is_tree_complete
from .grid import TileStatusGrid, build_status_grid, tile_index, tile_position
from .patterns import (
    CompletedPattern,
    EMPTY_RESULT,
    PatternBonusSchedule,
    PatternCompletionResult,
    evaluate_patterns,
)
from .progression import (
    PROGRESSION,
    STANDARD,
    TierRequirement,
    TierUnlockResult,
    evaluate_unlocked_tiers,
    filter_tiles_for_team,
)
from .xp import ACCEPTED, SUBMISSION_STATUSES, team_tile_xp

__all__ = [
    "ACCEPTED",
    "CompletedPattern",
    "EMPTY_RESULT",
    "GoalNode",
    "GoalProgress",
    "PROGRESSION",
    "PatternBonusSchedule",
    "PatternCompletionResult",
    "STANDARD",
    "SUBMISSION_STATUSES",
    "TierRequirement",
    "TierUnlockResult",
    "TileStatusGrid",
    "build_status_grid",
    "evaluate_goal_tree",
    "evaluate_patterns",
    "evaluate_unlocked_tiers",
    "filter_tiles_for_team",
    "goal_progress",
    "is_tree_complete",
    "team_tile_xp",
    "tile_index",
    "tile_position",
]
