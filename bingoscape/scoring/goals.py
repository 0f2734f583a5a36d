"""Goal-tree evaluation for tiles with sub-requirements."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional

from .xp import ACCEPTED

GOAL = "goal"
GROUP = "group"
AND = "AND"
OR = "OR"


@dataclass(frozen=True)
class GoalNode:
    """Evaluated goal or goal group.

    ``operator`` and ``children`` are only set for groups.
    """

    kind: str
    id: Any
    is_complete: bool
    operator: Optional[str] = None
    children: tuple["GoalNode", ...] = ()

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.kind,
            "id": self.id,
            "isComplete": self.is_complete,
        }
        if self.kind == GROUP:
            data["operator"] = self.operator
            data["children"] = [child.to_json() for child in self.children]
        return data


@dataclass(frozen=True)
class GoalProgress:
    approved_progress: float
    total_progress: float
    approved_percentage: float
    is_completed: bool

    def to_json(self) -> dict[str, Any]:
        return {
            "approvedProgress": self.approved_progress,
            "totalProgress": self.total_progress,
            "approvedPercentage": self.approved_percentage,
            "isCompleted": self.is_completed,
        }


def evaluate_goal(goal: Any, progress: Mapping[Any, float]) -> GoalNode:
    """A goal is complete once the team's progress reaches ``target_value``."""
    current = progress.get(goal.id, 0) or 0
    return GoalNode(kind=GOAL, id=goal.id, is_complete=current >= goal.target_value)


def evaluate_group(group: Any, progress: Mapping[Any, float]) -> GoalNode:
    """Recursively evaluate ``group`` and its children.

    ``AND`` groups need at least one child and all children complete. ``OR``
    groups need ``min_required_goals`` completed children (1 when unset).
    """
    children = [evaluate_group(child, progress) for child in group.child_groups]
    children += [evaluate_goal(goal, progress) for goal in group.goals]

    if group.logical_operator == AND:
        is_complete = bool(children) and all(c.is_complete for c in children)
    else:
        completed = sum(1 for c in children if c.is_complete)
        is_complete = completed >= (group.min_required_goals or 1)

    return GoalNode(
        kind=GROUP,
        id=group.id,
        is_complete=is_complete,
        operator=group.logical_operator,
        children=tuple(children),
    )


def evaluate_goal_tree(
    root_groups: Iterable[Any],
    root_goals: Iterable[Any],
    progress: Mapping[Any, float],
) -> list[GoalNode]:
    """Evaluate the root-level groups and goals of a tile, groups first."""
    nodes = [evaluate_group(group, progress) for group in root_groups]
    nodes += [evaluate_goal(goal, progress) for goal in root_goals]
    return nodes


def is_tree_complete(nodes: Iterable[GoalNode]) -> bool:
    """Root nodes are combined with an implicit AND; an empty tree is incomplete."""
    nodes = list(nodes)
    return bool(nodes) and all(node.is_complete for node in nodes)


def goal_progress(goal: Any, submissions: Iterable[Any]) -> GoalProgress:
    """Summarise the evidence a team submitted toward ``goal``.

    Only submissions whose ``goal_id`` matches are counted. Approved progress
    sums accepted submissions; total progress sums all of them.
    """
    relevant = [s for s in submissions if s.goal_id == goal.id]
    approved = sum((s.submission_value or 0) for s in relevant if s.status == ACCEPTED)
    total = sum((s.submission_value or 0) for s in relevant)

    target = goal.target_value
    if target and target > 0:
        percentage = min(100.0, approved / target * 100)
        completed = approved >= target
    else:
        percentage = 0.0
        completed = False

    return GoalProgress(
        approved_progress=approved,
        total_progress=total,
        approved_percentage=percentage,
        is_completed=completed,
    )


__all__ = [
    "AND",
    "GOAL",
    "GROUP",
    "GoalNode",
    "GoalProgress",
    "OR",
    "evaluate_goal",
    "evaluate_goal_tree",
    "evaluate_group",
    "goal_progress",
    "is_tree_complete",
]
