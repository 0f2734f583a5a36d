import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from .items.naming import matches_base_name
from .models.base import utcnow
from .models import (
    Bingo,
    Event,
    Goal,
    ItemGoal,
    Team,
    TeamGoalProgress,
    TeamTierProgress,
    TeamTileSubmission,
    Tile,
    User,
)
from .scoring.goals import GoalNode, evaluate_goal_tree, is_tree_complete
from .scoring.patterns import EMPTY_RESULT, PatternCompletionResult, evaluate_patterns
from .scoring.progression import (
    STANDARD,
    TierRequirement,
    TierUnlockResult,
    evaluate_unlocked_tiers,
    filter_tiles_for_team,
)
from .scoring.xp import ACCEPTED, team_tile_xp

if TYPE_CHECKING:
    from .items.api import ItemCatalog

logger = logging.getLogger(__name__)


# -------- patterns and XP --------


def get_status_grid(session: Session, bingo: Bingo, team: Team) -> dict[int, bool]:
    """Map every tile index of ``bingo`` to whether ``team`` has it accepted."""
    return bingo.status_grid(session, team)


def get_completed_patterns(
    session: Session, bingo: Bingo, team: Optional[Team]
) -> PatternCompletionResult:
    """Completed rows, columns, diagonals and board for ``team`` on ``bingo``.

    Only standard boards award pattern bonuses; progression boards and
    requests without a team get an empty result.
    """
    if bingo.bingo_type != STANDARD:
        return EMPTY_RESULT
    if team is None:
        logger.warning(f"No team resolved for bingo {bingo.id}; no patterns reported")
        return EMPTY_RESULT

    grid = get_status_grid(session, bingo, team)
    return evaluate_patterns(
        grid, bingo.rows, bingo.columns, bingo.pattern_bonus_schedule
    )


def calculate_bonus_xp(session: Session, bingo: Bingo, team: Team) -> int:
    return get_completed_patterns(session, bingo, team).total_bonus_xp


def calculate_team_xp(
    session: Session, bingo: Bingo, team: Team, include_bonus: bool = False
) -> int:
    """XP ``team`` has earned on ``bingo``.

    Tile XP is the summed weight of accepted tiles. Pattern bonus XP is added
    only when ``include_bonus`` is set; tier unlocking uses tile XP alone.
    """
    xp = team_tile_xp(bingo.tiles, bingo.accepted_tile_ids(session, team))
    if include_bonus:
        xp += calculate_bonus_xp(session, bingo, team)
    return xp


@dataclass(frozen=True)
class TeamPatternSummary:
    team: Team
    patterns: PatternCompletionResult
    completion_percentage: int
    completed_tile_indices: tuple[int, ...]

    def to_json(self) -> dict[str, Any]:
        return {
            "team": {"id": self.team.id, "name": self.team.name},
            "patterns": self.patterns.to_json(),
            "completionPercentage": self.completion_percentage,
            "completedTileIndices": list(self.completed_tile_indices),
        }


@dataclass(frozen=True)
class BoardPatternSummary:
    bingo: Bingo
    total_possible_bonus_xp: int
    teams: tuple[TeamPatternSummary, ...] = field(default_factory=tuple)

    def to_json(self) -> dict[str, Any]:
        return {
            "bingo": {
                "id": self.bingo.id,
                "title": self.bingo.title,
                "rows": self.bingo.rows,
                "columns": self.bingo.columns,
            },
            "teams": [t.to_json() for t in self.teams],
            "totalPossibleBonusXP": self.total_possible_bonus_xp,
        }


def _percentage(part: int, whole: int) -> int:
    # Half-up rounding.
    if whole <= 0:
        return 0
    return math.floor(part / whole * 100 + 0.5)


def get_event_pattern_completion(
    session: Session, event: Event
) -> list[BoardPatternSummary]:
    """Pattern standings of every team on every bonus-bearing board of ``event``.

    Progression boards and standard boards whose schedule can award no bonus
    at all are skipped. Boards keep the event's creation order and teams are
    listed by name.
    """
    boards: list[BoardPatternSummary] = []
    for bingo in event.bingos:
        if bingo.bingo_type != STANDARD:
            continue
        possible = bingo.pattern_bonus_schedule.total_possible_bonus_xp(
            bingo.rows, bingo.columns
        )
        if possible == 0:
            logger.debug(f"Skipping bingo {bingo.id}: no pattern bonuses configured")
            continue

        summaries = []
        for team in sorted(event.teams, key=lambda t: t.name):
            grid = get_status_grid(session, bingo, team)
            patterns = evaluate_patterns(
                grid, bingo.rows, bingo.columns, bingo.pattern_bonus_schedule
            )
            summaries.append(
                TeamPatternSummary(
                    team=team,
                    patterns=patterns,
                    completion_percentage=_percentage(patterns.total_bonus_xp, possible),
                    completed_tile_indices=tuple(
                        sorted(index for index, ok in grid.items() if ok)
                    ),
                )
            )
        boards.append(
            BoardPatternSummary(
                bingo=bingo, total_possible_bonus_xp=possible, teams=tuple(summaries)
            )
        )
    return boards


# -------- progression --------


def load_tier_requirements(bingo: Bingo) -> list[TierRequirement]:
    """Tier thresholds of ``bingo`` ordered by tier, with tier 0 open by default."""
    return bingo.tier_requirements


def _tier_progress_rows(
    session: Session, bingo: Bingo, team: Team
) -> dict[int, TeamTierProgress]:
    stmt = select(TeamTierProgress).where(
        TeamTierProgress.bingo_id == bingo.id, TeamTierProgress.team_id == team.id
    )
    return {row.tier: row for row in session.scalars(stmt)}


def evaluate_team_progression(
    session: Session, bingo: Bingo, team: Team
) -> TierUnlockResult:
    """Tiers unlocked by ``team``'s current tile XP on ``bingo``."""
    team_xp = calculate_team_xp(session, bingo, team)
    return evaluate_unlocked_tiers(team_xp, load_tier_requirements(bingo))


def sync_team_tier_progress(
    session: Session, bingo: Bingo, team: Team
) -> list[TeamTierProgress]:
    """Persist the tier unlock state of ``team`` on ``bingo``.

    One :class:`TeamTierProgress` row is kept per configured tier. A tier
    becomes unlocked the first time the team's XP reaches its threshold and
    ``unlocked_at`` is stamped then; a tier already unlocked stays unlocked
    even if accepted submissions are later declined.

    Returns
    -------
    list[TeamTierProgress]
        The rows ordered by tier.
    """
    if team.id is None or bingo.id is None:
        raise ValueError("Bingo and team must be persisted before syncing tiers.")

    result = evaluate_team_progression(session, bingo, team)
    existing = _tier_progress_rows(session, bingo, team)
    now = utcnow()

    for requirement in result.requirements:
        row = existing.get(requirement.tier)
        if row is None:
            row = TeamTierProgress(
                team_id=team.id,
                bingo_id=bingo.id,
                tier=requirement.tier,
                is_unlocked=False,
            )
            session.add(row)
            existing[requirement.tier] = row
        if result.is_unlocked(requirement.tier) and not row.is_unlocked:
            row.is_unlocked = True
            row.unlocked_at = now
            logger.info(
                f"Team {team.id} unlocked tier {requirement.tier} on bingo {bingo.id}"
            )

    session.flush()
    return [existing[tier] for tier in sorted(existing)]


def get_unlocked_tiers(session: Session, bingo: Bingo, team: Team) -> frozenset[int]:
    """Tiers ``team`` may see: reached by XP now, or unlocked at some point before."""
    unlocked = set(evaluate_team_progression(session, bingo, team).unlocked_tiers)
    unlocked.update(
        tier for tier, row in _tier_progress_rows(session, bingo, team).items()
        if row.is_unlocked
    )
    return frozenset(unlocked)


def get_tiles_for_team(
    session: Session, bingo: Bingo, team: Optional[Team]
) -> list[Tile]:
    """Tiles of ``bingo`` visible to ``team``, ordered by index.

    A progression board shows only unlocked tiers, and nothing at all when
    no team could be resolved for the requester.
    """
    tiles = sorted(bingo.tiles, key=lambda t: t.index)
    if not bingo.is_progression:
        return tiles
    if team is None:
        logger.warning(f"No team resolved for progression bingo {bingo.id}")
        return []
    return filter_tiles_for_team(
        tiles, get_unlocked_tiers(session, bingo, team), bingo.bingo_type
    )


# -------- submissions --------


def _after_acceptance_change(session: Session, tile: Tile, team: Team) -> None:
    bingo = tile.bingo
    if bingo.is_progression:
        sync_team_tier_progress(session, bingo, team)


def update_submission_status(
    session: Session,
    team_tile_submission: TeamTileSubmission,
    status: str,
    reviewer: Optional[User] = None,
) -> TeamTileSubmission:
    """Set the review status of a team's tile submission.

    Raises
    ------
    ValueError
        If ``status`` is not a storable submission status.
    """
    previous = team_tile_submission.status
    team_tile_submission.status = status
    if reviewer is not None:
        team_tile_submission.reviewed_by = reviewer.id
    session.add(team_tile_submission)
    session.flush()

    logger.debug(
        f"Submission {team_tile_submission.id} status {previous} -> {status}"
    )
    if ACCEPTED in (previous, status) and previous != status:
        _after_acceptance_change(
            session, team_tile_submission.tile, team_tile_submission.team
        )
    return team_tile_submission


# -------- goal trees and auto-completion --------


def _goal_progress_values(session: Session, tile: Tile, team: Team) -> dict[int, int]:
    return TeamGoalProgress.values_for_team(
        session, team.id, [goal.id for goal in tile.goals]
    )


def get_goal_evaluation(session: Session, tile: Tile, team: Team) -> list[GoalNode]:
    """Evaluated goal tree of ``tile`` for ``team``, root groups first."""
    progress = _goal_progress_values(session, tile, team)
    return evaluate_goal_tree(tile.root_goal_groups, tile.root_goals, progress)


def evaluate_tile_completion(session: Session, tile: Tile, team: Team) -> bool:
    """Whether ``team`` has met every root goal and group of ``tile``.

    A tile without goals can never complete on its own.
    """
    return is_tree_complete(get_goal_evaluation(session, tile, team))


@dataclass(frozen=True)
class AutoCompletionOutcome:
    should_complete: bool
    already_accepted: bool = False
    was_created: bool = False
    was_updated: bool = False
    submission: Optional[TeamTileSubmission] = None

    @property
    def auto_completed(self) -> bool:
        return self.was_created or self.was_updated


def check_and_auto_complete_tile(
    session: Session, tile: Tile, team: Team
) -> AutoCompletionOutcome:
    """Accept ``tile`` for ``team`` once its goal tree is complete.

    An existing submission in any other status is promoted to ``accepted``;
    otherwise a new accepted submission is created. Incomplete trees leave
    everything untouched.
    """
    if not evaluate_tile_completion(session, tile, team):
        return AutoCompletionOutcome(should_complete=False)

    existing = TeamTileSubmission.get_for(session, tile.id, team.id)
    if existing is not None and existing.status == ACCEPTED:
        return AutoCompletionOutcome(
            should_complete=True, already_accepted=True, submission=existing
        )

    if existing is not None:
        existing.status = ACCEPTED
        session.flush()
        logger.info(f"Auto-completed tile {tile.id} for team {team.id} (promoted)")
        _after_acceptance_change(session, tile, team)
        return AutoCompletionOutcome(
            should_complete=True, was_updated=True, submission=existing
        )

    submission = TeamTileSubmission(tile_id=tile.id, team_id=team.id, status=ACCEPTED)
    session.add(submission)
    session.flush()
    logger.info(f"Auto-completed tile {tile.id} for team {team.id} (created)")
    _after_acceptance_change(session, tile, team)
    return AutoCompletionOutcome(
        should_complete=True, was_created=True, submission=submission
    )


# -------- item possession check --------


@dataclass(frozen=True)
class PossessedItem:
    """An item stack reported by the RuneLite plugin."""

    item_id: int
    item_name: str
    quantity: int

    @classmethod
    def from_json(cls, data: Mapping[str, Any]) -> "PossessedItem":
        try:
            return cls(
                item_id=int(data["itemId"]),
                item_name=str(data["itemName"]),
                quantity=int(data["quantity"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValueError(f"Invalid item payload {data!r}: {e}") from e


@dataclass(frozen=True)
class GoalMatch:
    goal_id: int
    tile_id: int
    event_id: int
    team_id: int
    item_name: str
    base_name: str
    previous_value: int
    new_value: int
    target_value: int

    @property
    def is_complete(self) -> bool:
        return self.new_value >= self.target_value

    def to_json(self) -> dict[str, Any]:
        return {
            "goalId": self.goal_id,
            "itemName": self.item_name,
            "baseName": self.base_name,
            "previousValue": self.previous_value,
            "newValue": self.new_value,
            "targetValue": self.target_value,
            "isComplete": self.is_complete,
            "tileId": self.tile_id,
            "eventId": self.event_id,
        }


@dataclass(frozen=True)
class ItemCheckResult:
    scanned_items: int
    matched: tuple[GoalMatch, ...] = ()
    tiles_auto_completed: tuple[int, ...] = ()
    message: Optional[str] = None

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "success": True,
            "matched": [m.to_json() for m in self.matched],
            "tilesAutoCompleted": list(self.tiles_auto_completed),
            "scannedItems": self.scanned_items,
            "matchedGoals": len(self.matched),
        }
        if self.message:
            data["message"] = self.message
        return data


def _item_goals_for_events(session: Session, event_ids: set[int]) -> list[ItemGoal]:
    stmt = (
        select(ItemGoal)
        .join(Goal, Goal.id == ItemGoal.goal_id)
        .join(Tile, Tile.id == Goal.tile_id)
        .join(Bingo, Bingo.id == Tile.bingo_id)
        .where(Bingo.event_id.in_(event_ids))
        .order_by(ItemGoal.id)
    )
    return list(session.scalars(stmt))


def _get_or_create_progress(
    session: Session, goal_id: int, team_id: int
) -> TeamGoalProgress:
    stmt = select(TeamGoalProgress).where(
        TeamGoalProgress.goal_id == goal_id, TeamGoalProgress.team_id == team_id
    )
    progress = session.scalars(stmt).first()
    if progress is None:
        progress = TeamGoalProgress(goal_id=goal_id, team_id=team_id, current_value=0)
        session.add(progress)
    return progress


def apply_item_possessions(
    session: Session,
    user: User,
    items: Sequence[PossessedItem],
    catalog: Optional["ItemCatalog"] = None,
    event_ids: Optional[Iterable[int]] = None,
) -> ItemCheckResult:
    """Record item goal progress from the items a player currently holds.

    Every reported item is matched, variant-agnostically, against the item
    goals of the events where ``user`` has a team. A match raises that
    team's progress to ``min(quantity, target)``; progress never decreases.
    Tiles whose goals changed are then checked for auto-completion.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    user : User
        Player the items belong to.
    items : Sequence[PossessedItem]
        Items reported by the plugin.
    catalog : Optional[ItemCatalog]
        Item catalogue used to keep catalogued names ending in a suffix.
    event_ids : Optional[Iterable[int]]
        Restrict the check to these events.

    Returns
    -------
    ItemCheckResult
        Goals whose progress increased and tiles that were auto-completed.
    """
    if not items:
        raise ValueError("No items provided.")
    if user.id is None:
        raise ValueError("User must be persisted before checking items.")

    teams = Team.list_for_user(session, user.id)
    if event_ids is not None:
        wanted = set(event_ids)
        teams = [t for t in teams if t.event_id in wanted]
    if not teams:
        return ItemCheckResult(
            scanned_items=len(items), message="User is not assigned to any teams"
        )

    item_goals = _item_goals_for_events(session, {t.event_id for t in teams})
    if not item_goals:
        return ItemCheckResult(
            scanned_items=len(items), message="No item goals found for user's events"
        )

    matched: list[GoalMatch] = []
    # (tile_id, team_id) pairs in first-seen order
    to_check: dict[tuple[int, int], None] = {}

    for item in items:
        for item_goal in item_goals:
            if not matches_base_name(item.item_name, item_goal.base_name, catalog):
                continue
            goal = item_goal.goal
            event_id = goal.tile.bingo.event_id
            for team in teams:
                if team.event_id != event_id:
                    continue
                progress = _get_or_create_progress(session, goal.id, team.id)
                previous = progress.current_value or 0
                new_value = min(item.quantity, goal.target_value)
                if new_value <= previous:
                    continue
                progress.current_value = new_value
                session.flush()
                matched.append(
                    GoalMatch(
                        goal_id=goal.id,
                        tile_id=goal.tile_id,
                        event_id=event_id,
                        team_id=team.id,
                        item_name=item.item_name,
                        base_name=item_goal.base_name,
                        previous_value=previous,
                        new_value=new_value,
                        target_value=goal.target_value,
                    )
                )
                to_check[(goal.tile_id, team.id)] = None

    teams_by_id = {t.id: t for t in teams}
    completed: list[int] = []
    for tile_id, team_id in to_check:
        tile = session.get(Tile, tile_id)
        outcome = check_and_auto_complete_tile(session, tile, teams_by_id[team_id])
        if outcome.auto_completed:
            completed.append(tile_id)

    logger.debug(
        f"Item check for user {user.id}: {len(items)} items, "
        f"{len(matched)} goal updates, {len(completed)} tiles auto-completed"
    )
    return ItemCheckResult(
        scanned_items=len(items),
        matched=tuple(matched),
        tiles_auto_completed=tuple(completed),
    )
