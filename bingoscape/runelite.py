"""JSON payloads served to the RuneLite plugin.

Field names here are consumed by the plugin and must stay stable.
"""

import logging
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from .db.utils import dt_iso
from .models import Bingo, Submission, Team, TeamTileSubmission, Tile
from .scoring.goals import goal_progress
from .scoring.xp import NOT_SUBMITTED
from .workflows import get_tiles_for_team, load_tier_requirements, sync_team_tier_progress

logger = logging.getLogger(__name__)


def _team_submissions(
    session: Session, bingo: Bingo, team: Optional[Team]
) -> dict[int, TeamTileSubmission]:
    if team is None:
        return {}
    stmt = (
        select(TeamTileSubmission)
        .join(Tile, Tile.id == TeamTileSubmission.tile_id)
        .where(Tile.bingo_id == bingo.id, TeamTileSubmission.team_id == team.id)
    )
    return {sub.tile_id: sub for sub in session.scalars(stmt)}


def _format_latest(submission: Submission) -> dict[str, Any]:
    user = submission.user
    return {
        "id": submission.id,
        "imageUrl": submission.image_path,
        "submittedBy": {
            "id": user.id,
            "name": user.name,
            "runescapeName": user.runescape_name,
        },
        "createdAt": dt_iso(submission.created_at),
    }


def _format_submission(tile: Tile, team_sub: Optional[TeamTileSubmission]) -> dict[str, Any]:
    # The plugin keys submission state by tile, so ``id`` is the tile id.
    data: dict[str, Any] = {
        "id": tile.id,
        "status": team_sub.status if team_sub is not None else NOT_SUBMITTED,
        "lastUpdated": dt_iso(team_sub.updated_at) if team_sub is not None else None,
        "submissionCount": len(team_sub.submissions) if team_sub is not None else 0,
    }
    if team_sub is not None and team_sub.latest_submission is not None:
        data["latestSubmission"] = _format_latest(team_sub.latest_submission)
    return data


def _format_goals(
    tile: Tile, team_sub: Optional[TeamTileSubmission], with_progress: bool
) -> list[dict[str, Any]]:
    evidence = team_sub.submissions if team_sub is not None else []
    goals = []
    for goal in tile.goals:
        data: dict[str, Any] = {
            "id": goal.id,
            "description": goal.description,
            "targetValue": goal.target_value,
        }
        if with_progress:
            data["progress"] = goal_progress(goal, evidence).to_json()
        goals.append(data)
    return goals


def format_tile(
    tile: Tile, team_sub: Optional[TeamTileSubmission], with_progress: bool
) -> dict[str, Any]:
    return {
        **tile.to_json(),
        "submission": _format_submission(tile, team_sub),
        "goals": _format_goals(tile, team_sub, with_progress),
    }


def format_bingo_data(
    session: Session, bingo: Bingo, team: Optional[Team]
) -> dict[str, Any]:
    """Build the plugin view of ``bingo`` for ``team``.

    Parameters
    ----------
    session : Session
        Active SQLAlchemy session.
    bingo : Bingo
        Board to describe.
    team : Optional[Team]
        The requester's team in the board's event, or ``None`` when the
        requester has none. Progression boards then come back with no tiles.

    Returns
    -------
    dict
        ``id``, ``title``, ``description``, ``rows``, ``columns``,
        ``codephrase``, ``locked``, ``visible``, ``bingoType`` and ``tiles``.
        Progression boards viewed by a team also carry ``progression``.
    """
    tiles = get_tiles_for_team(session, bingo, team)
    submissions = _team_submissions(session, bingo, team)

    data: dict[str, Any] = {
        "id": bingo.id,
        "title": bingo.title,
        "description": bingo.description,
        "rows": bingo.rows,
        "columns": bingo.columns,
        "codephrase": bingo.codephrase,
        "locked": bingo.locked,
        "visible": bingo.visible,
        "bingoType": bingo.bingo_type,
        "tiles": [
            format_tile(tile, submissions.get(tile.id), team is not None)
            for tile in tiles
        ],
    }

    if bingo.is_progression and team is not None:
        progress_rows = sync_team_tier_progress(session, bingo, team)
        data["progression"] = {
            "tierXpRequirements": [r.to_json() for r in load_tier_requirements(bingo)],
            "unlockedTiers": sorted(r.tier for r in progress_rows if r.is_unlocked),
            "tierProgress": [r.to_json() for r in progress_rows],
        }

    logger.debug(
        f"Formatted bingo {bingo.id} for team {team.id if team else None}: "
        f"{len(tiles)} tiles"
    )
    return data
