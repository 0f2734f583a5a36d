"""Submission statuses and XP accounting shared by the evaluators."""

from __future__ import annotations

from typing import Iterable

PENDING = "pending"
ACCEPTED = "accepted"
REQUIRES_INTERACTION = "requires_interaction"
DECLINED = "declined"
NOT_SUBMITTED = "not_submitted"

SUBMISSION_STATUSES = (PENDING, ACCEPTED, REQUIRES_INTERACTION, DECLINED)
"""Statuses that may be stored on a submission row.

``not_submitted`` is never stored: it is the absence of a row.
"""


def is_accepted(status: str) -> bool:
    """Only ``accepted`` submissions count toward patterns and XP."""
    return status == ACCEPTED


def team_tile_xp(tiles: Iterable, accepted_tile_ids: Iterable) -> int:
    """Sum the ``weight`` of every tile whose id is in ``accepted_tile_ids``."""
    accepted = set(accepted_tile_ids)
    return sum(tile.weight for tile in tiles if tile.id in accepted)


__all__ = [
    "ACCEPTED",
    "DECLINED",
    "NOT_SUBMITTED",
    "PENDING",
    "REQUIRES_INTERACTION",
    "SUBMISSION_STATUSES",
    "is_accepted",
    "team_tile_xp",
]
