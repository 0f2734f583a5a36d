"""Tier unlocking for progression bingo boards."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Sequence, TypeVar

STANDARD = "standard"
PROGRESSION = "progression"
BINGO_TYPES = (STANDARD, PROGRESSION)

T = TypeVar("T")


@dataclass(frozen=True)
class TierRequirement:
    """Cumulative XP a team needs before tiles of ``tier`` are shown."""

    tier: int
    required_xp: int

    def to_json(self) -> dict[str, int]:
        # Plugin contract uses ``xpRequired``.
        return {"tier": self.tier, "xpRequired": self.required_xp}


@dataclass(frozen=True)
class TierUnlockResult:
    """Outcome of :func:`evaluate_unlocked_tiers`.

    Attributes
    ----------
    team_xp : int
        XP the evaluation was run with.
    unlocked_tiers : frozenset[int]
        Tiers whose requirement is met.
    requirements : tuple[TierRequirement, ...]
        The requirements as supplied, in input order.
    """

    team_xp: int
    unlocked_tiers: frozenset[int]
    requirements: tuple[TierRequirement, ...] = ()

    def is_unlocked(self, tier: int) -> bool:
        return tier in self.unlocked_tiers

    @property
    def next_requirement(self) -> Optional[TierRequirement]:
        """The cheapest requirement that is still locked, if any."""
        locked = [r for r in self.requirements if r.tier not in self.unlocked_tiers]
        if not locked:
            return None
        return min(locked, key=lambda r: (r.required_xp, r.tier))

    def to_json(self) -> dict[str, Any]:
        return {
            "unlockedTiers": sorted(self.unlocked_tiers),
            "tierXpRequirements": [r.to_json() for r in self.requirements],
        }


def evaluate_unlocked_tiers(
    team_xp: int, tier_requirements: Iterable[TierRequirement]
) -> TierUnlockResult:
    """Return which tiers ``team_xp`` unlocks.

    Every tier is checked on its own: tier ``t`` is unlocked iff
    ``team_xp >= required_xp(t)``. Lower tiers are not required to be
    unlocked first and tiers need not be contiguous.
    """
    requirements = tuple(tier_requirements)
    unlocked = frozenset(r.tier for r in requirements if team_xp >= r.required_xp)
    return TierUnlockResult(
        team_xp=team_xp, unlocked_tiers=unlocked, requirements=requirements
    )


def _tier_of(tile: Any) -> Optional[int]:
    if isinstance(tile, Mapping):
        return tile.get("tier")
    return getattr(tile, "tier", None)


def filter_tiles_for_team(
    tiles: Sequence[T], unlocked_tiers: Iterable[int], bingo_type: str
) -> list[T]:
    """Keep the tiles a team may see.

    On a progression board only tiles whose ``tier`` is unlocked are kept, in
    their original order. Any other board type returns every tile.
    """
    if bingo_type != PROGRESSION:
        return list(tiles)
    allowed = set(unlocked_tiers)
    return [tile for tile in tiles if _tier_of(tile) in allowed]


__all__ = [
    "BINGO_TYPES",
    "PROGRESSION",
    "STANDARD",
    "TierRequirement",
    "TierUnlockResult",
    "evaluate_unlocked_tiers",
    "filter_tiles_for_team",
]
