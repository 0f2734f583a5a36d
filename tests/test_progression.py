import unittest
from types import SimpleNamespace

from bingoscape.scoring.grid import build_status_grid, tile_index, tile_position
from bingoscape.scoring.progression import (
    PROGRESSION,
    STANDARD,
    TierRequirement,
    evaluate_unlocked_tiers,
    filter_tiles_for_team,
)
from bingoscape.scoring.xp import team_tile_xp


REQUIREMENTS = [
    TierRequirement(tier=1, required_xp=0),
    TierRequirement(tier=2, required_xp=500),
    TierRequirement(tier=3, required_xp=1000),
]


def make_tile(id, index, tier=0, weight=0):
    return SimpleNamespace(id=id, index=index, tier=tier, weight=weight)


class TestEvaluateUnlockedTiers(unittest.TestCase):
    def test_threshold_is_inclusive(self):
        result = evaluate_unlocked_tiers(500, REQUIREMENTS)
        self.assertEqual(result.unlocked_tiers, frozenset({1, 2}))
        self.assertTrue(result.is_unlocked(2))
        self.assertFalse(result.is_unlocked(3))

    def test_next_requirement(self):
        result = evaluate_unlocked_tiers(500, REQUIREMENTS)
        self.assertEqual(result.next_requirement, TierRequirement(tier=3, required_xp=1000))
        self.assertIsNone(evaluate_unlocked_tiers(5000, REQUIREMENTS).next_requirement)

    def test_tiers_are_checked_independently(self):
        # Non-monotone thresholds: tier 2 is cheaper than tier 1.
        reqs = [TierRequirement(1, 300), TierRequirement(2, 100)]
        self.assertEqual(evaluate_unlocked_tiers(150, reqs).unlocked_tiers, frozenset({2}))

    def test_empty_requirements(self):
        result = evaluate_unlocked_tiers(10_000, [])
        self.assertEqual(result.unlocked_tiers, frozenset())
        self.assertIsNone(result.next_requirement)

    def test_idempotent(self):
        self.assertEqual(
            evaluate_unlocked_tiers(700, REQUIREMENTS),
            evaluate_unlocked_tiers(700, REQUIREMENTS),
        )

    def test_json(self):
        data = evaluate_unlocked_tiers(500, REQUIREMENTS).to_json()
        self.assertEqual(data["unlockedTiers"], [1, 2])
        self.assertEqual(data["tierXpRequirements"][1], {"tier": 2, "xpRequired": 500})


class TestFilterTilesForTeam(unittest.TestCase):
    def setUp(self):
        self.tiles = [
            make_tile(1, 0, tier=0),
            make_tile(2, 1, tier=1),
            make_tile(3, 2, tier=2),
            make_tile(4, 3, tier=1),
        ]

    def test_standard_board_returns_everything(self):
        for unlocked in (set(), {0}, {5, 6}):
            filtered = filter_tiles_for_team(self.tiles, unlocked, STANDARD)
            self.assertEqual(filtered, self.tiles)

    def test_progression_board_keeps_unlocked_tiers_in_order(self):
        filtered = filter_tiles_for_team(self.tiles, {0, 1}, PROGRESSION)
        self.assertEqual([t.id for t in filtered], [1, 2, 4])

    def test_progression_board_without_unlocks(self):
        self.assertEqual(filter_tiles_for_team(self.tiles, set(), PROGRESSION), [])

    def test_mapping_tiles(self):
        tiles = [{"id": "a", "tier": 0}, {"id": "b", "tier": 2}]
        filtered = filter_tiles_for_team(tiles, frozenset({2}), PROGRESSION)
        self.assertEqual(filtered, [{"id": "b", "tier": 2}])

    def test_empty_tile_list(self):
        self.assertEqual(filter_tiles_for_team([], {0}, PROGRESSION), [])


class TestGridAndXp(unittest.TestCase):
    def test_index_round_trip(self):
        self.assertEqual(tile_position(7, 5), (1, 2))
        self.assertEqual(tile_index(1, 2, 5), 7)

    def test_position_requires_columns(self):
        with self.assertRaises(ValueError):
            tile_position(3, 0)

    def test_status_grid_and_xp_count_only_accepted(self):
        tiles = [make_tile(10, 0, weight=5), make_tile(11, 1, weight=20), make_tile(12, 2, weight=7)]
        accepted = {10, 12}
        self.assertEqual(build_status_grid(tiles, accepted), {0: True, 1: False, 2: True})
        self.assertEqual(team_tile_xp(tiles, accepted), 12)
        self.assertEqual(team_tile_xp(tiles, []), 0)


if __name__ == "__main__":
    unittest.main()
