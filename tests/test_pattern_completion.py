import unittest

from bingoscape.scoring.patterns import (
    ANTI_DIAGONAL,
    COMPLETE_BOARD,
    EMPTY_RESULT,
    MAIN_DIAGONAL,
    PatternBonusSchedule,
    evaluate_patterns,
)


def grid_with(rows: int, columns: int, accepted: set[int]) -> dict[int, bool]:
    return {i: i in accepted for i in range(rows * columns)}


SCHEDULE = PatternBonusSchedule.uniform(
    row_bonus_xp=10, column_bonus_xp=10, diagonal_bonus_xp=15, board_bonus_xp=50
)


class TestRowsAndColumns(unittest.TestCase):
    def test_full_row_is_reported_with_its_bonus(self):
        grid = grid_with(5, 5, {5, 6, 7, 8, 9})
        result = evaluate_patterns(grid, 5, 5, SCHEDULE)

        self.assertEqual([p.index for p in result.completed_rows], [1])
        self.assertEqual(result.completed_rows[0].bonus_xp, 10)
        self.assertEqual(result.completed_columns, ())

    def test_flipping_one_tile_removes_the_row(self):
        accepted = {0, 1, 2, 3, 4}
        self.assertEqual(
            len(evaluate_patterns(grid_with(5, 5, accepted), 5, 5, SCHEDULE).completed_rows),
            1,
        )
        for idx in accepted:
            grid = grid_with(5, 5, accepted - {idx})
            self.assertEqual(evaluate_patterns(grid, 5, 5, SCHEDULE).completed_rows, ())

    def test_column_on_rectangular_board(self):
        # 3 rows x 5 columns: column 2 is indices 2, 7, 12
        grid = grid_with(3, 5, {2, 7, 12})
        result = evaluate_patterns(grid, 3, 5, SCHEDULE)
        self.assertEqual([p.index for p in result.completed_columns], [2])
        self.assertEqual(result.completed_rows, ())

    def test_rows_and_columns_in_ascending_order(self):
        grid = grid_with(3, 3, {0, 1, 2, 6, 7, 8, 3, 5})
        result = evaluate_patterns(grid, 3, 3, SCHEDULE)
        self.assertEqual([p.index for p in result.completed_rows], [0, 2])
        self.assertEqual([p.index for p in result.completed_columns], [0, 2])

    def test_per_row_overrides(self):
        schedule = PatternBonusSchedule(row_bonus_xp=5, row_overrides={0: 40})
        grid = grid_with(2, 2, {0, 1, 2, 3})
        result = evaluate_patterns(grid, 2, 2, schedule)
        self.assertEqual([p.bonus_xp for p in result.completed_rows], [40, 5])

    def test_missing_indices_count_as_not_accepted(self):
        grid = {0: True, 1: True}  # index 2 missing
        result = evaluate_patterns(grid, 1, 3, SCHEDULE)
        self.assertEqual(result.completed_rows, ())


class TestDiagonals(unittest.TestCase):
    def test_main_diagonal(self):
        grid = grid_with(5, 5, {0, 6, 12, 18, 24})
        result = evaluate_patterns(grid, 5, 5, SCHEDULE)
        self.assertIsNotNone(result.main_diagonal)
        assert result.main_diagonal is not None
        self.assertEqual(result.main_diagonal.kind, MAIN_DIAGONAL)
        self.assertEqual(result.main_diagonal.bonus_xp, 15)
        self.assertIsNone(result.anti_diagonal)
        self.assertEqual(result.total_bonus_xp, 15)

    def test_anti_diagonal(self):
        grid = grid_with(5, 5, {4, 8, 12, 16, 20})
        result = evaluate_patterns(grid, 5, 5, SCHEDULE)
        self.assertIsNotNone(result.anti_diagonal)
        assert result.anti_diagonal is not None
        self.assertEqual(result.anti_diagonal.kind, ANTI_DIAGONAL)
        self.assertIsNone(result.main_diagonal)

    def test_non_square_board_never_has_diagonals(self):
        grid = grid_with(3, 5, set(range(15)))
        result = evaluate_patterns(grid, 3, 5, SCHEDULE)
        self.assertIsNone(result.main_diagonal)
        self.assertIsNone(result.anti_diagonal)
        self.assertEqual(len(result.completed_rows), 3)
        self.assertEqual(len(result.completed_columns), 5)
        self.assertIsNotNone(result.complete_board)


class TestCompleteBoardAndTotals(unittest.TestCase):
    def test_total_is_sum_of_reported_bonuses(self):
        schedule = PatternBonusSchedule(row_bonus_xp=10, complete_board_bonus_xp=50)
        grid = grid_with(2, 3, set(range(6)))
        result = evaluate_patterns(grid, 2, 3, schedule)

        self.assertEqual(len(result.completed_rows), 2)
        # columns complete too, but award nothing
        self.assertEqual(len(result.completed_columns), 3)
        self.assertTrue(all(p.bonus_xp == 0 for p in result.completed_columns))
        self.assertEqual(result.total_bonus_xp, 70)
        self.assertEqual(
            result.total_bonus_xp, sum(p.bonus_xp for p in result.completed_patterns())
        )

    def test_fully_accepted_square_board(self):
        result = evaluate_patterns(grid_with(5, 5, set(range(25))), 5, 5, SCHEDULE)
        self.assertEqual(result.total_bonus_xp, 5 * 10 + 5 * 10 + 15 + 15 + 50)
        assert result.complete_board is not None
        self.assertEqual(result.complete_board.kind, COMPLETE_BOARD)

    def test_board_with_one_pending_tile_is_not_complete(self):
        accepted = set(range(25)) - {13}
        result = evaluate_patterns(grid_with(5, 5, accepted), 5, 5, SCHEDULE)
        self.assertIsNone(result.complete_board)

    def test_partially_authored_board_counts_present_tiles(self):
        grid = {0: True, 1: True, 2: True}
        result = evaluate_patterns(grid, 3, 3, SCHEDULE)
        self.assertIsNotNone(result.complete_board)
        self.assertEqual([p.index for p in result.completed_rows], [0])

    def test_total_possible_bonus(self):
        self.assertEqual(SCHEDULE.total_possible_bonus_xp(5, 5), 180)
        # no diagonals on a rectangular board
        self.assertEqual(SCHEDULE.total_possible_bonus_xp(3, 5), 30 + 50 + 50)


class TestEdgeCases(unittest.TestCase):
    def test_empty_grid(self):
        result = evaluate_patterns({}, 5, 5, SCHEDULE)
        self.assertEqual(result, EMPTY_RESULT)
        self.assertEqual(result.total_bonus_xp, 0)

    def test_zero_sized_board(self):
        self.assertEqual(evaluate_patterns({0: True}, 0, 0, SCHEDULE), EMPTY_RESULT)

    def test_evaluation_is_idempotent(self):
        grid = grid_with(4, 4, {0, 1, 2, 3, 5, 10, 15})
        first = evaluate_patterns(grid, 4, 4, SCHEDULE)
        second = evaluate_patterns(grid, 4, 4, SCHEDULE)
        self.assertEqual(first, second)
        self.assertEqual(first.to_json(), second.to_json())

    def test_json_shape(self):
        grid = grid_with(2, 2, {0, 1, 2, 3})
        data = evaluate_patterns(grid, 2, 2, SCHEDULE).to_json()
        self.assertEqual(
            set(data),
            {
                "completedRows",
                "completedColumns",
                "mainDiagonal",
                "antiDiagonal",
                "completeBoard",
                "totalBonusXP",
            },
        )
        self.assertEqual(data["completedRows"][0], {"type": "row", "index": 0, "bonusXP": 10})
        self.assertEqual(data["mainDiagonal"], {"type": "main-diagonal", "bonusXP": 15})
        self.assertEqual(data["completeBoard"], {"type": "complete-board", "bonusXP": 50})


if __name__ == "__main__":
    unittest.main()
