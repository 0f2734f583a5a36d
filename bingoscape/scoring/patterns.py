"""Pattern completion scoring for standard bingo boards."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from .grid import (
    TileStatusGrid,
    all_accepted,
    anti_diagonal_indices,
    board_indices,
    column_indices,
    main_diagonal_indices,
    row_indices,
)

ROW = "row"
COLUMN = "column"
MAIN_DIAGONAL = "main-diagonal"
ANTI_DIAGONAL = "anti-diagonal"
COMPLETE_BOARD = "complete-board"


def _frozen_mapping(value: Optional[Mapping[int, int]]) -> Mapping[int, int]:
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True)
class PatternBonusSchedule:
    """Bonus XP awarded for each kind of completed pattern.

    Attributes
    ----------
    row_bonus_xp : int
        Bonus for any completed row without an entry in ``row_overrides``.
    column_bonus_xp : int
        Bonus for any completed column without an entry in
        ``column_overrides``.
    main_diagonal_bonus_xp : int
        Bonus for the top-left to bottom-right diagonal (square boards only).
    anti_diagonal_bonus_xp : int
        Bonus for the top-right to bottom-left diagonal (square boards only).
    complete_board_bonus_xp : int
        Bonus for completing every tile on the board.
    row_overrides : Mapping[int, int]
        Per-row bonus keyed by 0-based row index.
    column_overrides : Mapping[int, int]
        Per-column bonus keyed by 0-based column index.
    """

    row_bonus_xp: int = 0
    column_bonus_xp: int = 0
    main_diagonal_bonus_xp: int = 0
    anti_diagonal_bonus_xp: int = 0
    complete_board_bonus_xp: int = 0
    row_overrides: Mapping[int, int] = field(default_factory=dict, hash=False)
    column_overrides: Mapping[int, int] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "row_overrides", _frozen_mapping(self.row_overrides))
        object.__setattr__(
            self, "column_overrides", _frozen_mapping(self.column_overrides)
        )

    @classmethod
    def uniform(
        cls,
        row_bonus_xp: int = 0,
        column_bonus_xp: int = 0,
        diagonal_bonus_xp: int = 0,
        board_bonus_xp: int = 0,
    ) -> "PatternBonusSchedule":
        """Schedule with one bonus per pattern kind; both diagonals share one."""
        return cls(
            row_bonus_xp=row_bonus_xp,
            column_bonus_xp=column_bonus_xp,
            main_diagonal_bonus_xp=diagonal_bonus_xp,
            anti_diagonal_bonus_xp=diagonal_bonus_xp,
            complete_board_bonus_xp=board_bonus_xp,
        )

    def bonus_for_row(self, row: int) -> int:
        return self.row_overrides.get(row, self.row_bonus_xp)

    def bonus_for_column(self, column: int) -> int:
        return self.column_overrides.get(column, self.column_bonus_xp)

    def total_possible_bonus_xp(self, rows: int, columns: int) -> int:
        """Maximum bonus a team can earn on a ``rows`` x ``columns`` board."""
        total = sum(self.bonus_for_row(r) for r in range(rows))
        total += sum(self.bonus_for_column(c) for c in range(columns))
        if rows == columns:
            total += self.main_diagonal_bonus_xp + self.anti_diagonal_bonus_xp
        total += self.complete_board_bonus_xp
        return total


@dataclass(frozen=True)
class CompletedPattern:
    """A single completed pattern and the bonus it awards."""

    kind: str
    bonus_xp: int
    index: Optional[int] = None

    def to_json(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.kind}
        if self.index is not None:
            data["index"] = self.index
        data["bonusXP"] = self.bonus_xp
        return data


@dataclass(frozen=True)
class PatternCompletionResult:
    """Every pattern a team has completed on one board.

    Diagonal and board entries are ``None`` when the pattern is incomplete or,
    for diagonals, when the board is not square.
    """

    completed_rows: tuple[CompletedPattern, ...] = ()
    completed_columns: tuple[CompletedPattern, ...] = ()
    main_diagonal: Optional[CompletedPattern] = None
    anti_diagonal: Optional[CompletedPattern] = None
    complete_board: Optional[CompletedPattern] = None

    @property
    def total_bonus_xp(self) -> int:
        return sum(p.bonus_xp for p in self.completed_patterns())

    def completed_patterns(self) -> Iterator[CompletedPattern]:
        yield from self.completed_rows
        yield from self.completed_columns
        for pattern in (self.main_diagonal, self.anti_diagonal, self.complete_board):
            if pattern is not None:
                yield pattern

    def to_json(self) -> dict[str, Any]:
        def _opt(pattern: Optional[CompletedPattern]) -> Optional[dict[str, Any]]:
            return pattern.to_json() if pattern is not None else None

        return {
            "completedRows": [p.to_json() for p in self.completed_rows],
            "completedColumns": [p.to_json() for p in self.completed_columns],
            "mainDiagonal": _opt(self.main_diagonal),
            "antiDiagonal": _opt(self.anti_diagonal),
            "completeBoard": _opt(self.complete_board),
            "totalBonusXP": self.total_bonus_xp,
        }


EMPTY_RESULT = PatternCompletionResult()


def evaluate_patterns(
    grid: TileStatusGrid,
    rows: int,
    columns: int,
    schedule: PatternBonusSchedule,
) -> PatternCompletionResult:
    """Find completed rows, columns, diagonals and board for one team.

    Parameters
    ----------
    grid : TileStatusGrid
        Tile index to "is accepted" for the team. Missing indices count as
        not accepted.
    rows, columns : int
        Board dimensions.
    schedule : PatternBonusSchedule
        Bonus XP configuration for the board.

    Returns
    -------
    PatternCompletionResult
        Completed patterns in ascending index order. A pattern is reported
        whenever it is complete, even if its configured bonus is 0.
    """
    if rows <= 0 or columns <= 0:
        return EMPTY_RESULT

    completed_rows = tuple(
        CompletedPattern(kind=ROW, index=r, bonus_xp=schedule.bonus_for_row(r))
        for r in range(rows)
        if all_accepted(grid, row_indices(r, columns))
    )
    completed_columns = tuple(
        CompletedPattern(kind=COLUMN, index=c, bonus_xp=schedule.bonus_for_column(c))
        for c in range(columns)
        if all_accepted(grid, column_indices(c, rows, columns))
    )

    main_diagonal = None
    anti_diagonal = None
    if rows == columns:
        if all_accepted(grid, main_diagonal_indices(rows)):
            main_diagonal = CompletedPattern(
                kind=MAIN_DIAGONAL, bonus_xp=schedule.main_diagonal_bonus_xp
            )
        if all_accepted(grid, anti_diagonal_indices(rows)):
            anti_diagonal = CompletedPattern(
                kind=ANTI_DIAGONAL, bonus_xp=schedule.anti_diagonal_bonus_xp
            )

    # The board counts the tiles that exist; a partially authored board can
    # still be completed.
    in_range = board_indices(rows, columns)
    present = sorted(idx for idx in grid if idx in in_range)
    complete_board = None
    if all_accepted(grid, present):
        complete_board = CompletedPattern(
            kind=COMPLETE_BOARD, bonus_xp=schedule.complete_board_bonus_xp
        )

    return PatternCompletionResult(
        completed_rows=completed_rows,
        completed_columns=completed_columns,
        main_diagonal=main_diagonal,
        anti_diagonal=anti_diagonal,
        complete_board=complete_board,
    )


__all__ = [
    "ANTI_DIAGONAL",
    "COLUMN",
    "COMPLETE_BOARD",
    "CompletedPattern",
    "EMPTY_RESULT",
    "MAIN_DIAGONAL",
    "PatternBonusSchedule",
    "PatternCompletionResult",
    "ROW",
    "evaluate_patterns",
]
