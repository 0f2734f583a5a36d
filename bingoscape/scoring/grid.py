"""Index arithmetic for row-major bingo boards.

Tiles are addressed by a linear ``index`` where
``index = row * columns + column``.
"""

from __future__ import annotations

from typing import Iterable, Mapping


TileStatusGrid = Mapping[int, bool]
"""Mapping of tile index to ``True`` when the team's submission is accepted."""


def tile_position(index: int, columns: int) -> tuple[int, int]:
    """Return the ``(row, column)`` of ``index`` on a board ``columns`` wide."""
    if columns <= 0:
        raise ValueError("columns must be positive")
    return divmod(index, columns)


def tile_index(row: int, column: int, columns: int) -> int:
    """Return the linear index of the cell at ``(row, column)``."""
    return row * columns + column


def row_indices(row: int, columns: int) -> list[int]:
    start = row * columns
    return list(range(start, start + columns))


def column_indices(column: int, rows: int, columns: int) -> list[int]:
    return [r * columns + column for r in range(rows)]


def main_diagonal_indices(size: int) -> list[int]:
    """Indices of the top-left to bottom-right diagonal of a square board."""
    return [i * size + i for i in range(size)]


def anti_diagonal_indices(size: int) -> list[int]:
    """Indices of the top-right to bottom-left diagonal of a square board."""
    return [i * size + (size - 1 - i) for i in range(size)]


def board_indices(rows: int, columns: int) -> range:
    return range(max(rows, 0) * max(columns, 0))


def all_accepted(grid: TileStatusGrid, indices: Iterable[int]) -> bool:
    """``True`` when ``indices`` is non-empty and every index is accepted.

    Indices absent from ``grid`` count as not accepted.
    """
    seen = False
    for idx in indices:
        seen = True
        if not grid.get(idx, False):
            return False
    return seen


def build_status_grid(tiles: Iterable, accepted_tile_ids: Iterable) -> dict[int, bool]:
    """Build a :data:`TileStatusGrid` from tile records.

    Parameters
    ----------
    tiles : iterable
        Objects exposing ``id`` and ``index`` (ORM ``Tile`` rows or any
        record with the same attributes).
    accepted_tile_ids : iterable
        Ids of tiles whose team submission status is ``"accepted"``.
    """
    accepted = set(accepted_tile_ids)
    return {tile.index: tile.id in accepted for tile in tiles}


__all__ = [
    "TileStatusGrid",
    "all_accepted",
    "anti_diagonal_indices",
    "board_indices",
    "build_status_grid",
    "column_indices",
    "main_diagonal_indices",
    "row_indices",
    "tile_index",
    "tile_position",
]
