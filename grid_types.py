"""
Shared type definitions for the grid simulations.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Generic, Iterator, TypeVar

T = TypeVar("T")
U = TypeVar("U")

# Counts and costs are clamped at the unsigned 64-bit maximum
COUNT_MAX = 2**64 - 1


def saturating_add(a: int, b: int, limit: int = COUNT_MAX) -> int:
    """Add two non-negative counts, clamping at ``limit``."""
    return min(a + b, limit)


def saturating_mul(a: int, b: int, limit: int = COUNT_MAX) -> int:
    """Multiply two non-negative counts, clamping at ``limit``."""
    return min(a * b, limit)


# =============================================================================
# Errors
# =============================================================================


class GridParseError(ValueError):
    """Input text could not be turned into a grid of typed cells."""


class SimulationInvariantError(RuntimeError):
    """A simulation reached a state that its rules make impossible."""


# =============================================================================
# Coordinates
# =============================================================================


@dataclass(frozen=True)
class Offset:
    """A signed step between two positions."""

    drow: int
    dcol: int

    def __neg__(self) -> Offset:
        return Offset(-self.drow, -self.dcol)

    def __add__(self, other: Offset) -> Offset:
        return Offset(self.drow + other.drow, self.dcol + other.dcol)


@dataclass(frozen=True, order=True)
class Position:
    """A non-negative (row, col) coordinate."""

    row: int
    col: int

    def apply(self, offset: Offset) -> Position | None:
        """
        Step by ``offset``.

        Returns None when either component would become negative; the result
        is never wrapped or clamped back into range.
        """
        row = self.row + offset.drow
        col = self.col + offset.dcol
        if row < 0 or col < 0:
            return None
        return Position(row, col)

    def __str__(self) -> str:
        return f"({self.row}, {self.col})"


class Direction(Enum):
    """Cardinal direction for movement."""

    N = "N"  # Up (decreasing row)
    E = "E"  # Right (increasing col)
    S = "S"  # Down (increasing row)
    W = "W"  # Left (decreasing col)

    @property
    def offset(self) -> Offset:
        return _OFFSETS[self]

    @property
    def arrow(self) -> str:
        return _ARROWS[self]

    @staticmethod
    def from_arrow(char: str) -> Direction:
        for direction, arrow in _ARROWS.items():
            if arrow == char:
                return direction
        raise GridParseError(
            f"Unknown direction character {char!r}\n"
            f"  Valid characters: {' '.join(_ARROWS.values())}"
        )

    def turn_right(self) -> Direction:
        return CLOCKWISE[(CLOCKWISE.index(self) + 1) % 4]

    def turn_left(self) -> Direction:
        return CLOCKWISE[(CLOCKWISE.index(self) - 1) % 4]

    def inverse(self) -> Direction:
        return CLOCKWISE[(CLOCKWISE.index(self) + 2) % 4]

    def turn_cost(self, other: Direction, turn: int, reverse: int) -> int:
        """Cost of rotating from this facing to ``other``."""
        if self == other:
            return 0
        if self.inverse() == other:
            return reverse
        return turn


CLOCKWISE: tuple[Direction, ...] = (Direction.N, Direction.E, Direction.S, Direction.W)

_OFFSETS = {
    Direction.N: Offset(-1, 0),
    Direction.E: Offset(0, 1),
    Direction.S: Offset(1, 0),
    Direction.W: Offset(0, -1),
}

_ARROWS = {
    Direction.N: "^",
    Direction.E: ">",
    Direction.S: "v",
    Direction.W: "<",
}


@dataclass(frozen=True)
class Head:
    """A position together with a facing; the unit of loop detection and search."""

    position: Position
    direction: Direction

    def forward(self) -> Head | None:
        position = self.position.apply(self.direction.offset)
        if position is None:
            return None
        return Head(position, self.direction)

    def facing(self, direction: Direction) -> Head:
        return Head(self.position, direction)


# =============================================================================
# Grid
# =============================================================================


@dataclass
class Grid(Generic[T]):
    """
    A rectangular 2D grid of cells.

    Dimensions are fixed at construction. Lookups outside the grid return
    None instead of raising, and writes outside the grid are ignored.
    """

    cells: list[list[T]]

    def __post_init__(self) -> None:
        if self.cells:
            cols = len(self.cells[0])
            mismatched = [(i, len(row)) for i, row in enumerate(self.cells) if len(row) != cols]
            if mismatched:
                error_msg = (
                    f"Inconsistent row lengths in grid\n"
                    f"  Expected: {cols} columns (from row 0)\n"
                    f"  Mismatched rows:\n"
                )
                for row_idx, actual_cols in mismatched:
                    error_msg += f"    Row {row_idx}: {actual_cols} columns\n"
                error_msg += "  All rows must have the same number of cells"
                raise GridParseError(error_msg)

    @classmethod
    def filled(cls, rows: int, cols: int, value: T) -> Grid[T]:
        return cls([[value] * cols for _ in range(rows)])

    @property
    def rows(self) -> int:
        return len(self.cells)

    @property
    def cols(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    def contains(self, pos: Position | None) -> bool:
        return pos is not None and 0 <= pos.row < self.rows and 0 <= pos.col < self.cols

    def get(self, pos: Position | None) -> T | None:
        """Return the cell at ``pos``, or None when it lies outside the grid."""
        if pos is None or not self.contains(pos):
            return None
        return self.cells[pos.row][pos.col]

    def set(self, pos: Position | None, value: T) -> bool:
        """Write ``value`` at ``pos``; returns False (and changes nothing) when out of bounds."""
        if pos is None or not self.contains(pos):
            return False
        self.cells[pos.row][pos.col] = value
        return True

    def positions(self) -> Iterator[Position]:
        """All positions in row-major order."""
        for r in range(self.rows):
            for c in range(self.cols):
                yield Position(r, c)

    def items(self) -> Iterator[tuple[Position, T]]:
        for r, row in enumerate(self.cells):
            for c, cell in enumerate(row):
                yield Position(r, c), cell

    def find(self, predicate: Callable[[T], bool]) -> Position | None:
        for pos, cell in self.items():
            if predicate(cell):
                return pos
        return None

    def find_all(self, predicate: Callable[[T], bool]) -> list[Position]:
        return [pos for pos, cell in self.items() if predicate(cell)]

    def count(self, predicate: Callable[[T], bool]) -> int:
        return sum(1 for _, cell in self.items() if predicate(cell))

    def copy(self) -> Grid[T]:
        return Grid([list(row) for row in self.cells])

    def map(self, fn: Callable[[T], U]) -> Grid[U]:
        return Grid([[fn(cell) for cell in row] for row in self.cells])
