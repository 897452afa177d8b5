"""
Tachyon beams falling through a manifold of splitters.

A beam enters at the start cell and moves down one row per generation. When
the cell below a beam is a splitter, the beam stops there and continues from
the cells to the left and right of the splitter instead.

Each generation is computed from the previous one only: a cell's next value
depends on the cell above it, and on the two cells diagonally above it when
the cell beside it is a splitter. There is no ordering between cells of the
same generation.

Two variants:
- TachyonManifold tracks whether a cell carries the beam at all.
- QuantumTachyonManifold sends a single particle that takes both ways at every
  splitter, and counts the timelines passing through each cell.
"""

from __future__ import annotations

import logging
import multiprocessing
from dataclasses import dataclass
from enum import Enum
from typing import Union

from ascii_render import render_plain
from grid_parser import parse_char_grid
from grid_types import Direction, Grid, GridParseError, Position, SimulationInvariantError, saturating_add

logger = logging.getLogger(__name__)


class TachyonTile(Enum):
    """Cell contents of a manifold diagram."""

    EMPTY = "."
    SPLITTER = "^"
    START = "S"
    BEAM = "|"


SIDES = (Direction.W, Direction.E)


def parse_manifold(text: str) -> Grid[TachyonTile]:
    valid = "".join(tile.value for tile in TachyonTile)
    grid = parse_char_grid(text, TachyonTile, valid, "manifold")
    if grid.find(lambda tile: tile is TachyonTile.START) is None:
        raise GridParseError(f"Manifold has no start cell '{TachyonTile.START.value}'")
    return grid


def _above(pos: Position) -> Position | None:
    return pos.apply(Direction.N.offset)


def _hit_splitters(grid: Grid, fresh: frozenset[Position]) -> list[Position]:
    """Cells newly carrying a beam that sit directly above a splitter."""
    return sorted(
        pos for pos in fresh if grid.get(pos.apply(Direction.S.offset)) is TachyonTile.SPLITTER
    )


# =============================================================================
# Exact beams
# =============================================================================


@dataclass(frozen=True)
class TachyonState:
    """One generation of the manifold."""

    grid: Grid[TachyonTile]
    fresh: frozenset[Position]  # Cells that started carrying the beam this generation

    def is_lit(self, pos: Position | None) -> bool:
        return self.grid.get(pos) in (TachyonTile.START, TachyonTile.BEAM)

    def next_tile(self, pos: Position, tile: TachyonTile) -> TachyonTile:
        """Next value of ``tile``, the cell at ``pos``."""
        if tile is not TachyonTile.EMPTY:
            return tile

        if self.is_lit(_above(pos)):
            return TachyonTile.BEAM

        for side in SIDES:
            beside = pos.apply(side.offset)
            if self.grid.get(beside) is TachyonTile.SPLITTER and self.is_lit(_above(beside)):  # type: ignore[arg-type]
                return TachyonTile.BEAM

        return TachyonTile.EMPTY

    def step(self) -> TachyonStep:
        grid = Grid(
            [
                [self.next_tile(Position(r, c), tile) for c, tile in enumerate(row)]
                for r, row in enumerate(self.grid.cells)
            ]
        )
        lit = frozenset(
            pos
            for pos, tile in grid.items()
            if tile is TachyonTile.BEAM and self.grid.get(pos) is TachyonTile.EMPTY
        )
        splits = len(_hit_splitters(self.grid, self.fresh))
        return TachyonStep(TachyonState(grid, lit), beams=len(lit), splits=splits)


@dataclass(frozen=True)
class TachyonStep:
    """The result of advancing one generation."""

    next: TachyonState
    beams: int  # Cells newly carrying the beam
    splits: int  # Splitters reached by the beam


class TachyonManifold:
    """Beam propagation recording whether each cell carries the beam."""

    def __init__(self, grid: Grid[TachyonTile]) -> None:
        lit = grid.find_all(lambda tile: tile in (TachyonTile.START, TachyonTile.BEAM))
        self.start = TachyonState(grid.copy(), frozenset(lit))
        self.steps: list[TachyonStep] = []

    @classmethod
    def parse(cls, text: str) -> TachyonManifold:
        return cls(parse_manifold(text))

    @property
    def current(self) -> TachyonState:
        return self.steps[-1].next if self.steps else self.start

    def play(self) -> None:
        """Advance generations until no new cell lights up."""
        while True:
            step = self.current.step()
            if step.beams or step.splits:
                self.steps.append(step)
                logger.debug(
                    "generation %d: beams=%d splits=%d", len(self.steps), step.beams, step.splits
                )
            if step.beams == 0:
                break
        logger.info("manifold: generations=%d splits=%d", len(self.steps), self.splits())

    def splits(self) -> int:
        """How many splitters the beam reached."""
        total = 0
        for step in self.steps:
            total = saturating_add(total, step.splits)
        return total

    def lit_cells(self) -> set[Position]:
        return set(self.current.grid.find_all(lambda tile: tile is TachyonTile.BEAM))

    def render(self) -> str:
        return render_plain(self.current.grid)


# =============================================================================
# Quantum timelines
# =============================================================================


@dataclass(frozen=True)
class QuantumTile:
    """
    A non-deterministic cell.

    ``beam`` counts the timelines in which the particle passes through this
    cell. ``empty`` counts the branches split off alongside those timelines,
    inherited down the column; an untouched cell has beam 0 and empty 1.
    """

    beam: int = 0
    empty: int = 1

    @property
    def is_lit(self) -> bool:
        return self.beam > 0

    @property
    def is_untouched(self) -> bool:
        return self.beam == 0 and self.empty == 1

    def __str__(self) -> str:
        if self.beam > 0:
            return f"{self.beam}{TachyonTile.BEAM.value}"
        return TachyonTile.EMPTY.value


QuantumCell = Union[TachyonTile, QuantumTile]


def to_quantum(tile: TachyonTile) -> QuantumCell:
    match tile:
        case TachyonTile.EMPTY:
            return QuantumTile(beam=0, empty=1)
        case TachyonTile.BEAM:
            return QuantumTile(beam=1, empty=0)
        case _:
            return tile


def arriving_timelines(cell: QuantumCell | None) -> int:
    """Timelines leaving ``cell`` downwards."""
    if cell is TachyonTile.START:
        return 1
    if isinstance(cell, QuantumTile):
        return cell.beam
    return 0


def next_quantum_cell(grid: Grid[QuantumCell], pos: Position) -> QuantumCell:
    """Next value of one cell, read from the previous generation only."""
    cell = grid.get(pos)
    if cell is None:
        raise SimulationInvariantError(f"Cell {pos} is outside the manifold")
    if not isinstance(cell, QuantumTile) or not cell.is_untouched:
        return cell

    beam = 0
    empty = 0
    for side in SIDES:
        beside = pos.apply(side.offset)
        if grid.get(beside) is TachyonTile.SPLITTER:
            arriving = arriving_timelines(grid.get(_above(beside)))  # type: ignore[arg-type]
            beam = saturating_add(beam, arriving)
            empty = saturating_add(empty, arriving)

    above = grid.get(_above(pos))
    if above is TachyonTile.START:
        beam = saturating_add(beam, 1)
    elif isinstance(above, QuantumTile) and above.is_lit:
        beam = saturating_add(beam, above.beam)
        empty = saturating_add(empty, above.empty)

    return QuantumTile(beam=beam, empty=max(empty, 1))


def row_windows(grid: Grid[QuantumCell]) -> list[Grid[QuantumCell]]:
    """
    One small grid per row: the row itself, below the row above it if any.

    A row's next values depend on nothing else, so each window is a
    self-contained task.
    """
    return [Grid(grid.cells[max(r - 1, 0) : r + 1]) for r in range(grid.rows)]


def next_quantum_row(window: Grid[QuantumCell]) -> list[QuantumCell]:
    """Next values of the last row of a window from row_windows."""
    row = window.rows - 1
    return [next_quantum_cell(window, Position(row, c)) for c in range(window.cols)]


@dataclass(frozen=True)
class QuantumTachyonState:
    """One generation of the quantum manifold."""

    grid: Grid[QuantumCell]
    fresh: frozenset[Position]

    def step(self, pool: multiprocessing.pool.Pool | None = None) -> QuantumTachyonStep:
        """
        Compute the next generation.

        Rows are independent of each other, so with a pool each worker is
        sent one row and the row above it.
        """
        windows = row_windows(self.grid)
        if pool is not None:
            rows = pool.map(next_quantum_row, windows)
        else:
            rows = [next_quantum_row(window) for window in windows]
        grid: Grid[QuantumCell] = Grid(rows)

        lit = frozenset(
            pos
            for pos, cell in grid.items()
            if isinstance(cell, QuantumTile) and cell.is_lit and self.grid.get(pos) != cell
        )
        beams = 0
        for pos in lit:
            beams = saturating_add(beams, arriving_timelines(grid.get(pos)))

        hit = _hit_splitters(self.grid, self.fresh)
        splits = 0
        for pos in hit:
            splits = saturating_add(splits, arriving_timelines(self.grid.get(pos)))

        return QuantumTachyonStep(
            QuantumTachyonState(grid, lit), beams=beams, splits=splits, splitters_hit=len(hit)
        )


@dataclass(frozen=True)
class QuantumTachyonStep:
    """The result of advancing one quantum generation."""

    next: QuantumTachyonState
    beams: int  # Timelines through cells that lit up this generation
    splits: int  # Timelines that reached a splitter, each creating one more
    splitters_hit: int


class QuantumTachyonManifold:
    """Timeline counting for a single particle taking every branch."""

    def __init__(self, grid: Grid[TachyonTile]) -> None:
        lit = grid.find_all(lambda tile: tile in (TachyonTile.START, TachyonTile.BEAM))
        self.start = QuantumTachyonState(grid.map(to_quantum), frozenset(lit))
        self.steps: list[QuantumTachyonStep] = []

    @classmethod
    def parse(cls, text: str) -> QuantumTachyonManifold:
        return cls(parse_manifold(text))

    @property
    def current(self) -> QuantumTachyonState:
        return self.steps[-1].next if self.steps else self.start

    def play(self, workers: int | None = None) -> None:
        """
        Advance generations until no new cell lights up.

        Args:
            workers: Process count for the per-row update; None or 1 runs
                sequentially
        """
        if workers is not None and workers > 1:
            with multiprocessing.Pool(processes=workers) as pool:
                self._play(pool)
        else:
            self._play(None)
        logger.info("quantum manifold: generations=%d timelines=%d", len(self.steps), self.timelines())

    def _play(self, pool: multiprocessing.pool.Pool | None) -> None:
        while True:
            step = self.current.step(pool)
            if step.beams or step.splits:
                self.steps.append(step)
                logger.debug(
                    "generation %d: beams=%d splits=%d", len(self.steps), step.beams, step.splits
                )
            if step.beams == 0:
                break

    def timelines(self) -> int:
        """Every split turns one timeline into two."""
        total = 1
        for step in self.steps:
            total = saturating_add(total, step.splits)
        return total

    def splitters_hit(self) -> int:
        return sum(step.splitters_hit for step in self.steps)

    def lit_cells(self) -> set[Position]:
        return set(
            self.current.grid.find_all(lambda cell: isinstance(cell, QuantumTile) and cell.is_lit)
        )

    def render(self) -> str:
        return render_plain(self.current.grid)
