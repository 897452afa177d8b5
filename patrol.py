"""
Guard patrol simulation with loop detection.

The guard walks forward until something blocks it, then turns right. It
either walks off the map or repeats a head (position + facing) it has already
been in, which proves the walk is periodic.
"""

from __future__ import annotations

import logging
import multiprocessing
from dataclasses import dataclass
from enum import Enum
from functools import partial

from ascii_render import render_plain
from grid_parser import parse_char_grid
from grid_types import Direction, Grid, GridParseError, Head, Position, SimulationInvariantError

logger = logging.getLogger(__name__)


class PatrolCell(Enum):
    """Cell contents of a patrol map."""

    EMPTY = "."
    WALL = "#"
    GUARD_N = "^"
    GUARD_E = ">"
    GUARD_S = "v"
    GUARD_W = "<"
    VISITED = "X"
    OBSTRUCTION = "O"  # Hypothetical wall placed by the loop search


GUARD_CELLS: dict[Direction, PatrolCell] = {
    Direction.N: PatrolCell.GUARD_N,
    Direction.E: PatrolCell.GUARD_E,
    Direction.S: PatrolCell.GUARD_S,
    Direction.W: PatrolCell.GUARD_W,
}
GUARD_FACINGS: dict[PatrolCell, Direction] = {cell: d for d, cell in GUARD_CELLS.items()}

BLOCKING = frozenset({PatrolCell.WALL, PatrolCell.OBSTRUCTION})


class PatrolState(Enum):
    """Where the patrol state machine is."""

    WALKING = "walking"
    EXITED = "exited"  # Walked off the map
    LOOP_DETECTED = "loop_detected"  # Repeated a head


class ObstructionPolicy(Enum):
    """Which cells the loop search tries as hypothetical obstructions."""

    ALL_OPEN_CELLS = "all_open_cells"  # Every non-wall cell except the guard's start
    ORIGINAL_PATH = "original_path"  # Only cells the unmodified walk passes through


@dataclass(frozen=True)
class PatrolResult:
    """Outcome of a complete patrol."""

    visited_count: int
    state: PatrolState


def parse_patrol_map(text: str) -> Grid[PatrolCell]:
    valid = "".join(cell.value for cell in PatrolCell)
    return parse_char_grid(text, PatrolCell, valid, "patrol map")


def find_guard(grid: Grid[PatrolCell]) -> Head:
    """The guard's starting head; exactly one guard must be on the map."""
    guards = [(pos, cell) for pos, cell in grid.items() if cell in GUARD_FACINGS]
    if len(guards) != 1:
        raise GridParseError(
            f"Patrol map must contain exactly one guard, found {len(guards)}\n"
            f"  Guard characters: {' '.join(c.value for c in GUARD_FACINGS)}"
        )
    pos, cell = guards[0]
    return Head(pos, GUARD_FACINGS[cell])


class Patrol:
    """A single guard walking one map."""

    def __init__(self, grid: Grid[PatrolCell], start: Head | None = None) -> None:
        """
        Args:
            grid: The map, copied before walking
            start: The guard's head when already known. The guard search is
                skipped and ``grid`` is walked in place, so it must be a copy
                the caller no longer needs
        """
        if start is None:
            self.start = find_guard(grid)
            self.base = grid.copy()
            self.grid = grid.copy()
        else:
            self.start = start
            self.base = grid
            self.grid = grid
        self.head = self.start
        self.state = PatrolState.WALKING
        self.ticks = 0
        # Facings the guard has had on each cell it stood on
        self.history: dict[Position, set[Direction]] = {
            self.start.position: {self.start.direction}
        }

    @classmethod
    def parse(cls, text: str) -> Patrol:
        return cls(parse_patrol_map(text))

    def step(self) -> PatrolState:
        """Advance one tick: exit, turn right, or move forward."""
        if self.state is not PatrolState.WALKING:
            return self.state

        self.ticks += 1
        ahead = self.head.forward()
        ahead_cell = self.grid.get(ahead.position if ahead else None)

        if ahead is None or ahead_cell is None:
            self.state = PatrolState.EXITED
            return self.state

        if ahead_cell in BLOCKING:
            self.head = self.head.facing(self.head.direction.turn_right())
        elif ahead_cell in GUARD_FACINGS:
            raise SimulationInvariantError(
                f"Guard at {self.head.position} walked into another guard at {ahead.position}"
            )
        else:
            self.grid.set(self.head.position, PatrolCell.VISITED)
            self.head = ahead
        self.grid.set(self.head.position, GUARD_CELLS[self.head.direction])

        seen = self.history.setdefault(self.head.position, set())
        if self.head.direction in seen:
            self.state = PatrolState.LOOP_DETECTED
        else:
            seen.add(self.head.direction)
        return self.state

    def run(self) -> PatrolResult:
        """Walk until the guard exits or loops."""
        while self.step() is PatrolState.WALKING:
            pass
        logger.debug(
            "patrol finished: state=%s ticks=%d visited=%d",
            self.state.value,
            self.ticks,
            len(self.history),
        )
        return PatrolResult(self.visited_count(), self.state)

    def visited_count(self) -> int:
        """Distinct cells the guard has stood on, start and current cell included."""
        return len(self.history)

    def visited_positions(self) -> set[Position]:
        return set(self.history)

    def obstruction_candidates(self, policy: ObstructionPolicy) -> list[Position]:
        """Cells to try as obstructions, in row-major order."""
        if policy is ObstructionPolicy.ORIGINAL_PATH:
            walk = Patrol(self.base.copy(), self.start)
            walk.run()
            path = walk.visited_positions()
            path.discard(self.start.position)
            return sorted(path)

        return [
            pos
            for pos, cell in self.base.items()
            if cell not in BLOCKING and cell not in GUARD_FACINGS and pos != self.start.position
        ]

    def search_obstruction_positions(
        self,
        policy: ObstructionPolicy = ObstructionPolicy.ALL_OPEN_CELLS,
        workers: int | None = None,
    ) -> set[Position]:
        """
        Find every cell where one extra obstruction traps the guard in a loop.

        Each candidate is evaluated on its own copy of the unmodified map, so
        the sweep never depends on this patrol's progress and can be spread
        over a process pool.

        Args:
            policy: Which cells to try
            workers: Process count; None or 1 runs sequentially

        Returns:
            Positions whose obstruction ends the walk in LOOP_DETECTED
        """
        candidates = self.obstruction_candidates(policy)
        check = partial(loops_with_obstruction, self.base, self.start)

        if workers is not None and workers > 1:
            chunksize = max(1, len(candidates) // (workers * 4))
            with multiprocessing.Pool(processes=workers) as pool:
                verdicts = pool.map(check, candidates, chunksize=chunksize)
        else:
            verdicts = []
            for index, pos in enumerate(candidates):
                logger.debug("finding loop (%d/%d) at %s", index + 1, len(candidates), pos)
                verdicts.append(check(pos))

        found = {pos for pos, loops in zip(candidates, verdicts) if loops}
        logger.info(
            "obstruction search: policy=%s candidates=%d loops=%d",
            policy.value,
            len(candidates),
            len(found),
        )
        return found

    def mark_obstructions(self, positions: set[Position]) -> Grid[PatrolCell]:
        """Copy of the unmodified map with the given cells shown as obstructions."""
        marked = self.base.copy()
        for pos in positions:
            marked.set(pos, PatrolCell.OBSTRUCTION)
        return marked

    def render(self) -> str:
        return render_plain(self.grid)


def loops_with_obstruction(base: Grid[PatrolCell], start: Head, pos: Position) -> bool:
    """Whether placing an obstruction at ``pos`` traps the guard starting at ``start`` in a loop."""
    grid = base.copy()
    grid.set(pos, PatrolCell.OBSTRUCTION)
    return Patrol(grid, start).run().state is PatrolState.LOOP_DETECTED
