"""
Lowest-cost route through a maze when turning is expensive.

Search nodes are heads (position + facing). From a head the walker may turn
in place, paying the turn or reverse cost, or step forward into a non-wall
cell, paying the step cost. Costs are kept per head, so two routes that reach
the same cell facing different ways are tracked separately.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from ascii_render import render_plain
from grid_parser import parse_char_grid
from grid_types import CLOCKWISE, Direction, Grid, GridParseError, Head, Position, saturating_add

logger = logging.getLogger(__name__)


class MazeCell(Enum):
    """Cell contents of a maze."""

    START = "S"
    END = "E"
    WALL = "#"
    SPACE = "."


@dataclass(frozen=True)
class MazeCosts:
    """Price of each kind of move."""

    step: int = 1
    turn: int = 1000  # 90 degrees
    reverse: int = 2000  # 180 degrees


def parse_maze_map(text: str) -> Grid[MazeCell]:
    valid = "".join(cell.value for cell in MazeCell)
    return parse_char_grid(text, MazeCell, valid, "maze")


class Maze:
    """A maze with one start and one end."""

    def __init__(
        self,
        grid: Grid[MazeCell],
        costs: MazeCosts = MazeCosts(),
        start_direction: Direction = Direction.E,
    ) -> None:
        self.grid = grid
        self.costs = costs
        self.start_direction = start_direction
        self.start = self._find_single(MazeCell.START)
        self.end = self._find_single(MazeCell.END)
        self._best: dict[Head, int] | None = None

    @classmethod
    def parse(
        cls,
        text: str,
        costs: MazeCosts = MazeCosts(),
        start_direction: Direction = Direction.E,
    ) -> Maze:
        return cls(parse_maze_map(text), costs, start_direction)

    def _find_single(self, kind: MazeCell) -> Position:
        found = self.grid.find_all(lambda cell: cell is kind)
        if len(found) != 1:
            raise GridParseError(
                f"Maze must contain exactly one {kind.name.lower()} marker '{kind.value}', found {len(found)}"
            )
        return found[0]

    def turn_cost(self, current: Direction, target: Direction) -> int:
        return current.turn_cost(target, self.costs.turn, self.costs.reverse)

    def neighbors(self, head: Head, cost: int) -> Iterator[tuple[Head, int]]:
        """Heads reachable in one move, with their accumulated costs."""
        for direction in CLOCKWISE:
            if direction != head.direction:
                yield head.facing(direction), saturating_add(cost, self.turn_cost(head.direction, direction))

        ahead = head.forward()
        if ahead is not None and self.grid.get(ahead.position) not in (None, MazeCell.WALL):
            yield ahead, saturating_add(cost, self.costs.step)

    def solve(self) -> dict[Head, int]:
        """
        Lowest cost of reaching every reachable head from the start.

        Uniform-cost search: the worklist is ordered by accumulated cost, a
        head is queued again only when a strictly cheaper route to it is
        found, and entries made stale by such an improvement are skipped.
        """
        if self._best is not None:
            return self._best

        best: dict[Head, int] = {}
        worklist: list[tuple[int, int, Head]] = []
        counter = itertools.count()  # Tie-break equal costs by insertion order

        for direction in CLOCKWISE:
            head = Head(self.start, direction)
            cost = self.turn_cost(self.start_direction, direction)
            best[head] = cost
            heapq.heappush(worklist, (cost, next(counter), head))

        expanded = 0
        while worklist:
            cost, _, head = heapq.heappop(worklist)
            if cost > best[head]:
                continue
            expanded += 1

            for next_head, next_cost in self.neighbors(head, cost):
                known = best.get(next_head)
                if known is None or next_cost < known:
                    best[next_head] = next_cost
                    heapq.heappush(worklist, (next_cost, next(counter), next_head))

        logger.info("maze search: heads=%d expanded=%d", len(best), expanded)
        self._best = best
        return best

    def lowest_cost(self) -> int | None:
        """Cheapest cost to stand on the end cell facing any way, None if unreachable."""
        best = self.solve()
        costs = [best[head] for head in (Head(self.end, d) for d in CLOCKWISE) if head in best]
        return min(costs) if costs else None

    def best_path_tiles(self) -> set[Position]:
        """Every cell that lies on at least one lowest-cost route from start to end."""
        best = self.solve()
        target = self.lowest_cost()
        if target is None:
            return set()

        stack = [
            head
            for head in (Head(self.end, d) for d in CLOCKWISE)
            if best.get(head) == target
        ]
        on_path = set(stack)

        # Walk back over moves whose cost accounts exactly for the difference
        while stack:
            head = stack.pop()
            cost = best[head]
            predecessors = [
                (head.facing(d), self.turn_cost(d, head.direction))
                for d in CLOCKWISE
                if d != head.direction
            ]
            behind = head.position.apply(-head.direction.offset)
            if behind is not None:
                predecessors.append((Head(behind, head.direction), self.costs.step))

            for prev, move_cost in predecessors:
                prev_cost = best.get(prev)
                if prev_cost is not None and prev not in on_path and prev_cost + move_cost == cost:
                    on_path.add(prev)
                    stack.append(prev)

        return {head.position for head in on_path}

    def render(self, show_path: bool = False) -> str:
        overlay = {pos: "O" for pos in self.best_path_tiles()} if show_path else None
        return render_plain(self.grid, overlay=overlay)
