"""
Warehouse robot pushing boxes around a walled floor.

A push is computed in two phases. Planning walks from the robot in the
movement direction and collects every box that would have to move, layer by
layer; a thick (two-wide) box pushed vertically can rest on two boxes, so the
plan fans out into a tree. If any planned box is blocked the grid is left
untouched. Otherwise the plan is committed deepest layer first, so every box
moves into a cell that is already free.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum

from ascii_render import render_plain
from grid_parser import parse_char_grid, parse_movements, split_sections
from grid_types import (
    Direction,
    Grid,
    GridParseError,
    Position,
    SimulationInvariantError,
    saturating_add,
)

logger = logging.getLogger(__name__)

GPS_ROW_MULTIPLIER = 100
GPS_COL_MULTIPLIER = 1
MOVEMENTS_PER_LINE = 70


class WarehouseCell(Enum):
    """Cell contents of the warehouse floor."""

    ROBOT = "@"
    WALL = "#"
    BOX = "O"
    THICK_BOX_START = "["  # Left half of a two-wide box
    THICK_BOX_END = "]"  # Right half of a two-wide box
    EMPTY = "."


BOX_CELLS = frozenset({WarehouseCell.BOX, WarehouseCell.THICK_BOX_START, WarehouseCell.THICK_BOX_END})

# What each thin tile becomes when the floor is doubled in width
THICKENED: dict[WarehouseCell, tuple[WarehouseCell, WarehouseCell]] = {
    WarehouseCell.WALL: (WarehouseCell.WALL, WarehouseCell.WALL),
    WarehouseCell.BOX: (WarehouseCell.THICK_BOX_START, WarehouseCell.THICK_BOX_END),
    WarehouseCell.EMPTY: (WarehouseCell.EMPTY, WarehouseCell.EMPTY),
    WarehouseCell.ROBOT: (WarehouseCell.ROBOT, WarehouseCell.EMPTY),
}


class BlockReason(Enum):
    """Why a movement did not happen."""

    WALL = "wall"  # A wall stops the robot or a box in the chain
    EDGE_REACHED = "edge_reached"  # The move would leave the floor


@dataclass(frozen=True)
class PushFailure:
    """A movement that was blocked; the grid is unchanged."""

    reason: BlockReason
    position: Position  # The cell that could not move
    details: str | None = None


# One box as the cells it occupies, left to right
BoxPiece = tuple[Position, ...]


class Warehouse:
    """
    The floor inside the outer wall ring, the robot and its queued movements.

    Coordinates are relative to the floor; ``side_wall_thickness`` remembers
    how many wall columns were stripped on each side so GPS coordinates can be
    measured from the outer wall.
    """

    def __init__(
        self,
        grid: Grid[WarehouseCell],
        movements: list[Direction] | None = None,
        side_wall_thickness: int = 1,
    ) -> None:
        robots = grid.find_all(lambda cell: cell is WarehouseCell.ROBOT)
        if len(robots) != 1:
            raise GridParseError(f"Warehouse must contain exactly one robot '@', found {len(robots)}")

        self.grid = grid.copy()
        self.robot = robots[0]
        self.movements: deque[Direction] = deque(movements or [])
        self.side_wall_thickness = side_wall_thickness
        self.elapsed = 0
        self.blocked = 0

        unpaired = self.unpaired_thick_halves()
        if unpaired:
            raise GridParseError(
                "Thick box halves without a partner:\n"
                + "\n".join(f"  {pos}: {self.grid.get(pos).value}" for pos in unpaired)  # type: ignore[union-attr]
            )

    @classmethod
    def parse(cls, text: str, side_wall_thickness: int | None = None) -> Warehouse:
        """
        Parse a map section and an optional movement section.

        The map must be enclosed by walls: one row on top and bottom and
        ``side_wall_thickness`` columns on each side. When not given, the side
        thickness is 2 for maps that already contain thick boxes and 1 otherwise.
        """
        sections = split_sections(text)
        if not sections:
            raise GridParseError("Empty warehouse input: no map section found")

        valid = "".join(cell.value for cell in WarehouseCell)
        full = parse_char_grid(sections[0], WarehouseCell, valid, "warehouse map")
        movements = parse_movements("".join(sections[1:]))

        if side_wall_thickness is None:
            thick = full.count(lambda cell: cell is WarehouseCell.THICK_BOX_START) > 0
            side_wall_thickness = 2 if thick else 1

        t = side_wall_thickness
        if full.rows < 3 or full.cols < 2 * t + 1:
            raise GridParseError(
                f"Warehouse map too small: {full.rows}x{full.cols}\n"
                f"  Need a wall ring of 1 row and {t} columns around at least one floor cell"
            )

        ring = [
            pos
            for pos, cell in full.items()
            if (pos.row in (0, full.rows - 1) or pos.col < t or pos.col >= full.cols - t)
            and cell is not WarehouseCell.WALL
        ]
        if ring:
            raise GridParseError(
                f"Warehouse map is not enclosed by walls\n"
                f"  Non-wall cells on the outer ring: {', '.join(str(p) for p in ring[:5])}"
            )

        floor = Grid([row[t : full.cols - t] for row in full.cells[1:-1]])
        return cls(floor, movements, t)

    # =========================================================================
    # Queries
    # =========================================================================

    @property
    def is_thick(self) -> bool:
        return self.grid.count(lambda cell: cell is WarehouseCell.THICK_BOX_START) > 0

    def box_positions(self) -> list[Position]:
        """One position per box: the cell of a thin box, the left half of a thick one."""
        return self.grid.find_all(
            lambda cell: cell in (WarehouseCell.BOX, WarehouseCell.THICK_BOX_START)
        )

    def box_count(self) -> int:
        return len(self.box_positions())

    def gps(self) -> int:
        """Sum of 100 * row + column over all boxes, measured from the outer wall."""
        total = 0
        for pos in self.box_positions():
            total = saturating_add(
                total,
                (pos.row + 1) * GPS_ROW_MULTIPLIER
                + (pos.col + self.side_wall_thickness) * GPS_COL_MULTIPLIER,
            )
        return total

    def unpaired_thick_halves(self) -> list[Position]:
        """Thick box halves whose partner cell is missing."""
        unpaired = []
        for pos, cell in self.grid.items():
            if cell is WarehouseCell.THICK_BOX_START:
                if self.grid.get(pos.apply(Direction.E.offset)) is not WarehouseCell.THICK_BOX_END:
                    unpaired.append(pos)
            elif cell is WarehouseCell.THICK_BOX_END:
                if self.grid.get(pos.apply(Direction.W.offset)) is not WarehouseCell.THICK_BOX_START:
                    unpaired.append(pos)
        return unpaired

    # =========================================================================
    # Movement
    # =========================================================================

    def apply_movement(self, direction: Direction) -> PushFailure | None:
        """
        Try to move the robot one cell, pushing any boxes in the way.

        Returns:
            None if the robot moved, PushFailure if the move was blocked
            (the grid is then unchanged)

        Raises:
            SimulationInvariantError: If the grid is inconsistent
        """
        target = self.robot.apply(direction.offset)
        cell = self.grid.get(target)

        if target is None or cell is None:
            return PushFailure(BlockReason.EDGE_REACHED, self.robot, f"robot facing {direction.value} at floor edge")

        match cell:
            case WarehouseCell.ROBOT:
                raise SimulationInvariantError(f"Robot bumped into itself at {target} (step {self.elapsed})")
            case WarehouseCell.WALL:
                return PushFailure(BlockReason.WALL, self.robot, f"wall at {target}")
            case WarehouseCell.EMPTY:
                self._move_robot(target)
                return None

        plan = self.plan_push(target, direction)
        if isinstance(plan, PushFailure):
            return plan

        self._commit(plan, direction)
        self._move_robot(target)
        return None

    def plan_push(self, first: Position, direction: Direction) -> list[BoxPiece] | PushFailure:
        """
        Collect every box that moves when the box at ``first`` is pushed.

        Boxes are returned in discovery order, one layer at a time; reversing
        the list gives a safe order to move them in. Nothing is modified.
        """
        offset = direction.offset
        pieces: list[BoxPiece] = []
        seen: set[Position] = set()
        frontier = [self._piece_at(first)]

        while frontier:
            next_frontier: list[BoxPiece] = []
            for piece in frontier:
                if piece[0] in seen:
                    continue
                seen.update(piece)
                pieces.append(piece)

                for pos in piece:
                    dest = pos.apply(offset)
                    if dest in piece:
                        # Horizontal push of a thick box into its own other half
                        continue
                    cell = self.grid.get(dest)
                    if dest is None or cell is None:
                        return PushFailure(BlockReason.EDGE_REACHED, pos, f"box at {pos} at floor edge")
                    if cell is WarehouseCell.WALL:
                        return PushFailure(BlockReason.WALL, pos, f"box at {pos} blocked by wall at {dest}")
                    if cell is WarehouseCell.ROBOT:
                        raise SimulationInvariantError(f"Robot bumped into itself at {dest} (step {self.elapsed})")
                    if cell in BOX_CELLS:
                        next_frontier.append(self._piece_at(dest))
            frontier = next_frontier

        logger.debug("planned push %s: %d boxes", direction.value, len(pieces))
        return pieces

    def step(self) -> PushFailure | None:
        """Apply the next queued movement."""
        if not self.movements:
            raise SimulationInvariantError(f"No movement queued at step {self.elapsed}")

        direction = self.movements.popleft()
        self.elapsed += 1
        result = self.apply_movement(direction)
        if result is not None:
            self.blocked += 1
            logger.debug("step %d: %s blocked (%s)", self.elapsed, direction.value, result.reason.value)
        return result

    def run(self) -> int:
        """Apply every queued movement; returns the GPS sum."""
        while self.movements:
            self.step()
        gps = self.gps()
        logger.info(
            "warehouse finished: steps=%d blocked=%d boxes=%d gps=%d",
            self.elapsed,
            self.blocked,
            self.box_count(),
            gps,
        )
        return gps

    def thicken(self) -> Warehouse:
        """A copy with every tile doubled in width; queued movements carry over."""
        if self.is_thick:
            raise SimulationInvariantError("Warehouse is already thick")
        cells = [[half for cell in row for half in THICKENED[cell]] for row in self.grid.cells]
        return Warehouse(Grid(cells), list(self.movements), self.side_wall_thickness * 2)

    def _piece_at(self, pos: Position) -> BoxPiece:
        cell = self.grid.get(pos)
        match cell:
            case WarehouseCell.BOX:
                return (pos,)
            case WarehouseCell.THICK_BOX_START:
                end = pos.apply(Direction.E.offset)
                if end is None or self.grid.get(end) is not WarehouseCell.THICK_BOX_END:
                    raise SimulationInvariantError(f"Thick box start at {pos} has no end")
                return (pos, end)
            case WarehouseCell.THICK_BOX_END:
                start = pos.apply(Direction.W.offset)
                if start is None or self.grid.get(start) is not WarehouseCell.THICK_BOX_START:
                    raise SimulationInvariantError(f"Thick box end at {pos} has no start")
                return (start, pos)
            case _:
                raise SimulationInvariantError(f"No box at {pos}: {cell}")

    def _commit(self, plan: list[BoxPiece], direction: Direction) -> None:
        for piece in reversed(plan):
            cells = [self.grid.get(pos) for pos in piece]
            for pos in piece:
                self.grid.set(pos, WarehouseCell.EMPTY)
            for pos, cell in zip(piece, cells):
                dest = pos.apply(direction.offset)
                if cell is None:
                    raise SimulationInvariantError(f"Planned box {pos} is outside the floor")
                if self.grid.get(dest) is not WarehouseCell.EMPTY:
                    raise SimulationInvariantError(f"Box destination {dest} is not free")
                self.grid.set(dest, cell)

    def _move_robot(self, target: Position) -> None:
        if self.grid.get(target) is not WarehouseCell.EMPTY:
            raise SimulationInvariantError(f"Next robot position {target} is not free")
        self.grid.set(self.robot, WarehouseCell.EMPTY)
        self.grid.set(target, WarehouseCell.ROBOT)
        self.robot = target

    # =========================================================================
    # Rendering
    # =========================================================================

    def full_grid(self) -> Grid[WarehouseCell]:
        """The floor with its outer wall ring restored."""
        t = self.side_wall_thickness
        wall_row = [WarehouseCell.WALL] * (self.grid.cols + 2 * t)
        side = [WarehouseCell.WALL] * t
        rows = [list(wall_row)]
        rows += [side + list(row) + side for row in self.grid.cells]
        rows.append(list(wall_row))
        return Grid(rows)

    def render(self) -> str:
        return render_plain(self.full_grid())

    def render_movements(self) -> str:
        arrows = "".join(direction.arrow for direction in self.movements)
        return "\n".join(
            arrows[i : i + MOVEMENTS_PER_LINE] for i in range(0, len(arrows), MOVEMENTS_PER_LINE)
        )
