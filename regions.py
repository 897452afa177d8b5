"""
Garden regions: connected cells of the same plant, priced by fencing.

Regions are discovered by flood fill with an explicit stack. While filling,
every edge between a region cell and a cell outside the region adds to the
perimeter. Sides are counted on the same pass: an exposed edge is counted
once per straight run, at the run's last cell along the perpendicular axis
(downwards for vertical edges, rightwards for horizontal ones).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from grid_parser import parse_char_grid
from grid_types import (
    CLOCKWISE,
    Direction,
    Grid,
    Position,
    SimulationInvariantError,
    saturating_add,
    saturating_mul,
)

logger = logging.getLogger(__name__)


@dataclass
class Region:
    """One connected group of same-plant cells."""

    plant: str
    positions: set[Position] = field(default_factory=set)
    area: int = 0
    perimeter: int = 0
    sides: int = 0

    def price_perimeter(self) -> int:
        return saturating_mul(self.area, self.perimeter)

    def price_sides(self) -> int:
        return saturating_mul(self.area, self.sides)

    def __str__(self) -> str:
        return (
            f"Region(plant={self.plant!r}, area={self.area}, "
            f"perimeter={self.perimeter}, sides={self.sides})"
        )


def _plant(char: str) -> str:
    if char.isspace():
        raise ValueError(f"whitespace is not a plant: {char!r}")
    return char


def parse_garden_map(text: str) -> Grid[str]:
    return parse_char_grid(text, _plant, "any non-space character", "garden map")


class RegionMap:
    """All regions of a garden, discovered eagerly in row-major order."""

    def __init__(self, grid: Grid[str]) -> None:
        self.grid = grid
        self.regions: list[Region] = []
        self._owner: dict[Position, int] = {}

        for pos in grid.positions():
            if pos not in self._owner:
                self.regions.append(self._fill(pos))

        logger.info("garden %dx%d: %d regions", grid.rows, grid.cols, len(self.regions))

    @classmethod
    def parse(cls, text: str) -> RegionMap:
        return cls(parse_garden_map(text))

    def _fill(self, start: Position) -> Region:
        plant = self.grid.get(start)
        if plant is None:
            raise SimulationInvariantError(f"Region start {start} is outside the garden")
        index = len(self.regions)
        region = Region(plant)

        self._owner[start] = index
        region.positions.add(start)
        region.area = 1
        stack = [start]

        while stack:
            current = stack.pop()
            for direction in CLOCKWISE:
                neighbor = current.apply(direction.offset)
                neighbor_plant = self.grid.get(neighbor)

                if neighbor is not None and neighbor_plant == plant:
                    if neighbor not in self._owner:
                        self._owner[neighbor] = index
                        region.positions.add(neighbor)
                        region.area = saturating_add(region.area, 1)
                        stack.append(neighbor)
                    continue

                region.perimeter = saturating_add(region.perimeter, 1)
                if self._ends_side(current, neighbor, direction, plant):
                    region.sides = saturating_add(region.sides, 1)

        logger.debug("filled %s", region)
        return region

    def _ends_side(
        self,
        current: Position,
        outside: Position | None,
        direction: Direction,
        plant: str,
    ) -> bool:
        """
        Whether the exposed edge from ``current`` towards ``outside`` is the
        last edge of its straight run.

        The run continues to the next cell along the perpendicular axis only
        if that cell has the same plant and is exposed the same way.
        """
        along = Direction.S if direction in (Direction.E, Direction.W) else Direction.E
        side_current = self.grid.get(current.apply(along.offset))
        if side_current != plant:
            return True
        side_outside = self.grid.get(outside.apply(along.offset)) if outside is not None else None
        return side_outside == plant

    def region_at(self, pos: Position) -> Region | None:
        index = self._owner.get(pos)
        return self.regions[index] if index is not None else None

    def price_perimeter(self) -> int:
        total = 0
        for region in self.regions:
            total = saturating_add(total, region.price_perimeter())
        return total

    def price_sides(self) -> int:
        total = 0
        for region in self.regions:
            total = saturating_add(total, region.price_sides())
        return total
