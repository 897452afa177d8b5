"""
Command-line runner for the grid simulations.

Usage:
    python demo.py maze puzzle.txt
    python demo.py patrol --example --render --workers 4
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Callable, Sequence

from ascii_render import render_grid_simple, render_grids_flow
from grid_types import GridParseError
from maze import Maze
from patrol import ObstructionPolicy, Patrol
from regions import RegionMap
from tachyon import QuantumTachyonManifold, TachyonManifold
from warehouse import Warehouse

logger = logging.getLogger(__name__)

Answers = list[tuple[str, object]]
Rendered = dict[str, list[str]]

EXAMPLES = {
    "patrol": """
        ....#.....
        .........#
        ..........
        ..#.......
        .......#..
        ..........
        .#..^.....
        ........#.
        #.........
        ......#...
    """,
    "warehouse": """
        ########
        #..O.O.#
        ##@.O..#
        #...O..#
        #.#.O..#
        #...O..#
        #......#
        ########

        <^^>>>vv<v>>v<<
    """,
    "maze": """
        ###############
        #.......#....E#
        #.#.###.#.###.#
        #.....#.#...#.#
        #.###.#####.#.#
        #.#.#.......#.#
        #.#.#####.###.#
        #...........#.#
        ###.#.#####.#.#
        #...#.....#.#.#
        #.#.#.###.#.#.#
        #.....#...#.#.#
        #.###.#.#.#.#.#
        #S..#.....#...#
        ###############
    """,
    "regions": """
        RRRRIICCFF
        RRRRIICCCF
        VVRRRCCFFF
        VVRCCCJFFF
        VVVVCJJCFE
        VVIVCCJJEE
        VVIIICJJEE
        MIIIIIJJEE
        MIIISIJEEE
        MMMISSJEEE
    """,
    "tachyon": """
        .......S.......
        ...............
        .......^.......
        ...............
        ......^.^......
        ...............
        .....^.^.^.....
        ...............
        ....^.^...^....
        ...............
        ...^.^...^.^...
        ...............
        ..^...^.....^..
        ...............
        .^.^.^.^.^...^.
        ...............
    """,
}


# =============================================================================
# Puzzles
# =============================================================================


def run_patrol(text: str, args: argparse.Namespace) -> tuple[Answers, Rendered]:
    patrol = Patrol.parse(text)
    result = patrol.run()
    loops = patrol.search_obstruction_positions(ObstructionPolicy(args.policy), args.workers)

    rendered = {
        "Patrol": render_grid_simple(patrol.grid, "Patrol", highlight_pos=patrol.head.position),
        "Obstructions": render_grid_simple(patrol.mark_obstructions(loops), "Obstructions"),
    }
    answers: Answers = [
        ("Visited", result.visited_count),
        ("Final state", result.state.value),
        ("Loop obstructions", len(loops)),
    ]
    return answers, rendered


def run_warehouse(text: str, args: argparse.Namespace) -> tuple[Answers, Rendered]:
    warehouse = Warehouse.parse(text)
    thick = None if warehouse.is_thick else warehouse.thicken()

    answers: Answers = [("GPS", warehouse.run())]
    rendered = {"Warehouse": render_grid_simple(warehouse.full_grid(), "Warehouse")}

    if thick is not None:
        answers.append(("Thick GPS", thick.run()))
        rendered["Thick"] = render_grid_simple(thick.full_grid(), "Thick")
    return answers, rendered


def run_maze(text: str, args: argparse.Namespace) -> tuple[Answers, Rendered]:
    maze = Maze.parse(text)
    cost = maze.lowest_cost()
    tiles = maze.best_path_tiles()

    overlay = {pos: "O" for pos in tiles}
    rendered = {"Maze": render_grid_simple(maze.grid, "Maze", overlay=overlay)}
    answers: Answers = [
        ("Lowest cost", cost if cost is not None else "unreachable"),
        ("Best path tiles", len(tiles)),
    ]
    return answers, rendered


def run_regions(text: str, args: argparse.Namespace) -> tuple[Answers, Rendered]:
    regions = RegionMap.parse(text)
    for region in regions.regions:
        logger.debug("%s", region)

    rendered = {"Garden": render_grid_simple(regions.grid, "Garden")}
    answers: Answers = [
        ("Regions", len(regions.regions)),
        ("Price (perimeter)", regions.price_perimeter()),
        ("Price (sides)", regions.price_sides()),
    ]
    return answers, rendered


def run_tachyon(text: str, args: argparse.Namespace) -> tuple[Answers, Rendered]:
    exact = TachyonManifold.parse(text)
    exact.play()
    quantum = QuantumTachyonManifold.parse(text)
    quantum.play(args.workers)

    rendered = {
        "Beams": render_grid_simple(exact.current.grid, "Beams"),
        "Timelines": render_grid_simple(quantum.current.grid, "Timelines"),
    }
    answers: Answers = [("Splits", exact.splits()), ("Timelines", quantum.timelines())]
    return answers, rendered


PUZZLES: dict[str, Callable[[str, argparse.Namespace], tuple[Answers, Rendered]]] = {
    "patrol": run_patrol,
    "warehouse": run_warehouse,
    "maze": run_maze,
    "regions": run_regions,
    "tachyon": run_tachyon,
}


# =============================================================================
# Entry point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run a grid simulation on a puzzle input.")
    parser.add_argument("puzzle", choices=sorted(PUZZLES))
    parser.add_argument("input", nargs="?", type=Path, help="puzzle input file")
    parser.add_argument("--example", action="store_true", help="use the built-in example input")
    parser.add_argument("--render", action="store_true", help="draw the final grids")
    parser.add_argument("--workers", type=int, default=None, help="worker processes for parallel sweeps")
    parser.add_argument(
        "--policy",
        choices=[policy.value for policy in ObstructionPolicy],
        default=ObstructionPolicy.ALL_OPEN_CELLS.value,
        help="cells tried by the patrol obstruction search",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )

    if args.example or args.input is None:
        text = EXAMPLES[args.puzzle]
    else:
        try:
            text = args.input.read_text(encoding="utf-8")
        except OSError as exc:
            print(f"{args.puzzle}: cannot read input: {exc}", file=sys.stderr)
            return 2

    try:
        answers, rendered = PUZZLES[args.puzzle](text, args)
    except GridParseError as exc:
        first_line = str(exc).split("\n")[0]
        print(f"{args.puzzle}: invalid input: {first_line}", file=sys.stderr)
        return 2

    if args.render:
        print(render_grids_flow(rendered))
        print()
    for label, value in answers:
        print(f"{label}: {value}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
