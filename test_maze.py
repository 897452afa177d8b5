"""
Tests for the turn-cost maze solver.
"""

import pytest

from grid_types import Direction, GridParseError, Head, Position
from maze import Maze, MazeCosts

EXAMPLE = """
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
"""


class TestMazeParsing:
    """Tests for reading mazes."""

    def test_start_and_end(self) -> None:
        maze = Maze.parse(EXAMPLE)
        assert maze.start == Position(13, 1)
        assert maze.end == Position(1, 13)

    def test_missing_end(self) -> None:
        with pytest.raises(GridParseError, match="exactly one end"):
            Maze.parse("#####\n#S..#\n#####")

    def test_two_starts(self) -> None:
        with pytest.raises(GridParseError, match="exactly one start"):
            Maze.parse("#####\n#SSE#\n#####")

    def test_unknown_character(self) -> None:
        with pytest.raises(GridParseError, match="Invalid character"):
            Maze.parse("#####\n#S?E#\n#####")


class TestMazeSearch:
    """Tests for the lowest-cost search."""

    @pytest.mark.parametrize("length", [1, 2, 5, 12])
    def test_straight_corridor(self, length: int) -> None:
        """A straight eastward corridor costs one per step."""
        row = "#S" + "." * (length - 1) + "E#"
        wall = "#" * len(row)
        assert Maze.parse(f"{wall}\n{row}\n{wall}").lowest_cost() == length

    def test_one_turn(self) -> None:
        """Turning north once costs the turn plus the steps."""
        maze = Maze.parse("####\n#.E#\n#S.#\n####")
        assert maze.lowest_cost() == 1002

    def test_reverse_start(self) -> None:
        """An end behind the start costs a half turn."""
        maze = Maze.parse("#####\n#E.S#\n#####")
        assert maze.lowest_cost() == 2002

    def test_unreachable(self) -> None:
        maze = Maze.parse("#####\n#S#E#\n#####")
        assert maze.lowest_cost() is None
        assert maze.best_path_tiles() == set()

    def test_custom_costs(self) -> None:
        """The cost table is configurable."""
        maze = Maze.parse("####\n#.E#\n#S.#\n####", costs=MazeCosts(step=2, turn=5, reverse=7))
        assert maze.lowest_cost() == 9

    def test_start_direction(self) -> None:
        """Starting north removes the turn from a northward route."""
        maze = Maze.parse("###\n#E#\n#S#\n###", start_direction=Direction.N)
        assert maze.lowest_cost() == 1

    def test_turn_heads_tracked(self) -> None:
        """Every facing on the start cell is a search node."""
        maze = Maze.parse("#####\n#S.E#\n#####")
        best = maze.solve()
        assert best[Head(Position(1, 1), Direction.E)] == 0
        assert best[Head(Position(1, 1), Direction.N)] == 1000
        assert best[Head(Position(1, 1), Direction.W)] == 2000

    def test_example(self) -> None:
        maze = Maze.parse(EXAMPLE)
        assert maze.lowest_cost() == 7036

    def test_example_best_path_tiles(self) -> None:
        maze = Maze.parse(EXAMPLE)
        tiles = maze.best_path_tiles()
        assert len(tiles) == 45
        assert maze.start in tiles
        assert maze.end in tiles

    def test_render_path(self) -> None:
        """Path tiles are drawn over the maze."""
        maze = Maze.parse("#####\n#S.E#\n#####")
        assert maze.render(show_path=True).split("\n")[1] == "#OOO#"
        assert maze.render().split("\n")[1] == "#S.E#"
