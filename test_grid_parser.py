"""Tests for grid_parser module."""

import pytest

from grid_parser import parse_char_grid, parse_movements, split_lines, split_sections
from grid_types import Direction, GridParseError, Position
from patrol import PatrolCell


class TestSplitting:
    """Tests for line and section splitting."""

    def test_split_lines_trims_indentation(self) -> None:
        """Indented literal blocks parse the same as flush ones."""
        text = """
            ab
            cd
        """
        assert split_lines(text) == ["ab", "cd"]

    def test_split_sections(self) -> None:
        """Blank lines separate sections."""
        text = """
        ##
        #.

        <>
        ^v
        """
        assert split_sections(text) == ["##\n#.", "<>\n^v"]

    def test_split_sections_multiple_blank_lines(self) -> None:
        """Runs of blank lines count as one separator."""
        assert split_sections("a\n\n\n\nb") == ["a", "b"]


class TestParseCharGrid:
    """Tests for the single-character grid parser."""

    def test_enum_cells(self) -> None:
        """Enum classes work directly as cell parsers."""
        grid = parse_char_grid("#.\n.^", PatrolCell, "#.^")
        assert grid.rows == 2
        assert grid.cols == 2
        assert grid.get(Position(0, 0)) is PatrolCell.WALL
        assert grid.get(Position(1, 1)) is PatrolCell.GUARD_N

    def test_invalid_character(self) -> None:
        """Unknown characters report row, column and the valid set."""
        with pytest.raises(GridParseError) as exc_info:
            parse_char_grid("..\n.Z", PatrolCell, "#.^", "patrol map")

        message = str(exc_info.value)
        assert "Invalid character 'Z' in patrol map" in message
        assert "Row 1" in message
        assert "column 1" in message
        assert "Valid characters" in message

    def test_ragged_rows(self) -> None:
        """Rows of different widths are rejected."""
        with pytest.raises(GridParseError, match="Inconsistent row lengths"):
            parse_char_grid("...\n..", PatrolCell, ".")

    def test_empty_input(self) -> None:
        """Blank input has no rows."""
        with pytest.raises(GridParseError, match="no rows"):
            parse_char_grid("   \n  ", PatrolCell, ".", "maze")


class TestParseMovements:
    """Tests for movement lists."""

    def test_whitespace_ignored(self) -> None:
        """Movements may span several lines."""
        assert parse_movements("<^\n v>") == [Direction.W, Direction.N, Direction.S, Direction.E]

    def test_empty(self) -> None:
        assert parse_movements("") == []

    def test_unknown_movement(self) -> None:
        """The index of the bad movement is reported."""
        with pytest.raises(GridParseError, match="movement 2"):
            parse_movements("<>x")
