"""
Tests for grid rendering.
"""

from ascii_render import cell_char, render_grid_simple, render_grids_flow, render_plain, visible_width
from grid_types import Grid, Position
from maze import MazeCell
from tachyon import QuantumTile


class TestPlainRendering:
    """Tests for uncoloured one-character-per-cell output."""

    def test_enum_cells(self) -> None:
        grid = Grid([[MazeCell.WALL, MazeCell.START], [MazeCell.SPACE, MazeCell.END]])
        assert render_plain(grid) == "#S\n.E"

    def test_overlay(self) -> None:
        grid = Grid([[MazeCell.SPACE, MazeCell.SPACE]])
        assert render_plain(grid, overlay={Position(0, 1): "O"}) == ".O"

    def test_cell_char(self) -> None:
        assert cell_char(MazeCell.WALL) == "#"
        assert cell_char("x") == "x"
        assert cell_char(QuantumTile(beam=12, empty=1)) == "12|"


class TestFramedRendering:
    """Tests for titled, bordered output."""

    def test_box_and_title(self) -> None:
        grid = Grid([["a", "b", "c", "d", "e", "f"]])
        lines = render_grid_simple(grid, "T", palette={})
        assert lines == [
            "┌─ T ──┐",
            "│abcdef│",
            "└──────┘",
        ]

    def test_wide_cells_widen_columns(self) -> None:
        """Multi-character cell text widens every column."""
        grid = Grid([["1|", "."]])
        lines = render_grid_simple(grid, "", palette={})
        assert lines[1] == "│1|. │"

    def test_highlight_is_coloured(self) -> None:
        grid = Grid([["a", "b"]])
        lines = render_grid_simple(grid, "", palette={}, highlight_pos=Position(0, 1))
        assert visible_width(lines[1]) == 4

    def test_palette_applied(self) -> None:
        grid = Grid([["#"]])
        lines = render_grid_simple(grid, "", palette={"#": lambda text: f"<{text}>"})
        assert lines[1] == "│<#>│"


class TestFlowLayout:
    """Tests for placing several grids side by side."""

    def test_side_by_side(self) -> None:
        rendered = {"a": ["aa", "aa"], "b": ["b"]}
        assert render_grids_flow(rendered, grid_spacing=1) == "aa b\naa"

    def test_wraps_when_too_wide(self) -> None:
        rendered = {"a": ["aaaa"], "b": ["bbbb"]}
        assert render_grids_flow(rendered, terminal_width=6) == "aaaa\n\nbbbb"
