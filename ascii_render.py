"""
ASCII rendering for simulation grids.

Provides two rendering approaches:
1. Plain rendering - one character per cell, no colour, stable for tests
2. Framed rendering - bordered, titled and coloured with simple_chalk, with
   several grids laid out side by side in flow layout
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Callable, Mapping

import simple_chalk as chalk  # type: ignore[import-untyped]

from grid_types import Grid, Position

Colorizer = Callable[[str], str]
CharFn = Callable[[object], str]

# Colours per cell character; unknown characters are left uncoloured
DEFAULT_PALETTE: dict[str, Colorizer] = {
    "#": chalk.blue,
    "O": chalk.yellow,
    "[": chalk.yellow,
    "]": chalk.yellow,
    "@": chalk.redBright,
    "^": chalk.redBright,
    ">": chalk.redBright,
    "v": chalk.redBright,
    "<": chalk.redBright,
    "X": chalk.green,
    "|": chalk.cyan,
    "S": chalk.magenta,
    "E": chalk.magenta,
    "*": chalk.greenBright,
}

_ANSI = re.compile(r"\x1b\[[0-9;]*m")


def cell_char(cell: object) -> str:
    """Display text for a cell: the value of enum cells, str() of anything else."""
    if isinstance(cell, Enum):
        return str(cell.value)
    return str(cell)


def visible_width(text: str) -> int:
    """Length of ``text`` once ANSI colour codes are removed."""
    return len(_ANSI.sub("", text))


def render_plain(grid: Grid, char_fn: CharFn = cell_char, overlay: Mapping[Position, str] | None = None) -> str:
    """
    Render a grid with one character per cell.

    Args:
        grid: The grid to render
        char_fn: Maps a cell to its display text
        overlay: Optional characters drawn over specific positions

    Returns:
        Rows joined by newlines
    """
    lines = []
    for r, row in enumerate(grid.cells):
        chars = []
        for c, cell in enumerate(row):
            pos = Position(r, c)
            chars.append(overlay[pos] if overlay and pos in overlay else char_fn(cell))
        lines.append("".join(chars))
    return "\n".join(lines)


def render_grid_simple(
    grid: Grid,
    title: str,
    cell_width: int = 1,
    highlight_pos: Position | None = None,
    palette: Mapping[str, Colorizer] | None = None,
    char_fn: CharFn = cell_char,
    overlay: Mapping[Position, str] | None = None,
) -> list[str]:
    """
    Render a single grid inside a titled box, coloured per cell character.

    Args:
        grid: The grid to render
        title: Text shown in the top border
        cell_width: Characters per cell (default 1)
        highlight_pos: Optional position drawn on a white background
        palette: Character -> colorizer; DEFAULT_PALETTE when None
        char_fn: Maps a cell to its display text
        overlay: Optional characters drawn over specific positions

    Returns:
        List of strings representing the rendered grid lines
    """
    if palette is None:
        palette = DEFAULT_PALETTE

    cell_texts = [
        [
            overlay[Position(r, c)] if overlay and Position(r, c) in overlay else char_fn(cell)
            for c, cell in enumerate(row)
        ]
        for r, row in enumerate(grid.cells)
    ]
    # Wide cell text (e.g. quantum beam counts) widens every column
    cell_width = max([cell_width] + [len(text) for row in cell_texts for text in row])

    border_width = 2  # left and right borders
    title = f" {title} "
    grid_width = grid.cols * cell_width + border_width

    lines: list[str] = []

    # Top border with title
    title_line = "┌" + "─" * (grid_width - 2) + "┐"
    # Center title in the border
    if len(title) <= grid_width - 2:
        title_start = (grid_width - len(title)) // 2
        title_line = (
            "┌" +
            "─" * (title_start - 1) +
            title +
            "─" * (grid_width - title_start - len(title) - 1) +
            "┐"
        )
    lines.append(title_line)

    for r_idx, row in enumerate(cell_texts):
        line_parts = ["│"]

        for c_idx, text in enumerate(row):
            content = text if cell_width == 1 else text.center(cell_width)

            if highlight_pos is not None and highlight_pos == Position(r_idx, c_idx):
                content = chalk.bgWhite.black(content)
            else:
                colorize = palette.get(text.strip()[:1])
                if colorize is not None:
                    content = colorize(content)

            line_parts.append(content)

        line_parts.append("│")
        lines.append("".join(line_parts))

    # Bottom border
    lines.append("└" + "─" * (grid_width - 2) + "┘")

    return lines


def render_grids_flow(
    rendered: Mapping[str, list[str]],
    terminal_width: int = 120,
    grid_spacing: int = 2,
) -> str:
    """
    Lay out already-rendered grids in rows, as many per row as fit.

    Args:
        rendered: Title -> lines from render_grid_simple, in display order
        terminal_width: Maximum width for layout (default 120)
        grid_spacing: Spaces between grids

    Returns:
        Rendered ASCII string with all grids in flow layout
    """
    grid_widths = {
        key: max((visible_width(line) for line in lines), default=0)
        for key, lines in rendered.items()
    }

    output_lines: list[str] = []
    current_row: list[str] = []
    current_row_width = 0

    for key in rendered:
        needed_width = grid_widths[key]
        if current_row:
            needed_width += grid_spacing  # Add spacing if not first in row

        if current_row and current_row_width + needed_width > terminal_width:
            _flush_grid_row(current_row, rendered, grid_widths, output_lines, grid_spacing)
            current_row = []
            current_row_width = 0
            needed_width = grid_widths[key]

        current_row.append(key)
        current_row_width += needed_width

    if current_row:
        _flush_grid_row(current_row, rendered, grid_widths, output_lines, grid_spacing)

    return "\n".join(output_lines).rstrip("\n")


def _flush_grid_row(
    row_keys: list[str],
    rendered: Mapping[str, list[str]],
    grid_widths: dict[str, int],
    output_lines: list[str],
    grid_spacing: int,
) -> None:
    """Helper to flush a row of grids to output_lines."""
    max_height = max(len(rendered[key]) for key in row_keys)

    for line_idx in range(max_height):
        line_parts = []
        for key in row_keys:
            lines = rendered[key]
            if line_idx < len(lines):
                line = lines[line_idx]
                # Pad by visible width so coloured lines stay aligned
                line_parts.append(line + " " * (grid_widths[key] - visible_width(line)))
            else:
                line_parts.append(" " * grid_widths[key])

        output_lines.append((" " * grid_spacing).join(line_parts).rstrip())

    # Add spacing between rows
    output_lines.append("")
