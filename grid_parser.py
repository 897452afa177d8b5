"""
Grid parsing utilities.

Puzzle inputs are blocks of single-character cells, one grid row per line.
Leading and trailing whitespace on every line is ignored so inputs can be
embedded as indented string literals. Some puzzles append further sections
after a blank line (e.g. the warehouse robot's movement list).
"""

from __future__ import annotations

from typing import Callable, TypeVar

from grid_types import Direction, Grid, GridParseError

__all__ = ["split_lines", "split_sections", "parse_char_grid", "parse_movements"]

T = TypeVar("T")


def split_lines(text: str) -> list[str]:
    """Split a block into trimmed, non-empty lines."""
    return [line.strip() for line in text.strip().split("\n") if line.strip()]


def split_sections(text: str) -> list[str]:
    """
    Split text into sections separated by one or more blank lines.

    Example:
        "##\\n#.\\n\\n<>^" -> ["##\\n#.", "<>^"]
    """
    sections: list[str] = []
    current: list[str] = []

    for line in text.strip().split("\n"):
        if line.strip():
            current.append(line.strip())
        elif current:
            sections.append("\n".join(current))
            current = []

    if current:
        sections.append("\n".join(current))

    return sections


def parse_char_grid(
    text: str,
    cell_parser: Callable[[str], T],
    valid_chars: str,
    grid_name: str = "grid",
) -> Grid[T]:
    """
    Parse a block of single-character cells into a Grid.

    Args:
        text: Block with one grid row per line
        cell_parser: Maps one character to a cell; raises ValueError for
            characters it does not know
        valid_chars: Characters accepted by cell_parser, for error messages
        grid_name: Name used in error messages

    Returns:
        Grid with one cell per character

    Raises:
        GridParseError: On unknown characters, ragged rows or empty input
    """
    row_strings = split_lines(text)
    if not row_strings:
        raise GridParseError(f"Empty {grid_name}: no rows found")

    rows: list[list[T]] = []
    for row_idx, row_str in enumerate(row_strings):
        cells: list[T] = []
        for col_idx, char in enumerate(row_str):
            try:
                cells.append(cell_parser(char))
            except ValueError as exc:
                raise GridParseError(
                    f"Invalid character {char!r} in {grid_name}\n"
                    f"  Row {row_idx}: \"{row_str}\"\n"
                    f"  Position: column {col_idx}\n"
                    f"  Valid characters: {' '.join(valid_chars)}"
                ) from exc
        rows.append(cells)

    # Validate all rows have same length
    cols = len(rows[0])
    mismatched = [(i, len(row)) for i, row in enumerate(rows) if len(row) != cols]
    if mismatched:
        error_msg = (
            f"Inconsistent row lengths in {grid_name}\n"
            f"  Expected: {cols} columns (from row 0)\n"
            f"  Mismatched rows:\n"
        )
        for row_idx, actual_cols in mismatched:
            error_msg += f"    Row {row_idx}: {actual_cols} columns - \"{row_strings[row_idx]}\"\n"
        error_msg += "  All rows must have the same number of cells"
        raise GridParseError(error_msg)

    return Grid(rows)


def parse_movements(text: str) -> list[Direction]:
    """Parse a run of arrow characters (whitespace ignored) into directions."""
    movements: list[Direction] = []
    for index, char in enumerate(c for c in text if not c.isspace()):
        try:
            movements.append(Direction.from_arrow(char))
        except GridParseError as exc:
            raise GridParseError(f"Failed parsing movement {index}: {exc}") from exc
    return movements
