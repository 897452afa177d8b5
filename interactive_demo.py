"""
Interactive warehouse demo.
Display the warehouse floor and drive the robot with keyboard commands.
"""

from __future__ import annotations

import logging
import sys

import readchar
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ascii_render import render_grid_simple
from demo import EXAMPLES
from grid_types import Direction, GridParseError, Offset
from warehouse import PushFailure, Warehouse

logger = logging.getLogger(__name__)

KEY_DIRECTIONS = {
    "w": Direction.N,
    "a": Direction.W,
    "s": Direction.S,
    "d": Direction.E,
    readchar.key.UP: Direction.N,
    readchar.key.LEFT: Direction.W,
    readchar.key.DOWN: Direction.S,
    readchar.key.RIGHT: Direction.E,
}


class InteractiveDemo:
    """Interactive demo for robot movements."""

    def __init__(self, warehouse: Warehouse) -> None:
        # Never moved; reset and toggle start from here. Queued movements are dropped
        self.original = Warehouse(warehouse.grid, [], warehouse.side_wall_thickness)
        self.thick = False
        self.warehouse = self._fresh()
        self.console = Console()
        self.status_message = "Ready"

    def _fresh(self) -> Warehouse:
        if self.thick:
            return self.original.thicken()
        return Warehouse(self.original.grid, [], self.original.side_wall_thickness)

    def generate_display(self) -> Panel:
        """Generate the current display with grid and status."""
        warehouse = self.warehouse
        robot = warehouse.robot

        # The rendered grid includes the outer wall ring
        ring = Offset(1, warehouse.side_wall_thickness)
        lines = render_grid_simple(
            warehouse.full_grid(),
            "Thick" if self.thick else "Warehouse",
            highlight_pos=robot.apply(ring),
        )

        status = Text()
        status.append("Robot Position: ", style="bold")
        status.append(f"{robot}\n")
        status.append("Moves: ", style="bold")
        status.append(f"{warehouse.elapsed} ({warehouse.blocked} blocked)\n")
        status.append("GPS: ", style="bold")
        status.append(f"{warehouse.gps()}\n\n")

        # Convert ANSI-colored grid text to Rich Text properly
        status.append(Text.from_ansi("\n".join(lines)))
        status.append("\n\n")
        status.append("Keys:\n", style="bold cyan")
        status.append("  W / Up    - Move North\n")
        status.append("  A / Left  - Move West\n")
        status.append("  S / Down  - Move South\n")
        status.append("  D / Right - Move East\n")
        status.append("  T - Toggle thick boxes\n")
        status.append("  R - Reset to original floor\n")
        status.append("  Q - Quit\n\n")

        status.append("─" * 40 + "\n", style="dim")
        status.append("Status: ", style="bold")
        status.append(self.status_message)

        return Panel(status, title="Warehouse Interactive Demo", border_style="green", width=80)

    def attempt_move(self, direction: Direction) -> None:
        """Queue one movement and apply it."""
        self.warehouse.movements.append(direction)
        result = self.warehouse.step()
        logger.debug("move %s: %s", direction.value, result)

        if isinstance(result, PushFailure):
            self.status_message = (
                f"✗ Move {direction.value} blocked: {result.reason.value} at {result.position}"
            )
            if result.details:
                self.status_message += f" ({result.details})"
        else:
            self.status_message = f"✓ Moved {direction.value}! Robot now at {self.warehouse.robot}"

    def reset(self) -> None:
        self.warehouse = self._fresh()
        self.status_message = "Floor reset to original state"

    def toggle_thick(self) -> None:
        self.thick = not self.thick
        self.warehouse = self._fresh()
        self.status_message = "Thick boxes" if self.thick else "Thin boxes"

    def handle_key(self, key: str) -> bool:
        """Apply one key press; returns False when the demo should stop."""
        direction = KEY_DIRECTIONS.get(key) or KEY_DIRECTIONS.get(key.lower())
        if direction is not None:
            self.attempt_move(direction)
        elif key.lower() == "q":
            self.status_message = "Quitting..."
            return False
        elif key.lower() == "r":
            self.reset()
        elif key.lower() == "t":
            if self.original.is_thick:
                self.status_message = "Floor is already thick"
            else:
                self.toggle_thick()
        else:
            self.status_message = f"Unknown key: {repr(key)}"
        return True

    def run(self) -> None:
        """Run the interactive demo until the user quits."""
        with Live(self.generate_display(), console=self.console, refresh_per_second=4) as live:
            try:
                while True:
                    live.update(self.generate_display())
                    if not self.handle_key(readchar.readkey()):
                        live.update(self.generate_display())
                        break
            except KeyboardInterrupt:
                self.status_message = "Interrupted by user"
                live.update(self.generate_display())


def main(argv: list[str] | None = None) -> int:
    """Run the demo on a warehouse file, or on the built-in example."""
    argv = sys.argv[1:] if argv is None else argv
    logging.basicConfig(level=logging.WARNING)

    try:
        if argv:
            with open(argv[0], encoding="utf-8") as f:
                text = f.read()
        else:
            text = EXAMPLES["warehouse"]
        warehouse = Warehouse.parse(text)
    except (OSError, GridParseError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    InteractiveDemo(warehouse).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
