"""
Tests for the guard patrol simulation.
"""

import pytest

from grid_types import Direction, GridParseError, Head, Position, SimulationInvariantError
from patrol import ObstructionPolicy, Patrol, PatrolCell, PatrolState, find_guard, loops_with_obstruction

EXAMPLE = """
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
"""

# Guard boxed in by four walls
LOOP = """
    .#...
    .^.#.
    #....
    ..#..
"""


# =============================================================================
# Test Parsing
# =============================================================================


class TestPatrolParsing:
    """Tests for building a patrol from text."""

    def test_guard_found(self) -> None:
        """The guard's position and facing come from its arrow."""
        patrol = Patrol.parse("...\n.>.\n...")
        assert patrol.start == Head(Position(1, 1), Direction.E)
        assert patrol.state is PatrolState.WALKING

    def test_no_guard(self) -> None:
        with pytest.raises(GridParseError, match="exactly one guard, found 0"):
            Patrol.parse("...\n.#.")

    def test_two_guards(self) -> None:
        with pytest.raises(GridParseError, match="exactly one guard, found 2"):
            Patrol.parse("^..\n..v")

    def test_unknown_character(self) -> None:
        with pytest.raises(GridParseError, match="Invalid character"):
            Patrol.parse("^.?")


# =============================================================================
# Test Walking
# =============================================================================


class TestPatrolWalk:
    """Tests for stepping the state machine."""

    def test_wall_free_map_exits(self) -> None:
        """Without walls the guard walks straight off the map."""
        patrol = Patrol.parse("...\n.^.\n...")
        result = patrol.run()
        assert result.state is PatrolState.EXITED
        assert result.visited_count == 2
        assert patrol.visited_positions() == {Position(1, 1), Position(0, 1)}

    def test_turns_right_at_wall(self) -> None:
        """A wall ahead rotates the guard clockwise without moving it."""
        patrol = Patrol.parse(".#.\n.^.")
        assert patrol.step() is PatrolState.WALKING
        assert patrol.head == Head(Position(1, 1), Direction.E)
        assert patrol.grid.get(Position(1, 1)) is PatrolCell.GUARD_E

    def test_moving_marks_visited(self) -> None:
        """The cell the guard leaves is marked visited."""
        patrol = Patrol.parse("...\n.^.")
        patrol.step()
        assert patrol.grid.get(Position(1, 1)) is PatrolCell.VISITED
        assert patrol.grid.get(Position(0, 1)) is PatrolCell.GUARD_N

    def test_loop_detected(self) -> None:
        """Returning to a head already recorded ends the walk."""
        patrol = Patrol.parse(LOOP)
        result = patrol.run()
        assert result.state is PatrolState.LOOP_DETECTED
        assert result.visited_count == 4
        assert patrol.head == Head(Position(1, 1), Direction.N)

    def test_step_after_finish_is_stable(self) -> None:
        """Stepping a finished patrol changes nothing."""
        patrol = Patrol.parse(".^.")
        patrol.run()
        ticks = patrol.ticks
        assert patrol.step() is PatrolState.EXITED
        assert patrol.ticks == ticks

    def test_walking_into_guard_is_invariant_error(self) -> None:
        """A second guard appearing mid-walk is a logic defect."""
        patrol = Patrol.parse("...\n.^.")
        patrol.grid.set(Position(0, 1), PatrolCell.GUARD_S)
        with pytest.raises(SimulationInvariantError):
            patrol.step()

    def test_example_visited(self) -> None:
        """The example guard visits 41 distinct cells."""
        result = Patrol.parse(EXAMPLE).run()
        assert result.state is PatrolState.EXITED
        assert result.visited_count == 41

    def test_known_start_walks_in_place(self) -> None:
        """A walk given its start head skips the guard search and uses the grid it is handed."""
        patrol = Patrol.parse(EXAMPLE)
        grid = patrol.base.copy()
        walk = Patrol(grid, patrol.start)
        result = walk.run()
        assert walk.grid is grid
        assert result == Patrol.parse(EXAMPLE).run()

    def test_find_guard(self) -> None:
        patrol = Patrol.parse(EXAMPLE)
        assert find_guard(patrol.base) == Head(Position(6, 4), Direction.N)


# =============================================================================
# Test Obstruction Search
# =============================================================================


class TestObstructionSearch:
    """Tests for finding loop-inducing obstructions."""

    def test_example_positions(self) -> None:
        """The example has six cells where an obstruction traps the guard."""
        patrol = Patrol.parse(EXAMPLE)
        found = patrol.search_obstruction_positions()
        assert found == {
            Position(6, 3),
            Position(7, 6),
            Position(7, 7),
            Position(8, 1),
            Position(8, 3),
            Position(9, 7),
        }
        assert patrol.base == Patrol.parse(EXAMPLE).base

    def test_policies_agree(self) -> None:
        """Restricting candidates to the original path finds the same cells."""
        patrol = Patrol.parse(EXAMPLE)
        assert patrol.search_obstruction_positions(
            ObstructionPolicy.ORIGINAL_PATH
        ) == patrol.search_obstruction_positions(ObstructionPolicy.ALL_OPEN_CELLS)

    def test_search_is_idempotent(self) -> None:
        """Searching twice, or after walking, gives the same answer."""
        patrol = Patrol.parse(EXAMPLE)
        first = patrol.search_obstruction_positions()
        patrol.run()
        assert patrol.search_obstruction_positions() == first

    def test_parallel_matches_sequential(self) -> None:
        """A process pool evaluates the same candidates to the same result."""
        patrol = Patrol.parse(EXAMPLE)
        assert patrol.search_obstruction_positions(workers=2) == patrol.search_obstruction_positions()

    def test_candidates_exclude_walls_and_start(self) -> None:
        """Walls and the guard's start are never tried."""
        patrol = Patrol.parse(EXAMPLE)
        candidates = patrol.obstruction_candidates(ObstructionPolicy.ALL_OPEN_CELLS)
        assert patrol.start.position not in candidates
        assert Position(0, 4) not in candidates
        assert len(candidates) == 100 - 8 - 1

    def test_loops_with_obstruction(self) -> None:
        """A single candidate can be checked on its own."""
        patrol = Patrol.parse(EXAMPLE)
        assert loops_with_obstruction(patrol.base, patrol.start, Position(6, 3))
        assert not loops_with_obstruction(patrol.base, patrol.start, Position(0, 0))
        assert patrol.base.get(Position(6, 3)) is PatrolCell.EMPTY

    def test_mark_obstructions(self) -> None:
        """Marked cells show as obstructions on a copy of the map."""
        patrol = Patrol.parse(EXAMPLE)
        marked = patrol.mark_obstructions({Position(6, 3)})
        assert marked.get(Position(6, 3)) is PatrolCell.OBSTRUCTION
        assert patrol.base.get(Position(6, 3)) is PatrolCell.EMPTY
