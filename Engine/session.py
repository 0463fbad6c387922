"""
Play session: the mutable overlay on top of an immutable Puzzle

Holds the player grid, per-cage status flags (keyed by cage id), undo
history, mistake/star/combo counters and fog-of-war cascade progress.
One session per puzzle, one writer at a time.
"""
import time
import logging
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Set, Any

from .constraints import ConstraintChecker
from .puzzle import (
    Cage, CageStatus, Coord, InvalidArgumentError, PlayerGrid, Puzzle, copy_grid,
    empty_grid, neighbors,
)


logger = logging.getLogger(__name__)

INITIAL_FOG_UNLOCKS = 2      # cages visible at the start of a fog game
FOG_START_PROGRESS = 10.0    # cascade % reported before anything is completed
PERFECT_CAGE_STARS = 3
CAGE_STARS = 1


class InsufficientStarsError(RuntimeError):
    """Raised when a power-up is bought without enough stars"""


@dataclass(frozen=True)
class PowerUp:
    type: str
    name: str
    description: str
    cost: int


POWER_UPS: Dict[str, PowerUp] = {
    'smart_hint': PowerUp('smart_hint', 'Smart Hint',
                          'Highlights valid numbers for selected cell', 5),
    'cage_validator': PowerUp('cage_validator', 'Cage Validator',
                              'Check if a cage is correctly filled', 3),
    'reveal_region': PowerUp('reveal_region', 'Reveal Region',
                             'Unlock a fog-covered area', 10),
}


@dataclass
class MoveRecord:
    """One entry of the undo history"""
    row: int
    col: int
    previous_value: Optional[int]
    new_value: Optional[int]
    timestamp: float = field(default_factory=time.time)


@dataclass
class MoveResult:
    """What happened after a set_cell_value call"""
    valid: bool
    completed_cage: Optional[str] = None
    unlocked_cages: List[str] = field(default_factory=list)
    puzzle_completed: bool = False


class GameSession:
    """Mutable play state for a single puzzle"""

    def __init__(self, puzzle: Puzzle, stars: int = 0):
        self.puzzle = puzzle
        self.stars = stars
        self.total_stars = stars
        self.reset()

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    def reset(self) -> None:
        """Clear the board and restore the initial unlock policy"""
        puzzle = self.puzzle
        self.grid: PlayerGrid = empty_grid(puzzle.size)
        self.statuses: Dict[str, CageStatus] = {
            cage.id: CageStatus(unlocked=(not puzzle.fog_mode) or index < INITIAL_FOG_UNLOCKS)
            for index, cage in enumerate(puzzle.cages)
        }
        self.history: List[MoveRecord] = []
        self._rewarded: Set[str] = set()
        self.mistakes = 0
        self.hints_used = 0
        self.combo = 0
        self.completed = False
        self.started_at = time.time()
        self.cascade_progress = FOG_START_PROGRESS if puzzle.fog_mode else 100.0

    def elapsed_seconds(self) -> float:
        return time.time() - self.started_at

    # -------------------------------------------------------------------------
    # Moves
    # -------------------------------------------------------------------------
    def set_cell_value(self, row: int, col: int, value: Optional[int]) -> MoveResult:
        """Place (or clear, with None) a value and update cage/puzzle state"""
        size = self.puzzle.size
        if not (0 <= row < size and 0 <= col < size):
            raise InvalidArgumentError(f"Cell ({row}, {col}) outside {size}x{size} grid")

        previous = self.grid[row][col]
        self.grid[row][col] = value
        self.history.append(MoveRecord(row, col, previous, value))

        valid = value is None or ConstraintChecker.cell_is_consistent(
            self.grid, size, row, col, value
        )
        result = MoveResult(valid=valid)

        if not valid:
            self.mistakes += 1
            self.combo = 0
            logger.debug("Mistake at (%d, %d): %s", row, col, value)

        self._after_change(row, col, result)
        return result

    def undo(self) -> bool:
        """Revert the last move. Returns False when there is nothing to undo."""
        if not self.history:
            return False

        last = self.history.pop()
        self.grid[last.row][last.col] = last.previous_value
        self._after_change(last.row, last.col, MoveResult(valid=True))
        return True

    def _after_change(self, row: int, col: int, result: MoveResult) -> None:
        """Refresh the cell's cage, the fog cascade and the puzzle completed flag"""
        cage = self.puzzle.cage_for_cell(row, col)
        if cage is not None and self._update_cage(cage):
            result.completed_cage = cage.id
            if self.puzzle.fog_mode:
                result.unlocked_cages = self.unlock_adjacent_cages(cage.id)

        if ConstraintChecker.puzzle_is_complete(self.grid, self.puzzle):
            if not self.completed:
                logger.info("Puzzle %s completed with %d mistake(s)", self.puzzle.id, self.mistakes)
            self.completed = True
            result.puzzle_completed = True
        else:
            self.completed = False

    def _update_cage(self, cage: Cage) -> bool:
        """
        Re-evaluate a cage after one of its cells changed.
        Returns True only when the cage has just become completed.
        Stars, combo and the perfect flag are settled on the first completion only.
        """
        status = self.statuses[cage.id]
        correct = (ConstraintChecker.cage_is_complete(self.grid, cage)
                   and ConstraintChecker.cage_matches_solution(self.grid, cage, self.puzzle.solution))

        if not correct:
            status.completed = False
            return False
        if status.completed:
            return False

        status.completed = True
        if cage.id in self._rewarded:
            return True

        self._rewarded.add(cage.id)
        status.perfect = self.mistakes == 0
        self.add_stars(PERFECT_CAGE_STARS if status.perfect else CAGE_STARS)
        self.combo += 1
        logger.debug("%s completed (perfect=%s)", cage.id, status.perfect)
        return True

    # -------------------------------------------------------------------------
    # Fog of war
    # -------------------------------------------------------------------------
    def is_unlocked(self, row: int, col: int) -> bool:
        cage = self.puzzle.cage_for_cell(row, col)
        return cage is not None and self.statuses[cage.id].unlocked

    def unlock_adjacent_cages(self, cage_id: str) -> List[str]:
        """Unlock every locked cage touching `cage_id`; returns the newly unlocked ids"""
        cage = self.puzzle.cage_by_id(cage_id)
        size = self.puzzle.size

        touching: Set[Coord] = set()
        for r, c in cage.cells:
            touching.update(neighbors(r, c, size))

        unlocked = []
        for other in self.puzzle.cages:
            status = self.statuses[other.id]
            if status.unlocked:
                continue
            if any(cell in touching for cell in other.cells):
                status.unlocked = True
                unlocked.append(other.id)

        self._update_cascade_progress()
        if unlocked:
            logger.debug("Cascade from %s unlocked %s", cage_id, unlocked)
        return unlocked

    def _update_cascade_progress(self) -> None:
        total = len(self.statuses)
        count = sum(1 for s in self.statuses.values() if s.unlocked)
        self.cascade_progress = (count / total) * 100 if total else 100.0

    # -------------------------------------------------------------------------
    # Stars and power-ups
    # -------------------------------------------------------------------------
    def add_stars(self, amount: int) -> None:
        self.stars += amount
        self.total_stars += amount

    def spend_stars(self, amount: int) -> bool:
        if self.stars < amount:
            return False
        self.stars -= amount
        return True

    def _purchase(self, power_up_type: str) -> None:
        power_up = POWER_UPS[power_up_type]
        if not self.spend_stars(power_up.cost):
            raise InsufficientStarsError(
                f"{power_up.name} costs {power_up.cost} stars, only {self.stars} available"
            )

    def use_smart_hint(self, row: int, col: int) -> Set[int]:
        """Values that can go at (row, col) without a row/column clash"""
        size = self.puzzle.size
        if not (0 <= row < size and 0 <= col < size):
            raise InvalidArgumentError(f"Cell ({row}, {col}) outside {size}x{size} grid")
        self._purchase('smart_hint')
        self.hints_used += 1
        return ConstraintChecker.valid_numbers_for(self.grid, self.puzzle, row, col)

    def use_cage_validator(self, cage_id: str) -> bool:
        """Is every filled cell of the cage equal to the solution?"""
        cage = self.puzzle.cage_by_id(cage_id)
        self._purchase('cage_validator')
        return ConstraintChecker.cage_matches_solution(self.grid, cage, self.puzzle.solution)

    def use_reveal_region(self) -> List[str]:
        """Unlock the first locked cage plus its neighbours"""
        locked = [cage for cage in self.puzzle.cages if not self.statuses[cage.id].unlocked]
        if not locked:
            return []

        self._purchase('reveal_region')
        first = locked[0]
        self.statuses[first.id].unlocked = True
        return [first.id] + self.unlock_adjacent_cages(first.id)

    # -------------------------------------------------------------------------
    # Snapshot
    # -------------------------------------------------------------------------
    def to_dict(self) -> Dict[str, Any]:
        return {
            'puzzle_id': self.puzzle.id,
            'grid': copy_grid(self.grid),
            'cages': {cage_id: asdict(status) for cage_id, status in self.statuses.items()},
            'mistakes': self.mistakes,
            'hints_used': self.hints_used,
            'stars': self.stars,
            'total_stars': self.total_stars,
            'combo': self.combo,
            'cascade_progress': self.cascade_progress,
            'completed': self.completed,
            'moves': len(self.history),
        }

    def __repr__(self):
        filled = sum(1 for row in self.grid for v in row if v is not None)
        return (f"GameSession(puzzle={self.puzzle.id}, filled={filled}/{self.puzzle.size ** 2}, "
                f"mistakes={self.mistakes}, stars={self.stars})")
