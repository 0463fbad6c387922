"""
Backtracking CSP solver for KenKen puzzles

Used to answer "how many solutions does this cage layout admit?", so the
generator output can be checked for uniqueness. Strategy:

1. MRV: always branch on the empty cell with the fewest candidates
2. Candidates = row/column consistent values that keep the cage feasible
3. Partial cage feasibility is checked with cheap bounds (sum range,
   product divisibility, pair existence for - and ÷)
"""

import time
from typing import Dict, List, Optional, Sequence, Tuple

from .constraints import ConstraintChecker
from .puzzle import Cage, Coord, Grid, Operation, PlayerGrid, Puzzle, copy_grid, empty_grid


class CSPSolver:
    def __init__(self, puzzle: Puzzle, verbose: bool = False,
                 givens: Optional[Sequence[Sequence[Optional[int]]]] = None):
        self.puzzle = puzzle
        self.size = puzzle.size
        self.verbose = verbose
        self.grid: PlayerGrid = copy_grid(givens) if givens is not None else empty_grid(puzzle.size)
        self.stats: Dict[str, int] = {
            'attempts': 0,
            'backtracks': 0,
            'solutions': 0,
        }
        self.timed_out = False
        self.solutions: List[Grid] = []
        self._limit = 1
        self._deadline = 0.0

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------
    def solve(self, timeout_seconds: float = 30) -> Optional[Grid]:
        """Return the first solution found, or None (no solution or timeout)"""
        self._run(limit=1, timeout_seconds=timeout_seconds)
        return self.solutions[0] if self.solutions else None

    def count_solutions(self, limit: int = 2, timeout_seconds: float = 30) -> int:
        """Count solutions, stopping once `limit` have been found"""
        self._run(limit=limit, timeout_seconds=timeout_seconds)
        return len(self.solutions)

    # -------------------------------------------------------------------------
    # Search driver
    # -------------------------------------------------------------------------
    def _run(self, limit: int, timeout_seconds: float) -> None:
        self.solutions = []
        self.timed_out = False
        self._limit = limit
        self._deadline = time.time() + timeout_seconds
        for key in self.stats:
            self.stats[key] = 0

        if self.verbose:
            print(f"Starting solver: {self.puzzle}")
            print(f"Strategy: MRV backtracking, stop after {limit} solution(s)\n")

        self._backtrack(0)

        if self.verbose:
            if self.timed_out:
                print("\n⚠ Solver timed out")
            print(f"\nFound {len(self.solutions)} solution(s)")
            self._print_stats()

    def _backtrack(self, depth: int) -> bool:
        """Returns True when the search should stop (limit reached or timeout)"""
        if time.time() > self._deadline:
            self.timed_out = True
            return True

        self.stats['attempts'] += 1
        if self.verbose and self.stats['attempts'] % 1000 == 0:
            print(f"  Attempts: {self.stats['attempts']} | "
                  f"Backtracks: {self.stats['backtracks']} | Depth: {depth}")

        cell, candidates = self._select_mrv_cell()
        if cell is None:
            # Grid full
            if ConstraintChecker.puzzle_is_complete(self.grid, self.puzzle):
                self.solutions.append([list(row) for row in self.grid])
                self.stats['solutions'] += 1
                return len(self.solutions) >= self._limit
            return False

        row, col = cell
        for value in candidates:
            self.grid[row][col] = value
            if self._backtrack(depth + 1):
                self.grid[row][col] = None
                return True
            self.grid[row][col] = None

        self.stats['backtracks'] += 1
        return False

    def _select_mrv_cell(self) -> Tuple[Optional[Coord], List[int]]:
        best: Optional[Coord] = None
        best_candidates: List[int] = []
        for r in range(self.size):
            for c in range(self.size):
                if self.grid[r][c] is not None:
                    continue
                candidates = self._candidates(r, c)
                if best is None or len(candidates) < len(best_candidates):
                    best, best_candidates = (r, c), candidates
                    if not candidates:
                        return best, best_candidates
        return best, best_candidates

    # -------------------------------------------------------------------------
    # Domain computation
    # -------------------------------------------------------------------------
    def _candidates(self, row: int, col: int) -> List[int]:
        cage = self.puzzle.cage_for_cell(row, col)
        out = []
        for value in range(1, self.size + 1):
            if not ConstraintChecker.cell_is_consistent(self.grid, self.size, row, col, value):
                continue
            if cage is not None:
                self.grid[row][col] = value
                feasible = self._cage_feasible(cage)
                self.grid[row][col] = None
                if not feasible:
                    continue
            out.append(value)
        return out

    def _cage_feasible(self, cage: Cage) -> bool:
        """Can the cage still reach its target given the values placed so far?"""
        values = [self.grid[r][c] for r, c in cage.cells]
        filled = [v for v in values if v is not None]
        remaining = len(values) - len(filled)

        if remaining == 0:
            return ConstraintChecker.cage_satisfies_operation(self.grid, cage)

        op, target, n = cage.operation, cage.target, self.size
        if op is Operation.ADD:
            total = sum(filled)
            return total + remaining <= target <= total + remaining * n
        if op is Operation.MULTIPLY:
            product = 1
            for v in filled:
                product *= v
            return target % product == 0 and product * (n ** remaining) >= target
        if op in (Operation.SUBTRACT, Operation.DIVIDE):
            if len(values) != 2:
                return False
            if not filled:
                return True
            v = filled[0]
            if op is Operation.SUBTRACT:
                return 1 <= v - target or v + target <= n
            if target < 1:
                return False
            return v * target <= n or v % target == 0
        return True

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------
    def _print_stats(self) -> None:
        print("Solver stats:")
        for key, value in self.stats.items():
            print(f"  {key}: {value}")


def has_unique_solution(puzzle: Puzzle, timeout_seconds: float = 30) -> bool:
    """True if the cage layout admits exactly one grid"""
    solver = CSPSolver(puzzle)
    count = solver.count_solutions(limit=2, timeout_seconds=timeout_seconds)
    return count == 1 and not solver.timed_out
