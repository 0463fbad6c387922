"""
Constraint checking for KenKen player grids

Key points:
 - Pure functions: nothing here mutates the grid or the puzzle
 - Row/column checks run against the player's grid, not the solution
 - Cage arithmetic is evaluated on the player's current values
 - Out-of-range coordinates raise InvalidArgumentError instead of indexing blindly
"""

from typing import List, Optional, Sequence, Set

from .puzzle import (
    Cage, Coord, InvalidArgumentError, Operation, Puzzle, compute_target, is_latin_square,
    neighbors, resolve_operation,
)


GridLike = Sequence[Sequence[Optional[int]]]


class ConstraintChecker:
    """Validates player grids against row, column and cage rules."""

    # ---------- small helpers ----------

    @staticmethod
    def _check_coords(size: int, row: int, col: int) -> None:
        if not (0 <= row < size and 0 <= col < size):
            raise InvalidArgumentError(f"Cell ({row}, {col}) outside {size}x{size} grid")

    @staticmethod
    def _check_shape(grid: GridLike, size: int) -> None:
        if len(grid) != size or any(len(row) != size for row in grid):
            raise InvalidArgumentError(f"Player grid is not {size}x{size}")

    @staticmethod
    def _is_valid_sequence(sequence: Sequence[Optional[int]], size: int) -> bool:
        """Row/column check: N distinct values, all within 1..N"""
        seen = set()
        for value in sequence:
            if value is None or value < 1 or value > size or value in seen:
                return False
            seen.add(value)
        return len(seen) == size

    # ---------- cell level ----------

    @staticmethod
    def cell_is_consistent(grid: GridLike, size: int, row: int, col: int, value: int) -> bool:
        """
        Can `value` sit at (row, col) without repeating in its row or column?

        Only local row/column uniqueness is checked, the cage is ignored.
        """
        ConstraintChecker._check_coords(size, row, col)

        if value < 1 or value > size:
            return False

        for c in range(size):
            if c != col and grid[row][c] == value:
                return False

        for r in range(size):
            if r != row and grid[r][col] == value:
                return False

        return True

    @staticmethod
    def valid_numbers_for(grid: GridLike, puzzle: Puzzle, row: int, col: int) -> Set[int]:
        """All values in 1..N that are row/column consistent at (row, col)"""
        return {
            value for value in range(1, puzzle.size + 1)
            if ConstraintChecker.cell_is_consistent(grid, puzzle.size, row, col, value)
        }

    @staticmethod
    def matches_solution(grid: GridLike, solution: Sequence[Sequence[int]], row: int, col: int) -> bool:
        """Does the player's value equal the solution value? Empty cells never match."""
        ConstraintChecker._check_coords(len(solution), row, col)
        value = grid[row][col]
        return value is not None and value == solution[row][col]

    @staticmethod
    def find_conflicts(grid: GridLike) -> Set[Coord]:
        """Cells whose value also appears elsewhere in the same row or column"""
        size = len(grid)
        conflicts: Set[Coord] = set()
        for r in range(size):
            for c in range(size):
                value = grid[r][c]
                if value is None:
                    continue
                if not ConstraintChecker.cell_is_consistent(grid, size, r, c, value):
                    conflicts.add((r, c))
        return conflicts

    # ---------- cage level ----------

    @staticmethod
    def cage_is_complete(grid: GridLike, cage: Cage) -> bool:
        """Check if all cells in the cage are filled"""
        return all(grid[r][c] is not None for r, c in cage.cells)

    @staticmethod
    def cage_satisfies_operation(grid: GridLike, cage: Cage) -> bool:
        """Is the cage filled and does its arithmetic hit the target?"""
        if not ConstraintChecker.cage_is_complete(grid, cage):
            return False

        values = [grid[r][c] for r, c in cage.cells]
        op = cage.operation

        if op is Operation.EQUALS:
            return values[0] == cage.target
        elif op is Operation.ADD:
            return sum(values) == cage.target
        elif op is Operation.MULTIPLY:
            product = 1
            for v in values:
                product *= v
            return product == cage.target
        elif op is Operation.SUBTRACT:
            if len(values) != 2:
                return False
            return abs(values[0] - values[1]) == cage.target
        elif op is Operation.DIVIDE:
            if len(values) != 2:
                return False
            big, small = sorted(values, reverse=True)
            if small == 0:
                return False
            return big / small == cage.target
        return False

    @staticmethod
    def cage_matches_solution(grid: GridLike, cage: Cage, solution: Sequence[Sequence[int]]) -> bool:
        """Every cage cell equals the solution value"""
        return all(grid[r][c] == solution[r][c] for r, c in cage.cells)

    # ---------- puzzle level ----------

    @staticmethod
    def puzzle_is_complete(grid: GridLike, puzzle: Puzzle) -> bool:
        """Fully filled, every row/column a permutation of 1..N, every cage satisfied"""
        size = puzzle.size
        ConstraintChecker._check_shape(grid, size)

        if any(value is None for row in grid for value in row):
            return False

        for i in range(size):
            if not ConstraintChecker._is_valid_sequence(grid[i], size):
                return False
            if not ConstraintChecker._is_valid_sequence([grid[r][i] for r in range(size)], size):
                return False

        return all(ConstraintChecker.cage_satisfies_operation(grid, cage) for cage in puzzle.cages)

    @staticmethod
    def verify_puzzle(puzzle: Puzzle) -> List[str]:
        """
        Structural audit of a puzzle. Returns a list of problems (empty = valid):
          - solution is a Latin square
          - cages cover every cell exactly once
          - each cage is 4-connected
          - EQUALS iff single cell, SUBTRACT/DIVIDE only on two cells
          - each target matches the solution
        """
        problems: List[str] = []
        size = puzzle.size

        if not is_latin_square(puzzle.solution):
            problems.append("solution is not a Latin square")

        seen: Set[Coord] = set()
        for cage in puzzle.cages:
            inside = True
            for cell in cage.cells:
                r, c = cell
                if not (0 <= r < size and 0 <= c < size):
                    problems.append(f"{cage.id}: cell {cell} outside grid")
                    inside = False
                elif cell in seen:
                    problems.append(f"{cage.id}: cell {cell} belongs to more than one cage")
                seen.add(cell)

            if not ConstraintChecker._is_connected(cage, size):
                problems.append(f"{cage.id}: cells are not connected")

            if (cage.operation is Operation.EQUALS) != (cage.size == 1):
                problems.append(f"{cage.id}: '=' must be used exactly for single cells")
            if cage.operation in (Operation.SUBTRACT, Operation.DIVIDE) and cage.size != 2:
                problems.append(f"{cage.id}: {cage.operation.name} needs exactly 2 cells")

            # Targets are only checked for cages lying fully inside the grid
            if not inside:
                continue
            values = [puzzle.solution[r][c] for r, c in cage.cells]
            if resolve_operation(cage.operation, values) is not cage.operation:
                problems.append(f"{cage.id}: {cage.operation.name} not defined for {values}")
            elif compute_target(cage.operation, values) != cage.target:
                problems.append(f"{cage.id}: target {cage.target} does not match solution")

        missing = size * size - len({cell for cell in seen
                                     if 0 <= cell[0] < size and 0 <= cell[1] < size})
        if missing:
            problems.append(f"{missing} cell(s) not covered by any cage")

        return problems

    @staticmethod
    def _is_connected(cage: Cage, size: int) -> bool:
        cells = set(cage.cells)
        start = cage.cells[0]
        stack = [start]
        reached = {start}
        while stack:
            cell = stack.pop()
            for nb in neighbors(cell[0], cell[1], size):
                if nb in cells and nb not in reached:
                    reached.add(nb)
                    stack.append(nb)
        return reached == cells
