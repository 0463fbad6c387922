import numpy as np
import pytest

from Engine.constraints import ConstraintChecker
from Engine.generator import generate_puzzle
from Engine.puzzle import (
    Cage, InvalidArgumentError, Operation, Puzzle, SAMPLE_PUZZLES, empty_grid,
)


def _fill(grid, cells_values):
    for (r, c), v in cells_values.items():
        grid[r][c] = v
    return grid


class TestCellConsistency:
    def test_rejects_values_already_in_row(self):
        grid = empty_grid(4)
        grid[0][0], grid[0][1] = 1, 2
        assert not ConstraintChecker.cell_is_consistent(grid, 4, 0, 2, 1)
        assert not ConstraintChecker.cell_is_consistent(grid, 4, 0, 2, 2)
        assert ConstraintChecker.cell_is_consistent(grid, 4, 0, 2, 3)
        assert ConstraintChecker.cell_is_consistent(grid, 4, 0, 2, 4)

    def test_rejects_values_already_in_column(self):
        grid = empty_grid(4)
        grid[3][1] = 4
        assert not ConstraintChecker.cell_is_consistent(grid, 4, 0, 1, 4)
        assert ConstraintChecker.cell_is_consistent(grid, 4, 0, 1, 3)

    def test_ignores_the_cell_itself(self):
        grid = empty_grid(4)
        grid[2][2] = 3
        assert ConstraintChecker.cell_is_consistent(grid, 4, 2, 2, 3)

    @pytest.mark.parametrize("value", [0, 5, -1])
    def test_rejects_out_of_range_values(self, value):
        assert not ConstraintChecker.cell_is_consistent(empty_grid(4), 4, 0, 0, value)

    @pytest.mark.parametrize("row,col", [(-1, 0), (0, 4), (4, 4)])
    def test_out_of_bounds_coordinates_raise(self, row, col):
        with pytest.raises(InvalidArgumentError):
            ConstraintChecker.cell_is_consistent(empty_grid(4), 4, row, col, 1)

    def test_valid_numbers_for(self, sample_4x4):
        grid = empty_grid(4)
        grid[0][0] = 1
        grid[2][1] = 3
        assert ConstraintChecker.valid_numbers_for(grid, sample_4x4, 0, 1) == {2, 4}
        assert ConstraintChecker.valid_numbers_for(empty_grid(4), sample_4x4, 3, 3) == {1, 2, 3, 4}

    def test_find_conflicts(self):
        grid = empty_grid(4)
        grid[0][0] = grid[0][3] = 2
        grid[1][1] = 2
        assert ConstraintChecker.find_conflicts(grid) == {(0, 0), (0, 3)}


class TestCages:
    def test_addition_cage_satisfied(self, sample_4x4):
        cage = sample_4x4.cage_by_id('cage-0')
        grid = empty_grid(4)
        grid[0][0] = 1
        assert not ConstraintChecker.cage_is_complete(grid, cage)
        assert not ConstraintChecker.cage_satisfies_operation(grid, cage)

        grid[0][1] = 2
        assert ConstraintChecker.cage_is_complete(grid, cage)
        assert ConstraintChecker.cage_satisfies_operation(grid, cage)

    def test_division_cage_is_order_independent(self, sample_4x4):
        cage = sample_4x4.cage_by_id('cage-2')
        assert cage.operation is Operation.DIVIDE

        grid = _fill(empty_grid(4), {(0, 3): 4, (1, 3): 2})
        assert ConstraintChecker.cage_satisfies_operation(grid, cage)

        grid = _fill(empty_grid(4), {(0, 3): 2, (1, 3): 4})
        assert ConstraintChecker.cage_satisfies_operation(grid, cage)

        grid = _fill(empty_grid(4), {(0, 3): 3, (1, 3): 1})
        assert not ConstraintChecker.cage_satisfies_operation(grid, cage)

    def test_division_uses_real_division(self):
        cage = Cage('c', ((0, 0), (0, 1)), Operation.DIVIDE, 2)
        assert not ConstraintChecker.cage_satisfies_operation([[3, 2], [None, None]], cage)

    def test_subtraction_cage(self):
        cage = Cage('c', ((0, 0), (1, 0)), Operation.SUBTRACT, 2)
        assert ConstraintChecker.cage_satisfies_operation([[5, None], [3, None]], cage)
        assert ConstraintChecker.cage_satisfies_operation([[3, None], [5, None]], cage)
        assert not ConstraintChecker.cage_satisfies_operation([[4, None], [3, None]], cage)

    def test_subtraction_on_three_cells_never_satisfied(self):
        cage = Cage('c', ((0, 0), (0, 1), (0, 2)), Operation.SUBTRACT, 1)
        assert not ConstraintChecker.cage_satisfies_operation([[3, 2, 1]], cage)

    def test_multiply_and_equals(self):
        mul = Cage('m', ((0, 0), (0, 1), (0, 2)), Operation.MULTIPLY, 6)
        eq = Cage('e', ((0, 0),), Operation.EQUALS, 3)
        assert ConstraintChecker.cage_satisfies_operation([[1, 2, 3]], mul)
        assert not ConstraintChecker.cage_satisfies_operation([[1, 2, 4]], mul)
        assert ConstraintChecker.cage_satisfies_operation([[3, 2, 4]], eq)
        assert not ConstraintChecker.cage_satisfies_operation([[1, 2, 4]], eq)

    def test_cage_matches_solution(self, sample_4x4):
        cage = sample_4x4.cage_by_id('cage-4')
        grid = _fill(empty_grid(4), {(1, 1): 4, (2, 1): 3})
        assert ConstraintChecker.cage_matches_solution(grid, cage, sample_4x4.solution)
        grid = _fill(empty_grid(4), {(1, 1): 3, (2, 1): 4})
        assert ConstraintChecker.cage_satisfies_operation(grid, cage)
        assert not ConstraintChecker.cage_matches_solution(grid, cage, sample_4x4.solution)


class TestPuzzleCompletion:
    @pytest.mark.parametrize("puzzle", SAMPLE_PUZZLES, ids=lambda p: p.id)
    def test_solution_completes_sample(self, puzzle):
        assert ConstraintChecker.puzzle_is_complete(puzzle.solution_grid(), puzzle)

    def test_solution_completes_generated_puzzles(self):
        rng = np.random.default_rng(7)
        for size in (4, 5, 6, 7):
            for difficulty in (1, 5, 9):
                puzzle = generate_puzzle(size, difficulty, rng=rng)
                assert ConstraintChecker.puzzle_is_complete(puzzle.solution_grid(), puzzle)

    def test_incomplete_grid(self, sample_4x4):
        grid = sample_4x4.solution_grid()
        grid[3][3] = None
        assert not ConstraintChecker.puzzle_is_complete(grid, sample_4x4)

    def test_row_duplicate_fails(self, sample_4x4):
        grid = sample_4x4.solution_grid()
        grid[0][0] = grid[0][1]
        assert not ConstraintChecker.puzzle_is_complete(grid, sample_4x4)

    def test_column_duplicate_fails(self, sample_4x4):
        # Swapping two cells of a row keeps every row distinct but repeats in columns
        grid = sample_4x4.solution_grid()
        grid[0][0], grid[0][1] = grid[0][1], grid[0][0]
        assert all(len(set(row)) == 4 for row in grid)
        assert not ConstraintChecker.puzzle_is_complete(grid, sample_4x4)

    def test_latin_grid_failing_cage_fails(self, sample_4x4):
        # Columns rotated: still a Latin square, but 2 + 3 != 3 in cage-0
        grid = [row[1:] + row[:1] for row in sample_4x4.solution_grid()]
        assert not ConstraintChecker.puzzle_is_complete(grid, sample_4x4)

    def test_alternate_filling_is_accepted(self, sample_4x4, alternate_4x4_solution):
        assert ConstraintChecker.puzzle_is_complete(alternate_4x4_solution, sample_4x4)

    def test_wrong_shape_raises(self, sample_4x4):
        with pytest.raises(InvalidArgumentError):
            ConstraintChecker.puzzle_is_complete(empty_grid(5), sample_4x4)

    def test_matches_solution(self, sample_4x4):
        grid = empty_grid(4)
        assert not ConstraintChecker.matches_solution(grid, sample_4x4.solution, 0, 0)
        grid[0][0] = 1
        assert ConstraintChecker.matches_solution(grid, sample_4x4.solution, 0, 0)
        grid[0][0] = 2
        assert not ConstraintChecker.matches_solution(grid, sample_4x4.solution, 0, 0)
        with pytest.raises(InvalidArgumentError):
            ConstraintChecker.matches_solution(grid, sample_4x4.solution, 4, 0)


class TestVerifyPuzzle:
    def _rebuild(self, puzzle, cages):
        return Puzzle(id=puzzle.id, size=puzzle.size, solution=puzzle.solution,
                      cages=tuple(cages), difficulty=puzzle.difficulty)

    @pytest.mark.parametrize("puzzle", SAMPLE_PUZZLES, ids=lambda p: p.id)
    def test_samples_are_valid(self, puzzle):
        assert ConstraintChecker.verify_puzzle(puzzle) == []

    def test_detects_gap(self, sample_4x4):
        broken = self._rebuild(sample_4x4, sample_4x4.cages[:-1])
        problems = ConstraintChecker.verify_puzzle(broken)
        assert any("not covered" in p for p in problems)

    def test_detects_overlap(self, sample_4x4):
        extra = Cage('cage-x', ((0, 0),), Operation.EQUALS, 1)
        problems = ConstraintChecker.verify_puzzle(self._rebuild(sample_4x4, list(sample_4x4.cages) + [extra]))
        assert any("more than one cage" in p for p in problems)

    def test_detects_wrong_target(self, sample_4x4):
        cages = list(sample_4x4.cages)
        cages[0] = Cage('cage-0', cages[0].cells, Operation.ADD, 4)
        problems = ConstraintChecker.verify_puzzle(self._rebuild(sample_4x4, cages))
        assert problems == ["cage-0: target 4 does not match solution"]

    def test_detects_disconnected_cage(self, sample_4x4):
        cages = [c for c in sample_4x4.cages if c.id not in ('cage-0', 'cage-7')]
        cages.append(Cage('a', ((0, 0), (3, 3)), Operation.ADD, 4))
        cages.append(Cage('b', ((0, 1), (3, 2)), Operation.ADD, 4))
        problems = ConstraintChecker.verify_puzzle(self._rebuild(sample_4x4, cages))
        assert "a: cells are not connected" in problems
        assert "b: cells are not connected" in problems

    def test_negative_cell_skips_target_check(self, sample_4x4):
        cages = list(sample_4x4.cages)
        cages[0] = Cage('cage-0', ((-1, 0), (0, 0)), Operation.ADD, 3)
        problems = ConstraintChecker.verify_puzzle(self._rebuild(sample_4x4, cages))
        assert "cage-0: cell (-1, 0) outside grid" in problems
        assert not any("does not match" in p for p in problems)
        assert "1 cell(s) not covered by any cage" in problems
