"""
Puzzle generation: Latin-square solution grid + cage partition

Two stages:
  1. generate_solution(): cyclic Latin square with shuffled rows and columns.
     Permuting rows/columns of a Latin square always gives another one, so no
     backtracking is needed.
  2. partition(): greedy row-major region growth. Each unassigned cell seeds a
     cage whose size is drawn from a difficulty-dependent range; the cage grows
     by picking random unassigned neighbours from a frontier set and stops
     early if the frontier runs dry.

All randomness goes through a numpy Generator so a seeded rng gives
reproducible puzzles.
"""
import time
import logging
from dataclasses import dataclass
from typing import List, Tuple, Optional, Sequence, Set

import numpy as np

from .puzzle import (
    Cage, Coord, Grid, InvalidArgumentError, MAX_SIZE, MIN_SIZE, Operation,
    Puzzle, compute_target, neighbors, resolve_operation,
)


logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


@dataclass
class GeneratorConfig:
    # Supported grid dimensions
    min_size: int = MIN_SIZE
    max_size: int = MAX_SIZE

    # Difficulty thresholds: below `easy_below` -> easy, below `medium_below` -> medium
    easy_below: int = 3
    medium_below: int = 6

    # Cage size bounds per tier (easy puzzles get larger cages, no singletons)
    easy_max_cage: int = 3
    medium_max_cage: int = 4
    hard_max_cage: int = 5
    easy_min_cage: int = 2
    min_cage: int = 1

    # Operations drawn for multi-cell cages
    operations: Tuple[Operation, ...] = (
        Operation.ADD, Operation.SUBTRACT, Operation.MULTIPLY, Operation.DIVIDE,
    )


DEFAULT_CONFIG = GeneratorConfig()


def _get_rng(rng: Optional[np.random.Generator]) -> np.random.Generator:
    return rng if rng is not None else np.random.default_rng()


# -----------------------------------------------------------------------------
# Solution grid
# -----------------------------------------------------------------------------

def generate_solution(size: int, rng: Optional[np.random.Generator] = None) -> Grid:
    """
    Build a random N×N Latin square.

    Starts from grid[i][j] = ((i + j) mod N) + 1, then applies a random row
    permutation followed by a random column permutation.
    """
    if not isinstance(size, (int, np.integer)) or size < 1:
        raise InvalidArgumentError(f"Grid size must be a positive integer, got {size!r}")

    rng = _get_rng(rng)
    idx = np.arange(size)
    base = (np.add.outer(idx, idx) % size) + 1

    grid = base[rng.permutation(size)][:, rng.permutation(size)]
    return grid.tolist()


def cage_size_bounds(difficulty: int, config: Optional[GeneratorConfig] = None) -> Tuple[int, int]:
    """(min, max) cage size for a difficulty level"""
    config = config or DEFAULT_CONFIG
    if difficulty < config.easy_below:
        return config.easy_min_cage, config.easy_max_cage
    if difficulty < config.medium_below:
        return config.min_cage, config.medium_max_cage
    return config.min_cage, config.hard_max_cage


# -----------------------------------------------------------------------------
# Cage partitioning
# -----------------------------------------------------------------------------

def _grow_region(seed: Coord, target_size: int, assigned: Set[Coord], size: int,
                 rng: np.random.Generator) -> List[Coord]:
    """Grow a connected region from `seed`, marking cells in `assigned`"""
    cells = [seed]
    assigned.add(seed)
    frontier: Set[Coord] = {n for n in neighbors(*seed, size) if n not in assigned}

    while len(cells) < target_size and frontier:
        # Sorted so that a seeded rng picks the same cell every run
        candidates = sorted(frontier)
        pick = candidates[int(rng.integers(len(candidates)))]

        cells.append(pick)
        assigned.add(pick)
        frontier.discard(pick)
        frontier.update(n for n in neighbors(*pick, size) if n not in assigned)

    return cells


def _make_cage(index: int, cells: List[Coord], solution: Sequence[Sequence[int]],
               rng: np.random.Generator, config: GeneratorConfig) -> Cage:
    values = [solution[r][c] for r, c in cells]

    if len(cells) == 1:
        requested = Operation.EQUALS
    else:
        requested = config.operations[int(rng.integers(len(config.operations)))]

    operation = resolve_operation(requested, values)
    if operation is not requested:
        logger.debug("cage-%d: %s not valid for %s, using %s",
                     index, requested.name, values, operation.name)

    return Cage(
        id=f"cage-{index}",
        cells=tuple(cells),
        operation=operation,
        target=compute_target(operation, values),
    )


def partition(solution: Sequence[Sequence[int]], difficulty: int,
              rng: Optional[np.random.Generator] = None,
              config: Optional[GeneratorConfig] = None) -> List[Cage]:
    """
    Partition every cell of `solution` into cages and assign their clues.

    Cells are scanned in row-major order; each unassigned cell seeds a new
    cage. The solution grid is never modified.
    """
    rng = _get_rng(rng)
    config = config or DEFAULT_CONFIG
    size = len(solution)
    min_cage, max_cage = cage_size_bounds(difficulty, config)

    assigned: Set[Coord] = set()
    cages: List[Cage] = []

    for row in range(size):
        for col in range(size):
            if (row, col) in assigned:
                continue

            target_size = int(rng.integers(min_cage, max_cage + 1))
            cells = _grow_region((row, col), target_size, assigned, size, rng)
            if len(cells) < target_size:
                logger.debug("cage-%d stopped at %d/%d cells (no free neighbours)",
                             len(cages), len(cells), target_size)

            cages.append(_make_cage(len(cages), cells, solution, rng, config))

    return cages


def generate_puzzle_id(rng: Optional[np.random.Generator] = None) -> str:
    """'puzzle-<epoch ms>-<9 base-36 chars>'"""
    rng = _get_rng(rng)
    suffix = "".join(_BASE36[i] for i in rng.integers(0, len(_BASE36), size=9))
    return f"puzzle-{int(time.time() * 1000)}-{suffix}"


def generate_puzzle(size: int, difficulty: int, fog_mode: bool = False,
                    rng: Optional[np.random.Generator] = None,
                    config: Optional[GeneratorConfig] = None) -> Puzzle:
    """Generate a complete puzzle: solution grid, cages, id and fog flag"""
    config = config or DEFAULT_CONFIG
    if not (config.min_size <= size <= config.max_size):
        raise InvalidArgumentError(
            f"Grid size {size} outside supported range "
            f"{config.min_size}..{config.max_size}"
        )

    rng = _get_rng(rng)
    solution = generate_solution(size, rng)
    cages = partition(solution, difficulty, rng, config)

    puzzle = Puzzle(
        id=generate_puzzle_id(rng),
        size=size,
        solution=solution,
        cages=tuple(cages),
        difficulty=difficulty,
        fog_mode=fog_mode,
    )
    logger.debug("Generated %r", puzzle)
    return puzzle
