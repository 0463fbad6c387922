"""
KenKen Forge Engine Package

Latin-square generation, cage partitioning and constraint validation for
KenKen-style puzzles, plus a session overlay and a uniqueness-checking solver.
"""

from .puzzle import (
    Cage, CageStatus, InvalidArgumentError, Operation, Puzzle, SAMPLE_PUZZLES,
    compute_target, empty_grid, get_sample_puzzle, resolve_operation,
)
from .generator import GeneratorConfig, generate_puzzle, generate_solution, partition
from .constraints import ConstraintChecker
from .session import GameSession, InsufficientStarsError
from .solver import CSPSolver, has_unique_solution
from .output import PuzzleFormatter

__version__ = "1.0.0"
__all__ = [
    'Cage',
    'CageStatus',
    'InvalidArgumentError',
    'Operation',
    'Puzzle',
    'SAMPLE_PUZZLES',
    'empty_grid',
    'get_sample_puzzle',
    'GeneratorConfig',
    'compute_target',
    'generate_puzzle',
    'generate_solution',
    'partition',
    'resolve_operation',
    'ConstraintChecker',
    'GameSession',
    'InsufficientStarsError',
    'CSPSolver',
    'has_unique_solution',
    'PuzzleFormatter',
]
