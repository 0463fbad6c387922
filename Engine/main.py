#!/usr/bin/env python3
"""
KenKen Forge - Puzzle Generator Entry Point

Usage:
    python -m Engine.main --size 5 --difficulty 4
    python -m Engine.main --size 6 --difficulty 7 --count 10 --unique
    python -m Engine.main --sample          # Print the built-in sample puzzles
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import numpy as np

from .constraints import ConstraintChecker
from .generator import GeneratorConfig, generate_puzzle
from .output import PuzzleFormatter
from .puzzle import InvalidArgumentError, Puzzle, SAMPLE_PUZZLES
from .solver import CSPSolver

# ============================================================================
# CONFIGURATION
# ============================================================================
DEFAULT_SIZE = 4
DEFAULT_DIFFICULTY = 2
OUTPUT_DIR = "data/puzzles"        # Base output directory

REQUIRE_UNIQUE = False
# Keep regenerating until the cage layout has exactly one solution
# - True: slower, every saved puzzle is uniquely solvable
# - False: accept the first generated layout (matches in-game behaviour)

MAX_UNIQUE_ATTEMPTS = 50
# Give up on uniqueness after this many layouts

SOLVER_TIMEOUT_SECONDS = 10
# Maximum time the uniqueness check may spend on one layout
# ============================================================================

logger = logging.getLogger(__name__)


def generate_one(size: int, difficulty: int, fog_mode: bool = False,
                 rng: Optional[np.random.Generator] = None,
                 require_unique: bool = REQUIRE_UNIQUE,
                 max_attempts: int = MAX_UNIQUE_ATTEMPTS,
                 timeout_seconds: float = SOLVER_TIMEOUT_SECONDS,
                 config: Optional[GeneratorConfig] = None) -> Tuple[Puzzle, Dict]:
    """
    Generate a puzzle, optionally retrying until it is uniquely solvable.

    Returns the puzzle and a stats dict (attempts, solutions found, timings).
    """
    rng = rng if rng is not None else np.random.default_rng()
    start = time.time()
    stats: Dict = {'attempts': 0, 'unique': None, 'solutions_found': None}

    attempts = max_attempts if require_unique else 1
    puzzle = None
    for _ in range(attempts):
        stats['attempts'] += 1
        puzzle = generate_puzzle(size, difficulty, fog_mode=fog_mode, rng=rng, config=config)

        problems = ConstraintChecker.verify_puzzle(puzzle)
        if problems:
            # Generator invariant violated
            raise RuntimeError(f"[generator] Invalid puzzle {puzzle.id}: {problems}")

        if not require_unique:
            break

        solver = CSPSolver(puzzle)
        found = solver.count_solutions(limit=2, timeout_seconds=timeout_seconds)
        stats['solutions_found'] = found
        stats['unique'] = found == 1 and not solver.timed_out
        if stats['unique']:
            break
        logger.debug("Layout %s has %s solution(s), retrying", puzzle.id,
                     "2+" if found > 1 else found)

    stats['elapsed_seconds'] = round(time.time() - start, 4)
    return puzzle, stats


def generate_and_save(size: int, difficulty: int, output_dir: str = OUTPUT_DIR,
                      fog_mode: bool = False, rng: Optional[np.random.Generator] = None,
                      require_unique: bool = REQUIRE_UNIQUE, verbose: bool = True) -> Tuple[Puzzle, Dict]:
    """Generate one puzzle and write <id>.json + <id>.txt into output_dir"""
    out = Path(output_dir)
    out.mkdir(parents=True, exist_ok=True)

    puzzle, stats = generate_one(size, difficulty, fog_mode=fog_mode, rng=rng,
                                 require_unique=require_unique)

    PuzzleFormatter.save_puzzle(puzzle, str(out / f"{puzzle.id}.json"), stats, verbose=verbose)
    PuzzleFormatter.save_human_readable(puzzle, str(out / f"{puzzle.id}.txt"), verbose=verbose)

    if verbose:
        print("\n" + PuzzleFormatter.format_puzzle_human_readable(puzzle))
        print(PuzzleFormatter.format_grid_visualization(puzzle))
        if require_unique:
            status = "✓ unique" if stats['unique'] else "✗ not unique"
            print(f"\nUniqueness: {status} after {stats['attempts']} attempt(s)")

    return puzzle, stats


def generate_batch(count: int, size: int, difficulty: int, output_dir: str = OUTPUT_DIR,
                   fog_mode: bool = False, seed: Optional[int] = None,
                   require_unique: bool = REQUIRE_UNIQUE) -> List[Dict]:
    """Generate `count` puzzles and print a summary table"""
    rng = np.random.default_rng(seed)
    results = []

    print(f"\nGenerating {count} puzzle(s): {size}x{size}, difficulty {difficulty}")
    print(f"  Fog mode: {'ON' if fog_mode else 'OFF'}")
    print(f"  Require unique: {'YES' if require_unique else 'NO'}")
    print(f"  Output: {output_dir}\n")

    for i in range(1, count + 1):
        puzzle, stats = generate_and_save(size, difficulty, output_dir, fog_mode=fog_mode,
                                          rng=rng, require_unique=require_unique, verbose=False)
        results.append({
            'id': puzzle.id,
            'cages': len(puzzle.cages),
            'attempts': stats['attempts'],
            'unique': stats['unique'],
        })
        print(f"[{i}/{count}] {puzzle.id}  {len(puzzle.cages)} cages")

    print(f"\n{'='*60}")
    print("SUMMARY")
    print(f"{'='*60}")
    avg_cages = sum(r['cages'] for r in results) / max(len(results), 1)
    print(f"Generated: {len(results)} puzzle(s), {avg_cages:.1f} cages on average")
    if require_unique:
        unique_count = sum(1 for r in results if r['unique'])
        print(f"Unique: {unique_count}/{len(results)}")
    print(f"{'='*60}\n")

    return results


def show_samples():
    for puzzle in SAMPLE_PUZZLES:
        print(PuzzleFormatter.format_puzzle_human_readable(puzzle))
        print(PuzzleFormatter.format_grid_visualization(puzzle))
        print()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Generate KenKen puzzles")
    parser.add_argument("--size", type=int, default=DEFAULT_SIZE, help="Grid size (4-7)")
    parser.add_argument("--difficulty", type=int, default=DEFAULT_DIFFICULTY, help="Difficulty 1-10")
    parser.add_argument("--fog", action="store_true", help="Enable fog-of-war cage reveal")
    parser.add_argument("--count", type=int, default=1, help="Number of puzzles to generate")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--output-dir", default=OUTPUT_DIR, help="Where to write puzzles")
    parser.add_argument("--unique", action="store_true", default=REQUIRE_UNIQUE,
                        help="Retry until the puzzle has exactly one solution")
    parser.add_argument("--sample", action="store_true", help="Print the built-in sample puzzles")
    parser.add_argument("--quiet", action="store_true", help="Less output")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.sample:
        show_samples()
        return 0

    try:
        if args.count > 1:
            generate_batch(args.count, args.size, args.difficulty, args.output_dir,
                           fog_mode=args.fog, seed=args.seed, require_unique=args.unique)
        else:
            generate_and_save(args.size, args.difficulty, args.output_dir, fog_mode=args.fog,
                              rng=np.random.default_rng(args.seed),
                              require_unique=args.unique, verbose=not args.quiet)
    except InvalidArgumentError as e:
        print(f"Error: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n⚠ Generation interrupted by user (Ctrl+C)")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
