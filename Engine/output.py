import json
from datetime import datetime
from typing import Dict, Optional, Sequence

from .constraints import ConstraintChecker
from .puzzle import Puzzle


class PuzzleFormatter:
    """Formats generated puzzles for output"""

    @staticmethod
    def format_puzzle_json(puzzle: Puzzle, stats: Optional[Dict] = None) -> Dict:
        """
        Format puzzle as JSON
        """
        data = puzzle.to_dict()
        data['puzzle_info'] = {
            'total_cells': puzzle.size * puzzle.size,
            'total_cages': len(puzzle.cages),
            'singleton_cages': sum(1 for c in puzzle.cages if c.size == 1),
            'largest_cage': max((c.size for c in puzzle.cages), default=0),
            'operations': PuzzleFormatter._operation_counts(puzzle),
            'timestamp': datetime.now().isoformat(),
        }
        if stats:
            data['generation_stats'] = stats
        return data

    @staticmethod
    def _operation_counts(puzzle: Puzzle) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for cage in puzzle.cages:
            key = cage.operation.name.lower()
            counts[key] = counts.get(key, 0) + 1
        return counts

    @staticmethod
    def format_puzzle_human_readable(puzzle: Puzzle) -> str:
        """
        Format puzzle clues as human-readable text
        """
        lines = []
        lines.append("=" * 60)
        lines.append("KENKEN PUZZLE")
        lines.append("=" * 60)
        lines.append(f"\nPuzzle {puzzle.id}: {puzzle.size}x{puzzle.size}, "
                     f"difficulty {puzzle.difficulty}{', fog mode' if puzzle.fog_mode else ''}")
        lines.append(f"{len(puzzle.cages)} cages\n")

        lines.append("CAGES:")
        lines.append("-" * 60)

        for i, cage in enumerate(puzzle.cages, 1):
            cells = " ".join(f"({r},{c})" for r, c in cage.cells)
            lines.append(f"{i:2d}. {cage.id:8s} {cage.label():>6s}  → {cells}")

        lines.append("=" * 60)

        return "\n".join(lines)

    @staticmethod
    def format_grid_visualization(puzzle: Puzzle,
                                  grid: Optional[Sequence[Sequence[Optional[int]]]] = None) -> str:
        """
        Create a text-based grid visualization.

        Cage walls are drawn with '|' and '-'; cells inside the same cage are
        joined with spaces. Without `grid` the solution is shown. Conflicting
        player values are marked with '!'.
        """
        size = puzzle.size
        values = grid if grid is not None else puzzle.solution
        conflicts = ConstraintChecker.find_conflicts(values) if grid is not None else set()

        def same_cage(a, b) -> bool:
            return puzzle.cage_for_cell(*a) is puzzle.cage_for_cell(*b)

        lines = ["\nGRID VISUALIZATION:"]
        lines.append("+" + "---+" * size)
        for r in range(size):
            row_text = "|"
            for c in range(size):
                v = values[r][c]
                mark = "!" if (r, c) in conflicts else " "
                row_text += f" {v if v is not None else '·'}{mark}"
                if c < size - 1 and same_cage((r, c), (r, c + 1)):
                    row_text += " "
                else:
                    row_text += "|"
            lines.append(row_text)

            border = "+"
            for c in range(size):
                if r < size - 1 and same_cage((r, c), (r + 1, c)):
                    border += "   +"
                else:
                    border += "---+"
            lines.append(border)

        return "\n".join(lines)

    @staticmethod
    def save_puzzle(puzzle: Puzzle, output_path: str, stats: Optional[Dict] = None, verbose: bool = True):
        """
        Save puzzle to JSON file
        """
        data = PuzzleFormatter.format_puzzle_json(puzzle, stats)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        if verbose:
            print(f"\n✓ Puzzle saved to: {output_path}")

    @staticmethod
    def save_human_readable(puzzle: Puzzle, output_path: str, verbose: bool = True):
        """
        Save human-readable puzzle to text file
        """
        text = PuzzleFormatter.format_puzzle_human_readable(puzzle)
        text += "\n\n" + PuzzleFormatter.format_grid_visualization(puzzle)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(text)

        if verbose:
            print(f"✓ Human-readable puzzle saved to: {output_path}")
