"""
Core data structures for KenKen puzzle representation

The puzzle itself (solution grid + cage partition) is immutable once built.
Anything that changes during play lives in the session overlay
(see session.py), keyed by cage id.
"""
import json
from enum import Enum
from typing import List, Dict, Tuple, Optional, Sequence, Iterable, Any
from dataclasses import dataclass, field


MIN_SIZE = 4
MAX_SIZE = 7

Coord = Tuple[int, int]
Grid = List[List[int]]
PlayerGrid = List[List[Optional[int]]]


class InvalidArgumentError(ValueError):
    """Raised when the engine is called outside its documented input domain"""


class Operation(str, Enum):
    """Arithmetic operation bound to a cage"""
    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "×"
    DIVIDE = "÷"
    EQUALS = "="

    @classmethod
    def parse(cls, text: str) -> "Operation":
        """Parse an operation symbol or name ('+', 'add', '*', 'x', '/', ...)"""
        key = str(text).strip().lower()
        if key in _OPERATION_ALIASES:
            return _OPERATION_ALIASES[key]
        raise InvalidArgumentError(f"Unknown cage operation: {text!r}")

    def __str__(self) -> str:
        return self.value


_OPERATION_ALIASES: Dict[str, Operation] = {
    '+': Operation.ADD, 'add': Operation.ADD, 'sum': Operation.ADD,
    '-': Operation.SUBTRACT, 'sub': Operation.SUBTRACT, 'subtract': Operation.SUBTRACT,
    '×': Operation.MULTIPLY, '*': Operation.MULTIPLY, 'x': Operation.MULTIPLY,
    'mul': Operation.MULTIPLY, 'multiply': Operation.MULTIPLY,
    '÷': Operation.DIVIDE, '/': Operation.DIVIDE, 'div': Operation.DIVIDE,
    'divide': Operation.DIVIDE,
    '=': Operation.EQUALS, '': Operation.EQUALS, 'eq': Operation.EQUALS,
    'equals': Operation.EQUALS,
}


@dataclass(frozen=True)
class Cage:
    """A connected group of cells bound by one arithmetic constraint"""
    id: str
    cells: Tuple[Coord, ...]
    operation: Operation
    target: int

    def __post_init__(self):
        # Normalise lists coming from JSON into hashable tuples
        object.__setattr__(self, 'cells', tuple((int(r), int(c)) for r, c in self.cells))
        if not isinstance(self.operation, Operation):
            object.__setattr__(self, 'operation', Operation.parse(self.operation))
        if not self.cells:
            raise InvalidArgumentError(f"Cage {self.id} has no cells")

    @property
    def size(self) -> int:
        return len(self.cells)

    def contains(self, row: int, col: int) -> bool:
        return (row, col) in self.cells

    def label(self) -> str:
        """Clue text as shown in the cage corner, e.g. '12×' or '3'"""
        if self.operation is Operation.EQUALS:
            return str(self.target)
        return f"{self.target}{self.operation.value}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'cells': [[r, c] for r, c in self.cells],
            'operation': self.operation.value,
            'target': self.target,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Cage":
        op = data.get('operation', data.get('op', ''))
        return cls(
            id=str(data['id']),
            cells=tuple(tuple(cell) for cell in data['cells']),
            operation=Operation.parse(op),
            target=int(data['target']),
        )

    def __repr__(self):
        return f"Cage(id={self.id}, size={self.size}, clue={self.label()})"


@dataclass
class CageStatus:
    """Per-cage play state owned by the session layer"""
    unlocked: bool = False
    completed: bool = False
    perfect: bool = False


@dataclass(frozen=True)
class Puzzle:
    """Immutable puzzle: solution grid plus its cage partition"""
    id: str
    size: int
    solution: Tuple[Tuple[int, ...], ...]
    cages: Tuple[Cage, ...]
    difficulty: int = 1
    fog_mode: bool = False
    _cell_index: Dict[Coord, Cage] = field(default_factory=dict, init=False,
                                          repr=False, compare=False, hash=False)

    def __post_init__(self):
        object.__setattr__(self, 'solution', tuple(tuple(int(v) for v in row) for row in self.solution))
        object.__setattr__(self, 'cages', tuple(self.cages))
        if len(self.solution) != self.size or any(len(row) != self.size for row in self.solution):
            raise InvalidArgumentError(
                f"Solution shape does not match puzzle size {self.size}"
            )
        index: Dict[Coord, Cage] = {}
        for cage in self.cages:
            for cell in cage.cells:
                index[cell] = cage
        object.__setattr__(self, '_cell_index', index)

    def cage_for_cell(self, row: int, col: int) -> Optional[Cage]:
        """Get the cage a cell belongs to"""
        return self._cell_index.get((row, col))

    def cage_by_id(self, cage_id: str) -> Cage:
        for cage in self.cages:
            if cage.id == cage_id:
                return cage
        raise KeyError(cage_id)

    def solution_grid(self) -> Grid:
        """Mutable copy of the solution"""
        return [list(row) for row in self.solution]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'size': self.size,
            'difficulty': self.difficulty,
            'fog_mode': self.fog_mode,
            'solution': self.solution_grid(),
            'cages': [cage.to_dict() for cage in self.cages],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Puzzle":
        """Build a puzzle from a dict (accepts both fog_mode and fogMode keys)"""
        fog = data.get('fog_mode', data.get('fogMode', False))
        return cls(
            id=str(data['id']),
            size=int(data['size']),
            solution=data['solution'],
            cages=tuple(Cage.from_dict(c) for c in data['cages']),
            difficulty=int(data.get('difficulty', 1)),
            fog_mode=bool(fog),
        )

    @classmethod
    def from_json(cls, json_path: str) -> "Puzzle":
        """Load puzzle from JSON file"""
        with open(json_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        return cls.from_dict(data)

    def __repr__(self):
        return (f"Puzzle(id={self.id}, size={self.size}, cages={len(self.cages)}, "
                f"difficulty={self.difficulty}, fog={self.fog_mode})")


# -----------------------------------------------------------------------------
# Grid helpers
# -----------------------------------------------------------------------------

def empty_grid(size: int) -> PlayerGrid:
    """N×N player grid with every cell empty"""
    return [[None] * size for _ in range(size)]


def copy_grid(grid: Sequence[Sequence[Optional[int]]]) -> PlayerGrid:
    return [list(row) for row in grid]


def neighbors(row: int, col: int, size: int) -> Iterable[Coord]:
    """4-directional neighbours that lie inside the grid"""
    for dr, dc in ((-1, 0), (1, 0), (0, -1), (0, 1)):
        r, c = row + dr, col + dc
        if 0 <= r < size and 0 <= c < size:
            yield (r, c)


def is_latin_square(grid: Sequence[Sequence[int]]) -> bool:
    """True if every row and column is a permutation of 1..N"""
    size = len(grid)
    expected = set(range(1, size + 1))
    for i in range(size):
        if len(grid[i]) != size or set(grid[i]) != expected:
            return False
        if {grid[r][i] for r in range(size)} != expected:
            return False
    return True


# -----------------------------------------------------------------------------
# Operation decision table
# -----------------------------------------------------------------------------

def resolve_operation(operation: Operation, values: Sequence[int]) -> Operation:
    """
    Map a requested operation onto one that is well-defined for these values.

    | requested          | condition                                  | result   |
    |--------------------|--------------------------------------------|----------|
    | any                | 1 cell                                     | EQUALS   |
    | SUBTRACT           | 2 cells                                    | SUBTRACT |
    | DIVIDE             | 2 cells, larger is a multiple of smaller   | DIVIDE   |
    | ADD / MULTIPLY     | 2+ cells                                   | as is    |
    | anything else      |                                            | ADD      |
    """
    if len(values) == 1:
        return Operation.EQUALS
    if operation in (Operation.ADD, Operation.MULTIPLY):
        return operation
    if operation is Operation.SUBTRACT and len(values) == 2:
        return operation
    if operation is Operation.DIVIDE and len(values) == 2:
        big, small = max(values), min(values)
        if small > 0 and big % small == 0:
            return operation
    return Operation.ADD


def compute_target(operation: Operation, values: Sequence[int]) -> int:
    """Apply `operation` to the cage values (operation must already be resolved)"""
    if not values:
        raise InvalidArgumentError("Cannot compute a target for an empty cage")

    if operation is Operation.EQUALS:
        if len(values) != 1:
            raise InvalidArgumentError("EQUALS needs exactly one value")
        return int(values[0])
    if operation is Operation.ADD:
        return int(sum(values))
    if operation is Operation.MULTIPLY:
        product = 1
        for v in values:
            product *= v
        return int(product)
    if operation is Operation.SUBTRACT:
        if len(values) != 2:
            raise InvalidArgumentError("SUBTRACT needs exactly two values")
        return abs(int(values[0]) - int(values[1]))
    if operation is Operation.DIVIDE:
        if len(values) != 2:
            raise InvalidArgumentError("DIVIDE needs exactly two values")
        big, small = max(values), min(values)
        if big % small != 0:
            raise InvalidArgumentError(f"{big} is not a multiple of {small}")
        return int(big // small)
    raise InvalidArgumentError(f"Unsupported operation: {operation!r}")


# -----------------------------------------------------------------------------
# Hand-authored puzzles (canned content, also used as test fixtures)
# -----------------------------------------------------------------------------

def _sample(data: Dict[str, Any]) -> Puzzle:
    return Puzzle.from_dict(data)


SAMPLE_PUZZLES: List[Puzzle] = [
    _sample({
        'id': 'sample-4x4-easy',
        'size': 4,
        'difficulty': 2,
        'fog_mode': False,
        'solution': [
            [1, 2, 3, 4],
            [3, 4, 1, 2],
            [2, 3, 4, 1],
            [4, 1, 2, 3],
        ],
        'cages': [
            {'id': 'cage-0', 'cells': [[0, 0], [0, 1]], 'target': 3, 'operation': '+'},
            {'id': 'cage-1', 'cells': [[0, 2], [1, 2]], 'target': 4, 'operation': '+'},
            {'id': 'cage-2', 'cells': [[0, 3], [1, 3]], 'target': 2, 'operation': '÷'},
            {'id': 'cage-3', 'cells': [[1, 0], [2, 0]], 'target': 5, 'operation': '+'},
            {'id': 'cage-4', 'cells': [[1, 1], [2, 1]], 'target': 12, 'operation': '×'},
            {'id': 'cage-5', 'cells': [[2, 2], [2, 3]], 'target': 5, 'operation': '+'},
            {'id': 'cage-6', 'cells': [[3, 0], [3, 1]], 'target': 5, 'operation': '+'},
            {'id': 'cage-7', 'cells': [[3, 2], [3, 3]], 'target': 5, 'operation': '+'},
        ],
    }),
    _sample({
        'id': 'sample-5x5-medium',
        'size': 5,
        'difficulty': 4,
        'fog_mode': True,
        'solution': [
            [1, 2, 3, 4, 5],
            [3, 4, 5, 1, 2],
            [5, 1, 2, 3, 4],
            [2, 3, 4, 5, 1],
            [4, 5, 1, 2, 3],
        ],
        'cages': [
            {'id': 'cage-0', 'cells': [[0, 0], [1, 0]], 'target': 2, 'operation': '-'},
            {'id': 'cage-1', 'cells': [[0, 1], [0, 2]], 'target': 6, 'operation': '×'},
            {'id': 'cage-2', 'cells': [[0, 3], [0, 4], [1, 4]], 'target': 11, 'operation': '+'},
            {'id': 'cage-3', 'cells': [[1, 1], [1, 2]], 'target': 20, 'operation': '×'},
            {'id': 'cage-4', 'cells': [[1, 3]], 'target': 1, 'operation': '='},
            {'id': 'cage-5', 'cells': [[2, 0], [3, 0]], 'target': 7, 'operation': '+'},
            {'id': 'cage-6', 'cells': [[2, 1], [2, 2]], 'target': 2, 'operation': '÷'},
            {'id': 'cage-7', 'cells': [[2, 3], [2, 4], [3, 4]], 'target': 12, 'operation': '×'},
            {'id': 'cage-8', 'cells': [[3, 1], [4, 1], [4, 0]], 'target': 12, 'operation': '+'},
            {'id': 'cage-9', 'cells': [[3, 2], [3, 3]], 'target': 1, 'operation': '-'},
            {'id': 'cage-10', 'cells': [[4, 2], [4, 3]], 'target': 2, 'operation': '÷'},
            {'id': 'cage-11', 'cells': [[4, 4]], 'target': 3, 'operation': '='},
        ],
    }),
]


def get_sample_puzzle(puzzle_id: str) -> Puzzle:
    for puzzle in SAMPLE_PUZZLES:
        if puzzle.id == puzzle_id:
            return puzzle
    raise KeyError(puzzle_id)
