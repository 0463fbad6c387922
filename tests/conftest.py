# tests/conftest.py
import sys
from pathlib import Path

import numpy as np
import pytest

# Add project root to sys.path so "Engine" can be imported without installing
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from Engine.puzzle import get_sample_puzzle  # noqa: E402


# Second valid filling of the 4x4 sample cages (the sample is not unique)
ALTERNATE_4X4_SOLUTION = [
    [2, 1, 3, 4],
    [4, 3, 1, 2],
    [1, 4, 2, 3],
    [3, 2, 4, 1],
]


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def sample_4x4():
    return get_sample_puzzle('sample-4x4-easy')


@pytest.fixture
def sample_5x5():
    return get_sample_puzzle('sample-5x5-medium')


@pytest.fixture
def alternate_4x4_solution():
    return [list(row) for row in ALTERNATE_4X4_SOLUTION]
