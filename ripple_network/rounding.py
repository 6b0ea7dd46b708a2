"""Random source and probabilistic rounding helpers."""

import math
from typing import MutableSequence, Optional, Protocol

import numpy as np


class RandomSource(Protocol):
    """The subset of ``np.random.RandomState`` the simulation draws from."""

    def rand(self) -> float: ...

    def randint(self, low: int, high: int) -> int: ...

    def shuffle(self, x: MutableSequence) -> None: ...


def make_rng(seed: Optional[int] = None) -> np.random.RandomState:
    """Create the random state for one run (fresh entropy when seed is None)."""
    return np.random.RandomState(seed)


def probabilistic_round(value: float, rng: RandomSource) -> int:
    """
    Round to a neighbouring integer, keeping the expected value exact.

    A value with fractional part f rounds up with probability f and down
    otherwise, so over many draws the mean equals ``value``. Whole numbers
    are returned without consuming a draw.

    Args:
        value: Non-negative real to round
        rng: Random source

    Returns:
        floor(value) or ceil(value)
    """
    lower = math.floor(value)
    frac = value - lower
    if frac == 0:
        return int(lower)
    return int(lower) + 1 if rng.rand() < frac else int(lower)
