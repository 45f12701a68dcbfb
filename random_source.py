"""
Random draws used by procedural generation.

Generation code never touches a global RNG: it receives a RandomSource, so a
seeded NumpyRandomSource reproduces a route exactly and tests can script the
sequence of draws.
"""

from typing import Optional, Protocol, Sequence, TypeVar
import numpy as np


T = TypeVar("T")


class RandomSource(Protocol):
    """Minimal interface the generators draw from."""

    def random(self) -> float:
        """Uniform float in [0, 1)."""
        ...

    def uniform(self, low: float, high: float) -> float:
        """Uniform float in [low, high)."""
        ...

    def randint(self, low: int, high: int) -> int:
        """Uniform integer in [low, high], both ends inclusive."""
        ...


class NumpyRandomSource:
    """RandomSource backed by ``np.random.RandomState``."""

    def __init__(self, seed: Optional[int] = None) -> None:
        self.seed = seed
        self.rng = np.random.RandomState(seed)

    def random(self) -> float:
        return float(self.rng.rand())

    def uniform(self, low: float, high: float) -> float:
        return float(self.rng.uniform(low, high))

    def randint(self, low: int, high: int) -> int:
        # RandomState.randint excludes the upper bound
        return int(self.rng.randint(low, high + 1))


def weighted_choice(items: Sequence[T], weights: Sequence[float], rng: RandomSource) -> T:
    """
    Draw one item with probability proportional to its weight.

    A non-positive weight total, or rounding that walks past the end of the
    table, resolves to the last item so the draw never fails.

    Args:
        items: Candidate items
        weights: Non-negative weights, one per item
        rng: Random source

    Returns:
        Selected item
    """
    assert items, "weighted_choice needs at least one item"
    assert len(items) == len(weights), "items and weights must have the same length"

    total = float(sum(weights))
    if total <= 0:
        return items[-1]

    remaining = rng.random() * total
    for item, weight in zip(items, weights):
        if weight <= 0:
            continue
        remaining -= weight
        if remaining <= 0:
            return item
    return items[-1]
