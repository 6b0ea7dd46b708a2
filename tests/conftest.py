"""Shared fixtures and fakes for ripple network tests."""

import pytest
from typing import Dict, List, Sequence


class FixedRNG:
    """Random source that replays fixed sequences and never shuffles."""

    def __init__(self, rand_values: Sequence[float] = (), randint_values: Sequence[int] = ()):
        self.rand_values = list(rand_values)
        self.randint_values = list(randint_values)
        self.rand_calls = 0
        self.randint_calls = 0

    def rand(self) -> float:
        value = self.rand_values[self.rand_calls]
        self.rand_calls += 1
        return value

    def randint(self, low: int, high: int) -> int:
        value = self.randint_values[self.randint_calls]
        self.randint_calls += 1
        assert low <= value < high
        return value

    def shuffle(self, x) -> None:
        pass


class GraphNetwork:
    """Hand-built adjacency standing in for NetworkModel."""

    def __init__(self, adjacency: Dict[int, List[int]]):
        self.adjacency = adjacency
        self.evicted: List[int] = []

    @property
    def cached_count(self) -> int:
        return 0

    def neighbors_of(self, node_id: int) -> List[int]:
        return list(self.adjacency.get(node_id, []))

    def evict(self, node_id: int) -> None:
        self.evicted.append(node_id)


@pytest.fixture
def fixed_rng():
    """Factory for FixedRNG instances."""
    return FixedRNG


@pytest.fixture
def graph_network():
    """Factory for GraphNetwork instances."""
    return GraphNetwork
