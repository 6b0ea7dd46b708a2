"""Lazily materialized small-world ring network."""

from typing import Dict, Iterable, List, Optional, Set, Tuple

import networkx as nx
from loguru import logger

from ripple_network.config import ConfigurationError
from ripple_network.rounding import RandomSource, make_rng, probabilistic_round


class NetworkModel:
    """
    Small-world ring with random bridges, computed one node at a time.

    Nodes sit on a ring of ``total_population`` positions. Each node links
    to its nearest ring neighbours ("within" connections) plus a few
    uniformly random nodes ("between" connections, or bridges). Nothing is
    generated up front: a node's adjacency is drawn the first time it is
    asked for and cached until evicted.

    Once evicted, a node is drawn again from scratch on its next query and
    will generally get a different set of bridges. Callers must not rely on
    connectivity being stable across an eviction.
    """

    def __init__(
        self,
        total_population: int,
        avg_connections: float,
        within_ratio: float,
        rng: Optional[RandomSource] = None,
    ):
        """
        Initialize network model.

        Args:
            total_population: Number of nodes, IDs 0..N-1
            avg_connections: Mean connections per node
            within_ratio: Fraction of connections kept on the ring
            rng: Random source (default: unseeded RandomState)
        """
        if total_population < 1:
            raise ConfigurationError(
                f"total_population must be >= 1, got {total_population}"
            )
        if avg_connections < 0:
            raise ConfigurationError(
                f"avg_connections must be >= 0, got {avg_connections}"
            )
        if not 0.0 <= within_ratio <= 1.0:
            raise ConfigurationError(
                f"within_ratio must be in [0, 1], got {within_ratio}"
            )

        self.total_population = int(total_population)
        self.avg_connections = float(avg_connections)
        self.within_ratio = float(within_ratio)
        self.rng = rng if rng is not None else make_rng()
        self._cache: Dict[int, List[int]] = {}
        # Bridge targets that are not also ring neighbours, per cached node
        self._bridges: Dict[int, Set[int]] = {}

        logger.debug(
            f"Initialized NetworkModel: N={self.total_population}, "
            f"avg_connections={self.avg_connections}, within_ratio={self.within_ratio}"
        )

    def __len__(self) -> int:
        return self.total_population

    @property
    def cached_count(self) -> int:
        """Number of nodes whose adjacency is currently materialized."""
        return len(self._cache)

    def is_cached(self, node_id: int) -> bool:
        return node_id in self._cache

    def connection_counts(self) -> Tuple[int, float]:
        """
        Draw one node's (within, between) connection split.

        The within count is probabilistically rounded so its mean is exactly
        ``avg_connections * within_ratio``; between takes the remainder and
        may stay fractional.
        """
        within = probabilistic_round(self.avg_connections * self.within_ratio, self.rng)
        return within, self.avg_connections - within

    def neighbors_of(self, node_id: int) -> List[int]:
        """
        Get the neighbors of a node, materializing them on a cache miss.

        Args:
            node_id: Node index in [0, total_population)

        Returns:
            Unique neighbor IDs (self excluded), stable until evicted
        """
        cached = self._cache.get(node_id)
        if cached is not None:
            return cached

        N = self.total_population
        within, between = self.connection_counts()
        half = within // 2

        # dict keeps insertion order, so seeded runs replay identically
        connections: Dict[int, None] = {}
        for offset in range(-half, half + 1):
            if offset == 0:
                continue
            connections[(node_id + offset) % N] = None

        bridges: Set[int] = set()
        i = 0
        while i < between:
            r = int(self.rng.randint(0, N))
            if r != node_id and r not in connections:
                connections[r] = None
                bridges.add(r)
            i += 1

        # A window wider than the ring wraps back onto the node itself
        connections.pop(node_id, None)

        result = list(connections)
        self._cache[node_id] = result
        self._bridges[node_id] = bridges
        return result

    def evict(self, node_id: int) -> None:
        """Drop a node's cached adjacency; no-op if it was never materialized."""
        self._cache.pop(node_id, None)
        self._bridges.pop(node_id, None)

    def to_networkx(self, node_ids: Iterable[int]) -> nx.Graph:
        """
        Materialize the adjacency of the given nodes as an undirected graph.

        Neighbors outside ``node_ids`` are included as endpoints. Reads go
        through the cache, so the usual stability rules apply.

        Args:
            node_ids: Nodes whose connections to export

        Returns:
            networkx Graph with a ``kind`` attribute on every edge: "bridge" if
            it was drawn as a random connection, "within" if it is a ring link
            for at least one exported endpoint
        """
        G = nx.Graph()
        for node in node_ids:
            G.add_node(node)
            for neighbor in self.neighbors_of(node):
                kind = "bridge" if neighbor in self._bridges[node] else "within"
                if G.has_edge(node, neighbor) and G.edges[node, neighbor]["kind"] == "within":
                    continue
                G.add_edge(node, neighbor, kind=kind)
        return G

