from __future__ import annotations

import logging
from typing import Iterable, List, Sequence, Set, Tuple

import numpy as np

from kmedian.errors import MalformedGraphError

from .finite import FiniteMetric, estimate_metric_memory

logger = logging.getLogger(__name__)

EDGE_DISTANCE = 1.0
DEFAULT_DISTANCE = 2.0


class DistanceGraph:
    """Compact description of a {0, 1, 2}-valued metric.

    Each node stands for `multiplicity` points. Points on nodes joined by an
    edge are at distance 1, every other pair of distinct points is at
    distance 2. A self-loop ``(u, u)`` puts the points of node `u` at
    distance 1 from each other.

    Nothing is validated until :func:`build_metric` runs, so a graph can be
    assembled in any order.
    """

    def __init__(self, multiplicities: Sequence[int] | None = None):
        self.multiplicities: List[int] = list(multiplicities) if multiplicities is not None else []
        self.edges: Set[Tuple[int, int]] = set()

    def add_node(self, multiplicity: int = 1) -> int:
        """Append a node and return its id."""
        self.multiplicities.append(multiplicity)
        return len(self.multiplicities) - 1

    def add_edge(self, u: int, v: int) -> None:
        self.edges.add((min(u, v), max(u, v)))

    def add_edges(self, edges: Iterable[Tuple[int, int]]) -> None:
        for u, v in edges:
            self.add_edge(u, v)

    @property
    def num_nodes(self) -> int:
        return len(self.multiplicities)

    @property
    def num_points(self) -> int:
        return int(sum(self.multiplicities))

    def __repr__(self) -> str:
        return f"DistanceGraph(nodes={self.num_nodes}, edges={len(self.edges)})"


def _validate(graph: DistanceGraph) -> None:
    for node, m in enumerate(graph.multiplicities):
        if isinstance(m, bool) or not isinstance(m, (int, np.integer)) or m <= 0:
            raise MalformedGraphError(f"Node {node} has invalid multiplicity {m!r}.")
    for u, v in graph.edges:
        for node in (u, v):
            if not isinstance(node, (int, np.integer)) or not 0 <= node < graph.num_nodes:
                raise MalformedGraphError(f"Edge ({u}, {v}) references unknown node {node!r}.")


def point_nodes(graph: DistanceGraph) -> np.ndarray:
    """Return the node of each point index (points are laid out node by node)."""
    _validate(graph)
    return np.repeat(np.arange(graph.num_nodes, dtype=int), graph.multiplicities)


def build_metric(graph: DistanceGraph) -> FiniteMetric:
    """Expand node multiplicities and materialize all pairwise distances.

    Raises
    ------
    MalformedGraphError
        If a multiplicity is not a positive integer or an edge references a
        node that does not exist.
    """
    nodes = point_nodes(graph)
    logger.debug(
        f"Building metric: {graph.num_nodes} nodes, N={nodes.size}, "
        f"~{estimate_metric_memory(nodes.size):.4f} GB"
    )

    adjacency = np.zeros((graph.num_nodes, graph.num_nodes), dtype=bool)
    for u, v in graph.edges:
        adjacency[u, v] = adjacency[v, u] = True

    # Lift the node adjacency to the point level in one fancy-indexing step
    near = adjacency[nodes[:, None], nodes[None, :]]
    D = np.where(near, EDGE_DISTANCE, DEFAULT_DISTANCE)
    np.fill_diagonal(D, 0.0)

    # Values in {0, 1, 2} with a zero diagonal always form a metric
    return FiniteMetric(D, validate=False)
