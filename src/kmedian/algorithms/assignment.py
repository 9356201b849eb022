from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np

from kmedian.errors import InfeasibleFlowError
from kmedian.flow import DEFAULT_COST_SCALE, FlowNetwork, solve_min_cost_flow
from kmedian.metric import FiniteMetric, MetricLike, as_metric
from kmedian.solution import IntegralSolution

from ._shared import inflated_upper_bound, validate_centers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransportationNetwork:
    """Source -> centers -> points -> sink network for one rounding call.

    ``assignment_arcs[c, j]`` is the index of the arc from ``centers[c]`` to
    point j in ``network.arcs``.
    """

    network: FlowNetwork
    centers: np.ndarray
    source: int
    sink: int
    center_nodes: np.ndarray
    point_nodes: np.ndarray
    assignment_arcs: np.ndarray


def build_transportation_network(
    metric: FiniteMetric, centers: np.ndarray, p: int, lower: int, upper_bound: int
) -> TransportationNetwork:
    """Lay out the network whose integral flows are feasible assignments.

    The source emits N*p units. Each center arc carries between `lower` and
    `upper_bound` units, each center-to-point arc at most 1 unit at the cost
    of their distance, and each point forwards exactly p units to the sink.
    """
    n = metric.size()
    k = centers.size
    D = metric.D

    network = FlowNetwork()
    source = network.add_node(supply=n * p)
    center_nodes = np.array([network.add_node() for _ in range(k)], dtype=int)
    point_nodes = np.array([network.add_node() for _ in range(n)], dtype=int)
    sink = network.add_node(supply=-n * p)

    for node in center_nodes:
        network.add_arc(source, node, lower=lower, capacity=upper_bound)

    assignment_arcs = np.empty((k, n), dtype=int)
    for c, center in enumerate(centers):
        for j in range(n):
            assignment_arcs[c, j] = network.add_arc(
                center_nodes[c], point_nodes[j], capacity=1, cost=D[center, j]
            )

    for node in point_nodes:
        network.add_arc(node, sink, lower=p, capacity=p)

    return TransportationNetwork(
        network=network,
        centers=centers,
        source=source,
        sink=sink,
        center_nodes=center_nodes,
        point_nodes=point_nodes,
        assignment_arcs=assignment_arcs,
    )


def round_assignments(
    metric: MetricLike,
    centers: np.ndarray,
    p: int,
    lower: int,
    upper: int,
    capacity_factor: float | None = None,
    cost_scale: int = DEFAULT_COST_SCALE,
) -> IntegralSolution:
    """Assign every point to exactly p of `centers` at minimum total distance.

    Each center serves between `lower` and the inflated bound ``L'`` points
    (see :func:`inflated_upper_bound`; pass ``capacity_factor=1.0`` to keep
    ``L' = upper``). The flow is integral because the network simplex returns
    a vertex of a transportation polytope.

    Raises
    ------
    InfeasibleFlowError
        If no assignment meets the bounds.
    """
    metric = as_metric(metric)
    n = metric.size()
    centers = np.sort(validate_centers(centers, n))
    if p > centers.size:
        raise InfeasibleFlowError(f"p={p} distinct centers per point but only {centers.size} open.")

    upper_bound = inflated_upper_bound(upper, p, n, capacity_factor)
    if lower > upper_bound:
        raise InfeasibleFlowError(f"lower={lower} exceeds the load cap L'={upper_bound}.")
    transport = build_transportation_network(metric, centers, p, lower, upper_bound)
    logger.debug(
        f"Transportation network: {transport.network.num_nodes} nodes, "
        f"{transport.network.num_arcs} arcs, L'={upper_bound}"
    )

    result = solve_min_cost_flow(transport.network, cost_scale=cost_scale)
    assignment = result.flows[transport.assignment_arcs].astype(int)

    logger.info(
        f"Flow rounding: k={centers.size}, p={p}, lower={lower}, L'={upper_bound}, "
        f"cost={result.total_cost:.4f}"
    )
    return IntegralSolution(
        centers=centers,
        assignment=assignment,
        p=p,
        lower_bound=lower,
        upper_bound=upper_bound,
    )
