from __future__ import annotations

import numpy as np
import pytest

from kmedian.errors import IndexOutOfRangeError, MalformedGraphError
from kmedian.metric import (
    DistanceGraph,
    FiniteMetric,
    MinkowskiParams,
    as_metric,
    build_metric,
    check_metric_axioms,
    distance,
    pairwise_minkowski,
    point_nodes,
    precompute_metric,
    size,
)


def _random_graph(seed: int, n_nodes: int = 5) -> DistanceGraph:
    rng = np.random.default_rng(seed)
    graph = DistanceGraph(rng.integers(1, 4, size=n_nodes).tolist())
    for u in range(n_nodes):
        for v in range(u + 1, n_nodes):
            if rng.random() < 0.5:
                graph.add_edge(u, v)
    return graph


def test_build_metric_expands_multiplicities() -> None:
    graph = DistanceGraph([1, 10])
    graph.add_edge(0, 1)
    metric = build_metric(graph)

    assert graph.num_points == 11
    assert size(metric) == 11
    assert len(metric) == 11
    assert distance(metric, 0, 0) == 0.0
    assert np.allclose(metric.dist_row(0)[1:], 1.0)
    assert metric.dist(1, 2) == 2.0
    assert metric.dist(5, 5) == 0.0
    assert point_nodes(graph).tolist() == [0] + [1] * 10


def test_nodes_without_edge_are_at_distance_two() -> None:
    graph = DistanceGraph()
    a = graph.add_node()
    b = graph.add_node(multiplicity=2)
    c = graph.add_node()
    graph.add_edge(b, c)
    metric = build_metric(graph)

    expected = np.array(
        [
            [0.0, 2.0, 2.0, 2.0],
            [2.0, 0.0, 2.0, 1.0],
            [2.0, 2.0, 0.0, 1.0],
            [2.0, 1.0, 1.0, 0.0],
        ]
    )
    assert a == 0
    assert np.allclose(metric.D, expected)


def test_self_loop_brings_node_points_together() -> None:
    graph = DistanceGraph([3])
    graph.add_edge(0, 0)
    metric = build_metric(graph)
    assert np.allclose(metric.D, np.ones((3, 3)) - np.eye(3))


@pytest.mark.parametrize("seed", range(5))
def test_built_metric_is_symmetric_and_satisfies_triangle_inequality(seed: int) -> None:
    metric = build_metric(_random_graph(seed))
    D = metric.D
    assert np.allclose(D, D.T)
    check_metric_axioms(D)

    rng = np.random.default_rng(seed)
    for i, j, k in rng.integers(0, metric.n, size=(50, 3)):
        assert metric.dist(i, j) <= metric.dist(i, k) + metric.dist(k, j)


@pytest.mark.parametrize("multiplicities", [[1, 0], [2, -1], [1, 1.5]])
def test_build_metric_rejects_bad_multiplicities(multiplicities) -> None:
    with pytest.raises(MalformedGraphError):
        build_metric(DistanceGraph(multiplicities))


def test_build_metric_rejects_unknown_nodes() -> None:
    graph = DistanceGraph([1, 2])
    graph.add_edge(0, 5)
    with pytest.raises(MalformedGraphError):
        build_metric(graph)


def test_distance_rejects_out_of_range_indices() -> None:
    metric = build_metric(DistanceGraph([2, 1]))
    with pytest.raises(IndexOutOfRangeError):
        metric.dist(0, 3)
    with pytest.raises(IndexOutOfRangeError):
        metric.dist(-1, 0)
    with pytest.raises(IndexOutOfRangeError):
        metric.dist_row(3)


def test_metric_is_read_only() -> None:
    metric = build_metric(DistanceGraph([2, 2]))
    with pytest.raises(ValueError):
        metric.D[0, 1] = 5.0


def test_from_matrix_rejects_non_metrics() -> None:
    with pytest.raises(ValueError):
        FiniteMetric.from_matrix(np.array([[0.0, 1.0, 5.0], [1.0, 0.0, 1.0], [5.0, 1.0, 0.0]]))
    with pytest.raises(ValueError):
        FiniteMetric.from_matrix(np.array([[0.0, 1.0], [2.0, 0.0]]))
    with pytest.raises(ValueError):
        FiniteMetric.from_matrix(np.array([[1.0, 1.0], [1.0, 0.0]]))


def test_precompute_metric_matches_manual_norm() -> None:
    X = np.array([[0.0, 0.0], [1.0, 0.0], [0.0, 2.0]], dtype=float)
    expected = np.array(
        [
            [0.0, 1.0, 2.0],
            [1.0, 0.0, np.sqrt(5.0)],
            [2.0, np.sqrt(5.0), 0.0],
        ]
    )
    assert np.allclose(pairwise_minkowski(X, params=MinkowskiParams(p=2)), expected)

    metric = precompute_metric(X)
    assert np.allclose(metric.D, expected)
    check_metric_axioms(metric.D)

    manhattan = precompute_metric(X, params=MinkowskiParams(p=1))
    assert np.isclose(manhattan.dist(1, 2), 3.0)


def test_as_metric_accepts_graphs_and_matrices() -> None:
    graph = DistanceGraph([1, 1])
    from_graph = as_metric(graph)
    from_matrix = as_metric(np.array([[0.0, 2.0], [2.0, 0.0]]))

    assert np.allclose(from_graph.D, from_matrix.D)
    assert as_metric(from_graph) is from_graph
