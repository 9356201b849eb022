from __future__ import annotations

import logging

import numpy as np
import pytest

from kmedian.errors import InfeasibleInstanceError, SolverError, SolverTimeoutError
from kmedian.lp import (
    LinearProgram,
    SolverConfig,
    SolverResult,
    SolverStatus,
    build_program,
    solve_exact,
    solve_relaxation,
)
from kmedian.instance import ClusteringInstance
from kmedian.metric import DistanceGraph, build_metric, precompute_metric
from kmedian.objective import objective_value

TOL = 1e-6


class _StatusBackend:
    """Backend that answers every program with a fixed status."""

    def __init__(self, status: SolverStatus) -> None:
        self.status = status
        self.seen: list[LinearProgram] = []

    def solve(self, program: LinearProgram, config: SolverConfig) -> SolverResult:
        self.seen.append(program)
        return SolverResult(self.status, np.zeros(program.num_variables), None, runtime_sec=0.25)


def _two_node_metric():
    graph = DistanceGraph([1, 10])
    graph.add_edge(0, 1)
    return build_metric(graph)


def _line_metric():
    return precompute_metric(np.array([0.0, 1.0, 2.0, 10.0, 11.0, 12.0]))


def test_exact_objective_is_not_monotone_in_k() -> None:
    metric = _two_node_metric()

    one = solve_exact(metric, k=1, p=1, lower=3, upper=11)
    two = solve_exact(metric, k=2, p=1, lower=3, upper=11)

    assert one.centers.tolist() == [0]
    assert np.isclose(objective_value(metric, one), 10.0)
    assert np.isclose(objective_value(metric, two), 11.0)
    assert np.all(two.loads() >= 3)


def test_k_zero_is_infeasible() -> None:
    metric = _two_node_metric()
    with pytest.raises(InfeasibleInstanceError):
        solve_relaxation(metric, k=0, p=1, lower=0, upper=11)
    with pytest.raises(InfeasibleInstanceError):
        solve_exact(metric, k=0, p=1, lower=0, upper=11)


def test_lower_bounds_exceeding_points_are_infeasible() -> None:
    metric = _line_metric()
    with pytest.raises(InfeasibleInstanceError):
        solve_relaxation(metric, k=3, p=1, lower=3, upper=6)


@pytest.mark.parametrize(
    "k, p, lower, upper",
    [
        (2, 3, 0, 6),  # p > k
        (2, 1, 0, 2),  # upper * k < N * p
        (7, 1, 0, 6),  # more centers than points
    ],
)
def test_precheck_rejects_infeasible_parameters(k: int, p: int, lower: int, upper: int) -> None:
    backend = _StatusBackend(SolverStatus.OPTIMAL)
    with pytest.raises(InfeasibleInstanceError):
        solve_relaxation(_line_metric(), k, p, lower, upper, backend=backend)
    assert backend.seen == []


@pytest.mark.parametrize("p, lower, upper", [(0, 0, 3), (1, -1, 3), (1, 4, 3)])
def test_malformed_parameters_raise_value_error(p: int, lower: int, upper: int) -> None:
    with pytest.raises(ValueError):
        solve_relaxation(_line_metric(), 2, p, lower, upper)


def test_solver_statuses_map_to_errors() -> None:
    metric = _line_metric()
    with pytest.raises(InfeasibleInstanceError):
        solve_relaxation(metric, 2, 1, 0, 6, backend=_StatusBackend(SolverStatus.INFEASIBLE))
    with pytest.raises(SolverTimeoutError):
        solve_relaxation(
            metric,
            2,
            1,
            0,
            6,
            config=SolverConfig(time_limit=1.0),
            backend=_StatusBackend(SolverStatus.TIME_LIMIT),
        )
    with pytest.raises(SolverError):
        solve_exact(metric, 2, 1, 0, 6, backend=_StatusBackend(SolverStatus.ERROR))


def test_program_shape() -> None:
    metric = _line_metric()
    instance = ClusteringInstance(metric, k=2, p=1, lower=1, upper=4)
    candidates = np.arange(metric.n)
    program, y_idx, x_idx = build_program(instance, candidates)

    n = metric.n
    assert y_idx.shape == (n,)
    assert x_idx.shape == (n, n)
    assert program.num_variables == n + n * n
    # replication + open + two load rows per center + number of centers
    assert program.num_constraints == n + n * n + 2 * n + 1
    assert not any(program.integer)

    banded, _, _ = build_program(instance, candidates, replication_band=True)
    assert banded.num_constraints == program.num_constraints + n


@pytest.mark.parametrize("p", [1, 2])
def test_relaxation_respects_its_constraints(p: int) -> None:
    metric = _line_metric()
    k, lower, upper = 3, 1, 4
    sol = solve_relaxation(metric, k, p, lower, upper)

    assert np.isclose(sol.y.sum(), k, atol=TOL)
    assert np.allclose(sol.replication(), p, atol=TOL)
    assert np.all(sol.x <= sol.y[:, None] + TOL)
    assert np.all(sol.loads() >= lower * sol.y - TOL)
    assert np.all(sol.loads() <= upper * sol.y + TOL)
    assert np.isclose(objective_value(metric, sol), sol.objective, atol=1e-5)


def test_replication_band_relaxation() -> None:
    metric = _line_metric()
    sol = solve_relaxation(metric, 3, 2, 0, 6, replication_band=True)
    replication = sol.replication()
    assert np.all(replication >= 1.0 - TOL)
    assert np.all(replication <= 2.0 + TOL)


def test_relaxation_is_a_lower_bound() -> None:
    metric = _two_node_metric()
    for k in (1, 2):
        lp = solve_relaxation(metric, k, 1, 3, 11)
        exact = solve_exact(metric, k, 1, 3, 11)
        assert lp.objective <= objective_value(metric, exact) + TOL


def test_exact_solution_is_integral_and_replicated() -> None:
    metric = _line_metric()
    sol = solve_exact(metric, k=3, p=2, lower=2, upper=6)

    assert sol.k == 3
    assert set(np.unique(sol.assignment)) <= {0, 1}
    assert np.all(sol.replication() == 2)
    assert np.all(sol.loads() >= 2)
    assert sol.lp_bound is None


def test_solver_runtime_is_logged(caplog) -> None:
    caplog.set_level(logging.INFO)
    solve_relaxation(_line_metric(), 2, 1, 0, 6, backend=_StatusBackend(SolverStatus.OPTIMAL))
    assert "solver time=0.25s" in caplog.text
