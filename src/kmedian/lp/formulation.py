from __future__ import annotations

import logging
from typing import Sequence, Tuple

import numpy as np

from kmedian.errors import (
    InfeasibleInstanceError,
    IndexOutOfRangeError,
    SolverError,
    SolverTimeoutError,
)
from kmedian.instance import ClusteringInstance
from kmedian.metric import MetricLike, as_metric
from kmedian.solution import FractionalSolution, IntegralSolution

from .program import LinearProgram, PulpBackend, SolverBackend, SolverConfig, SolverResult, SolverStatus

logger = logging.getLogger(__name__)


def _candidate_array(candidates: Sequence[int] | None, n: int) -> np.ndarray:
    if candidates is None:
        return np.arange(n, dtype=int)
    arr = np.unique(np.asarray(candidates, dtype=int))
    if arr.size and (arr[0] < 0 or arr[-1] >= n):
        raise IndexOutOfRangeError(f"Candidate centers must lie in [0, {n}).")
    return arr


def build_program(
    instance: ClusteringInstance,
    candidates: np.ndarray,
    integral: bool = False,
    replication_band: bool = False,
) -> Tuple[LinearProgram, np.ndarray, np.ndarray]:
    """Formulate the (relaxed or integral) clustering program.

    Returns the program with the variable indices of ``y`` (shape
    (n_candidates,)) and ``x`` (shape (n_candidates, n_points)).
    """
    D = instance.metric.D
    n = instance.n
    k, p, lower, upper = instance.k, instance.p, instance.lower, instance.upper

    program = LinearProgram("kmedian_mip" if integral else "kmedian_lp")
    y_idx = np.array(
        [program.add_variable(f"y_{c}", 0.0, 1.0, integral) for c in candidates], dtype=int
    )
    x_idx = np.array(
        [[program.add_variable(f"x_{c}_{j}", 0.0, 1.0, integral) for j in range(n)] for c in candidates],
        dtype=int,
    ).reshape(candidates.size, n)

    program.set_objective(
        {x_idx[a, j]: D[c, j] for a, c in enumerate(candidates) for j in range(n)}
    )

    # Replication
    for j in range(n):
        column = {x_idx[a, j]: 1.0 for a in range(candidates.size)}
        if replication_band:
            program.add_constraint(column, ">=", p / 2, name=f"replication_lo_{j}")
            program.add_constraint(column, "<=", p, name=f"replication_hi_{j}")
        else:
            program.add_constraint(column, "==", p, name=f"replication_{j}")

    # Only open centers serve
    for a, c in enumerate(candidates):
        for j in range(n):
            program.add_constraint(
                {x_idx[a, j]: 1.0, y_idx[a]: -1.0}, "<=", 0.0, name=f"open_{c}_{j}"
            )

    # Load bounds scaled by the opening weight
    for a, c in enumerate(candidates):
        row = {x_idx[a, j]: 1.0 for j in range(n)}
        program.add_constraint({**row, y_idx[a]: -float(lower)}, ">=", 0.0, name=f"load_lo_{c}")
        program.add_constraint({**row, y_idx[a]: -float(upper)}, "<=", 0.0, name=f"load_hi_{c}")

    program.add_constraint({i: 1.0 for i in y_idx}, "==", k, name="num_centers")
    return program, y_idx, x_idx


def _check_status(result: SolverResult, config: SolverConfig, instance: ClusteringInstance) -> None:
    if result.status is SolverStatus.OPTIMAL:
        return
    if result.status is SolverStatus.INFEASIBLE:
        raise InfeasibleInstanceError(
            f"Solver reports infeasibility for k={instance.k}, p={instance.p}, "
            f"lower={instance.lower}, upper={instance.upper}, N={instance.n}."
        )
    if result.status is SolverStatus.TIME_LIMIT:
        raise SolverTimeoutError(f"Solver exceeded its time budget of {config.time_limit}s.")
    raise SolverError(f"Solver finished with status {result.status.value!r}.")


def _prepare(
    metric: MetricLike,
    k: int,
    p: int,
    lower: int,
    upper: int,
    candidates: Sequence[int] | None,
) -> Tuple[ClusteringInstance, np.ndarray]:
    instance = ClusteringInstance(as_metric(metric), k, p, lower, upper)
    cand = _candidate_array(candidates, instance.n)
    instance.check_feasible(n_candidates=cand.size)
    return instance, cand


def solve_relaxation(
    metric: MetricLike,
    k: int,
    p: int,
    lower: int,
    upper: int,
    replication_band: bool = False,
    candidates: Sequence[int] | None = None,
    config: SolverConfig | None = None,
    backend: SolverBackend | None = None,
) -> FractionalSolution:
    """Solve the LP relaxation of lower/upper-bounded, p-replicated k-median.

    Parameters
    ----------
    metric:
        FiniteMetric, DistanceGraph or square distance matrix.
    k, p, lower, upper:
        Number of centers, replication factor and per-center load bounds.
    replication_band:
        Require ``p/2 <= sum_i x[i, j] <= p`` instead of ``== p``.
    candidates:
        Points allowed to open as centers (all points by default).

    Raises
    ------
    InfeasibleInstanceError
        If a pre-check or the solver proves the program infeasible.
    SolverTimeoutError
        If the solver exceeds ``config.time_limit``.
    """
    config = config or SolverConfig()
    backend = backend or PulpBackend()
    instance, cand = _prepare(metric, k, p, lower, upper, candidates)

    program, y_idx, x_idx = build_program(instance, cand, integral=False, replication_band=replication_band)
    result = backend.solve(program, config)
    _check_status(result, config, instance)

    y = np.clip(result.values[y_idx], 0.0, 1.0)
    x = np.clip(result.values[x_idx], 0.0, 1.0)
    objective = float(result.objective) if result.objective is not None else 0.0
    logger.info(
        f"LP relaxation (N={instance.n}, k={k}, p={p}, lower={lower}, upper={upper}): "
        f"objective={objective:.4f}, open centers={int(np.sum(y > 1e-6))}, "
        f"solver time={result.runtime_sec:.2f}s"
    )
    return FractionalSolution(candidates=cand, y=y, x=x, p=p, objective=objective)


def solve_exact(
    metric: MetricLike,
    k: int,
    p: int,
    lower: int,
    upper: int,
    candidates: Sequence[int] | None = None,
    config: SolverConfig | None = None,
    backend: SolverBackend | None = None,
) -> IntegralSolution:
    """Solve the clustering program with binary y and x (correctness oracle)."""
    config = config or SolverConfig()
    backend = backend or PulpBackend()
    instance, cand = _prepare(metric, k, p, lower, upper, candidates)

    program, y_idx, x_idx = build_program(instance, cand, integral=True)
    result = backend.solve(program, config)
    _check_status(result, config, instance)

    opened = result.values[y_idx] > 0.5
    if int(opened.sum()) != k:
        raise SolverError(f"Integral solution opens {int(opened.sum())} centers instead of {k}.")
    assignment = (result.values[x_idx][opened] > 0.5).astype(int)
    logger.info(
        f"Exact solution (N={instance.n}, k={k}, p={p}): objective={result.objective}, "
        f"solver time={result.runtime_sec:.2f}s"
    )
    return IntegralSolution(
        centers=cand[opened],
        assignment=assignment,
        p=p,
        lower_bound=lower,
        upper_bound=upper,
    )
