from __future__ import annotations

from typing import Literal, Tuple, Union

import numpy as np

from kmedian.errors import InconsistentSolutionError
from kmedian.metric import MetricLike, as_metric
from kmedian.solution import FractionalSolution, IntegralSolution

ObjectiveName = Literal["kmedian", "kcenter"]
Solution = Union[FractionalSolution, IntegralSolution]


def check_integral(solution: IntegralSolution, n: int) -> None:
    """Raise InconsistentSolutionError unless `solution` is a valid 0/1 p-assignment."""
    centers = np.asarray(solution.centers)
    A = np.asarray(solution.assignment)
    if centers.ndim != 1 or A.shape != (centers.size, n):
        raise InconsistentSolutionError(
            f"Assignment has shape {A.shape}, expected ({centers.size}, {n})."
        )
    if centers.size and (centers.min() < 0 or centers.max() >= n):
        raise InconsistentSolutionError(f"Center indices must lie in [0, {n}).")
    if np.unique(centers).size != centers.size:
        raise InconsistentSolutionError("Centers must be distinct.")
    if not np.all((A == 0) | (A == 1)):
        raise InconsistentSolutionError("Assignment entries must be 0 or 1.")
    counts = A.sum(axis=0)
    bad = np.flatnonzero(counts != solution.p)
    if bad.size:
        j = int(bad[0])
        raise InconsistentSolutionError(
            f"Point {j} is assigned to {int(counts[j])} centers instead of p={solution.p}."
        )


def _weights(solution: Solution, n: int) -> Tuple[np.ndarray, np.ndarray]:
    if isinstance(solution, IntegralSolution):
        check_integral(solution, n)
        return np.asarray(solution.centers, dtype=int), np.asarray(solution.assignment, dtype=float)
    if isinstance(solution, FractionalSolution):
        if solution.x.shape != (solution.candidates.size, n):
            raise InconsistentSolutionError(
                f"Fractional assignment has shape {solution.x.shape}, "
                f"expected ({solution.candidates.size}, {n})."
            )
        return np.asarray(solution.candidates, dtype=int), np.asarray(solution.x, dtype=float)
    raise TypeError(f"Unsupported solution type: {type(solution).__name__}")


def objective_value(
    metric: MetricLike,
    solution: Solution,
    objective: ObjectiveName = "kmedian",
    tol: float = 1e-9,
) -> float:
    """Cost of a fractional or integral solution.

    ``"kmedian"`` sums ``d(i, j) * x[i, j]`` over all pairs; ``"kcenter"``
    returns the largest distance over pairs with ``x[i, j] > tol``.

    Raises
    ------
    InconsistentSolutionError
        If an integral solution is malformed or some point is not assigned
        to exactly p centers.
    """
    metric = as_metric(metric)
    rows, weights = _weights(solution, metric.size())
    D_c = metric.D[rows]

    if objective == "kmedian":
        return float(np.sum(D_c * weights))
    if objective == "kcenter":
        mask = weights > tol
        return float(np.max(D_c[mask])) if np.any(mask) else 0.0
    raise ValueError(f"Unknown objective: {objective!r}")
