from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field

import numpy as np

from kmedian.flow import DEFAULT_COST_SCALE
from kmedian.lp import SolverBackend, SolverConfig, solve_exact, solve_relaxation
from kmedian.metric import MetricLike, as_metric
from kmedian.solution import IntegralSolution

from .assignment import round_assignments
from .monarchs import monarch_procedure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoundingConfig:
    """Configuration for the LP -> monarchs -> flow approximation.

    Attributes
    ----------
    replication_band:
        Solve the LP with ``p/2 <= sum_i x[i, j] <= p`` instead of ``== p``.
    capacity_factor:
        Load cap inflation; ``None`` means ``(p + 2) / p``.
    tol:
        Tolerance on fractional values (opening threshold, consistency checks).
    cost_scale:
        Multiplier turning fractional distances into integer flow costs.
    solver:
        LP solver configuration.
    """

    replication_band: bool = True
    capacity_factor: float | None = None
    tol: float = 1e-6
    cost_scale: int = DEFAULT_COST_SCALE
    solver: SolverConfig = field(default_factory=SolverConfig)

    def __post_init__(self) -> None:
        if self.capacity_factor is not None and self.capacity_factor < 1:
            raise ValueError("capacity_factor must be >= 1.")
        if not (0 < self.tol < 1):
            raise ValueError("tol must be in (0, 1).")
        if self.cost_scale < 1:
            raise ValueError("cost_scale must be >= 1.")


def approximate_clustering(
    metric: MetricLike,
    k: int,
    p: int,
    lower: int,
    upper: int,
    config: RoundingConfig | None = None,
    backend: SolverBackend | None = None,
) -> IntegralSolution:
    """Round the LP relaxation into k centers with a p-fold assignment.

    The returned solution opens exactly k centers, assigns every point to
    exactly p of them, and loads every center with between `lower` and
    ``solution.upper_bound`` (the inflated cap) points. ``solution.lp_bound``
    holds the LP optimum, a lower bound on the cost of any solution that
    respects `upper`, and ``solution.consolidated_cost`` the fractional cost
    after moving each empire onto its monarch.
    """
    if config is None:
        config = RoundingConfig()
    metric = as_metric(metric)

    fractional = solve_relaxation(
        metric,
        k,
        p,
        lower,
        upper,
        replication_band=config.replication_band,
        config=config.solver,
        backend=backend,
    )
    partition = monarch_procedure(metric, fractional, k, tol=config.tol)

    moved = partition.consolidate(fractional)
    moved_cost = float(np.sum(metric.D[partition.centers()] * moved))
    logger.info(
        f"Fractional cost after consolidation onto monarchs: {moved_cost:.4f} "
        f"(LP {fractional.objective:.4f})"
    )

    solution = round_assignments(
        metric,
        partition.centers(),
        p,
        lower,
        upper,
        capacity_factor=config.capacity_factor,
        cost_scale=config.cost_scale,
    )
    return dataclasses.replace(
        solution, lp_bound=fractional.objective, consolidated_cost=moved_cost
    )


def exact_clustering(
    metric: MetricLike,
    k: int,
    p: int,
    lower: int,
    upper: int,
    config: SolverConfig | None = None,
    backend: SolverBackend | None = None,
) -> IntegralSolution:
    """Optimal solution by integer programming; practical on toy instances only."""
    return solve_exact(metric, k, p, lower, upper, config=config, backend=backend)
