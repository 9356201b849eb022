from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from kmedian.errors import InfeasibleInstanceError
from kmedian.metric import FiniteMetric


def _is_int(value) -> bool:
    return isinstance(value, (int, np.integer)) and not isinstance(value, (bool, np.bool_))


@dataclass(frozen=True)
class ClusteringInstance:
    """A metric together with (k, p, lower, upper).

    ``lower``/``upper`` are the per-center minimum and maximum load; ``p`` is
    the number of distinct centers every point must be assigned to.
    """

    metric: FiniteMetric
    k: int
    p: int
    lower: int
    upper: int

    def __post_init__(self) -> None:
        for name in ("k", "p", "lower", "upper"):
            if not _is_int(getattr(self, name)):
                raise ValueError(f"{name} must be an integer, got {getattr(self, name)!r}.")
        if self.p < 1:
            raise ValueError("Replication factor p must be >= 1.")
        if self.lower < 0:
            raise ValueError("Lower bound must be non-negative.")
        if self.lower > self.upper:
            raise ValueError("Lower bound must not exceed the upper bound.")

    @property
    def n(self) -> int:
        return self.metric.size()

    def check_feasible(self, n_candidates: int | None = None) -> None:
        """Reject instances no fractional solution can satisfy.

        These are necessary conditions only; the solver has the final word.
        """
        n = self.n
        if n_candidates is None:
            n_candidates = n
        if n == 0:
            raise InfeasibleInstanceError("The metric has no points.")
        if self.k < 1:
            raise InfeasibleInstanceError(
                f"k={self.k}: no center can be opened, yet every point needs p={self.p}."
            )
        if self.k > n_candidates:
            raise InfeasibleInstanceError(
                f"k={self.k} exceeds the {n_candidates} candidate centers."
            )
        if self.p > self.k:
            raise InfeasibleInstanceError(
                f"p={self.p} distinct centers per point but only k={self.k} centers."
            )
        if self.lower > n:
            raise InfeasibleInstanceError(
                f"A center cannot serve lower={self.lower} distinct points out of N={n}."
            )
        if self.lower * self.k > n * self.p:
            raise InfeasibleInstanceError(
                f"lower*k={self.lower * self.k} exceeds the total demand N*p={n * self.p}."
            )
        if self.upper * self.k < n * self.p:
            raise InfeasibleInstanceError(
                f"upper*k={self.upper * self.k} cannot cover the total demand N*p={n * self.p}."
            )
