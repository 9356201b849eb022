from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass(frozen=True)
class FractionalSolution:
    """Optimal point of the LP relaxation.

    Attributes
    ----------
    candidates:
        Point indices allowed to act as centers, shape (n_candidates,).
    y:
        Center-opening weights in [0, 1], aligned with `candidates`.
    x:
        Assignment weights of shape (n_candidates, n_points); ``x[a, j]`` is
        the mass of point j served by ``candidates[a]``.
    p:
        Replication factor the program was built with.
    objective:
        LP optimum reported by the solver.
    """

    candidates: np.ndarray
    y: np.ndarray
    x: np.ndarray
    p: int
    objective: float

    @property
    def n_points(self) -> int:
        return int(self.x.shape[1])

    def loads(self) -> np.ndarray:
        """Fractional number of points served by each candidate."""
        return self.x.sum(axis=1)

    def replication(self) -> np.ndarray:
        """Fractional number of centers serving each point."""
        return self.x.sum(axis=0)

    def open_centers(self, tol: float = 1e-9) -> np.ndarray:
        return self.candidates[self.y > tol]


@dataclass(frozen=True)
class IntegralSolution:
    """k open centers and a 0/1 assignment of every point to p of them.

    ``assignment[c, j] == 1`` when point j is served by ``centers[c]``.
    `upper_bound` is the per-center load cap the solution was built under (the
    inflated bound for rounded solutions) and `lp_bound` the LP optimum it was
    rounded from, when there is one. `consolidated_cost` is the fractional
    cost once every empire's mass sits on its monarch.
    """

    centers: np.ndarray
    assignment: np.ndarray
    p: int
    lower_bound: int
    upper_bound: int
    lp_bound: float | None = None
    consolidated_cost: float | None = None

    @property
    def k(self) -> int:
        return int(self.centers.size)

    @property
    def n_points(self) -> int:
        return int(self.assignment.shape[1])

    def loads(self) -> np.ndarray:
        """Number of points served by each center."""
        return self.assignment.sum(axis=1)

    def replication(self) -> np.ndarray:
        return self.assignment.sum(axis=0)

    def centers_of(self, j: int) -> np.ndarray:
        """Centers serving point j."""
        return self.centers[self.assignment[:, j] > 0]

    def clusters(self) -> dict[int, np.ndarray]:
        """Map each center to the points it serves."""
        return {
            int(c): np.flatnonzero(self.assignment[idx])
            for idx, c in enumerate(self.centers)
        }
