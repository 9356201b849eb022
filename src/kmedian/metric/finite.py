from __future__ import annotations

import numpy as np

from kmedian.errors import IndexOutOfRangeError


def estimate_metric_memory(n_points: int, dtype_size: int = 8) -> float:
    """Return the memory footprint (in GB) of an n×n distance table."""
    return (n_points * n_points * dtype_size) / (1024 ** 3)


def check_metric_axioms(D: np.ndarray, atol: float = 1e-9) -> None:
    """Raise ``ValueError`` unless `D` is a finite metric.

    Checks squareness, zero diagonal, non-negativity, symmetry and the
    triangle inequality. The triangle check is O(n^3) but vectorized one
    intermediate point at a time.
    """
    if D.ndim != 2 or D.shape[0] != D.shape[1]:
        raise ValueError("Distance matrix must be square.")
    if not np.all(np.isfinite(D)):
        raise ValueError("Distances must be finite.")
    if np.any(D < -atol):
        raise ValueError("Distances must be non-negative.")
    if not np.allclose(np.diag(D), 0.0, atol=atol):
        raise ValueError("A point must be at distance 0 from itself.")
    if not np.allclose(D, D.T, atol=atol):
        raise ValueError("Distance matrix must be symmetric.")
    for k in range(D.shape[0]):
        # d(i, j) <= d(i, k) + d(k, j)
        via_k = D[:, k][:, None] + D[k, :][None, :]
        if np.any(D > via_k + atol):
            raise ValueError(f"Triangle inequality violated through point {k}.")


class FiniteMetric:
    """Immutable N×N distance table over the point indices ``0..N-1``.

    The underlying array is marked read-only, so every stage of the pipeline
    can share it by reference.
    """

    def __init__(self, D: np.ndarray, validate: bool = True):
        """Initialize from a square distance matrix.

        Args:
            D: Distance matrix of shape (n_points, n_points)
            validate: Check the metric axioms before accepting `D`
        """
        D = np.array(D, dtype=float)
        if validate:
            check_metric_axioms(D)
        elif D.ndim != 2 or D.shape[0] != D.shape[1]:
            raise ValueError("Distance matrix must be square.")
        D.setflags(write=False)
        self.D = D
        self.n = D.shape[0]

    @classmethod
    def from_matrix(cls, D: np.ndarray, validate: bool = True) -> "FiniteMetric":
        return cls(D, validate=validate)

    def _check_index(self, i: int) -> int:
        if isinstance(i, (bool, np.bool_)) or not isinstance(i, (int, np.integer)):
            raise IndexOutOfRangeError(f"Point index must be an integer, got {i!r}.")
        if not 0 <= i < self.n:
            raise IndexOutOfRangeError(f"Point index {i} outside [0, {self.n}).")
        return int(i)

    def dist(self, i: int, j: int) -> float:
        """Distance between points i and j."""
        return float(self.D[self._check_index(i), self._check_index(j)])

    def dist_row(self, i: int) -> np.ndarray:
        """Distances from point i to all points."""
        return self.D[self._check_index(i)]

    def size(self) -> int:
        return self.n

    def __len__(self) -> int:
        return self.n

    def __repr__(self) -> str:
        return f"FiniteMetric(n={self.n})"


def distance(metric: FiniteMetric, i: int, j: int) -> float:
    return metric.dist(i, j)


def size(metric: FiniteMetric) -> int:
    return metric.size()
