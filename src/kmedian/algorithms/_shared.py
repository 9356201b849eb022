from __future__ import annotations

import math
from fractions import Fraction

import numpy as np

from kmedian.errors import IndexOutOfRangeError
from kmedian.metric import FiniteMetric
from kmedian.solution import FractionalSolution


def center_radii(metric: FiniteMetric, fractional: FractionalSolution, tol: float = 1e-9) -> np.ndarray:
    """Average distance of the mass each candidate serves.

    ``R_i = sum_j d(i, j) x[i, j] / sum_j x[i, j]``; candidates carrying no
    mass get radius 0.
    """
    D_c = metric.D[fractional.candidates]
    mass = fractional.x.sum(axis=1)
    weighted = np.sum(D_c * fractional.x, axis=1)
    radii = np.zeros_like(mass)
    np.divide(weighted, mass, out=radii, where=mass > tol)
    return radii


def inflated_upper_bound(upper: int, p: int, n: int, capacity_factor: float | None = None) -> int:
    """Return the relaxed load cap L' used by flow rounding.

    Defaults to ``ceil(L * (p + 2) / p)``; a center never serves more than
    `n` distinct points, so the result is capped at `n`.
    """
    if capacity_factor is None:
        bound = math.ceil(Fraction(upper * (p + 2), p))
    else:
        if capacity_factor < 1:
            raise ValueError("capacity_factor must be >= 1.")
        bound = math.ceil(upper * capacity_factor)
    return int(min(n, bound))


def validate_centers(centers: np.ndarray, n: int) -> np.ndarray:
    centers = np.asarray(centers, dtype=int)
    if centers.ndim != 1:
        raise ValueError("Centers must be a 1D array of point indices.")
    if centers.size and (centers.min() < 0 or centers.max() >= n):
        raise IndexOutOfRangeError(f"Center indices must lie in [0, {n}).")
    if np.unique(centers).size != centers.size:
        raise ValueError("Centers must be distinct.")
    return centers
