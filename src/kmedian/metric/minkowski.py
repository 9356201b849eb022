from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from .finite import FiniteMetric


PType = float | int


@dataclass(frozen=True)
class MinkowskiParams:
    """Parameters for the Minkowski distance.

    Attributes
    ----------
    p:
        Norm order (p >= 1). Common choices:
        - p=1: Manhattan
        - p=2: Euclidean
    """

    p: PType = 2.0

    def __post_init__(self) -> None:
        if self.p < 1:
            raise ValueError("Minkowski parameter p must satisfy p >= 1.")


def pairwise_minkowski(
    x: np.ndarray, y: np.ndarray | None = None, params: MinkowskiParams | None = None
) -> np.ndarray:
    """Compute the pairwise Minkowski distance matrix between rows of `x` and `y`.

    Parameters
    ----------
    x:
        Array of shape (n_samples_x, n_features).
    y:
        Optional array of shape (n_samples_y, n_features). If ``None``,
        distances are computed between all pairs of rows in `x`.
    params:
        MinkowskiParams instance controlling the value of ``p``.

    Returns
    -------
    np.ndarray
        Distance matrix of shape (n_samples_x, n_samples_y).
    """
    if params is None:
        params = MinkowskiParams()

    x = np.asarray(x, dtype=float)
    if x.ndim == 1:
        x = x.reshape(-1, 1)
    if y is None:
        y = x
    else:
        y = np.asarray(y, dtype=float)
        if y.ndim == 1:
            y = y.reshape(-1, 1)

    diff = x[:, None, :] - y[None, :, :]

    if params.p == 1:
        return np.sum(np.abs(diff), axis=-1)
    if params.p == 2:
        return np.sqrt(np.sum(diff * diff, axis=-1))

    abs_p = np.abs(diff) ** params.p
    return np.sum(abs_p, axis=-1) ** (1.0 / params.p)


def precompute_metric(X: np.ndarray, params: MinkowskiParams | None = None) -> FiniteMetric:
    """Materialize the finite metric induced by a point cloud.

    Minkowski distances with p >= 1 are metrics, so the (cubic) axiom check
    is skipped.
    """
    D = pairwise_minkowski(X, params=params)
    # Symmetrize away floating-point noise
    D = 0.5 * (D + D.T)
    np.fill_diagonal(D, 0.0)
    return FiniteMetric(D, validate=False)
