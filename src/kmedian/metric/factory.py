from __future__ import annotations

from typing import Union

import numpy as np

from .finite import FiniteMetric
from .graph import DistanceGraph, build_metric

MetricLike = Union[FiniteMetric, DistanceGraph, np.ndarray]


def as_metric(metric: MetricLike, validate: bool = True) -> FiniteMetric:
    """Wrap a FiniteMetric, DistanceGraph or square matrix into a FiniteMetric."""
    if isinstance(metric, FiniteMetric):
        return metric
    if isinstance(metric, DistanceGraph):
        return build_metric(metric)
    return FiniteMetric(np.asarray(metric, dtype=float), validate=validate)
