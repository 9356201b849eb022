from .factory import MetricLike, as_metric
from .finite import FiniteMetric, check_metric_axioms, distance, size
from .graph import DistanceGraph, build_metric, point_nodes
from .minkowski import MinkowskiParams, pairwise_minkowski, precompute_metric

__all__ = [
    "DistanceGraph",
    "FiniteMetric",
    "MetricLike",
    "MinkowskiParams",
    "as_metric",
    "build_metric",
    "check_metric_axioms",
    "distance",
    "pairwise_minkowski",
    "point_nodes",
    "precompute_metric",
    "size",
]
