from ._shared import center_radii, inflated_upper_bound
from .assignment import TransportationNetwork, build_transportation_network, round_assignments
from .monarchs import CenterStatus, MonarchPartition, check_fractional, monarch_procedure
from .pipeline import RoundingConfig, approximate_clustering, exact_clustering

__all__ = [
    "CenterStatus",
    "MonarchPartition",
    "RoundingConfig",
    "TransportationNetwork",
    "approximate_clustering",
    "build_transportation_network",
    "center_radii",
    "check_fractional",
    "exact_clustering",
    "inflated_upper_bound",
    "monarch_procedure",
    "round_assignments",
]
