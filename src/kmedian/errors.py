from __future__ import annotations


class KMedianError(Exception):
    """Base class for errors raised by the clustering pipeline."""


class MalformedGraphError(KMedianError, ValueError):
    """A distance graph has a bad multiplicity or references an unknown node."""


class IndexOutOfRangeError(KMedianError, IndexError):
    """A point index lies outside ``[0, N)``."""


class InfeasibleInstanceError(KMedianError):
    """No (fractional or integral) solution satisfies the instance constraints."""


class InfeasibleFlowError(KMedianError):
    """The transportation network admits no flow meeting its bounds."""


class RoundingInvariantError(KMedianError):
    """The fractional solution handed to rounding contradicts its own constraints."""


class InconsistentSolutionError(KMedianError):
    """A solution does not have the shape or replication it claims."""


class DimacsFormatError(KMedianError, ValueError):
    """A DIMACS min-cost-flow file cannot be parsed."""


class SolverError(KMedianError):
    """The external LP/MIP solver failed without a usable answer."""


class SolverTimeoutError(SolverError):
    """The external solver ran out of its time budget."""


__all__ = [
    "KMedianError",
    "MalformedGraphError",
    "IndexOutOfRangeError",
    "InfeasibleInstanceError",
    "InfeasibleFlowError",
    "RoundingInvariantError",
    "InconsistentSolutionError",
    "DimacsFormatError",
    "SolverError",
    "SolverTimeoutError",
]
