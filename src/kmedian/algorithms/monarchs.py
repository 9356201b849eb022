from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np

from kmedian.errors import RoundingInvariantError
from kmedian.metric import FiniteMetric
from kmedian.solution import FractionalSolution

from ._shared import center_radii

logger = logging.getLogger(__name__)


class CenterStatus(enum.Enum):
    UNPROCESSED = 0
    MONARCH = 1
    SUBJECT = 2


@dataclass(frozen=True)
class MonarchPartition:
    """Result of the monarch procedure.

    Attributes
    ----------
    monarchs:
        Point indices of the k monarchs, in the order they were crowned.
    owner:
        Maps every open fractional center to its monarch (a monarch owns
        itself).
    radii:
        LP radius of each monarch, aligned with `monarchs` (0 for promoted
        monarchs that carried no mass).
    promoted:
        Monarchs added after the greedy phase to reach exactly k.
    annexed:
        Open centers attached to their nearest monarch because k monarchs
        were crowned before the greedy phase reached them.
    """

    monarchs: np.ndarray
    owner: Dict[int, int]
    radii: np.ndarray
    promoted: Tuple[int, ...] = ()
    annexed: Tuple[int, ...] = ()

    @property
    def k(self) -> int:
        return int(self.monarchs.size)

    def centers(self) -> np.ndarray:
        """The monarch set, sorted by point index."""
        return np.sort(self.monarchs)

    def empire(self, monarch: int) -> np.ndarray:
        return np.array(sorted(c for c, m in self.owner.items() if m == monarch), dtype=int)

    def empires(self) -> Dict[int, np.ndarray]:
        return {int(m): self.empire(int(m)) for m in self.monarchs}

    def consolidate(self, fractional: FractionalSolution) -> np.ndarray:
        """Move every empire's fractional assignment onto its monarch.

        Returns an array of shape (k, n_points) aligned with :meth:`centers`,
        capped at 1 per (monarch, point) pair.
        """
        centers = self.centers()
        row_of = {int(c): r for r, c in enumerate(centers)}
        cand_pos = {int(c): a for a, c in enumerate(fractional.candidates)}
        moved = np.zeros((centers.size, fractional.n_points), dtype=float)
        for center, monarch in self.owner.items():
            if center in cand_pos:
                moved[row_of[monarch]] += fractional.x[cand_pos[center]]
        return np.minimum(moved, 1.0)

    def opening_vector(self, candidates: np.ndarray) -> np.ndarray:
        """Integral y over `candidates`: 1 on monarchs, 0 elsewhere."""
        return np.isin(candidates, self.monarchs).astype(float)


def check_fractional(fractional: FractionalSolution, k: int, tol: float = 1e-6) -> None:
    """Raise RoundingInvariantError unless `fractional` obeys the LP constraints
    monarch selection relies on."""
    cand, y, x = fractional.candidates, fractional.y, fractional.x
    if y.shape != cand.shape or x.ndim != 2 or x.shape[0] != cand.size:
        raise RoundingInvariantError("Fractional solution arrays are misaligned.")
    if cand.size < k:
        raise RoundingInvariantError(f"Only {cand.size} candidates for k={k} monarchs.")
    if np.any(y < -tol) or np.any(y > 1 + tol):
        raise RoundingInvariantError("Opening weights must lie in [0, 1].")
    if abs(float(y.sum()) - k) > tol * max(1, k):
        raise RoundingInvariantError(f"Opening weights sum to {float(y.sum()):.6f}, expected k={k}.")
    if x.size and np.any(x > y[:, None] + tol):
        raise RoundingInvariantError("Some point is served by more than its center is open.")


def monarch_procedure(
    metric: FiniteMetric, fractional: FractionalSolution, k: int, tol: float = 1e-6
) -> MonarchPartition:
    """Select exactly k monarchs from a fractional solution.

    Open centers (``y > tol``) are visited by decreasing ``y``, lowest index
    first on ties. An unprocessed center becomes a monarch and annexes every
    unprocessed open center within twice its LP radius. The greedy phase
    stops once every open center is processed or k monarchs exist; leftovers
    join their nearest monarch, and a shortfall is filled by promoting the
    heaviest remaining candidates.

    Raises
    ------
    RoundingInvariantError
        If the fractional solution contradicts its constraints.
    """
    check_fractional(fractional, k, tol)

    D = metric.D
    cand, y = fractional.candidates, fractional.y
    radii = center_radii(metric, fractional)

    open_pos = [a for a in range(cand.size) if y[a] > tol]
    status = {a: CenterStatus.UNPROCESSED for a in open_pos}
    order = sorted(open_pos, key=lambda a: (-y[a], int(cand[a])))

    monarch_pos: List[int] = []
    owner: Dict[int, int] = {}

    for a in order:
        if len(monarch_pos) == k:
            break
        if status[a] is not CenterStatus.UNPROCESSED:
            continue
        monarch = int(cand[a])
        status[a] = CenterStatus.MONARCH
        monarch_pos.append(a)
        owner[monarch] = monarch

        threshold = 2.0 * radii[a]
        subjects = 0
        for b in open_pos:
            if status[b] is CenterStatus.UNPROCESSED and D[monarch, cand[b]] <= threshold + tol:
                status[b] = CenterStatus.SUBJECT
                owner[int(cand[b])] = monarch
                subjects += 1
        logger.debug(
            f"Monarch {monarch}: y={y[a]:.4f}, radius={radii[a]:.4f}, subjects={subjects}"
        )

    annexed: List[int] = []
    leftovers = [b for b in open_pos if status[b] is CenterStatus.UNPROCESSED]
    for b in leftovers:
        center = int(cand[b])
        nearest = min(monarch_pos, key=lambda a: (D[center, cand[a]], int(cand[a])))
        status[b] = CenterStatus.SUBJECT
        owner[center] = int(cand[nearest])
        annexed.append(center)

    promoted: List[int] = []
    if len(monarch_pos) < k:
        chosen = set(monarch_pos)
        pool = sorted(
            (a for a in range(cand.size) if a not in chosen),
            key=lambda a: (-y[a], int(cand[a])),
        )
        for a in pool[: k - len(monarch_pos)]:
            center = int(cand[a])
            status[a] = CenterStatus.MONARCH
            monarch_pos.append(a)
            owner[center] = center
            promoted.append(center)

    if len(monarch_pos) != k:
        raise RoundingInvariantError(f"Selected {len(monarch_pos)} monarchs instead of k={k}.")

    if annexed or promoted:
        logger.debug(f"Monarch completion: annexed={annexed}, promoted={promoted}")
    logger.info(
        f"Monarch procedure: {k} monarchs over {len(open_pos)} open centers "
        f"({len(promoted)} promoted, {len(annexed)} annexed)"
    )
    return MonarchPartition(
        monarchs=cand[monarch_pos].astype(int),
        owner=owner,
        radii=radii[monarch_pos],
        promoted=tuple(promoted),
        annexed=tuple(annexed),
    )
