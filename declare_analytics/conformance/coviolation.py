"""
Constraint co-violation analysis.

Counts, for every pair of constraints, how many traces violate both. High
off-diagonal counts point at constraints that fail together, often because
they share an activity or a common root cause.

Matrix semantics:
    counts[i][j] = number of traces whose non-vacuous violations include
    both constraint i and constraint j. The matrix is symmetric and the
    diagonal counts[i][i] is the number of traces violating constraint i.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np

from .models import DashboardConstraint, DashboardTrace

logger = logging.getLogger(__name__)


@dataclass
class CoViolationMatrix:
    """
    Square co-violation counts indexed by constraint id.

    Attributes:
        constraint_ids: Row/column order
        counts: N x N integer matrix
    """
    constraint_ids: List[str]
    counts: np.ndarray

    def __post_init__(self):
        self._index = {cid: i for i, cid in enumerate(self.constraint_ids)}

    def index_of(self, constraint_id: str) -> int:
        return self._index[constraint_id]

    def get(self, first: str, second: str) -> int:
        """Number of traces violating both constraints (0 for unknown ids)."""
        if first not in self._index or second not in self._index:
            return 0
        return int(self.counts[self._index[first], self._index[second]])

    def is_symmetric(self) -> bool:
        return bool(np.array_equal(self.counts, self.counts.T))

    @property
    def max_count(self) -> int:
        return int(self.counts.max()) if self.counts.size else 0

    @property
    def max_off_diagonal(self) -> int:
        if len(self.constraint_ids) < 2:
            return 0
        off = self.counts.copy()
        np.fill_diagonal(off, 0)
        return int(off.max())

    def top_pairs(self, limit: int = 10) -> List[Tuple[str, str, int]]:
        """
        Most frequently co-violated distinct pairs.

        Args:
            limit: Maximum number of pairs

        Returns:
            (first id, second id, count) with count > 0, highest first
        """
        rows, cols = np.triu_indices(len(self.constraint_ids), k=1)
        pairs = [
            (self.constraint_ids[i], self.constraint_ids[j], int(self.counts[i, j]))
            for i, j in zip(rows, cols)
            if self.counts[i, j] > 0
        ]
        pairs.sort(key=lambda pair: -pair[2])
        return pairs[:limit]

    def to_list(self) -> List[List[int]]:
        return self.counts.tolist()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "constraintIds": list(self.constraint_ids),
            "matrix": self.to_list(),
            "maxCount": self.max_count,
        }


def build_coviolation_matrix(
    constraints: Sequence[DashboardConstraint],
    traces: Sequence[DashboardTrace],
) -> CoViolationMatrix:
    """
    Build the co-violation matrix.

    Args:
        constraints: Constraints in the desired row order
        traces: Traces with their violated constraint lists

    Returns:
        CoViolationMatrix over ``constraints``
    """
    ids = [c.id for c in constraints]
    index = {cid: i for i, cid in enumerate(ids)}
    counts = np.zeros((len(ids), len(ids)), dtype=np.int64)

    for trace in traces:
        violated = sorted({index[cid] for cid in trace.violated_constraints if cid in index})
        if not violated:
            continue
        positions = np.array(violated)
        counts[np.ix_(positions, positions)] += 1

    matrix = CoViolationMatrix(constraint_ids=ids, counts=counts)
    logger.info(f"Built {len(ids)}x{len(ids)} co-violation matrix, max pair count {matrix.max_off_diagonal}")
    return matrix
