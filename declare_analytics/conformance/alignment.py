"""
Log-versus-model sequence alignment.

Recomputes, for one trace, the step-by-step alignment between the activity
sequence observed in the event log and the sequence the model expects (the
aligned log), so an analyst can see where the replay inserted or removed
activities.

Alignment is a minimum edit distance with unit costs for insertion,
deletion and substitution (Levenshtein, 1966). Backtracking yields only
three operation kinds:

- MATCH:  the activity appears in both sequences (synchronous move)
- INSERT: the model expects an activity the log does not have
- DELETE: the log has an activity the model does not expect

A mismatch is therefore reported as one insertion plus one deletion. Ties
are broken deterministically: a match is preferred whenever the current
elements are equal, and an insertion is preferred over a deletion when
both have the same cost.

References:
- Adriansyah, A., van Dongen, B.F., & van der Aalst, W.M.P. (2011).
  Conformance checking using cost-based fitness analysis.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

from ..ingest.models import AlignedEvent, ProcessEvent

logger = logging.getLogger(__name__)


class AlignmentOperationType(Enum):
    """Edit operations produced by backtracking."""

    MATCH = "match"
    INSERT = "insert"
    DELETE = "delete"


class StepType(Enum):
    """Alignment step labels shown to analysts."""

    SYNCHRONOUS = "synchronous"
    INSERTION = "insertion"
    DELETION = "deletion"


STEP_DESCRIPTIONS = {
    StepType.SYNCHRONOUS: "No difference",
    StepType.INSERTION: "Model expects this event",
    StepType.DELETION: "Log has unexpected event",
}


@dataclass(frozen=True)
class AlignmentOperation:
    """One edit operation; ``activity`` is the element it consumed."""
    type: AlignmentOperationType
    activity: str


def _distance_table(raw: Sequence[str], aligned: Sequence[str]) -> List[List[int]]:
    rows, cols = len(raw), len(aligned)
    table = [[0] * (cols + 1) for _ in range(rows + 1)]
    for i in range(rows + 1):
        table[i][0] = i
    for j in range(cols + 1):
        table[0][j] = j

    for i in range(1, rows + 1):
        for j in range(1, cols + 1):
            if raw[i - 1] == aligned[j - 1]:
                table[i][j] = table[i - 1][j - 1]
            else:
                table[i][j] = 1 + min(table[i - 1][j], table[i][j - 1], table[i - 1][j - 1])
    return table


def edit_distance(raw: Sequence[str], aligned: Sequence[str]) -> int:
    """Minimum number of insertions, deletions and substitutions."""
    return _distance_table(raw, aligned)[len(raw)][len(aligned)]


def align_sequences(raw: Sequence[str], aligned: Sequence[str]) -> List[AlignmentOperation]:
    """
    Align the observed sequence against the expected one.

    Args:
        raw: Activities as observed in the log
        aligned: Activities as expected by the model

    Returns:
        Operations in sequence order; MATCH and DELETE consume one element
        of ``raw``, MATCH and INSERT consume one element of ``aligned``
    """
    table = _distance_table(raw, aligned)
    operations: List[AlignmentOperation] = []
    i, j = len(raw), len(aligned)

    while i > 0 or j > 0:
        if i > 0 and j > 0 and raw[i - 1] == aligned[j - 1]:
            operations.append(AlignmentOperation(AlignmentOperationType.MATCH, raw[i - 1]))
            i -= 1
            j -= 1
        elif j > 0 and (i == 0 or table[i][j - 1] <= table[i - 1][j]):
            operations.append(AlignmentOperation(AlignmentOperationType.INSERT, aligned[j - 1]))
            j -= 1
        else:
            operations.append(AlignmentOperation(AlignmentOperationType.DELETE, raw[i - 1]))
            i -= 1

    operations.reverse()
    return operations


@dataclass
class AlignmentStep:
    """One row of the log-versus-model comparison."""
    type: StepType
    original_activity: Optional[str] = None
    aligned_activity: Optional[str] = None
    timestamp: Optional[datetime] = None

    @property
    def has_difference(self) -> bool:
        return self.type != StepType.SYNCHRONOUS

    @property
    def description(self) -> str:
        return STEP_DESCRIPTIONS[self.type]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "originalActivity": self.original_activity,
            "alignedActivity": self.aligned_activity,
            "timestamp": self.timestamp.isoformat() if self.timestamp else None,
            "hasDifference": self.has_difference,
            "description": self.description,
        }


@dataclass
class TraceAlignment:
    """Full alignment of one trace with summary counts."""
    case_id: str
    steps: List[AlignmentStep] = field(default_factory=list)

    def _count(self, step_type: StepType) -> int:
        return sum(1 for step in self.steps if step.type == step_type)

    @property
    def synchronous_moves(self) -> int:
        return self._count(StepType.SYNCHRONOUS)

    @property
    def insertions(self) -> int:
        return self._count(StepType.INSERTION)

    @property
    def deletions(self) -> int:
        return self._count(StepType.DELETION)

    @property
    def cost(self) -> int:
        return self.insertions + self.deletions

    def matches_counts(self, insertions: int, deletions: int) -> bool:
        """Whether the recomputed counts agree with the replay's own counts."""
        return self.insertions == insertions and self.deletions == deletions

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caseId": self.case_id,
            "synchronousMoves": self.synchronous_moves,
            "insertions": self.insertions,
            "deletions": self.deletions,
            "cost": self.cost,
            "steps": [step.to_dict() for step in self.steps],
        }


class TraceAligner:
    """
    Builds step-by-step alignments for traces.

    Example:
        aligner = TraceAligner()
        alignment = aligner.compare("case_1", trace.events, trace.aligned_events)
        for step in alignment.steps:
            print(step.type.value, step.original_activity, step.aligned_activity)
    """

    def compare(
        self,
        case_id: str,
        events: Sequence[ProcessEvent],
        aligned_events: Sequence[AlignedEvent],
    ) -> TraceAlignment:
        """
        Align the log events of a case against its aligned events.

        Args:
            case_id: Case identifier
            events: Events in log order
            aligned_events: Moves of the aligned log

        Returns:
            TraceAlignment whose steps carry the activity names and the
            timestamp of the element each operation consumed
        """
        raw = [event.activity for event in events]
        expected = [event.activity for event in aligned_events]
        operations = align_sequences(raw, expected)

        steps: List[AlignmentStep] = []
        raw_index = 0
        aligned_index = 0
        for operation in operations:
            if operation.type == AlignmentOperationType.MATCH:
                event, moved = events[raw_index], aligned_events[aligned_index]
                steps.append(AlignmentStep(
                    type=StepType.SYNCHRONOUS,
                    original_activity=event.activity,
                    aligned_activity=moved.activity,
                    timestamp=event.timestamp or moved.timestamp,
                ))
                raw_index += 1
                aligned_index += 1
            elif operation.type == AlignmentOperationType.INSERT:
                moved = aligned_events[aligned_index]
                steps.append(AlignmentStep(
                    type=StepType.INSERTION,
                    aligned_activity=moved.activity,
                    timestamp=moved.timestamp,
                ))
                aligned_index += 1
            else:
                event = events[raw_index]
                steps.append(AlignmentStep(
                    type=StepType.DELETION,
                    original_activity=event.activity,
                    timestamp=event.timestamp,
                ))
                raw_index += 1

        return TraceAlignment(case_id=case_id, steps=steps)


def align_trace(trace: Any) -> TraceAlignment:
    """
    Convenience function to align a DashboardTrace.

    Logs a debug message when the recomputed counts differ from the
    replay's insertions and deletions.
    """
    alignment = TraceAligner().compare(trace.case_id, trace.events, trace.aligned_events)
    if trace.aligned_events and not alignment.matches_counts(trace.insertions, trace.deletions):
        logger.debug(
            f"{trace.case_id}: recomputed {alignment.insertions} insertions / "
            f"{alignment.deletions} deletions, replay reported {trace.insertions} / {trace.deletions}"
        )
    return alignment
