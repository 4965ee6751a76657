"""
Record types produced by the input readers.

These mirror the files written by the external conformance checker:

- ConstraintStatistics: one row of the analysis overview CSV
- ResultType: outcome of one constraint activation in one trace (detail CSV)
- TraceStatistics: one row of the replay overview CSV
- ProcessEvent / ProcessCase: the raw event log
- AlignedEvent / AlignedCase: the aligned log produced by replay
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ResultType(Enum):
    """Outcome of a constraint evaluation on one activation."""

    FULFILLMENT = "fulfillment"
    VIOLATION = "violation"
    VACUOUS_FULFILLMENT = "vac. fulfillment"
    VACUOUS_VIOLATION = "vac. violation"

    @property
    def is_vacuous(self) -> bool:
        return self in (ResultType.VACUOUS_FULFILLMENT, ResultType.VACUOUS_VIOLATION)

    @property
    def is_violation(self) -> bool:
        return self in (ResultType.VIOLATION, ResultType.VACUOUS_VIOLATION)

    @classmethod
    def parse(cls, text: str) -> Optional["ResultType"]:
        """
        Parse a result label as written by the checker.

        Accepts any case, the British "fulfilment" spelling and "vacuous"
        written out in full. Returns None for unknown labels.
        """
        label = " ".join(text.strip().lower().split())
        label = label.replace("fulfilment", "fulfillment").replace("vacuous ", "vac. ")
        label = label.replace("vac.fulfillment", "vac. fulfillment").replace("vac.violation", "vac. violation")
        for member in cls:
            if member.value == label:
                return member
        return None


@dataclass
class ConstraintStatistics:
    """
    Activation counts for one constraint over the whole log.

    Vacuous counts are kept separately; the ``total_*`` properties fold
    them in. ``activations`` covers every outcome, so for statistics derived
    from the detail table ``activations == total_fulfilments + total_violations``.

    Attributes:
        constraint_id: Canonical constraint id
        activations: Number of evaluated activations
        fulfilments: Non-vacuous fulfilments
        violations: Non-vacuous violations
        vacuous_fulfilments: Vacuous fulfilments
        vacuous_violations: Vacuous violations
    """
    constraint_id: str
    activations: int = 0
    fulfilments: int = 0
    violations: int = 0
    vacuous_fulfilments: int = 0
    vacuous_violations: int = 0

    @property
    def total_fulfilments(self) -> int:
        return self.fulfilments + self.vacuous_fulfilments

    @property
    def total_violations(self) -> int:
        return self.violations + self.vacuous_violations

    @property
    def violation_rate(self) -> float:
        """Share of activations that ended in a violation (0.0 without activations)."""
        if self.activations <= 0:
            return 0.0
        return self.total_violations / self.activations

    def add(self, result: ResultType) -> None:
        """Count one activation outcome."""
        self.activations += 1
        if result == ResultType.FULFILLMENT:
            self.fulfilments += 1
        elif result == ResultType.VIOLATION:
            self.violations += 1
        elif result == ResultType.VACUOUS_FULFILLMENT:
            self.vacuous_fulfilments += 1
        else:
            self.vacuous_violations += 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "constraintId": self.constraint_id,
            "activations": self.activations,
            "fulfilments": self.fulfilments,
            "violations": self.violations,
            "vacuousFulfilments": self.vacuous_fulfilments,
            "vacuousViolations": self.vacuous_violations,
            "totalFulfilments": self.total_fulfilments,
            "totalViolations": self.total_violations,
            "violationRate": round(self.violation_rate, 4),
        }


@dataclass
class TraceStatistics:
    """Replay result for one trace."""
    case_id: str
    insertions: int = 0
    deletions: int = 0
    fitness: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caseId": self.case_id,
            "insertions": self.insertions,
            "deletions": self.deletions,
            "fitness": self.fitness,
        }


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class ProcessEvent:
    """An event of the raw event log."""
    event_id: str
    activity: str
    timestamp: Optional[datetime] = None
    resource: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.event_id,
            "activity": self.activity,
            "timestamp": _iso(self.timestamp),
            "resource": self.resource,
            "attributes": dict(self.attributes),
        }


def time_sorted(events: List[Any]) -> List[Any]:
    """Stable sort by timestamp; events without a timestamp keep their slot at the end."""
    indexed = list(enumerate(events))
    indexed.sort(key=lambda item: (item[1].timestamp is None, item[1].timestamp or datetime.min, item[0]))
    return [event for _, event in indexed]


@dataclass
class ProcessCase:
    """
    A case (trace) of the raw event log.

    ``events`` keeps log order. Time-based computations must use
    :meth:`sorted_events`.
    """
    case_id: str
    events: List[ProcessEvent] = field(default_factory=list)

    @property
    def activities(self) -> List[str]:
        return [event.activity for event in self.events]

    def sorted_events(self) -> List[ProcessEvent]:
        return time_sorted(self.events)

    def time_span(self) -> Optional[Tuple[datetime, datetime]]:
        """(first, last) timestamp, or None if the case has no timestamps."""
        stamps = [event.timestamp for event in self.events if event.timestamp is not None]
        if not stamps:
            return None
        return min(stamps), max(stamps)

    def to_dict(self) -> Dict[str, Any]:
        return {"caseId": self.case_id, "events": [e.to_dict() for e in self.events]}


@dataclass
class AlignedEvent:
    """
    A move of the aligned log.

    Attributes:
        event_id: Event id within the aligned case
        original_activity: Activity as observed in the log (empty for model moves)
        aligned_activity: Activity as expected by the model (empty for log moves)
        move_type: Move label written by the replayer ("complete", "insertion", ...)
        timestamp: Event time, if recorded
    """
    event_id: str
    original_activity: str = ""
    aligned_activity: str = ""
    move_type: str = "complete"
    timestamp: Optional[datetime] = None

    @property
    def activity(self) -> str:
        """Activity on the model side of the alignment."""
        return self.aligned_activity or self.original_activity or ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.event_id,
            "originalActivity": self.original_activity,
            "alignedActivity": self.aligned_activity,
            "type": self.move_type,
            "timestamp": _iso(self.timestamp),
        }


@dataclass
class AlignedCase:
    """A case of the aligned log."""
    case_id: str
    events: List[AlignedEvent] = field(default_factory=list)

    @property
    def activities(self) -> List[str]:
        return [event.activity for event in self.events]

    def to_dict(self) -> Dict[str, Any]:
        return {"caseId": self.case_id, "events": [e.to_dict() for e in self.events]}
