"""
Trace filtering and sorting for drill-down views.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from .models import DashboardConstraint, DashboardTrace

SORT_FIELDS = ("caseId", "fitness", "violations", "insertions", "deletions")


@dataclass
class TraceFilter:
    """
    Criteria for selecting traces. Unset criteria match everything.

    Attributes:
        min_fitness: Lowest fitness to keep
        max_fitness: Highest fitness to keep
        has_violations: Keep only traces with a non-vacuous violation
        has_fulfilments: Keep only traces with a non-vacuous fulfilment
        has_insertions: Keep only traces with replay insertions
        has_deletions: Keep only traces with replay deletions
        constraint_ids: Keep traces violating at least one of these constraints
        constraint_types: Keep traces with an outcome for a constraint of one
            of these template types
        case_ids: Keep only these cases
        variant_contains: Keep traces whose variant contains this activity
    """
    min_fitness: Optional[float] = None
    max_fitness: Optional[float] = None
    has_violations: bool = False
    has_fulfilments: bool = False
    has_insertions: bool = False
    has_deletions: bool = False
    constraint_ids: List[str] = field(default_factory=list)
    constraint_types: List[str] = field(default_factory=list)
    case_ids: List[str] = field(default_factory=list)
    variant_contains: Optional[str] = None

    def matches(self, trace: DashboardTrace, types_by_id: Dict[str, str]) -> bool:
        if self.min_fitness is not None and trace.fitness < self.min_fitness:
            return False
        if self.max_fitness is not None and trace.fitness > self.max_fitness:
            return False
        if self.has_violations and trace.violations == 0:
            return False
        if self.has_fulfilments and trace.fulfilments == 0:
            return False
        if self.has_insertions and trace.insertions == 0:
            return False
        if self.has_deletions and trace.deletions == 0:
            return False
        if self.case_ids and trace.case_id not in self.case_ids:
            return False
        if self.variant_contains and self.variant_contains not in trace.activities:
            return False
        if self.constraint_ids and not set(self.constraint_ids).intersection(trace.violated_constraints):
            return False
        if self.constraint_types:
            trace_types = {
                types_by_id.get(cid)
                for cid in trace.violated_constraints + trace.fulfilled_constraints
            }
            if not trace_types.intersection(self.constraint_types):
                return False
        return True


def filter_traces(
    traces: Sequence[DashboardTrace],
    trace_filter: TraceFilter,
    constraints: Sequence[DashboardConstraint] = (),
) -> List[DashboardTrace]:
    """
    Apply a filter, keeping input order.

    Args:
        traces: Traces to filter
        trace_filter: Criteria
        constraints: Dashboard constraints, needed to resolve constraint types

    Returns:
        Matching traces
    """
    types_by_id = {c.id: c.type for c in constraints}
    return [trace for trace in traces if trace_filter.matches(trace, types_by_id)]


def sort_traces(
    traces: Sequence[DashboardTrace],
    sort_field: str = "caseId",
    direction: str = "asc",
) -> List[DashboardTrace]:
    """
    Sort traces by one field.

    Args:
        traces: Traces to sort
        sort_field: caseId, fitness, violations, insertions or deletions
        direction: "asc" or "desc"

    Returns:
        New sorted list; ties keep input order
    """
    if sort_field not in SORT_FIELDS:
        raise ValueError(f"Unknown sort field: {sort_field}. Available: {list(SORT_FIELDS)}")
    if direction not in ("asc", "desc"):
        raise ValueError(f"Unknown sort direction: {direction}")

    keys = {
        "caseId": lambda t: t.case_id,
        "fitness": lambda t: t.fitness,
        "violations": lambda t: t.violations,
        "insertions": lambda t: t.insertions,
        "deletions": lambda t: t.deletions,
    }
    return sorted(traces, key=keys[sort_field], reverse=direction == "desc")
