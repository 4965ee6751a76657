"""
Dashboard Models for Conformance Analytics.

Reconciled, per-constraint and per-trace views built from the conformance
checker outputs:

- ConstraintTag: analyst-assigned priority and business dimensions
- TraceConstraintDetail: outcomes of one constraint in one trace
- DashboardConstraint: constraint + recomputed statistics + severity + tag
- DashboardTrace: replay result + events + per-constraint outcomes
- DashboardOverview: log-level KPIs
- ConstraintGroup: aggregate over constraints sharing a type or tag group

Vacuity convention:
    Vacuous outcomes are stored separately from non-vacuous ones. Rates
    and severity use totals (vacuous included). Trace-level violated and
    fulfilled constraint lists, and therefore conformance KPIs, only
    count non-vacuous outcomes.
"""

from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ..declare.models import DeclareConstraint
from ..ingest.models import AlignedEvent, ConstraintStatistics, ProcessEvent, ResultType
from .severity import Severity

VARIANT_SEPARATOR = " → "


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)


@dataclass(frozen=True)
class ConstraintTag:
    """
    Business tag attached to a constraint by an analyst.

    Attributes:
        priority: Business priority (defaults to MEDIUM)
        quality: Constraint guards process quality
        efficiency: Constraint guards process efficiency
        compliance: Constraint guards regulatory compliance
        group: Optional free-form group name
    """
    priority: Severity = Severity.MEDIUM
    quality: bool = False
    efficiency: bool = False
    compliance: bool = False
    group: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ConstraintTag":
        priority = data.get("priority", Severity.MEDIUM.value)
        return cls(
            priority=priority if isinstance(priority, Severity) else Severity.parse(str(priority)),
            quality=_as_bool(data.get("quality", False)),
            efficiency=_as_bool(data.get("efficiency", False)),
            compliance=_as_bool(data.get("compliance", False)),
            group=data.get("group") or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "priority": self.priority.value,
            "quality": self.quality,
            "efficiency": self.efficiency,
            "compliance": self.compliance,
            "group": self.group,
        }


@dataclass
class TraceConstraintDetail:
    """Activation outcomes of one constraint within one trace."""
    constraint_id: str
    results: List[ResultType] = field(default_factory=list)

    def _count(self, result_type: ResultType) -> int:
        return sum(1 for r in self.results if r == result_type)

    @property
    def fulfilments(self) -> int:
        return self._count(ResultType.FULFILLMENT)

    @property
    def violations(self) -> int:
        return self._count(ResultType.VIOLATION)

    @property
    def vacuous_fulfilments(self) -> int:
        return self._count(ResultType.VACUOUS_FULFILLMENT)

    @property
    def vacuous_violations(self) -> int:
        return self._count(ResultType.VACUOUS_VIOLATION)

    @property
    def total_activations(self) -> int:
        return len(self.results)

    @property
    def total_fulfilments(self) -> int:
        return self.fulfilments + self.vacuous_fulfilments

    @property
    def total_violations(self) -> int:
        return self.violations + self.vacuous_violations

    @property
    def status(self) -> str:
        """Mixed, Violated, Fulfilled or No Activity."""
        violated = self.total_violations > 0
        fulfilled = self.total_fulfilments > 0
        if violated and fulfilled:
            return "Mixed"
        if violated:
            return "Violated"
        if fulfilled:
            return "Fulfilled"
        return "No Activity"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "constraintId": self.constraint_id,
            "status": self.status,
            "resultTypes": [r.value for r in self.results],
            "totalActivations": self.total_activations,
            "totalFulfilments": self.total_fulfilments,
            "totalViolations": self.total_violations,
            "vacuousFulfilments": self.vacuous_fulfilments,
            "vacuousViolations": self.vacuous_violations,
        }


@dataclass
class DashboardConstraint:
    """
    A model constraint with its reconciled statistics.

    ``statistics`` is recomputed from the per-trace detail table;
    ``reported_statistics`` is the checker's own overview row, kept for
    cross-checking.
    """
    constraint: DeclareConstraint
    statistics: ConstraintStatistics
    severity: Severity
    tag: ConstraintTag = field(default_factory=ConstraintTag)
    reported_statistics: Optional[ConstraintStatistics] = None
    trace_ids: List[str] = field(default_factory=list)
    violating_trace_ids: List[str] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.constraint.id

    @property
    def type(self) -> str:
        return self.constraint.type

    @property
    def activities(self) -> List[str]:
        return list(self.constraint.activities)

    @property
    def activations(self) -> int:
        return self.statistics.activations

    @property
    def violation_count(self) -> int:
        return self.statistics.total_violations

    @property
    def fulfilment_count(self) -> int:
        return self.statistics.total_fulfilments

    @property
    def violation_rate(self) -> float:
        return self.statistics.violation_rate

    @property
    def is_time_constraint(self) -> bool:
        return self.constraint.is_time_constraint

    def with_tag(self, tag: ConstraintTag) -> "DashboardConstraint":
        """Copy of this record carrying a different tag."""
        return replace(self, tag=tag)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "activities": self.activities,
            "description": self.constraint.describe(),
            "helpText": self.constraint.help_text,
            "statistics": self.statistics.to_dict(),
            "reportedStatistics": (
                self.reported_statistics.to_dict() if self.reported_statistics else None
            ),
            "violationCount": self.violation_count,
            "fulfilmentCount": self.fulfilment_count,
            "violationRate": round(self.violation_rate, 4),
            "severity": self.severity.value,
            "isTimeConstraint": self.is_time_constraint,
            "tag": self.tag.to_dict(),
            "traceCount": len(self.trace_ids),
            "violatingTraceCount": len(self.violating_trace_ids),
        }


@dataclass
class DashboardTrace:
    """
    A trace with its replay result and constraint outcomes.

    ``events`` keeps log order; ``aligned_events`` is empty when the
    aligned log does not contain the case.
    """
    case_id: str
    fitness: float = 0.0
    insertions: int = 0
    deletions: int = 0
    events: List[ProcessEvent] = field(default_factory=list)
    aligned_events: List[AlignedEvent] = field(default_factory=list)
    constraint_details: List[TraceConstraintDetail] = field(default_factory=list)
    violated_constraints: List[str] = field(default_factory=list)
    fulfilled_constraints: List[str] = field(default_factory=list)
    vacuously_violated_constraints: List[str] = field(default_factory=list)
    vacuously_fulfilled_constraints: List[str] = field(default_factory=list)

    @property
    def activities(self) -> List[str]:
        return [event.activity for event in self.events]

    @property
    def aligned_activities(self) -> List[str]:
        return [event.activity for event in self.aligned_events]

    @property
    def variant(self) -> str:
        return VARIANT_SEPARATOR.join(self.activities)

    @property
    def activations(self) -> int:
        return sum(d.total_activations for d in self.constraint_details)

    @property
    def fulfilments(self) -> int:
        return sum(d.fulfilments for d in self.constraint_details)

    @property
    def violations(self) -> int:
        return sum(d.violations for d in self.constraint_details)

    @property
    def vacuous_fulfilments(self) -> int:
        return sum(d.vacuous_fulfilments for d in self.constraint_details)

    @property
    def vacuous_violations(self) -> int:
        return sum(d.vacuous_violations for d in self.constraint_details)

    @property
    def has_violations(self) -> bool:
        """Whether any constraint was violated non-vacuously."""
        return bool(self.violated_constraints)

    def detail_for(self, constraint_id: str) -> Optional[TraceConstraintDetail]:
        for detail in self.constraint_details:
            if detail.constraint_id == constraint_id:
                return detail
        return None

    def to_dict(self, include_events: bool = True) -> Dict[str, Any]:
        data = {
            "caseId": self.case_id,
            "fitness": self.fitness,
            "insertions": self.insertions,
            "deletions": self.deletions,
            "variant": self.variant,
            "activations": self.activations,
            "fulfilments": self.fulfilments,
            "violations": self.violations,
            "vacuousFulfilments": self.vacuous_fulfilments,
            "vacuousViolations": self.vacuous_violations,
            "violatedConstraints": list(self.violated_constraints),
            "fulfilledConstraints": list(self.fulfilled_constraints),
            "vacuouslyViolatedConstraints": list(self.vacuously_violated_constraints),
            "vacuouslyFulfilledConstraints": list(self.vacuously_fulfilled_constraints),
            "constraintDetails": [d.to_dict() for d in self.constraint_details],
        }
        if include_events:
            data["events"] = [e.to_dict() for e in self.events]
            data["alignedEvents"] = [e.to_dict() for e in self.aligned_events]
        return data


@dataclass
class DashboardOverview:
    """Log-level KPIs. Ratios are fractions in [0, 1]."""
    total_traces: int = 0
    total_variants: int = 0
    total_constraints: int = 0
    overall_fitness: float = 0.0
    overall_conformance: float = 0.0
    overall_compliance: float = 0.0
    overall_quality: float = 0.0
    overall_efficiency: float = 0.0
    critical_violations: int = 0
    high_priority_violations: int = 0
    average_insertions: float = 0.0
    average_deletions: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalTraces": self.total_traces,
            "totalVariants": self.total_variants,
            "totalConstraints": self.total_constraints,
            "overallFitness": round(self.overall_fitness, 4),
            "overallConformance": round(self.overall_conformance, 4),
            "overallCompliance": round(self.overall_compliance, 4),
            "overallQuality": round(self.overall_quality, 4),
            "overallEfficiency": round(self.overall_efficiency, 4),
            "criticalViolations": self.critical_violations,
            "highPriorityViolations": self.high_priority_violations,
            "averageInsertions": round(self.average_insertions, 4),
            "averageDeletions": round(self.average_deletions, 4),
        }


@dataclass
class ConstraintGroup:
    """Constraints sharing a template type or a tag group."""
    id: str
    name: str
    key: str
    constraint_ids: List[str] = field(default_factory=list)
    total_activations: int = 0
    total_violations: int = 0
    total_fulfilments: int = 0
    average_violation_rate: float = 0.0
    severity: Severity = Severity.LOW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "key": self.key,
            "constraintIds": list(self.constraint_ids),
            "totalActivations": self.total_activations,
            "totalViolations": self.total_violations,
            "totalFulfilments": self.total_fulfilments,
            "averageViolationRate": round(self.average_violation_rate, 4),
            "severity": self.severity.value,
        }
