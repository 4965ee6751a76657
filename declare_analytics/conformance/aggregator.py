"""
Statistics aggregation for DECLARE conformance results.

Joins the parsed model with the checker's result tables and produces the
dashboard views:

1. Constraint statistics are recomputed from the per-trace detail table,
   which is the source of truth. The checker's overview CSV is only used
   when no detail table was provided at all.
2. Each constraint gets a severity bucket from its violation rate and the
   tag an analyst assigned to it (default: MEDIUM priority, no flags).
3. Each replayed trace, plus any case known only from the detail table,
   is joined with its events, aligned events and per-constraint outcomes.
4. Log-level KPIs and constraint groups are derived from the above.

All joins use canonical constraint ids, so tags and statistics written in
CSV or display form still attach to the right model constraint.
"""

import logging
import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Set, Tuple

from ..config import EngineConfig
from ..declare.identifiers import IdentifierReconciler
from ..declare.models import DeclareConstraint
from ..diagnostics import SOURCE_AGGREGATION, ParseDiagnostics
from ..ingest.csv_readers import DetailMap
from ..ingest.loader import ParsedDataset
from ..ingest.models import ConstraintStatistics, ResultType, TraceStatistics
from ..ingest.xes import index_by_case
from .models import (
    ConstraintGroup,
    ConstraintTag,
    DashboardConstraint,
    DashboardOverview,
    DashboardTrace,
    TraceConstraintDetail,
)
from .severity import Severity, severity_for_rate

logger = logging.getLogger(__name__)

# constraint id -> case id -> result types
ConstraintLevelDetail = Dict[str, Dict[str, List[ResultType]]]


@dataclass
class AggregationResult:
    """Output of one aggregation run."""
    constraints: List[DashboardConstraint] = field(default_factory=list)
    traces: List[DashboardTrace] = field(default_factory=list)
    overview: DashboardOverview = field(default_factory=DashboardOverview)
    groups: List[ConstraintGroup] = field(default_factory=list)
    constraint_detail: ConstraintLevelDetail = field(default_factory=dict)


def invert_detail(detail: DetailMap) -> ConstraintLevelDetail:
    """
    Re-key the detail table by constraint.

    Args:
        detail: case id -> constraint id -> result types

    Returns:
        constraint id -> case id -> result types
    """
    inverted: ConstraintLevelDetail = OrderedDict()
    for case_id, per_constraint in detail.items():
        for constraint_id, results in per_constraint.items():
            inverted.setdefault(constraint_id, OrderedDict())[case_id] = list(results)
    return inverted


def _unique(values: List[str]) -> List[str]:
    return list(OrderedDict.fromkeys(values))


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


class StatisticsAggregator:
    """
    Builds dashboard constraints, traces, KPIs and groups.

    Example:
        aggregator = StatisticsAggregator()
        result = aggregator.aggregate(dataset, tags={"Response[A, B]": ConstraintTag(compliance=True)})
        result.overview.overall_compliance
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        reconciler: Optional[IdentifierReconciler] = None,
    ):
        self.config = config or EngineConfig()
        self.reconciler = reconciler or IdentifierReconciler()

    def aggregate(
        self,
        dataset: ParsedDataset,
        tags: Optional[Mapping[str, ConstraintTag]] = None,
        diagnostics: Optional[ParseDiagnostics] = None,
    ) -> AggregationResult:
        """
        Run the full aggregation.

        Args:
            dataset: Parsed inputs
            tags: Constraint id (any format) -> tag
            diagnostics: Collector for reconciliation problems (defaults to
                the dataset's collector)

        Returns:
            AggregationResult
        """
        if diagnostics is None:
            diagnostics = dataset.diagnostics

        model_ids = {c.id for c in dataset.constraints}
        self._report_unknown_ids(dataset.detail, model_ids, diagnostics)

        constraint_detail = invert_detail(dataset.detail)
        constraints = self.build_constraints(
            dataset.constraints,
            constraint_detail,
            dataset.constraint_statistics,
            self.normalize_tags(tags or {}, model_ids),
        )
        traces = self.build_traces(dataset, model_ids)
        overview = self.build_overview(constraints, traces)
        groups = self.build_groups(constraints, self.config.group_by)

        logger.info(
            f"Aggregated {len(constraints)} constraints over {len(traces)} traces "
            f"(conformance {overview.overall_conformance:.1%})"
        )
        return AggregationResult(
            constraints=constraints,
            traces=traces,
            overview=overview,
            groups=groups,
            constraint_detail=constraint_detail,
        )

    def _report_unknown_ids(self, detail: DetailMap, model_ids: Set[str],
                            diagnostics: ParseDiagnostics) -> None:
        unknown: List[str] = []
        for per_constraint in detail.values():
            for constraint_id in per_constraint:
                if constraint_id not in model_ids and constraint_id not in unknown:
                    unknown.append(constraint_id)
        for constraint_id in unknown:
            diagnostics.warn(SOURCE_AGGREGATION,
                             f"detail results for constraint not in model: {constraint_id}")

    def normalize_tags(self, tags: Mapping[str, ConstraintTag],
                       model_ids: Set[str]) -> Dict[str, ConstraintTag]:
        """Re-key tags by canonical id, dropping tags for unknown constraints."""
        normalized: Dict[str, ConstraintTag] = {}
        for raw_id, tag in tags.items():
            constraint_id = self.reconciler.canonical(raw_id)
            if constraint_id not in model_ids:
                logger.warning(f"Tag for unknown constraint ignored: {raw_id}")
                continue
            normalized[constraint_id] = tag
        return normalized

    def compute_constraint_statistics(
        self,
        constraint_id: str,
        per_trace: Mapping[str, List[ResultType]],
    ) -> Tuple[ConstraintStatistics, List[str], List[str]]:
        """
        Count the outcomes of one constraint across all traces.

        Args:
            constraint_id: Canonical constraint id
            per_trace: case id -> result types for this constraint

        Returns:
            (statistics, ids of traces with any activation, ids of traces
            with a non-vacuous violation)
        """
        stats = ConstraintStatistics(constraint_id=constraint_id)
        trace_ids: List[str] = []
        violating: List[str] = []
        for case_id, results in per_trace.items():
            if results:
                trace_ids.append(case_id)
            for result in results:
                stats.add(result)
            if ResultType.VIOLATION in results:
                violating.append(case_id)
        return stats, trace_ids, violating

    def build_constraints(
        self,
        constraints: List[DeclareConstraint],
        constraint_detail: ConstraintLevelDetail,
        reported: List[ConstraintStatistics],
        tags: Mapping[str, ConstraintTag],
    ) -> List[DashboardConstraint]:
        """One DashboardConstraint per model constraint, in model order."""
        reported_by_id = {s.constraint_id: s for s in reported}
        use_reported = not constraint_detail and bool(reported_by_id)
        if use_reported:
            logger.info("No detail results available, using reported constraint statistics")

        dashboard = []
        for constraint in constraints:
            reported_stats = reported_by_id.get(constraint.id)
            if use_reported:
                stats = reported_stats or ConstraintStatistics(constraint_id=constraint.id)
                trace_ids, violating = [], []
            else:
                stats, trace_ids, violating = self.compute_constraint_statistics(
                    constraint.id, constraint_detail.get(constraint.id, {}))
                if reported_stats is not None and reported_stats.activations != stats.activations:
                    logger.debug(
                        f"{constraint.id}: reported {reported_stats.activations} activations, "
                        f"detail has {stats.activations}"
                    )

            dashboard.append(DashboardConstraint(
                constraint=constraint,
                statistics=stats,
                severity=severity_for_rate(stats.violation_rate, self.config.severity_thresholds),
                tag=tags.get(constraint.id, ConstraintTag()),
                reported_statistics=reported_stats,
                trace_ids=trace_ids,
                violating_trace_ids=violating,
            ))
        return dashboard

    def build_trace(
        self,
        replay: TraceStatistics,
        per_constraint: Mapping[str, List[ResultType]],
        model_ids: Set[str],
        case: Any = None,
        aligned_case: Any = None,
    ) -> DashboardTrace:
        """Join one replay row with its events and constraint outcomes."""
        details = [
            TraceConstraintDetail(constraint_id=constraint_id, results=list(results))
            for constraint_id, results in per_constraint.items()
            if constraint_id in model_ids
        ]

        def ids_with(result_type: ResultType) -> List[str]:
            return _unique([d.constraint_id for d in details if result_type in d.results])

        return DashboardTrace(
            case_id=replay.case_id,
            fitness=replay.fitness,
            insertions=replay.insertions,
            deletions=replay.deletions,
            events=list(case.events) if case is not None else [],
            aligned_events=list(aligned_case.events) if aligned_case is not None else [],
            constraint_details=details,
            violated_constraints=ids_with(ResultType.VIOLATION),
            fulfilled_constraints=ids_with(ResultType.FULFILLMENT),
            vacuously_violated_constraints=ids_with(ResultType.VACUOUS_VIOLATION),
            vacuously_fulfilled_constraints=ids_with(ResultType.VACUOUS_FULFILLMENT),
        )

    def build_traces(self, dataset: ParsedDataset, model_ids: Set[str]) -> List[DashboardTrace]:
        """
        One DashboardTrace per replay overview row, in file order.

        Cases that only appear in the detail table follow, in detail order,
        with fitness 0 and no replay counts.
        """
        cases = index_by_case(dataset.event_log)
        aligned_cases = index_by_case(dataset.aligned_log)

        replays = list(dataset.replay_statistics)
        replayed = {replay.case_id for replay in replays}
        detail_only = [case_id for case_id in dataset.detail if case_id not in replayed]
        if detail_only:
            logger.info(f"{len(detail_only)} cases have detail results but no replay row")
        replays.extend(TraceStatistics(case_id=case_id) for case_id in detail_only)

        return [
            self.build_trace(
                replay,
                dataset.detail.get(replay.case_id, {}),
                model_ids,
                cases.get(replay.case_id),
                aligned_cases.get(replay.case_id),
            )
            for replay in replays
        ]

    def build_overview(
        self,
        constraints: List[DashboardConstraint],
        traces: List[DashboardTrace],
    ) -> DashboardOverview:
        """
        Compute log-level KPIs.

        Compliance, quality and efficiency are the share of traces that
        violate none of the constraints carrying that tag flag.
        """
        n = len(traces)
        # Cases missing from the event log have no variant
        variants = {trace.variant for trace in traces if trace.events}

        def share_respecting(flag: str) -> float:
            flagged = {c.id for c in constraints if getattr(c.tag, flag)}
            ok = sum(1 for t in traces if not flagged.intersection(t.violated_constraints))
            return _ratio(ok, n)

        return DashboardOverview(
            total_traces=n,
            total_variants=len(variants),
            total_constraints=len(constraints),
            overall_fitness=_ratio(sum(t.fitness for t in traces), n),
            overall_conformance=_ratio(sum(1 for t in traces if not t.has_violations), n),
            overall_compliance=share_respecting("compliance"),
            overall_quality=share_respecting("quality"),
            overall_efficiency=share_respecting("efficiency"),
            critical_violations=sum(
                1 for c in constraints
                if c.tag.priority == Severity.CRITICAL and c.violation_count > 0
            ),
            high_priority_violations=sum(
                1 for c in constraints
                if c.tag.priority == Severity.HIGH and c.violation_count > 0
            ),
            average_insertions=_ratio(sum(t.insertions for t in traces), n),
            average_deletions=_ratio(sum(t.deletions for t in traces), n),
        )

    def build_groups(
        self,
        constraints: List[DashboardConstraint],
        group_by: str = "type",
    ) -> List[ConstraintGroup]:
        """
        Group constraints by template type or by tag group.

        Args:
            constraints: Dashboard constraints
            group_by: "type" or "tag"; untagged constraints fall into "Ungrouped"

        Returns:
            Groups in order of first appearance
        """
        members: Dict[str, List[DashboardConstraint]] = OrderedDict()
        for constraint in constraints:
            if group_by == "tag":
                key = constraint.tag.group or "Ungrouped"
            else:
                key = constraint.type
            members.setdefault(key, []).append(constraint)

        groups = []
        for key, group_constraints in members.items():
            average = _ratio(sum(c.violation_rate for c in group_constraints), len(group_constraints))
            groups.append(ConstraintGroup(
                id=f"group_{re.sub(r'[^A-Za-z0-9]+', '_', key)}",
                name=f"{key} Constraints",
                key=key,
                constraint_ids=[c.id for c in group_constraints],
                total_activations=sum(c.activations for c in group_constraints),
                total_violations=sum(c.violation_count for c in group_constraints),
                total_fulfilments=sum(c.fulfilment_count for c in group_constraints),
                average_violation_rate=average,
                severity=severity_for_rate(average, self.config.severity_thresholds),
            ))
        return groups


def aggregate_dataset(
    dataset: ParsedDataset,
    tags: Optional[Mapping[str, ConstraintTag]] = None,
    config: Optional[EngineConfig] = None,
) -> AggregationResult:
    """
    Convenience function to aggregate a parsed dataset.

    Args:
        dataset: Parsed inputs
        tags: Optional constraint tags
        config: Optional engine configuration

    Returns:
        AggregationResult
    """
    return StatisticsAggregator(config).aggregate(dataset, tags)
