"""
Conformance analysis engine.

Runs the whole pipeline for one dataset and returns every view in a single
AnalysisBundle:

    load -> aggregate -> co-violation matrix -> model graph
         -> process flow graph -> time/resource insights

Each run builds fresh structures from its inputs; nothing is cached
between runs, so re-running with different tags or coverage settings
never sees stale results.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from .config import EngineConfig
from .conformance.aggregator import ConstraintLevelDetail, StatisticsAggregator
from .conformance.alignment import TraceAlignment, align_trace
from .conformance.coviolation import CoViolationMatrix, build_coviolation_matrix
from .conformance.models import (
    ConstraintGroup,
    ConstraintTag,
    DashboardConstraint,
    DashboardOverview,
    DashboardTrace,
)
from .declare.identifiers import IdentifierReconciler
from .declare.templates import TemplateRegistry
from .diagnostics import ParseDiagnostics
from .errors import InputFileError
from .ingest.loader import DatasetLoader, ParsedDataset
from .ingest.models import ResultType
from .insights.violations import ViolationInsights, build_insights
from .visualization.flow_graph import ProcessFlowGraph, ProcessFlowGraphBuilder
from .visualization.model_graph import ModelGraph, build_model_graph

logger = logging.getLogger(__name__)

TagInput = Union[str, Path, Mapping[str, Any], List[Any]]


def _coerce_tag(value: Any) -> ConstraintTag:
    if isinstance(value, ConstraintTag):
        return value
    if isinstance(value, Mapping):
        return ConstraintTag.from_dict(value)
    raise InputFileError(f"Invalid tag entry: {value!r}")


def load_tags(source: Optional[TagInput]) -> Dict[str, ConstraintTag]:
    """
    Load constraint tags.

    Accepts a path to a JSON file or already-decoded data in one of two
    shapes::

        {"Response[A, B]": {"priority": "HIGH", "compliance": true}}
        [{"id": "Response[A, B]", "tag": {"priority": "HIGH"}}]

    Constraint ids may be in any supported format; they are reconciled
    against the model during aggregation.

    Args:
        source: JSON path, dict, list or None

    Returns:
        Constraint id -> ConstraintTag

    Raises:
        InputFileError: If the file cannot be read or an entry is malformed
    """
    if source is None:
        return {}

    if isinstance(source, (str, Path)):
        path = Path(source)
        try:
            with open(path, encoding="utf-8") as f:
                source = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise InputFileError(f"Could not read tags file {path}: {e}", str(path))

    tags: Dict[str, ConstraintTag] = {}
    if isinstance(source, Mapping):
        for constraint_id, value in source.items():
            tags[str(constraint_id)] = _coerce_tag(value)
    elif isinstance(source, list):
        for entry in source:
            if not isinstance(entry, Mapping) or "id" not in entry:
                raise InputFileError(f"Tag entry without id: {entry!r}")
            value = entry.get("tag")
            if value is None:
                value = {k: v for k, v in entry.items() if k != "id"}
            tags[str(entry["id"])] = _coerce_tag(value)
    else:
        raise InputFileError(f"Unsupported tags format: {type(source).__name__}")

    logger.info(f"Loaded {len(tags)} constraint tags")
    return tags


def tag_template(constraints: List[Any]) -> List[Dict[str, Any]]:
    """
    Default tag entries for every constraint, to be edited by an analyst.

    Args:
        constraints: DeclareConstraints of a parsed model

    Returns:
        List in the ``[{"id": ..., "tag": ...}]`` shape accepted by load_tags
    """
    default = ConstraintTag().to_dict()
    return [
        {"id": c.id, "type": c.type, "activities": list(c.activities),
         "helpText": c.help_text, "tag": dict(default)}
        for c in constraints
    ]


@dataclass
class AnalysisBundle:
    """Everything one analysis run produces."""
    dashboard_constraints: List[DashboardConstraint] = field(default_factory=list)
    dashboard_traces: List[DashboardTrace] = field(default_factory=list)
    overview: DashboardOverview = field(default_factory=DashboardOverview)
    model_visualization: ModelGraph = field(default_factory=ModelGraph)
    process_flow: ProcessFlowGraph = field(default_factory=ProcessFlowGraph)
    constraint_groups: List[ConstraintGroup] = field(default_factory=list)
    coviolation_matrix: Optional[CoViolationMatrix] = None
    insights: Optional[ViolationInsights] = None
    diagnostics: ParseDiagnostics = field(default_factory=ParseDiagnostics)
    constraint_detail: ConstraintLevelDetail = field(default_factory=dict)

    def trace(self, case_id: str) -> Optional[DashboardTrace]:
        for trace in self.dashboard_traces:
            if trace.case_id == case_id:
                return trace
        return None

    def constraint(self, constraint_id: str) -> Optional[DashboardConstraint]:
        for constraint in self.dashboard_constraints:
            if constraint.id == constraint_id:
                return constraint
        return None

    def alignment_for(self, case_id: str) -> Optional[TraceAlignment]:
        """Log-versus-model alignment of one case, or None if unknown."""
        trace = self.trace(case_id)
        if trace is None:
            return None
        return align_trace(trace)

    def constraint_results(self, constraint_id: str) -> Dict[str, List[ResultType]]:
        """Case id -> result types of one constraint, in detail order."""
        return dict(self.constraint_detail.get(constraint_id, {}))

    def to_dict(self, include_events: bool = True) -> Dict[str, Any]:
        return {
            "dashboardConstraints": [c.to_dict() for c in self.dashboard_constraints],
            "dashboardTraces": [t.to_dict(include_events) for t in self.dashboard_traces],
            "overview": self.overview.to_dict(),
            "modelVisualization": self.model_visualization.to_dict(),
            "processFlow": self.process_flow.to_dict(),
            "constraintGroups": [g.to_dict() for g in self.constraint_groups],
            "coViolationMatrix": self.coviolation_matrix.to_dict() if self.coviolation_matrix else None,
            "insights": self.insights.to_dict() if self.insights else None,
            "diagnostics": self.diagnostics.to_dict(),
        }


class ConformanceEngine:
    """
    Runs the conformance analysis pipeline.

    Example:
        engine = ConformanceEngine(EngineConfig(variant_coverage=80.0))
        bundle = engine.analyze("./results", tags="tags.json")
        print(bundle.overview.overall_conformance)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        registry: Optional[TemplateRegistry] = None,
    ):
        """
        Initialize the engine.

        Args:
            config: Engine configuration (defaults used if None)
            registry: Template registry (built-in templates if None)
        """
        self.config = config or EngineConfig()
        self.registry = registry
        self.reconciler = IdentifierReconciler(registry)

    def load(self, source: Any) -> ParsedDataset:
        """Load a dataset directory or DatasetFiles."""
        return DatasetLoader(self.config, self.registry).load(source)

    def run(
        self,
        dataset: ParsedDataset,
        tags: Optional[TagInput] = None,
    ) -> AnalysisBundle:
        """
        Analyze a parsed dataset.

        Args:
            dataset: Parsed inputs
            tags: Constraint tags in any form accepted by load_tags

        Returns:
            AnalysisBundle
        """
        aggregator = StatisticsAggregator(self.config, self.reconciler)
        result = aggregator.aggregate(dataset, load_tags(tags), dataset.diagnostics)

        flow = ProcessFlowGraphBuilder(
            coverage=self.config.variant_coverage,
            min_edge_percentage=self.config.min_edge_percentage,
        ).build(result.traces, result.constraints)

        insights = build_insights(
            result.traces,
            result.constraints,
            bin_days=self.config.duration_bin_days,
            max_bin=self.config.max_duration_bin,
            bin_minutes=self.config.heatmap_bin_minutes,
            max_bins=self.config.max_heatmap_bins,
        )

        bundle = AnalysisBundle(
            dashboard_constraints=result.constraints,
            dashboard_traces=result.traces,
            overview=result.overview,
            model_visualization=build_model_graph(result.constraints),
            process_flow=flow,
            constraint_groups=result.groups,
            coviolation_matrix=build_coviolation_matrix(result.constraints, result.traces),
            insights=insights,
            diagnostics=dataset.diagnostics,
            constraint_detail=result.constraint_detail,
        )

        if bundle.diagnostics.has_issues:
            logger.warning(f"Analysis finished with {bundle.diagnostics.count()} skipped inputs")
        return bundle

    def analyze(self, source: Any, tags: Optional[TagInput] = None) -> AnalysisBundle:
        """Load and analyze in one step."""
        return self.run(self.load(source), tags)


def analyze_directory(
    path: Union[str, Path],
    tags: Optional[TagInput] = None,
    config: Optional[EngineConfig] = None,
) -> AnalysisBundle:
    """
    Convenience function to analyze a dataset directory.

    Args:
        path: Directory with the model and checker outputs
        tags: Optional constraint tags
        config: Optional engine configuration

    Returns:
        AnalysisBundle
    """
    return ConformanceEngine(config).analyze(path, tags)
