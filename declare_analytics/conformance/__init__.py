"""
Conformance Analytics Module.

Reconciles the DECLARE model with the conformance checker's results and
derives the views an analyst works with:
- Per-constraint statistics, severity and business tags
- Per-trace outcomes joined with events and aligned events
- Log-level KPIs and constraint groups
- Step-by-step log-versus-model alignment
- Co-violation matrix
- Trace filtering and sorting

Example usage:
    from declare_analytics.conformance import StatisticsAggregator, build_coviolation_matrix

    result = StatisticsAggregator().aggregate(dataset)
    matrix = build_coviolation_matrix(result.constraints, result.traces)
    matrix.top_pairs(5)
"""

from .aggregator import AggregationResult, StatisticsAggregator, aggregate_dataset, invert_detail
from .alignment import (
    AlignmentOperation,
    AlignmentOperationType,
    AlignmentStep,
    StepType,
    TraceAligner,
    TraceAlignment,
    align_sequences,
    align_trace,
    edit_distance,
)
from .coviolation import CoViolationMatrix, build_coviolation_matrix
from .filters import SORT_FIELDS, TraceFilter, filter_traces, sort_traces
from .models import (
    ConstraintGroup,
    ConstraintTag,
    DashboardConstraint,
    DashboardOverview,
    DashboardTrace,
    TraceConstraintDetail,
)
from .severity import SEVERITY_COLORS, Severity, severity_color, severity_for_rate

__all__ = [
    # Aggregation
    "AggregationResult",
    "StatisticsAggregator",
    "aggregate_dataset",
    "invert_detail",
    # Models
    "ConstraintGroup",
    "ConstraintTag",
    "DashboardConstraint",
    "DashboardOverview",
    "DashboardTrace",
    "TraceConstraintDetail",
    # Severity
    "SEVERITY_COLORS",
    "Severity",
    "severity_color",
    "severity_for_rate",
    # Alignment
    "AlignmentOperation",
    "AlignmentOperationType",
    "AlignmentStep",
    "StepType",
    "TraceAligner",
    "TraceAlignment",
    "align_sequences",
    "align_trace",
    "edit_distance",
    # Co-violation
    "CoViolationMatrix",
    "build_coviolation_matrix",
    # Filtering
    "SORT_FIELDS",
    "TraceFilter",
    "filter_traces",
    "sort_traces",
]
