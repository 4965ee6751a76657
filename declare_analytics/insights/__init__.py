"""
Time and resource insights on constraint violations.

Example usage:
    from declare_analytics.insights import build_insights

    insights = build_insights(bundle.dashboard_traces, bundle.dashboard_constraints)
    for entry in insights.resources:
        print(entry.resource, entry.violations)
"""

from .violations import (
    UNASSIGNED,
    ActivityResourceMatrix,
    DurationBin,
    ResourceViolations,
    ViolationEvent,
    ViolationHeatmap,
    ViolationInsights,
    activity_resource_matrix,
    build_insights,
    extract_violation_events,
    resource_violation_summary,
    trace_duration_distribution,
    violation_timing_heatmap,
)

__all__ = [
    "UNASSIGNED",
    "ActivityResourceMatrix",
    "DurationBin",
    "ResourceViolations",
    "ViolationEvent",
    "ViolationHeatmap",
    "ViolationInsights",
    "activity_resource_matrix",
    "build_insights",
    "extract_violation_events",
    "resource_violation_summary",
    "trace_duration_distribution",
    "violation_timing_heatmap",
]
