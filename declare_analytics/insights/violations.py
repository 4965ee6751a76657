"""
Time and resource insights on constraint violations.

The conformance checker reports how often a constraint is violated in a
trace, not at which event. As an approximation, every event of a
violating trace whose activity the constraint mentions is taken as a
violation point. From those points this module derives:

- when violations happen relative to the start of their trace
  (heatmap over constraint x day bins)
- how long conformant and non-conformant traces take (duration histogram)
- which resources and activities are involved (summary and matrix)

Events without a timestamp cannot be placed in time and are skipped;
traces whose first event has no timestamp are skipped entirely.
"""

import logging
import math
from collections import OrderedDict
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from ..conformance.models import DashboardConstraint, DashboardTrace
from ..conformance.severity import Severity
from ..ingest.models import time_sorted

logger = logging.getLogger(__name__)

UNASSIGNED = "Unassigned"
MINUTES_PER_DAY = 1440


@dataclass
class ViolationEvent:
    """An event taken as a violation point of a constraint."""
    case_id: str
    constraint_id: str
    constraint_type: str
    activity: str
    timestamp: datetime
    minutes_from_start: float
    event_index: int
    severity: Severity
    resource: Optional[str] = None

    @property
    def resource_name(self) -> str:
        return self.resource or UNASSIGNED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "caseId": self.case_id,
            "constraintId": self.constraint_id,
            "constraintType": self.constraint_type,
            "activity": self.activity,
            "timestamp": self.timestamp.isoformat(),
            "minutesFromStart": round(self.minutes_from_start, 2),
            "eventIndex": self.event_index,
            "severity": self.severity.value,
            "resource": self.resource_name,
        }


def extract_violation_events(
    traces: Sequence[DashboardTrace],
    constraints: Sequence[DashboardConstraint],
) -> List[ViolationEvent]:
    """
    Collect violation points.

    A trace contributes points for every constraint detail with at least
    one violation (vacuous ones included).

    Args:
        traces: Dashboard traces with events and constraint details
        constraints: Dashboard constraints, used for activities and severity

    Returns:
        ViolationEvents in trace order, then constraint detail order,
        then time order
    """
    by_id = {c.id: c for c in constraints}
    points: List[ViolationEvent] = []

    for trace in traces:
        events = time_sorted(trace.events)
        if not events or events[0].timestamp is None:
            continue
        start = events[0].timestamp

        for detail in trace.constraint_details:
            constraint = by_id.get(detail.constraint_id)
            if constraint is None or detail.total_violations == 0:
                continue
            mentioned = set(constraint.activities)
            for index, event in enumerate(events):
                if event.timestamp is None or event.activity not in mentioned:
                    continue
                points.append(ViolationEvent(
                    case_id=trace.case_id,
                    constraint_id=constraint.id,
                    constraint_type=constraint.type,
                    activity=event.activity,
                    timestamp=event.timestamp,
                    minutes_from_start=(event.timestamp - start).total_seconds() / 60,
                    event_index=index,
                    severity=constraint.severity,
                    resource=event.resource,
                ))

    logger.debug(f"Extracted {len(points)} violation points from {len(traces)} traces")
    return points


@dataclass
class DurationBin:
    day: int
    label: str
    conformant: int = 0
    non_conformant: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "day": self.day,
            "label": self.label,
            "conformant": self.conformant,
            "nonConformant": self.non_conformant,
        }


def trace_duration_distribution(
    traces: Sequence[DashboardTrace],
    bin_days: int = 1,
    max_bin: int = 19,
) -> List[DurationBin]:
    """
    Histogram of trace durations split by conformance.

    A trace is conformant when it has no non-vacuous violation. Durations
    at or above ``max_bin`` days share the last bin, labelled ``"19+"``
    for the default.

    Args:
        traces: Dashboard traces
        bin_days: Width of a bin in days
        max_bin: First overflow bin (in bin units)

    Returns:
        Non-empty bins in ascending order
    """
    bins: Dict[int, DurationBin] = {}
    for trace in traces:
        stamps = [e.timestamp for e in trace.events if e.timestamp is not None]
        if not stamps:
            continue
        days = (max(stamps) - min(stamps)).total_seconds() / 86400
        index = min(int(days // bin_days), max_bin)
        if index not in bins:
            label = f"{index}+" if index == max_bin else str(index)
            bins[index] = DurationBin(day=index, label=label)
        if trace.violations == 0:
            bins[index].conformant += 1
        else:
            bins[index].non_conformant += 1
    return [bins[day] for day in sorted(bins)]


@dataclass
class ViolationHeatmap:
    """
    Violation points per constraint and time bin.

    ``counts[row, col]`` is the number of points of ``constraint_ids[row]``
    falling in bin ``col``; with ``overflow`` the last bin also holds
    every later point.
    """
    constraint_ids: List[str]
    bin_minutes: int
    counts: np.ndarray
    overflow: bool = False
    max_minutes: float = 0.0

    @property
    def bin_count(self) -> int:
        return int(self.counts.shape[1]) if self.counts.ndim == 2 else 0

    @property
    def bin_labels(self) -> List[str]:
        days = self.bin_minutes / MINUTES_PER_DAY
        labels = []
        for i in range(self.bin_count):
            start, end = i * days, (i + 1) * days
            if self.overflow and i == self.bin_count - 1:
                labels.append(f"{start:g}+ days")
            else:
                labels.append(f"{start:g}-{end:g} days")
        return labels

    @property
    def max_count(self) -> int:
        return int(self.counts.max()) if self.counts.size else 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "constraintIds": list(self.constraint_ids),
            "binMinutes": self.bin_minutes,
            "binLabels": self.bin_labels,
            "counts": self.counts.tolist(),
            "overflow": self.overflow,
            "maxCount": self.max_count,
            "maxMinutes": round(self.max_minutes, 2),
        }


def violation_timing_heatmap(
    points: Sequence[ViolationEvent],
    bin_minutes: int = MINUTES_PER_DAY,
    max_bins: int = 20,
) -> ViolationHeatmap:
    """
    Bin violation points by time since trace start.

    Args:
        points: Violation points
        bin_minutes: Bin width in minutes
        max_bins: Maximum number of bins; later points go to the last one

    Returns:
        ViolationHeatmap with constraints in first-seen order
    """
    if not points:
        return ViolationHeatmap(constraint_ids=[], bin_minutes=bin_minutes,
                                counts=np.zeros((0, 0), dtype=np.int64))

    constraint_ids = list(OrderedDict.fromkeys(p.constraint_id for p in points))
    row = {cid: i for i, cid in enumerate(constraint_ids)}
    max_minutes = max(p.minutes_from_start for p in points)
    needed = math.floor(max_minutes / bin_minutes) + 1
    bins = min(max_bins, needed)

    counts = np.zeros((len(constraint_ids), bins), dtype=np.int64)
    for point in points:
        col = min(int(point.minutes_from_start // bin_minutes), bins - 1)
        counts[row[point.constraint_id], col] += 1

    return ViolationHeatmap(
        constraint_ids=constraint_ids,
        bin_minutes=bin_minutes,
        counts=counts,
        overflow=needed > max_bins,
        max_minutes=max_minutes,
    )


@dataclass
class ResourceViolations:
    resource: str
    violations: int = 0
    case_ids: List[str] = field(default_factory=list)
    activities: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "resource": self.resource,
            "violations": self.violations,
            "uniqueTraces": len(self.case_ids),
            "activities": list(self.activities),
        }


def resource_violation_summary(points: Sequence[ViolationEvent]) -> List[ResourceViolations]:
    """
    Violation points per resource.

    Returns:
        One entry per resource (missing resources as "Unassigned"),
        most violations first
    """
    summary: Dict[str, ResourceViolations] = OrderedDict()
    for point in points:
        entry = summary.setdefault(point.resource_name, ResourceViolations(resource=point.resource_name))
        entry.violations += 1
        if point.case_id not in entry.case_ids:
            entry.case_ids.append(point.case_id)
        if point.activity not in entry.activities:
            entry.activities.append(point.activity)
    return sorted(summary.values(), key=lambda r: -r.violations)


@dataclass
class ActivityResourceMatrix:
    activities: List[str]
    resources: List[str]
    counts: np.ndarray

    def get(self, activity: str, resource: str) -> int:
        if activity not in self.activities or resource not in self.resources:
            return 0
        return int(self.counts[self.activities.index(activity), self.resources.index(resource)])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activities": list(self.activities),
            "resources": list(self.resources),
            "counts": self.counts.tolist(),
            "maxCount": int(self.counts.max()) if self.counts.size else 0,
        }


def activity_resource_matrix(points: Sequence[ViolationEvent]) -> ActivityResourceMatrix:
    """Violation points per activity (rows) and resource (columns), first-seen order."""
    activities = list(OrderedDict.fromkeys(p.activity for p in points))
    resources = list(OrderedDict.fromkeys(p.resource_name for p in points))
    counts = np.zeros((len(activities), len(resources)), dtype=np.int64)
    for point in points:
        counts[activities.index(point.activity), resources.index(point.resource_name)] += 1
    return ActivityResourceMatrix(activities=activities, resources=resources, counts=counts)


@dataclass
class ViolationInsights:
    """All time and resource views of one analysis run."""
    points: List[ViolationEvent]
    durations: List[DurationBin]
    heatmap: ViolationHeatmap
    resources: List[ResourceViolations]
    activity_resources: ActivityResourceMatrix

    def to_dict(self) -> Dict[str, Any]:
        return {
            "violationEvents": [p.to_dict() for p in self.points],
            "traceDurations": [d.to_dict() for d in self.durations],
            "timingHeatmap": self.heatmap.to_dict(),
            "resourceViolations": [r.to_dict() for r in self.resources],
            "activityResourceMatrix": self.activity_resources.to_dict(),
        }


def build_insights(
    traces: Sequence[DashboardTrace],
    constraints: Sequence[DashboardConstraint],
    bin_days: int = 1,
    max_bin: int = 19,
    bin_minutes: int = MINUTES_PER_DAY,
    max_bins: int = 20,
) -> ViolationInsights:
    """
    Convenience function computing every insight view.

    Args:
        traces: Dashboard traces
        constraints: Dashboard constraints
        bin_days: Duration histogram bin width in days
        max_bin: Duration histogram overflow bin
        bin_minutes: Heatmap bin width in minutes
        max_bins: Maximum number of heatmap bins

    Returns:
        ViolationInsights
    """
    points = extract_violation_events(traces, constraints)
    return ViolationInsights(
        points=points,
        durations=trace_duration_distribution(traces, bin_days, max_bin),
        heatmap=violation_timing_heatmap(points, bin_minutes, max_bins),
        resources=resource_violation_summary(points),
        activity_resources=activity_resource_matrix(points),
    )
