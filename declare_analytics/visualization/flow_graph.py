"""
Process Flow Graph (directly-follows graph) with log/model overlay.

Builds a directly-follows graph from the most frequent trace variants and
overlays the transitions observed in the raw log with those of the aligned
log, so an analyst sees where reality and the model agree:

- CONFORMING: transition appears in both the log and the aligned log (gray)
- LOG_ONLY:   transition only appears in the raw log (red)
- MODEL_ONLY: transition only appears in the aligned log (blue)

Variant filtering:
    Traces are grouped by their exact activity sequence. Variants are
    sorted by frequency (descending, first-seen order on ties) and added
    one by one; the coverage check runs after each addition, so at 0% the
    most frequent variant is still included and at 100% every variant is.

Every included trace contributes START -> first activity and
last activity -> END transitions. Self-loops (A -> A) are counted in the
transition matrices but not drawn as edges; they are reported on the node
instead.

References:
- van der Aalst, W.M.P. (2016). Process Mining: Data Science in Action,
  chapter 6 (directly-follows graphs).
"""

import logging
import math
from collections import Counter, OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..conformance.models import DashboardConstraint, DashboardTrace

logger = logging.getLogger(__name__)

START = "START"
END = "END"
EMPTY_VARIANT = "empty"
VARIANT_KEY_SEPARATOR = "->"


class TransitionKind(Enum):
    """Where a transition was observed."""

    CONFORMING = "conforming"
    LOG_ONLY = "log_only"
    MODEL_ONLY = "model_only"

    @property
    def color(self) -> str:
        return TRANSITION_COLORS[self]


TRANSITION_COLORS = {
    TransitionKind.CONFORMING: "#6c757d",
    TransitionKind.LOG_ONLY: "#e74c3c",
    TransitionKind.MODEL_ONLY: "#3498db",
}


def variant_key(activities: Sequence[str]) -> str:
    """Key of an activity sequence; ``"empty"`` for traces without events."""
    return VARIANT_KEY_SEPARATOR.join(activities) or EMPTY_VARIANT


@dataclass
class VariantInfo:
    """A distinct activity sequence and the traces following it."""
    key: str
    activities: Tuple[str, ...]
    case_ids: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.case_ids)

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "activities": list(self.activities), "count": self.count}


@dataclass
class VariantSelection:
    """Variants kept for a coverage percentage."""
    variants: List[VariantInfo]
    included: List[VariantInfo]
    total_traces: int

    @property
    def covered_traces(self) -> int:
        return sum(v.count for v in self.included)

    @property
    def coverage_percentage(self) -> float:
        if self.total_traces == 0:
            return 0.0
        return self.covered_traces / self.total_traces * 100

    @property
    def included_case_ids(self) -> List[str]:
        return [case_id for variant in self.included for case_id in variant.case_ids]


def group_variants(traces: Iterable[DashboardTrace]) -> List[VariantInfo]:
    """
    Group traces by exact activity sequence.

    Returns:
        Variants sorted by trace count, descending; ties keep first-seen order
    """
    variants: Dict[str, VariantInfo] = OrderedDict()
    for trace in traces:
        activities = tuple(trace.activities)
        key = variant_key(activities)
        if key not in variants:
            variants[key] = VariantInfo(key=key, activities=activities)
        variants[key].case_ids.append(trace.case_id)
    return sorted(variants.values(), key=lambda v: -v.count)


def select_variants(traces: Sequence[DashboardTrace], coverage: float) -> VariantSelection:
    """
    Greedily select the most frequent variants until ``coverage`` percent
    of traces is reached.

    Args:
        traces: All traces
        coverage: Target percentage in [0, 100]

    Returns:
        VariantSelection
    """
    variants = group_variants(traces)
    total = len(traces)
    included: List[VariantInfo] = []
    cumulative = 0
    for variant in variants:
        included.append(variant)
        cumulative += variant.count
        if cumulative / total * 100 >= coverage:
            break
    return VariantSelection(variants=variants, included=included, total_traces=total)


@dataclass
class FlowNode:
    """An activity node (or START/END)."""
    id: str
    raw_frequency: int = 0
    aligned_frequency: int = 0
    self_loops: int = 0
    constraint_types: List[str] = field(default_factory=list)

    @property
    def label(self) -> str:
        if self.constraint_types:
            return f"[{', '.join(self.constraint_types)}] {self.id}"
        return self.id

    @property
    def is_terminal(self) -> bool:
        return self.id in (START, END)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "rawFrequency": self.raw_frequency,
            "alignedFrequency": self.aligned_frequency,
            "selfLoops": self.self_loops,
            "constraintTypes": list(self.constraint_types),
        }


@dataclass
class FlowEdge:
    """A directly-follows transition."""
    source: str
    target: str
    raw_count: int = 0
    aligned_count: int = 0
    share: float = 0.0

    @property
    def id(self) -> str:
        return f"flow-{self.source}->{self.target}"

    @property
    def kind(self) -> TransitionKind:
        if self.raw_count and self.aligned_count:
            return TransitionKind.CONFORMING
        if self.raw_count:
            return TransitionKind.LOG_ONLY
        return TransitionKind.MODEL_ONLY

    @property
    def color(self) -> str:
        return self.kind.color

    @property
    def total_count(self) -> int:
        return self.raw_count + self.aligned_count

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "rawCount": self.raw_count,
            "alignedCount": self.aligned_count,
            "share": round(self.share, 4),
            "kind": self.kind.value,
            "color": self.color,
        }


@dataclass
class TransitionMatrix:
    """
    Transition frequencies for the raw and the aligned log.

    Labels are ordered START, activities alphabetically, END. Self-loops
    are included.
    """
    labels: List[str]
    raw: np.ndarray
    aligned: np.ndarray

    @property
    def max_frequency(self) -> int:
        if not self.labels:
            return 0
        return int(max(self.raw.max(), self.aligned.max()))

    def get(self, source: str, target: str, aligned: bool = False) -> int:
        if source not in self.labels or target not in self.labels:
            return 0
        matrix = self.aligned if aligned else self.raw
        return int(matrix[self.labels.index(source), self.labels.index(target)])

    def to_dict(self) -> Dict[str, Any]:
        return {
            "labels": list(self.labels),
            "raw": self.raw.tolist(),
            "aligned": self.aligned.tolist(),
            "maxFrequency": self.max_frequency,
        }


@dataclass
class ProcessFlowGraph:
    """Variant-filtered directly-follows graph with coverage statistics."""
    nodes: List[FlowNode] = field(default_factory=list)
    edges: List[FlowEdge] = field(default_factory=list)
    matrix: Optional[TransitionMatrix] = None
    total_raw_transitions: int = 0
    total_aligned_transitions: int = 0
    coverage_percentage: float = 0.0
    included_variant_count: int = 0
    total_variant_count: int = 0
    included_trace_count: int = 0
    threshold_count: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.nodes and not self.edges

    def node(self, node_id: str) -> Optional[FlowNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def edge(self, source: str, target: str) -> Optional[FlowEdge]:
        for edge in self.edges:
            if edge.source == source and edge.target == target:
                return edge
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
            "matrix": self.matrix.to_dict() if self.matrix is not None else None,
            "totalRawTransitions": self.total_raw_transitions,
            "totalAlignedTransitions": self.total_aligned_transitions,
            "coveragePercentage": round(self.coverage_percentage, 2),
            "includedVariantCount": self.included_variant_count,
            "totalVariantCount": self.total_variant_count,
            "includedTraceCount": self.included_trace_count,
            "thresholdCount": self.threshold_count,
        }


def _count_transitions(sequences: Iterable[Sequence[str]]) -> Counter:
    """Directly-follows pairs including START/END; empty sequences add nothing."""
    counts: Counter = Counter()
    for sequence in sequences:
        if not sequence:
            continue
        path = [START] + list(sequence) + [END]
        counts.update(zip(path, path[1:]))
    return counts


class ProcessFlowGraphBuilder:
    """
    Builds a ProcessFlowGraph from dashboard traces.

    Example:
        builder = ProcessFlowGraphBuilder(coverage=80.0)
        graph = builder.build(traces)
        for edge in graph.edges:
            print(edge.source, edge.target, edge.kind.value)
    """

    def __init__(self, coverage: float = 100.0, min_edge_percentage: float = 0.0):
        """
        Initialize the builder.

        Args:
            coverage: Percentage of traces to cover with the most frequent variants
            min_edge_percentage: Drop edges below this percentage of the most
                frequent edge
        """
        if not 0.0 <= coverage <= 100.0:
            raise ValueError(f"coverage must be within 0-100, got {coverage}")
        self.coverage = coverage
        self.min_edge_percentage = min_edge_percentage

    def build(
        self,
        traces: Sequence[DashboardTrace],
        constraints: Sequence[DashboardConstraint] = (),
    ) -> ProcessFlowGraph:
        """
        Build the graph.

        Args:
            traces: All traces of the log
            constraints: Optional constraints; unary ones annotate their node

        Returns:
            ProcessFlowGraph (empty when there are no traces)
        """
        if not traces:
            logger.warning("No traces given, returning empty flow graph")
            return ProcessFlowGraph()

        selection = select_variants(traces, self.coverage)
        included_ids = set(selection.included_case_ids)
        included = [t for t in traces if t.case_id in included_ids]

        raw_sequences = [t.activities for t in included]
        aligned_sequences = [[a for a in t.aligned_activities if a] for t in included]
        raw_counts = _count_transitions(raw_sequences)
        aligned_counts = _count_transitions(aligned_sequences)

        matrix = self._build_matrix(raw_counts, aligned_counts)
        total_raw = sum(raw_counts.values())
        total_aligned = sum(aligned_counts.values())

        edges, threshold = self._build_edges(raw_counts, aligned_counts, total_raw + total_aligned)
        nodes = self._build_nodes(edges, raw_sequences, aligned_sequences,
                                  raw_counts, aligned_counts, constraints)

        logger.info(
            f"Flow graph: {len(selection.included)}/{len(selection.variants)} variants, "
            f"{len(nodes)} nodes, {len(edges)} edges"
        )
        return ProcessFlowGraph(
            nodes=nodes,
            edges=edges,
            matrix=matrix,
            total_raw_transitions=total_raw,
            total_aligned_transitions=total_aligned,
            coverage_percentage=selection.coverage_percentage,
            included_variant_count=len(selection.included),
            total_variant_count=len(selection.variants),
            included_trace_count=len(included),
            threshold_count=threshold,
        )

    def _build_matrix(self, raw_counts: Counter, aligned_counts: Counter) -> TransitionMatrix:
        activities = set()
        for source, target in list(raw_counts) + list(aligned_counts):
            activities.update((source, target))
        activities.discard(START)
        activities.discard(END)
        labels = ([START] if activities else []) + sorted(activities) + ([END] if activities else [])
        index = {label: i for i, label in enumerate(labels)}

        raw = np.zeros((len(labels), len(labels)), dtype=np.int64)
        aligned = np.zeros((len(labels), len(labels)), dtype=np.int64)
        for (source, target), count in raw_counts.items():
            raw[index[source], index[target]] = count
        for (source, target), count in aligned_counts.items():
            aligned[index[source], index[target]] = count
        return TransitionMatrix(labels=labels, raw=raw, aligned=aligned)

    def _build_edges(self, raw_counts: Counter, aligned_counts: Counter,
                     total: int) -> Tuple[List[FlowEdge], int]:
        pairs = set(raw_counts) | set(aligned_counts)
        edges = [
            FlowEdge(
                source=source,
                target=target,
                raw_count=raw_counts.get((source, target), 0),
                aligned_count=aligned_counts.get((source, target), 0),
                share=(raw_counts.get((source, target), 0) + aligned_counts.get((source, target), 0)) / total
                if total else 0.0,
            )
            for source, target in pairs
            if source != target
        ]

        max_count = max((e.total_count for e in edges), default=0)
        threshold = math.ceil(self.min_edge_percentage / 100 * max_count)
        edges = [e for e in edges if e.total_count >= threshold]
        edges.sort(key=lambda e: (-e.total_count, e.source, e.target))
        return edges, threshold

    def _build_nodes(
        self,
        edges: List[FlowEdge],
        raw_sequences: List[List[str]],
        aligned_sequences: List[List[str]],
        raw_counts: Counter,
        aligned_counts: Counter,
        constraints: Sequence[DashboardConstraint],
    ) -> List[FlowNode]:
        connected = set()
        for edge in edges:
            connected.update((edge.source, edge.target))

        raw_frequency = Counter(a for seq in raw_sequences for a in seq)
        aligned_frequency = Counter(a for seq in aligned_sequences for a in seq)
        unary_types: Dict[str, List[str]] = {}
        for constraint in constraints:
            if not constraint.constraint.is_binary:
                unary_types.setdefault(constraint.activities[0], []).append(constraint.type)

        activities = sorted(connected - {START, END})
        ordered = ([START] if START in connected else []) + activities + ([END] if END in connected else [])
        return [
            FlowNode(
                id=node_id,
                raw_frequency=raw_frequency.get(node_id, 0),
                aligned_frequency=aligned_frequency.get(node_id, 0),
                self_loops=raw_counts.get((node_id, node_id), 0) + aligned_counts.get((node_id, node_id), 0),
                constraint_types=unary_types.get(node_id, []),
            )
            for node_id in ordered
        ]


def build_process_flow(
    traces: Sequence[DashboardTrace],
    coverage: float = 100.0,
    min_edge_percentage: float = 0.0,
) -> ProcessFlowGraph:
    """
    Convenience function to build a flow graph.

    Args:
        traces: Dashboard traces
        coverage: Variant coverage percentage
        min_edge_percentage: Minimum edge weight relative to the heaviest edge

    Returns:
        ProcessFlowGraph
    """
    return ProcessFlowGraphBuilder(coverage, min_edge_percentage).build(traces)
