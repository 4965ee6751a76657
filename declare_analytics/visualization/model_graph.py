"""
Constraint model graph.

Turns dashboard constraints into a node/edge graph of the DECLARE model:
one node per activity, one directed edge per binary constraint, and one
self-loop per unary constraint. Edge colour follows the constraint's
severity and edge thickness grows with its violation count.

Nodes are placed on a square grid in first-seen order; the coordinates are
a starting layout for a front end, not a rendering.
"""

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Sequence

from ..conformance.models import DashboardConstraint
from ..conformance.severity import severity_color

logger = logging.getLogger(__name__)

NODE_COLOR = "#3498db"
NODE_HEIGHT = 60
GRID_SPACING = 200
GRID_OFFSET = 80


def _clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


@dataclass
class ModelNode:
    """An activity of the model."""
    id: str
    label: str
    x: float
    y: float
    width: float
    height: float = NODE_HEIGHT
    color: str = NODE_COLOR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "color": self.color,
        }


@dataclass
class ModelEdge:
    """A constraint drawn between activities (source == target for unary ones)."""
    id: str
    source: str
    target: str
    constraint_id: str
    label: str
    violations: int
    thickness: float
    color: str

    @property
    def is_self_loop(self) -> bool:
        return self.source == self.target

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "constraintId": self.constraint_id,
            "label": self.label,
            "violations": self.violations,
            "thickness": self.thickness,
            "color": self.color,
        }


@dataclass
class ModelGraph:
    nodes: List[ModelNode] = field(default_factory=list)
    edges: List[ModelEdge] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


def _activity_order(constraints: Sequence[DashboardConstraint]) -> List[str]:
    seen: Dict[str, None] = {}
    for constraint in constraints:
        for activity in constraint.activities:
            seen.setdefault(activity, None)
    return list(seen)


def layout_nodes(activities: Sequence[str]) -> List[ModelNode]:
    """
    Place activities on a square grid.

    Args:
        activities: Activity names in display order

    Returns:
        One ModelNode per activity
    """
    if not activities:
        return []
    cols = math.ceil(math.sqrt(len(activities)))
    return [
        ModelNode(
            id=activity,
            label=activity,
            x=(index % cols) * GRID_SPACING + GRID_OFFSET,
            y=(index // cols) * GRID_SPACING + GRID_OFFSET,
            width=max(100, 8 * len(activity) + 20),
        )
        for index, activity in enumerate(activities)
    ]


def build_model_graph(constraints: Sequence[DashboardConstraint]) -> ModelGraph:
    """
    Build the constraint graph.

    Args:
        constraints: Dashboard constraints in display order

    Returns:
        ModelGraph with ``edge_<i>`` ids for binary and ``single_<i>`` ids
        for unary constraints, ``i`` being the constraint's position
    """
    nodes = layout_nodes(_activity_order(constraints))
    edges: List[ModelEdge] = []

    for index, constraint in enumerate(constraints):
        violations = constraint.violation_count
        color = severity_color(constraint.severity)
        if constraint.constraint.is_binary:
            edges.append(ModelEdge(
                id=f"edge_{index}",
                source=constraint.constraint.source,
                target=constraint.constraint.target,
                constraint_id=constraint.id,
                label=constraint.type,
                violations=violations,
                thickness=_clamp(violations / 3, 1, 8),
                color=color,
            ))
        else:
            activity = constraint.constraint.source
            edges.append(ModelEdge(
                id=f"single_{index}",
                source=activity,
                target=activity,
                constraint_id=constraint.id,
                label=constraint.type,
                violations=violations,
                thickness=_clamp(violations / 2, 1, 6),
                color=color,
            ))

    logger.debug(f"Model graph: {len(nodes)} nodes, {len(edges)} edges")
    return ModelGraph(nodes=nodes, edges=edges)
