"""
Mermaid Flowchart Generation for process flow and constraint graphs.

Renders a ProcessFlowGraph (or a ModelGraph) as Mermaid markdown so the
result can be embedded in GitHub or GitLab reports.

Output example:
    ```mermaid
    flowchart LR
        START((START))
        a_Register([Register])
        START --> |n=12| a_Register
        linkStyle 0 stroke:#6c757d,stroke-width:2px
    ```

Edge colours follow the transition kind (conforming, log only, model only)
for flow graphs and the constraint severity for model graphs.
"""

import logging
import re
from typing import List, Optional

from .flow_graph import END, START, ProcessFlowGraph
from .model_graph import ModelGraph

logger = logging.getLogger(__name__)

_UNSAFE_ID_CHARS = re.compile(r"[^A-Za-z0-9_]")


def node_id(name: str) -> str:
    """Mermaid-safe identifier for an activity name."""
    if name in (START, END):
        return name
    return "a_" + _UNSAFE_ID_CHARS.sub("_", name)


def _label(text: str) -> str:
    return text.replace('"', "'")


class MermaidGenerator:
    """
    Generates Mermaid flowchart diagrams.

    Example:
        generator = MermaidGenerator(direction="TB")
        print(generator.generate_flow(graph, title="Top variants"))
    """

    def __init__(self, direction: str = "LR"):
        """
        Initialize the Mermaid generator.

        Args:
            direction: Flow direction - 'LR' (left-right), 'TB' (top-bottom),
                      'RL' (right-left), 'BT' (bottom-top)
        """
        self.direction = direction

    def _header(self, title: Optional[str]) -> List[str]:
        lines = []
        if title:
            lines.extend(["---", f"title: {title}", "---"])
        lines.append(f"flowchart {self.direction}")
        return lines

    def generate_flow(self, graph: ProcessFlowGraph, title: Optional[str] = None) -> str:
        """
        Render a process flow graph.

        Args:
            graph: Flow graph to render
            title: Optional title for the diagram

        Returns:
            Mermaid markdown string
        """
        if graph.is_empty:
            logger.warning("Flow graph is empty")
            return self._empty_diagram(title)

        lines = self._header(title)
        for node in graph.nodes:
            if node.is_terminal:
                lines.append(f"    {node.id}(({node.id}))")
            else:
                label = node.label
                if node.self_loops:
                    label += f" ↻{node.self_loops}"
                lines.append(f'    {node_id(node.id)}(["{_label(label)}"])')

        lines.append("")
        styles = []
        for index, edge in enumerate(graph.edges):
            lines.append(f"    {node_id(edge.source)} --> |n={edge.total_count}| {node_id(edge.target)}")
            styles.append(f"    linkStyle {index} stroke:{edge.color},stroke-width:2px")

        if styles:
            lines.append("")
            lines.extend(styles)
        return "\n".join(lines)

    def generate_model(self, graph: ModelGraph, title: Optional[str] = None) -> str:
        """
        Render a constraint model graph; edges are labelled with the template.

        Args:
            graph: Model graph to render
            title: Optional title for the diagram

        Returns:
            Mermaid markdown string
        """
        if not graph.nodes:
            return self._empty_diagram(title)

        lines = self._header(title)
        for node in graph.nodes:
            lines.append(f'    {node_id(node.id)}["{_label(node.label)}"]')

        lines.append("")
        styles = []
        for index, edge in enumerate(graph.edges):
            lines.append(f"    {node_id(edge.source)} --> |{edge.label}| {node_id(edge.target)}")
            width = max(1, round(edge.thickness))
            styles.append(f"    linkStyle {index} stroke:{edge.color},stroke-width:{width}px")

        if styles:
            lines.append("")
            lines.extend(styles)
        return "\n".join(lines)

    def with_code_block(self, diagram: str) -> str:
        """Wrap a diagram in a markdown code block."""
        return f"```mermaid\n{diagram}\n```"

    def _empty_diagram(self, title: Optional[str] = None) -> str:
        lines = self._header(title)
        lines.append("    NoData([No process data available])")
        return "\n".join(lines)


def generate_flow_diagram(
    graph: ProcessFlowGraph,
    direction: str = "LR",
    title: Optional[str] = None,
) -> str:
    """
    Convenience function to render a flow graph as Mermaid.

    Args:
        graph: Flow graph
        direction: Flow direction ('LR', 'TB', 'RL', 'BT')
        title: Optional diagram title

    Returns:
        Mermaid markdown string
    """
    return MermaidGenerator(direction=direction).generate_flow(graph, title=title)
