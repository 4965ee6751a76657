"""
Visualization data for conformance dashboards.

This module builds graph structures a front end can draw:
- Process flow graph: variant-filtered directly-follows graph with the
  aligned log overlaid on the raw log
- Model graph: the DECLARE constraints as activity nodes and edges,
  coloured by severity
- Mermaid rendering of both for Markdown reports

Example usage:
    from declare_analytics.visualization import (
        ProcessFlowGraphBuilder,
        build_model_graph,
        generate_flow_diagram,
    )

    graph = ProcessFlowGraphBuilder(coverage=80.0).build(traces)
    print(generate_flow_diagram(graph))
"""

from .flow_graph import (
    END,
    START,
    FlowEdge,
    FlowNode,
    ProcessFlowGraph,
    ProcessFlowGraphBuilder,
    TransitionKind,
    TransitionMatrix,
    VariantInfo,
    VariantSelection,
    build_process_flow,
    group_variants,
    select_variants,
    variant_key,
)
from .mermaid import MermaidGenerator, generate_flow_diagram
from .model_graph import ModelEdge, ModelGraph, ModelNode, build_model_graph, layout_nodes

__all__ = [
    "END",
    "START",
    "FlowEdge",
    "FlowNode",
    "ProcessFlowGraph",
    "ProcessFlowGraphBuilder",
    "TransitionKind",
    "TransitionMatrix",
    "VariantInfo",
    "VariantSelection",
    "build_process_flow",
    "group_variants",
    "select_variants",
    "variant_key",
    "MermaidGenerator",
    "generate_flow_diagram",
    "ModelEdge",
    "ModelGraph",
    "ModelNode",
    "build_model_graph",
    "layout_nodes",
]
