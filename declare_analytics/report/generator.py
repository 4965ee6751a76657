"""
Report Generator Module for DECLARE conformance analyses.

Generates output in various formats:
- JSON for programmatic use (the full analysis bundle)
- Markdown for human reading (KPIs and the most relevant findings)

Includes timestamp, version and the configuration used for the run.
"""

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import numpy as np

from .. import __version__
from ..config import EngineConfig
from ..engine import AnalysisBundle
from ..visualization.mermaid import MermaidGenerator


def convert_for_json(obj: Any) -> Any:
    """Convert objects to JSON-serializable types, including numpy types."""
    if isinstance(obj, dict):
        return {str(k): convert_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [convert_for_json(item) for item in obj]
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, np.floating):
        return float(obj)
    elif isinstance(obj, np.ndarray):
        return obj.tolist()
    elif isinstance(obj, np.bool_):
        return bool(obj)
    else:
        return obj


def _percent(value: float) -> str:
    return f"{value:.1%}"


class ReportGenerator:
    """
    Generates reports from an analysis bundle in various formats.
    """

    def __init__(
        self,
        output_format: str = "json",
        config: Optional[EngineConfig] = None,
        include_metadata: bool = True,
        top_n: int = 10,
    ):
        """
        Initialize the report generator.

        Args:
            output_format: Output format ('json' or 'markdown')
            config: Configuration used for the analysis
            include_metadata: Include generation metadata
            top_n: Rows shown in Markdown rankings
        """
        if output_format not in ("json", "markdown"):
            raise ValueError(f"Unknown output format: {output_format}")
        self.output_format = output_format
        self.config = config or EngineConfig()
        self.include_metadata = include_metadata
        self.top_n = top_n

    def generate(self, bundle: AnalysisBundle) -> str:
        """
        Generate a report.

        Args:
            bundle: Result of an analysis run

        Returns:
            Formatted report string
        """
        if self.output_format == "markdown":
            return self._generate_markdown(bundle)
        return self._generate_json(bundle)

    def _generate_json(self, bundle: AnalysisBundle) -> str:
        report: Dict[str, Any] = {}
        if self.include_metadata:
            report["metadata"] = self._generate_metadata(bundle)
        report.update(bundle.to_dict())
        return json.dumps(convert_for_json(report), indent=2, default=str)

    def _generate_markdown(self, bundle: AnalysisBundle) -> str:
        lines = []
        overview = bundle.overview

        lines.append("# DECLARE Conformance Report")
        lines.append("")
        if self.include_metadata:
            metadata = self._generate_metadata(bundle)
            lines.append(f"**Generated**: {metadata['generatedAt']}")
            lines.append(f"**Version**: {metadata['version']}")
            lines.append("")

        lines.append("## Overview")
        lines.append("")
        lines.append(f"- **Traces**: {overview.total_traces}")
        lines.append(f"- **Variants**: {overview.total_variants}")
        lines.append(f"- **Constraints**: {overview.total_constraints}")
        lines.append(f"- **Average Fitness**: {overview.overall_fitness:.3f}")
        lines.append(f"- **Conformant Traces**: {_percent(overview.overall_conformance)}")
        lines.append(f"- **Compliance**: {_percent(overview.overall_compliance)}")
        lines.append(f"- **Quality**: {_percent(overview.overall_quality)}")
        lines.append(f"- **Efficiency**: {_percent(overview.overall_efficiency)}")
        lines.append(f"- **Critical Constraints**: {overview.critical_violations}")
        lines.append(f"- **High Severity Constraints**: {overview.high_priority_violations}")
        lines.append("")

        violated = sorted(
            (c for c in bundle.dashboard_constraints if c.violation_count > 0),
            key=lambda c: (-c.violation_rate, c.id),
        )
        lines.append("## Most Violated Constraints")
        lines.append("")
        if violated:
            lines.append("| Constraint | Severity | Activations | Violations | Rate |")
            lines.append("|---|---|---|---|---|")
            for c in violated[:self.top_n]:
                lines.append(
                    f"| {c.id} | {c.severity.value} | {c.activations} | "
                    f"{c.violation_count} | {_percent(c.violation_rate)} |"
                )
        else:
            lines.append("No constraint was violated.")
        lines.append("")

        if bundle.constraint_groups:
            lines.append("## Constraint Groups")
            lines.append("")
            lines.append("| Group | Constraints | Violations | Avg. Rate | Severity |")
            lines.append("|---|---|---|---|---|")
            for group in bundle.constraint_groups:
                lines.append(
                    f"| {group.name} | {len(group.constraint_ids)} | {group.total_violations} | "
                    f"{_percent(group.average_violation_rate)} | {group.severity.value} |"
                )
            lines.append("")

        if bundle.coviolation_matrix is not None:
            pairs = bundle.coviolation_matrix.top_pairs(self.top_n)
            if pairs:
                lines.append("## Constraints Violated Together")
                lines.append("")
                for first, second, count in pairs:
                    lines.append(f"- {first} + {second}: {count} traces")
                lines.append("")

        flow = bundle.process_flow
        lines.append("## Process Flow")
        lines.append("")
        lines.append(
            f"{flow.included_variant_count} of {flow.total_variant_count} variants "
            f"cover {flow.coverage_percentage:.1f}% of traces."
        )
        lines.append("")
        generator = MermaidGenerator()
        lines.append(generator.with_code_block(generator.generate_flow(flow)))
        lines.append("")

        lines.append("## Input Diagnostics")
        lines.append("")
        if bundle.diagnostics.has_issues:
            for source, count in sorted(bundle.diagnostics.by_source().items()):
                lines.append(f"- {source}: {count} skipped")
        else:
            lines.append("All input rows were parsed.")

        return "\n".join(lines)

    def _generate_metadata(self, bundle: AnalysisBundle) -> Dict[str, Any]:
        return {
            "generatedAt": datetime.now(timezone.utc).isoformat(),
            "version": __version__,
            "config": self.config.to_dict(),
            "constraintCount": len(bundle.dashboard_constraints),
            "traceCount": len(bundle.dashboard_traces),
        }


def generate_json_report(bundle: AnalysisBundle, config: Optional[EngineConfig] = None) -> str:
    """Convenience function for JSON report generation."""
    return ReportGenerator(output_format="json", config=config).generate(bundle)


def generate_markdown_report(bundle: AnalysisBundle, config: Optional[EngineConfig] = None) -> str:
    """Convenience function for Markdown report generation."""
    return ReportGenerator(output_format="markdown", config=config).generate(bundle)
