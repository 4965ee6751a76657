"""
DECLARE Conformance Analytics Engine

This engine ingests the outputs of an external DECLARE conformance checker
(a constraint model, per-trace evaluation results, replay alignments and the
underlying event logs), reconciles them into one consistent view, and derives
the KPIs, alignments, co-violation patterns and process-flow graphs that a
compliance analyst needs to triage violations.
"""

__version__ = "0.1.0"
__author__ = "Declare Analytics Team"

from pathlib import Path

# Package root directory
PACKAGE_ROOT = Path(__file__).parent

# Default configuration
DEFAULT_CONFIG = {
    "csv_delimiter": ";",
    "variant_coverage": 100.0,  # percentage of traces kept in the flow graph
    "min_edge_percentage": 0.0,
    "severity_thresholds": (0.8, 0.6, 0.3),  # critical, high, medium
    "duration_bin_days": 1,
    "max_duration_bin": 19,
    "heatmap_bin_minutes": 1440,
    "max_heatmap_bins": 20,
    "read_workers": 4,
    "group_by": "type",  # "type" or "tag"
}
