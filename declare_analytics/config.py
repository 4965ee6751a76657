"""
Configuration settings for the DECLARE conformance analytics engine.

Holds every tunable used by ingestion, aggregation and graph building so a
run can be reproduced from a single object.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Tuple

from . import DEFAULT_CONFIG


@dataclass
class EngineConfig:
    """Main configuration for one analysis run."""

    # Semicolon is what the conformance checker writes
    csv_delimiter: str = ";"

    # Process flow graph
    variant_coverage: float = 100.0
    min_edge_percentage: float = 0.0

    # Violation-rate lower bounds for CRITICAL, HIGH, MEDIUM
    severity_thresholds: Tuple[float, float, float] = (0.8, 0.6, 0.3)

    # Trace duration histogram
    duration_bin_days: int = 1
    max_duration_bin: int = 19

    # Violation timing heatmap
    heatmap_bin_minutes: int = 1440
    max_heatmap_bins: int = 20

    # Concurrent file reads
    read_workers: int = 4

    # Constraint grouping: "type" or "tag"
    group_by: str = "type"

    def __post_init__(self):
        if not 0.0 <= self.variant_coverage <= 100.0:
            raise ValueError(f"variant_coverage must be within 0-100, got {self.variant_coverage}")
        if self.group_by not in ("type", "tag"):
            raise ValueError(f"Unknown group_by: {self.group_by}. Available: ['type', 'tag']")
        critical, high, medium = self.severity_thresholds
        if not critical >= high >= medium:
            raise ValueError(f"severity_thresholds must be descending, got {self.severity_thresholds}")
        self.severity_thresholds = (float(critical), float(high), float(medium))

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "EngineConfig":
        """Build a config from a DEFAULT_CONFIG-style dict, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {k: v for k, v in values.items() if k in known}
        if "severity_thresholds" in kwargs:
            kwargs["severity_thresholds"] = tuple(kwargs["severity_thresholds"])
        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def get_default_config() -> EngineConfig:
    """Get the default configuration."""
    return EngineConfig.from_dict(DEFAULT_CONFIG)


# Preset configurations for different analysis scenarios
PRESETS = {
    "full": {
        "variant_coverage": 100.0,
        "min_edge_percentage": 0.0,
    },
    "mainstream": {
        "variant_coverage": 80.0,
        "min_edge_percentage": 5.0,
    },
    "happy_path": {
        "variant_coverage": 20.0,
        "min_edge_percentage": 20.0,
    },
}


def apply_preset(config: EngineConfig, preset_name: str) -> EngineConfig:
    """Apply a preset configuration."""
    if preset_name not in PRESETS:
        raise ValueError(f"Unknown preset: {preset_name}. Available: {list(PRESETS.keys())}")

    preset = PRESETS[preset_name]
    for key, value in preset.items():
        setattr(config, key, value)

    return config
