"""
Violation-rate severity buckets.

Severity Scoring:
- CRITICAL: violation rate >= 0.8
- HIGH:     violation rate >= 0.6
- MEDIUM:   violation rate >= 0.3
- LOW:      everything else, including constraints never activated

The same buckets apply to single constraints and to constraint groups
(on the group's average rate). Tags reuse the levels as analyst-assigned
priorities.
"""

from enum import Enum
from typing import Tuple

DEFAULT_THRESHOLDS: Tuple[float, float, float] = (0.8, 0.6, 0.3)

DEFAULT_COLOR = "#9e9e9e"


class Severity(Enum):
    """Severity levels, also used as tag priorities."""

    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    def __lt__(self, other: "Severity") -> bool:
        """Enable sorting by severity."""
        order = {
            Severity.CRITICAL: 0,
            Severity.HIGH: 1,
            Severity.MEDIUM: 2,
            Severity.LOW: 3,
        }
        return order[self] < order[other]

    @property
    def color(self) -> str:
        return SEVERITY_COLORS.get(self, DEFAULT_COLOR)

    @classmethod
    def parse(cls, value: str) -> "Severity":
        """Parse a priority label ("high", "HIGH"). Raises ValueError if unknown."""
        try:
            return cls(value.strip().upper())
        except ValueError:
            raise ValueError(f"Unknown priority: {value}. Available: {[s.value for s in cls]}")


SEVERITY_COLORS = {
    Severity.CRITICAL: "#f44336",
    Severity.HIGH: "#ff9800",
    Severity.MEDIUM: "#ffeb3b",
    Severity.LOW: "#4caf50",
}


def severity_for_rate(
    violation_rate: float,
    thresholds: Tuple[float, float, float] = DEFAULT_THRESHOLDS,
) -> Severity:
    """
    Bucket a violation rate.

    Args:
        violation_rate: Share of violated activations in [0, 1]
        thresholds: Lower bounds for CRITICAL, HIGH and MEDIUM

    Returns:
        Severity level
    """
    critical, high, medium = thresholds
    if violation_rate >= critical:
        return Severity.CRITICAL
    if violation_rate >= high:
        return Severity.HIGH
    if violation_rate >= medium:
        return Severity.MEDIUM
    return Severity.LOW


def severity_color(severity: Severity) -> str:
    return SEVERITY_COLORS.get(severity, DEFAULT_COLOR)
