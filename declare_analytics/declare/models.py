"""
DECLARE constraint definitions.

A constraint is an instantiated template with concrete activities, e.g.
``Response[Register, Approve]``. Every constraint carries a canonical string
id that is used to join the model with the conformance checker's result
tables.

Canonical id form:
    ``TemplateKey[Activity1, Activity2]``
optionally followed by a time window ``[lower, upper, unit]`` for
time-constrained templates, e.g. ``Response[A, B][0, 5, m]``.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence, Tuple

# Minutes per supported time-window unit
TIME_UNIT_MINUTES = {
    "s": 1.0 / 60.0,
    "m": 1.0,
    "h": 60.0,
    "d": 1440.0,
}

TIME_WINDOW_PATTERN = re.compile(
    r"\[\s*(\d+(?:\.\d+)?)\s*,\s*(\d+(?:\.\d+)?)\s*,\s*([A-Za-z])\s*\]"
)


def _format_bound(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


@dataclass(frozen=True)
class TimeWindow:
    """
    Time window of a time-constrained DECLARE constraint.

    Attributes:
        lower: Lower bound
        upper: Upper bound
        unit: Unit letter as written in the source ("s", "m", "h" or "d")
    """
    lower: float
    upper: float
    unit: str

    @classmethod
    def parse(cls, text: str) -> Optional["TimeWindow"]:
        """Parse ``[lo, hi, unit]`` (brackets required); None if not a time window."""
        match = TIME_WINDOW_PATTERN.fullmatch(text.strip())
        if not match:
            return None
        return cls(float(match.group(1)), float(match.group(2)), match.group(3).lower())

    @property
    def is_known_unit(self) -> bool:
        return self.unit in TIME_UNIT_MINUTES

    def to_minutes(self) -> Tuple[float, float]:
        """
        Convert the bounds to minutes.

        Raises:
            ValueError: If the unit is not one of s, m, h, d
        """
        if not self.is_known_unit:
            raise ValueError(f"Unknown time unit: {self.unit}. Available: {list(TIME_UNIT_MINUTES)}")
        factor = TIME_UNIT_MINUTES[self.unit]
        return self.lower * factor, self.upper * factor

    def __str__(self) -> str:
        return f"{_format_bound(self.lower)}, {_format_bound(self.upper)}, {self.unit}"

    def to_dict(self) -> Dict[str, Any]:
        return {"lower": self.lower, "upper": self.upper, "unit": self.unit}


def canonical_id(
    template_key: str,
    activities: Sequence[str],
    time_window: Optional[TimeWindow] = None,
) -> str:
    """
    Build the canonical constraint id.

    Args:
        template_key: Template key, e.g. "AlternateSuccession"
        activities: Activities in template order
        time_window: Optional time window

    Returns:
        Canonical id such as "AlternateSuccession[A, B]"
    """
    text = f"{template_key}[{', '.join(activities)}]"
    if time_window is not None:
        text += f"[{time_window}]"
    return text


@dataclass(frozen=True)
class DeclareConstraint:
    """
    A parsed DECLARE constraint.

    Attributes:
        id: Canonical id
        type: Template key
        activities: Activities in template order, never empty
        description: Template description over placeholders A and B
        help_text: Activity-specific explanation for analysts
        time_window: Time window for time-constrained constraints
    """
    id: str
    type: str
    activities: Tuple[str, ...]
    description: str = ""
    help_text: str = ""
    time_window: Optional[TimeWindow] = None

    def __post_init__(self):
        if not self.activities:
            raise ValueError(f"Constraint {self.id} has no activities")

    @property
    def source(self) -> str:
        """First (activating) activity."""
        return self.activities[0]

    @property
    def target(self) -> Optional[str]:
        """Second activity for binary constraints."""
        return self.activities[1] if len(self.activities) > 1 else None

    @property
    def is_binary(self) -> bool:
        return len(self.activities) > 1

    @property
    def is_time_constraint(self) -> bool:
        return self.time_window is not None

    def describe(self) -> str:
        """Description with the activity names substituted for A and B."""
        names = {"A": self.source, "B": self.target or "B"}
        return re.sub(r"\b[AB]\b", lambda m: names[m.group(0)], self.description)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "activities": list(self.activities),
            "description": self.description,
            "helpText": self.help_text,
            "isTimeConstraint": self.is_time_constraint,
            "timeWindow": self.time_window.to_dict() if self.time_window else None,
        }
