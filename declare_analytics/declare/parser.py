"""
DECLARE model parser.

Turns constraint strings into :class:`DeclareConstraint` objects. A model
file holds one constraint per line:

    Response[Register, Approve]
    Alternate Succession[Check, Pay] | | |
    Init[Register]
    Response[Submit, Review][0, 5, d]

Rules:
- whitespace is collapsed and ``|``-separated metadata segments are dropped
- the line must start with ``TemplateName[activity, ...]``
- trailing empty ``[]`` groups are ignored; a trailing ``[lo, hi, unit]``
  group marks a time-constrained constraint
- unknown templates and empty activity lists reject the line

Lines that cannot be parsed are skipped with a warning; they never abort
parsing of the rest of the file.
"""

import logging
import re
from typing import Dict, List, Optional, Sequence, Tuple

from ..diagnostics import SOURCE_MODEL, ParseDiagnostics
from .models import DeclareConstraint, TimeWindow, canonical_id
from .templates import DEFAULT_REGISTRY, ConstraintTemplate, TemplateRegistry

logger = logging.getLogger(__name__)

# Template name followed by the first bracket group
CONSTRAINT_PATTERN = re.compile(r"^([A-Za-z][A-Za-z0-9 _\-]*?)\s*\[([^\]]*)\]")

BRACKET_GROUP = re.compile(r"\[([^\]]*)\]")

# Declare header lines: activity declarations, attribute bindings, attribute domains
HEADER_PATTERN = re.compile(r"^(activity|bind)\s", re.IGNORECASE)


def split_activities(text: str) -> List[str]:
    """Comma-split and trim an activity list, dropping empty entries."""
    return [part.strip() for part in text.split(",") if part.strip()]


def trailing_time_window(text: str) -> Optional[TimeWindow]:
    """Time window in the last non-empty bracket group of ``text``, if any."""
    groups = [g for g in BRACKET_GROUP.findall(text) if g.strip()]
    if not groups:
        return None
    return TimeWindow.parse(f"[{groups[-1]}]")


def split_constraint(text: str) -> Optional[Tuple[str, List[str], Optional[TimeWindow]]]:
    """
    Split a model-format constraint string into its parts.

    Args:
        text: Constraint string, e.g. "Alternate Succession[A, B][][]"

    Returns:
        (template name, activities, time window) or None if the string does
        not have the ``Name[...]`` shape
    """
    normalized = " ".join(text.split())
    head = normalized.split("|", 1)[0].strip()
    match = CONSTRAINT_PATTERN.match(head)
    if not match:
        return None
    name = match.group(1).strip()
    activities = split_activities(match.group(2))
    time_window = trailing_time_window(head[match.end():])
    return name, activities, time_window


def build_constraint(
    template: ConstraintTemplate,
    activities: Sequence[str],
    time_window: Optional[TimeWindow] = None,
) -> DeclareConstraint:
    """Instantiate a template with concrete activities."""
    return DeclareConstraint(
        id=canonical_id(template.key, activities, time_window),
        type=template.key,
        activities=tuple(activities),
        description=template.description,
        help_text=template.help_text(activities),
        time_window=time_window,
    )


def parse_constraint(
    text: str,
    registry: Optional[TemplateRegistry] = None,
    diagnostics: Optional[ParseDiagnostics] = None,
    line_number: int = 0,
) -> Optional[DeclareConstraint]:
    """
    Parse a single constraint string.

    Args:
        text: Constraint line from a model file
        registry: Template registry (defaults to the built-in one)
        diagnostics: Collector for rejected lines
        line_number: Line number for diagnostics

    Returns:
        The constraint, or None if the line was rejected
    """
    if registry is None:
        registry = DEFAULT_REGISTRY
    if diagnostics is None:
        diagnostics = ParseDiagnostics()

    parts = split_constraint(text)
    if parts is None:
        diagnostics.warn(SOURCE_MODEL, "not a constraint of the form Template[activities]",
                         line_number, text.strip())
        return None

    name, activities, time_window = parts
    template = registry.lookup(name)
    if template is None:
        diagnostics.warn(SOURCE_MODEL, f"unknown template '{name}'", line_number, text.strip())
        return None

    if not activities:
        diagnostics.warn(SOURCE_MODEL, "empty activity list", line_number, text.strip())
        return None

    if len(activities) < template.arity:
        diagnostics.warn(
            SOURCE_MODEL,
            f"{template.key} needs {template.arity} activities, got {len(activities)}",
            line_number, text.strip(),
        )
        return None

    return build_constraint(template, activities, time_window)


def _is_header_line(line: str) -> bool:
    if HEADER_PATTERN.match(line):
        return True
    # Attribute domain lines such as "amount: integer between 0 and 100"
    return ":" in line and "[" not in line


def parse_model(
    text: str,
    registry: Optional[TemplateRegistry] = None,
    diagnostics: Optional[ParseDiagnostics] = None,
) -> List[DeclareConstraint]:
    """
    Parse a DECLARE model file.

    Blank lines, ``#``/``//`` comments and Declare header lines are skipped
    silently. Duplicate constraints keep their first occurrence.

    Args:
        text: Model file contents
        registry: Template registry
        diagnostics: Collector for rejected lines

    Returns:
        Constraints in file order
    """
    if diagnostics is None:
        diagnostics = ParseDiagnostics()

    constraints: Dict[str, DeclareConstraint] = {}
    for line_number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith(("#", "//")) or _is_header_line(line):
            continue

        constraint = parse_constraint(line, registry, diagnostics, line_number)
        if constraint is None:
            continue

        if constraint.id in constraints:
            diagnostics.warn(SOURCE_MODEL, f"duplicate constraint {constraint.id}",
                             line_number, line)
            continue
        constraints[constraint.id] = constraint

    logger.info(f"Parsed {len(constraints)} constraints from model")
    return list(constraints.values())
