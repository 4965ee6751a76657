"""
Constraint identifier reconciliation.

The same constraint is spelled differently by each input:

- model file:      ``Alternate Succession[Check, Pay]`` or ``AlternateSuccession[Check,Pay][][]``
- statistics CSV:  ``alternate succession: [Check], [Pay][][][]``
                   (some checker versions write ``Response[A,B]: [A, B]``)
- display form:    ``Alternate Succession[Check, Pay]``

All of them are parsed into a :class:`ConstraintKey` whose ``canonical``
string (``AlternateSuccession[Check, Pay]``) is the join key between the
model and every result table. Joins are always done on the canonical form,
never on raw strings.
"""

import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .models import TimeWindow, canonical_id
from .parser import split_activities, split_constraint
from .templates import DEFAULT_REGISTRY, TemplateRegistry

logger = logging.getLogger(__name__)

# "Response[A,B]: [A, B]" - template part carries its own bracket group
PREFIXED_CSV_PATTERN = re.compile(r"^[^\[\]:]+\[[^\]]*\]\s*:\s*\[")

# Bracket group with an optional leading comma separator
CSV_GROUP_PATTERN = re.compile(r"(\s*,\s*)?\[([^\]]*)\]")

TRAILING_EMPTY_GROUPS = re.compile(r"(\[\])+$")


@dataclass(frozen=True)
class ConstraintKey:
    """
    Structured form of a constraint identifier.

    Attributes:
        template: Template key ("AlternateSuccession"); unknown names are kept
            in CamelCase form
        activities: Activities in template order
        time_window: Optional time window
        known: Whether the template exists in the registry
    """
    template: str
    activities: Tuple[str, ...]
    time_window: Optional[TimeWindow] = None
    known: bool = True

    @property
    def canonical(self) -> str:
        return canonical_id(self.template, self.activities, self.time_window)


def _camel_case(name: str) -> str:
    words = [w for w in re.split(r"[\s_\-]+", name.strip()) if w]
    return "".join(w[:1].upper() + w[1:] for w in words)


class IdentifierReconciler:
    """
    Maps constraint identifiers between the model, CSV and display formats.

    Example:
        reconciler = IdentifierReconciler()
        reconciler.canonical("alternate succession: [A], [B][][][]")
        # 'AlternateSuccession[A, B]'
        reconciler.to_display("AlternateSuccession[A, B]")
        # 'Alternate Succession[A, B]'
    """

    def __init__(self, registry: Optional[TemplateRegistry] = None):
        self.registry = registry if registry is not None else DEFAULT_REGISTRY

    def parse(self, raw: str) -> Optional[ConstraintKey]:
        """
        Parse an identifier in any supported format.

        Args:
            raw: Identifier string

        Returns:
            ConstraintKey, or None if no activities could be found
        """
        text = " ".join(raw.split())
        if not text:
            return None

        colon = text.find(":")
        bracket = text.find("[")
        if colon != -1 and (bracket == -1 or colon < bracket or PREFIXED_CSV_PATTERN.match(text)):
            return self.from_csv(text)
        return self.from_model(text)

    def from_model(self, text: str) -> Optional[ConstraintKey]:
        """Parse ``Template Name[A, B][...]``."""
        parts = split_constraint(text)
        if parts is None:
            return None
        name, activities, time_window = parts
        if not activities:
            return None
        return self._make_key(name, activities, time_window)

    def from_csv(self, text: str) -> Optional[ConstraintKey]:
        """
        Parse ``template name: [A], [B][][][]``.

        Activity groups are the leading bracket groups joined by commas; the
        adjacent groups after them are condition slots, the last of which may
        hold a time window.
        """
        template_part, _, activity_part = text.partition(":")
        template_name = template_part.split("[", 1)[0].strip()
        if not template_name:
            return None

        activities: List[str] = []
        slots: List[str] = []
        for index, match in enumerate(CSV_GROUP_PATTERN.finditer(activity_part)):
            separator, content = match.group(1), match.group(2)
            if not slots and (index == 0 or separator):
                activities.extend(split_activities(content))
            else:
                slots.append(content)

        if not activities:
            return None

        time_window = None
        filled = [s for s in slots if s.strip()]
        if filled:
            time_window = TimeWindow.parse(f"[{filled[-1]}]")
        return self._make_key(template_name, activities, time_window)

    def _make_key(self, name: str, activities: List[str],
                  time_window: Optional[TimeWindow]) -> ConstraintKey:
        template = self.registry.lookup(name)
        if template is None:
            logger.debug(f"Unknown template in identifier: {name}")
            return ConstraintKey(_camel_case(name), tuple(activities), time_window, known=False)
        return ConstraintKey(template.key, tuple(activities), time_window)

    def canonical(self, raw: str) -> str:
        """
        Canonical id for any identifier format.

        Unparseable identifiers fall back to the whitespace-normalised raw
        string with trailing empty ``[]`` groups removed.
        """
        key = self.parse(raw)
        if key is None:
            return TRAILING_EMPTY_GROUPS.sub("", " ".join(raw.split()))
        return key.canonical

    def same(self, first: str, second: str) -> bool:
        """Whether two identifiers denote the same constraint."""
        return self.canonical(first) == self.canonical(second)

    def _display_template(self, key: ConstraintKey) -> str:
        template = self.registry.lookup(key.template) if key.known else None
        return template.display_name if template else key.template

    def to_display(self, raw: str) -> str:
        """Display form: ``Alternate Succession[A, B]``."""
        key = self.parse(raw)
        if key is None:
            return raw
        text = f"{self._display_template(key)}[{', '.join(key.activities)}]"
        if key.time_window is not None:
            text += f"[{key.time_window}]"
        return text

    def to_csv(self, raw: str) -> str:
        """Checker CSV form: ``alternate succession: [A], [B][][][]``."""
        key = self.parse(raw)
        if key is None:
            return raw
        groups = ", ".join(f"[{activity}]" for activity in key.activities)
        last_slot = str(key.time_window) if key.time_window is not None else ""
        return f"{self._display_template(key).lower()}: {groups}[][][{last_slot}]"


_default_reconciler = IdentifierReconciler()


def canonical_constraint_id(raw: str) -> str:
    """Canonicalise an identifier with the default registry."""
    return _default_reconciler.canonical(raw)
