"""
DECLARE Constraint Template Registry.

DECLARE models a process as a set of temporal constraints over activities
instead of an explicit flow. Each constraint instantiates a template such as
Response(A, B) ("every A is eventually followed by B") with concrete
activity names.

References:
- Pesic, M., Schonenberg, H., & van der Aalst, W.M.P. (2007). DECLARE:
  Full support for loosely-structured processes.
- Maggi, F.M., Montali, M., & Westergaard, M. (2012). Runtime verification
  of LTL-based declarative process models.

The registry is an explicit table keyed by :class:`TemplateKind`. It is built
once at import (``DEFAULT_REGISTRY``) and only read afterwards; additional
templates can be registered on a separate :class:`TemplateRegistry`
instance.

Template names arrive in several spellings ("Alternate Succession",
"alternate succession", "AlternateSuccession", "Co-Existence", "Absence 2")
and are normalised by dropping spaces, hyphens and underscores and comparing
case-insensitively.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, List, Optional, Sequence

logger = logging.getLogger(__name__)


class TemplateKind(Enum):
    """Internal keys of the supported DECLARE templates."""

    RESPONSE = "Response"
    PRECEDENCE = "Precedence"
    SUCCESSION = "Succession"
    ALTERNATE_RESPONSE = "AlternateResponse"
    ALTERNATE_PRECEDENCE = "AlternatePrecedence"
    ALTERNATE_SUCCESSION = "AlternateSuccession"
    CHAIN_RESPONSE = "ChainResponse"
    CHAIN_PRECEDENCE = "ChainPrecedence"
    CHAIN_SUCCESSION = "ChainSuccession"
    NOT_SUCCESSION = "NotSuccession"
    NOT_CHAIN_SUCCESSION = "NotChainSuccession"
    PARTICIPATION = "Participation"
    INIT = "Init"
    END = "End"
    EXISTENCE = "Existence"
    ABSENCE = "Absence"
    ABSENCE2 = "Absence2"
    ABSENCE3 = "Absence3"
    EXACTLY1 = "Exactly1"
    CO_EXISTENCE = "CoExistence"
    RESPONDED_EXISTENCE = "RespondedExistence"
    NOT_CO_EXISTENCE = "NotCoExistence"
    NOT_RESPONDED_EXISTENCE = "NotRespondedExistence"
    NOT_RESPONSE = "NotResponse"
    NOT_PRECEDENCE = "NotPrecedence"
    NOT_CHAIN_RESPONSE = "NotChainResponse"
    NOT_CHAIN_PRECEDENCE = "NotChainPrecedence"
    CHOICE = "Choice"
    EXCLUSIVE_CHOICE = "ExclusiveChoice"


def normalize_template_name(name: str) -> str:
    """Reduce a template name to its lookup form ('Co-Existence' -> 'coexistence')."""
    return re.sub(r"[\s_\-]+", "", name).lower()


def format_activity_name(activity: str) -> str:
    """
    Humanise an activity name for help texts.

    Splits camelCase boundaries and capitalises the first letter, leaving
    acronyms and already spaced names intact.

    Args:
        activity: Raw activity name, e.g. "registerRequest"

    Returns:
        Display name, e.g. "Register Request"
    """
    spaced = re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", activity.strip())
    spaced = re.sub(r"\s+", " ", spaced)
    if not spaced:
        return spaced
    return spaced[0].upper() + spaced[1:]


@dataclass(frozen=True)
class ConstraintTemplate:
    """
    A DECLARE template definition.

    Attributes:
        kind: Template key
        display_name: Human-readable name ("Alternate Succession")
        formula: LTL-style formula over placeholders A and B
        description: Canonical description over placeholders A and B
        arity: Number of activities the template takes (1 or 2)
        help_pattern: Help text with ``{a}``/``{b}`` slots
    """
    kind: TemplateKind
    display_name: str
    formula: str
    description: str
    arity: int
    help_pattern: str

    @property
    def key(self) -> str:
        return self.kind.value

    @property
    def is_binary(self) -> bool:
        return self.arity == 2

    def help_text(self, activities: Sequence[str]) -> str:
        """
        Generate activity-specific help text for an analyst.

        Args:
            activities: Constraint activities in template order

        Returns:
            Help text with humanised activity names substituted
        """
        names = [format_activity_name(a) for a in activities]
        a = names[0] if names else "A"
        b = names[1] if len(names) > 1 else "B"
        return self.help_pattern.format(a=a, b=b)

    def to_dict(self) -> Dict[str, object]:
        return {
            "key": self.key,
            "name": self.display_name,
            "formula": self.formula,
            "description": self.description,
            "arity": self.arity,
        }


# (kind, display name, formula, description, arity, help pattern)
_TEMPLATE_TABLE = [
    (TemplateKind.RESPONSE, "Response", "A → ◇B",
     "If A occurs, then B must eventually occur", 2,
     "After {a} occurs, {b} must eventually occur in the same case."),
    (TemplateKind.PRECEDENCE, "Precedence", "B → ◇A",
     "B can only occur if A has occurred before", 2,
     "{b} can only occur if {a} has occurred before in the same case."),
    (TemplateKind.SUCCESSION, "Succession", "A → ◇B ∧ B → ◇A",
     "A and B must occur in order", 2,
     "{a} and {b} must occur in order: {a} must occur before {b}."),
    (TemplateKind.ALTERNATE_RESPONSE, "Alternate Response", "A → ◇B ∧ ¬(A → B)",
     "If A occurs, then B must eventually occur, but not immediately", 2,
     "After {a} occurs, {b} must eventually occur, but not immediately after {a}."),
    (TemplateKind.ALTERNATE_PRECEDENCE, "Alternate Precedence", "B → ◇A ∧ ¬(B → A)",
     "B can only occur if A has occurred before, but not immediately", 2,
     "{b} can only occur if {a} has occurred before, but not immediately before {b}."),
    (TemplateKind.ALTERNATE_SUCCESSION, "Alternate Succession",
     "A → ◇B ∧ B → ◇A ∧ ¬(A → B) ∧ ¬(B → A)",
     "A and B must alternate", 2,
     "{a} and {b} must alternate: {a} must be followed by {b} and {b} must be "
     "followed by {a}, but not immediately."),
    (TemplateKind.CHAIN_RESPONSE, "Chain Response", "A → B",
     "If A occurs, then B must occur immediately after", 2,
     "After {a} occurs, {b} must occur immediately after."),
    (TemplateKind.CHAIN_PRECEDENCE, "Chain Precedence", "B → A",
     "B can only occur if A has occurred immediately before", 2,
     "{b} can only occur if {a} has occurred immediately before."),
    (TemplateKind.CHAIN_SUCCESSION, "Chain Succession", "A → B ∧ B → A",
     "A and B must occur immediately in sequence", 2,
     "{a} and {b} must occur immediately in sequence: {a} must be immediately "
     "followed by {b} and {b} must be immediately preceded by {a}."),
    (TemplateKind.NOT_SUCCESSION, "Not Succession", "¬(A → ◇B)",
     "A and B cannot occur in order", 2,
     "{a} and {b} cannot occur in order: {a} cannot be followed by {b}."),
    (TemplateKind.NOT_CHAIN_SUCCESSION, "Not Chain Succession", "¬(A → B)",
     "A and B cannot occur immediately in order", 2,
     "{a} and {b} cannot occur immediately in order: {a} cannot be immediately "
     "followed by {b}."),
    (TemplateKind.PARTICIPATION, "Participation", "◇A",
     "A must occur at least once", 1,
     "{a} must occur at least once in the case."),
    (TemplateKind.INIT, "Init", "A ∧ ¬(⊤ → A)",
     "A must be the first activity", 1,
     "{a} must be the first activity in the case."),
    (TemplateKind.END, "End", "A ∧ ¬(A → ⊤)",
     "A must be the last activity", 1,
     "{a} must be the last activity in the case."),
    (TemplateKind.EXISTENCE, "Existence", "◇A ∧ ¬(◇A ∧ ◇A)",
     "A must occur exactly n times", 1,
     "{a} must occur exactly once in the case."),
    (TemplateKind.ABSENCE, "Absence", "¬◇A",
     "A must not occur", 1,
     "{a} must not occur in the case."),
    (TemplateKind.ABSENCE2, "Absence 2", "¬(◇A ∧ ◇A)",
     "A must not occur more than once", 1,
     "{a} must not occur more than once in the case."),
    (TemplateKind.ABSENCE3, "Absence 3", "¬(◇A ∧ ◇A ∧ ◇A)",
     "A must not occur more than twice", 1,
     "{a} must not occur more than twice in the case."),
    (TemplateKind.EXACTLY1, "Exactly 1", "◇A ∧ ¬(◇A ∧ ◇A)",
     "A must occur exactly once", 1,
     "{a} must occur exactly once in the case."),
    (TemplateKind.CO_EXISTENCE, "Co-Existence", "◇A ↔ ◇B",
     "A and B must occur together or not at all", 2,
     "{a} and {b} must either both occur or both not occur in the case."),
    (TemplateKind.RESPONDED_EXISTENCE, "Responded Existence", "◇A → ◇B",
     "If A occurs, then B must occur as well", 2,
     "If {a} occurs, {b} must also occur in the same case, before or after {a}."),
    (TemplateKind.NOT_CO_EXISTENCE, "Not Co-Existence", "¬(◇A ∧ ◇B)",
     "A and B cannot both occur", 2,
     "{a} and {b} cannot both occur in the same case."),
    (TemplateKind.NOT_RESPONDED_EXISTENCE, "Not Responded Existence", "◇A → ¬◇B",
     "If A occurs, then B must not occur", 2,
     "If {a} occurs, {b} must not occur anywhere in the same case."),
    (TemplateKind.NOT_RESPONSE, "Not Response", "A → ¬◇B",
     "If A occurs, then B must not occur afterwards", 2,
     "After {a} occurs, {b} must not occur later in the same case."),
    (TemplateKind.NOT_PRECEDENCE, "Not Precedence", "B → ¬◇A",
     "B cannot occur if A has occurred before", 2,
     "{b} cannot occur if {a} has occurred before in the same case."),
    (TemplateKind.NOT_CHAIN_RESPONSE, "Not Chain Response", "¬(A → B)",
     "If A occurs, then B must not occur immediately after", 2,
     "After {a} occurs, {b} must not occur immediately after."),
    (TemplateKind.NOT_CHAIN_PRECEDENCE, "Not Chain Precedence", "¬(B → A)",
     "B cannot occur immediately after A", 2,
     "{b} cannot occur if {a} has occurred immediately before."),
    (TemplateKind.CHOICE, "Choice", "◇A ∨ ◇B",
     "A or B must occur", 2,
     "At least one of {a} or {b} must occur in the case."),
    (TemplateKind.EXCLUSIVE_CHOICE, "Exclusive Choice", "(◇A ∨ ◇B) ∧ ¬(◇A ∧ ◇B)",
     "Either A or B must occur, but not both", 2,
     "Exactly one of {a} or {b} must occur in the case, never both."),
]


class TemplateRegistry:
    """
    Lookup table of DECLARE templates.

    Example:
        registry = TemplateRegistry.default()
        template = registry.lookup("alternate succession")
        template.kind  # TemplateKind.ALTERNATE_SUCCESSION
    """

    def __init__(self, templates: Optional[Sequence[ConstraintTemplate]] = None):
        self._templates: Dict[TemplateKind, ConstraintTemplate] = {}
        self._by_name: Dict[str, TemplateKind] = {}
        for template in templates or []:
            self.register(template)

    @classmethod
    def default(cls) -> "TemplateRegistry":
        """Create a registry holding the built-in templates."""
        return cls([
            ConstraintTemplate(kind, name, formula, description, arity, help_pattern)
            for kind, name, formula, description, arity, help_pattern in _TEMPLATE_TABLE
        ])

    def register(self, template: ConstraintTemplate) -> None:
        """
        Add a template, replacing any earlier one of the same kind.

        Both the key and the display name become lookup aliases.
        """
        if template.arity not in (1, 2):
            raise ValueError(f"Template arity must be 1 or 2, got {template.arity}")
        self._templates[template.kind] = template
        self._by_name[normalize_template_name(template.key)] = template.kind
        self._by_name[normalize_template_name(template.display_name)] = template.kind

    def get(self, kind: TemplateKind) -> ConstraintTemplate:
        return self._templates[kind]

    def lookup(self, name: str) -> Optional[ConstraintTemplate]:
        """
        Find a template by any of its spellings.

        Args:
            name: Template name as it appears in a model file or CSV

        Returns:
            The template, or None if the name is unknown
        """
        kind = self._by_name.get(normalize_template_name(name))
        if kind is None:
            return None
        return self._templates[kind]

    def templates(self) -> List[ConstraintTemplate]:
        return list(self._templates.values())

    def __contains__(self, name: object) -> bool:
        if isinstance(name, TemplateKind):
            return name in self._templates
        return isinstance(name, str) and self.lookup(name) is not None

    def __iter__(self) -> Iterator[ConstraintTemplate]:
        return iter(self._templates.values())

    def __len__(self) -> int:
        return len(self._templates)


DEFAULT_REGISTRY = TemplateRegistry.default()


def get_template(name: str) -> Optional[ConstraintTemplate]:
    """Look up a template in the default registry."""
    return DEFAULT_REGISTRY.lookup(name)
