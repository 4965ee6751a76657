"""
DECLARE Model Module.

Template registry, constraint parser and identifier reconciliation for
DECLARE process models.

Example Usage:
    from declare_analytics.declare import parse_model, IdentifierReconciler

    constraints = parse_model(open("model.decl").read())
    reconciler = IdentifierReconciler()
    reconciler.canonical("response: [Register], [Approve][][][]")
    # 'Response[Register, Approve]'
"""

from .identifiers import ConstraintKey, IdentifierReconciler, canonical_constraint_id
from .models import DeclareConstraint, TimeWindow, canonical_id
from .parser import build_constraint, parse_constraint, parse_model
from .templates import (
    DEFAULT_REGISTRY,
    ConstraintTemplate,
    TemplateKind,
    TemplateRegistry,
    format_activity_name,
    get_template,
)

__all__ = [
    # Templates
    "TemplateKind",
    "ConstraintTemplate",
    "TemplateRegistry",
    "DEFAULT_REGISTRY",
    "get_template",
    "format_activity_name",
    # Constraints
    "DeclareConstraint",
    "TimeWindow",
    "canonical_id",
    # Parsing
    "parse_constraint",
    "parse_model",
    "build_constraint",
    # Identifiers
    "ConstraintKey",
    "IdentifierReconciler",
    "canonical_constraint_id",
]
