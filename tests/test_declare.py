"""
Tests for the DECLARE model module.

Tests cover:
- Template registry lookups and help texts
- Time windows
- Constraint string parsing
- Model file parsing with diagnostics
"""

import pytest

from declare_analytics.declare import (
    DEFAULT_REGISTRY,
    ConstraintTemplate,
    TemplateKind,
    TemplateRegistry,
    TimeWindow,
    parse_constraint,
    parse_model,
)
from declare_analytics.declare.templates import format_activity_name, normalize_template_name
from declare_analytics.diagnostics import SOURCE_MODEL, ParseDiagnostics


class TestTemplateRegistry:
    """Tests for TemplateRegistry."""

    def test_default_registry_has_all_kinds(self):
        """Every template kind is registered."""
        assert len(DEFAULT_REGISTRY) == len(TemplateKind)
        for kind in TemplateKind:
            assert kind in DEFAULT_REGISTRY

    @pytest.mark.parametrize("name", [
        "Alternate Succession",
        "alternate succession",
        "AlternateSuccession",
        "alternate_succession",
    ])
    def test_lookup_spellings(self, name):
        """Template names match regardless of spacing and case."""
        template = DEFAULT_REGISTRY.lookup(name)
        assert template is not None
        assert template.kind == TemplateKind.ALTERNATE_SUCCESSION

    def test_lookup_hyphenated_and_numbered(self):
        assert DEFAULT_REGISTRY.lookup("Co-Existence").kind == TemplateKind.CO_EXISTENCE
        assert DEFAULT_REGISTRY.lookup("Absence 2").kind == TemplateKind.ABSENCE2
        assert DEFAULT_REGISTRY.lookup("exactly1").kind == TemplateKind.EXACTLY1

    def test_lookup_unknown(self):
        assert DEFAULT_REGISTRY.lookup("Eventually Maybe") is None
        assert "Eventually Maybe" not in DEFAULT_REGISTRY

    def test_arity(self):
        assert DEFAULT_REGISTRY.get(TemplateKind.INIT).arity == 1
        assert DEFAULT_REGISTRY.get(TemplateKind.RESPONSE).is_binary

    def test_help_text_humanises_activities(self):
        """Help text substitutes camelCase activity names in readable form."""
        template = DEFAULT_REGISTRY.get(TemplateKind.RESPONSE)
        text = template.help_text(["registerRequest", "approveRequest"])
        assert text == "After Register Request occurs, Approve Request must eventually occur in the same case."

    def test_register_rejects_bad_arity(self):
        registry = TemplateRegistry()
        template = ConstraintTemplate(TemplateKind.RESPONSE, "Response", "", "", 3, "")
        with pytest.raises(ValueError):
            registry.register(template)

    def test_empty_registry_rejects_everything(self):
        """An explicitly passed empty registry is not replaced by the default one."""
        diagnostics = ParseDiagnostics()
        assert parse_constraint("Response[A, B]", TemplateRegistry(), diagnostics) is None
        assert diagnostics.count() == 1


class TestNameHelpers:
    """Tests for name normalisation helpers."""

    def test_normalize_template_name(self):
        assert normalize_template_name("Not Chain-Succession") == "notchainsuccession"

    def test_format_activity_name(self):
        assert format_activity_name("sendInvoice") == "Send Invoice"
        assert format_activity_name("pay") == "Pay"
        assert format_activity_name("Check  Order") == "Check Order"


class TestTimeWindow:
    """Tests for TimeWindow."""

    def test_parse(self):
        window = TimeWindow.parse("[0, 5, m]")
        assert window == TimeWindow(0.0, 5.0, "m")
        assert str(window) == "0, 5, m"

    def test_parse_rejects_non_window(self):
        assert TimeWindow.parse("[A, B]") is None
        assert TimeWindow.parse("0, 5, m") is None

    def test_to_minutes(self):
        assert TimeWindow(1, 2, "h").to_minutes() == (60.0, 120.0)
        assert TimeWindow(0, 1, "d").to_minutes() == (0.0, 1440.0)

    def test_unknown_unit_is_kept(self):
        """Units outside s/m/h/d parse but cannot be converted."""
        window = TimeWindow.parse("[1, 3, w]")
        assert window.unit == "w"
        assert not window.is_known_unit
        with pytest.raises(ValueError):
            window.to_minutes()


class TestParseConstraint:
    """Tests for parse_constraint."""

    def test_round_trip(self):
        """A generated constraint string parses back to its parts."""
        constraint = parse_constraint("Response[Register, Approve]")
        assert constraint.type == "Response"
        assert list(constraint.activities) == ["Register", "Approve"]
        assert constraint.id == "Response[Register, Approve]"

    def test_display_name_and_spacing(self):
        constraint = parse_constraint("Alternate  Succession[ Check ,Pay ]")
        assert constraint.id == "AlternateSuccession[Check, Pay]"
        assert constraint.source == "Check"
        assert constraint.target == "Pay"

    def test_metadata_segments_dropped(self):
        constraint = parse_constraint("Precedence[A, B] | |")
        assert constraint.id == "Precedence[A, B]"

    def test_empty_trailing_groups_ignored(self):
        constraint = parse_constraint("Response[A, B][][]")
        assert constraint.id == "Response[A, B]"
        assert not constraint.is_time_constraint

    def test_time_window(self):
        constraint = parse_constraint("Response[A, B][][0, 5, d]")
        assert constraint.is_time_constraint
        assert constraint.time_window == TimeWindow(0, 5, "d")
        assert constraint.id == "Response[A, B][0, 5, d]"

    def test_unary(self):
        constraint = parse_constraint("Init[Register]")
        assert not constraint.is_binary
        assert constraint.target is None
        assert "Register" in constraint.help_text

    def test_describe_substitutes_activities(self):
        constraint = parse_constraint("Response[Bid, Award]")
        assert constraint.describe() == "If Bid occurs, then Award must eventually occur"

    def test_describe_does_not_substitute_twice(self):
        """An activity literally named B is not substituted again."""
        constraint = parse_constraint("Response[B, X]")
        assert constraint.describe() == "If B occurs, then X must eventually occur"

    @pytest.mark.parametrize("text,reason", [
        ("just some text", "not a constraint"),
        ("Eventually[A, B]", "unknown template"),
        ("Response[]", "empty activity list"),
        ("Response[A]", "needs 2 activities"),
    ])
    def test_rejected_lines(self, text, reason):
        diagnostics = ParseDiagnostics()
        assert parse_constraint(text, diagnostics=diagnostics, line_number=7) is None
        issue = diagnostics.issues[0]
        assert issue.source == SOURCE_MODEL
        assert reason in issue.reason
        assert issue.line_number == 7


class TestParseModel:
    """Tests for parse_model."""

    def test_sample_model(self, model_text):
        diagnostics = ParseDiagnostics()
        constraints = parse_model(model_text, diagnostics=diagnostics)

        assert [c.id for c in constraints] == [
            "Response[Register, Approve]",
            "Init[Register]",
            "Precedence[Approve, Pay]",
        ]
        assert not diagnostics.has_issues

    def test_skips_bad_lines_and_continues(self):
        text = "Response[A, B]\nnonsense[\nUnknownTemplate[A]\n\n// comment\nInit[A]\n"
        diagnostics = ParseDiagnostics()
        constraints = parse_model(text, diagnostics=diagnostics)

        assert [c.id for c in constraints] == ["Response[A, B]", "Init[A]"]
        assert diagnostics.count(SOURCE_MODEL) == 2
        assert [i.line_number for i in diagnostics.issues] == [2, 3]

    def test_header_lines_are_not_errors(self):
        text = "activity A\nbind A: amount\namount: integer between 0 and 10\nInit[A]\n"
        diagnostics = ParseDiagnostics()
        constraints = parse_model(text, diagnostics=diagnostics)
        assert len(constraints) == 1
        assert not diagnostics.has_issues

    def test_duplicates_keep_first(self):
        text = "Response[A, B]\nresponse[A,B]\n"
        diagnostics = ParseDiagnostics()
        constraints = parse_model(text, diagnostics=diagnostics)
        assert len(constraints) == 1
        assert "duplicate" in diagnostics.issues[0].reason

    def test_to_dict(self):
        constraint = parse_model("Response[A, B][0, 5, m]")[0]
        data = constraint.to_dict()
        assert data["id"] == "Response[A, B][0, 5, m]"
        assert data["isTimeConstraint"] is True
        assert data["timeWindow"] == {"lower": 0.0, "upper": 5.0, "unit": "m"}
