"""
Tests for the ingest module.

Tests cover:
- Checker CSV readers and skipped-row diagnostics
- XES parsing (pm4py import, legacy attribute form, malformed fallback)
- Timestamp parsing
- Dataset discovery, concurrent reads and parsing
"""

from datetime import datetime

import pytest

from declare_analytics.config import EngineConfig
from declare_analytics.diagnostics import (
    SOURCE_ANALYSIS_DETAIL,
    SOURCE_ANALYSIS_OVERVIEW,
    SOURCE_EVENT_LOG,
    SOURCE_REPLAY_OVERVIEW,
    ParseDiagnostics,
)
from declare_analytics.errors import EmptyModelError, InputFileError, MissingModelError
from declare_analytics.ingest import (
    DatasetLoader,
    DatasetTexts,
    InputKind,
    ResultType,
    detect_input_kind,
    parse_aligned_log,
    parse_constraint_statistics,
    parse_event_log,
    parse_replay_overview,
    parse_timestamp,
    parse_trace_constraint_detail,
)
from declare_analytics.ingest.models import ConstraintStatistics, ProcessEvent, time_sorted


class TestResultType:
    """Tests for ResultType parsing."""

    @pytest.mark.parametrize("label,expected", [
        ("fulfillment", ResultType.FULFILLMENT),
        ("Fulfilment", ResultType.FULFILLMENT),
        ("VIOLATION", ResultType.VIOLATION),
        ("vac. fulfillment", ResultType.VACUOUS_FULFILLMENT),
        ("vacuous violation", ResultType.VACUOUS_VIOLATION),
    ])
    def test_parse(self, label, expected):
        assert ResultType.parse(label) == expected

    def test_parse_unknown(self):
        assert ResultType.parse("maybe") is None

    def test_flags(self):
        assert ResultType.VACUOUS_VIOLATION.is_vacuous
        assert ResultType.VACUOUS_VIOLATION.is_violation
        assert not ResultType.FULFILLMENT.is_violation


class TestConstraintStatistics:
    """Tests for ConstraintStatistics."""

    def test_violation_rate_includes_vacuous(self):
        stats = ConstraintStatistics("X", activations=10, fulfilments=5, violations=2,
                                     vacuous_fulfilments=1, vacuous_violations=2)
        assert stats.total_violations == 4
        assert stats.violation_rate == pytest.approx(0.4)

    def test_zero_activations(self):
        assert ConstraintStatistics("X").violation_rate == 0.0

    def test_add(self):
        stats = ConstraintStatistics("X")
        for result in (ResultType.FULFILLMENT, ResultType.VIOLATION, ResultType.VACUOUS_FULFILLMENT):
            stats.add(result)
        assert stats.activations == 3
        assert stats.activations == stats.total_fulfilments + stats.total_violations


class TestCsvReaders:
    """Tests for the checker CSV readers."""

    def test_constraint_statistics(self, overview_csv):
        stats = parse_constraint_statistics(overview_csv)
        assert [s.constraint_id for s in stats] == [
            "Response[Register, Approve]",
            "Init[Register]",
            "Precedence[Approve, Pay]",
        ]
        assert stats[2].vacuous_fulfilments == 1

    def test_constraint_statistics_skips_bad_rows(self):
        text = (
            "Constraint;Activations;Fulfilments;Violations;Vac. Fulfilments;Vac. Violations\n"
            "Response[A,B]: [A, B];10;7;3;0;0\n"
            "Response[A,C]: [A, C];ten;7;3;0;0\n"
            "Response[A,D]: [A, D];1;1\n"
            "\n"
            "Init[A]: [A];2;2;;;\n"
        )
        diagnostics = ParseDiagnostics()
        stats = parse_constraint_statistics(text, diagnostics=diagnostics)

        assert [s.constraint_id for s in stats] == ["Response[A, B]", "Init[A]"]
        assert stats[1].violations == 0
        assert diagnostics.count(SOURCE_ANALYSIS_OVERVIEW) == 2
        assert [i.line_number for i in diagnostics.issues] == [3, 4]

    def test_detail(self, detail_csv):
        detail = parse_trace_constraint_detail(detail_csv)
        assert list(detail) == ["c1", "c2", "c3"]
        assert detail["c2"]["Response[Register, Approve]"] == [ResultType.VIOLATION]
        assert detail["c3"]["Response[Register, Approve]"] == [ResultType.FULFILLMENT]
        assert detail["c3"]["Precedence[Approve, Pay]"] == [
            ResultType.FULFILLMENT, ResultType.VACUOUS_FULFILLMENT,
        ]

    def test_detail_unknown_result(self):
        text = "Case;Constraint;Result\nc1;Init[A];fulfillment\nc1;Init[A];perhaps\nc2;Init[A]\n"
        diagnostics = ParseDiagnostics()
        detail = parse_trace_constraint_detail(text, diagnostics=diagnostics)
        assert detail == {"c1": {"Init[A]": [ResultType.FULFILLMENT]}}
        assert diagnostics.count(SOURCE_ANALYSIS_DETAIL) == 2

    def test_replay_overview(self, replay_csv):
        stats = parse_replay_overview(replay_csv)
        assert [(s.case_id, s.insertions, s.fitness) for s in stats] == [
            ("c1", 0, 1.0), ("c2", 1, 0.8), ("c3", 0, 1.0),
        ]

    def test_replay_overview_clamps_and_dedupes(self):
        text = "Case;Insertions;Deletions;Fitness\nc1;0;0;1.5\nc1;2;2;0.1\nc2;x;0;0.5\n"
        diagnostics = ParseDiagnostics()
        stats = parse_replay_overview(text, diagnostics=diagnostics)

        assert len(stats) == 1
        assert stats[0].fitness == 1.0
        assert stats[0].insertions == 0
        assert diagnostics.count(SOURCE_REPLAY_OVERVIEW) == 3

    def test_custom_delimiter(self):
        text = "Case,Insertions,Deletions,Fitness\nc1,1,2,0.5\n"
        stats = parse_replay_overview(text, delimiter=",")
        assert stats[0].deletions == 2

    def test_byte_order_mark(self):
        text = "\ufeffCase;Insertions;Deletions;Fitness\nc1;0;0;1\n"
        assert parse_replay_overview(text)[0].case_id == "c1"


class TestTimestamps:
    """Tests for parse_timestamp."""

    def test_offset_converted_to_utc(self):
        assert parse_timestamp("2024-01-01T10:00:00.000+01:00") == datetime(2024, 1, 1, 9, 0)

    def test_zulu(self):
        assert parse_timestamp("2024-01-01T10:00:00Z") == datetime(2024, 1, 1, 10, 0)

    def test_long_fraction(self):
        assert parse_timestamp("2024-01-01T10:00:00.1234567") == datetime(2024, 1, 1, 10, 0, 0, 123456)

    def test_date_only(self):
        assert parse_timestamp("2024-03-05") == datetime(2024, 3, 5)

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_invalid(self, value):
        assert parse_timestamp(value) is None

    def test_time_sorted_puts_missing_last(self):
        events = [
            ProcessEvent("e1", "B", datetime(2024, 1, 2)),
            ProcessEvent("e2", "X", None),
            ProcessEvent("e3", "A", datetime(2024, 1, 1)),
        ]
        assert [e.activity for e in time_sorted(events)] == ["A", "B", "X"]


class TestXes:
    """Tests for XES parsing."""

    def test_event_log(self, event_log_xes):
        diagnostics = ParseDiagnostics()
        cases = parse_event_log(event_log_xes, diagnostics)

        assert [c.case_id for c in cases] == ["c1", "c2", "c3"]
        assert cases[0].activities == ["Register", "Approve", "Pay"]
        assert cases[0].events[0].resource == "alice"
        assert cases[0].events[0].timestamp == datetime(2024, 1, 1, 9, 0)
        assert cases[1].events[1].resource is None
        assert not diagnostics.has_issues

    def test_case_time_span(self, event_log_xes):
        case = parse_event_log(event_log_xes)[2]
        assert case.time_span() == (datetime(2024, 1, 1, 9, 0), datetime(2024, 1, 26, 9, 0))

    def test_extra_attributes_kept(self):
        text = (
            '<log><trace><string key="concept:name" value="k1"/>'
            '<event><string key="concept:name" value="A"/><int key="amount" value="5"/></event>'
            '</trace></log>'
        )
        event = parse_event_log(text)[0].events[0]
        assert event.attributes == {"amount": "5"}

    def test_legacy_attribute_form(self):
        """Malformed XML falls back to the tolerant scanner."""
        text = (
            '<log>\n'
            '<trace id="t1">\n'
            '  <event activity="Register" timestamp="2024-01-01T09:00:00" resource="alice"/>\n'
            '  <event activity="Pay" timestamp="2024-01-02T09:00:00"/>\n'
            '</trace>\n'
            '<trace id="t2"><event activity="Register"/>\n'
        )
        diagnostics = ParseDiagnostics()
        cases = parse_event_log(text, diagnostics)

        assert [c.case_id for c in cases] == ["t1", "t2"]
        assert cases[0].activities == ["Register", "Pay"]
        assert cases[0].events[0].resource == "alice"
        assert cases[0].events[1].timestamp == datetime(2024, 1, 2, 9, 0)
        assert diagnostics.count(SOURCE_EVENT_LOG) == 1

    def test_offsets_and_typed_values(self):
        text = (
            '<log><trace><string key="concept:name" value="k1"/>'
            '<event><string key="concept:name" value="A"/>'
            '<date key="time:timestamp" value="2024-01-01T10:00:00.000+01:00"/>'
            '<boolean key="rush" value="true"/></event>'
            '</trace></log>'
        )
        event = parse_event_log(text)[0].events[0]
        assert event.timestamp == datetime(2024, 1, 1, 9, 0)
        assert event.attributes == {"rush": "true"}

    def test_well_formed_attribute_form(self):
        """Events without keyed children are read from their XML attributes."""
        text = '<log><trace id="t1"><event activity="A" resource="R"/></trace></log>'
        diagnostics = ParseDiagnostics()
        cases = parse_event_log(text, diagnostics)

        assert [(c.case_id, c.activities) for c in cases] == [("t1", ["A"])]
        assert cases[0].events[0].resource == "R"
        assert not diagnostics.has_issues

    def test_unclosed_event_kept(self):
        text = (
            '<trace id="c1"><event activity="A" resource="R"/>'
            '<event activity="B & C" timestamp="2024-01-01T10:00:00"></trace>'
            '<trace id="c2"><event activity="D"><event activity="E"/>'
        )
        cases = parse_event_log(text)

        assert [(c.case_id, c.activities) for c in cases] == [
            ("c1", ["A", "B & C"]),
            ("c2", ["D", "E"]),
        ]
        assert cases[0].events[1].timestamp == datetime(2024, 1, 1, 10, 0)

    def test_cases_without_events_dropped(self):
        text = '<log><trace><string key="concept:name" value="empty"/></trace></log>'
        assert parse_event_log(text) == []

    def test_missing_case_name_uses_position(self):
        text = '<log><trace><event><string key="concept:name" value="A"/></event></trace></log>'
        assert parse_event_log(text)[0].case_id == "case_1"

    def test_aligned_log_moves(self):
        text = (
            '<log><trace><string key="concept:name" value="c1"/>'
            '<event><string key="original" value="A"/><string key="aligned" value="A"/></event>'
            '<event><string key="aligned" value="B"/><string key="type" value="insertion"/></event>'
            '<event><string key="concept:name" value="C"/></event>'
            '</trace></log>'
        )
        case = parse_aligned_log(text)[0]
        assert [e.move_type for e in case.events] == ["complete", "insertion", "complete"]
        assert case.events[1].original_activity == ""
        assert case.activities == ["A", "B", "C"]


class TestDetectInputKind:
    """Tests for file name classification."""

    @pytest.mark.parametrize("name,kind", [
        ("model.decl", InputKind.MODEL),
        ("my_declare.txt", InputKind.MODEL),
        ("Analysis_Overview.csv", InputKind.ANALYSIS_OVERVIEW),
        ("analysis_detail.csv", InputKind.ANALYSIS_DETAIL),
        ("replay_overview.csv", InputKind.REPLAY_OVERVIEW),
        ("replay_detail.csv", InputKind.REPLAY_DETAIL),
        ("aligned_log.xes", InputKind.ALIGNED_LOG),
        ("log.xes", InputKind.EVENT_LOG),
        ("events.txt", InputKind.EVENT_LOG),
        ("notes.txt", None),
    ])
    def test_detect(self, name, kind):
        assert detect_input_kind(name) == kind


class TestDatasetLoader:
    """Tests for DatasetLoader."""

    def test_discover(self, dataset_dir):
        (dataset_dir / "readme.txt").write_text("hello")
        files = DatasetLoader().discover(dataset_dir)

        assert files.model.name == "model.decl"
        assert files.aligned_log.name == "aligned_log.xes"
        assert files.event_log.name == "event_log.xes"
        assert files.replay_detail is None
        assert [p.name for p in files.unknown_files] == ["readme.txt"]

    def test_discover_missing_directory(self, tmp_path):
        files = DatasetLoader().discover(tmp_path / "nope")
        assert files.present() == {}

    def test_read_joins_all_files(self, dataset_dir):
        loader = DatasetLoader(EngineConfig(read_workers=2))
        texts = loader.read(loader.discover(dataset_dir))
        assert texts.model.startswith("# sample model")
        assert texts.event_log is not None
        assert texts.replay_detail is None

    def test_load(self, dataset_dir):
        dataset = DatasetLoader().load(dataset_dir)
        assert dataset.stats == {
            "constraints": 3,
            "constraint_statistics": 3,
            "detail_traces": 3,
            "replay_traces": 3,
            "event_log_cases": 3,
            "aligned_log_cases": 3,
            "skipped_rows": 0,
        }

    def test_missing_model(self, dataset_dir):
        (dataset_dir / "model.decl").unlink()
        with pytest.raises(MissingModelError):
            DatasetLoader().load(dataset_dir)

    def test_empty_model(self):
        with pytest.raises(EmptyModelError) as excinfo:
            DatasetLoader().parse(DatasetTexts(model="nothing useful here\n"))
        assert isinstance(excinfo.value, InputFileError)

    def test_optional_inputs_absent(self):
        dataset = DatasetLoader().parse(DatasetTexts(model="Init[A]\n"))
        assert dataset.detail == {}
        assert dataset.replay_statistics == []
        assert dataset.event_log == []
