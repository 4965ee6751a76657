"""
Tests for statistics aggregation, severity and trace filtering.
"""

import pytest

from declare_analytics.config import EngineConfig
from declare_analytics.conformance import (
    ConstraintTag,
    Severity,
    StatisticsAggregator,
    TraceFilter,
    aggregate_dataset,
    build_coviolation_matrix,
    filter_traces,
    severity_for_rate,
    sort_traces,
)
from declare_analytics.diagnostics import SOURCE_AGGREGATION
from declare_analytics.ingest import DatasetLoader, DatasetTexts

RESPONSE = "Response[Register, Approve]"
INIT = "Init[Register]"
PRECEDENCE = "Precedence[Approve, Pay]"


@pytest.fixture
def dataset(dataset_dir):
    return DatasetLoader().load(dataset_dir)


@pytest.fixture
def result(dataset):
    return aggregate_dataset(dataset)


def by_id(items):
    return {item.id: item for item in items}


class TestSeverity:
    """Tests for severity bucketing."""

    @pytest.mark.parametrize("rate,expected", [
        (0.0, Severity.LOW),
        (0.29, Severity.LOW),
        (0.3, Severity.MEDIUM),
        (0.6, Severity.HIGH),
        (0.79, Severity.HIGH),
        (0.8, Severity.CRITICAL),
        (1.0, Severity.CRITICAL),
    ])
    def test_buckets(self, rate, expected):
        assert severity_for_rate(rate) == expected

    def test_ordering(self):
        assert sorted([Severity.LOW, Severity.CRITICAL, Severity.MEDIUM]) == [
            Severity.CRITICAL, Severity.MEDIUM, Severity.LOW,
        ]

    def test_parse(self):
        assert Severity.parse(" high ") == Severity.HIGH
        with pytest.raises(ValueError):
            Severity.parse("urgent")


class TestDetailIsSourceOfTruth:
    """Statistics come from the detail table, not from the overview file."""

    def test_response_scenario(self):
        """Three violations in two traces, seven fulfilments in five traces."""
        fulfilling = ["t1", "t1", "t2", "t2", "t3", "t4", "t5"]
        violating = ["t6", "t6", "t7"]
        detail_rows = [f"{case};Response[A,B]: [A, B];fulfillment" for case in fulfilling]
        detail_rows += [f"{case};response: [A], [B][][][];violation" for case in violating]
        texts = DatasetTexts(
            model="Response[A, B]\n",
            analysis_overview=(
                "Constraint;Activations;Fulfilments;Violations;Vac. Fulfilments;Vac. Violations\n"
                "Response[A,B]: [A, B];10;7;3;0;0\n"
            ),
            analysis_detail="Case;Constraint;Result\n" + "\n".join(detail_rows) + "\n",
        )
        constraint = aggregate_dataset(DatasetLoader().parse(texts)).constraints[0]

        assert constraint.activations == 10
        assert constraint.violation_count == 3
        assert constraint.fulfilment_count == 7
        assert constraint.violation_rate == pytest.approx(0.3)
        assert constraint.severity == Severity.MEDIUM
        assert constraint.reported_statistics.activations == 10
        assert constraint.violating_trace_ids == ["t6", "t7"]
        assert len(constraint.trace_ids) == 7

    def test_detail_overrides_disagreeing_overview(self):
        texts = DatasetTexts(
            model="Init[A]\n",
            analysis_overview=(
                "Constraint;Activations;Fulfilments;Violations;Vac. Fulfilments;Vac. Violations\n"
                "init: [A][][][];100;0;100;0;0\n"
            ),
            analysis_detail="Case;Constraint;Result\nt1;init: [A][][][];fulfillment\n",
        )
        constraint = aggregate_dataset(DatasetLoader().parse(texts)).constraints[0]
        assert constraint.activations == 1
        assert constraint.severity == Severity.LOW
        assert constraint.reported_statistics.violations == 100

    def test_reported_statistics_used_without_detail(self, model_text, overview_csv):
        texts = DatasetTexts(model=model_text, analysis_overview=overview_csv)
        constraints = by_id(aggregate_dataset(DatasetLoader().parse(texts)).constraints)

        precedence = constraints[PRECEDENCE]
        assert precedence.activations == 4
        assert precedence.violation_rate == pytest.approx(0.25)
        assert precedence.trace_ids == []

    def test_constraint_without_results(self):
        texts = DatasetTexts(model="Init[A]\nResponse[A, B]\n",
                             analysis_detail="Case;Constraint;Result\nt1;Init[A];fulfillment\n")
        constraints = aggregate_dataset(DatasetLoader().parse(texts)).constraints
        assert constraints[1].activations == 0
        assert constraints[1].violation_rate == 0.0
        assert constraints[1].severity == Severity.LOW


class TestConstraints:
    """Tests for dashboard constraints of the sample dataset."""

    def test_model_order(self, result):
        assert [c.id for c in result.constraints] == [RESPONSE, INIT, PRECEDENCE]

    def test_statistics(self, result):
        constraints = by_id(result.constraints)

        assert constraints[RESPONSE].violation_rate == pytest.approx(1 / 3)
        assert constraints[RESPONSE].severity == Severity.MEDIUM
        assert constraints[INIT].severity == Severity.LOW

        precedence = constraints[PRECEDENCE]
        assert precedence.activations == 4
        assert precedence.statistics.vacuous_fulfilments == 1
        assert precedence.activations == precedence.fulfilment_count + precedence.violation_count
        assert precedence.violating_trace_ids == ["c2"]
        assert precedence.trace_ids == ["c1", "c2", "c3"]

    def test_default_tag(self, result):
        tag = result.constraints[0].tag
        assert tag.priority == Severity.MEDIUM
        assert not (tag.quality or tag.efficiency or tag.compliance)

    def test_to_dict(self, result):
        data = result.constraints[0].to_dict()
        assert data["id"] == RESPONSE
        assert data["severity"] == "MEDIUM"
        assert data["violationRate"] == pytest.approx(0.3333)
        assert data["violatingTraceCount"] == 1


class TestTraces:
    """Tests for dashboard traces."""

    def test_replay_order_and_join(self, result):
        traces = {t.case_id: t for t in result.traces}
        assert [t.case_id for t in result.traces] == ["c1", "c2", "c3"]

        c2 = traces["c2"]
        assert c2.fitness == pytest.approx(0.8)
        assert c2.insertions == 1
        assert c2.activities == ["Register", "Pay"]
        assert c2.aligned_activities == ["Register", "Approve", "Pay"]
        assert c2.violated_constraints == [RESPONSE, PRECEDENCE]
        assert c2.fulfilled_constraints == [INIT]
        assert c2.violations == 2

    def test_vacuous_outcomes_kept_apart(self, result):
        c3 = result.traces[2]
        assert PRECEDENCE in c3.fulfilled_constraints
        assert c3.vacuously_fulfilled_constraints == [PRECEDENCE]
        assert c3.vacuous_fulfilments == 1
        assert c3.detail_for(PRECEDENCE).status == "Fulfilled"

    def test_unknown_constraints_reported(self, model_text, replay_csv):
        texts = DatasetTexts(
            model=model_text,
            analysis_detail="Case;Constraint;Result\nc1;Init[Nowhere];violation\n",
            replay_overview=replay_csv,
        )
        dataset = DatasetLoader().parse(texts)
        result = aggregate_dataset(dataset)

        assert dataset.diagnostics.count(SOURCE_AGGREGATION) == 1
        assert result.traces[0].violated_constraints == []

    def test_detail_only_cases_appended(self):
        texts = DatasetTexts(
            model="Response[A, B]\nInit[A]\n",
            analysis_detail=(
                "Case;Constraint;Result\n"
                "t1;Response[A, B];violation\nt1;Init[A];violation\n"
                "t2;Response[A, B];violation\nt2;Init[A];violation\n"
            ),
        )
        result = aggregate_dataset(DatasetLoader().parse(texts))

        assert [t.case_id for t in result.traces] == ["t1", "t2"]
        assert all(t.fitness == 0.0 and t.insertions == 0 for t in result.traces)
        assert result.traces[0].violated_constraints == ["Response[A, B]", "Init[A]"]
        assert result.overview.total_traces == 2
        assert result.overview.overall_conformance == 0.0

        matrix = build_coviolation_matrix(result.constraints, result.traces)
        assert matrix.get("Response[A, B]", "Init[A]") == 2
        assert matrix.get("Response[A, B]", "Response[A, B]") == result.constraints[0].violation_count

    def test_detail_only_cases_follow_replay_rows(self):
        texts = DatasetTexts(
            model="Init[A]\n",
            analysis_detail="Case;Constraint;Result\nt9;Init[A];fulfillment\nt1;Init[A];violation\n",
            replay_overview="Case;Insertions;Deletions;Fitness\nt1;0;1;0.5\n",
        )
        traces = aggregate_dataset(DatasetLoader().parse(texts)).traces
        assert [(t.case_id, t.fitness) for t in traces] == [("t1", 0.5), ("t9", 0.0)]


class TestOverview:
    """Tests for log-level KPIs."""

    def test_kpis(self, result):
        overview = result.overview
        assert overview.total_traces == 3
        assert overview.total_variants == 2
        assert overview.total_constraints == 3
        assert overview.overall_fitness == pytest.approx(2.8 / 3)
        assert overview.overall_conformance == pytest.approx(2 / 3)
        assert overview.average_insertions == pytest.approx(1 / 3)
        assert overview.overall_compliance == 1.0
        assert overview.critical_violations == 0

    def test_tag_flags_and_priorities(self, dataset):
        tags = {
            "response: [Register], [Approve][][][]": ConstraintTag(priority=Severity.CRITICAL, compliance=True),
            "Init[Register]": ConstraintTag(priority=Severity.HIGH, quality=True),
            "Init[Nowhere]": ConstraintTag(priority=Severity.CRITICAL),
        }
        result = aggregate_dataset(dataset, tags)
        overview = result.overview

        assert overview.overall_compliance == pytest.approx(2 / 3)
        assert overview.overall_quality == 1.0
        assert overview.critical_violations == 1
        # Init is tagged HIGH but never violated
        assert overview.high_priority_violations == 0

    def test_empty_dataset(self):
        result = aggregate_dataset(DatasetLoader().parse(DatasetTexts(model="Init[A]\n")))
        assert result.overview.total_traces == 0
        assert result.overview.overall_conformance == 0.0

    def test_traces_without_events_add_no_variant(self, model_text, detail_csv, replay_csv):
        texts = DatasetTexts(model=model_text, analysis_detail=detail_csv, replay_overview=replay_csv)
        overview = aggregate_dataset(DatasetLoader().parse(texts)).overview
        assert overview.total_traces == 3
        assert overview.total_variants == 0


class TestGroups:
    """Tests for constraint groups."""

    def test_group_by_type(self, result):
        groups = by_id(result.groups)
        assert list(groups) == ["group_Response", "group_Init", "group_Precedence"]
        assert groups["group_Response"].name == "Response Constraints"
        assert groups["group_Precedence"].total_activations == 4

    def test_group_by_tag(self, dataset):
        aggregator = StatisticsAggregator(EngineConfig(group_by="tag"))
        tags = {RESPONSE: ConstraintTag(group="Approval Flow"), PRECEDENCE: ConstraintTag(group="Approval Flow")}
        groups = aggregator.aggregate(dataset, tags).groups

        assert [g.key for g in groups] == ["Approval Flow", "Ungrouped"]
        approval = groups[0]
        assert approval.id == "group_Approval_Flow"
        assert approval.constraint_ids == [RESPONSE, PRECEDENCE]
        assert approval.total_violations == 2
        assert approval.average_violation_rate == pytest.approx((1 / 3 + 0.25) / 2)


class TestTagParsing:
    """Tests for ConstraintTag.from_dict."""

    def test_from_dict(self):
        tag = ConstraintTag.from_dict({"priority": "critical", "compliance": "yes", "group": "Audit"})
        assert tag.priority == Severity.CRITICAL
        assert tag.compliance is True
        assert tag.quality is False
        assert tag.group == "Audit"

    def test_unknown_priority(self):
        with pytest.raises(ValueError):
            ConstraintTag.from_dict({"priority": "urgent"})


class TestFilters:
    """Tests for trace filtering and sorting."""

    def test_has_violations(self, result):
        traces = filter_traces(result.traces, TraceFilter(has_violations=True))
        assert [t.case_id for t in traces] == ["c2"]

    def test_fitness_range(self, result):
        traces = filter_traces(result.traces, TraceFilter(min_fitness=0.9))
        assert [t.case_id for t in traces] == ["c1", "c3"]

    def test_constraint_ids(self, result):
        traces = filter_traces(result.traces, TraceFilter(constraint_ids=[PRECEDENCE]))
        assert [t.case_id for t in traces] == ["c2"]

    def test_constraint_types(self, result):
        trace_filter = TraceFilter(constraint_types=["Init"])
        assert len(filter_traces(result.traces, trace_filter, result.constraints)) == 3
        # Types cannot be resolved without the constraints
        assert filter_traces(result.traces, trace_filter) == []

    def test_variant_contains(self, result):
        traces = filter_traces(result.traces, TraceFilter(variant_contains="Approve"))
        assert [t.case_id for t in traces] == ["c1", "c3"]

    def test_sort(self, result):
        assert [t.case_id for t in sort_traces(result.traces, "fitness")] == ["c2", "c1", "c3"]
        assert [t.case_id for t in sort_traces(result.traces, "violations", "desc")] == ["c2", "c1", "c3"]
        assert [t.case_id for t in sort_traces(result.traces, "caseId", "desc")] == ["c3", "c2", "c1"]

    def test_sort_rejects_unknown_field(self, result):
        with pytest.raises(ValueError):
            sort_traces(result.traces, "duration")
