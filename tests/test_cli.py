"""
Tests for the command line interface.
"""

import json

import pytest
from click.testing import CliRunner

from declare_analytics.main import cli


@pytest.fixture
def runner():
    return CliRunner()


class TestAnalyzeCommand:
    """Tests for the analyze command."""

    def test_writes_both_reports(self, runner, dataset_dir, tmp_path):
        output_dir = tmp_path / "out"
        result = runner.invoke(cli, ["analyze", "--input-dir", str(dataset_dir),
                                     "--output-dir", str(output_dir)])

        assert result.exit_code == 0, result.output
        assert "3 constraints, 3 traces, 2 variants" in result.output
        assert "Analysis complete." in result.output

        analysis = json.loads((output_dir / "analysis.json").read_text(encoding="utf-8"))
        assert analysis["overview"]["totalTraces"] == 3
        assert (output_dir / "report.md").read_text(encoding="utf-8").startswith("# DECLARE Conformance Report")

    def test_json_only_with_options(self, runner, dataset_dir, tmp_path):
        output_dir = tmp_path / "out"
        result = runner.invoke(cli, ["analyze", "-i", str(dataset_dir), "-o", str(output_dir),
                                     "--format", "json", "--coverage", "0", "--group-by", "tag"])

        assert result.exit_code == 0, result.output
        assert not (output_dir / "report.md").exists()
        analysis = json.loads((output_dir / "analysis.json").read_text(encoding="utf-8"))
        assert analysis["processFlow"]["includedTraceCount"] == 2
        assert analysis["metadata"]["config"]["group_by"] == "tag"
        assert [g["key"] for g in analysis["constraintGroups"]] == ["Ungrouped"]

    def test_explicit_files_without_directory(self, runner, dataset_dir, tmp_path):
        output_dir = tmp_path / "out"
        result = runner.invoke(cli, ["analyze",
                                     "--model", str(dataset_dir / "model.decl"),
                                     "--analysis-detail", str(dataset_dir / "analysis_detail.csv"),
                                     "-o", str(output_dir), "-f", "json"])

        assert result.exit_code == 0, result.output
        analysis = json.loads((output_dir / "analysis.json").read_text(encoding="utf-8"))
        assert analysis["overview"]["totalTraces"] == 3
        assert analysis["overview"]["totalVariants"] == 0
        assert analysis["dashboardConstraints"][0]["violationCount"] == 1

    def test_tags_option(self, runner, dataset_dir, tmp_path):
        tags = tmp_path / "tags.json"
        tags.write_text(json.dumps({"Response[Register, Approve]": {"priority": "HIGH"}}))
        result = runner.invoke(cli, ["analyze", "-i", str(dataset_dir), "-o", str(tmp_path / "out"),
                                     "-f", "json", "--tags", str(tags)])

        assert result.exit_code == 0, result.output
        analysis = json.loads((tmp_path / "out" / "analysis.json").read_text(encoding="utf-8"))
        assert analysis["overview"]["highPriorityViolations"] == 1

    def test_missing_inputs(self, runner, tmp_path):
        result = runner.invoke(cli, ["analyze", "-o", str(tmp_path / "out")])
        assert result.exit_code == 1
        assert "Provide --input-dir or --model" in result.output

    def test_missing_model(self, runner, dataset_dir, tmp_path):
        (dataset_dir / "model.decl").unlink()
        result = runner.invoke(cli, ["analyze", "-i", str(dataset_dir), "-o", str(tmp_path / "out")])
        assert result.exit_code == 1
        assert "Error: No DECLARE model file found" in result.output

    def test_preset(self, runner, dataset_dir, tmp_path):
        output_dir = tmp_path / "out"
        result = runner.invoke(cli, ["--preset", "happy_path", "analyze", "-i", str(dataset_dir),
                                     "-o", str(output_dir), "-f", "json"])

        assert result.exit_code == 0, result.output
        analysis = json.loads((output_dir / "analysis.json").read_text(encoding="utf-8"))
        assert analysis["metadata"]["config"]["variant_coverage"] == 20.0


class TestConstraintsCommand:
    """Tests for the constraints command."""

    def test_lists_constraints(self, runner, dataset_dir):
        result = runner.invoke(cli, ["constraints", str(dataset_dir / "model.decl")])
        assert result.exit_code == 0, result.output
        assert "Response[Register, Approve]" in result.output
        assert "3 constraints, 0 skipped lines" in result.output

    def test_tags_template(self, runner, dataset_dir, tmp_path):
        template = tmp_path / "tags.json"
        result = runner.invoke(cli, ["constraints", str(dataset_dir / "model.decl"),
                                     "--tags-template", str(template)])
        assert result.exit_code == 0, result.output
        entries = json.loads(template.read_text(encoding="utf-8"))
        assert [e["id"] for e in entries][-1] == "Precedence[Approve, Pay]"

    def test_unparseable_model(self, runner, tmp_path):
        model = tmp_path / "model.decl"
        model.write_text("nothing to see\n")
        result = runner.invoke(cli, ["constraints", str(model)])
        assert result.exit_code == 1


class TestAlignCommand:
    """Tests for the align command."""

    def test_text_output(self, runner, dataset_dir):
        result = runner.invoke(cli, ["align", "-i", str(dataset_dir), "--case-id", "c2"])
        assert result.exit_code == 0, result.output
        assert "insertion" in result.output
        assert "2 synchronous, 1 insertions, 0 deletions" in result.output

    def test_json_output(self, runner, dataset_dir):
        result = runner.invoke(cli, ["align", "-i", str(dataset_dir), "-c", "c2", "--json"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["insertions"] == 1

    def test_unknown_case(self, runner, dataset_dir):
        result = runner.invoke(cli, ["align", "-i", str(dataset_dir), "-c", "zzz"])
        assert result.exit_code == 1
        assert "Unknown case: zzz" in result.output


class TestFlowCommand:
    """Tests for the flow command."""

    def test_mermaid(self, runner, dataset_dir):
        result = runner.invoke(cli, ["flow", "-i", str(dataset_dir)])
        assert result.exit_code == 0, result.output
        assert result.output.startswith("flowchart LR")
        assert "a_Register --> |n=1| a_Pay" in result.output

    def test_json_to_file(self, runner, dataset_dir, tmp_path):
        output = tmp_path / "flow.json"
        result = runner.invoke(cli, ["flow", "-i", str(dataset_dir), "--coverage", "0",
                                     "-f", "json", "-o", str(output)])
        assert result.exit_code == 0, result.output
        graph = json.loads(output.read_text(encoding="utf-8"))
        assert graph["includedTraceCount"] == 2
        assert all(edge["kind"] == "conforming" for edge in graph["edges"])
