"""
Main CLI entry point for the DECLARE conformance analytics engine.

Usage:
    declare-analytics analyze --input-dir ./results --output-dir ./output
    declare-analytics constraints model.decl --tags-template tags.json
    declare-analytics align --input-dir ./results --case-id case_17
    declare-analytics flow --input-dir ./results --coverage 80 --format mermaid
"""

import json
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from . import DEFAULT_CONFIG, __version__
from .config import PRESETS, EngineConfig, apply_preset
from .declare.parser import parse_model
from .diagnostics import ParseDiagnostics
from .engine import AnalysisBundle, ConformanceEngine, tag_template
from .errors import InputFileError
from .ingest.loader import DatasetFiles, DatasetLoader
from .report.generator import ReportGenerator, convert_for_json
from .visualization.flow_graph import ProcessFlowGraphBuilder
from .visualization.mermaid import MermaidGenerator


class AnalysisContext:
    """Holds settings shared by all CLI commands."""

    def __init__(self):
        self.config = EngineConfig.from_dict(DEFAULT_CONFIG)


pass_context = click.make_pass_decorator(AnalysisContext, ensure=True)


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _dataset_files(input_dir: Optional[str], loader: DatasetLoader, **explicit) -> DatasetFiles:
    """Discovered files of ``input_dir`` overridden by explicitly given paths."""
    files = loader.discover(input_dir) if input_dir else DatasetFiles()
    for name, value in explicit.items():
        if value:
            setattr(files, name, Path(value))
    return files


def _run_engine(config: EngineConfig, files: DatasetFiles, tags: Optional[str] = None) -> AnalysisBundle:
    engine = ConformanceEngine(config)
    try:
        return engine.run(engine.load(files), tags)
    except InputFileError as e:
        _fail(str(e))


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.option('--delimiter', default=DEFAULT_CONFIG['csv_delimiter'], show_default=True,
              help='Field delimiter of the checker CSV files')
@click.option('--preset', type=click.Choice(sorted(PRESETS)), default=None,
              help='Flow graph preset (overrides coverage defaults)')
@click.pass_context
def cli(ctx, verbose: bool, delimiter: str, preset: Optional[str]):
    """DECLARE Conformance Analytics

    Reconciles a DECLARE model with the results of a conformance checker
    and reports constraint statistics, trace outcomes, co-violations and
    process flow.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    ctx.ensure_object(AnalysisContext)
    ctx.obj.config.csv_delimiter = delimiter
    if preset:
        apply_preset(ctx.obj.config, preset)


@cli.command()
@click.option('--input-dir', '-i', type=click.Path(exists=True, file_okay=False), default=None,
              help='Directory with the model and checker outputs')
@click.option('--model', type=click.Path(exists=True, dir_okay=False), default=None,
              help='DECLARE model file (overrides discovery)')
@click.option('--analysis-overview', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Per-constraint statistics CSV')
@click.option('--analysis-detail', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Per-trace constraint results CSV')
@click.option('--replay-overview', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Per-trace replay results CSV')
@click.option('--event-log', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Raw event log (XES)')
@click.option('--aligned-log', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Aligned event log (XES)')
@click.option('--tags', '-t', type=click.Path(exists=True, dir_okay=False), default=None,
              help='Constraint tags JSON')
@click.option('--output-dir', '-o', required=True, type=click.Path(),
              help='Directory for analysis outputs')
@click.option('--format', '-f', 'output_format', type=click.Choice(['json', 'markdown', 'both']),
              default='both', help='Output format')
@click.option('--coverage', type=click.FloatRange(0, 100), default=None,
              help='Variant coverage percentage for the flow graph')
@click.option('--min-edge', type=click.FloatRange(0, 100), default=None,
              help='Minimum edge weight as percentage of the heaviest edge')
@click.option('--group-by', type=click.Choice(['type', 'tag']), default=None,
              help='Group constraints by template type or tag group')
@pass_context
def analyze(ctx, input_dir, model, analysis_overview, analysis_detail, replay_overview,
            event_log, aligned_log, tags, output_dir, output_format, coverage, min_edge, group_by):
    """Run the full analysis and write the reports.

    Output files:
    - analysis.json - Complete analysis bundle
    - report.md     - Human-readable summary
    """
    if not input_dir and not model:
        _fail("Provide --input-dir or --model")

    config = replace(ctx.config)
    if coverage is not None:
        config.variant_coverage = coverage
    if min_edge is not None:
        config.min_edge_percentage = min_edge
    if group_by is not None:
        config.group_by = group_by

    files = _dataset_files(
        input_dir, DatasetLoader(config),
        model=model,
        analysis_overview=analysis_overview,
        analysis_detail=analysis_detail,
        replay_overview=replay_overview,
        event_log=event_log,
        aligned_log=aligned_log,
    )
    click.echo(f"Inputs: {', '.join(sorted(files.present())) or 'none'}")

    bundle = _run_engine(config, files, tags)
    overview = bundle.overview
    click.echo(f"  {overview.total_constraints} constraints, {overview.total_traces} traces, "
               f"{overview.total_variants} variants")
    click.echo(f"  Conformant traces: {overview.overall_conformance:.1%}, "
               f"average fitness: {overview.overall_fitness:.3f}")
    if bundle.diagnostics.has_issues:
        click.echo(f"  Skipped {bundle.diagnostics.count()} malformed input rows")

    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    if output_format in ('json', 'both'):
        report = ReportGenerator(output_format='json', config=config).generate(bundle)
        (output_path / 'analysis.json').write_text(report, encoding='utf-8')
        click.echo("  Wrote analysis.json")

    if output_format in ('markdown', 'both'):
        report = ReportGenerator(output_format='markdown', config=config).generate(bundle)
        (output_path / 'report.md').write_text(report, encoding='utf-8')
        click.echo("  Wrote report.md")

    click.echo("Analysis complete.")


@cli.command()
@click.argument('model_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--tags-template', type=click.Path(), default=None,
              help='Write a tag template JSON for the constraints')
def constraints(model_file: str, tags_template: Optional[str]):
    """List the constraints of a DECLARE model."""
    diagnostics = ParseDiagnostics()
    text = Path(model_file).read_text(encoding='utf-8', errors='replace')
    parsed = parse_model(text, diagnostics=diagnostics)

    if not parsed:
        _fail(f"No parseable constraints in {model_file}")

    for constraint in parsed:
        click.echo(constraint.id)
        if constraint.help_text:
            click.echo(f"    {constraint.help_text}")

    click.echo(f"\n{len(parsed)} constraints, {diagnostics.count()} skipped lines")

    if tags_template:
        with open(tags_template, 'w', encoding='utf-8') as f:
            json.dump(tag_template(parsed), f, indent=2)
        click.echo(f"Wrote tag template to {tags_template}")


@cli.command()
@click.option('--input-dir', '-i', required=True, type=click.Path(exists=True, file_okay=False),
              help='Directory with the model and checker outputs')
@click.option('--case-id', '-c', required=True, help='Case to align')
@click.option('--json', 'as_json', is_flag=True, help='Print the alignment as JSON')
@pass_context
def align(ctx, input_dir: str, case_id: str, as_json: bool):
    """Show the log-versus-model alignment of one case."""
    bundle = _run_engine(ctx.config, DatasetLoader(ctx.config).discover(input_dir))
    alignment = bundle.alignment_for(case_id)
    if alignment is None:
        _fail(f"Unknown case: {case_id}")

    if as_json:
        click.echo(json.dumps(alignment.to_dict(), indent=2))
        return

    for step in alignment.steps:
        log_side = step.original_activity or '-'
        model_side = step.aligned_activity or '-'
        click.echo(f"{step.type.value:<12} {log_side:<30} {model_side:<30} {step.description}")
    click.echo(f"\n{alignment.synchronous_moves} synchronous, {alignment.insertions} insertions, "
               f"{alignment.deletions} deletions")


@cli.command()
@click.option('--input-dir', '-i', required=True, type=click.Path(exists=True, file_okay=False),
              help='Directory with the model and checker outputs')
@click.option('--coverage', type=click.FloatRange(0, 100), default=None,
              help='Variant coverage percentage')
@click.option('--min-edge', type=click.FloatRange(0, 100), default=None,
              help='Minimum edge weight as percentage of the heaviest edge')
@click.option('--format', '-f', 'output_format', type=click.Choice(['json', 'mermaid']),
              default='mermaid', help='Output format')
@click.option('--output', '-o', type=click.Path(), default=None,
              help='Write to file instead of stdout')
@pass_context
def flow(ctx, input_dir: str, coverage: Optional[float], min_edge: Optional[float],
         output_format: str, output: Optional[str]):
    """Print the variant-filtered process flow graph."""
    config = ctx.config
    bundle = _run_engine(config, DatasetLoader(config).discover(input_dir))

    builder = ProcessFlowGraphBuilder(
        coverage=config.variant_coverage if coverage is None else coverage,
        min_edge_percentage=config.min_edge_percentage if min_edge is None else min_edge,
    )
    graph = builder.build(bundle.dashboard_traces, bundle.dashboard_constraints)

    if output_format == 'json':
        text = json.dumps(convert_for_json(graph.to_dict()), indent=2)
    else:
        text = MermaidGenerator().generate_flow(graph)

    if output:
        Path(output).write_text(text, encoding='utf-8')
        click.echo(f"Wrote flow graph to {output}")
    else:
        click.echo(text)


def main():
    """Main entry point."""
    cli()


if __name__ == '__main__':
    main()
