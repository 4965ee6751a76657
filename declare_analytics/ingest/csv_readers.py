"""
Readers for the conformance checker's CSV outputs.

All files are semicolon separated with a header row:

- analysis overview: ``Constraint;Activations;Fulfilments;Violations;Vac. Fulfilments;Vac. Violations``
- analysis detail:   ``Case;Constraint;Result``  (one row per activation)
- replay overview:   ``Case;Insertions;Deletions;Fitness``

Constraint ids are canonicalised on the way in, so every downstream join
uses the same key as the parsed model. Short or non-numeric rows are skipped
and recorded in the diagnostics collector; blank lines are ignored.
"""

import csv
import io
import logging
from collections import OrderedDict
from typing import Dict, Iterator, List, Optional, Tuple

from ..declare.identifiers import IdentifierReconciler
from ..diagnostics import (
    SOURCE_ANALYSIS_DETAIL,
    SOURCE_ANALYSIS_OVERVIEW,
    SOURCE_REPLAY_OVERVIEW,
    ParseDiagnostics,
    RowOutcome,
)
from .models import ConstraintStatistics, ResultType, TraceStatistics

logger = logging.getLogger(__name__)

# case id -> constraint id -> result types in row order
DetailMap = Dict[str, Dict[str, List[ResultType]]]


def _data_rows(text: str, delimiter: str) -> Iterator[Tuple[int, List[str]]]:
    """Yield (line number, cells) for every non-blank row after the header."""
    reader = csv.reader(io.StringIO(text.lstrip("\ufeff")), delimiter=delimiter)
    for index, row in enumerate(reader):
        if index == 0:
            continue
        cells = [cell.strip() for cell in row]
        if not any(cells):
            continue
        yield index + 1, cells


def _parse_count(value: str) -> Optional[int]:
    if value == "":
        return 0
    try:
        return int(float(value))
    except (ValueError, OverflowError):
        return None


def _parse_overview_row(
    cells: List[str],
    line_number: int,
    reconciler: IdentifierReconciler,
) -> RowOutcome[ConstraintStatistics]:
    content = ";".join(cells)
    if len(cells) < 6:
        return RowOutcome.failure(SOURCE_ANALYSIS_OVERVIEW,
                                  f"expected 6 columns, got {len(cells)}", line_number, content)
    if not cells[0]:
        return RowOutcome.failure(SOURCE_ANALYSIS_OVERVIEW, "missing constraint id",
                                  line_number, content)

    counts = [_parse_count(value) for value in cells[1:6]]
    if any(count is None for count in counts):
        return RowOutcome.failure(SOURCE_ANALYSIS_OVERVIEW, "non-numeric count",
                                  line_number, content)

    activations, fulfilments, violations, vac_fulfilments, vac_violations = counts
    return RowOutcome.success(ConstraintStatistics(
        constraint_id=reconciler.canonical(cells[0]),
        activations=activations,
        fulfilments=fulfilments,
        violations=violations,
        vacuous_fulfilments=vac_fulfilments,
        vacuous_violations=vac_violations,
    ))


def parse_constraint_statistics(
    text: str,
    reconciler: Optional[IdentifierReconciler] = None,
    diagnostics: Optional[ParseDiagnostics] = None,
    delimiter: str = ";",
) -> List[ConstraintStatistics]:
    """
    Parse the analysis overview CSV.

    Args:
        text: File contents
        reconciler: Identifier reconciler (default registry if None)
        diagnostics: Collector for skipped rows
        delimiter: Column delimiter

    Returns:
        One ConstraintStatistics per valid row, in file order
    """
    reconciler = reconciler or IdentifierReconciler()
    if diagnostics is None:
        diagnostics = ParseDiagnostics()

    stats = []
    for line_number, cells in _data_rows(text, delimiter):
        row = diagnostics.absorb(_parse_overview_row(cells, line_number, reconciler))
        if row is not None:
            stats.append(row)

    logger.info(f"Parsed {len(stats)} constraint statistics rows")
    return stats


def _parse_detail_row(
    cells: List[str],
    line_number: int,
    reconciler: IdentifierReconciler,
) -> RowOutcome[Tuple[str, str, ResultType]]:
    content = ";".join(cells)
    if len(cells) < 3:
        return RowOutcome.failure(SOURCE_ANALYSIS_DETAIL,
                                  f"expected 3 columns, got {len(cells)}", line_number, content)
    case_id, raw_constraint, raw_result = cells[0], cells[1], cells[2]
    if not case_id or not raw_constraint:
        return RowOutcome.failure(SOURCE_ANALYSIS_DETAIL, "missing case or constraint id",
                                  line_number, content)
    result = ResultType.parse(raw_result)
    if result is None:
        return RowOutcome.failure(SOURCE_ANALYSIS_DETAIL, f"unknown result type '{raw_result}'",
                                  line_number, content)
    return RowOutcome.success((case_id, reconciler.canonical(raw_constraint), result))


def parse_trace_constraint_detail(
    text: str,
    reconciler: Optional[IdentifierReconciler] = None,
    diagnostics: Optional[ParseDiagnostics] = None,
    delimiter: str = ";",
) -> DetailMap:
    """
    Parse the analysis detail CSV into trace -> constraint -> result types.

    Insertion order of traces, constraints and results follows the file.

    Args:
        text: File contents
        reconciler: Identifier reconciler (default registry if None)
        diagnostics: Collector for skipped rows
        delimiter: Column delimiter

    Returns:
        Nested mapping keyed by case id, then canonical constraint id
    """
    reconciler = reconciler or IdentifierReconciler()
    if diagnostics is None:
        diagnostics = ParseDiagnostics()

    detail: DetailMap = OrderedDict()
    rows = 0
    for line_number, cells in _data_rows(text, delimiter):
        parsed = diagnostics.absorb(_parse_detail_row(cells, line_number, reconciler))
        if parsed is None:
            continue
        case_id, constraint_id, result = parsed
        detail.setdefault(case_id, OrderedDict()).setdefault(constraint_id, []).append(result)
        rows += 1

    logger.info(f"Parsed {rows} detail rows covering {len(detail)} traces")
    return detail


def _parse_replay_row(
    cells: List[str],
    line_number: int,
    diagnostics: ParseDiagnostics,
) -> RowOutcome[TraceStatistics]:
    content = ";".join(cells)
    if len(cells) < 4:
        return RowOutcome.failure(SOURCE_REPLAY_OVERVIEW,
                                  f"expected 4 columns, got {len(cells)}", line_number, content)
    if not cells[0]:
        return RowOutcome.failure(SOURCE_REPLAY_OVERVIEW, "missing case id", line_number, content)

    insertions, deletions = _parse_count(cells[1]), _parse_count(cells[2])
    try:
        fitness = float(cells[3]) if cells[3] else 0.0
    except ValueError:
        fitness = None
    if insertions is None or deletions is None or fitness is None:
        return RowOutcome.failure(SOURCE_REPLAY_OVERVIEW, "non-numeric value", line_number, content)

    if not 0.0 <= fitness <= 1.0:
        diagnostics.warn(SOURCE_REPLAY_OVERVIEW, f"fitness {fitness} clamped to [0, 1]",
                         line_number, content)
        fitness = min(1.0, max(0.0, fitness))

    return RowOutcome.success(TraceStatistics(
        case_id=cells[0], insertions=insertions, deletions=deletions, fitness=fitness,
    ))


def parse_replay_overview(
    text: str,
    diagnostics: Optional[ParseDiagnostics] = None,
    delimiter: str = ";",
) -> List[TraceStatistics]:
    """
    Parse the replay overview CSV.

    Args:
        text: File contents
        diagnostics: Collector for skipped rows
        delimiter: Column delimiter

    Returns:
        One TraceStatistics per valid row; a repeated case id keeps its
        first row
    """
    if diagnostics is None:
        diagnostics = ParseDiagnostics()

    stats: Dict[str, TraceStatistics] = OrderedDict()
    for line_number, cells in _data_rows(text, delimiter):
        row = diagnostics.absorb(_parse_replay_row(cells, line_number, diagnostics))
        if row is None:
            continue
        if row.case_id in stats:
            diagnostics.warn(SOURCE_REPLAY_OVERVIEW, f"duplicate case {row.case_id}",
                             line_number, ";".join(cells))
            continue
        stats[row.case_id] = row

    logger.info(f"Parsed replay statistics for {len(stats)} traces")
    return list(stats.values())
