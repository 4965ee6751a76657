"""
Ingest Module.

Readers for the DECLARE model, the conformance checker's CSV outputs and
the XES event logs, plus dataset discovery by file name.
"""

from .csv_readers import (
    DetailMap,
    parse_constraint_statistics,
    parse_replay_overview,
    parse_trace_constraint_detail,
)
from .loader import (
    DatasetFiles,
    DatasetLoader,
    DatasetTexts,
    InputKind,
    ParsedDataset,
    detect_input_kind,
)
from .models import (
    AlignedCase,
    AlignedEvent,
    ConstraintStatistics,
    ProcessCase,
    ProcessEvent,
    ResultType,
    TraceStatistics,
)
from .xes import index_by_case, parse_aligned_log, parse_event_log, parse_timestamp

__all__ = [
    # Records
    "ResultType",
    "ConstraintStatistics",
    "TraceStatistics",
    "ProcessEvent",
    "ProcessCase",
    "AlignedEvent",
    "AlignedCase",
    # CSV
    "DetailMap",
    "parse_constraint_statistics",
    "parse_trace_constraint_detail",
    "parse_replay_overview",
    # XES
    "parse_event_log",
    "parse_aligned_log",
    "parse_timestamp",
    "index_by_case",
    # Loader
    "InputKind",
    "detect_input_kind",
    "DatasetFiles",
    "DatasetTexts",
    "ParsedDataset",
    "DatasetLoader",
]
