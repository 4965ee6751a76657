"""
Dataset loader for conformance checker outputs.

A dataset is a directory (or an explicit set of paths) holding:

- the DECLARE model (required)
- analysis overview / analysis detail CSVs
- replay overview CSV (and replay detail, recognised but unused)
- the raw event log and the aligned log (XES)

Files are recognised by name, read concurrently, and parsed into a
:class:`ParsedDataset`. Only the model is mandatory; every other input
degrades to an empty collection when absent.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..config import EngineConfig
from ..declare.identifiers import IdentifierReconciler
from ..declare.models import DeclareConstraint
from ..declare.parser import parse_model
from ..declare.templates import TemplateRegistry
from ..diagnostics import ParseDiagnostics
from ..errors import EmptyModelError, MissingModelError
from .csv_readers import (
    DetailMap,
    parse_constraint_statistics,
    parse_replay_overview,
    parse_trace_constraint_detail,
)
from .models import AlignedCase, ConstraintStatistics, ProcessCase, TraceStatistics
from .xes import parse_aligned_log, parse_event_log

logger = logging.getLogger(__name__)


class InputKind(Enum):
    """Input files of a dataset."""

    MODEL = "model"
    ANALYSIS_OVERVIEW = "analysis_overview"
    ANALYSIS_DETAIL = "analysis_detail"
    REPLAY_OVERVIEW = "replay_overview"
    REPLAY_DETAIL = "replay_detail"
    ALIGNED_LOG = "aligned_log"
    EVENT_LOG = "event_log"


def detect_input_kind(file_name: str) -> Optional[InputKind]:
    """
    Classify a file by its name.

    Checks run in order, so "aligned_log.xes" is an aligned log rather than
    an event log.

    Args:
        file_name: File name (case-insensitive)

    Returns:
        The input kind, or None if the name is not recognised
    """
    name = file_name.lower()
    if "model" in name or "declare" in name or name.endswith(".decl"):
        return InputKind.MODEL
    for kind in (InputKind.ANALYSIS_OVERVIEW, InputKind.ANALYSIS_DETAIL,
                 InputKind.REPLAY_OVERVIEW, InputKind.REPLAY_DETAIL):
        if kind.value in name:
            return kind
    if "aligned" in name or "alignment" in name:
        return InputKind.ALIGNED_LOG
    if name.endswith(".xes") or "event" in name:
        return InputKind.EVENT_LOG
    return None


@dataclass
class DatasetFiles:
    """Paths of the dataset inputs."""
    model: Optional[Path] = None
    analysis_overview: Optional[Path] = None
    analysis_detail: Optional[Path] = None
    replay_overview: Optional[Path] = None
    replay_detail: Optional[Path] = None
    aligned_log: Optional[Path] = None
    event_log: Optional[Path] = None
    unknown_files: List[Path] = field(default_factory=list)

    def present(self) -> Dict[str, Path]:
        """Input kind value -> path, for every assigned input."""
        return {
            kind.value: getattr(self, kind.value)
            for kind in InputKind
            if getattr(self, kind.value) is not None
        }


@dataclass
class DatasetTexts:
    """Raw contents of the dataset inputs; None where a file is absent."""
    model: Optional[str] = None
    analysis_overview: Optional[str] = None
    analysis_detail: Optional[str] = None
    replay_overview: Optional[str] = None
    replay_detail: Optional[str] = None
    aligned_log: Optional[str] = None
    event_log: Optional[str] = None


@dataclass
class ParsedDataset:
    """Parsed inputs of one analysis run."""
    constraints: List[DeclareConstraint]
    constraint_statistics: List[ConstraintStatistics] = field(default_factory=list)
    detail: DetailMap = field(default_factory=dict)
    replay_statistics: List[TraceStatistics] = field(default_factory=list)
    event_log: List[ProcessCase] = field(default_factory=list)
    aligned_log: List[AlignedCase] = field(default_factory=list)
    diagnostics: ParseDiagnostics = field(default_factory=ParseDiagnostics)

    @property
    def stats(self) -> Dict[str, int]:
        return {
            "constraints": len(self.constraints),
            "constraint_statistics": len(self.constraint_statistics),
            "detail_traces": len(self.detail),
            "replay_traces": len(self.replay_statistics),
            "event_log_cases": len(self.event_log),
            "aligned_log_cases": len(self.aligned_log),
            "skipped_rows": self.diagnostics.count(),
        }


class DatasetLoader:
    """
    Discovers, reads and parses conformance checker outputs.

    Example:
        loader = DatasetLoader()
        dataset = loader.load("./results")
        print(dataset.stats)
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        registry: Optional[TemplateRegistry] = None,
    ):
        """
        Initialize the loader.

        Args:
            config: Engine configuration (delimiter, read workers)
            registry: Template registry for model parsing
        """
        self.config = config or EngineConfig()
        self.registry = registry
        self.reconciler = IdentifierReconciler(registry)

    def discover(self, directory: Union[str, Path]) -> DatasetFiles:
        """
        Assign the files of a directory to input kinds by name.

        Args:
            directory: Dataset directory

        Returns:
            DatasetFiles; the first file (by name) of each kind wins
        """
        directory = Path(directory)
        files = DatasetFiles()
        if not directory.is_dir():
            logger.error(f"Data directory not found: {directory}")
            return files

        for path in sorted(p for p in directory.iterdir() if p.is_file()):
            kind = detect_input_kind(path.name)
            if kind is None:
                files.unknown_files.append(path)
                continue
            current = getattr(files, kind.value)
            if current is not None:
                logger.warning(f"Ignoring {path.name}: {kind.value} already provided by {current.name}")
                continue
            setattr(files, kind.value, path)

        if files.unknown_files:
            logger.info(f"Unrecognised files: {[p.name for p in files.unknown_files]}")
        return files

    def _read_file(self, path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8", errors="replace")
        except OSError as e:
            logger.warning(f"Could not read {path}: {e}")
            return None

    def read(self, files: DatasetFiles) -> DatasetTexts:
        """
        Read every present input concurrently.

        All reads are joined before returning, so the result is complete
        regardless of which read finishes first.

        Raises:
            MissingModelError: If the model is absent or unreadable
        """
        if files.model is None:
            raise MissingModelError("No DECLARE model file found")

        present = files.present()
        workers = max(1, min(self.config.read_workers, len(present)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {name: executor.submit(self._read_file, path) for name, path in present.items()}
            texts = DatasetTexts(**{name: future.result() for name, future in futures.items()})

        if texts.model is None:
            raise MissingModelError(f"Could not read model file {files.model}", str(files.model))
        return texts

    def parse(
        self,
        texts: DatasetTexts,
        diagnostics: Optional[ParseDiagnostics] = None,
    ) -> ParsedDataset:
        """
        Parse raw input texts.

        Args:
            texts: File contents
            diagnostics: Collector for skipped rows (new one if None)

        Returns:
            ParsedDataset

        Raises:
            MissingModelError: If no model text is given
            EmptyModelError: If the model contains no parseable constraint
        """
        if diagnostics is None:
            diagnostics = ParseDiagnostics()
        if texts.model is None:
            raise MissingModelError("No DECLARE model text given")

        constraints = parse_model(texts.model, self.registry, diagnostics)
        if not constraints:
            raise EmptyModelError("DECLARE model contains no parseable constraints")

        delimiter = self.config.csv_delimiter
        dataset = ParsedDataset(constraints=constraints, diagnostics=diagnostics)
        if texts.analysis_overview:
            dataset.constraint_statistics = parse_constraint_statistics(
                texts.analysis_overview, self.reconciler, diagnostics, delimiter)
        if texts.analysis_detail:
            dataset.detail = parse_trace_constraint_detail(
                texts.analysis_detail, self.reconciler, diagnostics, delimiter)
        if texts.replay_overview:
            dataset.replay_statistics = parse_replay_overview(
                texts.replay_overview, diagnostics, delimiter)
        if texts.event_log:
            dataset.event_log = parse_event_log(texts.event_log, diagnostics)
        if texts.aligned_log:
            dataset.aligned_log = parse_aligned_log(texts.aligned_log, diagnostics)

        missing = [f.name for f in fields(texts) if getattr(texts, f.name) is None
                   and f.name not in ("model", "replay_detail")]
        if missing:
            logger.info(f"Optional inputs not provided: {missing}")

        return dataset

    def load(self, source: Union[str, Path, DatasetFiles]) -> ParsedDataset:
        """
        Discover (for a directory), read and parse a dataset.

        Args:
            source: Dataset directory or explicit DatasetFiles

        Returns:
            ParsedDataset
        """
        files = source if isinstance(source, DatasetFiles) else self.discover(source)
        logger.info(f"Loading dataset inputs: {sorted(files.present())}")
        return self.parse(self.read(files))
