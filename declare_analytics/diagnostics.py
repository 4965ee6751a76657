"""
Parse diagnostics for skipped rows and lines.

Input files come from an external conformance checker and are occasionally
malformed. A bad row never aborts a run: it is skipped, logged, and recorded
here so the caller can report how much input was dropped and why.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Input sources used as diagnostic labels
SOURCE_MODEL = "model"
SOURCE_ANALYSIS_OVERVIEW = "analysis_overview"
SOURCE_ANALYSIS_DETAIL = "analysis_detail"
SOURCE_REPLAY_OVERVIEW = "replay_overview"
SOURCE_EVENT_LOG = "event_log"
SOURCE_ALIGNED_LOG = "aligned_log"
SOURCE_AGGREGATION = "aggregation"


@dataclass(frozen=True)
class ParseIssue:
    """A single skipped row or line."""
    source: str
    reason: str
    line_number: int = 0
    content: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "reason": self.reason,
            "line": self.line_number,
            "content": self.content,
        }


@dataclass(frozen=True)
class RowOutcome(Generic[T]):
    """Result of parsing one row: either a value or the issue that rejected it."""
    value: Optional[T] = None
    issue: Optional[ParseIssue] = None

    @property
    def ok(self) -> bool:
        return self.issue is None

    @classmethod
    def success(cls, value: T) -> "RowOutcome[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, source: str, reason: str, line_number: int = 0,
                content: str = "") -> "RowOutcome[T]":
        return cls(issue=ParseIssue(source, reason, line_number, content))


class ParseDiagnostics:
    """
    Collector for parse issues, shared by all readers of one run.

    Example:
        diagnostics = ParseDiagnostics()
        stats = parse_constraint_statistics(text, diagnostics=diagnostics)
        diagnostics.count("analysis_overview")  # rows skipped
    """

    def __init__(self):
        self._issues: List[ParseIssue] = []

    def record(self, issue: ParseIssue) -> ParseIssue:
        """Store an issue and log it as a warning."""
        self._issues.append(issue)
        location = f" line {issue.line_number}" if issue.line_number else ""
        logger.warning(f"{issue.source}{location}: {issue.reason}")
        return issue

    def warn(self, source: str, reason: str, line_number: int = 0,
             content: str = "") -> ParseIssue:
        return self.record(ParseIssue(source, reason, line_number, content))

    def absorb(self, outcome: RowOutcome) -> Optional[Any]:
        """Record the outcome's issue if it failed; return its value otherwise."""
        if outcome.issue is not None:
            self.record(outcome.issue)
            return None
        return outcome.value

    def extend(self, other: "ParseDiagnostics") -> None:
        self._issues.extend(other.issues)

    @property
    def issues(self) -> List[ParseIssue]:
        return list(self._issues)

    @property
    def has_issues(self) -> bool:
        return bool(self._issues)

    def count(self, source: Optional[str] = None) -> int:
        """Number of issues, optionally restricted to one source."""
        if source is None:
            return len(self._issues)
        return sum(1 for issue in self._issues if issue.source == source)

    def by_source(self) -> Dict[str, int]:
        return dict(Counter(issue.source for issue in self._issues))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.count(),
            "bySource": self.by_source(),
            "issues": [issue.to_dict() for issue in self._issues],
        }
