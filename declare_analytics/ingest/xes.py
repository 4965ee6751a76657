"""
XES event log readers.

Reads the raw event log and the aligned log produced by replay. Both are
XES documents:

    <log>
      <trace>
        <string key="concept:name" value="case_1"/>
        <event>
          <string key="concept:name" value="Register"/>
          <string key="org:group" value="FrontOffice"/>
          <date key="time:timestamp" value="2024-01-01T10:00:00.000+01:00"/>
        </event>
      </trace>
    </log>

Aligned logs carry ``original``, ``aligned`` and ``type`` string attributes
per event; events without any of them are regular events and count as
synchronous moves.

Structured parsing goes through pm4py's XES importer. When the document is
not well-formed, or its events carry no keyed attributes at all, the readers
fall back to a tolerant tag scanner that also understands the older
attribute form
``<trace id="..."><event activity="..." timestamp="..." resource="..."/>``.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar

from lxml import etree
from pm4py.objects.log.importer.xes import importer as xes_importer

from ..diagnostics import SOURCE_ALIGNED_LOG, SOURCE_EVENT_LOG, ParseDiagnostics
from .models import AlignedCase, AlignedEvent, ProcessCase, ProcessEvent

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Opening, closing and self-closing tags relevant to XES
TAG_PATTERN = re.compile(
    r"<(/?)(trace|event|string|date|int|float|boolean|id)\b([^>]*?)(/?)>",
    re.IGNORECASE,
)
ATTRIBUTE_PATTERN = re.compile(r'([\w:.\-]+)\s*=\s*"([^"]*)"')

ALIGNMENT_KEYS = ("original", "aligned", "type")

RESERVED_EVENT_KEYS = {
    "concept:name", "activity", "org:group", "org:resource", "resource",
    "time:timestamp", "timestamp",
}

IMPORT_PARAMETERS = {"show_progress_bar": False}


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp.

    Offsets are converted to UTC and dropped so all timestamps of a run
    compare with each other.

    Args:
        value: Timestamp string, e.g. "2024-01-01T10:00:00.000+01:00"

    Returns:
        Naive UTC datetime, or None if the value is empty or unparseable
    """
    if not value:
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    # fromisoformat before 3.11 only takes 3 or 6 fractional digits
    text = re.sub(r"\.(\d+)", lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        formats = [
            "%Y-%m-%dT%H:%M:%S.%f%z",
            "%Y-%m-%dT%H:%M:%S%z",
            "%Y-%m-%d %H:%M:%S",
            "%Y-%m-%d",
        ]
        for fmt in formats:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
        else:
            logger.debug(f"Unparseable timestamp: {value}")
            return None

    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _event_timestamp(attrs: Dict[str, Any]) -> Optional[datetime]:
    """Timestamp of an event; pm4py hands back datetimes, the legacy scanner strings."""
    value = attrs.get("time:timestamp") or attrs.get("timestamp")
    if isinstance(value, datetime):
        return _naive_utc(value)
    return parse_timestamp(value)


def _as_text(value: Any) -> str:
    if isinstance(value, datetime):
        return _naive_utc(value).isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass
class _RawCase:
    """Case attributes and per-event attribute maps, independent of the parse path."""
    attributes: Dict[str, Any] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)


def _scan_structured(text: str) -> List[_RawCase]:
    """Parse well-formed XES with pm4py. Raises etree.XMLSyntaxError otherwise."""
    log = xes_importer.deserialize(
        text.encode("utf-8"),
        variant=xes_importer.Variants.ITERPARSE,
        parameters=IMPORT_PARAMETERS,
    )
    return [
        _RawCase(attributes=dict(trace.attributes), events=[dict(event) for event in trace])
        for trace in log
    ]


def _has_keyed_events(cases: List[_RawCase]) -> bool:
    events = [event for case in cases for event in case.events]
    return not events or any(events)


def _scan_legacy(text: str) -> List[_RawCase]:
    """Tolerant tag scanner for malformed or attribute-style XES."""
    cases: List[_RawCase] = []
    current_case: Optional[_RawCase] = None
    current_event: Optional[Dict[str, Any]] = None

    def flush_event() -> None:
        nonlocal current_event
        if current_event is not None and current_case is not None:
            current_case.events.append(current_event)
        current_event = None

    for match in TAG_PATTERN.finditer(text):
        closing, name, body, self_closing = match.groups()
        name = name.lower()
        attributes = dict(ATTRIBUTE_PATTERN.findall(body))

        if name == "trace":
            # An event left open belongs to the trace being closed
            flush_event()
            if closing:
                current_case = None
            else:
                current_case = _RawCase(attributes=attributes)
                cases.append(current_case)
        elif name == "event":
            if closing:
                flush_event()
            else:
                flush_event()
                if self_closing:
                    if current_case is not None:
                        current_case.events.append(attributes)
                else:
                    current_event = attributes
        elif not closing and "key" in attributes:
            target = current_event if current_event is not None else (
                current_case.attributes if current_case is not None else None)
            if target is not None:
                target[attributes["key"]] = attributes.get("value", "")

    flush_event()
    return cases


def _scan(text: str, source: str, diagnostics: ParseDiagnostics) -> List[_RawCase]:
    try:
        cases = _scan_structured(text)
    except etree.XMLSyntaxError as e:
        diagnostics.warn(source, f"malformed XML ({e}), falling back to legacy parser")
        return _scan_legacy(text)
    if not _has_keyed_events(cases):
        logger.info(f"{source}: events carry no XES attributes, reading attribute form")
        return _scan_legacy(text)
    return cases


def _case_id(raw: _RawCase, index: int) -> str:
    name = raw.attributes.get("concept:name") or raw.attributes.get("id")
    return _as_text(name) if name else f"case_{index}"


def _build_cases(
    raw_cases: List[_RawCase],
    source: str,
    diagnostics: ParseDiagnostics,
    build: Callable[[str, List[Dict[str, Any]]], T],
) -> List[T]:
    cases: List[T] = []
    seen = set()
    for index, raw in enumerate(raw_cases, start=1):
        if not raw.events:
            continue
        case_id = _case_id(raw, index)
        if case_id in seen:
            diagnostics.warn(source, f"duplicate case {case_id} ignored")
            continue
        seen.add(case_id)
        cases.append(build(case_id, raw.events))
    return cases


def _process_case(case_id: str, raw_events: List[Dict[str, Any]]) -> ProcessCase:
    events = []
    for index, attrs in enumerate(raw_events):
        events.append(ProcessEvent(
            event_id=f"{case_id}:{index}",
            activity=attrs.get("concept:name") or attrs.get("activity") or "Unknown",
            timestamp=_event_timestamp(attrs),
            resource=attrs.get("org:group") or attrs.get("org:resource") or attrs.get("resource") or None,
            attributes={k: _as_text(v) for k, v in attrs.items() if k not in RESERVED_EVENT_KEYS},
        ))
    return ProcessCase(case_id=case_id, events=events)


def _aligned_case(case_id: str, raw_events: List[Dict[str, Any]]) -> AlignedCase:
    events = []
    for index, attrs in enumerate(raw_events):
        if any(key in attrs for key in ALIGNMENT_KEYS):
            original = attrs.get("original", "")
            aligned = attrs.get("aligned", "")
            move_type = attrs.get("type") or "complete"
        else:
            # Plain event: log and model agree
            original = aligned = attrs.get("concept:name") or attrs.get("activity") or ""
            move_type = "complete"
        events.append(AlignedEvent(
            event_id=f"{case_id}:{index}",
            original_activity=original,
            aligned_activity=aligned,
            move_type=move_type,
            timestamp=_event_timestamp(attrs),
        ))
    return AlignedCase(case_id=case_id, events=events)


def parse_event_log(text: str, diagnostics: Optional[ParseDiagnostics] = None) -> List[ProcessCase]:
    """
    Parse an XES event log.

    Args:
        text: XES document
        diagnostics: Collector for parse problems

    Returns:
        Cases in document order; cases without events are dropped
    """
    if diagnostics is None:
        diagnostics = ParseDiagnostics()
    cases = _build_cases(_scan(text, SOURCE_EVENT_LOG, diagnostics),
                         SOURCE_EVENT_LOG, diagnostics, _process_case)
    logger.info(f"Parsed {len(cases)} cases from event log")
    return cases


def parse_aligned_log(text: str, diagnostics: Optional[ParseDiagnostics] = None) -> List[AlignedCase]:
    """
    Parse an aligned XES log.

    Args:
        text: XES document
        diagnostics: Collector for parse problems

    Returns:
        Aligned cases in document order; cases without events are dropped
    """
    if diagnostics is None:
        diagnostics = ParseDiagnostics()
    cases = _build_cases(_scan(text, SOURCE_ALIGNED_LOG, diagnostics),
                         SOURCE_ALIGNED_LOG, diagnostics, _aligned_case)
    logger.info(f"Parsed {len(cases)} cases from aligned log")
    return cases


def index_by_case(cases: List[Any]) -> Dict[str, Any]:
    """Map case id to case."""
    return {case.case_id: case for case in cases}
