"""
Pytest configuration and fixtures for declare_analytics tests.

The sample dataset has three cases:

- c1: Register -> Approve -> Pay, conformant, 2 days
- c2: Register -> Pay, violates Response[Register, Approve] and
  Precedence[Approve, Pay], replay inserted Approve, 3 days
- c3: Register -> Approve -> Pay, conformant, 25 days
"""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from declare_analytics.conformance.models import DashboardTrace, TraceConstraintDetail
from declare_analytics.ingest.models import AlignedEvent, ProcessEvent, ResultType


MODEL_TEXT = """\
# sample model
activity Register
activity Approve
activity Pay
Response[Register, Approve]
Init[Register]
Precedence[Approve, Pay] | | |
"""

ANALYSIS_OVERVIEW_CSV = """\
Constraint;Activations;Fulfilments;Violations;Vac. Fulfilments;Vac. Violations
response: [Register], [Approve][][][];3;2;1;0;0
init: [Register][][][];3;3;0;0;0
precedence: [Approve], [Pay][][][];4;2;1;1;0
"""

ANALYSIS_DETAIL_CSV = """\
Case;Constraint;Result
c1;response: [Register], [Approve][][][];fulfillment
c1;init: [Register][][][];fulfillment
c1;precedence: [Approve], [Pay][][][];fulfillment
c2;response: [Register], [Approve][][][];violation
c2;init: [Register][][][];fulfillment
c2;precedence: [Approve], [Pay][][][];violation
c3;Response[Register,Approve]: [Register, Approve];fulfillment
c3;init: [Register][][][];fulfillment
c3;precedence: [Approve], [Pay][][][];fulfillment
c3;precedence: [Approve], [Pay][][][];vac. fulfillment
"""

REPLAY_OVERVIEW_CSV = """\
Case;Insertions;Deletions;Fitness
c1;0;0;1.0
c2;1;0;0.8
c3;0;0;1.0
"""


def _xes_event(activity, timestamp=None, resource=None):
    lines = ['    <event>', f'      <string key="concept:name" value="{activity}"/>']
    if resource:
        lines.append(f'      <string key="org:resource" value="{resource}"/>')
    if timestamp:
        lines.append(f'      <date key="time:timestamp" value="{timestamp}"/>')
    lines.append('    </event>')
    return "\n".join(lines)


def _xes_log(cases):
    parts = ['<?xml version="1.0" encoding="UTF-8"?>',
             '<log xes.version="1.0" xmlns="http://www.xes-standard.org/">']
    for case_id, events in cases:
        parts.append('  <trace>')
        parts.append(f'    <string key="concept:name" value="{case_id}"/>')
        parts.extend(_xes_event(*event) for event in events)
        parts.append('  </trace>')
    parts.append('</log>')
    return "\n".join(parts)


EVENT_LOG_XES = _xes_log([
    ("c1", [
        ("Register", "2024-01-01T09:00:00.000+00:00", "alice"),
        ("Approve", "2024-01-02T09:00:00.000+00:00", "bob"),
        ("Pay", "2024-01-03T09:00:00.000+00:00", "carol"),
    ]),
    ("c2", [
        ("Register", "2024-01-02T09:00:00.000+00:00", "alice"),
        ("Pay", "2024-01-05T09:00:00.000+00:00", None),
    ]),
    ("c3", [
        ("Register", "2024-01-01T09:00:00.000+00:00", "alice"),
        ("Approve", "2024-01-10T09:00:00.000+00:00", "bob"),
        ("Pay", "2024-01-26T09:00:00.000+00:00", "carol"),
    ]),
])

ALIGNED_LOG_XES = _xes_log([
    ("c1", [("Register",), ("Approve",), ("Pay",)]),
    ("c2", [("Register",), ("Approve",), ("Pay",)]),
    ("c3", [("Register",), ("Approve",), ("Pay",)]),
])


@pytest.fixture
def model_text():
    return MODEL_TEXT


@pytest.fixture
def overview_csv():
    return ANALYSIS_OVERVIEW_CSV


@pytest.fixture
def detail_csv():
    return ANALYSIS_DETAIL_CSV


@pytest.fixture
def replay_csv():
    return REPLAY_OVERVIEW_CSV


@pytest.fixture
def event_log_xes():
    return EVENT_LOG_XES


@pytest.fixture
def aligned_log_xes():
    return ALIGNED_LOG_XES


@pytest.fixture
def dataset_dir(tmp_path):
    """A directory holding the full sample dataset with checker-style file names."""
    files = {
        "model.decl": MODEL_TEXT,
        "analysis_overview.csv": ANALYSIS_OVERVIEW_CSV,
        "analysis_detail.csv": ANALYSIS_DETAIL_CSV,
        "replay_overview.csv": REPLAY_OVERVIEW_CSV,
        "event_log.xes": EVENT_LOG_XES,
        "aligned_log.xes": ALIGNED_LOG_XES,
    }
    for name, content in files.items():
        (tmp_path / name).write_text(content, encoding="utf-8")
    return tmp_path


def make_trace(case_id, activities, aligned=None, violated=(), **kwargs):
    """Build a DashboardTrace from activity names."""
    events = [ProcessEvent(event_id=f"{case_id}:{i}", activity=a) for i, a in enumerate(activities)]
    aligned_events = [
        AlignedEvent(event_id=f"{case_id}:{i}", original_activity=a, aligned_activity=a)
        for i, a in enumerate(aligned if aligned is not None else activities)
    ]
    details = [TraceConstraintDetail(cid, [ResultType.VIOLATION]) for cid in violated]
    return DashboardTrace(
        case_id=case_id,
        events=events,
        aligned_events=aligned_events,
        constraint_details=details,
        violated_constraints=list(violated),
        **kwargs,
    )


@pytest.fixture
def trace_factory():
    return make_trace
