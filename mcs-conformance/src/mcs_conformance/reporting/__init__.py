"""Verdict classification and report rendering."""

from __future__ import annotations

from mcs_conformance.reporting.aggregate import (
    RequirementGroup,
    aggregate_outcomes,
    render_text_report,
    write_reports,
)
from mcs_conformance.reporting.html import render_html_report
from mcs_conformance.reporting.messages import (
    AssertionMessageExtractor,
    ChainedExtractor,
    FirstLineExtractor,
    MessageExtractor,
    extract_failure_message,
)
from mcs_conformance.reporting.outcome import (
    TestOutcome,
    TestState,
    read_outcomes_jsonl,
    write_outcomes_jsonl,
)
from mcs_conformance.reporting.verdict import Verdict, VerdictKind, classify_outcome

__all__ = [
    "AssertionMessageExtractor",
    "ChainedExtractor",
    "FirstLineExtractor",
    "MessageExtractor",
    "RequirementGroup",
    "TestOutcome",
    "TestState",
    "Verdict",
    "VerdictKind",
    "aggregate_outcomes",
    "classify_outcome",
    "extract_failure_message",
    "read_outcomes_jsonl",
    "render_html_report",
    "render_text_report",
    "write_outcomes_jsonl",
    "write_reports",
]
