"""Condition polling, error classification and the per-test assertion layer.

The stable entrypoints are `await_until` / `poll_until` for convergence and
`Recorder` for assertions that may report non-conformance.
"""

from __future__ import annotations

from mcs_conformance.framework.classifier import (
    ErrorClassification,
    classify_error,
    is_transient_error,
)
from mcs_conformance.framework.expect import ExpectationFailed, Recorder
from mcs_conformance.framework.poller import (
    DEFAULT_POLL,
    PollResult,
    PollSpec,
    await_until,
    hold_until,
    poll_until,
)
from mcs_conformance.framework.signals import (
    NonConformanceSignal,
    NonConformant,
    ReportEntry,
    report_non_conformant,
)

__all__ = [
    "DEFAULT_POLL",
    "ErrorClassification",
    "ExpectationFailed",
    "NonConformanceSignal",
    "NonConformant",
    "PollResult",
    "PollSpec",
    "Recorder",
    "ReportEntry",
    "await_until",
    "classify_error",
    "hold_until",
    "is_transient_error",
    "poll_until",
    "report_non_conformant",
]
