"""Verdict classification.

A failed test is only reported as non-conformant when it carries an explicit
non-conformance entry. Any other failure (harness bug, infrastructure flake,
environment problem) is indeterminate and reported separately so it never
inflates or deflates the conformance result.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from mcs_conformance.reporting.messages import MessageExtractor, extract_failure_message
from mcs_conformance.reporting.outcome import TestOutcome, TestState


class VerdictKind(str, Enum):
    CONFORMANT_PASS = "conformant_pass"
    NON_CONFORMANT = "non_conformant"
    INDETERMINATE = "indeterminate"


@dataclass(frozen=True)
class Verdict:
    kind: VerdictKind
    message: str = ""

    @property
    def passed(self) -> bool:
        return self.kind is VerdictKind.CONFORMANT_PASS


CONFORMANT_PASS = Verdict(kind=VerdictKind.CONFORMANT_PASS)


def non_conformant(message: str = "") -> Verdict:
    return Verdict(kind=VerdictKind.NON_CONFORMANT, message=message)


def indeterminate(message: str = "") -> Verdict:
    return Verdict(kind=VerdictKind.INDETERMINATE, message=message)


def classify_outcome(
    outcome: TestOutcome,
    extractor: Optional[MessageExtractor] = None,
) -> Optional[Verdict]:
    """Map a raw outcome to a verdict; skipped/pending tests yield None."""
    if outcome.state in (TestState.SKIPPED, TestState.PENDING):
        return None
    if outcome.state is TestState.PASSED:
        return CONFORMANT_PASS

    signals = outcome.signals()
    if signals:
        msg = signals[-1].message
        return non_conformant(f" - {msg}" if msg else "")

    return indeterminate(extract_failure_message(outcome.raw_failure_text, extractor))
