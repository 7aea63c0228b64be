"""Assertion layer used by conformance tests.

Every assertion is one of two kinds, chosen at the call site:

- `expect_conformant`: a failure is an observed violation of the MCS spec by
  the implementation under test. It always records a non-conformance entry.
- `require` / `require_no_error`: a harness precondition. A failure means the
  run hit an unexpected condition and is reported as indeterminate.
"""

from __future__ import annotations

from typing import Any, Callable, List, NoReturn, Optional, Sequence, TypeVar, Union

from mcs_conformance.errors import ConformanceError, ConsistencyError, FatalOperationError
from mcs_conformance.framework.poller import (
    DEFAULT_POLL,
    CheckFn,
    Operation,
    PollSpec,
    always,
    hold_until,
    poll_until,
)
from mcs_conformance.framework.signals import (
    NonConformant,
    ReportEntry,
    spec_ref_entry,
)

T = TypeVar("T")

Violation = Union[NonConformant, str, Callable[[], str]]


class ExpectationFailed(AssertionError):
    """Assertion failure carrying the report entries it produced."""

    def __init__(self, message: str, *, entries: Sequence[ReportEntry] = ()) -> None:
        super().__init__(message)
        self.message = message
        self.entries: List[ReportEntry] = list(entries)


def format_unexpected_error(description: str, err: BaseException) -> str:
    """Render an error in the two-part shape the message extractor parses."""
    lines = []
    if description:
        lines.append(description)
    lines.append("Unexpected error:")
    lines.append(f"    <{type(err).__name__}>:")
    cause = str(err) or type(err).__name__
    lines.extend(f"    {line}" for line in cause.splitlines())
    lines.append(f"    {err!r}")
    lines.append("occurred")
    return "\n".join(lines)


def _as_violation(violation: Violation) -> NonConformant:
    if isinstance(violation, NonConformant):
        return violation
    return NonConformant(violation)


class Recorder:
    """Per-test collector of report entries plus the assertion helpers."""

    def __init__(self, *, poll: PollSpec = DEFAULT_POLL) -> None:
        self.poll = poll
        self._entries: List[ReportEntry] = []

    @property
    def entries(self) -> List[ReportEntry]:
        return list(self._entries)

    def add_entry(self, channel: str, value: Any) -> None:
        self._entries.append(ReportEntry(channel=str(channel), value=str(value)))

    def spec_ref(self, url: str) -> None:
        self._entries.append(spec_ref_entry(url))

    def _fail(self, text: str, violation: Optional[NonConformant]) -> NoReturn:
        attached: List[ReportEntry] = []
        if violation is not None:
            signal = violation.materialize()
            attached.append(signal.to_entry())
            self._entries.extend(attached)
            if signal.message:
                text = f"{signal.message}\n{text}" if text else signal.message
        raise ExpectationFailed(text or "expectation failed", entries=attached)

    def expect_conformant(self, condition: Any, violation: Violation, *, detail: str = "") -> None:
        if condition:
            return
        self._fail(detail, _as_violation(violation))

    def require(self, condition: Any, description: str, *, detail: str = "") -> None:
        if condition:
            return
        text = description if not detail else f"{description}\n{detail}"
        self._fail(text, None)

    def require_no_error(self, err: Optional[BaseException], description: str = "") -> None:
        if err is None:
            return
        self._fail(format_unexpected_error(description, err), None)

    def await_until(
        self,
        description: str,
        operation: Operation[T],
        check: CheckFn[T] = always,
        poll: Optional[PollSpec] = None,
        *,
        violation: Optional[Violation] = None,
        **kwargs: Any,
    ) -> T:
        """Poll until `check` holds; any failure fails the test.

        A timeout is a conformance failure when `violation` is given. A fatal
        operation error is always indeterminate.
        """
        outcome = poll_until(description, operation, check, poll or self.poll, **kwargs)
        if outcome.error is None:
            return outcome.result  # type: ignore[return-value]
        err = outcome.error
        if isinstance(err, FatalOperationError):
            self._fail(format_unexpected_error(f"failed to {description}", err.cause), None)
        self._fail(str(err), _as_violation(violation) if violation is not None else None)

    def hold(
        self,
        description: str,
        operation: Operation[T],
        check: CheckFn[T],
        poll: PollSpec,
        *,
        violation: Violation,
        **kwargs: Any,
    ) -> T:
        """Require `check` to hold for the whole poll window."""
        try:
            return hold_until(description, operation, check, poll, **kwargs)
        except ConsistencyError as e:
            self._fail(str(e), _as_violation(violation))
        except ConformanceError as e:
            self._fail(str(e), None)
