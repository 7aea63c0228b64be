"""Report entries attached to a test's outcome.

A test carries an ordered list of `(channel, value)` entries. Two channels are
understood by the reporting pipeline:

- `spec-ref`: the MCS API (KEP) clause a test validates (recorded eagerly).
- `non-conformance`: an explicit declaration that a failed assertion is an
  observed spec violation. It is materialized only when the assertion fails.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Union

SPEC_REF_CHANNEL = "spec-ref"
NON_CONFORMANCE_CHANNEL = "non-conformance"

KNOWN_CHANNELS = (SPEC_REF_CHANNEL, NON_CONFORMANCE_CHANNEL)


@dataclass(frozen=True)
class ReportEntry:
    channel: str
    value: str

    def to_dict(self) -> Dict[str, Any]:
        return {"channel": self.channel, "value": self.value}

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> "ReportEntry":
        return cls(channel=str(obj["channel"]), value=str(obj.get("value") or ""))


@dataclass(frozen=True)
class NonConformanceSignal:
    message: str = ""

    def to_entry(self) -> ReportEntry:
        return ReportEntry(channel=NON_CONFORMANCE_CHANNEL, value=self.message)


class NonConformant:
    """Lazy non-conformance description.

    The message (or the thunk producing it) is only evaluated when the
    assertion it is attached to fails.
    """

    def __init__(self, message: Union[str, Callable[[], str]] = "") -> None:
        self._message = message

    def materialize(self) -> NonConformanceSignal:
        msg = self._message() if callable(self._message) else self._message
        return NonConformanceSignal(message=str(msg or ""))

    def __repr__(self) -> str:
        if callable(self._message):
            return "NonConformant(<deferred>)"
        return f"NonConformant({self._message!r})"


def report_non_conformant(message: Union[str, Callable[[], str]] = "") -> NonConformant:
    return NonConformant(message)


def spec_ref_entry(url: str) -> ReportEntry:
    return ReportEntry(channel=SPEC_REF_CHANNEL, value=str(url))
