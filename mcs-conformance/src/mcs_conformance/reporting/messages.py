"""Failure message extraction.

Raw failure text is often a multi-line dump. The extractors here reduce it to
a single readable line for the report. The default chain understands the
two-part shape produced by the assertion layer

    <description>
    Unexpected error:
        <ErrorType>:
        <underlying error>
        ...
    occurred

and falls back to the first non-empty line for anything else (e.g. an
unexpected exception raised by the test body).
"""

from __future__ import annotations

import re
from typing import Optional, Protocol, Sequence

_UNEXPECTED_ERROR_RE = re.compile(
    r"^(?P<description>.*?)\s*^\s*Unexpected error:\s*\n(?P<body>.*?)^\s*occurred\s*$",
    re.DOTALL | re.MULTILINE,
)
_TYPE_LINE_RE = re.compile(r"^\s*<[^>]*>:?\s*(?P<rest>.*)$")


class MessageExtractor(Protocol):
    def extract(self, raw: str) -> Optional[str]:
        """Return a one-line message, or None when the text is not understood."""
        ...


class AssertionMessageExtractor:
    """Parses the `description / Unexpected error / cause / occurred` shape."""

    def extract(self, raw: str) -> Optional[str]:
        m = _UNEXPECTED_ERROR_RE.search(raw or "")
        if m is None:
            return None

        description = " ".join(line.strip() for line in m.group("description").splitlines())
        description = description.strip()

        cause = ""
        lines = [line for line in m.group("body").splitlines() if line.strip()]
        for idx, line in enumerate(lines):
            tm = _TYPE_LINE_RE.match(line)
            if tm is None:
                cause = line.strip()
                break
            rest = tm.group("rest").strip()
            if rest:
                cause = rest
                break
            if idx + 1 < len(lines):
                cause = lines[idx + 1].strip()
            break

        if description and cause:
            return f"{description}: {cause}"
        return description or cause or None


class FirstLineExtractor:
    """Permissive fallback: the first non-empty line, trimmed."""

    def extract(self, raw: str) -> Optional[str]:
        for line in (raw or "").splitlines():
            if line.strip():
                return line.strip()
        return None


class ChainedExtractor:
    def __init__(self, extractors: Sequence[MessageExtractor]) -> None:
        self.extractors = list(extractors)

    def extract(self, raw: str) -> Optional[str]:
        for extractor in self.extractors:
            msg = extractor.extract(raw)
            if msg:
                return msg
        return None


DEFAULT_EXTRACTOR: MessageExtractor = ChainedExtractor(
    [AssertionMessageExtractor(), FirstLineExtractor()]
)


def extract_failure_message(raw: str, extractor: Optional[MessageExtractor] = None) -> str:
    return (extractor or DEFAULT_EXTRACTOR).extract(raw) or ""
