from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

import jsonschema

from mcs_conformance.errors import OutcomeValidationError
from mcs_conformance.framework.signals import (
    NON_CONFORMANCE_CHANNEL,
    SPEC_REF_CHANNEL,
    NonConformanceSignal,
    ReportEntry,
)

OUTCOME_SCHEMA_VERSION = "outcome.v1"


class TestState(str, Enum):
    __test__ = False

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    PENDING = "pending"


@dataclass(frozen=True)
class TestOutcome:
    """Raw outcome of one executed test, as captured by the suite listener."""

    __test__ = False

    nodeid: str
    state: TestState
    description: str = ""
    raw_failure_text: str = ""
    entries: Sequence[ReportEntry] = field(default_factory=list)
    labels: frozenset = field(default_factory=frozenset)
    spec_ref: Optional[str] = None
    duration_s: Optional[float] = None

    @property
    def display_name(self) -> str:
        return self.description or self.nodeid

    def signals(self) -> List[NonConformanceSignal]:
        return [
            NonConformanceSignal(message=e.value)
            for e in self.entries
            if e.channel == NON_CONFORMANCE_CHANNEL
        ]

    def spec_refs(self) -> List[str]:
        refs: List[str] = []
        if self.spec_ref:
            refs.append(self.spec_ref)
        for e in self.entries:
            if e.channel == SPEC_REF_CHANNEL and e.value and e.value not in refs:
                refs.append(e.value)
        return refs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema_version": OUTCOME_SCHEMA_VERSION,
            "nodeid": self.nodeid,
            "description": self.description,
            "state": self.state.value,
            "raw_failure_text": self.raw_failure_text,
            "entries": [e.to_dict() for e in self.entries],
            "labels": sorted(self.labels),
            "spec_ref": self.spec_ref,
            "duration_s": self.duration_s,
        }

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> "TestOutcome":
        assert_outcome_v1(obj)
        duration = obj.get("duration_s")
        return cls(
            nodeid=str(obj["nodeid"]),
            state=TestState(obj["state"]),
            description=str(obj.get("description") or ""),
            raw_failure_text=str(obj.get("raw_failure_text") or ""),
            entries=[ReportEntry.from_dict(e) for e in obj.get("entries") or []],
            labels=frozenset(str(label) for label in obj.get("labels") or []),
            spec_ref=obj.get("spec_ref") or None,
            duration_s=float(duration) if duration is not None else None,
        )


def _schema_path() -> Path:
    # mcs_conformance/reporting/outcome.py -> mcs_conformance/schemas/test_outcome.schema.json
    return Path(__file__).resolve().parents[1] / "schemas" / "test_outcome.schema.json"


@lru_cache(maxsize=1)
def _load_schema() -> Dict[str, Any]:
    schema_path = _schema_path()
    data = json.loads(schema_path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise OutcomeValidationError(f"schema must be an object: {schema_path}")
    jsonschema.Draft202012Validator.check_schema(data)
    return data


def outcome_v1_errors(obj: Any) -> List[str]:
    validator = jsonschema.Draft202012Validator(_load_schema())
    errors = sorted(validator.iter_errors(obj), key=lambda e: list(e.path))
    out: List[str] = []
    for e in errors:
        loc = "/".join(str(p) for p in e.path) or "<root>"
        out.append(f"{loc}: {e.message}")
    return out


def assert_outcome_v1(obj: Any) -> None:
    errors = outcome_v1_errors(obj)
    if errors:
        raise OutcomeValidationError("TestOutcome v1 contract violation: " + "; ".join(errors))


def _json_dumps_canonical(obj: Any) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def write_outcomes_jsonl(path: Path, outcomes: Iterable[TestOutcome]) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    with tmp_path.open("w", encoding="utf-8") as f:
        for outcome in outcomes:
            f.write(_json_dumps_canonical(outcome.to_dict()))
            f.write("\n")
    tmp_path.replace(path)


def read_outcomes_jsonl(path: Path) -> List[TestOutcome]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(path)
    outcomes: List[TestOutcome] = []
    for i, raw in enumerate(path.read_text(encoding="utf-8").splitlines(), start=1):
        if not raw.strip():
            continue
        try:
            obj = json.loads(raw)
        except json.JSONDecodeError as e:
            raise OutcomeValidationError(f"{path}:{i}: invalid JSON: {e}") from e
        try:
            outcomes.append(TestOutcome.from_dict(obj))
        except OutcomeValidationError as e:
            raise OutcomeValidationError(f"{path}:{i}: {e}") from e
    return outcomes
