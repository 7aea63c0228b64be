from __future__ import annotations

import json
from pathlib import Path

import pytest

from mcs_conformance.errors import OutcomeValidationError
from mcs_conformance.framework.signals import NonConformanceSignal, spec_ref_entry
from mcs_conformance.reporting.outcome import (
    TestOutcome,
    TestState,
    outcome_v1_errors,
    read_outcomes_jsonl,
    write_outcomes_jsonl,
)


def test_outcome_jsonl_preserves_fields(tmp_path: Path) -> None:
    outcome = TestOutcome(
        nodeid="conformance/test_endpoint_slice.py::test_x",
        state=TestState.FAILED,
        description="EndpointSlice carries the MCS labels",
        raw_failure_text="the label is missing",
        entries=[spec_ref_entry("https://example.test/a"), NonConformanceSignal("missing").to_entry()],
        labels=frozenset(["Optional", "EndpointSlice"]),
        spec_ref="https://example.test/b",
        duration_s=1.5,
    )
    path = tmp_path / "out" / "outcomes.jsonl"
    write_outcomes_jsonl(path, [outcome])

    line = path.read_text(encoding="utf-8").splitlines()[0]
    assert '"labels":["EndpointSlice","Optional"]' in line

    [loaded] = read_outcomes_jsonl(path)
    assert loaded.state is TestState.FAILED
    assert loaded.labels == frozenset(["Optional", "EndpointSlice"])
    assert [s.message for s in loaded.signals()] == ["missing"]
    assert loaded.spec_refs() == ["https://example.test/b", "https://example.test/a"]


def test_outcome_schema_rejects_unknown_state_and_fields() -> None:
    obj = TestOutcome(nodeid="t::a", state=TestState.PASSED).to_dict()
    assert outcome_v1_errors(obj) == []

    bad = dict(obj, state="flaky", extra=1)
    errors = outcome_v1_errors(bad)
    assert any(e.startswith("state:") for e in errors)
    assert any("extra" in e for e in errors)


def test_outcome_read_reports_line_numbers(tmp_path: Path) -> None:
    path = tmp_path / "outcomes.jsonl"
    good = TestOutcome(nodeid="t::a", state=TestState.PASSED).to_dict()

    path.write_text(json.dumps(good) + "\n\n{not json}\n", encoding="utf-8")
    with pytest.raises(OutcomeValidationError, match=r"outcomes.jsonl:3: invalid JSON"):
        read_outcomes_jsonl(path)

    path.write_text(json.dumps(dict(good, nodeid="")) + "\n", encoding="utf-8")
    with pytest.raises(OutcomeValidationError, match=r"outcomes.jsonl:1: .*nodeid"):
        read_outcomes_jsonl(path)


def test_outcome_read_missing_file(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        read_outcomes_jsonl(tmp_path / "nope.jsonl")


def test_outcome_display_name_falls_back_to_nodeid() -> None:
    assert TestOutcome(nodeid="t::a", state=TestState.PASSED).display_name == "t::a"
