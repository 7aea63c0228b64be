from __future__ import annotations

import json
from pathlib import Path

from mcs_conformance.framework.signals import NonConformanceSignal
from mcs_conformance.reporting.aggregate import (
    RUN_SUMMARY_NAME,
    aggregate_outcomes,
    load_suite_failure,
    ordered_labels,
    render_text_report,
    write_reports,
)
from mcs_conformance.reporting.outcome import TestOutcome, TestState, read_outcomes_jsonl
from mcs_conformance.reporting.verdict import VerdictKind

KEP = "https://github.com/kubernetes/enhancements/tree/master/keps/sig-multicluster/1645-multi-cluster-services-api"


def _outcome(name: str, state: TestState, labels, **kwargs) -> TestOutcome:
    return TestOutcome(
        nodeid=f"conformance/test_x.py::{name}",
        state=state,
        description=kwargs.pop("description", name),
        labels=frozenset(labels),
        **kwargs,
    )


def _sample_outcomes():
    return [
        _outcome("T1", TestState.PASSED, ["Required"], spec_ref=f"{KEP}#dns"),
        _outcome(
            "T2",
            TestState.FAILED,
            ["Required"],
            raw_failure_text="ports differ\nExpected\n    <list>: []",
            entries=[NonConformanceSignal("ports differ").to_entry()],
        ),
        _outcome(
            "T3",
            TestState.FAILED,
            ["Required"],
            raw_failure_text="Error creating Namespace\nUnexpected error:\n    <ApiError>:\n    forbidden\noccurred\n",
        ),
        _outcome("T4", TestState.SKIPPED, ["Required"]),
    ]


def test_aggregate_groups_and_excludes_skipped() -> None:
    groups = aggregate_outcomes(_sample_outcomes())
    assert [g.label for g in groups] == ["Required"]
    group = groups[0]
    assert [t.description for t in group.tests] == ["T1", "T2", "T3"]
    assert group.counts() == {"conformant_pass": 1, "non_conformant": 1, "indeterminate": 1}
    assert [t.description for t in group.with_kind(VerdictKind.INDETERMINATE)] == ["T3"]


def test_aggregate_text_report_sections() -> None:
    text = render_text_report(aggregate_outcomes(_sample_outcomes()))
    assert text == (
        "The implementation meets the following Required requirements:\n"
        f"⋅ T1 ({KEP}#dns)\n"
        "The implementation fails the following Required requirements:\n"
        "⋅ T2 - ports differ\n"
        "The following Required requirements could not be verified:\n"
        "⋅ T3: Error creating Namespace: forbidden\n"
    )


def test_aggregate_label_order_and_multi_label_tests() -> None:
    outcomes = [
        _outcome("a", TestState.PASSED, ["Optional", "EndpointSlice"]),
        _outcome("b", TestState.PASSED, ["ClusterIP", "Required"]),
        _outcome("c", TestState.SKIPPED, ["Headless"]),
    ]
    assert ordered_labels(outcomes, ["Required", "Optional"]) == [
        "Required",
        "Optional",
        "ClusterIP",
        "EndpointSlice",
        "Headless",
    ]
    groups = aggregate_outcomes(outcomes)
    # Headless only has a skipped test, so it is omitted.
    assert [g.label for g in groups] == ["Required", "Optional", "ClusterIP", "EndpointSlice"]
    assert [t.description for t in groups[1].tests] == ["a"]
    assert [t.description for t in groups[3].tests] == ["a"]


def test_aggregate_unlabelled_and_empty_runs() -> None:
    assert aggregate_outcomes([_outcome("x", TestState.PASSED, [])]) == []
    assert render_text_report([]) == "No labelled conformance tests were run.\n"


def test_aggregate_suite_failure_heads_the_report() -> None:
    text = render_text_report([], suite_failure="cluster c1 at https://c1 is unreachable")
    assert text == "SUITE FAILURE: cluster c1 at https://c1 is unreachable\n\n"


def test_aggregate_indeterminate_without_message_has_no_colon() -> None:
    outcomes = [_outcome("T", TestState.FAILED, ["Required"], raw_failure_text="")]
    text = render_text_report(aggregate_outcomes(outcomes))
    assert text.splitlines()[-1] == "⋅ T"


def test_aggregate_write_reports(tmp_path: Path) -> None:
    out_dir = tmp_path / "reports"
    summary = write_reports(_sample_outcomes(), out_dir=out_dir, suite_failure=None)

    assert summary == {
        "suite_failure": None,
        "groups": {"Required": {"conformant_pass": 1, "non_conformant": 1, "indeterminate": 1}},
    }
    assert (out_dir / "report.txt").read_text(encoding="utf-8").startswith(
        "The implementation meets the following Required requirements:"
    )
    assert "<!DOCTYPE html>" in (out_dir / "report.html").read_text(encoding="utf-8")
    assert len(read_outcomes_jsonl(out_dir / "outcomes.jsonl")) == 4
    assert json.loads((out_dir / RUN_SUMMARY_NAME).read_text(encoding="utf-8")) == summary
    assert load_suite_failure(out_dir) is None
    assert not list(out_dir.glob("*.tmp"))


def test_aggregate_write_reports_without_outcomes_file(tmp_path: Path) -> None:
    write_reports([], out_dir=tmp_path, suite_failure="boom", outcomes_name=None)
    assert not (tmp_path / "outcomes.jsonl").exists()
    assert load_suite_failure(tmp_path) == "boom"
    assert (tmp_path / "report.txt").read_text(encoding="utf-8") == "SUITE FAILURE: boom\n\n"
