from __future__ import annotations

from mcs_conformance.framework.signals import NonConformanceSignal
from mcs_conformance.reporting.aggregate import aggregate_outcomes
from mcs_conformance.reporting.html import render_html_report
from mcs_conformance.reporting.outcome import TestOutcome, TestState


def test_html_rows_per_verdict_and_links() -> None:
    outcomes = [
        TestOutcome(
            nodeid="t::ok",
            state=TestState.PASSED,
            description="ServiceImport exists",
            labels=frozenset(["Required"]),
            spec_ref="https://example.test/kep#service-import",
        ),
        TestOutcome(
            nodeid="t::bad",
            state=TestState.FAILED,
            description="ports match",
            labels=frozenset(["Required"]),
            entries=[NonConformanceSignal("ports <differ>").to_entry()],
        ),
    ]
    page = render_html_report(aggregate_outcomes(outcomes), title="Run 1")

    assert page.startswith("<!DOCTYPE html>")
    assert "<title>Run 1</title>" in page
    assert '<section id="Required">' in page
    assert "1 passed, 1 non-conformant, 0 could not be verified" in page
    assert '<tr class="conformant_pass"><td class="verdict">PASS</td>' in page
    assert '<a href="https://example.test/kep#service-import">' in page
    assert '<td class="message">ports &lt;differ&gt;</td>' in page
    assert " - ports" not in page


def test_html_escapes_descriptions_and_plain_refs() -> None:
    outcomes = [
        TestOutcome(
            nodeid="t::x",
            state=TestState.FAILED,
            description="<script>alert(1)</script>",
            labels=frozenset(["Optional"]),
            spec_ref="section & clause",
            raw_failure_text="boom",
        )
    ]
    page = render_html_report(aggregate_outcomes(outcomes))
    assert "<script>" not in page
    assert "&lt;script&gt;" in page
    assert "<td>section &amp; clause</td>" in page
    assert '<td class="verdict">UNVERIFIED</td>' in page


def test_html_suite_failure_and_empty_run() -> None:
    page = render_html_report([], suite_failure="clusters unreachable")
    assert '<div class="suite-failure"><strong>Suite failure:</strong> clusters unreachable</div>' in page
    assert "No labelled conformance tests were run." in page
