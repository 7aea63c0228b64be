"""Self-contained HTML rendering of the conformance report."""

from __future__ import annotations

from html import escape
from typing import Dict, List, Optional, Sequence

from mcs_conformance.reporting.aggregate import GroupedTest, RequirementGroup
from mcs_conformance.reporting.verdict import VerdictKind

STYLES = """
* { box-sizing: border-box; }
body {
    font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
    background: #f5f5f5;
    color: #1a1a1a;
    line-height: 1.5;
    margin: 0;
}
.container { max-width: 960px; margin: 0 auto; padding: 2rem; }
.suite-failure {
    background: #ffebee;
    border-left: 4px solid #c62828;
    padding: 0.75rem 1rem;
    margin-bottom: 1.5rem;
}
section { background: #fff; border: 1px solid #ddd; padding: 1rem; margin-bottom: 1.5rem; }
.counts { font-size: 0.9rem; color: #555; margin-bottom: 0.5rem; }
table { width: 100%; border-collapse: collapse; }
td, th { text-align: left; padding: 0.35rem 0.5rem; border-bottom: 1px solid #eee; vertical-align: top; }
.verdict { font-weight: 600; white-space: nowrap; }
tr.conformant_pass .verdict { color: #2e7d32; }
tr.non_conformant .verdict { color: #c62828; }
tr.indeterminate .verdict { color: #ef6c00; }
.message { font-family: monospace; font-size: 0.85rem; color: #444; }
"""

_VERDICT_LABELS: Dict[VerdictKind, str] = {
    VerdictKind.CONFORMANT_PASS: "PASS",
    VerdictKind.NON_CONFORMANT: "FAIL",
    VerdictKind.INDETERMINATE: "UNVERIFIED",
}


def _render_refs(refs: Sequence[str]) -> str:
    links = []
    for ref in refs:
        href = escape(ref, quote=True)
        if ref.startswith(("http://", "https://")):
            links.append(f'<a href="{href}">{escape(ref)}</a>')
        else:
            links.append(escape(ref))
    return ", ".join(links)


def _render_message(test: GroupedTest) -> str:
    message = test.verdict.message
    if test.verdict.kind is VerdictKind.NON_CONFORMANT:
        message = message[3:] if message.startswith(" - ") else message
    return escape(message)


def _render_row(test: GroupedTest) -> str:
    kind = test.verdict.kind
    return (
        f'<tr class="{kind.value}">'
        f'<td class="verdict">{_VERDICT_LABELS[kind]}</td>'
        f"<td>{escape(test.description)}</td>"
        f"<td>{_render_refs(test.spec_refs)}</td>"
        f'<td class="message">{_render_message(test)}</td>'
        "</tr>"
    )


def _render_group(group: RequirementGroup) -> str:
    counts = group.counts()
    summary = (
        f"{counts[VerdictKind.CONFORMANT_PASS.value]} passed, "
        f"{counts[VerdictKind.NON_CONFORMANT.value]} non-conformant, "
        f"{counts[VerdictKind.INDETERMINATE.value]} could not be verified"
    )
    rows = "\n".join(_render_row(t) for t in group.tests)
    return f"""
<section id="{escape(group.label, quote=True)}">
    <h2>{escape(group.label)} requirements</h2>
    <div class="counts">{summary}</div>
    <table>
        <thead><tr><th>Verdict</th><th>Test</th><th>Spec reference</th><th>Message</th></tr></thead>
        <tbody>
{rows}
        </tbody>
    </table>
</section>"""


def render_html_report(
    groups: Sequence[RequirementGroup],
    *,
    suite_failure: Optional[str] = None,
    title: str = "MCS conformance report",
) -> str:
    parts: List[str] = []
    if suite_failure:
        parts.append(
            '<div class="suite-failure"><strong>Suite failure:</strong> '
            f"{escape(suite_failure)}</div>"
        )
    if groups:
        parts.extend(_render_group(g) for g in groups)
    else:
        parts.append("<p>No labelled conformance tests were run.</p>")
    body = "\n".join(parts)

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>{escape(title)}</title>
    <style>{STYLES}</style>
</head>
<body>
    <div class="container">
        <h1>{escape(title)}</h1>
{body}
    </div>
</body>
</html>
"""
