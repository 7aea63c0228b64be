from __future__ import annotations

import json
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from mcs_conformance.config import DEFAULT_LABEL_ORDER
from mcs_conformance.reporting.messages import MessageExtractor
from mcs_conformance.reporting.outcome import TestOutcome, write_outcomes_jsonl
from mcs_conformance.reporting.verdict import Verdict, VerdictKind, classify_outcome

logger = logging.getLogger(__name__)

BULLET = "⋅"


@dataclass(frozen=True)
class GroupedTest:
    description: str
    spec_refs: Sequence[str]
    verdict: Verdict


@dataclass
class RequirementGroup:
    label: str
    tests: List[GroupedTest] = field(default_factory=list)

    def with_kind(self, kind: VerdictKind) -> List[GroupedTest]:
        return [t for t in self.tests if t.verdict.kind is kind]

    def counts(self) -> Dict[str, int]:
        c = Counter(t.verdict.kind.value for t in self.tests)
        return {k.value: int(c.get(k.value, 0)) for k in VerdictKind}


def ordered_labels(outcomes: Sequence[TestOutcome], label_order: Sequence[str]) -> List[str]:
    """Priority labels first (in the given order), then the rest alphabetically."""
    seen = {label for o in outcomes for label in o.labels}
    head = [label for label in label_order if label in seen]
    tail = sorted(seen - set(head))
    return head + tail


def aggregate_outcomes(
    outcomes: Sequence[TestOutcome],
    *,
    label_order: Sequence[str] = DEFAULT_LABEL_ORDER,
    extractor: Optional[MessageExtractor] = None,
) -> List[RequirementGroup]:
    """Group verdicts by requirement label.

    A test carrying several labels appears in each of their groups. Skipped
    and pending tests are excluded, and labels left without any test are
    omitted.
    """
    verdicts: List[Optional[Verdict]] = [classify_outcome(o, extractor) for o in outcomes]

    groups: List[RequirementGroup] = []
    for label in ordered_labels(outcomes, label_order):
        group = RequirementGroup(label=label)
        for outcome, verdict in zip(outcomes, verdicts):
            if verdict is None or label not in outcome.labels:
                continue
            group.tests.append(
                GroupedTest(
                    description=outcome.display_name,
                    spec_refs=outcome.spec_refs(),
                    verdict=verdict,
                )
            )
        if group.tests:
            groups.append(group)
    return groups


def _format_refs(refs: Sequence[str]) -> str:
    return f" ({', '.join(refs)})" if refs else ""


def render_text_report(
    groups: Sequence[RequirementGroup],
    *,
    suite_failure: Optional[str] = None,
) -> str:
    lines: List[str] = []
    if suite_failure:
        lines.append(f"SUITE FAILURE: {suite_failure}")
        lines.append("")

    for group in groups:
        passed = group.with_kind(VerdictKind.CONFORMANT_PASS)
        failed = group.with_kind(VerdictKind.NON_CONFORMANT)
        unknown = group.with_kind(VerdictKind.INDETERMINATE)

        if passed:
            lines.append(f"The implementation meets the following {group.label} requirements:")
            for t in passed:
                lines.append(f"{BULLET} {t.description}{_format_refs(t.spec_refs)}")
        if failed:
            lines.append(f"The implementation fails the following {group.label} requirements:")
            for t in failed:
                lines.append(
                    f"{BULLET} {t.description}{_format_refs(t.spec_refs)}{t.verdict.message}"
                )
        if unknown:
            lines.append(f"The following {group.label} requirements could not be verified:")
            for t in unknown:
                suffix = f": {t.verdict.message}" if t.verdict.message else ""
                lines.append(f"{BULLET} {t.description}{_format_refs(t.spec_refs)}{suffix}")

    if not groups and not suite_failure:
        lines.append("No labelled conformance tests were run.")
    return "\n".join(lines) + "\n"


def summarize_groups(
    groups: Sequence[RequirementGroup],
    *,
    suite_failure: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "suite_failure": suite_failure,
        "groups": {g.label: g.counts() for g in groups},
    }


def _write_text_atomic(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding="utf-8")
    tmp_path.replace(path)


def write_reports(
    outcomes: Sequence[TestOutcome],
    *,
    out_dir: Path,
    suite_failure: Optional[str] = None,
    label_order: Sequence[str] = DEFAULT_LABEL_ORDER,
    text_name: str = "report.txt",
    html_name: str = "report.html",
    outcomes_name: Optional[str] = "outcomes.jsonl",
    title: str = "MCS conformance report",
    extractor: Optional[MessageExtractor] = None,
) -> Dict[str, Any]:
    """Classify, group and write the text and HTML reports under `out_dir`.

    Returns the summary that is also written to `run_summary.json`.
    """
    from mcs_conformance.reporting.html import render_html_report

    out_dir = Path(out_dir)
    groups = aggregate_outcomes(outcomes, label_order=label_order, extractor=extractor)

    _write_text_atomic(out_dir / text_name, render_text_report(groups, suite_failure=suite_failure))
    _write_text_atomic(
        out_dir / html_name,
        render_html_report(groups, suite_failure=suite_failure, title=title),
    )
    if outcomes_name:
        write_outcomes_jsonl(out_dir / outcomes_name, outcomes)

    summary = summarize_groups(groups, suite_failure=suite_failure)
    _write_text_atomic(
        out_dir / RUN_SUMMARY_NAME,
        json.dumps(summary, indent=2, sort_keys=True, ensure_ascii=False) + "\n",
    )
    logger.info("wrote conformance reports to %s", out_dir)
    return summary


RUN_SUMMARY_NAME = "run_summary.json"


def load_suite_failure(out_dir: Path) -> Optional[str]:
    path = Path(out_dir) / RUN_SUMMARY_NAME
    if not path.exists():
        return None
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        return None
    failure = data.get("suite_failure")
    return failure if isinstance(failure, str) and failure.strip() else None
