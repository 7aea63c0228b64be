from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

PLUGIN = "mcs_conformance.pytest_plugin"


def default_suite_dir() -> Path:
    # mcs-conformance/src/mcs_conformance/cli/run_conformance.py -> mcs-conformance/conformance
    return Path(__file__).resolve().parents[3] / "conformance"


def build_pytest_args(
    *,
    suite_dir: Path,
    kubeconfig: Optional[str] = None,
    contexts: Optional[str] = None,
    config: Optional[Path] = None,
    report_dir: Optional[Path] = None,
    label_filter: Optional[str] = None,
    extra: Sequence[str] = (),
) -> List[str]:
    args: List[str] = [str(suite_dir), "-p", PLUGIN]
    if kubeconfig:
        args += ["--mcs-kubeconfig", str(kubeconfig)]
    if contexts:
        args += ["--mcs-contexts", str(contexts)]
    if config is not None:
        args += ["--mcs-config", str(config)]
    if report_dir is not None:
        args += ["--mcs-report-dir", str(report_dir)]
    if label_filter:
        args += ["-m", label_filter]
    args += list(extra)
    return args


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run the MCS conformance suite against running clusters and write the reports."
    )
    parser.add_argument(
        "--kubeconfig",
        type=str,
        default=None,
        help="Kubeconfig path(s), separated like KUBECONFIG (default: KUBECONFIG or ~/.kube/config).",
    )
    parser.add_argument(
        "--contexts",
        type=str,
        default=None,
        help="Comma-separated contexts; the first cluster exports the service (default: current context).",
    )
    parser.add_argument("--config", type=Path, default=None, help="Harness config (YAML/JSON).")
    parser.add_argument(
        "--report_dir",
        type=Path,
        default=Path("."),
        help="Directory for report.txt, report.html and outcomes.jsonl (default: cwd).",
    )
    parser.add_argument(
        "--label_filter",
        type=str,
        default=None,
        help='pytest -m expression over requirement labels, e.g. "not EndpointSlice".',
    )
    parser.add_argument(
        "--suite_dir",
        type=Path,
        default=None,
        help="Directory holding the conformance tests (default: the bundled suite).",
    )
    parser.add_argument(
        "pytest_args",
        nargs=argparse.REMAINDER,
        help="Extra arguments passed to pytest after `--`.",
    )
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")

    suite_dir = args.suite_dir or default_suite_dir()
    if not suite_dir.is_dir():
        parser.error(f"conformance suite not found: {suite_dir}")

    extra = [a for a in (args.pytest_args or []) if a != "--"]
    pytest_args = build_pytest_args(
        suite_dir=suite_dir,
        kubeconfig=args.kubeconfig,
        contexts=args.contexts,
        config=args.config,
        report_dir=args.report_dir,
        label_filter=args.label_filter,
        extra=extra,
    )
    logging.getLogger(__name__).info("pytest %s", " ".join(pytest_args))
    return int(pytest.main(pytest_args))


if __name__ == "__main__":
    raise SystemExit(main())
