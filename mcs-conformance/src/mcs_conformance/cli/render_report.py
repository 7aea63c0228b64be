from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Optional, Sequence

from mcs_conformance.config import DEFAULT_LABEL_ORDER, split_csv
from mcs_conformance.errors import OutcomeValidationError
from mcs_conformance.reporting.aggregate import load_suite_failure, write_reports
from mcs_conformance.reporting.outcome import read_outcomes_jsonl

logger = logging.getLogger(__name__)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        description="Re-render the conformance reports from a recorded outcomes.jsonl."
    )
    parser.add_argument("--outcomes", type=Path, required=True, help="Path to outcomes.jsonl.")
    parser.add_argument(
        "--out_dir",
        type=Path,
        default=None,
        help="Output directory (default: the directory holding --outcomes).",
    )
    parser.add_argument(
        "--label_order",
        type=str,
        default=",".join(DEFAULT_LABEL_ORDER),
        help="Comma-separated labels reported first (default: Required,Optional).",
    )
    parser.add_argument("--title", type=str, default="MCS conformance report")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(name)s: %(message)s")

    try:
        outcomes = read_outcomes_jsonl(args.outcomes)
    except FileNotFoundError:
        logger.error("outcomes file not found: %s", args.outcomes)
        return 2
    except OutcomeValidationError as e:
        logger.error("%s", e)
        return 2

    out_dir = args.out_dir or args.outcomes.parent
    summary = write_reports(
        outcomes,
        out_dir=out_dir,
        suite_failure=load_suite_failure(args.outcomes.parent),
        label_order=split_csv(args.label_order),
        outcomes_name=None,
        title=args.title,
    )
    print((out_dir / "report.txt").read_text(encoding="utf-8"), end="")
    return 1 if summary.get("suite_failure") else 0


if __name__ == "__main__":
    raise SystemExit(main())
