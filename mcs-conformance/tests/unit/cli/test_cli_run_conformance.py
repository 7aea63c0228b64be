from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from mcs_conformance.cli import run_conformance


def test_run_conformance_builds_pytest_args(tmp_path: Path) -> None:
    args = run_conformance.build_pytest_args(
        suite_dir=tmp_path,
        kubeconfig="/kc/a:/kc/b",
        contexts="c1,c2",
        config=tmp_path / "harness.yaml",
        report_dir=tmp_path / "out",
        label_filter="not EndpointSlice",
        extra=["-x"],
    )
    assert args == [
        str(tmp_path),
        "-p",
        "mcs_conformance.pytest_plugin",
        "--mcs-kubeconfig",
        "/kc/a:/kc/b",
        "--mcs-contexts",
        "c1,c2",
        "--mcs-config",
        str(tmp_path / "harness.yaml"),
        "--mcs-report-dir",
        str(tmp_path / "out"),
        "-m",
        "not EndpointSlice",
        "-x",
    ]


def test_run_conformance_minimal_args(tmp_path: Path) -> None:
    assert run_conformance.build_pytest_args(suite_dir=tmp_path) == [
        str(tmp_path),
        "-p",
        "mcs_conformance.pytest_plugin",
    ]


def test_run_conformance_default_suite_dir_is_bundled() -> None:
    suite = run_conformance.default_suite_dir()
    assert suite.name == "conformance"
    assert (suite / "conftest.py").exists()


def test_run_conformance_main_forwards_to_pytest(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    seen: List[List[str]] = []

    def fake_main(args: List[str]) -> int:
        seen.append(args)
        return 1

    monkeypatch.setattr(run_conformance.pytest, "main", fake_main)
    rc = run_conformance.main(
        ["--suite_dir", str(tmp_path), "--report_dir", str(tmp_path / "r"), "--", "-k", "headless"]
    )

    assert rc == 1
    [args] = seen
    assert args[:3] == [str(tmp_path), "-p", "mcs_conformance.pytest_plugin"]
    assert args[-2:] == ["-k", "headless"]
    assert "--mcs-report-dir" in args


def test_run_conformance_missing_suite_dir(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as ei:
        run_conformance.main(["--suite_dir", str(tmp_path / "nope")])
    assert ei.value.code == 2
