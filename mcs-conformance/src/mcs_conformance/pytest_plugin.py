"""pytest plugin: requirement markers, conformance fixtures and the suite listener.

The plugin is not auto-loaded: enable it with `-p mcs_conformance.pytest_plugin`,
as `mcs-conformance-run` does. It records one `TestOutcome` per executed test
(state, raw failure text, report entries, requirement labels) and, when
`--mcs-report-dir` is given, writes the text and HTML reports at the end of
the session. Without that option it only adds markers and fixtures.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional

import pytest

from mcs_conformance.config import HarnessConfig, load_harness_config, split_csv
from mcs_conformance.errors import ConfigError, SuiteSetupError
from mcs_conformance.framework.context import RunContext, build_run_context
from mcs_conformance.framework.expect import ExpectationFailed, Recorder
from mcs_conformance.framework.signals import ReportEntry
from mcs_conformance.reporting.aggregate import write_reports
from mcs_conformance.reporting.outcome import TestOutcome, TestState
from mcs_conformance.suite.driver import TestDriver
from mcs_conformance.suite.labels import ALL_LABELS

logger = logging.getLogger(__name__)

REQUIREMENT_MARKER = "requirement"
SPEC_REF_MARKER = "spec_ref"


@dataclass
class _PendingOutcome:
    state: TestState = TestState.PASSED
    raw_failure_text: str = ""
    entries: List[ReportEntry] = field(default_factory=list)
    duration_s: float = 0.0
    suite_failure: bool = False


@dataclass
class OutcomeCollector:
    """Suite-level listener state, kept in `config.stash`."""

    outcomes: List[TestOutcome] = field(default_factory=list)
    suite_failure: Optional[str] = None
    summary: Optional[Dict[str, Any]] = None
    _pending: Dict[str, _PendingOutcome] = field(default_factory=dict)

    def observe(self, item: pytest.Item, call: pytest.CallInfo, report: pytest.TestReport) -> None:
        pending = self._pending.setdefault(item.nodeid, _PendingOutcome())
        pending.duration_s += float(report.duration or 0.0)

        if report.failed and call.excinfo is not None:
            if call.excinfo.errisinstance(SuiteSetupError):
                pending.suite_failure = True
                if self.suite_failure is None:
                    self.suite_failure = str(call.excinfo.value)
                    item.session.shouldstop = f"suite setup failed: {self.suite_failure}"
            elif pending.state is not TestState.FAILED:
                pending.state = TestState.FAILED
                pending.raw_failure_text = raw_failure_text(call.excinfo)
                if item.stash.get(RECORDER_KEY, None) is None:
                    exc = call.excinfo.value
                    if isinstance(exc, ExpectationFailed):
                        pending.entries = list(exc.entries)
        elif report.skipped and pending.state is TestState.PASSED:
            pending.state = TestState.PENDING if hasattr(report, "wasxfail") else TestState.SKIPPED

        if report.when == "teardown":
            self._finish(item, self._pending.pop(item.nodeid))

    def _finish(self, item: pytest.Item, pending: _PendingOutcome) -> None:
        if pending.suite_failure:
            return
        recorder = item.stash.get(RECORDER_KEY, None)
        entries = recorder.entries if recorder is not None else pending.entries
        self.outcomes.append(
            TestOutcome(
                nodeid=item.nodeid,
                state=pending.state,
                description=item_description(item),
                raw_failure_text=pending.raw_failure_text,
                entries=entries,
                labels=frozenset(item_labels(item)),
                spec_ref=item_spec_ref(item),
                duration_s=round(pending.duration_s, 6),
            )
        )


COLLECTOR_KEY = pytest.StashKey[OutcomeCollector]()
CONFIG_KEY = pytest.StashKey[HarnessConfig]()
RECORDER_KEY = pytest.StashKey[Recorder]()


def raw_failure_text(excinfo: pytest.ExceptionInfo) -> str:
    if excinfo.errisinstance(ExpectationFailed):
        return str(excinfo.value)
    return excinfo.exconly()


def item_labels(item: pytest.Item) -> List[str]:
    labels: List[str] = []
    for mark in item.iter_markers(REQUIREMENT_MARKER):
        for label in mark.args:
            if str(label) not in labels:
                labels.append(str(label))
    return labels


def item_spec_ref(item: pytest.Item) -> Optional[str]:
    mark = item.get_closest_marker(SPEC_REF_MARKER)
    if mark is None or not mark.args:
        return None
    return str(mark.args[0])


def item_description(item: pytest.Item) -> str:
    """First docstring paragraph of the test function, on one line."""
    fn = getattr(item, "function", None)
    doc = (getattr(fn, "__doc__", None) or "").strip()
    if not doc:
        return ""
    first = doc.split("\n\n", 1)[0]
    return " ".join(first.split())


def pytest_addoption(parser: pytest.Parser) -> None:
    group = parser.getgroup("mcs-conformance", "MCS conformance harness")
    group.addoption(
        "--mcs-kubeconfig",
        default=None,
        help="Path(s) to the kubeconfig file(s), separated like KUBECONFIG.",
    )
    group.addoption(
        "--mcs-contexts",
        default=None,
        help="Comma-separated kubeconfig contexts; the first cluster exports the service.",
    )
    group.addoption("--mcs-config", default=None, help="Harness config file (YAML or JSON).")
    group.addoption(
        "--mcs-report-dir",
        default=None,
        help="Write report.txt, report.html and outcomes.jsonl to this directory.",
    )


def _load_config(config: pytest.Config) -> HarnessConfig:
    overrides: Dict[str, Any] = {
        "kubeconfig": config.getoption("--mcs-kubeconfig"),
        "contexts": split_csv(config.getoption("--mcs-contexts")) or None,
    }
    report_dir = config.getoption("--mcs-report-dir")
    if report_dir:
        overrides["report"] = {"output_dir": report_dir}
    path = config.getoption("--mcs-config")
    return load_harness_config(Path(path) if path else None, overrides)


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        f"{REQUIREMENT_MARKER}(*labels): requirement labels the test reports under",
    )
    config.addinivalue_line(
        "markers", f"{SPEC_REF_MARKER}(url): KEP clause validated by the test"
    )
    for label in ALL_LABELS:
        config.addinivalue_line("markers", f"{label}: tests labelled {label}")

    try:
        config.stash[CONFIG_KEY] = _load_config(config)
    except (ConfigError, FileNotFoundError) as e:
        raise pytest.UsageError(str(e)) from e
    config.stash[COLLECTOR_KEY] = OutcomeCollector()


@pytest.hookimpl(tryfirst=True)
def pytest_collection_modifyitems(config: pytest.Config, items: List[pytest.Item]) -> None:
    # Expose each label as a plain marker so `-m` can select on it.
    for item in items:
        for label in item_labels(item):
            item.add_marker(label)


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item: pytest.Item, call: pytest.CallInfo) -> Iterator[None]:
    outcome = yield
    report = outcome.get_result()
    collector = item.config.stash.get(COLLECTOR_KEY, None)
    if collector is not None:
        collector.observe(item, call, report)


def pytest_sessionfinish(session: pytest.Session, exitstatus: int) -> None:
    config = session.config
    if not config.getoption("--mcs-report-dir"):
        return
    collector = config.stash.get(COLLECTOR_KEY, None)
    harness = config.stash.get(CONFIG_KEY, None)
    if collector is None or harness is None:
        return
    settings = harness.report
    collector.summary = write_reports(
        collector.outcomes,
        out_dir=settings.output_dir,
        suite_failure=collector.suite_failure,
        label_order=settings.label_order,
        text_name=settings.text_name,
        html_name=settings.html_name,
        outcomes_name=settings.outcomes_name,
        title=settings.title,
    )


def pytest_terminal_summary(terminalreporter: Any, exitstatus: int, config: pytest.Config) -> None:
    collector = config.stash.get(COLLECTOR_KEY, None)
    if collector is None or collector.summary is None:
        return
    harness = config.stash[CONFIG_KEY]
    terminalreporter.write_sep("=", "MCS conformance")
    if collector.suite_failure:
        terminalreporter.write_line(f"SUITE FAILURE: {collector.suite_failure}")
    for label, counts in collector.summary["groups"].items():
        terminalreporter.write_line(
            f"{label}: {counts['conformant_pass']} passed, "
            f"{counts['non_conformant']} non-conformant, "
            f"{counts['indeterminate']} could not be verified"
        )
    terminalreporter.write_line(f"reports written to {harness.report.output_dir}")


@pytest.fixture(scope="session")
def harness_config(pytestconfig: pytest.Config) -> HarnessConfig:
    return pytestconfig.stash[CONFIG_KEY]


@pytest.fixture(scope="session")
def run_context(harness_config: HarnessConfig) -> Iterator[RunContext]:
    ctx = build_run_context(harness_config)
    try:
        yield ctx
    finally:
        ctx.close()


@pytest.fixture
def recorder(request: pytest.FixtureRequest, harness_config: HarnessConfig) -> Recorder:
    rec = Recorder(poll=harness_config.poll.to_poll_spec())
    request.node.stash[RECORDER_KEY] = rec
    return rec


@pytest.fixture
def driver(run_context: RunContext, recorder: Recorder) -> Iterator[TestDriver]:
    """A driver with its own namespace; tests customize it, then call `setup()`."""
    d = TestDriver(run_context, recorder)
    try:
        yield d
    finally:
        d.teardown()


@pytest.fixture
def service_endpoint_slice_hook() -> Optional[Callable[[Dict[str, Any]], Dict[str, Any]]]:
    """Override to update the hello Service before EndpointSlice tests export it.

    For implementations that require an explicit opt-in before they sync
    EndpointSlices from remote clusters.
    """
    return None


@pytest.fixture
def service_export_endpoint_slice_hook() -> Callable[[Dict[str, Any]], Dict[str, Any]]:
    """Override to customize the ServiceExport created by EndpointSlice tests."""
    return lambda service_export: service_export
