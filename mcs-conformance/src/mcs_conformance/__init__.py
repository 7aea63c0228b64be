"""MCS conformance harness.

- framework: error classification, condition polling, non-conformance signals
- reporting: verdict classification, message extraction, report aggregation
- clusters: Kubernetes API access used by the live conformance tests
- suite: test driver and manifests for the live conformance tests
"""

__all__ = [
    "cli",
    "clusters",
    "config",
    "errors",
    "framework",
    "pytest_plugin",
    "reporting",
    "suite",
]
