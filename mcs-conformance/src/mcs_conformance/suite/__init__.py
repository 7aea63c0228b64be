"""Driver, manifests and labels for the live conformance tests."""

from __future__ import annotations

from mcs_conformance.suite.driver import TestDriver
from mcs_conformance.suite.labels import ALL_LABELS, kep_ref

__all__ = ["ALL_LABELS", "TestDriver", "kep_ref"]
