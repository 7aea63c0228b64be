"""Fixtures shared by the live conformance tests.

The `driver` fixture (from the mcs_conformance pytest plugin) gives each test
its own namespace. Tests that need a customized hello Service override
`driver` locally, before `deployed` creates anything.
"""

from __future__ import annotations

from typing import Any, Dict

import pytest

from mcs_conformance.suite import manifests
from mcs_conformance.suite.driver import TestDriver


@pytest.fixture
def deployed(driver: TestDriver) -> TestDriver:
    driver.setup()
    return driver


@pytest.fixture
def service_export() -> Dict[str, Any]:
    return manifests.hello_service_export()


@pytest.fixture
def exported(deployed: TestDriver, service_export: Dict[str, Any]) -> TestDriver:
    deployed.create_service_export(deployed.exporter, service_export)
    return deployed


@pytest.fixture
def two_clusters(driver: TestDriver) -> TestDriver:
    driver.require_two_clusters()
    return driver


@pytest.fixture
def second_service() -> Dict[str, Any]:
    return manifests.hello_service()


@pytest.fixture
def second_service_export() -> Dict[str, Any]:
    return manifests.hello_service_export()


@pytest.fixture
def exported_on_two(
    two_clusters: TestDriver,
    exported: TestDriver,
    second_service: Dict[str, Any],
    second_service_export: Dict[str, Any],
) -> TestDriver:
    second = exported.clusters[1]
    exported.deploy_hello_service(second, second_service)
    exported.create_service_export(second, second_service_export)
    return exported
