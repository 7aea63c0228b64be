"""Per-test driver for the live conformance tests.

A driver owns one randomly named namespace that exists on every cluster of
the run. `setup()` deploys the hello service on the first cluster (the
exporting one) and a request pod on every cluster; `teardown()` deletes the
namespace again.
"""

from __future__ import annotations

import ipaddress
import logging
import random
from typing import Any, Callable, Dict, List, Optional

import pytest

from mcs_conformance.clusters.client import (
    DEPLOYMENTS,
    ENDPOINT_SLICES,
    NAMESPACES,
    PODS,
    SERVICE_EXPORTS,
    SERVICE_IMPORTS,
    SERVICES,
)
from mcs_conformance.clusters.errors import ApiError, is_not_found
from mcs_conformance.errors import ConformanceError, FatalOperationError
from mcs_conformance.framework.classifier import TRANSIENT_ERROR_PREDICATES
from mcs_conformance.framework.context import Cluster, RunContext
from mcs_conformance.framework.expect import Recorder
from mcs_conformance.framework.poller import PollSpec, poll_until
from mcs_conformance.framework.signals import NonConformant
from mcs_conformance.suite import manifests

logger = logging.getLogger(__name__)

ServiceImport = Dict[str, Any]

# Reading an object that does not exist yet is expected while waiting for it.
NOT_FOUND_TOLERANT_PREDICATES = TRANSIENT_ERROR_PREDICATES + (is_not_found,)

POD_RUNNING_POLL = PollSpec(interval=1.0, deadline=20.0)
EXEC_POLL = PollSpec(interval=1.0, deadline=20.0)
CONSISTENTLY_POLL = PollSpec(interval=1.0, deadline=5.0)


def random_namespace() -> str:
    return f"mcs-conformance-{random.getrandbits(32)}"


def is_valid_ip(value: Any) -> bool:
    try:
        ipaddress.ip_address(str(value))
    except ValueError:
        return False
    return True


class TestDriver:
    __test__ = False

    def __init__(
        self,
        ctx: RunContext,
        recorder: Recorder,
        *,
        namespace: Optional[str] = None,
    ) -> None:
        self.ctx = ctx
        self.recorder = recorder
        self.namespace = namespace or random_namespace()
        self.hello_service: Dict[str, Any] = manifests.hello_service()
        self.request_pod: Dict[str, Any] = manifests.request_pod()
        self.resource_poll = ctx.config.resource_poll.to_poll_spec()
        self._created_on: List[Cluster] = []

    @property
    def clusters(self) -> List[Cluster]:
        return self.ctx.clusters

    @property
    def exporter(self) -> Cluster:
        return self.clusters[0]

    def require_two_clusters(self) -> None:
        if len(self.clusters) < 2:
            pytest.skip("This test requires at least 2 clusters - skipping")

    # -- lifecycle --------------------------------------------------------

    def setup(self) -> None:
        self.recorder.require(self.clusters, "no clusters configured")
        for c in self.clusters:
            self._create(c, NAMESPACES, manifests.namespace(self.namespace), namespaced=False)
            self._created_on.append(c)

        self.deploy_hello_service(self.exporter, self.hello_service)

        for c in self.clusters:
            self.start_request_pod(c)

    def teardown(self) -> None:
        errors: List[str] = []
        for c in self._created_on:
            try:
                c.client.delete(NAMESPACES, self.namespace)
            except ApiError as e:
                if is_not_found(e):
                    continue
                logger.warning("failed to delete namespace %s on %s: %s", self.namespace, c.name, e)
                errors.append(f"{c.name}: {e}")
        self._created_on.clear()
        if errors:
            raise ConformanceError(
                f"failed to delete namespace {self.namespace}: " + "; ".join(errors)
            )

    def _create(
        self,
        cluster: Cluster,
        resource: Any,
        body: Dict[str, Any],
        *,
        namespaced: bool = True,
    ) -> Dict[str, Any]:
        ns = self.namespace if namespaced else None
        try:
            return cluster.client.create(resource, body, ns)
        except ApiError as e:
            name = (body.get("metadata") or {}).get("name", "")
            self.recorder.require_no_error(
                e, f"Error creating {resource.kind} {name!r} on cluster {cluster.name!r}"
            )
            raise

    # -- hello service / exports ------------------------------------------

    def deploy_hello_service(self, cluster: Cluster, service: Optional[Dict[str, Any]] = None) -> None:
        self._create(cluster, DEPLOYMENTS, manifests.hello_deployment())
        self._create(cluster, SERVICES, service if service is not None else manifests.hello_service())

    def update_service(self, cluster: Cluster, service: Dict[str, Any]) -> Dict[str, Any]:
        current = cluster.client.get(SERVICES, manifests.HELLO_SERVICE_NAME, self.namespace)
        merged = dict(service)
        merged["metadata"] = {**(current.get("metadata") or {}), **(service.get("metadata") or {})}
        try:
            return cluster.client.update(SERVICES, merged, self.namespace)
        except ApiError as e:
            self.recorder.require_no_error(e, "Error updating Services in EndpointSlice hook")
            raise

    def create_service_export(self, cluster: Cluster, export: Optional[Dict[str, Any]] = None) -> None:
        self._create(cluster, SERVICE_EXPORTS, export or manifests.hello_service_export())

    def delete_service_export(self, cluster: Cluster) -> None:
        try:
            cluster.client.delete(SERVICE_EXPORTS, manifests.HELLO_SERVICE_NAME, self.namespace)
        except ApiError as e:
            self.recorder.require_no_error(
                e, f"Error deleting the ServiceExport on cluster {cluster.name!r}"
            )

    def await_service_export_condition(self, cluster: Cluster, cond_type: str) -> None:
        def check(se: Dict[str, Any]) -> tuple:
            conditions = (se.get("status") or {}).get("conditions") or []
            found = any(c.get("type") == cond_type for c in conditions)
            return found, f"conditions: {[c.get('type') for c in conditions]}"

        self.recorder.await_until(
            f"find the {cond_type} condition on the ServiceExport on cluster {cluster.name!r}",
            lambda: cluster.client.get(SERVICE_EXPORTS, manifests.HELLO_SERVICE_NAME, self.namespace),
            check,
            self.resource_poll,
            violation=f"The {cond_type} condition was not set",
        )

    # -- service imports ----------------------------------------------------

    def get_service_import(self, cluster: Cluster, name: str = manifests.HELLO_SERVICE_NAME) -> ServiceImport:
        return cluster.client.get(SERVICE_IMPORTS, name, self.namespace)

    def await_service_import(
        self,
        cluster: Cluster,
        name: str = manifests.HELLO_SERVICE_NAME,
        verify: Optional[Callable[[ServiceImport], bool]] = None,
    ) -> Optional[ServiceImport]:
        """Wait for the ServiceImport to exist and satisfy `verify`.

        Returns the last ServiceImport observed, even if `verify` never
        accepted it, or None if none was found. Callers assert on the result.
        """
        last: List[ServiceImport] = []

        def get() -> ServiceImport:
            si = self.get_service_import(cluster, name)
            last[:] = [si]
            return si

        outcome = poll_until(
            f"retrieve ServiceImport {name!r} on cluster {cluster.name!r}",
            get,
            lambda si: (verify is None or bool(verify(si)), ""),
            self.resource_poll,
            predicates=NOT_FOUND_TOLERANT_PREDICATES,
        )
        if outcome.ok:
            return outcome.result
        if isinstance(outcome.error, FatalOperationError):
            self.recorder.require_no_error(outcome.error.cause, "Error retrieving ServiceImport")
        return last[0] if last else None

    def ensure_service_import(self, cluster: Cluster, name: str, message: str) -> None:
        """Require the ServiceImport to keep existing for a few seconds."""
        self.recorder.hold(
            f"ServiceImport {name!r} exists on cluster {cluster.name!r}",
            lambda: self._service_import_exists(cluster, name),
            lambda exists: (exists, "the ServiceImport was not found"),
            CONSISTENTLY_POLL,
            violation=message,
        )

    def await_no_service_import(self, cluster: Cluster, name: str, message: str) -> None:
        self.recorder.await_until(
            f"await deletion of ServiceImport {name!r} on cluster {cluster.name!r}",
            lambda: self._service_import_exists(cluster, name),
            lambda exists: (not exists, "the ServiceImport still exists"),
            self.resource_poll,
            violation=message,
        )

    def _service_import_exists(self, cluster: Cluster, name: str) -> bool:
        try:
            self.get_service_import(cluster, name)
        except ApiError as e:
            if is_not_found(e):
                return False
            raise
        return True

    # -- endpoint slices ----------------------------------------------------

    def await_mcs_endpoint_slice(self, cluster: Cluster) -> Optional[Dict[str, Any]]:
        """Wait for an EndpointSlice carrying one of the MCS labels."""

        def find(slices: List[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
            for eps in slices:
                labels = (eps.get("metadata") or {}).get("labels") or {}
                if manifests.LABEL_SERVICE_NAME in labels or manifests.LABEL_SOURCE_CLUSTER in labels:
                    return eps
            return None

        outcome = poll_until(
            f"find an MCS EndpointSlice on cluster {cluster.name!r}",
            lambda: cluster.client.list(ENDPOINT_SLICES, self.namespace),
            lambda slices: (find(slices) is not None, ""),
            self.resource_poll,
        )
        if outcome.ok:
            return find(outcome.result or [])
        if isinstance(outcome.error, FatalOperationError):
            self.recorder.require_no_error(outcome.error.cause, "Error retrieving EndpointSlices")
        return None

    def await_endpoint_slice_deleted(self, cluster: Cluster, name: str, message: str) -> None:
        def exists() -> bool:
            try:
                cluster.client.get(ENDPOINT_SLICES, name, self.namespace)
            except ApiError as e:
                if is_not_found(e):
                    return False
                raise
            return True

        self.recorder.await_until(
            f"await deletion of EndpointSlice {name!r} on cluster {cluster.name!r}",
            exists,
            lambda present: (not present, "the EndpointSlice still exists"),
            self.resource_poll,
            violation=message,
        )

    # -- pods / exec --------------------------------------------------------

    def start_request_pod(self, cluster: Cluster) -> None:
        self._create(cluster, PODS, self.request_pod)

        def check(pod: Dict[str, Any]) -> tuple:
            phase = (pod.get("status") or {}).get("phase")
            return phase == "Running", f"pod is not running yet, current status {phase}"

        self.recorder.await_until(
            f"start the request pod on cluster {cluster.name!r}",
            lambda: cluster.client.get(PODS, manifests.REQUEST_POD_NAME, self.namespace),
            check,
            POD_RUNNING_POLL,
            predicates=NOT_FOUND_TOLERANT_PREDICATES,
        )

    def await_hello_pod_ip(self, cluster: Cluster) -> str:
        def first_ip(pods: List[Dict[str, Any]]) -> str:
            if not pods:
                return ""
            return str((pods[0].get("status") or {}).get("podIP") or "")

        pods = self.recorder.await_until(
            f"get the service deployment pod IP on cluster {cluster.name!r}",
            lambda: cluster.client.list(
                PODS, self.namespace, label_selector=manifests.HELLO_POD_SELECTOR
            ),
            lambda p: (bool(first_ip(p)), "Service deployment pod was not allocated an IP"),
            POD_RUNNING_POLL,
        )
        return first_ip(pods)

    def exec_cmd_on_request_pod(self, cluster: Cluster, command: List[str]) -> str:
        result = cluster.kubectl.exec(self.namespace, manifests.REQUEST_POD_NAME, command)
        return result.stdout

    def await_cmd_output_contains(
        self,
        cluster: Cluster,
        command: List[str],
        expected: str,
        n_times: int,
        violation: NonConformant,
    ) -> None:
        """Require `expected` in the command output `n_times` in a row.

        Only the first match is awaited; every later run must match too.
        """
        self.recorder.await_until(
            f"find {expected!r} in the output of {' '.join(command)!r} on cluster {cluster.name!r}",
            lambda: self.exec_cmd_on_request_pod(cluster, command),
            lambda out: (expected in out, f"last output: {out.strip()!r}"),
            EXEC_POLL,
            violation=violation,
        )
        for _ in range(n_times - 1):
            out = self.exec_cmd_on_request_pod(cluster, command)
            self.recorder.expect_conformant(
                expected in out, violation, detail=f"output: {out.strip()!r}"
            )

