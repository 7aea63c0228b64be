"""Cluster access used by the live conformance tests.

These are thin wrappers (kubeconfig, REST, kubectl exec) so that every API
failure surfaces as `ApiError` and can be classified by the poller.
"""

from __future__ import annotations

from mcs_conformance.clusters.client import (
    DEPLOYMENTS,
    ENDPOINT_SLICES,
    NAMESPACES,
    PODS,
    SERVICE_EXPORTS,
    SERVICE_IMPORTS,
    SERVICES,
    Resource,
    ResourceClient,
)
from mcs_conformance.clusters.errors import ApiError
from mcs_conformance.clusters.exec import ExecResult, KubectlExec, KubectlExecError
from mcs_conformance.clusters.kubeconfig import ClusterConfig, load_kubeconfig

__all__ = [
    "DEPLOYMENTS",
    "ENDPOINT_SLICES",
    "NAMESPACES",
    "PODS",
    "SERVICES",
    "SERVICE_EXPORTS",
    "SERVICE_IMPORTS",
    "ApiError",
    "ClusterConfig",
    "ExecResult",
    "KubectlExec",
    "KubectlExecError",
    "Resource",
    "ResourceClient",
    "load_kubeconfig",
]
