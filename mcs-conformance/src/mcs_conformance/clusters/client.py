"""Thin Kubernetes REST client on top of httpx.

Only the handful of resources the conformance tests touch are described here.
Objects are plain dicts as returned by the API server.
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

import httpx

from mcs_conformance.clusters.errors import (
    REASON_SERVICE_UNAVAILABLE,
    REASON_TIMEOUT,
    ApiError,
)
from mcs_conformance.clusters.kubeconfig import ClusterConfig

logger = logging.getLogger(__name__)

MCS_GROUP = "multicluster.x-k8s.io"
MCS_VERSION = "v1alpha1"


@dataclass(frozen=True)
class Resource:
    group: str
    version: str
    plural: str
    kind: str
    namespaced: bool = True

    @property
    def api_version(self) -> str:
        return f"{self.group}/{self.version}" if self.group else self.version

    def path(self, namespace: Optional[str] = None, name: Optional[str] = None) -> str:
        prefix = f"/apis/{self.group}/{self.version}" if self.group else f"/api/{self.version}"
        if self.namespaced:
            if not namespace:
                raise ValueError(f"{self.kind} is namespaced; a namespace is required")
            prefix += f"/namespaces/{namespace}"
        path = f"{prefix}/{self.plural}"
        if name:
            path += f"/{name}"
        return path


NAMESPACES = Resource("", "v1", "namespaces", "Namespace", namespaced=False)
PODS = Resource("", "v1", "pods", "Pod")
SERVICES = Resource("", "v1", "services", "Service")
DEPLOYMENTS = Resource("apps", "v1", "deployments", "Deployment")
ENDPOINT_SLICES = Resource("discovery.k8s.io", "v1", "endpointslices", "EndpointSlice")
SERVICE_EXPORTS = Resource(MCS_GROUP, MCS_VERSION, "serviceexports", "ServiceExport")
SERVICE_IMPORTS = Resource(MCS_GROUP, MCS_VERSION, "serviceimports", "ServiceImport")


def ssl_context_for(cluster: ClusterConfig) -> Any:
    """Build the TLS settings httpx expects from a resolved context."""
    if cluster.verify is False:
        ctx = ssl.create_default_context()
        ctx.check_hostname = False
        ctx.verify_mode = ssl.CERT_NONE
    elif isinstance(cluster.verify, str):
        ctx = ssl.create_default_context(cafile=cluster.verify)
    else:
        ctx = ssl.create_default_context()
    if cluster.cert is not None:
        ctx.load_cert_chain(*cluster.cert)
    return ctx


def _decode_body(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return resp.text


class ResourceClient:
    """CRUD access to one cluster.

    Every failure surfaces as `ApiError`, so callers (and the poller's error
    classifier) only need to understand one error type.
    """

    def __init__(
        self,
        cluster: ClusterConfig,
        *,
        timeout_s: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.cluster = cluster
        kwargs: Dict[str, Any] = {
            "base_url": cluster.server,
            "headers": {"Accept": "application/json", **cluster.headers},
            "timeout": timeout_s,
        }
        if transport is not None:
            kwargs["transport"] = transport
        else:
            kwargs["verify"] = ssl_context_for(cluster)
        self._http = httpx.Client(**kwargs)

    @property
    def name(self) -> str:
        return self.cluster.name

    def close(self) -> None:
        self._http.close()

    def __enter__(self) -> "ResourceClient":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Mapping[str, Any]] = None,
        params: Optional[Mapping[str, str]] = None,
    ) -> Any:
        try:
            resp = self._http.request(method, path, json=json, params=params)
        except httpx.TimeoutException as e:
            raise ApiError(
                status_code=504,
                reason=REASON_TIMEOUT,
                message=f"{method} {path} on {self.name} timed out: {e}",
            ) from e
        except httpx.TransportError as e:
            raise ApiError(
                status_code=503,
                reason=REASON_SERVICE_UNAVAILABLE,
                message=f"{method} {path} on {self.name} failed: {e}",
            ) from e

        if resp.status_code >= 400:
            raise ApiError.from_status(resp.status_code, _decode_body(resp))
        if not resp.content:
            return {}
        return _decode_body(resp)

    def server_version(self) -> Dict[str, Any]:
        return self._request("GET", "/version")

    def get(self, resource: Resource, name: str, namespace: Optional[str] = None) -> Dict[str, Any]:
        return self._request("GET", resource.path(namespace, name))

    def list(
        self,
        resource: Resource,
        namespace: Optional[str] = None,
        *,
        label_selector: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        params = {"labelSelector": label_selector} if label_selector else None
        body = self._request("GET", resource.path(namespace), params=params)
        items = body.get("items") if isinstance(body, dict) else None
        return list(items or [])

    def create(
        self, resource: Resource, body: Mapping[str, Any], namespace: Optional[str] = None
    ) -> Dict[str, Any]:
        obj = {"apiVersion": resource.api_version, "kind": resource.kind, **body}
        logger.debug("creating %s on %s", resource.kind, self.name)
        return self._request("POST", resource.path(namespace), json=obj)

    def update(
        self, resource: Resource, body: Mapping[str, Any], namespace: Optional[str] = None
    ) -> Dict[str, Any]:
        name = str((body.get("metadata") or {}).get("name") or "")
        if not name:
            raise ValueError("update requires metadata.name")
        obj = {"apiVersion": resource.api_version, "kind": resource.kind, **body}
        return self._request("PUT", resource.path(namespace, name), json=obj)

    def delete(self, resource: Resource, name: str, namespace: Optional[str] = None) -> None:
        logger.debug("deleting %s %s on %s", resource.kind, name, self.name)
        self._request(
            "DELETE",
            resource.path(namespace, name),
            json={"propagationPolicy": "Background"},
        )
