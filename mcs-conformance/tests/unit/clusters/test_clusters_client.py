from __future__ import annotations

import json
from typing import Any, Dict, List

import httpx
import pytest

from mcs_conformance.clusters.client import (
    NAMESPACES,
    PODS,
    SERVICE_IMPORTS,
    SERVICES,
    ResourceClient,
)
from mcs_conformance.clusters.errors import ApiError, is_not_found, is_service_unavailable, is_timeout
from mcs_conformance.clusters.kubeconfig import ClusterConfig

CLUSTER = ClusterConfig(name="c1", server="https://c1.test", headers={"Authorization": "Bearer t"})


def _client(handler) -> ResourceClient:
    return ResourceClient(CLUSTER, transport=httpx.MockTransport(handler))


def test_client_resource_paths() -> None:
    assert NAMESPACES.path(name="ns1") == "/api/v1/namespaces/ns1"
    assert PODS.path("ns1") == "/api/v1/namespaces/ns1/pods"
    assert (
        SERVICE_IMPORTS.path("ns1", "hello")
        == "/apis/multicluster.x-k8s.io/v1alpha1/namespaces/ns1/serviceimports/hello"
    )
    assert SERVICE_IMPORTS.api_version == "multicluster.x-k8s.io/v1alpha1"
    with pytest.raises(ValueError):
        PODS.path()


def test_client_create_sends_type_meta_and_headers() -> None:
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        body = json.loads(request.content)
        return httpx.Response(201, json=body)

    with _client(handler) as client:
        created = client.create(SERVICES, {"metadata": {"name": "hello"}}, "ns1")

    assert created["apiVersion"] == "v1"
    assert created["kind"] == "Service"
    [req] = seen
    assert req.method == "POST"
    assert req.url.path == "/api/v1/namespaces/ns1/services"
    assert req.headers["Authorization"] == "Bearer t"
    assert req.headers["Accept"] == "application/json"


def test_client_list_with_label_selector() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["labelSelector"] == "app=hello"
        return httpx.Response(200, json={"kind": "PodList", "items": [{"metadata": {"name": "p"}}]})

    with _client(handler) as client:
        assert client.list(PODS, "ns1", label_selector="app=hello") == [{"metadata": {"name": "p"}}]


def test_client_status_error_maps_to_api_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            404,
            json={"kind": "Status", "reason": "NotFound", "message": "not found", "code": 404},
        )

    with _client(handler) as client:
        with pytest.raises(ApiError) as ei:
            client.get(SERVICE_IMPORTS, "hello", "ns1")
    assert is_not_found(ei.value)


def test_client_transport_failures_map_to_transient_errors() -> None:
    def refused(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    def slow(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("timed out", request=request)

    with _client(refused) as client:
        with pytest.raises(ApiError) as ei:
            client.server_version()
    assert is_service_unavailable(ei.value)

    with _client(slow) as client:
        with pytest.raises(ApiError) as ei:
            client.server_version()
    assert is_timeout(ei.value)


def test_client_update_and_delete() -> None:
    calls: List[Dict[str, Any]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(
            {"method": request.method, "path": request.url.path, "body": json.loads(request.content or b"{}")}
        )
        if request.method == "DELETE":
            return httpx.Response(200, content=b"")
        return httpx.Response(200, json={"ok": True})

    with _client(handler) as client:
        client.update(SERVICES, {"metadata": {"name": "hello"}, "spec": {}}, "ns1")
        assert client.delete(SERVICES, "hello", "ns1") is None
        with pytest.raises(ValueError):
            client.update(SERVICES, {"metadata": {}}, "ns1")

    assert [(c["method"], c["path"]) for c in calls] == [
        ("PUT", "/api/v1/namespaces/ns1/services/hello"),
        ("DELETE", "/api/v1/namespaces/ns1/services/hello"),
    ]
    assert calls[1]["body"] == {"propagationPolicy": "Background"}
