"""Objects deployed by the live conformance tests.

Every builder returns a fresh dict so a test can customize it before the
driver creates it.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Sequence

HELLO_SERVICE_NAME = "hello"
REQUEST_POD_NAME = "request"
HELLO_PORT = 42
SOCAT_IMAGE = "alpine/socat:1.7.4.4"
REQUEST_IMAGE = "busybox"

LABEL_SERVICE_NAME = "multicluster.kubernetes.io/service-name"
LABEL_SOURCE_CLUSTER = "multicluster.kubernetes.io/source-cluster"
LABEL_MANAGED_BY = "endpointslice.kubernetes.io/managed-by"
K8S_ENDPOINT_SLICE_MANAGED_BY = "endpointslice-controller.k8s.io"

CONDITION_CONFLICT = "Conflict"
CONDITION_VALID = "Valid"

TYPE_CLUSTER_SET_IP = "ClusterSetIP"
TYPE_HEADLESS = "Headless"


def _pod_ip_env() -> List[Dict[str, Any]]:
    return [{"name": "MY_POD_IP", "valueFrom": {"fieldRef": {"fieldPath": "status.podIP"}}}]


def hello_service() -> Dict[str, Any]:
    return {
        "metadata": {"name": HELLO_SERVICE_NAME},
        "spec": {
            "selector": {"app": HELLO_SERVICE_NAME},
            "ports": [
                {"name": "tcp", "port": HELLO_PORT, "protocol": "TCP"},
                {"name": "udp", "port": HELLO_PORT, "protocol": "UDP"},
            ],
            "sessionAffinity": "ClientIP",
            "sessionAffinityConfig": {"clientIP": {"timeoutSeconds": 10}},
        },
    }


def hello_deployment() -> Dict[str, Any]:
    def socat(name: str, listen: str) -> Dict[str, Any]:
        return {
            "name": name,
            "image": SOCAT_IMAGE,
            "args": ["-v", "-v", f"{listen}:{HELLO_PORT},crlf,reuseaddr,fork", "SYSTEM:echo pod ip $(MY_POD_IP)"],
            "env": _pod_ip_env(),
        }

    return {
        "metadata": {"name": HELLO_SERVICE_NAME},
        "spec": {
            "replicas": 1,
            "selector": {"matchLabels": {"app": HELLO_SERVICE_NAME}},
            "template": {
                "metadata": {"labels": {"app": HELLO_SERVICE_NAME}},
                "spec": {
                    "containers": [
                        socat("hello-tcp", "TCP-LISTEN"),
                        socat("hello-udp", "UDP-LISTEN"),
                    ]
                },
            },
        },
    }


HELLO_POD_SELECTOR = f"app={HELLO_SERVICE_NAME}"


def request_pod() -> Dict[str, Any]:
    return {
        "metadata": {"name": REQUEST_POD_NAME, "labels": {"app": REQUEST_POD_NAME}},
        "spec": {
            "containers": [
                {
                    "name": REQUEST_POD_NAME,
                    "image": REQUEST_IMAGE,
                    "args": ["/bin/sh", "-ec", "while :; do echo '.'; sleep 5 ; done"],
                }
            ]
        },
    }


def namespace(name: str) -> Dict[str, Any]:
    return {"metadata": {"name": name}}


def hello_service_export(
    *,
    exported_labels: Optional[Mapping[str, str]] = None,
    exported_annotations: Optional[Mapping[str, str]] = None,
) -> Dict[str, Any]:
    obj: Dict[str, Any] = {"metadata": {"name": HELLO_SERVICE_NAME}}
    spec: Dict[str, Any] = {}
    if exported_labels:
        spec["exportedLabels"] = dict(exported_labels)
    if exported_annotations:
        spec["exportedAnnotations"] = dict(exported_annotations)
    if spec:
        obj["spec"] = spec
    return obj


def clusterset_dns_command(service: str, ns: str, port: int = HELLO_PORT) -> List[str]:
    return ["sh", "-c", f"echo hi | nc {service}.{ns}.svc.clusterset.local {port}"]


def to_mcs_ports(ports: Sequence[Mapping[str, Any]]) -> List[Dict[str, Any]]:
    """Normalize service ports for comparison, sorted case-insensitively by name."""
    out: List[Dict[str, Any]] = []
    for p in ports:
        port: Dict[str, Any] = {
            "name": str(p.get("name") or ""),
            "protocol": str(p.get("protocol") or "TCP"),
            "port": int(p.get("port") or 0),
        }
        if p.get("appProtocol"):
            port["appProtocol"] = str(p["appProtocol"])
        out.append(port)
    return sorted(out, key=lambda x: x["name"].lower())
