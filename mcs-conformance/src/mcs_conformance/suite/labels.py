"""Requirement labels attached to conformance tests.

`Required` and `Optional` state the requirement level; the others name a
feature area so that implementations without it can deselect those tests
(`-m "not EndpointSlice"`).
"""

REQUIRED = "Required"
OPTIONAL = "Optional"

CLUSTER_IP = "ClusterIP"
HEADLESS = "Headless"
CONNECTIVITY = "Connectivity"
ENDPOINT_SLICE = "EndpointSlice"
EXPORTED_LABELS = "ExportedLabels"

ALL_LABELS = (
    REQUIRED,
    OPTIONAL,
    CLUSTER_IP,
    HEADLESS,
    CONNECTIVITY,
    ENDPOINT_SLICE,
    EXPORTED_LABELS,
)

KEP_URL = (
    "https://github.com/kubernetes/enhancements/tree/master/keps/"
    "sig-multicluster/1645-multi-cluster-services-api"
)


def kep_ref(anchor: str) -> str:
    return f"{KEP_URL}#{anchor}"
