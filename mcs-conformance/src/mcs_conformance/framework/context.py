"""Run-level state shared by every conformance test in a session."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from mcs_conformance.clusters.client import ResourceClient
from mcs_conformance.clusters.errors import ApiError
from mcs_conformance.clusters.exec import KubectlExec
from mcs_conformance.clusters.kubeconfig import ClusterConfig, load_kubeconfig, remove_temp_files
from mcs_conformance.config import HarnessConfig
from mcs_conformance.errors import ConfigError, SuiteSetupError

logger = logging.getLogger(__name__)


@dataclass
class Cluster:
    """Clients for one member cluster of the clusterset."""

    name: str
    config: ClusterConfig
    client: ResourceClient
    kubectl: KubectlExec


@dataclass
class RunContext:
    config: HarnessConfig
    clusters: List[Cluster] = field(default_factory=list)

    def close(self) -> None:
        """Close every client and remove materialized credential files."""
        for c in self.clusters:
            c.client.close()
            remove_temp_files(c.config.temp_files)


def build_run_context(
    config: HarnessConfig,
    *,
    check_connectivity: bool = True,
) -> RunContext:
    """Resolve every configured context and connect to it.

    Any failure here aborts the whole run with `SuiteSetupError`; it is
    reported once instead of being attributed to individual tests.
    """
    kubeconfig_path: Optional[str] = str(config.kubeconfig) if config.kubeconfig else None
    try:
        kubeconfig, cluster_configs = load_kubeconfig(kubeconfig_path, config.contexts)
    except (ConfigError, OSError, ValueError) as e:
        raise SuiteSetupError(f"failed to load kubeconfig: {e}") from e

    ctx = RunContext(config=config)
    for i, cc in enumerate(cluster_configs):
        try:
            client = ResourceClient(cc, timeout_s=config.request_timeout_s)
        except (OSError, ValueError) as e:
            # ssl.SSLError is an OSError.
            ctx.close()
            for rest in cluster_configs[i:]:
                remove_temp_files(rest.temp_files)
            raise SuiteSetupError(f"cluster {cc.name!r}: cannot set up TLS client: {e}") from e
        kubectl = KubectlExec(
            context=cc.name,
            kubeconfig=kubeconfig.env_value,
            kubectl_path=config.kubectl_path,
            timeout_s=config.exec_timeout_s,
        )
        ctx.clusters.append(Cluster(name=cc.name, config=cc, client=client, kubectl=kubectl))

    if check_connectivity:
        for c in ctx.clusters:
            try:
                version = c.client.server_version()
            except ApiError as e:
                ctx.close()
                raise SuiteSetupError(f"cluster {c.name!r} at {c.config.server} is unreachable: {e}") from e
            logger.info("cluster %s: %s (%s)", c.name, c.config.server, version.get("gitVersion", "?"))

    if not ctx.clusters:
        raise SuiteSetupError("no clusters configured")
    return ctx
