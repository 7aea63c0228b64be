"""Minimal kubeconfig resolution.

Supports what conformance runs against kind/managed test clusters need:
server URL, CA bundle (file or inline data), client certificate/key (file or
inline data), bearer tokens and basic auth. Several files listed in
`KUBECONFIG` are merged with first-wins semantics, like kubectl.
"""

from __future__ import annotations

import base64
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import yaml

from mcs_conformance.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterConfig:
    """Connection settings for one kubeconfig context."""

    name: str
    server: str
    verify: Union[bool, str] = True
    cert: Optional[Tuple[str, str]] = None
    headers: Dict[str, str] = field(default_factory=dict)
    namespace: str = "default"
    temp_files: Tuple[str, ...] = ()


@dataclass(frozen=True)
class KubeConfig:
    paths: List[Path]
    current_context: Optional[str]
    contexts: Dict[str, Mapping[str, Any]]
    clusters: Dict[str, Mapping[str, Any]]
    users: Dict[str, Mapping[str, Any]]

    @property
    def env_value(self) -> str:
        """Value to pass to kubectl as KUBECONFIG."""
        return os.pathsep.join(str(p) for p in self.paths)


def default_kubeconfig_paths() -> List[Path]:
    raw = os.environ.get("KUBECONFIG", "")
    paths = [Path(p).expanduser() for p in raw.split(os.pathsep) if p.strip()]
    if paths:
        return paths
    return [Path.home() / ".kube" / "config"]


def _named(items: Any, key: str, path: Path) -> Dict[str, Mapping[str, Any]]:
    out: Dict[str, Mapping[str, Any]] = {}
    if items is None:
        return out
    if not isinstance(items, list):
        raise ConfigError(f"kubeconfig {path}: '{key}' must be a list")
    for item in items:
        if not isinstance(item, Mapping) or not item.get("name"):
            raise ConfigError(f"kubeconfig {path}: every '{key}' entry needs a name")
        body = item.get(key[:-1]) or {}
        if not isinstance(body, Mapping):
            raise ConfigError(f"kubeconfig {path}: {key}[{item['name']}] must be a mapping")
        out[str(item["name"])] = body
    return out


def read_kubeconfig(paths: Optional[Sequence[Path]] = None) -> KubeConfig:
    paths = [Path(p) for p in (paths or default_kubeconfig_paths())]
    current: Optional[str] = None
    contexts: Dict[str, Mapping[str, Any]] = {}
    clusters: Dict[str, Mapping[str, Any]] = {}
    users: Dict[str, Mapping[str, Any]] = {}

    existing = [p for p in paths if p.exists()]
    if not existing:
        raise ConfigError(f"no kubeconfig found at {', '.join(str(p) for p in paths)}")

    for path in existing:
        try:
            data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (yaml.YAMLError, OSError) as e:
            raise ConfigError(f"invalid kubeconfig {path}: {e}") from e
        if not isinstance(data, Mapping):
            raise ConfigError(f"kubeconfig {path} must be a mapping")

        # First file to define an entry wins.
        for name, body in _named(data.get("contexts"), "contexts", path).items():
            contexts.setdefault(name, body)
        for name, body in _named(data.get("clusters"), "clusters", path).items():
            clusters.setdefault(name, body)
        for name, body in _named(data.get("users"), "users", path).items():
            users.setdefault(name, body)
        if not current and data.get("current-context"):
            current = str(data["current-context"])

    return KubeConfig(
        paths=existing,
        current_context=current,
        contexts=contexts,
        clusters=clusters,
        users=users,
    )


def _materialize(data_b64: str, suffix: str, temp_files: List[str]) -> str:
    """Write an inline *-data field to a private temp file and return its path."""
    raw = base64.b64decode(data_b64, validate=True)
    fd, name = tempfile.mkstemp(prefix="mcs-kubeconfig-", suffix=suffix)
    temp_files.append(name)
    with os.fdopen(fd, "wb") as f:
        f.write(raw)
    return name


def remove_temp_files(paths: Sequence[str]) -> None:
    for p in paths:
        try:
            os.unlink(p)
        except FileNotFoundError:
            pass


def _file_or_data(
    body: Mapping[str, Any], file_key: str, base: Path, suffix: str, temp_files: List[str]
) -> Optional[str]:
    data = body.get(f"{file_key}-data")
    if data:
        return _materialize(str(data), suffix, temp_files)
    value = body.get(file_key)
    if not value:
        return None
    p = Path(str(value)).expanduser()
    if not p.is_absolute():
        p = base / p
    if not p.is_file():
        raise FileNotFoundError(f"{file_key} file not found: {p}")
    return str(p)


def _resolve_auth(
    name: str,
    cluster: Mapping[str, Any],
    user: Mapping[str, Any],
    base: Path,
    temp_files: List[str],
) -> Tuple[Union[bool, str], Optional[Tuple[str, str]], Dict[str, str]]:
    verify: Union[bool, str] = True
    if cluster.get("insecure-skip-tls-verify"):
        verify = False
    else:
        ca = _file_or_data(cluster, "certificate-authority", base, ".crt", temp_files)
        if ca:
            verify = ca

    headers: Dict[str, str] = {}
    cert: Optional[Tuple[str, str]] = None

    client_cert = _file_or_data(user, "client-certificate", base, ".crt", temp_files)
    client_key = _file_or_data(user, "client-key", base, ".key", temp_files)
    if client_cert and client_key:
        cert = (client_cert, client_key)

    token = user.get("token")
    if not token and user.get("tokenFile"):
        token = Path(str(user["tokenFile"])).expanduser().read_text(encoding="utf-8").strip()
    if token:
        headers["Authorization"] = f"Bearer {token}"
    elif user.get("username") and user.get("password"):
        basic = base64.b64encode(f"{user['username']}:{user['password']}".encode()).decode()
        headers["Authorization"] = f"Basic {basic}"

    if user.get("exec") or user.get("auth-provider"):
        logger.warning("context %s uses an exec/auth-provider plugin; not supported", name)
    return verify, cert, headers


def resolve_context(kubeconfig: KubeConfig, context: Optional[str] = None) -> ClusterConfig:
    """Resolve one context; inline credentials are written to temp files.

    The temp files are listed on `ClusterConfig.temp_files`; callers remove
    them with `remove_temp_files` when done.
    """
    name = context or kubeconfig.current_context
    if not name:
        raise ConfigError("no context given and kubeconfig has no current-context")
    ctx = kubeconfig.contexts.get(name)
    if ctx is None:
        raise ConfigError(f"context {name!r} not found in kubeconfig")

    cluster_name = str(ctx.get("cluster") or "")
    cluster = kubeconfig.clusters.get(cluster_name)
    if cluster is None:
        raise ConfigError(f"context {name!r} references unknown cluster {cluster_name!r}")
    server = str(cluster.get("server") or "").rstrip("/")
    if not server:
        raise ConfigError(f"cluster {cluster_name!r} has no server")

    user = kubeconfig.users.get(str(ctx.get("user") or "")) or {}
    temp_files: List[str] = []
    try:
        verify, cert, headers = _resolve_auth(
            name, cluster, user, kubeconfig.paths[0].parent, temp_files
        )
    except (OSError, ValueError) as e:
        remove_temp_files(temp_files)
        raise ConfigError(f"context {name!r}: cannot load credentials: {e}") from e

    return ClusterConfig(
        name=name,
        server=server,
        verify=verify,
        cert=cert,
        headers=headers,
        namespace=str(ctx.get("namespace") or "default"),
        temp_files=tuple(temp_files),
    )


def load_kubeconfig(
    path: Optional[Union[str, Path]] = None,
    contexts: Sequence[str] = (),
) -> Tuple[KubeConfig, List[ClusterConfig]]:
    """Resolve `contexts` (default: the current context) from `path`.

    `path` may list several files separated by `os.pathsep`.
    """
    paths: Optional[List[Path]] = None
    if path:
        paths = [Path(p).expanduser() for p in str(path).split(os.pathsep) if p.strip()]
    kubeconfig = read_kubeconfig(paths)
    resolved: List[ClusterConfig] = []
    try:
        for c in list(contexts) or [None]:
            resolved.append(resolve_context(kubeconfig, c))
    except ConfigError:
        for cc in resolved:
            remove_temp_files(cc.temp_files)
        raise
    return kubeconfig, resolved
