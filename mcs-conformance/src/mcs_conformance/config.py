"""Harness configuration.

Settings come from an optional YAML file and are then overridden by command
line flags (or pytest options). Unknown keys are rejected.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from mcs_conformance.errors import ConfigError
from mcs_conformance.framework.poller import PollSpec

DEFAULT_LABEL_ORDER = ("Required", "Optional")


class PollSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    interval_s: float = Field(default=0.5, gt=0)
    deadline_s: float = Field(default=10.0)
    immediate: bool = True

    def to_poll_spec(self) -> PollSpec:
        return PollSpec(
            interval=float(self.interval_s),
            deadline=float(self.deadline_s),
            immediate=bool(self.immediate),
        )


class ReportSettings(BaseModel):
    model_config = ConfigDict(extra="forbid")

    output_dir: Path = Path(".")
    text_name: str = "report.txt"
    html_name: str = "report.html"
    outcomes_name: str = "outcomes.jsonl"
    title: str = "MCS conformance report"
    label_order: List[str] = Field(default_factory=lambda: list(DEFAULT_LABEL_ORDER))


class HarnessConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kubeconfig: Optional[Path] = None
    contexts: List[str] = Field(default_factory=list)
    kubectl_path: str = "kubectl"
    request_timeout_s: float = Field(default=30.0, gt=0)
    exec_timeout_s: float = Field(default=20.0, gt=0)

    poll: PollSettings = Field(default_factory=PollSettings)
    resource_poll: PollSettings = Field(
        default_factory=lambda: PollSettings(interval_s=0.1, deadline_s=20.0)
    )
    report: ReportSettings = Field(default_factory=ReportSettings)

    skip_verify_endpoint_slice_managed_by: bool = False


def _load_mapping(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(path)
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        data = json.loads(text)
    elif path.suffix.lower() in {".yaml", ".yml"}:
        data = yaml.safe_load(text)
    else:
        raise ConfigError(f"Unsupported config file extension: {path}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Top-level config must be a mapping: {path}")
    return data


def _merge(base: Dict[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    out = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, Mapping) and isinstance(out.get(key), Mapping):
            out[key] = _merge(dict(out[key]), value)
        else:
            out[key] = value
    return out


def load_harness_config(
    path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> HarnessConfig:
    """Load a HarnessConfig from `path` (YAML/JSON) with `overrides` applied.

    `None` values in `overrides` are ignored so unset CLI flags do not clobber
    file values.
    """
    data: Dict[str, Any] = _load_mapping(Path(path)) if path is not None else {}
    data = _merge(data, overrides or {})
    try:
        return HarnessConfig.model_validate(data)
    except ValidationError as e:
        where = str(path) if path is not None else "<overrides>"
        raise ConfigError(f"invalid harness config ({where}):\n{e}") from e


def split_csv(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [c.strip() for c in str(raw).split(",") if c.strip()]
