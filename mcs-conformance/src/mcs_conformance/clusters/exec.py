"""Remote command execution in pods via `kubectl exec`."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from typing import Optional, Sequence

logger = logging.getLogger(__name__)


class KubectlExecError(RuntimeError):
    """Raised when kubectl itself cannot be run (missing binary, timeout)."""


@dataclass(frozen=True)
class ExecResult:
    args: list[str]
    stdout: str
    stderr: str
    returncode: int

    def ok(self) -> bool:
        return self.returncode == 0


class KubectlExec:
    """Runs commands inside pods of one kubeconfig context."""

    def __init__(
        self,
        *,
        context: str,
        kubeconfig: Optional[str] = None,
        kubectl_path: str = "kubectl",
        timeout_s: float = 20.0,
    ) -> None:
        self._context = context
        self._kubeconfig = kubeconfig
        self._kubectl_path = kubectl_path
        self._timeout_s = timeout_s

    @property
    def context(self) -> str:
        return self._context

    def _base_cmd(self) -> list[str]:
        return [self._kubectl_path, "--context", self._context]

    def exec(
        self,
        namespace: str,
        pod: str,
        command: Sequence[str],
        *,
        container: Optional[str] = None,
        timeout_s: Optional[float] = None,
    ) -> ExecResult:
        """Run `command` in `pod` and return its stdout/stderr/returncode.

        A non-zero exit code is returned, not raised; callers decide whether
        it matters.
        """
        cmd = self._base_cmd() + ["exec", "-n", namespace, pod]
        if container:
            cmd += ["-c", container]
        cmd += ["--"] + list(command)

        env = dict(os.environ)
        if self._kubeconfig:
            env["KUBECONFIG"] = self._kubeconfig

        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                env=env,
                timeout=self._timeout_s if timeout_s is None else float(timeout_s),
            )
        except FileNotFoundError as e:
            raise KubectlExecError(f"kubectl not found: {self._kubectl_path}") from e
        except subprocess.TimeoutExpired as e:
            raise KubectlExecError(f"kubectl exec timed out: {' '.join(cmd)}") from e

        result = ExecResult(
            args=cmd,
            stdout=proc.stdout,
            stderr=proc.stderr,
            returncode=proc.returncode,
        )
        if not result.ok():
            logger.debug("kubectl exec rc=%d: %s", result.returncode, result.stderr.strip())
        return result
