"""Kubernetes cluster access via kubectl subprocess calls.

All calls go through ``kubectl`` so discovery uses whatever kubeconfig /
context (or in-cluster service account) is active; no in-process K8s
client library needed.

Only two kinds of request are ever made:
  • ``get pods`` across all namespaces (needs ``pods: list``).
  • ``exec`` of a read-only command in a container (needs ``pods/exec: create``).
Nothing here creates, patches or deletes cluster objects.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Maximum exec output we keep per container. Pod listings are never capped:
# a truncated JSON document is unparseable.
_MAX_OUTPUT_BYTES = 512 * 1024  # 512 KB


@dataclass
class CommandResult:
    """Result of a kubectl command execution."""

    command: str
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def summary(self) -> str:
        if self.ok:
            return self.stdout[:2000] if len(self.stdout) > 2000 else self.stdout
        return f"ERROR (rc={self.returncode}): {self.stderr[:1000]}"


@dataclass
class ClusterClient:
    """Read-only interface to a Kubernetes cluster via kubectl.

    Parameters
    ----------
    kubeconfig : str
        Path to kubeconfig file.  Empty string means use the default
        (in-cluster config when running as a pod).
    context : str
        Kubernetes context to use.  Empty string means use the current context.
    """

    kubeconfig: str = ""
    context: str = ""
    _base_cmd: list[str] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        self._base_cmd = ["kubectl"]
        if self.kubeconfig:
            self._base_cmd += ["--kubeconfig", self.kubeconfig]
        if self.context:
            self._base_cmd += ["--context", self.context]

    # ── Low-level executor ────────────────────────────────────────────────

    def _run(
        self,
        args: list[str],
        timeout: float = 30,
        max_output: int | None = _MAX_OUTPUT_BYTES,
    ) -> CommandResult:
        """Run a kubectl command and return the result.

        Output that is not valid UTF-8 (binary files, odd locales inside a
        container) is decoded with replacement characters instead of failing.
        ``max_output=None`` keeps stdout whole.
        """
        cmd = self._base_cmd + args
        cmd_str = shlex.join(cmd)
        logger.debug("kubectl: %s", cmd_str)

        try:
            proc = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=timeout,
            )
            stdout = proc.stdout if max_output is None else proc.stdout[:max_output]
            return CommandResult(
                command=cmd_str,
                returncode=proc.returncode,
                stdout=stdout,
                stderr=proc.stderr[:_MAX_OUTPUT_BYTES],
            )
        except subprocess.TimeoutExpired:
            return CommandResult(
                command=cmd_str,
                returncode=-1,
                stdout="",
                stderr=f"Command timed out after {timeout}s",
            )
        except FileNotFoundError:
            return CommandResult(
                command=cmd_str,
                returncode=-1,
                stdout="",
                stderr="kubectl not found. Is it installed and on the PATH?",
            )

    # ── Read operations ───────────────────────────────────────────────────

    def check_connectivity(self, timeout: float = 10) -> CommandResult:
        """Quick check that kubectl can reach the API server."""
        return self._run(["version", "-o", "json"], timeout=timeout)

    def list_pods(self, field_selector: str = "", timeout: float = 30) -> CommandResult:
        """List pods in every namespace as JSON."""
        args = ["get", "pods", "--all-namespaces", "-o", "json"]
        if field_selector:
            args += [f"--field-selector={field_selector}"]
        return self._run(args, timeout=timeout, max_output=None)

    def exec_in_container(
        self,
        namespace: str,
        pod: str,
        container: str,
        command: list[str],
        timeout: float = 10,
    ) -> CommandResult:
        """Run *command* inside a container without stdin or a TTY."""
        args = ["exec", pod, "-n", namespace, "-c", container, "--", *command]
        return self._run(args, timeout=timeout)
