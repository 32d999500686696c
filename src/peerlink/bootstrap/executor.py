"""Command execution inside a node's container."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass
from typing import Protocol

from peerlink.bootstrap.commands import BootstrapCommand
from peerlink.errors import CommandFailed, UpstreamTimeout
from peerlink.logging import get_logger

log = get_logger(__name__)


@dataclass(frozen=True)
class NodeTarget:
    """Where a command runs: a container of a pod in a namespace."""

    pod: str
    namespace: str
    container: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.pod}[{self.container}]"


class CommandExecutor(Protocol):
    """Runs a bootstrap command on a node and returns its stdout."""

    async def execute(self, target: NodeTarget, command: BootstrapCommand) -> str: ...


async def run_process(argv: list[str], timeout: float) -> tuple[int, str, str]:
    """
    Run ``argv`` and return ``(returncode, stdout, stderr)``.

    The child never outlives the call: it is killed on timeout and also when
    the awaiting task is cancelled, e.g. by an enclosing ``wait_for``.
    Raises asyncio.TimeoutError after ``timeout`` seconds.
    """
    proc = await asyncio.create_subprocess_exec(
        *argv,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    try:
        stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout)
    finally:
        if proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
    return proc.returncode, stdout.decode(errors="replace"), stderr.decode(errors="replace")


class KubectlExecutor:
    """
    Executes commands through ``kubectl exec``.

    Each call is bounded by ``timeout`` seconds; on expiry, or when the caller
    gives up first, the kubectl process is killed. Expiry raises
    UpstreamTimeout.
    """

    def __init__(self, kubectl: str = "kubectl", timeout: float = 60.0) -> None:
        self._kubectl = kubectl
        self._timeout = timeout

    def build_argv(self, target: NodeTarget, command: BootstrapCommand) -> list[str]:
        return [
            self._kubectl,
            "exec",
            "-n",
            target.namespace,
            target.pod,
            "-c",
            target.container,
            "--",
            *command.argv(),
        ]

    async def execute(self, target: NodeTarget, command: BootstrapCommand) -> str:
        argv = self.build_argv(target, command)
        log.debug("exec_command", target=str(target), command=type(command).__name__)
        try:
            returncode, out, err = await run_process(argv, self._timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(
                f"Command {type(command).__name__} on {target} timed out after {self._timeout}s"
            ) from e

        if returncode != 0:
            raise CommandFailed(
                f"Command {type(command).__name__} on {target} exited with {returncode}",
                exit_code=returncode,
                output=f"{out}{err}",
            )
        return out
