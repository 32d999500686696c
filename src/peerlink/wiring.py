"""Environment-variable wiring for nodes that read their peers from env."""

from __future__ import annotations

import asyncio
from typing import Protocol

from peerlink.bootstrap.executor import run_process
from peerlink.core.schema import Peer
from peerlink.core.topology import Topology
from peerlink.errors import CommandFailed, UpstreamTimeout
from peerlink.logging import get_logger

log = get_logger(__name__)

CONSENSUS_NODE_VAR = "CONSENSUS_NODE"
TRUSTED_PEERS_HOSTS_VAR = "TRUSTED_PEERS_HOSTS"


class EnvWiring(Protocol):
    """Sets up every named env connection of a node to its mutual peers."""

    async def setup_env_var_connections(self, peer: Peer, topology: Topology) -> None: ...


def _dns_name(name: str, namespace: str) -> str:
    if "." in name:
        return name
    return f"{name}.{namespace}.svc.cluster.local"


def env_connections(peer: Peer, topology: Topology) -> dict[str, str]:
    """
    Environment a node needs to reach its mutual peers.

    Explicit ``dns_connections`` win over ``connects_to``, which win over the
    peers derived from the node's groups.
    """
    env: dict[str, str] = {}

    consensus = topology.consensus_node_for(peer.node_name)
    if consensus and consensus != peer.node_name:
        env[CONSENSUS_NODE_VAR] = _dns_name(consensus, peer.namespace)

    if peer.dns_connections:
        hosts = list(peer.dns_connections)
    elif peer.connects_to:
        hosts = [_dns_name(name, peer.namespace) for name in peer.connects_to]
    else:
        hosts = [_dns_name(p.node_name, p.namespace) for p in topology.mutual_peers_of(peer.node_name)]
    if hosts:
        env[TRUSTED_PEERS_HOSTS_VAR] = ",".join(hosts)

    return env


class KubectlEnvWiring:
    """Applies :func:`env_connections` with ``kubectl set env``."""

    def __init__(self, kubectl: str = "kubectl", timeout: float = 60.0, kind: str = "statefulset") -> None:
        self._kubectl = kubectl
        self._timeout = timeout
        self._kind = kind

    def build_argv(self, peer: Peer, env: dict[str, str]) -> list[str]:
        argv = [self._kubectl, "set", "env", f"{self._kind}/{peer.node_name}", "-n", peer.namespace]
        if peer.container_name:
            argv += ["-c", peer.container_name]
        argv += [f"{key}={value}" for key, value in sorted(env.items())]
        return argv

    async def setup_env_var_connections(self, peer: Peer, topology: Topology) -> None:
        env = env_connections(peer, topology)
        if not env:
            log.info("env_wiring_skipped", node=peer.node_name, reason="no mutual peers")
            return

        try:
            returncode, out, err = await run_process(self.build_argv(peer, env), self._timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(f"Env wiring for {peer.node_name} timed out after {self._timeout}s") from e

        if returncode != 0:
            raise CommandFailed(
                f"Env wiring for {peer.node_name} exited with {returncode}",
                exit_code=returncode,
                output=f"{out}{err}",
            )
        log.info("env_wiring_applied", node=peer.node_name, variables=sorted(env))
