"""
Configuration orchestrator.

Per node, recomputed on every call:

    validated -> defaults_applied -> env_var_configured | command_configured -> done
                                 \\-> error (from any step)

Env-var nodes are wired through :class:`peerlink.wiring.EnvWiring`; DA nodes
that do not read env vars run the trusted-peer bootstrap inside their
container. Consensus nodes without env vars have no remote configuration path
and are rejected as an unsupported configuration.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, TypeVar

from peerlink.bootstrap.commands import (
    TrustedPeerCommandBuilder,
    bootstrap_failure_from,
    parse_trusted_peer,
)
from peerlink.bootstrap.executor import CommandExecutor, NodeTarget
from peerlink.core.defaults import apply_defaults
from peerlink.core.schema import NodeType, Peer
from peerlink.core.topology import Topology
from peerlink.errors import (
    CommandFailed,
    PeerlinkError,
    UnsupportedConfigurationError,
    UpstreamTimeout,
)
from peerlink.logging import get_logger
from peerlink.registry import RegistryClient
from peerlink.wiring import EnvWiring

log = get_logger(__name__)

T = TypeVar("T")

NODE_NOT_FOUND = "error: Pod doesn't exists in the config"


class ConfigState(str, Enum):
    VALIDATED = "validated"
    DEFAULTS_APPLIED = "defaults_applied"
    ENV_VAR_CONFIGURED = "env_var_configured"
    COMMAND_CONFIGURED = "command_configured"
    DONE = "done"
    ERROR = "error"


class ResultStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    INTERNAL_ERROR = "internal_error"
    UNSUPPORTED_CONFIGURATION = "unsupported_configuration"


@dataclass
class OrchestrationResult:
    """Outcome of configuring one node."""

    node_name: str
    status: ResultStatus
    detail: str
    states: list[ConfigState] = field(default_factory=list)
    trusted_peer: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == ResultStatus.OK

    def to_dict(self) -> dict[str, Any]:
        return {
            "node_name": self.node_name,
            "status": self.status.value,
            "detail": self.detail,
            "states": [s.value for s in self.states],
            "trusted_peer": self.trusted_peer,
        }


class ConfigurationOrchestrator:
    """Decides and drives how a node gets wired to its mutual peers."""

    def __init__(
        self,
        topology: Topology,
        env_wiring: EnvWiring,
        executor: CommandExecutor,
        builder: TrustedPeerCommandBuilder | None = None,
        registry: RegistryClient | None = None,
        command_timeout: float = 60.0,
    ) -> None:
        self._topology = topology
        self._env_wiring = env_wiring
        self._executor = executor
        self._builder = builder or TrustedPeerCommandBuilder()
        self._registry = registry
        self._command_timeout = command_timeout

    async def configure(self, name: str) -> OrchestrationResult:
        """Validate ``name`` against the topology and configure it."""
        found, peer = self._topology.validate_node(name)
        if not found or peer is None:
            log.error("node_not_in_topology", node=name)
            return OrchestrationResult(name, ResultStatus.NOT_FOUND, NODE_NOT_FOUND)
        return await self.configure_peer(peer)

    async def configure_peer(self, peer: Peer) -> OrchestrationResult:
        states = [ConfigState.VALIDATED]
        peer = apply_defaults(peer)
        states.append(ConfigState.DEFAULTS_APPLIED)
        trusted_peer = None

        try:
            if peer.connects_as_env_var:
                log.info("configuring_env_var", node=peer.node_name)
                await self._bounded(
                    self._env_wiring.setup_env_var_connections(peer, self._topology),
                    f"env wiring of {peer.node_name}",
                )
                states.append(ConfigState.ENV_VAR_CONFIGURED)
            else:
                path = COMMAND_PATHS[peer.node_type]
                if path is None:
                    raise UnsupportedConfigurationError(
                        f"Node [{peer.node_name}] of type {peer.node_type.value} "
                        "can only be configured through env vars"
                    )
                log.info("configuring_with_commands", node=peer.node_name)
                trusted_peer = await path(self, peer)
                states.append(ConfigState.COMMAND_CONFIGURED)
        except PeerlinkError as e:
            states.append(ConfigState.ERROR)
            log.error("node_configuration_failed", node=peer.node_name, kind=e.kind, error=e.message)
            status = (
                ResultStatus.UNSUPPORTED_CONFIGURATION
                if isinstance(e, UnsupportedConfigurationError)
                else ResultStatus.INTERNAL_ERROR
            )
            return OrchestrationResult(peer.node_name, status, e.message, states)
        except Exception as e:
            states.append(ConfigState.ERROR)
            log.exception("node_configuration_crashed", node=peer.node_name)
            return OrchestrationResult(peer.node_name, ResultStatus.INTERNAL_ERROR, str(e), states)

        states.append(ConfigState.DONE)
        log.info("node_configured", node=peer.node_name, trusted_peer=trusted_peer)
        return OrchestrationResult(
            peer.node_name, ResultStatus.OK, peer.node_name, states, trusted_peer=trusted_peer
        )

    async def _configure_with_commands(self, peer: Peer) -> str:
        """Bootstrap the node's address, record it, then publish known peers."""
        target = NodeTarget(
            pod=peer.node_name,
            namespace=peer.namespace,
            container=peer.container_name or peer.node_type.value,
        )

        try:
            output = await self._bounded(
                self._executor.execute(target, self._builder.create()),
                f"trusted peer bootstrap of {peer.node_name}",
            )
        except CommandFailed as e:
            raise bootstrap_failure_from(e) from e
        address = parse_trusted_peer(output)
        log.info("trusted_peer_bootstrapped", node=peer.node_name, address=address)

        if self._registry is not None:
            await self._registry.set(peer.node_name, address)

        peers_dir = self._trusted_peers_dir(peer.node_name)
        for addr in [address, *await self._known_peer_addresses(peer)]:
            await self._bounded(
                self._executor.execute(target, self._builder.bulk_append(addr, peers_dir)),
                f"trusted peers update of {peer.node_name}",
            )
        return address

    async def _known_peer_addresses(self, peer: Peer) -> list[str]:
        if self._registry is None:
            return []
        known = await self._registry.get_all()
        return [
            known[p.node_name]
            for p in self._topology.mutual_peers_of(peer.node_name)
            if known.get(p.node_name)
        ]

    def _trusted_peers_dir(self, name: str) -> str | None:
        for group in self._topology.groups_of(name):
            if group.trusted_peers_path:
                return group.trusted_peers_path
        return None

    async def _bounded(self, awaitable: Awaitable[T], what: str) -> T:
        try:
            return await asyncio.wait_for(awaitable, self._command_timeout)
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout(f"Timed out after {self._command_timeout}s: {what}") from e


CommandPath = Callable[[ConfigurationOrchestrator, Peer], Awaitable[str]]

# Remote configuration path for nodes that do not connect through env vars.
# Every NodeType must appear; None marks the type as unsupported.
COMMAND_PATHS: dict[NodeType, CommandPath | None] = {
    NodeType.DA: ConfigurationOrchestrator._configure_with_commands,
    NodeType.CONSENSUS: None,
}

_missing = set(NodeType) - set(COMMAND_PATHS)
if _missing:
    raise RuntimeError(f"No command path declared for node types: {sorted(t.value for t in _missing)}")
