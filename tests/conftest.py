"""Shared fixtures and fakes."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from peerlink.bootstrap.commands import (
    BulkAppendTrustedPeer,
    CreateTrustedPeer,
    FetchTrustedPeer,
    is_trusted_peer_address,
)
from peerlink.bootstrap.executor import NodeTarget
from peerlink.core.topology import Topology
from peerlink.errors import CommandFailed


@pytest.fixture
def topology_data() -> dict[str, Any]:
    """Two mutual-peer groups; bridge-0 takes part in both."""
    return {
        "mutualPeers": [
            {
                "consensusNode": "consensus-validator-0",
                "trustedPeersPath": "/shared/config",
                "peers": [
                    {
                        "nodeName": "consensus-validator-0",
                        "nodeType": "consensus",
                        "namespace": "celestia",
                        "connectsAsEnvVar": True,
                    },
                    {"nodeName": "bridge-0", "nodeType": "da", "namespace": "celestia"},
                    {
                        "nodeName": "full-0",
                        "nodeType": "da",
                        "namespace": "celestia",
                        "connectsAsEnvVar": True,
                        "connectsTo": ["bridge-0"],
                    },
                ],
            },
            {
                "peers": [
                    {"nodeName": "bridge-0", "nodeType": "da", "namespace": "celestia"},
                    {"nodeName": "bridge-1", "nodeType": "da", "namespace": "celestia"},
                    {"nodeName": "consensus-full-0", "nodeType": "consensus", "namespace": "celestia"},
                ],
            },
        ]
    }


@pytest.fixture
def topology(topology_data) -> Topology:
    return Topology.from_dict(topology_data)


class FakeRedis:
    """Just enough of redis.asyncio.Redis for the registry client."""

    def __init__(self, data: dict[str, str] | None = None, delay: float = 0.0, down: bool = False) -> None:
        self.data = dict(data or {})
        self.delay = delay
        self.down = down
        self.closed = False

    async def _io(self) -> None:
        if self.down:
            raise RedisConnectionError("Connection refused")
        if self.delay:
            await asyncio.sleep(self.delay)

    async def get(self, key: str) -> str | None:
        await self._io()
        return self.data.get(key)

    async def set(self, key: str, value: str) -> bool:
        await self._io()
        self.data[key] = value
        return True

    async def scan_iter(self, match: str = "*"):
        await self._io()
        for key in list(self.data):
            yield key

    async def mget(self, keys: list[str]) -> list[str | None]:
        await self._io()
        return [self.data.get(k) for k in keys]

    async def aclose(self) -> None:
        self.closed = True


class FakeNodeExecutor:
    """
    Emulates the bootstrap commands against in-memory node filesystems.

    Each pod has its own files; the trusted-peers directory is shared by all
    pods, like a shared volume.
    """

    def __init__(self, node_ids: dict[str, str] | None = None) -> None:
        self.node_ids = node_ids or {}
        self.files: dict[str, dict[str, str]] = {}
        self.shared: dict[str, str] = {}
        self.calls: list[tuple[NodeTarget, Any]] = []
        self.token_exchanges: dict[str, int] = {}
        self.fail_stage: str | None = None
        self.delay = 0.0

    async def execute(self, target: NodeTarget, command: Any) -> str:
        self.calls.append((target, command))
        if self.delay:
            await asyncio.sleep(self.delay)
        files = self.files.setdefault(target.pod, {})

        if isinstance(command, FetchTrustedPeer):
            cached = files.get(command.cache_file, "")
            return cached if is_trusted_peer_address(cached) else ""

        if isinstance(command, CreateTrustedPeer):
            cached = files.get(command.cache_file, "")
            if is_trusted_peer_address(cached):
                return cached
            self.token_exchanges[target.pod] = self.token_exchanges.get(target.pod, 0) + 1
            if self.fail_stage:
                raise CommandFailed(
                    f"Command CreateTrustedPeer on {target} exited with 11",
                    exit_code=11,
                    output=f"bootstrap-error: {self.fail_stage}\n",
                )
            prefix = command.address_prefix.replace("$(hostname)", target.pod)
            files[command.cache_file] = prefix + self.node_ids.get(target.pod, f"12D3Koo{target.pod}")
            return files[command.cache_file]

        if isinstance(command, BulkAppendTrustedPeer):
            content = self.shared.get(command.peers_file, "")
            if command.address not in content.split(command.separator):
                content = f"{content}{command.separator}{command.address}" if content else command.address
            self.shared[command.peers_file] = content
            return content

        raise AssertionError(f"unexpected command {command!r}")

    def commands_for(self, pod: str) -> list[Any]:
        return [cmd for target, cmd in self.calls if target.pod == pod]


class FakeEnvWiring:
    def __init__(self, error: Exception | None = None) -> None:
        self.error = error
        self.calls: list[str] = []

    async def setup_env_var_connections(self, peer, topology) -> None:
        self.calls.append(peer.node_name)
        if self.error is not None:
            raise self.error


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def executor() -> FakeNodeExecutor:
    return FakeNodeExecutor()


@pytest.fixture
def env_wiring() -> FakeEnvWiring:
    return FakeEnvWiring()
