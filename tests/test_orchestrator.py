"""Tests for the configuration orchestrator."""

import pytest

from conftest import FakeEnvWiring, FakeNodeExecutor, FakeRedis
from peerlink.bootstrap.commands import BulkAppendTrustedPeer, CreateTrustedPeer
from peerlink.core.schema import NodeType, Peer
from peerlink.errors import CommandFailed
from peerlink.orchestrator import (
    COMMAND_PATHS,
    ConfigState,
    ConfigurationOrchestrator,
    ResultStatus,
)
from peerlink.registry import RegistryClient

BRIDGE_0 = "/dns/bridge-0/tcp/2121/p2p/12D3KooWBridge0"
BRIDGE_1 = "/dns/bridge-1/tcp/2121/p2p/12D3KooWBridge1"


@pytest.fixture
def redis():
    return FakeRedis()


@pytest.fixture
def orchestrator(topology, env_wiring, executor, redis):
    executor.node_ids = {"bridge-0": "12D3KooWBridge0", "bridge-1": "12D3KooWBridge1"}
    return ConfigurationOrchestrator(
        topology,
        env_wiring,
        executor,
        registry=RegistryClient(redis),
        command_timeout=5.0,
    )


def _peer(node_type: NodeType, env_var: bool) -> Peer:
    return Peer(node_name="node-x", node_type=node_type, connects_as_env_var=env_var)


@pytest.mark.asyncio
class TestDispatchMatrix:
    """Which wiring path each type/connection-mode combination takes."""

    async def test_da_env_var(self, orchestrator, env_wiring, executor):
        result = await orchestrator.configure_peer(_peer(NodeType.DA, True))
        assert result.status == ResultStatus.OK
        assert env_wiring.calls == ["node-x"]
        assert executor.calls == []
        assert ConfigState.ENV_VAR_CONFIGURED in result.states

    async def test_da_commands(self, orchestrator, env_wiring, executor):
        result = await orchestrator.configure_peer(_peer(NodeType.DA, False))
        assert result.status == ResultStatus.OK
        assert env_wiring.calls == []
        assert isinstance(executor.calls[0][1], CreateTrustedPeer)
        assert result.states == [
            ConfigState.VALIDATED,
            ConfigState.DEFAULTS_APPLIED,
            ConfigState.COMMAND_CONFIGURED,
            ConfigState.DONE,
        ]

    async def test_consensus_env_var(self, orchestrator, env_wiring, executor):
        result = await orchestrator.configure_peer(_peer(NodeType.CONSENSUS, True))
        assert result.status == ResultStatus.OK
        assert env_wiring.calls == ["node-x"]
        assert executor.calls == []

    async def test_consensus_without_env_var_unsupported(self, orchestrator, env_wiring, executor):
        """No remote configuration path exists for consensus nodes."""
        result = await orchestrator.configure_peer(_peer(NodeType.CONSENSUS, False))
        assert result.status == ResultStatus.UNSUPPORTED_CONFIGURATION
        assert not result.ok
        assert env_wiring.calls == []
        assert executor.calls == []
        assert result.states[-1] == ConfigState.ERROR


def test_every_node_type_has_a_command_path_entry():
    assert set(COMMAND_PATHS) == set(NodeType)


def test_command_paths_are_orchestrator_methods():
    assert COMMAND_PATHS[NodeType.DA] is ConfigurationOrchestrator._configure_with_commands
    assert all(path is None or callable(path) for path in COMMAND_PATHS.values())


@pytest.mark.asyncio
class TestConfigure:
    async def test_unknown_node(self, orchestrator, executor):
        result = await orchestrator.configure("unknown-node")
        assert result.status == ResultStatus.NOT_FOUND
        assert result.detail == "error: Pod doesn't exists in the config"
        assert executor.calls == []

    async def test_result_detail_is_node_name(self, orchestrator):
        result = await orchestrator.configure("full-0")
        assert result.ok
        assert result.detail == "full-0"

    async def test_bridge_bootstrap_then_bulk_append(self, orchestrator, executor, redis):
        """Create runs first, then the address is published to the shared file."""
        result = await orchestrator.configure("bridge-0")

        assert result.ok
        assert result.trusted_peer == BRIDGE_0
        commands = executor.commands_for("bridge-0")
        assert isinstance(commands[0], CreateTrustedPeer)
        assert isinstance(commands[1], BulkAppendTrustedPeer)
        assert commands[1].address == BRIDGE_0
        assert commands[1].peers_dir == "/shared/config"
        assert redis.data["bridge-0"] == BRIDGE_0

    async def test_command_target_uses_defaults(self, orchestrator, executor):
        await orchestrator.configure("bridge-0")
        target = executor.calls[0][0]
        assert (target.pod, target.namespace, target.container) == ("bridge-0", "celestia", "da")

    async def test_known_peers_appended(self, orchestrator, executor, redis):
        """Addresses of mutual peers already in the registry are published too."""
        await orchestrator.configure("bridge-1")
        await orchestrator.configure("bridge-0")

        appended = [c.address for c in executor.commands_for("bridge-0") if isinstance(c, BulkAppendTrustedPeer)]
        assert appended == [BRIDGE_0, BRIDGE_1]

    async def test_bootstrap_at_most_once(self, orchestrator, executor):
        """Re-configuring reuses the cached address."""
        first = await orchestrator.configure("bridge-0")
        second = await orchestrator.configure("bridge-0")
        assert first.trusted_peer == second.trusted_peer
        assert executor.token_exchanges["bridge-0"] == 1

    async def test_bulk_append_never_duplicates(self, orchestrator, executor):
        for name in ("bridge-0", "bridge-0", "bridge-1", "bridge-0", "bridge-0"):
            await orchestrator.configure(name)
        assert executor.shared["/shared/config/TRUSTED_PEERS"].split(",") == [BRIDGE_0, BRIDGE_1]


@pytest.mark.asyncio
class TestFailures:
    async def test_env_wiring_failure(self, topology, executor):
        wiring = FakeEnvWiring(error=CommandFailed("kubectl set env exited with 1", exit_code=1))
        orchestrator = ConfigurationOrchestrator(topology, wiring, executor)
        result = await orchestrator.configure("full-0")
        assert result.status == ResultStatus.INTERNAL_ERROR
        assert "kubectl set env" in result.detail
        assert ConfigState.DONE not in result.states

    async def test_bootstrap_failure_is_typed(self, orchestrator, executor, redis):
        executor.fail_stage = "token"
        result = await orchestrator.configure("bridge-0")
        assert result.status == ResultStatus.INTERNAL_ERROR
        assert "stage 'token'" in result.detail
        assert "bridge-0" not in redis.data

    async def test_registry_down(self, topology, env_wiring, executor):
        orchestrator = ConfigurationOrchestrator(
            topology, env_wiring, executor, registry=RegistryClient(FakeRedis(down=True))
        )
        result = await orchestrator.configure("bridge-0")
        assert result.status == ResultStatus.INTERNAL_ERROR
        assert result.trusted_peer is None

    async def test_command_timeout(self, topology, env_wiring):
        slow = FakeNodeExecutor()
        slow.delay = 1.0
        orchestrator = ConfigurationOrchestrator(topology, env_wiring, slow, command_timeout=0.01)
        result = await orchestrator.configure("bridge-0")
        assert result.status == ResultStatus.INTERNAL_ERROR
        assert "Timed out" in result.detail

    async def test_without_registry(self, topology, env_wiring, executor):
        orchestrator = ConfigurationOrchestrator(topology, env_wiring, executor)
        result = await orchestrator.configure("bridge-0")
        assert result.ok
        appended = [c for c in executor.commands_for("bridge-0") if isinstance(c, BulkAppendTrustedPeer)]
        assert len(appended) == 1
