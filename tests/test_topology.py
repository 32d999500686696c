"""Tests for topology module."""

import pytest

from peerlink.core.defaults import apply_defaults
from peerlink.core.schema import NodeType, Peer
from peerlink.core.topology import Topology, validate_node
from peerlink.errors import TopologyError


class TestTopology:
    """Tests for Topology class."""

    def test_from_dict(self, topology):
        """Test topology creation from dictionary."""
        assert len(topology.groups) == 2
        # bridge-0 is declared twice but is one peer
        assert len(topology) == 5

    def test_validate_known_nodes(self, topology, topology_data):
        """Every declared name resolves to its peer."""
        for group in topology_data["mutualPeers"]:
            for declared in group["peers"]:
                found, peer = topology.validate_node(declared["nodeName"])
                assert found
                assert peer.node_name == declared["nodeName"]
                assert peer.node_type == NodeType(declared["nodeType"])

    def test_validate_unknown_node(self, topology):
        """Absent names are not found and yield no peer."""
        assert topology.validate_node("unknown-node") == (False, None)
        assert validate_node("", topology) == (False, None)

    def test_peer_fields(self, topology):
        """Test camelCase keys map onto peer fields."""
        _, peer = topology.validate_node("full-0")
        assert peer.connects_as_env_var
        assert peer.connects_to == ["bridge-0"]
        assert peer.namespace == "celestia"
        assert peer.retry_count == 5

    def test_mutual_peers_across_groups(self, topology):
        """Mutual peers span every group the node belongs to."""
        names = [p.node_name for p in topology.mutual_peers_of("bridge-0")]
        assert names == ["consensus-validator-0", "full-0", "bridge-1", "consensus-full-0"]

    def test_mutual_peers_single_group(self, topology):
        names = [p.node_name for p in topology.mutual_peers_of("bridge-1")]
        assert names == ["bridge-0", "consensus-full-0"]

    def test_consensus_node_for(self, topology):
        assert topology.consensus_node_for("full-0") == "consensus-validator-0"
        assert topology.consensus_node_for("bridge-1") is None

    def test_contains(self, topology):
        assert "bridge-0" in topology
        assert "nonexistent" not in topology

    def test_to_dict_uses_camel_case(self, topology):
        """Serialized form matches the YAML keys."""
        data = topology.to_dict()
        first = data["mutualPeers"][0]
        assert first["consensusNode"] == "consensus-validator-0"
        assert first["peers"][1]["nodeName"] == "bridge-0"
        assert first["peers"][1]["connectsAsEnvVar"] is False

    def test_conflicting_definitions_rejected(self):
        """A name may not be declared with two different definitions."""
        with pytest.raises(TopologyError):
            Topology.from_dict({
                "mutualPeers": [
                    {"peers": [{"nodeName": "bridge-0", "nodeType": "da"}]},
                    {"peers": [{"nodeName": "bridge-0", "nodeType": "consensus"}]},
                ]
            })

    def test_invalid_node_type_rejected(self):
        with pytest.raises(TopologyError):
            Topology.from_dict({"mutualPeers": [{"peers": [{"nodeName": "x", "nodeType": "light"}]}]})

    def test_load_yaml(self, tmp_path):
        """Test loading topology from a YAML file."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "mutualPeers:\n"
            "  - peers:\n"
            "      - nodeName: bridge-0\n"
            "        nodeType: da\n"
            "      - nodeName: full-0\n"
            "        nodeType: da\n"
            "        connectsAsEnvVar: true\n"
        )
        topology = Topology.load(path)
        assert len(topology) == 2
        assert topology.get("full-0").connects_as_env_var

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(TopologyError):
            Topology.load(tmp_path / "missing.yaml")


class TestDefaults:
    """Tests for node-type defaults."""

    def test_da_defaults(self):
        peer = apply_defaults(Peer(node_name="bridge-0", node_type=NodeType.DA))
        assert peer.container_name == "da"
        assert peer.container_setup_name == "da-setup"

    def test_consensus_defaults(self):
        peer = apply_defaults(Peer(node_name="val-0", node_type=NodeType.CONSENSUS))
        assert peer.container_name == "consensus"
        assert peer.container_setup_name == "consensus-setup"

    def test_explicit_values_kept(self):
        """Defaults never override declared values."""
        peer = Peer(node_name="bridge-0", container_name="celestia")
        configured = apply_defaults(peer)
        assert configured.container_name == "celestia"
        assert configured.container_setup_name == "da-setup"
        # the topology's peer is untouched
        assert peer.container_setup_name is None
