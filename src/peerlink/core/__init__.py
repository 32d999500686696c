"""Core domain models for the mutual-peer topology."""

from peerlink.core.defaults import apply_defaults
from peerlink.core.schema import MutualPeer, NodeType, Peer, TopologySchema
from peerlink.core.topology import Topology, validate_node

__all__ = [
    "Topology",
    "validate_node",
    "apply_defaults",
    "MutualPeer",
    "NodeType",
    "Peer",
    "TopologySchema",
]
