"""
Peerlink - mutual-peer connectivity for blockchain nodes in a cluster.

This package provides tools for:
- Declaring mutual-peer groups of DA and consensus nodes
- Wiring nodes to their peers through env vars or in-node bootstrap commands
- Reading discovered node addresses from the registry
- Publishing node addresses and ages as Prometheus gauges
"""

__version__ = "0.1.0"

from peerlink.core.topology import Topology
from peerlink.orchestrator import ConfigurationOrchestrator, OrchestrationResult
from peerlink.registry import RegistryClient

__all__ = [
    "__version__",
    "Topology",
    "ConfigurationOrchestrator",
    "OrchestrationResult",
    "RegistryClient",
]
