"""Pydantic schemas for the mutual-peers topology."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel


class NodeType(str, Enum):
    """Node archetypes with distinct default connection parameters."""

    DA = "da"
    CONSENSUS = "consensus"


class Peer(BaseModel):
    """
    A node participating in one or more mutual-peer groups.

    ``node_name`` is the identity of the peer inside a topology. The remaining
    fields are connection parameters; unset container names are filled by
    type-specific defaults at configuration time.
    """

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "frozen": True,
    }

    node_name: str = Field(min_length=1)
    node_type: NodeType = NodeType.DA
    namespace: str = "default"
    container_name: str | None = None
    container_setup_name: str | None = None
    connects_as_env_var: bool = False
    connects_to: list[str] = Field(default_factory=list)
    dns_connections: list[str] = Field(default_factory=list)
    retry_count: int = 5


class MutualPeer(BaseModel):
    """A group of peers that must trust each other."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "frozen": True}

    consensus_node: str | None = None
    trusted_peers_path: str | None = None
    peers: list[Peer] = Field(default_factory=list)


class TopologySchema(BaseModel):
    """Schema for the complete topology file."""

    model_config = {"alias_generator": to_camel, "populate_by_name": True, "frozen": True}

    mutual_peers: list[MutualPeer] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_unique_names(self) -> TopologySchema:
        """A name may repeat across groups only with an identical definition."""
        seen: dict[str, Peer] = {}
        for group in self.mutual_peers:
            for peer in group.peers:
                first = seen.setdefault(peer.node_name, peer)
                if first != peer:
                    raise ValueError(f"Conflicting definitions for node: {peer.node_name}")
        return self
