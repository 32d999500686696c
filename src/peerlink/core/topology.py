"""Topology of mutual-peer groups."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import yaml
from pydantic import ValidationError

from peerlink.core.schema import MutualPeer, Peer, TopologySchema
from peerlink.errors import TopologyError


class Topology:
    """
    Declared mutual-peer groups.

    Loaded once and never mutated. Node names are indexed at construction so
    lookups are O(1); when a name repeats across groups the first declaration
    is the one returned.
    """

    def __init__(self, schema: TopologySchema) -> None:
        self._schema = schema
        self._groups: tuple[MutualPeer, ...] = tuple(schema.mutual_peers)
        # Secondary index: node_name -> first declaring Peer
        self._name_index: dict[str, Peer] = {}
        # Secondary index: node_name -> indices of groups it belongs to
        self._group_index: dict[str, list[int]] = {}
        for idx, group in enumerate(self._groups):
            for peer in group.peers:
                self._name_index.setdefault(peer.node_name, peer)
                self._group_index.setdefault(peer.node_name, []).append(idx)

    @classmethod
    def load(cls, path: str | Path) -> Topology:
        """Load topology from a YAML file."""
        path = Path(path)
        try:
            with path.open() as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise TopologyError(f"Cannot read topology {path}: {e}") from e
        except yaml.YAMLError as e:
            raise TopologyError(f"Invalid YAML in {path}: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Topology:
        """Create topology from a dictionary (camelCase or snake_case keys)."""
        try:
            schema = TopologySchema.model_validate(data)
        except ValidationError as e:
            raise TopologyError(str(e)) from e
        return cls(schema)

    def validate_node(self, name: str) -> tuple[bool, Peer | None]:
        """Resolve a node name; ``(False, None)`` when it is not declared."""
        peer = self._name_index.get(name)
        return peer is not None, peer

    def get(self, name: str) -> Peer | None:
        return self._name_index.get(name)

    def groups_of(self, name: str) -> list[MutualPeer]:
        """Groups the node participates in, in declaration order."""
        return [self._groups[i] for i in self._group_index.get(name, [])]

    def mutual_peers_of(self, name: str) -> list[Peer]:
        """Every other peer sharing a group with ``name``, deduplicated."""
        result: dict[str, Peer] = {}
        for group in self.groups_of(name):
            for peer in group.peers:
                if peer.node_name != name:
                    result.setdefault(peer.node_name, peer)
        return list(result.values())

    def consensus_node_for(self, name: str) -> str | None:
        """First consensus node declared by a group containing ``name``."""
        for group in self.groups_of(name):
            if group.consensus_node:
                return group.consensus_node
        return None

    @property
    def groups(self) -> tuple[MutualPeer, ...]:
        return self._groups

    def peers(self) -> list[Peer]:
        """All distinct peers in declaration order."""
        return list(self._name_index.values())

    def to_dict(self) -> dict[str, Any]:
        """Serialize with the same camelCase keys the YAML uses."""
        return self._schema.model_dump(mode="json", by_alias=True)

    def __len__(self) -> int:
        return len(self._name_index)

    def __iter__(self) -> Iterator[Peer]:
        return iter(self._name_index.values())

    def __contains__(self, name: str) -> bool:
        return name in self._name_index

    def __repr__(self) -> str:
        return f"Topology({len(self._groups)} groups, {len(self)} peers)"


def validate_node(name: str, topology: Topology) -> tuple[bool, Peer | None]:
    """Resolve ``name`` against ``topology``."""
    return topology.validate_node(name)
