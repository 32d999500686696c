"""Node-type specific default connection parameters."""

from __future__ import annotations

from typing import Any

from peerlink.core.schema import NodeType, Peer

# Fields are only filled when the topology left them unset.
NODE_DEFAULTS: dict[NodeType, dict[str, Any]] = {
    NodeType.DA: {
        "container_name": "da",
        "container_setup_name": "da-setup",
    },
    NodeType.CONSENSUS: {
        "container_name": "consensus",
        "container_setup_name": "consensus-setup",
    },
}

_missing = set(NodeType) - set(NODE_DEFAULTS)
if _missing:
    raise RuntimeError(f"No defaults declared for node types: {sorted(t.value for t in _missing)}")


def apply_defaults(peer: Peer) -> Peer:
    """Return a copy of ``peer`` with its type's defaults filled in."""
    defaults = NODE_DEFAULTS[peer.node_type]
    update = {field: value for field, value in defaults.items() if getattr(peer, field) is None}
    if not update:
        return peer
    return peer.model_copy(update=update)
