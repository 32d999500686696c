"""Trusted-peer bootstrap protocol and its execution."""

from peerlink.bootstrap.commands import (
    BootstrapCommand,
    BulkAppendTrustedPeer,
    CreateTrustedPeer,
    FetchTrustedPeer,
    TrustedPeerCommandBuilder,
    parse_trusted_peer,
)
from peerlink.bootstrap.executor import CommandExecutor, KubectlExecutor, NodeTarget

__all__ = [
    "BootstrapCommand",
    "BulkAppendTrustedPeer",
    "CreateTrustedPeer",
    "FetchTrustedPeer",
    "TrustedPeerCommandBuilder",
    "parse_trusted_peer",
    "CommandExecutor",
    "KubectlExecutor",
    "NodeTarget",
]
