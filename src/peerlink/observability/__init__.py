"""Metrics for node identities and ages."""

from peerlink.observability.age import days_running, parse_rfc3339
from peerlink.observability.publisher import (
    BlockHeightSample,
    MultiAddrSample,
    ObservabilityPublisher,
)
from peerlink.observability.scheduler import PeriodicScheduler
from peerlink.observability.sources import BlockInfo, ConsensusBlockSource

__all__ = [
    "days_running",
    "parse_rfc3339",
    "BlockHeightSample",
    "MultiAddrSample",
    "ObservabilityPublisher",
    "PeriodicScheduler",
    "BlockInfo",
    "ConsensusBlockSource",
]
