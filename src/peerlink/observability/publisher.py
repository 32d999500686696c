"""
Observability publisher.

Two gauges are exposed on an explicitly passed ``CollectorRegistry``:

    multiaddr       one sample per peer with a known address
    block_height_1  one sample per consensus node, with its age in days

Values come from snapshots rebuilt on every :meth:`ObservabilityPublisher.observe`
call. A scrape reads whichever snapshot was last swapped in; nothing is
accumulated across calls.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator

from prometheus_client import CollectorRegistry
from prometheus_client.core import GaugeMetricFamily

from peerlink.core.topology import Topology
from peerlink.errors import PeerlinkError
from peerlink.logging import get_logger
from peerlink.observability.age import days_running
from peerlink.observability.sources import BlockSource
from peerlink.registry import RegistryClient

log = get_logger(__name__)

MULTIADDR_LABELS = ["service_name", "node_name", "multiaddress", "namespace"]
BLOCK_HEIGHT_LABELS = [
    "service_name",
    "block_height_1",
    "earliest_block_time",
    "days_running",
    "namespace",
]


@dataclass(frozen=True)
class MultiAddrSample:
    service_name: str
    node_name: str
    multi_addr: str
    namespace: str
    value: float = 1.0

    def labels(self) -> list[str]:
        return [self.service_name, self.node_name, self.multi_addr, self.namespace]


@dataclass(frozen=True)
class BlockHeightSample:
    service_name: str
    block_height: str
    earliest_block_time: str
    days_running: int
    namespace: str
    value: float = 1.0

    def labels(self) -> list[str]:
        return [
            self.service_name,
            self.block_height,
            self.earliest_block_time,
            str(self.days_running),
            self.namespace,
        ]


class _MultiAddrCollector:
    def __init__(self) -> None:
        self.samples: tuple[MultiAddrSample, ...] = ()

    def _family(self) -> GaugeMetricFamily:
        return GaugeMetricFamily("multiaddr", "peerlink - MultiAddresses", labels=MULTIADDR_LABELS)

    def describe(self) -> Iterator[GaugeMetricFamily]:
        yield self._family()

    def collect(self) -> Iterator[GaugeMetricFamily]:
        family = self._family()
        for sample in self.samples:
            family.add_metric(sample.labels(), sample.value)
        yield family


class _BlockHeightCollector:
    def __init__(self) -> None:
        self.samples: tuple[BlockHeightSample, ...] = ()

    def _family(self) -> GaugeMetricFamily:
        return GaugeMetricFamily("block_height_1", "peerlink - BlockHeight", labels=BLOCK_HEIGHT_LABELS)

    def describe(self) -> Iterator[GaugeMetricFamily]:
        yield self._family()

    def collect(self) -> Iterator[GaugeMetricFamily]:
        family = self._family()
        for sample in self.samples:
            family.add_metric(sample.labels(), sample.value)
        yield family


class ObservabilityPublisher:
    """Publishes node identity and age facts as gauges."""

    def __init__(
        self,
        metrics_registry: CollectorRegistry,
        topology: Topology,
        registry: RegistryClient,
        block_source: BlockSource | None = None,
        service_name: str = "peerlink",
    ) -> None:
        self._metrics_registry = metrics_registry
        self._topology = topology
        self._registry = registry
        self._block_source = block_source
        self._service_name = service_name
        self._multiaddrs = _MultiAddrCollector()
        self._block_heights = _BlockHeightCollector()
        self._registered = False

    def register(self) -> None:
        """Attach both gauges to the metrics registry."""
        if self._registered:
            return
        self._metrics_registry.register(self._multiaddrs)
        self._metrics_registry.register(self._block_heights)
        self._registered = True

    def unregister(self) -> None:
        if not self._registered:
            return
        self._metrics_registry.unregister(self._multiaddrs)
        self._metrics_registry.unregister(self._block_heights)
        self._registered = False

    @property
    def metrics_registry(self) -> CollectorRegistry:
        return self._metrics_registry

    @property
    def multiaddr_samples(self) -> tuple[MultiAddrSample, ...]:
        return self._multiaddrs.samples

    @property
    def block_height_samples(self) -> tuple[BlockHeightSample, ...]:
        return self._block_heights.samples

    async def observe(self, now: datetime | None = None) -> None:
        """Periodic callback: refresh both gauges independently."""
        results = await asyncio.gather(
            self.observe_multiaddrs(),
            self.observe_block_heights(now),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                log.error("observation_failed", error=str(result))

    async def observe_multiaddrs(self) -> tuple[MultiAddrSample, ...]:
        try:
            known = await self._registry.get_all()
        except PeerlinkError as e:
            # publish nothing rather than addresses from an older snapshot
            log.error("multiaddr_snapshot_failed", error=e.message)
            self._multiaddrs.samples = ()
            raise

        samples = tuple(
            MultiAddrSample(
                service_name=self._service_name,
                node_name=peer.node_name,
                multi_addr=known[peer.node_name],
                namespace=peer.namespace,
            )
            for peer in self._topology.peers()
            if known.get(peer.node_name)
        )
        self._multiaddrs.samples = samples
        return samples

    async def observe_block_heights(self, now: datetime | None = None) -> tuple[BlockHeightSample, ...]:
        if self._block_source is None:
            return ()

        samples = []
        for node, namespace in self._consensus_nodes():
            try:
                info = await self._block_source.earliest_block(node, namespace)
            except PeerlinkError as e:
                log.error("block_height_unavailable", node=node, error=e.message)
                continue
            samples.append(
                BlockHeightSample(
                    service_name=node,
                    block_height=info.height,
                    earliest_block_time=info.time,
                    days_running=days_running(info.time, now),
                    namespace=namespace,
                )
            )
        self._block_heights.samples = tuple(samples)
        return self._block_heights.samples

    def _consensus_nodes(self) -> list[tuple[str, str]]:
        """Distinct consensus nodes with the namespace they run in."""
        nodes: dict[str, str] = {}
        for group in self._topology.groups:
            name = group.consensus_node
            if not name or name in nodes:
                continue
            declared = self._topology.get(name)
            if declared is not None:
                nodes[name] = declared.namespace
            elif group.peers:
                nodes[name] = group.peers[0].namespace
            else:
                nodes[name] = "default"
        return list(nodes.items())
