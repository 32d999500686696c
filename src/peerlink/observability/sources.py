"""Block data sources for the block-height gauge."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import httpx

from peerlink.errors import PeerlinkError, UpstreamTimeout


@dataclass(frozen=True)
class BlockInfo:
    height: str
    time: str


class BlockSource(Protocol):
    async def earliest_block(self, node: str, namespace: str) -> BlockInfo: ...


class ConsensusBlockSource:
    """Reads block 1 from a consensus node's RPC (``/block?height=1``)."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        port: int = 26657,
        timeout: float = 10.0,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._port = port

    def url_for(self, node: str, namespace: str) -> str:
        return f"http://{node}.{namespace}:{self._port}/block"

    async def earliest_block(self, node: str, namespace: str) -> BlockInfo:
        url = self.url_for(node, namespace)
        try:
            response = await self._client.get(url, params={"height": 1})
            response.raise_for_status()
            header = response.json()["result"]["block"]["header"]
            return BlockInfo(height=str(header["height"]), time=str(header["time"]))
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(f"Block request to {url} timed out") from e
        except httpx.HTTPError as e:
            raise PeerlinkError(f"Block request to {url} failed: {e}") from e
        except (KeyError, TypeError, ValueError) as e:
            raise PeerlinkError(f"Unexpected block response from {url}: {e}") from e

    async def aclose(self) -> None:
        await self._client.aclose()
