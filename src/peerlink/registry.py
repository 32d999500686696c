"""Registry client for node identities stored in redis."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, TypeVar

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from peerlink.errors import RegistryTimeoutError, RegistryUnavailableError
from peerlink.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 30.0


class RegistryClient:
    """
    Bounded-latency access to the node registry.

    Keys are node names, values the last known trusted-peer address. A missing
    key is returned as ``None``; an unreachable or slow store raises, so the
    two cases are never confused. No values are cached.
    """

    def __init__(self, client: Any, timeout: float = DEFAULT_TIMEOUT) -> None:
        self._client = client
        self._timeout = timeout

    @classmethod
    def from_url(cls, url: str, timeout: float = DEFAULT_TIMEOUT) -> RegistryClient:
        return cls(aioredis.from_url(url, decode_responses=True), timeout)

    async def _bounded(self, op: str, awaitable: Awaitable[T], timeout: float | None) -> T:
        limit = self._timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(awaitable, limit)
        except asyncio.TimeoutError as e:
            log.error("registry_timeout", op=op, timeout=limit)
            raise RegistryTimeoutError(f"Registry {op} timed out after {limit}s") from e
        except (RedisError, OSError) as e:
            log.error("registry_unavailable", op=op, error=str(e))
            raise RegistryUnavailableError(f"Registry {op} failed: {e}") from e

    async def get(self, name: str, timeout: float | None = None) -> str | None:
        """Address stored for ``name``, or None when there is none."""
        value = await self._bounded("get", self._client.get(name), timeout)
        value = _decode(value)
        return value or None

    async def get_all(self, timeout: float | None = None) -> dict[str, str]:
        """Every stored name -> address."""
        return await self._bounded("get_all", self._get_all(), timeout)

    async def _get_all(self) -> dict[str, str]:
        keys = [_decode(k) async for k in self._client.scan_iter(match="*")]
        if not keys:
            return {}
        values = await self._client.mget(keys)
        return {k: _decode(v) for k, v in zip(keys, values) if v}

    async def set(self, name: str, address: str, timeout: float | None = None) -> None:
        """Record a freshly bootstrapped address."""
        await self._bounded("set", self._client.set(name, address), timeout)

    async def aclose(self) -> None:
        await self._client.aclose()


def _decode(value: Any) -> Any:
    if isinstance(value, bytes):
        return value.decode()
    return value
