"""
Redis connection manager for the live-sync services.
Provides the connection pool, a single-flight lock and report snapshots.
"""
from __future__ import annotations

from typing import Any, Optional

import redis.asyncio as aioredis
from redis.asyncio import Redis

from shared.config import Settings, get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Key namespaces ──────────────────────────────────────────────────────
LOCK_KEY = "lock:{name}"
REPORT_KEY = "livesync:report:{sport}"


def _fmt(template: str, **kwargs: Any) -> str:
    return template.format(**kwargs)


class RedisManager:
    """Async Redis pool plus the few typed helpers the sync loop needs."""

    def __init__(self, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._pool: Optional[Redis] = None

    async def connect(self) -> None:
        self._pool = aioredis.from_url(
            self._settings.redis_url_str,
            max_connections=self._settings.redis_max_connections,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_keepalive=True,
            retry_on_timeout=True,
        )
        await self._pool.ping()
        logger.info("redis_connected", url=self._settings.redis_url_str)

    async def disconnect(self) -> None:
        if self._pool:
            await self._pool.aclose()
            self._pool = None
            logger.info("redis_disconnected")

    @property
    def client(self) -> Redis:
        if self._pool is None:
            raise RuntimeError("RedisManager not connected. Call connect() first.")
        return self._pool

    # ── Snapshots ───────────────────────────────────────────────────────
    async def set_snapshot(self, key: str, data: str, ttl_s: int = 300) -> None:
        await self.client.set(key, data, ex=ttl_s)

    async def get_snapshot(self, key: str) -> Optional[str]:
        return await self.client.get(key)

    # ── Single-flight lock ──────────────────────────────────────────────

    # Delete only if we still hold the lock
    _RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    redis.call("del", KEYS[1])
    return 1
end
return 0
"""

    async def try_acquire_lock(self, name: str, owner: str, ttl_s: int = 300) -> bool:
        """SET NX with a TTL so a crashed holder cannot block forever."""
        key = _fmt(LOCK_KEY, name=name)
        return bool(await self.client.set(key, owner, nx=True, ex=ttl_s))

    async def release_lock(self, name: str, owner: str) -> bool:
        key = _fmt(LOCK_KEY, name=name)
        result = await self.client.eval(self._RELEASE_LOCK_SCRIPT, 1, key, owner)
        return bool(result)
