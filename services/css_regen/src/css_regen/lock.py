from __future__ import annotations
from typing import Any
from core_cache import keys as cache_keys
from core_config.constants import DEFAULT_LOCK_TTL_SEC
from .models import ArtifactRequest


class RegenerationLock:
    """
    Per-artifact coalescing lock in a shared Redis.

    ``try_acquire`` is one ``SET key 1 NX PX <ttl>`` round trip, so test and
    set cannot interleave with another holder on the same Redis primary.
    There is no owner token: ``release`` deletes unconditionally, and the TTL
    is the only thing that frees a key whose holder died.  With a replicated
    or eventually consistent store two holders may both win; generation is
    idempotent so that only costs duplicate work.
    """

    def __init__(self, redis: Any, *, ttl_seconds: float = DEFAULT_LOCK_TTL_SEC):
        if redis is None:
            raise ValueError("RegenerationLock requires a redis client")
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")
        self._r = redis
        self.ttl_seconds = ttl_seconds

    @staticmethod
    def key_for(request: ArtifactRequest) -> str:
        return cache_keys.regen_lock(request.variant, request.entity_id)

    @property
    def ttl_ms(self) -> int:
        return max(1, int(round(self.ttl_seconds * 1000)))

    async def try_acquire(self, request: ArtifactRequest) -> bool:
        return bool(await self._r.set(self.key_for(request), "1", nx=True, px=self.ttl_ms))

    async def release(self, request: ArtifactRequest) -> None:
        await self._r.delete(self.key_for(request))

    async def is_held(self, request: ArtifactRequest) -> bool:
        return bool(await self._r.exists(self.key_for(request)))

    async def ping(self) -> bool:
        return bool(await self._r.ping())
