"""Redis-backed session revocation list."""

from __future__ import annotations

import redis.asyncio as redis


class RevocationList:
    """Denylist of JWT ids. Entries expire with the token they revoke."""

    def __init__(self, client: redis.Redis):
        self._redis = client

    @classmethod
    def from_url(cls, url: str) -> "RevocationList":
        return cls(redis.from_url(url, decode_responses=True))

    async def revoke(self, jti: str, ttl_seconds: int = 3600) -> None:
        """Add a JWT ID to the revocation list."""
        await self._redis.setex(f"jwt:revoked:{jti}", ttl_seconds, "1")

    async def is_revoked(self, jti: str) -> bool:
        return await self._redis.exists(f"jwt:revoked:{jti}") > 0

    async def close(self) -> None:
        await self._redis.aclose()
