from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from redis.asyncio import Redis

from shieldforge.domain.entities import Challenge
from shieldforge.domain.ports.challenge_store import ChallengeStorePort

logger = logging.getLogger("shieldforge.infrastructure.redis_cache.challenge_store")


_LUA_CONSUME = """
-- KEYS[1]: challenge key
local fields = redis.call('HGETALL', KEYS[1])
if #fields == 0 then
  return nil
end
redis.call('DEL', KEYS[1])
return fields
"""


def _to_challenge(challenge: str, fields: dict[str, str]) -> Optional[Challenge]:
    if not fields or "created_at" not in fields or "expires_at" not in fields:
        return None
    return Challenge(
        challenge=challenge,
        user_id=fields.get("user_id") or None,
        created_at=datetime.fromisoformat(fields["created_at"]),
        expires_at=datetime.fromisoformat(fields["expires_at"]),
    )


class RedisChallengeStore(ChallengeStorePort):
    """
    Shared challenge store: a challenge issued by one instance can be
    completed on any other. Redis expires keys itself (PEXPIRE), and
    `consume` is a single Lua script, so one response wins a race.
    """

    def __init__(self, redis: Redis, *, key_prefix: str = "chal:") -> None:
        self._redis = redis
        self._prefix = key_prefix

    @classmethod
    def from_url(cls, url: str, *, key_prefix: str = "chal:") -> "RedisChallengeStore":
        """decode_responses=True -> we get/put str, not bytes."""
        redis = Redis.from_url(url, encoding="utf-8", decode_responses=True)
        return cls(redis, key_prefix=key_prefix)

    async def aclose(self) -> None:
        await self._redis.aclose()

    def _key(self, challenge: str) -> str:
        return f"{self._prefix}{challenge}"

    async def store(
        self, challenge: str, user_id: str | None = None, ttl_seconds: float = 300
    ) -> None:
        now = datetime.now(timezone.utc)
        expires_at = now + timedelta(seconds=ttl_seconds)
        mapping = {
            "created_at": now.isoformat(),
            "expires_at": expires_at.isoformat(),
        }
        if user_id is not None:
            mapping["user_id"] = user_id

        key = self._key(challenge)
        pipe = self._redis.pipeline(transaction=True)
        pipe.hset(key, mapping=mapping)
        pipe.pexpire(key, max(1, int(ttl_seconds * 1000)))
        await pipe.execute()

    async def get(self, challenge: str) -> Optional[Challenge]:
        fields = await self._redis.hgetall(self._key(challenge))
        entry = _to_challenge(challenge, fields)
        if entry is None or entry.is_expired(datetime.now(timezone.utc)):
            return None
        return entry

    async def delete(self, challenge: str) -> None:
        await self._redis.delete(self._key(challenge))

    async def consume(self, challenge: str) -> Optional[Challenge]:
        raw = await self._redis.eval(_LUA_CONSUME, 1, self._key(challenge))
        if not raw:
            return None
        # HGETALL reply is a flat [field, value, field, value, ...] list
        fields = dict(zip(raw[::2], raw[1::2]))
        entry = _to_challenge(challenge, fields)
        if entry is None or entry.is_expired(datetime.now(timezone.utc)):
            return None
        return entry

    async def clear_expired(self) -> int:
        # keys carry a native TTL; nothing to sweep
        return 0
