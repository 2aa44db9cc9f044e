from __future__ import annotations

import logging
import threading
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from shieldforge.domain.entities import Challenge
from shieldforge.domain.ports.challenge_store import ChallengeStorePort

logger = logging.getLogger("shieldforge.infrastructure.challenges.memory")

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class InMemoryChallengeStore(ChallengeStorePort):
    """
    Process-local challenge store.

    Expiry is enforced lazily on every read. There are no per-entry timers;
    instead `store()` sweeps expired entries at most once per
    `sweep_interval_seconds`, so abandoned ceremonies cannot accumulate.
    Only suitable for a single process: multi-instance deployments need a
    shared store (see RedisChallengeStore).
    """

    def __init__(
        self,
        *,
        sweep_interval_seconds: float = 60.0,
        clock: Clock = _utcnow,
    ) -> None:
        self._entries: dict[str, Challenge] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._sweep_interval = timedelta(seconds=sweep_interval_seconds)
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    async def store(
        self, challenge: str, user_id: str | None = None, ttl_seconds: float = 300
    ) -> None:
        now = self._clock()
        entry = Challenge(
            challenge=challenge,
            user_id=user_id,
            created_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )
        with self._lock:
            self._entries[challenge] = entry
            if now - self._last_sweep >= self._sweep_interval:
                removed = self._sweep_locked(now)
                if removed:
                    logger.debug("swept expired challenges", extra={"count": removed})

    async def get(self, challenge: str) -> Optional[Challenge]:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(challenge)
            if entry is None:
                return None
            if entry.is_expired(now):
                del self._entries[challenge]
                return None
            return entry

    async def delete(self, challenge: str) -> None:
        with self._lock:
            self._entries.pop(challenge, None)

    async def consume(self, challenge: str) -> Optional[Challenge]:
        now = self._clock()
        with self._lock:
            entry = self._entries.pop(challenge, None)
        if entry is None or entry.is_expired(now):
            return None
        return entry

    async def clear_expired(self) -> int:
        now = self._clock()
        with self._lock:
            return self._sweep_locked(now)

    def _sweep_locked(self, now: datetime) -> int:
        expired = [k for k, v in self._entries.items() if v.is_expired(now)]
        for k in expired:
            del self._entries[k]
        self._last_sweep = now
        return len(expired)
