from __future__ import annotations

from typing import Optional, Protocol

from shieldforge.domain.entities import Challenge


class ChallengeStorePort(Protocol):
    """
    Short-lived, single-use storage for WebAuthn challenges.

    Implementations must never return an expired entry, and `consume` must
    hand a given challenge to at most one caller, even under concurrency.
    """

    async def store(
        self, challenge: str, user_id: str | None = None, ttl_seconds: float = 300
    ) -> None:
        """Record the challenge with created_at=now, expires_at=now+ttl."""

    async def get(self, challenge: str) -> Optional[Challenge]:
        """Return the challenge if present and not expired, else None."""

    async def delete(self, challenge: str) -> None:
        """Remove the challenge. Deleting an absent challenge is a no-op."""

    async def consume(self, challenge: str) -> Optional[Challenge]:
        """Atomically fetch and delete. Returns None if absent or expired."""

    async def clear_expired(self) -> int:
        """Sweep expired entries; return how many were removed."""
