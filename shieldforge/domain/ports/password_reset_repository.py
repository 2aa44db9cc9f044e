from __future__ import annotations

from typing import Optional, Protocol

from shieldforge.domain.entities import PasswordReset


class PasswordResetRepositoryPort(Protocol):
    async def save(self, reset: PasswordReset) -> None:
        """Store/replace the pending reset for reset.user_id (hash only)."""

    async def get_for_user(self, user_id: str) -> Optional[PasswordReset]:
        """Return the pending reset for the user, or None."""

    async def delete_for_user(self, user_id: str) -> None:
        """Delete any pending reset for the user (idempotent)."""
