from __future__ import annotations

from typing import Optional, Protocol

from shieldforge.domain.entities import User


class UserRepositoryPort(Protocol):
    async def get_by_email(self, email: str) -> Optional[User]:
        """
        Fetch user by (normalized) email.
        Return None if not found.
        """

    async def update_password_hash(self, user_id: str, password_hash: str) -> None:
        """Replace the stored password hash."""
