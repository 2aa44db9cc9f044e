from __future__ import annotations

from typing import Protocol


class ResetNotifierPort(Protocol):
    async def send_reset_code(self, *, to: str, code: str) -> None:
        """Deliver the raw reset code to the user (email, SMS, ...)."""
