from __future__ import annotations

import asyncio
import logging

from shieldforge.domain.ports.challenge_store import ChallengeStorePort

logger = logging.getLogger("shieldforge.infrastructure.challenges.sweeper")


class ChallengeSweeper:
    """
    Periodically evicts expired challenges from a store.

    Run it as a background task next to the web server:

        sweeper = ChallengeSweeper(store=store, interval=60)
        task = asyncio.create_task(sweeper.run_forever())
    """

    def __init__(self, *, store: ChallengeStorePort, interval: float = 60.0) -> None:
        self.store = store
        self.interval = interval

    async def run_forever(self) -> None:
        logger.info("challenge sweeper started", extra={"interval": self.interval})
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval)

    async def run_once(self) -> int:
        try:
            removed = await self.store.clear_expired()
        except Exception:  # noqa: BLE001
            # transient store failures must not stop the loop
            logger.exception("challenge sweep failed")
            return 0
        if removed:
            logger.info("expired challenges removed", extra={"count": removed})
        return removed
