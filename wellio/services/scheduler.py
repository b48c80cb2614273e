"""
Periodic reminder sweep.

A single asyncio task started with the application. Each tick runs
process_all_reminders in a worker thread so the blocking DB and push
calls never stall the event loop. A failing tick is logged and the loop
keeps going.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Optional

from wellio.services.reminder_service import SweepResult, process_all_reminders

logger = logging.getLogger(__name__)


class ReminderScheduler:
    def __init__(
        self,
        interval_seconds: float = 3600,
        initial_delay_seconds: float = 5,
        sweep: Callable[[], SweepResult] = process_all_reminders,
    ):
        self.interval_seconds = interval_seconds
        self.initial_delay_seconds = initial_delay_seconds
        self._sweep = sweep
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Optional[SweepResult]:
        try:
            return await asyncio.to_thread(self._sweep)
        except Exception:
            logger.exception("Reminder sweep failed; will retry on next tick")
            return None

    async def _loop(self) -> None:
        await asyncio.sleep(self.initial_delay_seconds)
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            logger.warning("Reminder scheduler already running")
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"Reminder scheduler started (interval={self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Reminder scheduler stopped")
