from __future__ import annotations

import asyncio
import contextlib
import signal

from plaidsync.core.config import SyncMode
from plaidsync.sync.logger import SyncLogger
from plaidsync.sync.orchestrator import PassSummary, SyncOrchestrator


class SyncRunner:
    """Runs sync passes once (batch) or on a fixed interval (polled)."""

    def __init__(
        self,
        orchestrator: SyncOrchestrator,
        *,
        interval_minutes: float,
        sync_logger: SyncLogger | None = None,
    ) -> None:
        self._orchestrator = orchestrator
        self._interval_seconds = interval_minutes * 60
        self._interval_minutes = interval_minutes
        self._logger = sync_logger or SyncLogger()

    def run_once(self) -> PassSummary:
        return self._orchestrator.run_pass()

    async def run_forever(self, stop_event: asyncio.Event) -> int:
        """Run a pass, wait out the interval, repeat until stop_event is set.

        Passes never overlap and a running pass is never interrupted; the
        stop event only cuts the wait short. Returns the number of passes run.
        """
        passes = 0
        while not stop_event.is_set():
            await asyncio.to_thread(self.run_once)
            passes += 1
            self._logger.sleeping(self._interval_minutes)
            with contextlib.suppress(TimeoutError):
                await asyncio.wait_for(
                    stop_event.wait(), timeout=self._interval_seconds
                )
        self._logger.shutdown()
        return passes

    def run(self, mode: SyncMode) -> None:
        if mode is SyncMode.BATCH:
            self.run_once()
            return
        asyncio.run(self._run_polled())

    async def _run_polled(self) -> None:
        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            # Not available on Windows event loops.
            with contextlib.suppress(NotImplementedError):
                loop.add_signal_handler(sig, stop_event.set)
        await self.run_forever(stop_event)
