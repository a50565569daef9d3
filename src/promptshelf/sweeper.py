"""
Background trash sweeping for a HierarchyStore.

The sweeper is a recurring task on the caller's asyncio event loop, so a sweep
pass never runs in the middle of a foreground mutation.
"""
import asyncio
from typing import Optional

from .store import HierarchyStore
from .logs import get_logger

log = get_logger("sweeper")

# Seconds between two sweep passes
SWEEP_INTERVAL = 60.0


class TrashSweeper:
    """Runs HierarchyStore.sweep() every `interval` seconds until stopped."""

    def __init__(self, store: HierarchyStore, interval: float = SWEEP_INTERVAL):
        self.store = store
        self.interval = interval
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run(self) -> None:
        log.info(f"Trash sweeper running - interval={self.interval}s")
        while True:
            await asyncio.sleep(self.interval)
            log.debug("Sweep pass")
            try:
                removed = self.store.sweep()
            except Exception:
                # The next tick tries again
                log.exception("Sweep pass failed")
                continue
            if removed:
                log.info(f"Sweep pass removed {removed} node(s)")

    def start(self) -> asyncio.Task:
        """Schedule the sweep loop on the running event loop."""
        if self.running:
            return self._task
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to finish."""
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        log.info("Trash sweeper stopped")

    async def __aenter__(self):
        self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()
