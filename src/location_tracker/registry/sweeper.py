"""Background task that periodically evicts stale tracker records."""

import asyncio
from typing import Optional

from ..utils.logging_config import get_logger, log_exception
from .store import LocationRegistry

logger = get_logger('sweep')


class EvictionSweeper:
    """Runs :meth:`LocationRegistry.evict_stale` on a fixed interval.

    The sweep is an asyncio task owned by the sweeper. ``start()`` must be
    called from a running event loop; ``stop()`` cancels the task and waits
    for it to finish.
    """

    def __init__(self, registry: LocationRegistry, interval_secs: float = 10.0):
        if interval_secs <= 0:
            raise ValueError("interval_secs must be positive")
        self.registry = registry
        self.interval_secs = interval_secs
        self.passes = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the sweep loop. Calling it twice is a no-op."""
        if self.running:
            return
        self._task = asyncio.create_task(self._sweep_loop(), name="eviction-sweep")
        logger.info(f"Eviction sweep started (interval {self.interval_secs}s)")

    async def stop(self) -> None:
        """Cancel the sweep loop and wait for it to exit."""
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Eviction sweep stopped")

    def sweep_once(self) -> int:
        """Run a single eviction pass and return how many records were removed."""
        evicted = self.registry.evict_stale()
        self.passes += 1
        if evicted:
            logger.info(f"Sweep evicted {len(evicted)} tracker(s); {len(self.registry)} remaining")
        return len(evicted)

    async def _sweep_loop(self) -> None:
        """Sleep, sweep, repeat. A failing pass never ends the loop."""
        while True:
            await asyncio.sleep(self.interval_secs)
            try:
                self.sweep_once()
            except Exception as e:
                log_exception('sweep', e, {"pass": self.passes})
