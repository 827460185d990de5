"""Unit tests for the background eviction sweep."""

import asyncio
from unittest.mock import Mock

import pytest

from location_tracker.registry.store import LocationRegistry
from location_tracker.registry.sweeper import EvictionSweeper


@pytest.mark.unit
class TestEvictionSweeper:

    def test_sweep_once_counts_evictions(self, registry, clock):
        registry.report("alice", 1.0, 2.0, False)
        registry.report("bob", 1.0, 2.0, True)
        clock.advance(181)
        sweeper = EvictionSweeper(registry)

        assert sweeper.sweep_once() == 1
        assert sweeper.passes == 1
        assert "bob" in registry

    def test_rejects_non_positive_interval(self, registry):
        with pytest.raises(ValueError):
            EvictionSweeper(registry, interval_secs=0)

    async def test_start_and_stop(self, registry):
        sweeper = EvictionSweeper(registry, interval_secs=60)

        sweeper.start()
        assert sweeper.running

        await sweeper.stop()
        assert not sweeper.running

    async def test_start_twice_keeps_one_task(self, registry):
        sweeper = EvictionSweeper(registry, interval_secs=60)

        sweeper.start()
        task = sweeper._task
        sweeper.start()
        assert sweeper._task is task

        await sweeper.stop()

    async def test_stop_without_start(self, registry):
        sweeper = EvictionSweeper(registry)

        await sweeper.stop()
        assert not sweeper.running

    async def test_loop_evicts_expired_records(self, registry, clock):
        registry.report("alice", 1.0, 2.0, False)
        clock.advance(181)
        sweeper = EvictionSweeper(registry, interval_secs=0.01)

        sweeper.start()
        try:
            for _ in range(100):
                if "alice" not in registry:
                    break
                await asyncio.sleep(0.01)
        finally:
            await sweeper.stop()

        assert "alice" not in registry
        assert sweeper.passes >= 1

    async def test_failing_pass_does_not_stop_the_loop(self):
        registry = Mock(spec=LocationRegistry)
        registry.evict_stale.side_effect = [RuntimeError("boom")] + [[] for _ in range(1000)]
        sweeper = EvictionSweeper(registry, interval_secs=0.01)

        sweeper.start()
        try:
            for _ in range(100):
                if sweeper.passes >= 2:
                    break
                await asyncio.sleep(0.01)
            assert sweeper.running
        finally:
            await sweeper.stop()

        assert sweeper.passes >= 2
        assert registry.evict_stale.call_count >= 3
