"""Integration tests for concurrent registry access.

Many threads report, list and sweep at once; the registry must end up with
exactly one record per tracker id and never raise.
"""

from threading import Barrier

import pytest

from location_tracker.registry.store import LocationRegistry
from tests.helpers.concurrency import run_in_threads, synchronized


@pytest.mark.integration
class TestConcurrentReports:

    def test_distinct_trackers_are_all_stored(self, registry):
        n = 50
        barrier = Barrier(n)

        def reporter(i):
            return lambda: registry.report(f"tracker-{i}", float(i), float(-i), True)

        errors = run_in_threads([synchronized(barrier, reporter(i)) for i in range(n)])

        assert errors == [None] * n
        assert len(registry) == n
        assert registry.get("tracker-7").latitude == 7.0
        assert len(registry.list_active()) == n

    def test_same_tracker_keeps_one_record(self, registry):
        n = 20
        barrier = Barrier(n)

        def reporter(i):
            return lambda: registry.report("shared", float(i), float(i), True)

        errors = run_in_threads([synchronized(barrier, reporter(i)) for i in range(n)])

        assert errors == [None] * n
        assert len(registry) == 1
        record = registry.get("shared")
        assert record.latitude == record.longitude

    def test_reads_and_sweeps_during_writes(self, clock):
        registry = LocationRegistry(inactivity_timeout_ms=1, clock=clock)
        for i in range(100):
            registry.report(f"old-{i}", 0.0, 0.0, False)
        clock.advance(1)

        def writer(prefix):
            def _write():
                for i in range(100):
                    registry.report(f"{prefix}-{i}", 1.0, 2.0, True)
            return _write

        def reader():
            for _ in range(100):
                registry.list_active()
                registry.stats()

        def sweeper():
            for _ in range(20):
                registry.evict_stale()

        targets = [writer("a"), writer("b"), reader, reader, sweeper]
        barrier = Barrier(len(targets))
        errors = run_in_threads([synchronized(barrier, t) for t in targets])

        assert errors == [None] * len(targets)
        assert registry.stats() == {"total": 200, "active": 200, "inactive": 0}
