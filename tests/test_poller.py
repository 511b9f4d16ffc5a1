"""
Tests for the depth poller, driven by fake snapshot providers.
"""

import asyncio
import logging

import pytest

from depth_radar.continuous.history import DetectionHistory
from depth_radar.continuous.poller import DepthPoller
from depth_radar.engines.depth_client import DepthFetchError, DepthSnapshotProvider
from depth_radar.engines.detector_config import DetectorConfig, PollerSettings
from depth_radar.engines.pattern_detector import DepthSnapshot
from depth_radar.engines.signals import DetectionCategory

from conftest import make_event


def wall_snapshot():
    bids = [[round(100.0 - i * 0.1, 2), 10] for i in range(10)]
    bids[3] = [99.7, 1000]
    asks = [[round(100.1 + i * 0.1, 2), 10] for i in range(10)]
    return DepthSnapshot.from_pairs(bids, asks)


def even_snapshot(qty=60):
    bids = [[round(100.0 - i * 0.1, 2), qty] for i in range(5)]
    asks = [[round(100.1 + i * 0.1, 2), qty] for i in range(5)]
    return DepthSnapshot.from_pairs(bids, asks)


class StaticProvider(DepthSnapshotProvider):
    def __init__(self, snapshot):
        self.snapshot = snapshot
        self.symbols = []
        self.limits = []

    async def fetch(self, symbol, limit=20):
        self.symbols.append(symbol)
        self.limits.append(limit)
        return self.snapshot


class FailingProvider(DepthSnapshotProvider):
    def __init__(self, error):
        self.error = error
        self.calls = 0

    async def fetch(self, symbol, limit=20):
        self.calls += 1
        raise self.error


class SlowProvider(DepthSnapshotProvider):
    def __init__(self, delay):
        self.delay = delay
        self.calls = 0

    async def fetch(self, symbol, limit=20):
        self.calls += 1
        await asyncio.sleep(self.delay)
        return wall_snapshot()


class GatedProvider(DepthSnapshotProvider):
    """Each fetch waits until the test releases it."""

    def __init__(self):
        self.pending = []

    async def fetch(self, symbol, limit=20):
        future = asyncio.get_running_loop().create_future()
        self.pending.append(future)
        return await future

    def release(self, index, snapshot):
        self.pending[index].set_result(snapshot)


async def wait_until(predicate, timeout=1.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


class TestPollOnce:
    """Tests for a single tick."""

    @pytest.mark.asyncio
    async def test_appends_detections(self):
        """A wall snapshot appends one event and notifies callbacks."""
        history = DetectionHistory()
        provider = StaticProvider(wall_snapshot())
        poller = DepthPoller(provider, history, symbol="BTCUSDT")
        received = []
        poller.add_callback(received.append)

        events = await poller.poll_once()

        assert [e.category for e in events] == [DetectionCategory.FAKE_WALL_BID]
        assert history.all() == tuple(events)
        assert received == [events]
        assert provider.symbols == ["BTCUSDT"]
        assert provider.limits == [20]
        assert poller.stats.ticks_started == 1
        assert poller.stats.ticks_completed == 1
        assert poller.stats.events_appended == 1

    @pytest.mark.asyncio
    async def test_quiet_book(self):
        """No detections means nothing appended and no callback."""
        history = DetectionHistory()
        poller = DepthPoller(StaticProvider(even_snapshot()), history)
        received = []
        poller.add_callback(received.append)

        assert await poller.poll_once() == []
        assert len(history) == 0
        assert received == []
        assert poller.stats.ticks_completed == 1

    @pytest.mark.asyncio
    async def test_async_callback(self):
        """Coroutine callbacks are awaited."""
        seen = []

        async def on_events(events):
            seen.extend(events)

        poller = DepthPoller(StaticProvider(wall_snapshot()), DetectionHistory())
        poller.add_callback(on_events)

        await poller.poll_once()

        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_callback_error_does_not_break_tick(self):
        """A failing callback is logged and the batch is still stored."""
        history = DetectionHistory()
        poller = DepthPoller(StaticProvider(wall_snapshot()), history)

        def broken(events):
            raise RuntimeError("display failed")

        poller.add_callback(broken)

        events = await poller.poll_once()

        assert len(events) == 1
        assert len(history) == 1

    @pytest.mark.asyncio
    async def test_fetch_error(self):
        """Provider errors are counted and nothing is appended."""
        history = DetectionHistory()
        poller = DepthPoller(FailingProvider(DepthFetchError(503, "unavailable")), history)

        assert await poller.poll_once() == []
        assert poller.stats.fetch_errors == 1
        assert poller.stats.ticks_completed == 0
        assert len(history) == 0

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Fetches longer than fetch_timeout_s are abandoned."""
        history = DetectionHistory()
        settings = PollerSettings(fetch_timeout_s=0.05)
        poller = DepthPoller(SlowProvider(1.0), history, settings=settings)

        assert await poller.poll_once() == []
        assert poller.stats.timeouts == 1
        assert len(history) == 0

    @pytest.mark.asyncio
    async def test_stale_response_discarded(self):
        """A response from a superseded tick is dropped."""
        history = DetectionHistory()
        provider = GatedProvider()
        poller = DepthPoller(provider, history)

        first = asyncio.create_task(poller.poll_once())
        await wait_until(lambda: len(provider.pending) == 1)
        second = asyncio.create_task(poller.poll_once())
        await wait_until(lambda: len(provider.pending) == 2)

        provider.release(1, wall_snapshot())
        second_events = await second
        provider.release(0, wall_snapshot())
        first_events = await first

        assert len(second_events) == 1
        assert first_events == []
        assert poller.stats.discarded_stale == 1
        assert len(history) == 1

    @pytest.mark.asyncio
    async def test_symbol_switch_discards_inflight_fetch(self):
        """A fetch for the old symbol that lands after set_symbol is not stored."""
        history = DetectionHistory()
        provider = GatedProvider()
        poller = DepthPoller(provider, history, symbol="BTCUSDT")

        tick = asyncio.create_task(poller.poll_once())
        await wait_until(lambda: len(provider.pending) == 1)
        poller.set_symbol("ETHUSDT")
        provider.release(0, wall_snapshot())
        events = await tick

        assert events == []
        assert len(history) == 0
        assert poller.stats.discarded_stale == 1

    @pytest.mark.asyncio
    async def test_config_update_discards_inflight_fetch(self):
        """A fetch started under the old thresholds is not stored after update_config."""
        history = DetectionHistory()
        provider = GatedProvider()
        poller = DepthPoller(provider, history)

        tick = asyncio.create_task(poller.poll_once())
        await wait_until(lambda: len(provider.pending) == 1)
        poller.update_config(DetectorConfig(min_volume_for_wall=5000))
        provider.release(0, wall_snapshot())

        assert await tick == []
        assert len(history) == 0
        assert poller.stats.discarded_stale == 1

    @pytest.mark.asyncio
    async def test_timestamp_never_behind_history(self):
        """New events are stamped no earlier than the newest stored one."""
        history = DetectionHistory()
        future_ts = 4_000_000_000_000
        history.append([make_event("ladder-support", future_ts)])
        poller = DepthPoller(StaticProvider(wall_snapshot()), history)

        events = await poller.poll_once()

        assert events[0].timestamp_ms == future_ts
        assert len(history) == 2

    @pytest.mark.asyncio
    async def test_update_config_applies_to_next_tick(self):
        """New thresholds are used from the next tick on."""
        history = DetectionHistory()
        poller = DepthPoller(StaticProvider(even_snapshot()), history)

        assert await poller.poll_once() == []
        poller.update_config(DetectorConfig(min_avg_volume_for_ladder=50))
        events = await poller.poll_once()

        assert [e.category for e in events] == [
            DetectionCategory.LADDER_SUPPORT,
            DetectionCategory.LADDER_RESISTANCE,
        ]
        assert poller.config.min_avg_volume_for_ladder == 50


class TestPollerLifecycle:
    """Tests for start/stop scheduling."""

    @pytest.mark.asyncio
    async def test_rejects_unsupported_interval(self):
        """Only the listed refresh intervals are accepted."""
        poller = DepthPoller(StaticProvider(wall_snapshot()), DetectionHistory())

        with pytest.raises(ValueError):
            await poller.start(interval_ms=1500)
        assert not poller.is_running

    @pytest.mark.asyncio
    async def test_first_tick_is_immediate(self):
        """start() polls right away rather than after one interval."""
        provider = StaticProvider(wall_snapshot())
        poller = DepthPoller(provider, DetectionHistory())

        await poller.start(interval_ms=30000)
        try:
            await wait_until(lambda: len(provider.symbols) == 1)
            assert poller.is_running
            assert poller.interval_ms == 30000
        finally:
            await poller.stop()

        assert not poller.is_running

    @pytest.mark.asyncio
    async def test_set_symbol_restarts_schedule(self):
        """Switching symbol triggers an immediate tick for the new symbol."""
        provider = StaticProvider(even_snapshot())
        poller = DepthPoller(provider, DetectionHistory(), symbol="BTCUSDT")

        await poller.start(interval_ms=30000)
        try:
            await wait_until(lambda: len(provider.symbols) == 1)
            poller.set_symbol("ETHUSDT")
            await wait_until(lambda: len(provider.symbols) == 2)
        finally:
            await poller.stop()

        assert provider.symbols == ["BTCUSDT", "ETHUSDT"]

    @pytest.mark.asyncio
    async def test_loop_survives_unexpected_errors(self):
        """An unexpected exception in a tick is logged and the loop keeps running."""
        provider = FailingProvider(RuntimeError("boom"))
        poller = DepthPoller(provider, DetectionHistory())

        await poller.start(interval_ms=30000)
        try:
            await wait_until(lambda: poller.stats.tick_errors == 1)
            assert poller.is_running
        finally:
            await poller.stop()

    @pytest.mark.asyncio
    async def test_unexpected_error_logged_with_traceback(self, caplog):
        """Unexpected tick errors are logged at ERROR with the traceback attached."""
        poller = DepthPoller(FailingProvider(RuntimeError("boom")), DetectionHistory())

        with caplog.at_level(logging.ERROR, logger="depth_radar.continuous.poller"):
            await poller._guarded_tick()

        assert poller.stats.tick_errors == 1
        record = caplog.records[-1]
        assert "Unexpected error in depth poll tick: boom" in record.getMessage()
        assert record.exc_info is not None
        assert record.exc_info[0] is RuntimeError

    @pytest.mark.asyncio
    async def test_stop_cancels_inflight_fetch(self):
        """stop() does not wait for a slow fetch to finish."""
        provider = SlowProvider(10.0)
        history = DetectionHistory()
        poller = DepthPoller(provider, history)

        await poller.start(interval_ms=30000)
        await wait_until(lambda: provider.calls == 1)
        await asyncio.wait_for(poller.stop(), timeout=1.0)

        assert len(history) == 0
        assert poller.stats.ticks_completed == 0

    @pytest.mark.asyncio
    async def test_removed_callback_not_called(self):
        """remove_callback stops notifications."""
        received = []
        poller = DepthPoller(StaticProvider(wall_snapshot()), DetectionHistory())
        poller.add_callback(received.append)
        poller.remove_callback(received.append)

        await poller.poll_once()

        assert received == []
