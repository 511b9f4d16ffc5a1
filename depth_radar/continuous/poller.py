"""
Depth Poller - periodic fetch -> detect -> append loop.

Each tick fetches one snapshot, runs the detector with the symbol and config
captured when the tick started, and appends any events to the shared history.

Only the newest started tick may write: a slow response that arrives after a
later tick has started is dropped. Fetches are bounded by fetch_timeout_s and a
failed tick simply waits for the next one.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Optional, Set

from ..engines.depth_client import DepthFetchError, DepthSnapshotProvider, DepthTimeoutError
from ..engines.detector_config import DetectorConfig, PollerSettings, validate_interval
from ..engines.pattern_detector import DetectionEvent, OrderbookPatternDetector
from ..logging_config import log_exception
from .history import DetectionHistory

logger = logging.getLogger(__name__)


@dataclass
class PollerStats:
    """Counters for the polling loop."""

    ticks_started: int = 0
    ticks_completed: int = 0
    fetch_errors: int = 0
    timeouts: int = 0
    discarded_stale: int = 0
    tick_errors: int = 0
    events_appended: int = 0
    last_tick_time: Optional[int] = None


class DepthPoller:
    """
    Drives a DepthSnapshotProvider on a fixed interval.

    Usage:
        poller = DepthPoller(provider, history, symbol="BTC")
        poller.add_callback(lambda events: print(events))
        await poller.start(interval_ms=3000)
        ...
        await poller.stop()
    """

    def __init__(
        self,
        provider: DepthSnapshotProvider,
        history: DetectionHistory,
        symbol: str = "BTC",
        config: Optional[DetectorConfig] = None,
        settings: Optional[PollerSettings] = None,
    ):
        self._provider = provider
        self._history = history
        self._symbol = symbol
        self._detector = OrderbookPatternDetector(config)
        self._settings = settings or PollerSettings()
        self._stats = PollerStats()
        self._callbacks: List[Callable] = []

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._inflight: Set[asyncio.Task] = set()
        self._tick_seq = 0

    # === Properties ===

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def config(self) -> DetectorConfig:
        return self._detector.config

    @property
    def settings(self) -> PollerSettings:
        return self._settings

    @property
    def interval_ms(self) -> int:
        return self._settings.interval_ms

    @property
    def stats(self) -> PollerStats:
        return self._stats

    @property
    def is_running(self) -> bool:
        return self._running

    # === Callbacks ===

    def add_callback(self, callback: Callable[[List[DetectionEvent]], Any]) -> None:
        """Add callback invoked with each non-empty batch after it is appended."""
        self._callbacks.append(callback)

    def remove_callback(self, callback: Callable) -> None:
        """Remove callback."""
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    async def _notify_callbacks(self, events: List[DetectionEvent]) -> None:
        for callback in self._callbacks:
            try:
                result = callback(events)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Callback error: {e}")

    # === Reconfiguration ===

    def set_symbol(self, symbol: str) -> None:
        """Switch symbol. Ticks already in flight are discarded when they return."""
        if symbol == self._symbol:
            return
        self._tick_seq += 1
        logger.info(f"Poller symbol {self._symbol} -> {symbol}")
        self._symbol = symbol
        self._restart_schedule()

    def update_config(self, config: DetectorConfig) -> None:
        """Use new detector thresholds from the next tick on."""
        self._tick_seq += 1
        self._detector = OrderbookPatternDetector(config)
        logger.info(f"Poller detector config updated: {config}")
        self._restart_schedule()

    def _restart_schedule(self) -> None:
        if not self._running:
            return
        if self._task:
            self._task.cancel()
        self._task = asyncio.create_task(self._run())

    # === Lifecycle ===

    async def start(self, interval_ms: Optional[int] = None) -> None:
        """
        Start polling. The first tick fires immediately.

        Raises:
            ValueError: If interval_ms is not a supported refresh interval
        """
        if interval_ms is not None:
            validate_interval(interval_ms)
            self._settings = replace(self._settings, interval_ms=interval_ms)

        if self._running:
            self._restart_schedule()
            return

        self._running = True
        logger.info(f"Starting depth poller for {self._symbol} every {self.interval_ms}ms")
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop polling and cancel any in-flight tick."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        inflight = list(self._inflight)
        for task in inflight:
            task.cancel()
        if inflight:
            await asyncio.gather(*inflight, return_exceptions=True)
        self._inflight.clear()

        logger.info(f"Stopped depth poller for {self._symbol}")

    async def _run(self) -> None:
        """Main scheduling loop."""
        interval_s = self._settings.interval_ms / 1000

        while self._running:
            try:
                self._spawn_tick()
                await asyncio.sleep(interval_s)
            except asyncio.CancelledError:
                break

    def _spawn_tick(self) -> None:
        task = asyncio.create_task(self._guarded_tick())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _guarded_tick(self) -> None:
        try:
            await self.poll_once()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._stats.tick_errors += 1
            log_exception(logger, e, "Unexpected error in depth poll tick")

    # === Single tick ===

    async def poll_once(self) -> List[DetectionEvent]:
        """
        Run one fetch -> detect -> append cycle.

        Returns:
            Events appended by this tick (empty on failure, stale response or quiet book)
        """
        self._tick_seq += 1
        seq = self._tick_seq
        symbol = self._symbol
        detector = self._detector
        settings = self._settings

        self._stats.ticks_started += 1
        self._stats.last_tick_time = int(time.time() * 1000)

        try:
            snapshot = await asyncio.wait_for(
                self._provider.fetch(symbol, settings.depth_limit),
                timeout=settings.fetch_timeout_s,
            )
        except (asyncio.TimeoutError, DepthTimeoutError):
            self._stats.timeouts += 1
            logger.warning(f"Depth fetch for {symbol} timed out after {settings.fetch_timeout_s}s")
            return []
        except DepthFetchError as e:
            self._stats.fetch_errors += 1
            logger.warning(f"Depth fetch for {symbol} failed: {e}")
            return []

        if seq != self._tick_seq:
            self._stats.discarded_stale += 1
            logger.debug(f"Discarding stale response for tick {seq} (latest {self._tick_seq})")
            return []

        # Clamp to the newest stored event so a clock step back cannot break ordering
        now_ms = max(int(time.time() * 1000), self._history.latest_timestamp or 0)
        events = detector.detect(snapshot, now_ms=now_ms)
        self._stats.ticks_completed += 1

        if not events:
            return []

        self._history.append(events)
        self._stats.events_appended += len(events)
        logger.debug(f"{symbol}: appended {len(events)} detections")

        await self._notify_callbacks(events)
        return events
