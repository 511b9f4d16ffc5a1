"""
Radar Session - wires provider, history and poller for one symbol.

Usage:
    async with RadarSession("BTC") as session:
        session.on_detections(handle_events)
        await asyncio.sleep(60)
        print(session.summary().narrative_text)
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from ..engines.depth_client import (
    BinanceDepthClient,
    DepthSnapshotProvider,
    RequestConfig,
    base_asset,
    normalize_symbol,
)
from ..engines.detector_config import FEATURE_WINDOW_MS, DetectorConfig, RadarConfig
from ..engines.features import extract_scoring_features
from ..engines.pattern_detector import DetectionEvent
from ..engines.signals import ScoringFeature
from ..engines.summarizer import OrderBookSummary, summarize
from .history import DetectionHistory
from .poller import DepthPoller

logger = logging.getLogger(__name__)


class RadarSession:
    """
    Owns the detection history and the polling loop for a symbol.

    If no provider is passed a BinanceDepthClient is created, and its HTTP
    session is opened and closed with this session.
    """

    def __init__(
        self,
        symbol: str = "BTC",
        config: Optional[RadarConfig] = None,
        provider: Optional[DepthSnapshotProvider] = None,
        history: Optional[DetectionHistory] = None,
        request_config: Optional[RequestConfig] = None,
        futures: bool = True,
    ):
        self._symbol = normalize_symbol(symbol)
        self.config = config or RadarConfig()

        self._owns_provider = provider is None
        self._provider = provider or BinanceDepthClient(
            request_config=request_config, futures=futures
        )
        self.history = history if history is not None else DetectionHistory()
        self._poller = DepthPoller(
            self._provider,
            self.history,
            symbol=self._symbol,
            config=self.config.detector,
            settings=self.config.poller,
        )
        self._opened = False
        self._started_at: Optional[int] = None

    # === Properties ===

    @property
    def symbol(self) -> str:
        return self._symbol

    @property
    def symbol_label(self) -> str:
        """Base asset shown in summaries ('BTCUSDT' -> 'BTC')."""
        return base_asset(self._symbol)

    @property
    def poller(self) -> DepthPoller:
        return self._poller

    @property
    def is_running(self) -> bool:
        return self._poller.is_running

    # === Callbacks ===

    def on_detections(self, callback: Callable[[List[DetectionEvent]], Any]) -> None:
        """Register callback for each appended batch of detections."""
        self._poller.add_callback(callback)

    # === Lifecycle ===

    async def open(self) -> None:
        """Open the owned provider's HTTP session."""
        if self._opened:
            return
        if self._owns_provider:
            await self._provider.open()
        self._opened = True

    async def close(self) -> None:
        """Close the owned provider's HTTP session."""
        if not self._opened:
            return
        if self._owns_provider:
            await self._provider.close()
        self._opened = False

    async def start(self, interval_ms: Optional[int] = None) -> None:
        """Start polling (first tick immediately)."""
        await self.open()
        self._started_at = int(time.time() * 1000)
        logger.info(f"Starting radar session for {self._symbol}")
        await self._poller.start(interval_ms)
        self.config.poller = self._poller.settings

    async def stop(self) -> None:
        """Stop polling and release resources."""
        logger.info(f"Stopping radar session for {self._symbol}")
        await self._poller.stop()
        await self.close()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()

    async def poll_once(self) -> List[DetectionEvent]:
        """Run a single tick outside the schedule."""
        await self.open()
        return await self._poller.poll_once()

    # === Reconfiguration ===

    def set_symbol(self, symbol: str) -> None:
        """
        Switch to another symbol.

        Existing history is kept as-is; clear it explicitly if the old symbol's
        detections should not count toward the new summary.
        """
        self._symbol = normalize_symbol(symbol)
        self._poller.set_symbol(self._symbol)

    def update_config(self, config: DetectorConfig) -> None:
        """Apply new detector thresholds to subsequent ticks."""
        self.config.detector = config
        self._poller.update_config(config)

    def clear_history(self) -> None:
        self.history.clear()

    # === Queries ===

    def summary(
        self, window_ms: Optional[int] = None, now_ms: Optional[int] = None
    ) -> OrderBookSummary:
        """Rolling summary over the trailing window (default from settings)."""
        window = window_ms if window_ms is not None else self.config.poller.summary_window_ms
        return summarize(
            self.history.all(), window_ms=window, symbol_label=self.symbol_label, now_ms=now_ms
        )

    def scoring_features(
        self, window_ms: int = FEATURE_WINDOW_MS, now_ms: Optional[int] = None
    ) -> List[ScoringFeature]:
        """Order-book feature tags from the last minute of detections."""
        return extract_scoring_features(self.history.all(), window_ms=window_ms, now_ms=now_ms)

    def get_status(self) -> Dict[str, Any]:
        """Get current session status."""
        stats = self._poller.stats
        return {
            "symbol": self._symbol,
            "running": self.is_running,
            "started_at": self._started_at,
            "interval_ms": self._poller.interval_ms,
            "history_size": len(self.history),
            "history_capacity": self.history.capacity,
            "latest_detection": self.history.latest_timestamp,
            "ticks_started": stats.ticks_started,
            "ticks_completed": stats.ticks_completed,
            "fetch_errors": stats.fetch_errors,
            "timeouts": stats.timeouts,
            "discarded_stale": stats.discarded_stale,
            "events_appended": stats.events_appended,
        }
