"""
Detection History - bounded, time-ordered store of detection events.

Owned by whatever drives polling (see RadarSession). The detector never touches
it; the summarizer only reads the immutable snapshots it hands out.
"""

import logging
import time
from typing import Iterable, Optional, Tuple

from ..engines.detector_config import HISTORY_CAPACITY, SUMMARY_WINDOW_MS
from ..engines.pattern_detector import DetectionEvent
from .ring_buffer import RingBuffer

logger = logging.getLogger(__name__)


class OutOfOrderAppendError(ValueError):
    """Raised when a batch would break the non-decreasing timestamp order."""

    def __init__(self, timestamp_ms: int, newest_ms: int):
        self.timestamp_ms = timestamp_ms
        self.newest_ms = newest_ms
        super().__init__(
            f"Event timestamp {timestamp_ms} is older than newest stored event {newest_ms}"
        )


class DetectionHistory:
    """
    Append-only FIFO of DetectionEvent capped at 100 entries.

    Insertion order is chronological order. Appending past capacity evicts the
    oldest entries. Readers get tuples, so iterating a snapshot is safe while the
    poller keeps appending.

    Callers must append batches in non-decreasing timestamp order. A batch with
    an event older than the newest stored one, or out of order within itself,
    raises OutOfOrderAppendError and nothing from it is stored. DepthPoller stamps
    events no earlier than latest_timestamp to keep this contract.
    """

    def __init__(self, capacity: int = HISTORY_CAPACITY):
        self._buffer = RingBuffer[DetectionEvent](capacity)

    @property
    def capacity(self) -> int:
        return self._buffer.maxlen

    @property
    def latest_timestamp(self) -> Optional[int]:
        """Timestamp of the newest event, or None if empty."""
        newest = self._buffer.newest()
        return newest.timestamp_ms if newest is not None else None

    def __len__(self) -> int:
        return len(self._buffer)

    def append(self, events: Iterable[DetectionEvent]) -> int:
        """
        Add events to the tail in order.

        Args:
            events: Batch from one detector run (may be empty)

        Returns:
            Number of old events evicted to stay within capacity

        Raises:
            OutOfOrderAppendError: If the batch is older than the newest event or
                not itself in non-decreasing timestamp order. Nothing is stored.
        """
        batch = list(events)
        if not batch:
            return 0

        previous = self.latest_timestamp
        for event in batch:
            if previous is not None and event.timestamp_ms < previous:
                raise OutOfOrderAppendError(event.timestamp_ms, previous)
            previous = event.timestamp_ms

        evicted = self._buffer.extend(batch)
        if evicted:
            logger.debug(f"History full, evicted {evicted} oldest events")
        return evicted

    def all(self) -> Tuple[DetectionEvent, ...]:
        """Read-only snapshot of current contents, oldest first."""
        return self._buffer.snapshot()

    def window(
        self, window_ms: int = SUMMARY_WINDOW_MS, now_ms: Optional[int] = None
    ) -> Tuple[DetectionEvent, ...]:
        """Suffix of the history with timestamp >= now - window_ms."""
        now = now_ms if now_ms is not None else int(time.time() * 1000)
        cutoff = now - window_ms
        return tuple(event for event in self._buffer if event.timestamp_ms >= cutoff)

    def clear(self) -> None:
        """Empty the store (user-triggered reset)."""
        logger.info(f"Clearing detection history ({len(self._buffer)} events)")
        self._buffer.clear()
