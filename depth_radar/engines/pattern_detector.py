"""
Order Book Pattern Detection Module
"What is the book trying to make you believe?"

Classifies a single depth snapshot against fixed microstructure heuristics:
✓ Spoofed walls - One outsized level dwarfing its neighbours
✓ Laddered support/resistance - Heavy, evenly stacked levels near the top
✓ Liquidity vacuum - Almost nothing resting at the top of book

Each rule runs independently and fires at most once per snapshot. A quiet book
produces no events at all; there is no "normal" placeholder.
"""

import math
import time
from dataclasses import dataclass
from typing import Any, Dict, List, NamedTuple, Optional, Sequence

from .detector_config import (
    LADDER_LEVELS,
    LADDER_MAX_CV,
    VACUUM_LEVELS,
    WALL_MIN_LEVELS,
    WALL_MULTIPLIER,
    WALL_SCAN_LEVELS,
    DetectorConfig,
    safe_divide,
)
from .signals import (
    CATEGORY_LABELS,
    DetectionCategory,
    Severity,
    coerce_category,
    severity_for,
)


class DepthLevel(NamedTuple):
    """A single price level: (price, quantity)."""

    price: float
    quantity: float


@dataclass
class DepthSnapshot:
    """
    Point-in-time order book.

    Bids are expected best-first (descending price), asks best-first
    (ascending price). The ordering is a precondition of the provider and is not
    re-checked here.
    """

    bids: List[DepthLevel]
    asks: List[DepthLevel]
    symbol: str = ""
    timestamp_ms: Optional[int] = None
    last_update_id: Optional[int] = None

    @classmethod
    def from_pairs(
        cls,
        bids: Sequence[Sequence[float]],
        asks: Sequence[Sequence[float]],
        symbol: str = "",
        timestamp_ms: Optional[int] = None,
    ) -> "DepthSnapshot":
        """Build a snapshot from [[price, qty], ...] pairs."""
        return cls(
            bids=[DepthLevel(float(b[0]), float(b[1])) for b in bids],
            asks=[DepthLevel(float(a[0]), float(a[1])) for a in asks],
            symbol=symbol,
            timestamp_ms=timestamp_ms,
        )

    @property
    def best_bid(self) -> float:
        """Best bid price or 0 if empty."""
        return self.bids[0].price if self.bids else 0

    @property
    def best_ask(self) -> float:
        """Best ask price or 0 if empty."""
        return self.asks[0].price if self.asks else 0

    @property
    def mid_price(self) -> float:
        """Mid price, or 0 when either side is empty."""
        if not self.bids or not self.asks:
            return 0
        return (self.best_bid + self.best_ask) / 2


@dataclass(frozen=True)
class DetectionEvent:
    """One detected order-book pattern."""

    category: DetectionCategory
    severity: Severity
    timestamp_ms: int
    reference_price: Optional[float] = None  # Price level implicated
    volume: Optional[float] = None  # Wall size
    average_volume: Optional[float] = None  # Neighbour average (walls) or band mean (ladders)
    total_volume: Optional[float] = None  # Band total (ladders) or top-of-book total (vacuum)

    @property
    def label(self) -> str:
        """Human-readable description of the category."""
        return CATEGORY_LABELS[self.category]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with stable keys for display layers."""
        return {
            "category": self.category.value,
            "severity": self.severity.value,
            "referencePrice": self.reference_price,
            "volume": self.volume,
            "averageVolume": self.average_volume,
            "totalVolume": self.total_volume,
            "timestamp": self.timestamp_ms,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionEvent":
        """Inverse of to_dict. Severity defaults to the category's table value."""
        category = coerce_category(data["category"])
        severity = data.get("severity")
        return cls(
            category=category,
            severity=Severity(severity) if severity else severity_for(category),
            timestamp_ms=int(data["timestamp"]),
            reference_price=data.get("referencePrice"),
            volume=data.get("volume"),
            average_volume=data.get("averageVolume"),
            total_volume=data.get("totalVolume"),
        )


def _mean(values: Sequence[float]) -> float:
    return safe_divide(sum(values), len(values))


class OrderbookPatternDetector:
    """
    Stateless rule engine over a single depth snapshot.

    Rules:
    - Wall: a level > 5x the side average AND > 5x the average of the others
    - Ladder: top 5 levels averaging above threshold with CV < 0.5
    - Vacuum: top 3 bids + top 3 asks below threshold

    The detector keeps no history; calling detect() twice on the same snapshot
    with the same clock yields equal events.
    """

    def __init__(self, config: Optional[DetectorConfig] = None):
        self.config = config or DetectorConfig()

    def detect(self, snapshot: DepthSnapshot, now_ms: Optional[int] = None) -> List[DetectionEvent]:
        """Run all rules. Every event from one call shares one timestamp."""
        ts = now_ms if now_ms is not None else int(time.time() * 1000)

        candidates = [
            self.detect_wall(snapshot.bids, DetectionCategory.FAKE_WALL_BID, ts),
            self.detect_wall(snapshot.asks, DetectionCategory.FAKE_WALL_ASK, ts),
            self.detect_ladder(snapshot.bids, DetectionCategory.LADDER_SUPPORT, ts),
            self.detect_ladder(snapshot.asks, DetectionCategory.LADDER_RESISTANCE, ts),
            self.detect_vacuum(snapshot, ts),
        ]
        return [event for event in candidates if event is not None]

    def detect_wall(
        self, levels: Sequence[DepthLevel], category: DetectionCategory, ts: int
    ) -> Optional[DetectionEvent]:
        """
        Detect a spoofed wall on one side of the book.

        Scans the top 10 levels and reports only the first anomalous one.
        A level qualifies when it dwarfs both the side average and the average
        of the remaining levels, so a uniformly heavy book never triggers.
        """
        top = list(levels[:WALL_SCAN_LEVELS])
        if len(top) < WALL_MIN_LEVELS:
            return None

        volumes = [level.quantity for level in top]
        avg_volume = _mean(volumes)

        for i, volume in enumerate(volumes):
            if volume > avg_volume * WALL_MULTIPLIER and volume > self.config.min_volume_for_wall:
                other_avg = _mean(volumes[:i] + volumes[i + 1 :])
                if volume > other_avg * WALL_MULTIPLIER:
                    return DetectionEvent(
                        category=category,
                        severity=severity_for(category),
                        timestamp_ms=ts,
                        reference_price=top[i].price,
                        volume=volume,
                        average_volume=other_avg,
                    )
        return None

    def detect_ladder(
        self, levels: Sequence[DepthLevel], category: DetectionCategory, ts: int
    ) -> Optional[DetectionEvent]:
        """
        Detect laddered support (bids) or resistance (asks).

        Uses the population standard deviation of the top 5 quantities. The
        reference price is the lowest price in the band: the deepest bid for
        support, the nearest ask for resistance.
        """
        band = list(levels[:LADDER_LEVELS])
        if len(band) < LADDER_LEVELS:
            return None

        volumes = [level.quantity for level in band]
        avg_volume = _mean(volumes)
        variance = sum((v - avg_volume) ** 2 for v in volumes) / len(volumes)
        std_dev = math.sqrt(variance)
        cv = std_dev / avg_volume if avg_volume > 0 else 0.0

        if avg_volume > self.config.min_avg_volume_for_ladder and cv < LADDER_MAX_CV:
            return DetectionEvent(
                category=category,
                severity=severity_for(category),
                timestamp_ms=ts,
                reference_price=min(level.price for level in band),
                average_volume=avg_volume,
                total_volume=sum(volumes),
            )
        return None

    def detect_vacuum(self, snapshot: DepthSnapshot, ts: int) -> Optional[DetectionEvent]:
        """Detect a liquidity vacuum at the top of book (needs 3 levels per side)."""
        if len(snapshot.bids) < VACUUM_LEVELS or len(snapshot.asks) < VACUUM_LEVELS:
            return None

        top_bid_volume = sum(level.quantity for level in snapshot.bids[:VACUUM_LEVELS])
        top_ask_volume = sum(level.quantity for level in snapshot.asks[:VACUUM_LEVELS])
        total = top_bid_volume + top_ask_volume

        if total < self.config.max_total_volume_for_thin:
            return DetectionEvent(
                category=DetectionCategory.LIQUIDITY_VACUUM,
                severity=severity_for(DetectionCategory.LIQUIDITY_VACUUM),
                timestamp_ms=ts,
                total_volume=total,
            )
        return None


# Convenience functions
def detect(
    snapshot: DepthSnapshot,
    config: Optional[DetectorConfig] = None,
    now_ms: Optional[int] = None,
) -> List[DetectionEvent]:
    """Run every rule against one snapshot."""
    return OrderbookPatternDetector(config).detect(snapshot, now_ms)


def detect_pairs(
    bids: Sequence[Sequence[float]],
    asks: Sequence[Sequence[float]],
    config: Optional[DetectorConfig] = None,
    now_ms: Optional[int] = None,
) -> List[DetectionEvent]:
    """Quick check on raw [[price, qty], ...] arrays."""
    return detect(DepthSnapshot.from_pairs(bids, asks), config, now_ms)
