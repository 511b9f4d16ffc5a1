"""Shared detection enums and lookup tables to avoid stringly-typed events."""

from enum import Enum
from typing import Dict, Union


class DetectionCategory(Enum):
    """Closed set of order-book patterns the detector can report."""

    FAKE_WALL_BID = "fake-wall-bid"  # Outsized bid, likely spoofed support
    FAKE_WALL_ASK = "fake-wall-ask"  # Outsized ask, likely spoofed resistance
    LADDER_SUPPORT = "ladder-support"  # Even, heavy bids stacked below price
    LADDER_RESISTANCE = "ladder-resistance"  # Even, heavy asks stacked above price
    LIQUIDITY_VACUUM = "liquidity-vacuum"  # Thin top of book on both sides

    def __str__(self) -> str:
        return self.value


class Severity(Enum):
    """How dangerous a single detection is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def __str__(self) -> str:
        return self.value


class RiskLevel(Enum):
    """Aggregate risk over a summary window."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    def __str__(self) -> str:
        return self.value


class Trend(Enum):
    """Directional lean read from the detection mix."""

    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"

    def __str__(self) -> str:
        return self.value


class ScoringFeature(Enum):
    """Order-book feature tags consumed by the market score."""

    REAL_SUPPORT = "real-support"
    FAKE_SUPPORT = "fake-support"
    REAL_BREAKOUT = "real-breakout"

    def __str__(self) -> str:
        return self.value


# Ask-side spoofing is read as more dangerous than bid-side spoofing.
CATEGORY_SEVERITY: Dict[DetectionCategory, Severity] = {
    DetectionCategory.FAKE_WALL_BID: Severity.MEDIUM,
    DetectionCategory.FAKE_WALL_ASK: Severity.HIGH,
    DetectionCategory.LADDER_SUPPORT: Severity.LOW,
    DetectionCategory.LADDER_RESISTANCE: Severity.MEDIUM,
    DetectionCategory.LIQUIDITY_VACUUM: Severity.HIGH,
}

CATEGORY_LABELS: Dict[DetectionCategory, str] = {
    DetectionCategory.FAKE_WALL_BID: "Huge bid wall below price (possible fake support)",
    DetectionCategory.FAKE_WALL_ASK: "Huge ask wall above price (possible fake resistance)",
    DetectionCategory.LADDER_SUPPORT: "Laddered bid support (strong support)",
    DetectionCategory.LADDER_RESISTANCE: "Laddered ask resistance (heavy overhead supply)",
    DetectionCategory.LIQUIDITY_VACUUM: "Liquidity vacuum (prone to sharp moves and wicks)",
}

FAKE_WALL_CATEGORIES = frozenset(
    {DetectionCategory.FAKE_WALL_BID, DetectionCategory.FAKE_WALL_ASK}
)
LADDER_CATEGORIES = frozenset(
    {DetectionCategory.LADDER_SUPPORT, DetectionCategory.LADDER_RESISTANCE}
)


CategoryLike = Union[DetectionCategory, str]


def coerce_category(category: CategoryLike) -> DetectionCategory:
    """Convert a string to DetectionCategory, raising ValueError for unknown values."""
    if isinstance(category, DetectionCategory):
        return category
    return DetectionCategory(str(category))


def severity_for(category: CategoryLike) -> Severity:
    """Default severity for a category."""
    return CATEGORY_SEVERITY[coerce_category(category)]
