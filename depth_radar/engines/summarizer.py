"""
Rolling Order Book Summary Module

Turns the trailing window of detections into a risk level, a trend lean and a
short narrative for the display layer.

Risk (first match wins):
- vacuums > 5 OR high-severity > 10     → HIGH
- medium-severity > 5 OR high > 3       → MEDIUM
- otherwise                             → LOW

Trend:
- spoofed walls > 30% of signals        → BEARISH
- ladders > 30% of signals              → BULLISH if more support than resistance, else BEARISH
- otherwise                             → NEUTRAL

summarize() is a pure function of its arguments. Pass now_ms to pin the window
and the output is fully reproducible, which makes caller-side memoization safe.
"""

import time
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .detector_config import SUMMARY_WINDOW_MS, safe_divide
from .pattern_detector import DetectionEvent
from .signals import (
    FAKE_WALL_CATEGORIES,
    LADDER_CATEGORIES,
    DetectionCategory,
    RiskLevel,
    Severity,
    Trend,
)

# Risk thresholds
HIGH_RISK_VACUUM_COUNT = 5
HIGH_RISK_HIGH_COUNT = 10
MEDIUM_RISK_MEDIUM_COUNT = 5
MEDIUM_RISK_HIGH_COUNT = 3

# Trend thresholds (share of signals in window)
FAKE_WALL_TREND_RATIO = 0.3
LADDER_TREND_RATIO = 0.3

INSUFFICIENT_DATA_POINT = "Insufficient data"

RISK_POINTS = {
    RiskLevel.HIGH: "High risk: frequent liquidity vacuums or outsized orders in the book",
    RiskLevel.MEDIUM: "Medium risk: some order-book anomalies present",
    RiskLevel.LOW: "Low risk: order book relatively stable",
}


@dataclass(frozen=True)
class OrderBookSummary:
    """Structured rolling summary. Recomputed per query, never mutated."""

    narrative_text: str
    key_points: Tuple[str, ...]
    risk_level: RiskLevel
    trend: Trend

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with stable keys for display layers."""
        return {
            "narrativeText": self.narrative_text,
            "keyPoints": list(self.key_points),
            "riskLevel": self.risk_level.value,
            "trend": self.trend.value,
        }


@dataclass(frozen=True)
class WindowCounts:
    """Category and severity tallies over a summary window."""

    total: int
    fake_walls: int
    ladders: int
    ladder_support: int
    ladder_resistance: int
    vacuums: int
    high: int
    medium: int
    low: int

    @classmethod
    def from_events(cls, events: Sequence[DetectionEvent]) -> "WindowCounts":
        categories = Counter(event.category for event in events)
        severities = Counter(event.severity for event in events)
        return cls(
            total=len(events),
            fake_walls=sum(categories[c] for c in FAKE_WALL_CATEGORIES),
            ladders=sum(categories[c] for c in LADDER_CATEGORIES),
            ladder_support=categories[DetectionCategory.LADDER_SUPPORT],
            ladder_resistance=categories[DetectionCategory.LADDER_RESISTANCE],
            vacuums=categories[DetectionCategory.LIQUIDITY_VACUUM],
            high=severities[Severity.HIGH],
            medium=severities[Severity.MEDIUM],
            low=severities[Severity.LOW],
        )


def filter_window(
    history: Iterable[DetectionEvent], window_ms: int, now_ms: Optional[int] = None
) -> List[DetectionEvent]:
    """Events with timestamp >= now - window_ms, in their original order."""
    now = now_ms if now_ms is not None else int(time.time() * 1000)
    cutoff = now - window_ms
    return [event for event in history if event.timestamp_ms >= cutoff]


def classify_risk(counts: WindowCounts) -> RiskLevel:
    """Map window tallies to a risk level."""
    if counts.vacuums > HIGH_RISK_VACUUM_COUNT or counts.high > HIGH_RISK_HIGH_COUNT:
        return RiskLevel.HIGH
    if counts.medium > MEDIUM_RISK_MEDIUM_COUNT or counts.high > MEDIUM_RISK_HIGH_COUNT:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def classify_trend(counts: WindowCounts) -> Tuple[Trend, str]:
    """Map window tallies to a trend and its key-point sentence."""
    fake_wall_ratio = safe_divide(counts.fake_walls, counts.total)
    ladder_ratio = safe_divide(counts.ladders, counts.total)

    if fake_wall_ratio > FAKE_WALL_TREND_RATIO:
        return Trend.BEARISH, "Bearish: spoofed walls appear often, pressure is building"
    if ladder_ratio > LADDER_TREND_RATIO:
        if counts.ladder_support > counts.ladder_resistance:
            return Trend.BULLISH, "Bullish: strong laddered support below price"
        return Trend.BEARISH, "Bearish: laddered resistance above price dominates"
    return Trend.NEUTRAL, "Neutral: no clear order-book trend"


def _average(values: Sequence[float]) -> float:
    return safe_divide(sum(values), len(values))


def describe_window(window_ms: int) -> str:
    """Render a window length in words, e.g. 'hour', '15 minutes'."""
    hour_ms = 60 * 60 * 1000
    minute_ms = 60 * 1000
    if window_ms % hour_ms == 0:
        hours = window_ms // hour_ms
        return "hour" if hours == 1 else f"{hours} hours"
    if window_ms % minute_ms == 0:
        minutes = window_ms // minute_ms
        return "minute" if minutes == 1 else f"{minutes} minutes"
    seconds = window_ms / 1000
    return f"{seconds:g} seconds"


def insufficient_data_summary(symbol_label: str, window_ms: int = SUMMARY_WINDOW_MS) -> OrderBookSummary:
    """Fixed summary returned when the window holds no detections."""
    return OrderBookSummary(
        narrative_text=(
            f"Not enough {symbol_label} order-book data in the last "
            f"{describe_window(window_ms)} to build a summary."
        ),
        key_points=(INSUFFICIENT_DATA_POINT,),
        risk_level=RiskLevel.LOW,
        trend=Trend.NEUTRAL,
    )


def summarize(
    history: Iterable[DetectionEvent],
    window_ms: int = SUMMARY_WINDOW_MS,
    symbol_label: str = "",
    now_ms: Optional[int] = None,
) -> OrderBookSummary:
    """
    Summarize detections from the trailing window.

    Args:
        history: Detection events, oldest first
        window_ms: Trailing window length in milliseconds
        symbol_label: Symbol shown in the text (e.g. 'BTC')
        now_ms: Reference "now"; defaults to the wall clock

    Returns:
        OrderBookSummary with narrative, key points, risk level and trend
    """
    recent = filter_window(history, window_ms, now_ms)
    if not recent:
        return insufficient_data_summary(symbol_label, window_ms)

    counts = WindowCounts.from_events(recent)
    risk = classify_risk(counts)
    trend, trend_point = classify_trend(counts)

    avg_volume = _average([e.volume for e in recent if e.volume is not None])
    avg_ladder_volume = _average(
        [e.average_volume for e in recent if e.average_volume is not None]
    )

    key_points: List[str] = [RISK_POINTS[risk], trend_point]
    if counts.fake_walls > 0:
        key_points.append(f"{counts.fake_walls} spoofed bid/ask wall signals detected")
    if counts.ladders > 0:
        ladder_point = f"{counts.ladders} laddered support/resistance signals detected"
        if avg_ladder_volume > 0:
            ladder_point += f" (average size {avg_ladder_volume:.2f} {symbol_label})"
        key_points.append(ladder_point)
    if counts.vacuums > 0:
        key_points.append(f"{counts.vacuums} liquidity vacuums detected, watch for wicks")

    clauses: List[str] = []
    if counts.fake_walls > 0:
        clauses.append(f"{counts.fake_walls} outsized orders (possible spoofed walls)")
    if counts.ladders > 0:
        clauses.append(f"{counts.ladders} laddered support/resistance zones")
    if counts.vacuums > 0:
        clauses.append(f"{counts.vacuums} liquidity vacuums")

    narrative = (
        f"{symbol_label} order book over the last {describe_window(window_ms)}: "
        f"{counts.total} signals detected."
    )
    if clauses:
        narrative += " Seen: " + ", ".join(clauses) + "."
    if avg_volume > 0:
        narrative += f" Average anomalous order size about {avg_volume:.2f} {symbol_label}."
    narrative += f" Overall risk is {risk.value}, trend leaning {trend.value}."

    return OrderBookSummary(
        narrative_text=narrative,
        key_points=tuple(key_points),
        risk_level=risk,
        trend=trend,
    )
