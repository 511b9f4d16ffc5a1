"""Print functions for radar output."""

import json
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from ..engines.pattern_detector import DetectionEvent
from ..engines.signals import ScoringFeature
from ..engines.summarizer import OrderBookSummary
from .colors import Colors
from .formatters import (
    format_quantity,
    format_timestamp,
    risk_color,
    severity_color,
    trend_color,
)


def print_header(symbol: str, interval_ms: int, market: str = "futures"):
    """Print session header."""
    print()
    print(f"{Colors.BOLD}{'═' * 80}{Colors.RESET}")
    print(f"{Colors.BOLD}{Colors.CYAN}  DEPTH RADAR: {symbol} ({market}){Colors.RESET}")
    print(f"{Colors.BOLD}{'═' * 80}{Colors.RESET}")
    print(f"  Refresh: every {interval_ms / 1000:g}s  |  "
          f"Started: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print(f"{Colors.DIM}{'─' * 80}{Colors.RESET}")


def format_detection(event: DetectionEvent) -> str:
    """One colored line describing a detection."""
    color = severity_color(event.severity)
    parts = [
        f"{Colors.DIM}{format_timestamp(event.timestamp_ms)}{Colors.RESET}",
        f"{color}{event.severity.value.upper():<6}{Colors.RESET}",
        f"{Colors.BOLD}{event.category.value:<18}{Colors.RESET}",
    ]
    if event.reference_price is not None:
        parts.append(f"@ {event.reference_price:,.2f}")
    if event.volume is not None:
        parts.append(f"size {format_quantity(event.volume)}")
    if event.average_volume is not None:
        parts.append(f"avg {format_quantity(event.average_volume)}")
    if event.total_volume is not None:
        parts.append(f"total {format_quantity(event.total_volume)}")
    parts.append(f"{Colors.DIM}{event.label}{Colors.RESET}")
    return "  ".join(parts)


def print_detections(events: Iterable[DetectionEvent]):
    """Print each detection on its own line."""
    for event in events:
        print(f"  {format_detection(event)}")


def print_summary(summary: OrderBookSummary, features: Optional[List[ScoringFeature]] = None):
    """Print the rolling summary block."""
    print()
    print(f"{Colors.BOLD}{Colors.BLUE}Rolling summary{Colors.RESET}")
    print(f"{Colors.DIM}{'─' * 40}{Colors.RESET}")
    print(f"  {Colors.BOLD}Risk:{Colors.RESET}  "
          f"{risk_color(summary.risk_level)}{summary.risk_level.value.upper()}{Colors.RESET}   "
          f"{Colors.BOLD}Trend:{Colors.RESET} "
          f"{trend_color(summary.trend)}{summary.trend.value.upper()}{Colors.RESET}")
    print()
    print(f"  {summary.narrative_text}")
    print()
    for point in summary.key_points:
        print(f"  • {point}")
    if features is not None:
        tags = ", ".join(f.value for f in features) if features else "none"
        print(f"  {Colors.DIM}Score features (last minute): {tags}{Colors.RESET}")
    print()


def print_status(status: Dict[str, Any]):
    """Print poller counters in one dim line."""
    print(f"{Colors.DIM}  ticks {status['ticks_completed']}/{status['ticks_started']}  "
          f"errors {status['fetch_errors']}  timeouts {status['timeouts']}  "
          f"stale {status['discarded_stale']}  "
          f"history {status['history_size']}/{status['history_capacity']}{Colors.RESET}")


def detection_json(event: DetectionEvent, symbol: str = "") -> str:
    """JSON line for a detection."""
    payload = {"type": "detection", "symbol": symbol}
    payload.update(event.to_dict())
    return json.dumps(payload)


def summary_json(
    summary: OrderBookSummary,
    symbol: str = "",
    features: Optional[List[ScoringFeature]] = None,
) -> str:
    """JSON line for a rolling summary."""
    payload: Dict[str, Any] = {"type": "summary", "symbol": symbol}
    payload.update(summary.to_dict())
    if features is not None:
        payload["features"] = [f.value for f in features]
    return json.dumps(payload)
