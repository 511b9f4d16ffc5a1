"""Formatting helpers for detections and summaries."""

from datetime import datetime
from typing import Optional

from ..engines.signals import RiskLevel, Severity, Trend
from .colors import Colors


def severity_color(severity: Severity) -> str:
    """Get color for a detection severity."""
    if severity == Severity.HIGH:
        return Colors.RED
    elif severity == Severity.MEDIUM:
        return Colors.YELLOW
    return Colors.CYAN


def risk_color(risk: RiskLevel) -> str:
    if risk == RiskLevel.HIGH:
        return Colors.RED
    elif risk == RiskLevel.MEDIUM:
        return Colors.YELLOW
    return Colors.GREEN


def trend_color(trend: Trend) -> str:
    if trend == Trend.BULLISH:
        return Colors.GREEN
    elif trend == Trend.BEARISH:
        return Colors.RED
    return Colors.YELLOW


def format_timestamp(timestamp_ms: Optional[int]) -> str:
    """Epoch milliseconds -> local HH:MM:SS, '--:--:--' when unknown."""
    if timestamp_ms is None:
        return "--:--:--"
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")


def format_quantity(value: Optional[float]) -> str:
    """Quantity with thousands separators, '-' when absent."""
    if value is None:
        return "-"
    return f"{value:,.2f}"
