"""Display utilities for radar output."""

from .colors import Colors
from .formatters import format_quantity, format_timestamp, risk_color, severity_color, trend_color
from .printers import (
    detection_json,
    format_detection,
    print_detections,
    print_header,
    print_status,
    print_summary,
    summary_json,
)

__all__ = [
    # Colors
    "Colors",
    # Formatters
    "severity_color",
    "risk_color",
    "trend_color",
    "format_timestamp",
    "format_quantity",
    # Printers
    "print_header",
    "format_detection",
    "print_detections",
    "print_summary",
    "print_status",
    "detection_json",
    "summary_json",
]
