"""
Detector Configuration Module
Centralizes the thresholds and fixed constants for order-book pattern detection.

User-tunable thresholds live on DetectorConfig. The rule multipliers and level
counts are fixed constants: they define what a wall, ladder or vacuum is and are
not meant to be tuned per session.
"""

import logging
import math
from dataclasses import dataclass, field, fields
from typing import Any, Tuple

logger = logging.getLogger(__name__)

# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

EPSILON = 1e-9


def safe_divide(numerator: float, denominator: float, default: float = 0.0) -> float:
    """
    Safely divide two numbers, returning default if denominator is near zero.

    Args:
        numerator: The numerator
        denominator: The denominator
        default: Value to return if division is unsafe (default: 0.0)

    Returns:
        numerator / denominator if safe, otherwise default
    """
    return numerator / denominator if abs(denominator) > EPSILON else default


# =============================================================================
# FIXED RULE CONSTANTS
# =============================================================================

WALL_SCAN_LEVELS = 10  # Levels per side scanned for walls
WALL_MIN_LEVELS = 3  # Minimum levels on a side before walls are checked
WALL_MULTIPLIER = 5.0  # Wall must exceed N x the side average and N x the others' average

LADDER_LEVELS = 5  # Levels per side forming a ladder band
LADDER_MAX_CV = 0.5  # Coefficient of variation below this = evenly stacked

VACUUM_LEVELS = 3  # Top levels per side summed for the vacuum check

# =============================================================================
# TIMING CONSTANTS
# =============================================================================

HISTORY_CAPACITY = 100  # Detection history size cap
SUMMARY_WINDOW_MS = 60 * 60 * 1000  # Rolling summary window (1 hour)
FEATURE_WINDOW_MS = 60 * 1000  # Scoring feature window (1 minute)

ALLOWED_INTERVALS_MS: Tuple[int, ...] = (1000, 2000, 3000, 5000, 10000, 30000)
DEFAULT_INTERVAL_MS = 3000
DEFAULT_FETCH_TIMEOUT_S = 8.0
DEFAULT_DEPTH_LIMIT = 20
VALID_DEPTH_LIMITS: Tuple[int, ...] = (5, 10, 20, 50, 100, 500, 1000)


def _coerce_threshold(name: str, value: Any, default: float) -> float:
    """Return value as a positive float, or the default when it is unusable."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning(f"Invalid {name}={value!r}, falling back to default {default}")
        return default

    if not math.isfinite(number) or number <= 0:
        logger.warning(f"Out-of-range {name}={value!r}, falling back to default {default}")
        return default

    return number


@dataclass
class DetectorConfig:
    """
    User-facing thresholds for the pattern detector, in base-asset units.

    Non-positive or non-numeric values fall back to the field default instead of
    raising, so a bad value typed into the dashboard never stops detection.

    Usage:
        config = DetectorConfig()
        # Use defaults

        # Or customize:
        config = DetectorConfig(min_volume_for_wall=250)
    """

    min_volume_for_wall: float = 100.0  # Minimum size for a level to count as a wall
    min_avg_volume_for_ladder: float = 500.0  # Minimum band average for a ladder
    max_total_volume_for_thin: float = 50.0  # Top-of-book total below this = vacuum

    def __post_init__(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            setattr(self, f.name, _coerce_threshold(f.name, value, f.default))


@dataclass
class PollerSettings:
    """Scheduling settings for the depth poller."""

    interval_ms: int = DEFAULT_INTERVAL_MS
    fetch_timeout_s: float = DEFAULT_FETCH_TIMEOUT_S
    depth_limit: int = DEFAULT_DEPTH_LIMIT
    summary_window_ms: int = SUMMARY_WINDOW_MS

    def __post_init__(self) -> None:
        validate_interval(self.interval_ms)
        if self.fetch_timeout_s <= 0:
            raise ValueError("fetch_timeout_s must be positive")
        if self.depth_limit not in VALID_DEPTH_LIMITS:
            raise ValueError(
                f"depth_limit must be one of {list(VALID_DEPTH_LIMITS)}, got {self.depth_limit}"
            )
        if self.summary_window_ms <= 0:
            raise ValueError("summary_window_ms must be positive")


@dataclass
class RadarConfig:
    """Master configuration for a radar session."""

    detector: DetectorConfig = field(default_factory=DetectorConfig)
    poller: PollerSettings = field(default_factory=PollerSettings)


def validate_interval(interval_ms: int) -> int:
    """Ensure interval_ms is one of the supported refresh intervals."""
    if interval_ms not in ALLOWED_INTERVALS_MS:
        raise ValueError(
            f"Invalid interval {interval_ms}ms. Must be one of: {list(ALLOWED_INTERVALS_MS)}"
        )
    return interval_ms


# Global default config instance
DEFAULT_CONFIG = RadarConfig()


def get_config() -> RadarConfig:
    """Get the default configuration."""
    return DEFAULT_CONFIG
