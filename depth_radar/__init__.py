"""Depth Radar - order-book pattern detection and rolling summaries.

Public symbols are exposed lazily so importing `depth_radar` does not eagerly
import the network client (`aiohttp`) when only the pure engines are needed.
"""

from __future__ import annotations

import importlib
from typing import Dict, Tuple

__version__ = "0.1.0"

__all__ = [
    # Signals
    "DetectionCategory",
    "Severity",
    "RiskLevel",
    "Trend",
    "ScoringFeature",
    "CATEGORY_SEVERITY",
    # Config
    "DetectorConfig",
    "PollerSettings",
    "RadarConfig",
    "DEFAULT_CONFIG",
    "get_config",
    # Detector
    "DepthLevel",
    "DepthSnapshot",
    "DetectionEvent",
    "OrderbookPatternDetector",
    "detect",
    # Summary and features
    "OrderBookSummary",
    "summarize",
    "extract_scoring_features",
    "convert_to_features",
    # Depth client
    "DepthSnapshotProvider",
    "BinanceDepthClient",
    "RequestConfig",
    "DepthFetchError",
    "DepthRateLimitError",
    "DepthTimeoutError",
    "DepthConnectionError",
    "DepthPayloadError",
    # Continuous
    "DetectionHistory",
    "OutOfOrderAppendError",
    "DepthPoller",
    "PollerStats",
    "RadarSession",
]


_EXPORT_TO_SOURCE: Dict[str, Tuple[str, str]] = {}


def _register(module: str, names: list[str]) -> None:
    for name in names:
        _EXPORT_TO_SOURCE[name] = (module, name)


_register(
    ".engines.signals",
    ["DetectionCategory", "Severity", "RiskLevel", "Trend", "ScoringFeature", "CATEGORY_SEVERITY"],
)
_register(
    ".engines.detector_config",
    ["DetectorConfig", "PollerSettings", "RadarConfig", "DEFAULT_CONFIG", "get_config"],
)
_register(
    ".engines.pattern_detector",
    ["DepthLevel", "DepthSnapshot", "DetectionEvent", "OrderbookPatternDetector", "detect"],
)
_register(".engines.summarizer", ["OrderBookSummary", "summarize"])
_register(".engines.features", ["extract_scoring_features", "convert_to_features"])
_register(
    ".engines.depth_client",
    [
        "DepthSnapshotProvider",
        "BinanceDepthClient",
        "RequestConfig",
        "DepthFetchError",
        "DepthRateLimitError",
        "DepthTimeoutError",
        "DepthConnectionError",
        "DepthPayloadError",
    ],
)
_register(".continuous.history", ["DetectionHistory", "OutOfOrderAppendError"])
_register(".continuous.poller", ["DepthPoller", "PollerStats"])
_register(".continuous.session", ["RadarSession"])


_missing_exports = [name for name in __all__ if name not in _EXPORT_TO_SOURCE]
if _missing_exports:
    raise RuntimeError(f"Lazy export map incomplete: {_missing_exports}")


def __getattr__(name: str):
    if name not in _EXPORT_TO_SOURCE:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, symbol_name = _EXPORT_TO_SOURCE[name]
    module = importlib.import_module(module_name, __name__)
    value = getattr(module, symbol_name)

    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
