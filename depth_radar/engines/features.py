"""Map recent detections to the order-book feature tags used by the market score."""

import time
from typing import Dict, Iterable, List, Optional

from .detector_config import FEATURE_WINDOW_MS
from .pattern_detector import DetectionEvent
from .signals import DetectionCategory, ScoringFeature

# Ladder resistance is genuine supply, not a fake signal, so it maps to nothing.
CATEGORY_FEATURES: Dict[DetectionCategory, ScoringFeature] = {
    DetectionCategory.LADDER_SUPPORT: ScoringFeature.REAL_SUPPORT,
    DetectionCategory.FAKE_WALL_BID: ScoringFeature.FAKE_SUPPORT,
    DetectionCategory.FAKE_WALL_ASK: ScoringFeature.FAKE_SUPPORT,
    DetectionCategory.LIQUIDITY_VACUUM: ScoringFeature.REAL_BREAKOUT,
}


def convert_to_features(events: Iterable[DetectionEvent]) -> List[ScoringFeature]:
    """Distinct features for the given events, in first-seen order."""
    features: List[ScoringFeature] = []
    for event in events:
        feature = CATEGORY_FEATURES.get(event.category)
        if feature is not None and feature not in features:
            features.append(feature)
    return features


def extract_scoring_features(
    history: Iterable[DetectionEvent],
    window_ms: int = FEATURE_WINDOW_MS,
    now_ms: Optional[int] = None,
) -> List[ScoringFeature]:
    """
    Features from detections strictly younger than window_ms.

    Args:
        history: Detection events, oldest first
        window_ms: Lookback in milliseconds (default: 1 minute)
        now_ms: Reference "now"; defaults to the wall clock

    Returns:
        Distinct ScoringFeature values in first-seen order
    """
    now = now_ms if now_ms is not None else int(time.time() * 1000)
    recent = [event for event in history if now - event.timestamp_ms < window_ms]
    return convert_to_features(recent)
