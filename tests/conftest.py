import pytest

from depth_radar.engines.pattern_detector import DetectionEvent
from depth_radar.engines.signals import DetectionCategory, severity_for


def make_event(category, timestamp_ms, **kwargs):
    """DetectionEvent with the table severity unless one is given."""
    category = DetectionCategory(category) if isinstance(category, str) else category
    kwargs.setdefault("severity", severity_for(category))
    return DetectionEvent(category=category, timestamp_ms=timestamp_ms, **kwargs)


@pytest.fixture
def event_factory():
    """Factory for detection events."""
    return make_event
