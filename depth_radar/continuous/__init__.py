"""
Continuous order-book monitoring.

Architecture:
```
DEPTH PROVIDER (REST snapshot, single attempt)
        ↓
DEPTH POLLER (fixed interval, newest tick wins)
        ↓
PATTERN DETECTOR (walls, ladders, vacuum)
        ↓
DETECTION HISTORY (last 100 events)
        ↓
SUMMARY / SCORE FEATURES (computed on demand)
```

Usage:
    from depth_radar.continuous import RadarSession

    async def main():
        async with RadarSession("BTC") as session:
            session.on_detections(print)
            await asyncio.sleep(600)
            print(session.summary().narrative_text)

    asyncio.run(main())
"""

from .history import DetectionHistory, OutOfOrderAppendError
from .poller import DepthPoller, PollerStats
from .ring_buffer import RingBuffer
from .session import RadarSession

__all__ = [
    # Storage
    "RingBuffer",
    "DetectionHistory",
    "OutOfOrderAppendError",
    # Polling
    "DepthPoller",
    "PollerStats",
    # Orchestration
    "RadarSession",
]
