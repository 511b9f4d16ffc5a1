#!/usr/bin/env python3
"""
Depth Radar Runner

Polls an order book, prints each detected pattern as it appears and a rolling
summary at a fixed cadence.

Usage:
    depth-radar                          # Default: BTC futures book, every 3s
    depth-radar ETH --interval 1000      # Faster refresh
    depth-radar SOL --wall 250 --json    # Custom wall threshold, JSON lines
    depth-radar BTC --once               # One snapshot, then exit
"""

import argparse
import asyncio
import logging
import sys
import time
from typing import List, Optional, Sequence

from ..continuous.session import RadarSession
from ..display.colors import Colors
from ..display.printers import (
    detection_json,
    print_detections,
    print_header,
    print_status,
    print_summary,
    summary_json,
)
from ..engines.depth_client import RequestConfig
from ..engines.detector_config import (
    ALLOWED_INTERVALS_MS,
    DEFAULT_DEPTH_LIMIT,
    DEFAULT_FETCH_TIMEOUT_S,
    DEFAULT_INTERVAL_MS,
    VALID_DEPTH_LIMITS,
    DetectorConfig,
    PollerSettings,
    RadarConfig,
)
from ..engines.pattern_detector import DetectionEvent
from ..logging_config import configure_default_logging

logger = logging.getLogger(__name__)


class RadarDisplay:
    """Console sink for detections and summaries."""

    def __init__(self, session: RadarSession, json_output: bool = False):
        self.session = session
        self.json_output = json_output

    def on_detections(self, events: List[DetectionEvent]) -> None:
        if self.json_output:
            for event in events:
                print(detection_json(event, self.session.symbol), flush=True)
        else:
            print_detections(events)

    def show_summary(self) -> None:
        summary = self.session.summary()
        features = self.session.scoring_features()
        if self.json_output:
            print(summary_json(summary, self.session.symbol, features), flush=True)
        else:
            print_summary(summary, features)
            print_status(self.session.get_status())


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Order-book pattern radar: spoofed walls, ladders and liquidity vacuums"
    )
    parser.add_argument(
        "symbol", nargs="?", default="BTC", help="Base asset or pair (default: BTC -> BTCUSDT)"
    )
    parser.add_argument(
        "--interval",
        type=int,
        default=DEFAULT_INTERVAL_MS,
        choices=ALLOWED_INTERVALS_MS,
        help=f"Refresh interval in ms (default: {DEFAULT_INTERVAL_MS})",
    )
    parser.add_argument(
        "--wall", type=float, default=100.0, help="Minimum size for a spoofed wall (default: 100)"
    )
    parser.add_argument(
        "--ladder", type=float, default=500.0, help="Minimum average size for a ladder (default: 500)"
    )
    parser.add_argument(
        "--vacuum",
        type=float,
        default=50.0,
        help="Top-of-book total below which the book is a vacuum (default: 50)",
    )
    parser.add_argument(
        "--window", type=int, default=60, help="Summary window in minutes (default: 60)"
    )
    parser.add_argument(
        "--summary-every",
        type=int,
        default=30,
        help="Print the rolling summary every N seconds (default: 30)",
    )
    parser.add_argument(
        "--depth-limit",
        type=int,
        default=DEFAULT_DEPTH_LIMIT,
        choices=VALID_DEPTH_LIMITS,
        help=f"Levels per side to request (default: {DEFAULT_DEPTH_LIMIT})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_FETCH_TIMEOUT_S,
        help=f"Per-fetch timeout in seconds (default: {DEFAULT_FETCH_TIMEOUT_S:g})",
    )
    parser.add_argument("--spot", action="store_true", help="Use the spot book instead of futures")
    parser.add_argument("--json", action="store_true", help="Emit JSON lines instead of text")
    parser.add_argument("--once", action="store_true", help="Single snapshot, then exit")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def build_config(args: argparse.Namespace) -> RadarConfig:
    """Translate CLI flags into a RadarConfig."""
    detector = DetectorConfig(
        min_volume_for_wall=args.wall,
        min_avg_volume_for_ladder=args.ladder,
        max_total_volume_for_thin=args.vacuum,
    )
    poller = PollerSettings(
        interval_ms=args.interval,
        fetch_timeout_s=args.timeout,
        depth_limit=args.depth_limit,
        summary_window_ms=args.window * 60 * 1000,
    )
    return RadarConfig(detector=detector, poller=poller)


async def run_once(session: RadarSession, display: RadarDisplay) -> int:
    """Fetch one snapshot, print detections and summary."""
    await session.open()
    try:
        events = await session.poll_once()
    finally:
        await session.close()

    status = session.get_status()
    if status["fetch_errors"] or status["timeouts"]:
        print(f"{Colors.RED}Failed to fetch depth for {session.symbol}{Colors.RESET}", file=sys.stderr)
        return 1

    if not events and not display.json_output:
        print(f"{Colors.DIM}  No patterns in the current book{Colors.RESET}")
    display.show_summary()
    return 0


async def run_radar(session: RadarSession, display: RadarDisplay, summary_every: int) -> None:
    """Poll until interrupted, printing summaries periodically."""
    summary_every = max(1, summary_every)
    async with session:
        last_summary = time.monotonic()
        while True:
            await asyncio.sleep(1)
            if time.monotonic() - last_summary >= summary_every:
                display.show_summary()
                last_summary = time.monotonic()


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_default_logging("DEBUG" if args.verbose else None)

    try:
        config = build_config(args)
    except ValueError as e:
        parser.error(str(e))

    logger.debug(f"Radar config: {config}")

    if args.json or not sys.stdout.isatty():
        Colors.disable()

    session = RadarSession(
        args.symbol,
        config=config,
        request_config=RequestConfig(timeout_total=args.timeout),
        futures=not args.spot,
    )
    display = RadarDisplay(session, json_output=args.json)
    session.on_detections(display.on_detections)

    if args.once:
        return asyncio.run(run_once(session, display))

    if not args.json:
        print_header(session.symbol, config.poller.interval_ms, "spot" if args.spot else "futures")

    try:
        asyncio.run(run_radar(session, display, args.summary_every))
    except KeyboardInterrupt:
        if not args.json:
            print(f"\n{Colors.YELLOW}Shutting down...{Colors.RESET}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
