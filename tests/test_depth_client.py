"""
Tests for the Binance depth client, against a fake aiohttp-style session.
"""

import asyncio

import aiohttp
import pytest

from depth_radar.engines.depth_client import (
    BinanceDepthClient,
    DepthConnectionError,
    DepthFetchError,
    DepthPayloadError,
    DepthRateLimitError,
    DepthTimeoutError,
    base_asset,
    normalize_symbol,
    parse_depth_payload,
)
from depth_radar.engines.pattern_detector import DepthLevel

PAYLOAD = {
    "lastUpdateId": 42,
    "E": 1_700_000_000_123,
    "T": 1_700_000_000_100,
    "bids": [["100.10", "1.500"], ["100.00", "2.000"]],
    "asks": [["100.20", "0.750"], ["100.30", "3.000"]],
}


class FakeResponse:
    def __init__(self, status=200, payload=None, text="", headers=None, json_error=None):
        self.status = status
        self._payload = payload
        self._text = text
        self.headers = headers or {}
        self._json_error = json_error

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False

    async def json(self, content_type=None):
        if self._json_error:
            raise self._json_error
        return self._payload

    async def text(self):
        return self._text


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []
        self.closed = False

    def get(self, url, params=None, headers=None):
        self.calls.append({"url": url, "params": params, "headers": headers})
        if self.error:
            raise self.error
        return self.response

    async def close(self):
        self.closed = True


class TestSymbolNormalization:
    """Tests for symbol handling."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("BTC", "BTCUSDT"),
            ("btc", "BTCUSDT"),
            ("btc/usdt", "BTCUSDT"),
            ("ETH-USDC", "ETHUSDC"),
            ("sol_usdt", "SOLUSDT"),
            (" BTCUSDT ", "BTCUSDT"),
            ("USDT", "USDTUSDT"),
        ],
    )
    def test_normalize(self, raw, expected):
        """Pairs are upper-cased and bare bases get USDT."""
        assert normalize_symbol(raw) == expected

    def test_empty_symbol(self):
        """Blank symbols are rejected."""
        with pytest.raises(ValueError):
            normalize_symbol("  ")

    def test_base_asset(self):
        """Quote asset is stripped for display."""
        assert base_asset("BTCUSDT") == "BTC"
        assert base_asset("eth/usdc") == "ETH"


class TestParsePayload:
    """Tests for payload parsing."""

    def test_levels_are_floats(self):
        """String pairs become float DepthLevels."""
        snapshot = parse_depth_payload(PAYLOAD, "BTCUSDT")

        assert snapshot.bids[0] == DepthLevel(100.10, 1.5)
        assert snapshot.asks[1] == DepthLevel(100.30, 3.0)
        assert snapshot.timestamp_ms == 1_700_000_000_100
        assert snapshot.last_update_id == 42
        assert snapshot.symbol == "BTCUSDT"

    @pytest.mark.parametrize(
        "payload",
        [
            {"bids": [["1", "2"]]},
            {"bids": [["x", "2"]], "asks": []},
            {"bids": [["1"]], "asks": []},
            {"code": -1121, "msg": "Invalid symbol."},
            ["not", "a", "dict"],
        ],
    )
    def test_malformed(self, payload):
        """Bad shapes raise DepthPayloadError."""
        with pytest.raises(DepthPayloadError):
            parse_depth_payload(payload)


class TestBinanceDepthClient:
    """Tests for BinanceDepthClient.fetch."""

    @pytest.mark.asyncio
    async def test_fetch_futures(self):
        """Futures endpoint is called once with the normalized symbol."""
        session = FakeSession(FakeResponse(payload=PAYLOAD))
        client = BinanceDepthClient(session=session)

        snapshot = await client.fetch("btc", 20)

        assert len(session.calls) == 1
        call = session.calls[0]
        assert call["url"] == "https://fapi.binance.com/fapi/v1/depth"
        assert call["params"] == {"symbol": "BTCUSDT", "limit": 20}
        assert call["headers"]["Accept"] == "application/json"
        assert "Mozilla" in call["headers"]["User-Agent"]
        assert snapshot.best_bid == 100.10

    @pytest.mark.asyncio
    async def test_fetch_spot(self):
        """Spot mode uses the spot depth endpoint."""
        session = FakeSession(FakeResponse(payload=PAYLOAD))
        client = BinanceDepthClient(session=session, futures=False)

        await client.fetch("ETH")

        assert session.calls[0]["url"] == "https://api.binance.com/api/v3/depth"

    @pytest.mark.asyncio
    async def test_non_2xx(self):
        """Error statuses raise DepthFetchError with the status code, no retry."""
        session = FakeSession(FakeResponse(status=503, text="Service Unavailable"))
        client = BinanceDepthClient(session=session)

        with pytest.raises(DepthFetchError) as exc_info:
            await client.fetch("BTC")

        assert exc_info.value.status_code == 503
        assert len(session.calls) == 1

    @pytest.mark.asyncio
    async def test_rate_limited(self):
        """429 raises DepthRateLimitError with Retry-After."""
        session = FakeSession(FakeResponse(status=429, headers={"Retry-After": "7"}))
        client = BinanceDepthClient(session=session)

        with pytest.raises(DepthRateLimitError) as exc_info:
            await client.fetch("BTC")

        assert exc_info.value.retry_after == 7
        assert exc_info.value.status_code == 429

    @pytest.mark.asyncio
    async def test_timeout(self):
        """Timeouts surface as DepthTimeoutError."""
        client = BinanceDepthClient(session=FakeSession(error=asyncio.TimeoutError()))

        with pytest.raises(DepthTimeoutError):
            await client.fetch("BTC")

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """aiohttp client errors surface as DepthConnectionError."""
        error = aiohttp.ClientConnectionError("connection refused")
        client = BinanceDepthClient(session=FakeSession(error=error))

        with pytest.raises(DepthConnectionError) as exc_info:
            await client.fetch("BTC")

        assert exc_info.value.original_error is error

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Non-JSON bodies raise DepthPayloadError."""
        response = FakeResponse(json_error=ValueError("Expecting value"))
        client = BinanceDepthClient(session=FakeSession(response))

        with pytest.raises(DepthPayloadError):
            await client.fetch("BTC")

    @pytest.mark.asyncio
    async def test_invalid_limit(self):
        """Unsupported depth limits are rejected before any request."""
        session = FakeSession(FakeResponse(payload=PAYLOAD))
        client = BinanceDepthClient(session=session)

        with pytest.raises(ValueError):
            await client.fetch("BTC", limit=7)
        assert session.calls == []

    @pytest.mark.asyncio
    async def test_requires_session(self):
        """Fetching without a session is a programming error."""
        client = BinanceDepthClient()

        with pytest.raises(RuntimeError):
            await client.fetch("BTC")

    @pytest.mark.asyncio
    async def test_injected_session_not_closed(self):
        """close() leaves a caller-owned session open."""
        session = FakeSession(FakeResponse(payload=PAYLOAD))

        async with BinanceDepthClient(session=session):
            pass

        assert session.closed is False
