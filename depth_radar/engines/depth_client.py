"""
Depth Snapshot Provider
Fetches order-book depth from Binance and hands back parsed DepthSnapshots.

Every failure surfaces as a DepthFetchError subclass; callers never receive a
partially populated snapshot. There are no retries here: the polling interval is
the retry mechanism.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

import aiohttp

from .detector_config import DEFAULT_DEPTH_LIMIT, VALID_DEPTH_LIMITS
from .pattern_detector import DepthLevel, DepthSnapshot

logger = logging.getLogger(__name__)


# =============================================================================
# CUSTOM EXCEPTIONS
# =============================================================================


class DepthFetchError(Exception):
    """Base exception for depth fetch failures."""

    def __init__(self, status_code: int, message: str, response_text: str = ""):
        self.status_code = status_code
        self.message = message
        self.response_text = response_text
        super().__init__(f"Depth fetch error {status_code}: {message}")


class DepthRateLimitError(DepthFetchError):
    """Raised when rate limit (HTTP 429) is hit."""

    def __init__(self, retry_after: Optional[int] = None):
        self.retry_after = retry_after
        super().__init__(429, "Rate limit exceeded", "")


class DepthTimeoutError(DepthFetchError):
    """Raised when request times out."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        super().__init__(0, f"Request timed out after {timeout}s", "")


class DepthConnectionError(DepthFetchError):
    """Raised when connection fails."""

    def __init__(self, original_error: Exception):
        self.original_error = original_error
        super().__init__(0, f"Connection error: {original_error}", "")


class DepthPayloadError(DepthFetchError):
    """Raised when the response body is not a usable depth payload."""

    def __init__(self, message: str, response_text: str = ""):
        super().__init__(0, f"Malformed payload: {message}", response_text)


# =============================================================================
# REQUEST CONFIGURATION
# =============================================================================


@dataclass
class RequestConfig:
    """Configuration for HTTP requests."""

    timeout_total: float = 5.0  # Total request timeout in seconds
    timeout_connect: float = 3.0  # Connection timeout in seconds
    user_agent: str = (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )


DEFAULT_REQUEST_CONFIG = RequestConfig()

QUOTE_ASSETS = ("USDT", "USDC", "FDUSD", "BUSD")


def normalize_symbol(symbol: str, default_quote: str = "USDT") -> str:
    """
    Normalize symbol format.

    'btc/usdt' -> 'BTCUSDT', 'eth-usdc' -> 'ETHUSDC', bare 'BTC' -> 'BTCUSDT'.
    """
    normalized = symbol.strip().upper().replace("/", "").replace("-", "").replace("_", "")
    if not normalized:
        raise ValueError("Symbol must not be empty")
    if any(normalized.endswith(q) and normalized != q for q in QUOTE_ASSETS):
        return normalized
    return normalized + default_quote


def base_asset(symbol: str) -> str:
    """Base asset of a normalized symbol ('BTCUSDT' -> 'BTC')."""
    normalized = normalize_symbol(symbol)
    for quote in QUOTE_ASSETS:
        if normalized.endswith(quote):
            return normalized[: -len(quote)]
    return normalized


def parse_depth_payload(data: Any, symbol: str = "") -> DepthSnapshot:
    """
    Parse a Binance depth payload ({"bids": [[priceStr, qtyStr], ...], ...}).

    Raises:
        DepthPayloadError: If either side is missing or holds non-numeric levels
    """
    try:
        bids = [DepthLevel(float(b[0]), float(b[1])) for b in data["bids"]]
        asks = [DepthLevel(float(a[0]), float(a[1])) for a in data["asks"]]
    except (KeyError, TypeError, ValueError, IndexError) as e:
        raise DepthPayloadError(f"{type(e).__name__}: {e}") from e

    timestamp = data.get("T") or data.get("E") or int(time.time() * 1000)
    return DepthSnapshot(
        bids=bids,
        asks=asks,
        symbol=symbol,
        timestamp_ms=int(timestamp),
        last_update_id=data.get("lastUpdateId"),
    )


class DepthSnapshotProvider(ABC):
    """Anything that can produce a depth snapshot for a symbol."""

    @abstractmethod
    async def fetch(self, symbol: str, limit: int = DEFAULT_DEPTH_LIMIT) -> DepthSnapshot:
        """
        Fetch a snapshot.

        Raises:
            DepthFetchError: On any network, status or payload failure
        """


class BinanceDepthClient(DepthSnapshotProvider):
    """
    Fetches order-book depth from Binance.
    Supports both spot and futures markets.
    """

    SPOT_BASE = "https://api.binance.com"
    FUTURES_BASE = "https://fapi.binance.com"

    VALID_LIMITS = VALID_DEPTH_LIMITS

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        request_config: Optional[RequestConfig] = None,
        futures: bool = True,
    ):
        self._session = session
        self._owns_session = session is None
        self._config = request_config or DEFAULT_REQUEST_CONFIG
        self.futures = futures

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def open(self) -> None:
        """Create the owned HTTP session if none was injected."""
        if self._session is None:
            timeout = aiohttp.ClientTimeout(
                total=self._config.timeout_total, connect=self._config.timeout_connect
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    @property
    def endpoint(self) -> str:
        if self.futures:
            return f"{self.FUTURES_BASE}/fapi/v1/depth"
        return f"{self.SPOT_BASE}/api/v3/depth"

    def _headers(self) -> Dict[str, str]:
        return {"User-Agent": self._config.user_agent, "Accept": "application/json"}

    async def _get(self, url: str, params: Optional[Dict] = None) -> Any:
        """
        Make a single GET request.

        Raises:
            DepthFetchError: For non-2xx responses
            DepthRateLimitError: When rate limit is exceeded
            DepthTimeoutError: When the request times out
            DepthConnectionError: When the connection fails
            DepthPayloadError: When the body is not JSON
        """
        if self._session is None:
            raise RuntimeError(
                "Session not initialized. Use 'async with BinanceDepthClient()' "
                "or pass a session to __init__."
            )

        logger.debug("GET %s params=%s", url, params)
        try:
            async with self._session.get(url, params=params, headers=self._headers()) as response:
                if response.status == 429:
                    retry_after = response.headers.get("Retry-After")
                    raise DepthRateLimitError(int(retry_after) if retry_after else None)

                if response.status != 200:
                    text = await response.text()
                    raise DepthFetchError(response.status, text[:200], text)

                try:
                    return await response.json(content_type=None)
                except (aiohttp.ContentTypeError, ValueError) as e:
                    raise DepthPayloadError(f"Response is not JSON: {e}") from e

        except asyncio.TimeoutError:
            raise DepthTimeoutError(self._config.timeout_total)

        except aiohttp.ClientError as e:
            raise DepthConnectionError(e) from e

    async def fetch(self, symbol: str, limit: int = DEFAULT_DEPTH_LIMIT) -> DepthSnapshot:
        """
        Get current orderbook snapshot.

        Args:
            symbol: Trading pair or bare base asset ('BTC', 'BTC/USDT')
            limit: Depth limit (5, 10, 20, 50, 100, 500, 1000)

        Returns:
            DepthSnapshot with float levels, best levels first
        """
        if limit not in self.VALID_LIMITS:
            raise ValueError(f"Invalid depth limit. Must be one of: {list(self.VALID_LIMITS)}")

        symbol = normalize_symbol(symbol)
        data = await self._get(self.endpoint, {"symbol": symbol, "limit": limit})
        return parse_depth_payload(data, symbol)
