"""
Binance REST client for the order-flow analyzer.

Fetches order book depth and exchange (instrument) info.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp

from ..continuous.data_types import DepthLevel
from ..utils.retry import ExponentialBackoff, retry_async

logger = logging.getLogger(__name__)


# =============================================================================
# ERRORS
# =============================================================================


class BinanceAPIError(Exception):
    """The exchange answered with an error status, or could not be reached."""

    def __init__(self, status_code: int, message: str, body: str = ""):
        super().__init__(f"HTTP {status_code}: {message}" if status_code else message)
        self.status_code = status_code
        self.body = body


class BinanceServerError(BinanceAPIError):
    """5xx from the exchange. Worth retrying."""


class BinanceRateLimitError(BinanceAPIError):
    """HTTP 429. `retry_after` is the server's hint in seconds, if it sent one."""

    def __init__(self, retry_after: Optional[int] = None):
        hint = f", retry after {retry_after}s" if retry_after else ""
        super().__init__(429, f"rate limited{hint}")
        self.retry_after = retry_after


class BinanceTimeoutError(BinanceAPIError):
    """No complete response within the request budget."""

    def __init__(self, timeout: float):
        super().__init__(0, f"no response within {timeout}s")
        self.timeout = timeout


class BinanceConnectionError(BinanceAPIError):
    """Transport failure before any HTTP status (DNS, refused, reset)."""

    def __init__(self, cause: Exception):
        super().__init__(0, f"connection failed: {cause}")
        self.cause = cause


# Transient failures; anything else (4xx, bad payload) is final
RETRYABLE_ERRORS = (
    BinanceServerError,
    BinanceRateLimitError,
    BinanceTimeoutError,
    BinanceConnectionError,
)


# =============================================================================
# REQUEST BUDGETS
# =============================================================================


@dataclass
class RequestConfig:
    """
    Timeouts and retry budget for one logical GET.

    `max_retries` counts attempts, so 1 means a single try. Statuses in
    `retry_on_status` raise BinanceServerError and are retried like
    transport failures.
    """

    timeout_total: float = 10.0
    timeout_connect: float = 5.0
    max_retries: int = 3
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    retry_on_status: tuple = (500, 502, 503, 504)


DEFAULT_REQUEST_CONFIG = RequestConfig()

# Depth polling is retried by the next tick, not inside the request
DEPTH_REQUEST_CONFIG = RequestConfig(timeout_total=1.5, timeout_connect=1.0, max_retries=1)


@dataclass
class OrderbookData:
    """Order book snapshot, best level first on both sides."""

    symbol: str
    bids: List[DepthLevel]
    asks: List[DepthLevel]
    timestamp: int


def _parse_levels(raw_levels: List[List[Any]]) -> List[DepthLevel]:
    return [DepthLevel(price=float(level[0]), quantity=float(level[1])) for level in raw_levels]


class BinanceFetcher:
    """
    Async REST client for the Binance USDⓈ-M futures API.

    Usage:
        async with BinanceFetcher() as fetcher:
            book = await fetcher.get_orderbook("BTCUSDT", limit=10)
    """

    FUTURES_BASE = "https://fapi.binance.com"

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        request_config: Optional[RequestConfig] = None,
        base_url: Optional[str] = None,
    ):
        self._session = session
        self._owns_session = session is None
        self._config = request_config or DEFAULT_REQUEST_CONFIG
        self._base_url = base_url or self.FUTURES_BASE
        self._exchange_info_cache: Optional[Dict[str, Any]] = None

    async def __aenter__(self):
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def open(self) -> None:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(
                total=self._config.timeout_total, connect=self._config.timeout_connect
            )
            self._session = aiohttp.ClientSession(timeout=timeout)
            self._owns_session = True

    async def close(self) -> None:
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    @staticmethod
    def normalize_symbol(symbol: str) -> str:
        """Accept btc/usdt, BTC-USDT or btc_usdt and return BTCUSDT."""
        return symbol.upper().replace("/", "").replace("-", "").replace("_", "")

    async def _request_once(self, url: str, params: Optional[Dict] = None) -> Any:
        """Single GET. Maps transport and HTTP failures onto the error taxonomy."""
        if self._session is None:
            raise RuntimeError("BinanceFetcher is not open; use `async with` or call open() first")

        logger.debug("GET %s params=%s", url, params)
        try:
            async with self._session.get(url, params=params) as response:
                if response.status == 200:
                    return await response.json()

                if response.status == 429:
                    hint = response.headers.get("Retry-After")
                    raise BinanceRateLimitError(int(hint) if hint else None)

                body = await response.text()
                if response.status in self._config.retry_on_status:
                    raise BinanceServerError(response.status, body[:200], body)
                raise BinanceAPIError(response.status, body[:200], body)
        except asyncio.TimeoutError as e:
            raise BinanceTimeoutError(self._config.timeout_total) from e
        except aiohttp.ClientError as e:
            raise BinanceConnectionError(e) from e

    async def _get(self, url: str, params: Optional[Dict] = None) -> Any:
        """
        GET with timeout and retry logic.

        Raises:
            BinanceAPIError: For non-retryable API errors
            RetryError: When a retryable failure persists past max_retries
        """
        request = retry_async(
            max_attempts=self._config.max_retries,
            exceptions=RETRYABLE_ERRORS,
            backoff=ExponentialBackoff(
                base=self._config.retry_base_delay, max_delay=self._config.retry_max_delay
            ),
        )(self._request_once)
        return await request(url, params)

    async def get_orderbook(self, symbol: str, limit: int = 10) -> OrderbookData:
        """
        Get current order book snapshot.

        Args:
            symbol: Trading pair
            limit: Depth limit (5, 10, 20, 50, 100, 500, 1000)
        """
        symbol = self.normalize_symbol(symbol)
        data = await self._get(
            f"{self._base_url}/fapi/v1/depth", {"symbol": symbol, "limit": limit}
        )

        return OrderbookData(
            symbol=symbol,
            bids=_parse_levels(data["bids"]),
            asks=_parse_levels(data["asks"]),
            timestamp=data.get("T", int(time.time() * 1000)),
        )

    async def get_exchange_info(self, refresh: bool = False) -> Dict[str, Any]:
        """Exchange info payload (symbols with status, base and quote asset). Cached."""
        if self._exchange_info_cache is None or refresh:
            self._exchange_info_cache = await self._get(f"{self._base_url}/fapi/v1/exchangeInfo")
        return self._exchange_info_cache
