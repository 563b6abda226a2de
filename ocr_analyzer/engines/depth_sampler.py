"""
Depth Sampler - top-of-book resting volume on each side.

Called on a fixed cadence by the session. Any failure surfaces as a single
TransientFetchError; the caller keeps its previous snapshot.
"""

import asyncio
import logging
from typing import List, Protocol

import aiohttp

from ..continuous.data_types import DepthLevel, DepthSnapshot
from ..errors import TransientFetchError
from ..utils.retry import RetryError
from .data_fetcher import BinanceAPIError

logger = logging.getLogger(__name__)

DEFAULT_DEPTH_LEVELS = 10


class OrderbookLike(Protocol):
    bids: List[DepthLevel]
    asks: List[DepthLevel]
    timestamp: int


class DepthSource(Protocol):
    """Request/response endpoint returning the top-N levels of a book."""

    async def get_orderbook(self, symbol: str, limit: int = 10) -> OrderbookLike: ...


class DepthSampler:
    """Fetches the book and aggregates bid/ask volume over the top N levels."""

    def __init__(self, source: DepthSource, levels: int = DEFAULT_DEPTH_LEVELS):
        if levels <= 0:
            raise ValueError("levels must be positive")
        self._source = source
        self._levels = levels

    @property
    def levels(self) -> int:
        return self._levels

    async def sample(self, symbol: str) -> DepthSnapshot:
        """
        Take one depth sample.

        Raises:
            TransientFetchError: network, HTTP or payload failure
        """
        try:
            book = await self._source.get_orderbook(symbol, limit=self._levels)
            return DepthSnapshot.from_levels(
                book.bids,
                book.asks,
                levels=self._levels,
                sampled_at_ms=book.timestamp,
            )
        except (
            BinanceAPIError,
            RetryError,
            aiohttp.ClientError,
            asyncio.TimeoutError,
            KeyError,
            IndexError,
            TypeError,
            ValueError,
        ) as e:
            raise TransientFetchError(symbol, e) from e
