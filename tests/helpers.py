"""In-memory stand-ins for the trade stream and the depth endpoint."""

import asyncio
import re
from collections import deque
from typing import List

from ocr_analyzer.continuous.data_types import DepthLevel, TradeEvent
from ocr_analyzer.engines.data_fetcher import OrderbookData
from ocr_analyzer.errors import StreamConnectionError

_END = object()
_ANSI_RE = re.compile(r"\033\[[0-9;]*[A-Za-z]")


def strip_ansi(text: str) -> str:
    return _ANSI_RE.sub("", text)


def trade(quantity: float, buy: bool = True, price: float = 100.0) -> TradeEvent:
    return TradeEvent(price=price, quantity=quantity, is_seller_aggressor=not buy)


class FakeTradeStream:
    """Delivers whatever the test feeds it, until closed."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        self.close_calls = 0
        self.close_delay = 0.0
        self.on_trade = None
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def run(self, on_trade) -> None:
        self.on_trade = on_trade
        while True:
            item = await self._inbox.get()
            if item is _END:
                return
            if isinstance(item, BaseException):
                raise item
            await on_trade(item)

    async def close(self) -> None:
        self.close_calls += 1
        self._inbox.put_nowait(_END)
        if self.close_delay:
            await asyncio.sleep(self.close_delay)

    def emit(self, *events: TradeEvent) -> None:
        for event in events:
            self._inbox.put_nowait(event)

    def fail(self, reason: str = "connection refused") -> None:
        self._inbox.put_nowait(StreamConnectionError(self.symbol, reason))

    def crash(self, error: BaseException) -> None:
        """Make run() raise an arbitrary error."""
        self._inbox.put_nowait(error)

    def end(self) -> None:
        """Server-side end of stream without close() being called."""
        self._inbox.put_nowait(_END)


class FakeStreamFactory:
    def __init__(self):
        self.streams: List[FakeTradeStream] = []

    def __call__(self, symbol: str) -> FakeTradeStream:
        stream = FakeTradeStream(symbol)
        self.streams.append(stream)
        return stream

    @property
    def last(self) -> FakeTradeStream:
        return self.streams[-1]


class FakeDepthSource:
    """
    Answers get_orderbook with queued outcomes, then with the default book.

    An outcome is a (bid_volume, ask_volume) pair or an exception to raise.
    """

    def __init__(self, bid_volume: float = 100.0, ask_volume: float = 70.0):
        self.default = (bid_volume, ask_volume)
        self.outcomes: deque = deque()
        self.calls: List[tuple] = []

    def queue(self, *outcomes) -> None:
        self.outcomes.extend(outcomes)

    async def get_orderbook(self, symbol: str, limit: int = 10) -> OrderbookData:
        self.calls.append((symbol, limit))
        outcome = self.outcomes.popleft() if self.outcomes else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        bid_volume, ask_volume = outcome
        return OrderbookData(
            symbol=symbol,
            bids=[DepthLevel(price=99.0, quantity=bid_volume)],
            asks=[DepthLevel(price=101.0, quantity=ask_volume)],
            timestamp=1_700_000_000_000,
        )


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll `predicate` until true, failing the test on timeout."""
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached before timeout")
        await asyncio.sleep(0.005)
