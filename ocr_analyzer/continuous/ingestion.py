"""
Data Ingestion Layer - aggTrade websocket stream.

Handles:
- Connecting to the per-symbol aggTrade stream
- Parsing messages into TradeEvents (malformed ones are dropped and counted)
- Reconnecting with exponential backoff after transport errors
- Escalating to StreamConnectionError when the stream cannot be kept alive
"""

import asyncio
import json
import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Optional

import aiohttp

from ..errors import MalformedMessageError, StreamConnectionError
from ..utils.retry import ExponentialBackoff
from .data_types import IngestionConfig, TradeEvent

logger = logging.getLogger(__name__)

TradeCallback = Callable[[TradeEvent], Awaitable[None]]


class StreamState(Enum):
    """State of a data stream."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    ERROR = "error"


@dataclass
class StreamStats:
    """Statistics for a data stream."""

    messages_received: int = 0
    bytes_received: int = 0
    malformed_messages: int = 0
    last_message_time: Optional[int] = None
    reconnect_count: int = 0
    error_count: int = 0


def parse_agg_trade(raw: str) -> TradeEvent:
    """
    Parse one aggTrade message.

    Fields: p=price, q=quantity, m=buyer is maker (seller aggressed),
    T=trade time, a=aggregate trade id.

    Raises:
        MalformedMessageError: anything that is not a well-formed trade
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedMessageError("invalid JSON", str(raw)) from e

    # Combined-stream envelope: {"stream": ..., "data": {...}}
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        data = data["data"]

    if not isinstance(data, dict):
        raise MalformedMessageError("expected a JSON object", raw)

    try:
        price = float(data["p"])
        quantity = float(data["q"])
        is_buyer_maker = data["m"]
        timestamp_ms = int(data.get("T", 0))
        trade_id = int(data.get("a", 0))
    except KeyError as e:
        raise MalformedMessageError(f"missing field {e}", raw) from e
    except (TypeError, ValueError) as e:
        raise MalformedMessageError(f"non-numeric field: {e}", raw) from e

    if not isinstance(is_buyer_maker, bool):
        raise MalformedMessageError("maker flag is not a boolean", raw)
    if not (math.isfinite(price) and math.isfinite(quantity)):
        raise MalformedMessageError("non-finite price or quantity", raw)
    if price < 0 or quantity < 0:
        raise MalformedMessageError("negative price or quantity", raw)

    return TradeEvent(
        price=price,
        quantity=quantity,
        is_seller_aggressor=is_buyer_maker,
        timestamp_ms=timestamp_ms,
        trade_id=trade_id,
    )


class AggTradeStream:
    """
    WebSocket stream for aggregated trades.

    `run` delivers parsed trades, in arrival order, to an async callback
    until `close` is called or the stream fails for good. Messages that
    arrive after `close` are discarded.

    Usage:
        stream = AggTradeStream("BTCUSDT")
        task = asyncio.create_task(stream.run(on_trade))
        ...
        await stream.close()
    """

    def __init__(
        self,
        symbol: str,
        config: Optional[IngestionConfig] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.symbol = symbol.upper().replace("/", "").replace("-", "")
        self._config = config or IngestionConfig()
        self._session = session
        self._owns_session = session is None
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None
        self._on_trade: Optional[TradeCallback] = None
        self._state = StreamState.DISCONNECTED
        self._stats = StreamStats()
        self._running = False
        self._backoff = ExponentialBackoff(
            base=self._config.reconnect_base_delay_s,
            max_delay=self._config.reconnect_max_delay_s,
        )

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def stats(self) -> StreamStats:
        return self._stats

    @property
    def stream_name(self) -> str:
        return f"{self.symbol.lower()}@aggTrade"

    @property
    def url(self) -> str:
        return f"{self._config.ws_base}/{self.stream_name}"

    async def run(self, on_trade: TradeCallback) -> None:
        """
        Main stream loop with reconnection.

        Raises:
            StreamConnectionError: handshake rejected, or reconnect budget spent
        """
        if self._running:
            raise RuntimeError(f"Stream {self.stream_name} is already running")

        self._running = True
        self._on_trade = on_trade
        if self._session is None:
            self._session = aiohttp.ClientSession()

        failures = 0
        try:
            while self._running:
                reason = "connection closed by server"
                try:
                    self._state = StreamState.CONNECTING
                    logger.info(f"Connecting to {self.url}")

                    async with self._session.ws_connect(
                        self.url,
                        heartbeat=self._config.heartbeat_s,
                        receive_timeout=self._config.receive_timeout_s,
                    ) as ws:
                        self._ws = ws
                        self._state = StreamState.CONNECTED
                        logger.info(f"WebSocket connected for {self.symbol}")

                        async for msg in ws:
                            if not self._running:
                                break

                            if msg.type == aiohttp.WSMsgType.TEXT:
                                # budget resets only once the feed delivers
                                failures = 0
                                await self._handle_message(msg.data)
                            elif msg.type == aiohttp.WSMsgType.ERROR:
                                reason = f"websocket error: {ws.exception()}"
                                logger.error(f"WebSocket error on {self.stream_name}: {ws.exception()}")
                                break

                except aiohttp.WSServerHandshakeError as e:
                    raise StreamConnectionError(
                        self.symbol, f"handshake rejected with HTTP {e.status}"
                    ) from e
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    reason = str(e) or type(e).__name__
                finally:
                    self._ws = None

                if not self._running:
                    break

                failures += 1
                self._stats.error_count += 1
                if failures > self._config.max_reconnect_attempts:
                    raise StreamConnectionError(
                        self.symbol, f"{reason} (gave up after {failures} attempts)"
                    )

                self._state = StreamState.RECONNECTING
                self._stats.reconnect_count += 1
                delay = self._backoff.calculate(failures - 1)
                logger.warning(
                    f"Trade stream {self.stream_name} dropped ({reason}), "
                    f"reconnecting in {delay:.1f}s ({failures}/{self._config.max_reconnect_attempts})"
                )
                await asyncio.sleep(delay)

        except StreamConnectionError:
            self._state = StreamState.ERROR
            raise
        finally:
            self._running = False
            if self._owns_session and self._session:
                await self._session.close()
                self._session = None
            if self._state is not StreamState.ERROR:
                self._state = StreamState.DISCONNECTED
            logger.info(f"WebSocket connection closed for {self.symbol}")

    async def close(self) -> None:
        """Stop delivering trades and close the socket."""
        self._running = False
        ws = self._ws
        if ws is not None and not ws.closed:
            await ws.close()

    async def _handle_message(self, raw: str) -> None:
        """Parse and deliver one trade message."""
        self._stats.messages_received += 1
        self._stats.bytes_received += len(raw)
        self._stats.last_message_time = int(time.time() * 1000)

        try:
            trade = parse_agg_trade(raw)
        except MalformedMessageError as e:
            self._stats.malformed_messages += 1
            logger.warning(f"Dropped message on {self.stream_name}: {e.reason}")
            return

        if self._running and self._on_trade is not None:
            await self._on_trade(trade)
