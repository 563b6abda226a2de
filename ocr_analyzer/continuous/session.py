"""
Session Controller - lifecycle and single-writer state for one analysis session.

Wires together:
- Trade stream (push, variable rate)  ──┐
- Depth poll (pull, fixed cadence)    ──┼──> message queue ──> state writer
                                        │                      ├─ VolumeAccumulator
                                        │                      ├─ depth snapshot
                                        │                      └─ SignalClassifier
- Presentation reads `snapshot()`     <─┘

Lifecycle: IDLE -> STARTING -> RUNNING -> STOPPING -> IDLE, with FAULTED
reachable from RUNNING when the trade stream fails for good.

Only the consumer task mutates session state, and each merge step is fully
synchronous, so a snapshot never sees a half-applied update. Network I/O
(stream reads, depth fetches) happens in the producer tasks, outside the
merge step.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Union

from ..engines.data_fetcher import DEPTH_REQUEST_CONFIG, BinanceFetcher
from ..engines.depth_sampler import DepthSampler, DepthSource
from ..engines.order_flow import VolumeAccumulator
from ..engines.signal_classifier import classify
from ..engines.signals import FlowSignal
from ..errors import StreamConnectionError, TransientFetchError
from ..logging_config import log_exception
from .data_types import (
    DepthSnapshot,
    FlowState,
    SessionConfig,
    SessionSnapshot,
    SessionState,
    TradeEvent,
)
from .ingestion import AggTradeStream
from .metrics import MetricsCollector

logger = logging.getLogger(__name__)

SessionMessage = Union[TradeEvent, DepthSnapshot]


class TradeStream(Protocol):
    """Subscribable channel of TradeEvents for one symbol."""

    async def run(self, on_trade: Callable[[TradeEvent], Awaitable[None]]) -> None: ...

    async def close(self) -> None: ...


StreamFactory = Callable[[str], TradeStream]


@dataclass
class _LiveSession:
    """Internals of the running session. Discarded on stop or fault."""

    generation: int
    symbol: str
    stream: TradeStream
    accumulator: VolumeAccumulator
    queue: "asyncio.Queue[SessionMessage]"
    depth: Optional[DepthSnapshot] = None
    signal: FlowSignal = FlowSignal.NEUTRAL
    updated_at_ms: int = 0
    closed: bool = False
    tasks: List[asyncio.Task] = field(default_factory=list)


class SessionController:
    """
    Owns at most one running analysis session.

    Usage:
        controller = SessionController()

        @controller.on_fault
        def handle_fault(error):
            print(f"Session faulted: {error}")

        async with controller:
            await controller.start("BTCUSDT")
            await asyncio.sleep(60)
            print(controller.snapshot().flow.ratio)
    """

    def __init__(
        self,
        config: Optional[SessionConfig] = None,
        depth_source: Optional[DepthSource] = None,
        stream_factory: Optional[StreamFactory] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.config = config or SessionConfig()
        self._depth_source = depth_source
        self._stream_factory = stream_factory or self._default_stream
        self._metrics = metrics or MetricsCollector()

        self._state = SessionState.IDLE
        self._session: Optional[_LiveSession] = None
        self._generation = 0
        self._last_error: Optional[str] = None
        self._release_task: Optional[asyncio.Task] = None

        self._on_fault_callbacks: List[Callable] = []
        self._on_state_change_callbacks: List[Callable] = []

    # === Properties ===

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def symbol(self) -> Optional[str]:
        return self._session.symbol if self._session else None

    @property
    def last_error(self) -> Optional[str]:
        """Human-readable cause of the last fault."""
        return self._last_error

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    # === Callback Registration ===

    def on_fault(self, callback: Callable[[StreamConnectionError], Any]) -> Callable:
        """Register callback for fatal stream errors. Usable as a decorator."""
        self._on_fault_callbacks.append(callback)
        return callback

    def on_state_change(self, callback: Callable[[SessionState, SessionState], Any]) -> Callable:
        """Register callback receiving (old_state, new_state)."""
        self._on_state_change_callbacks.append(callback)
        return callback

    # === Read Model ===

    def snapshot(self) -> SessionSnapshot:
        """Consistent view of the current session for display."""
        session = self._session
        if session is None:
            return SessionSnapshot(
                symbol=None,
                state=self._state,
                flow=FlowState(),
                history=(),
                depth=None,
                signal=FlowSignal.NEUTRAL,
                error=self._last_error if self._state is SessionState.FAULTED else None,
            )

        return SessionSnapshot(
            symbol=session.symbol,
            state=self._state,
            flow=session.accumulator.state,
            history=tuple(session.accumulator.history),
            depth=session.depth,
            signal=session.signal,
            updated_at_ms=session.updated_at_ms,
        )

    # === Lifecycle ===

    async def start(self, symbol: str) -> None:
        """
        Start analysing `symbol`.

        A running session on another symbol is stopped first; a running
        session on the same symbol is left alone.
        """
        symbol = symbol.strip().upper().replace("/", "").replace("-", "")
        if not symbol:
            raise ValueError("symbol must not be empty")

        while self._state is not SessionState.IDLE:
            if (
                self._state is SessionState.RUNNING
                and self._release_task is None
                and self._session is not None
                and self._session.symbol == symbol
            ):
                logger.info(f"Session for {symbol} already running")
                return
            await self.stop()

        self._set_state(SessionState.STARTING)
        self._generation += 1
        self._last_error = None

        session = _LiveSession(
            generation=self._generation,
            symbol=symbol,
            stream=self._stream_factory(symbol),
            accumulator=VolumeAccumulator(self.config.history_capacity),
            queue=asyncio.Queue(maxsize=self.config.queue_maxsize),
        )
        self._session = session

        logger.info(
            f"Starting session #{session.generation} for {symbol} "
            f"(depth every {self.config.poll_interval_ms}ms)"
        )
        session.tasks = [
            asyncio.create_task(self._consume(session), name=f"ocr-writer-{symbol}"),
            asyncio.create_task(self._pump_trades(session), name=f"ocr-trades-{symbol}"),
            asyncio.create_task(self._poll_depth(session), name=f"ocr-depth-{symbol}"),
        ]
        self._set_state(SessionState.RUNNING)

    async def stop(self) -> None:
        """Release the session and return to IDLE. Idempotent."""
        while self._state is not SessionState.IDLE:
            if self._release_task is None:
                self._release_task = asyncio.create_task(self._release(SessionState.IDLE))
            await asyncio.shield(self._release_task)

    async def aclose(self) -> None:
        """Shutdown hook: same release path from any state."""
        await self.stop()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    # === Release ===

    async def _release(self, target: SessionState, keep: Optional[asyncio.Task] = None) -> None:
        """Close the stream, cancel the session tasks and discard the session."""
        try:
            session = self._session
            if session is not None:
                if target is SessionState.IDLE:
                    self._set_state(SessionState.STOPPING)
                session.closed = True

                try:
                    await session.stream.close()
                except Exception as e:
                    logger.warning(f"Error closing trade stream for {session.symbol}: {e}")

                pending = [t for t in session.tasks if t is not keep]
                for task in pending:
                    if not task.done():
                        task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

                self._session = None
                logger.info(f"Session #{session.generation} for {session.symbol} released")

            self._set_state(target)
        finally:
            self._release_task = None

    async def _fault(self, session: _LiveSession, error: StreamConnectionError) -> None:
        """Stream failed for good: release everything, then report once."""
        if session.closed or session is not self._session or self._release_task is not None:
            return

        self._last_error = str(error)
        self._metrics.increment("faults")
        logger.error(f"Session for {session.symbol} faulted: {error}")

        self._release_task = asyncio.create_task(
            self._release(SessionState.FAULTED, keep=asyncio.current_task())
        )
        await asyncio.shield(self._release_task)

        for callback in self._on_fault_callbacks:
            try:
                result = callback(error)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Fault callback error: {e}")

    def _set_state(self, new_state: SessionState) -> None:
        old_state = self._state
        if old_state is new_state:
            return
        self._state = new_state
        logger.debug(f"Session state: {old_state.value} -> {new_state.value}")

        for callback in self._on_state_change_callbacks:
            try:
                callback(old_state, new_state)
            except Exception as e:
                logger.error(f"State change callback error: {e}")

    # === Producers ===

    def _default_stream(self, symbol: str) -> TradeStream:
        return AggTradeStream(symbol, config=self.config.ingestion)

    async def _pump_trades(self, session: _LiveSession) -> None:
        """Forward trades from the stream into the session queue, in arrival order."""

        async def on_trade(event: TradeEvent) -> None:
            if not session.closed:
                await session.queue.put(event)

        try:
            await session.stream.run(on_trade)
        except StreamConnectionError as e:
            await self._fault(session, e)
            return
        except Exception as e:
            log_exception(logger, e, f"Trade stream for {session.symbol} crashed")
            await self._fault(session, StreamConnectionError(session.symbol, f"stream crashed: {e}"))
            return

        if not session.closed:
            await self._fault(
                session, StreamConnectionError(session.symbol, "stream ended unexpectedly")
            )

    async def _poll_depth(self, session: _LiveSession) -> None:
        """Sample depth on a fixed cadence. Failures keep the previous snapshot."""
        interval_s = self.config.poll_interval_ms / 1000
        fetcher: Optional[BinanceFetcher] = None
        source = self._depth_source
        if source is None:
            fetcher = BinanceFetcher(
                request_config=DEPTH_REQUEST_CONFIG,
                base_url=self.config.ingestion.rest_base,
            )
            await fetcher.open()
            source = fetcher

        sampler = DepthSampler(source, levels=self.config.ingestion.depth_levels)
        try:
            while not session.closed:
                start = time.monotonic()
                try:
                    with self._metrics.time("depth_fetch"):
                        snapshot = await sampler.sample(session.symbol)
                except TransientFetchError as e:
                    self._metrics.increment("depth_failures")
                    logger.warning(f"{e}; keeping previous depth snapshot")
                except Exception as e:
                    self._metrics.increment("depth_failures")
                    log_exception(logger, e, f"Depth poll for {session.symbol} failed")
                else:
                    if not session.closed:
                        await session.queue.put(snapshot)

                elapsed = time.monotonic() - start
                await asyncio.sleep(max(0.0, interval_s - elapsed))
        finally:
            if fetcher is not None:
                await fetcher.close()

    # === State Writer ===

    async def _consume(self, session: _LiveSession) -> None:
        """The only writer of session state."""
        while True:
            message = await session.queue.get()
            if session.closed:
                continue

            try:
                if isinstance(message, TradeEvent):
                    self._merge_trade(session, message)
                else:
                    self._merge_depth(session, message)
            except Exception as e:
                self._metrics.increment("dropped_messages")
                log_exception(logger, e, f"Dropped {type(message).__name__} for {session.symbol}")

    def _merge_trade(self, session: _LiveSession, event: TradeEvent) -> None:
        session.accumulator.apply(event)
        session.updated_at_ms = int(time.time() * 1000)
        self._metrics.record_event("trades")

    def _merge_depth(self, session: _LiveSession, depth: DepthSnapshot) -> None:
        signal = classify(session.accumulator.state.ratio, depth)
        session.depth = depth
        if signal is not session.signal:
            logger.info(f"{session.symbol} signal: {signal.description}")
        session.signal = signal
        session.updated_at_ms = int(time.time() * 1000)
        self._metrics.record_event("depth_samples")
