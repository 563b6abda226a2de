"""
Core data types for the order-flow session.

These are the atomic units flowing through the system.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from ..engines.signals import FlowSignal

# =============================================================================
# RAW DATA EVENTS (from exchanges)
# =============================================================================


@dataclass(frozen=True, slots=True)
class TradeEvent:
    """
    Single aggregated trade event.

    From Binance aggTrade stream the `m` flag (buyer is maker) decides the
    aggressor:
    - m=True  -> Seller aggressed (hit bid) -> SELL
    - m=False -> Buyer aggressed (lifted ask) -> BUY
    """

    price: float
    quantity: float
    is_seller_aggressor: bool
    timestamp_ms: int = 0
    trade_id: int = 0


@dataclass(frozen=True, slots=True)
class DepthLevel:
    """Single price level in the order book."""

    price: float
    quantity: float


@dataclass(frozen=True)
class DepthSnapshot:
    """
    Aggregated top-of-book depth from one poll.

    Replaced wholesale on every successful sample.
    """

    bid_volume: float
    ask_volume: float
    sampled_at_ms: int = field(default_factory=lambda: int(time.time() * 1000))
    levels: int = 10

    @classmethod
    def from_levels(
        cls,
        bids: List[DepthLevel],
        asks: List[DepthLevel],
        levels: int = 10,
        sampled_at_ms: Optional[int] = None,
    ) -> "DepthSnapshot":
        """Sum resting quantity across the top `levels` on each side."""
        return cls(
            bid_volume=sum(b.quantity for b in bids[:levels]),
            ask_volume=sum(a.quantity for a in asks[:levels]),
            sampled_at_ms=sampled_at_ms if sampled_at_ms is not None else int(time.time() * 1000),
            levels=levels,
        )


# =============================================================================
# SESSION STATE
# =============================================================================


@dataclass(frozen=True)
class FlowState:
    """
    Cumulative aggressor volume since session start.

    ratio = (buy - sell) / (buy + sell), or 0 before any volume.
    """

    buy_volume: float = 0.0
    sell_volume: float = 0.0
    ratio: float = 0.0
    last_price: float = 0.0
    trade_count: int = 0


class SessionState(Enum):
    """Lifecycle of an analysis session."""

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    FAULTED = "faulted"


@dataclass(frozen=True)
class SessionSnapshot:
    """
    Consistent read model of one session, handed to the presentation layer.

    Built in a single synchronous step, so flow state, history and depth
    always describe the same instant.
    """

    symbol: Optional[str]
    state: SessionState
    flow: FlowState
    history: Tuple[float, ...]
    depth: Optional[DepthSnapshot]
    signal: FlowSignal
    error: Optional[str] = None
    updated_at_ms: int = 0


# =============================================================================
# CONFIGURATION
# =============================================================================


@dataclass
class IngestionConfig:
    """Endpoints and connection behaviour for the two feeds."""

    # Trade stream (push)
    ws_base: str = "wss://stream.binance.com:9443/ws"
    heartbeat_s: float = 30.0
    receive_timeout_s: float = 60.0
    max_reconnect_attempts: int = 3
    reconnect_base_delay_s: float = 1.0
    reconnect_max_delay_s: float = 30.0

    # Depth (pull)
    rest_base: str = "https://fapi.binance.com"
    depth_levels: int = 10


@dataclass
class SessionConfig:
    """Configuration for one analysis session."""

    ingestion: IngestionConfig = None

    poll_interval_ms: int = 2000
    history_capacity: int = 50

    # Bound on messages waiting for the state writer (0 = unbounded)
    queue_maxsize: int = 0

    def __post_init__(self):
        if self.ingestion is None:
            self.ingestion = IngestionConfig()
