"""
Order Flow Accumulator - aggressor volume and the order-flow ratio (OCR).

Every trade is classified by its aggressor side and added to the cumulative
buy or sell volume. The ratio is the normalized difference:

    OCR = (buy - sell) / (buy + sell)        in [-1, +1]

+1 means every unit traded was a market buy, -1 every unit a market sell,
0 balanced flow (or no flow yet).
"""

from ..continuous.data_types import FlowState, TradeEvent
from ..continuous.ring_buffer import HISTORY_CAPACITY, RollingHistory


def flow_ratio(buy_volume: float, sell_volume: float) -> float:
    """Normalized volume delta, 0 when no volume has traded."""
    total = buy_volume + sell_volume
    if total <= 0:
        return 0.0
    return (buy_volume - sell_volume) / total


def accumulate(state: FlowState, event: TradeEvent) -> FlowState:
    """Return the flow state after applying one trade. Pure."""
    buy_volume = state.buy_volume
    sell_volume = state.sell_volume

    if event.is_seller_aggressor:
        sell_volume += event.quantity
    else:
        buy_volume += event.quantity

    return FlowState(
        buy_volume=buy_volume,
        sell_volume=sell_volume,
        ratio=flow_ratio(buy_volume, sell_volume),
        last_price=event.price,
        trade_count=state.trade_count + 1,
    )


class VolumeAccumulator:
    """
    Owns the cumulative flow state and its ratio history.

    `apply` advances both in one synchronous step, so the history always
    holds exactly one entry per applied trade (up to its capacity).

    Usage:
        acc = VolumeAccumulator()
        acc.apply(TradeEvent(price=100.0, quantity=10, is_seller_aggressor=False))
        acc.state.ratio  # 1.0
    """

    def __init__(self, history_capacity: int = HISTORY_CAPACITY):
        self._state = FlowState()
        self._history = RollingHistory(history_capacity)

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def history(self) -> RollingHistory:
        return self._history

    def apply(self, event: TradeEvent) -> FlowState:
        """Fold one trade into the flow state and push the new ratio."""
        self._state = accumulate(self._state, event)
        self._history.push(self._state.ratio)
        return self._state
