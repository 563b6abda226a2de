"""Shared signal enum and helpers to avoid stringly-typed signals."""

from enum import Enum
from typing import Union


class FlowSignal(Enum):
    """Discrete output of the order-flow classifier."""
    NEUTRAL = "neutral"
    BUY = "buy"
    SELL = "sell"

    def __str__(self) -> str:
        return self.value

    @property
    def description(self) -> str:
        """Human-readable label for display."""
        return _DESCRIPTIONS[self]


_DESCRIPTIONS = {
    FlowSignal.NEUTRAL: "Watching...",
    FlowSignal.BUY: "Buy signal: OCR high, asks thinning",
    FlowSignal.SELL: "Sell signal: OCR low, bids thinning",
}


SignalLike = Union[FlowSignal, str]


def coerce_signal(signal: SignalLike, default: FlowSignal = FlowSignal.NEUTRAL) -> FlowSignal:
    """Convert a string to FlowSignal, falling back to default for unknown values."""
    if isinstance(signal, FlowSignal):
        return signal
    try:
        return FlowSignal(str(signal))
    except ValueError:
        return default
