"""
Signal Classifier - order-flow ratio + book depth -> discrete signal.

Rules (first match wins):
1. ratio >  RATIO_THRESHOLD and ask < bid * DEPTH_ASYMMETRY  -> BUY
2. ratio < -RATIO_THRESHOLD and bid < ask * DEPTH_ASYMMETRY  -> SELL
3. otherwise                                                  -> NEUTRAL

Strong aggressive buying while the ask side thins out suggests supply is
being exhausted; the sell rule is the mirror image.

Both thresholds are empirically tuned constants, not derived values.
Adjust them here; they are not exposed as runtime parameters.
"""

from typing import Optional

from ..continuous.data_types import DepthSnapshot
from .signals import FlowSignal

RATIO_THRESHOLD = 0.7
DEPTH_ASYMMETRY = 0.8


def classify(ratio: float, depth: Optional[DepthSnapshot]) -> FlowSignal:
    """Classify the current flow. Total: any depth (including None or zeros) is valid."""
    if depth is None:
        return FlowSignal.NEUTRAL

    bids = depth.bid_volume
    asks = depth.ask_volume

    if ratio > RATIO_THRESHOLD and asks < bids * DEPTH_ASYMMETRY:
        return FlowSignal.BUY
    if ratio < -RATIO_THRESHOLD and bids < asks * DEPTH_ASYMMETRY:
        return FlowSignal.SELL
    return FlowSignal.NEUTRAL
