"""Formatting utilities for the order-flow display."""

from typing import Iterable

from ..engines.signals import FlowSignal, SignalLike, coerce_signal
from .colors import Colors

RATIO_HIGHLIGHT = 0.3

# Eighth-block glyphs, index 0 = lowest bar
_BAR_GLYPHS = "▁▂▃▄▅▆▇█"


def signal_color(signal: SignalLike) -> str:
    """Get color for signal type."""
    value = coerce_signal(signal)
    if value is FlowSignal.BUY:
        return Colors.GREEN
    elif value is FlowSignal.SELL:
        return Colors.RED
    else:
        return Colors.YELLOW


def ratio_color(ratio: float) -> str:
    """Green above +0.3, red below -0.3, blue in between."""
    if ratio > RATIO_HIGHLIGHT:
        return Colors.GREEN
    elif ratio < -RATIO_HIGHLIGHT:
        return Colors.RED
    return Colors.BLUE


def score_bar(score: float, width: int = 20) -> str:
    """Create a visual bar for score in [-1, +1] range.

    Args:
        score: Value from -1.0 to +1.0
        width: Bar width in characters

    Returns:
        Colored bar string with center marker
    """
    score = max(-1.0, min(1.0, score))
    center = width // 2
    filled = int((score + 1.0) / 2.0 * width)

    bar = ""
    for i in range(width):
        if i == center:
            bar += Colors.DIM + "│" + Colors.RESET
        elif i < center:
            # Sell side fills leftwards from the center
            if i >= filled:
                bar += Colors.RED + "█" + Colors.RESET
            else:
                bar += Colors.DIM + "░" + Colors.RESET
        else:
            if i < filled:
                bar += Colors.GREEN + "█" + Colors.RESET
            else:
                bar += Colors.DIM + "░" + Colors.RESET

    return bar


def history_bar(value: float) -> str:
    """One bar of the ratio history: height |value| capped at 1."""
    magnitude = min(abs(value), 1.0)
    glyph = _BAR_GLYPHS[min(int(magnitude * len(_BAR_GLYPHS)), len(_BAR_GLYPHS) - 1)]
    color = Colors.GREEN if value >= 0 else Colors.RED
    return f"{color}{glyph}{Colors.RESET}"


def history_strip(history: Iterable[float]) -> str:
    """Ratio history, oldest first, as a strip of colored bars."""
    bars = "".join(history_bar(v) for v in history)
    return bars or f"{Colors.DIM}(no trades yet){Colors.RESET}"
