"""Display utilities for order-flow output."""

from .colors import Colors
from .formatters import history_bar, history_strip, ratio_color, score_bar, signal_color
from .printers import print_catalog, print_session, render_catalog, render_session

__all__ = [
    # Colors
    "Colors",
    # Formatters
    "signal_color",
    "ratio_color",
    "score_bar",
    "history_bar",
    "history_strip",
    # Printers
    "render_session",
    "render_catalog",
    "print_session",
    "print_catalog",
]
