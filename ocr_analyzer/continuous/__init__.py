"""
Continuous Order-Flow Architecture

Two feeds, one writer:
```
TRADE STREAM (aggTrade websocket, push)
├─ TradeEvent per aggressor trade
        ↓
DEPTH POLL (REST, every 2s)
├─ DepthSnapshot: top-10 bid / ask volume
        ↓
SESSION QUEUE -> STATE WRITER
├─ VolumeAccumulator (buy/sell volume, OCR ratio)
├─ RollingHistory (last 50 ratios)
├─ SignalClassifier (ratio + depth asymmetry)
        ↓
SessionSnapshot (read model for the display)
```

Exports resolve on first access. The engines import `data_types` from
here, and `session` imports the engines back, so nothing is loaded at
package import time.
"""

from __future__ import annotations

import importlib
from typing import Dict, Tuple

__all__ = [
    # Data types
    "TradeEvent",
    "DepthLevel",
    "DepthSnapshot",
    "FlowState",
    "SessionState",
    "SessionSnapshot",
    # Config
    "IngestionConfig",
    "SessionConfig",
    # History
    "RollingHistory",
    "HISTORY_CAPACITY",
    # Ingestion
    "AggTradeStream",
    "StreamState",
    "StreamStats",
    "parse_agg_trade",
    # Session
    "SessionController",
    "MetricsCollector",
]

_EXPORT_TO_SOURCE: Dict[str, Tuple[str, str]] = {}


def _register(module: str, names: list[str]) -> None:
    for name in names:
        _EXPORT_TO_SOURCE[name] = (module, name)


_register(
    ".data_types",
    [
        "TradeEvent",
        "DepthLevel",
        "DepthSnapshot",
        "FlowState",
        "SessionState",
        "SessionSnapshot",
        "IngestionConfig",
        "SessionConfig",
    ],
)
_register(".ring_buffer", ["RollingHistory", "HISTORY_CAPACITY"])
_register(".ingestion", ["AggTradeStream", "StreamState", "StreamStats", "parse_agg_trade"])
_register(".session", ["SessionController"])
_register(".metrics", ["MetricsCollector"])


def __getattr__(name: str):
    if name not in _EXPORT_TO_SOURCE:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, symbol_name = _EXPORT_TO_SOURCE[name]
    value = getattr(importlib.import_module(module_name, __name__), symbol_name)
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
