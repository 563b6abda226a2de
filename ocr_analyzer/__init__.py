"""Order-flow ratio (OCR) and depth imbalance analyzer.

Public symbols are exposed lazily so importing `ocr_analyzer` does not
eagerly import network dependencies (`aiohttp`) or `pandas`.
"""

from __future__ import annotations

import importlib
from typing import Dict, Tuple


__version__ = "0.1.0"

__all__ = [
    # Errors
    "OCRAnalyzerError",
    "TransientFetchError",
    "StreamConnectionError",
    "MalformedMessageError",
    "UnknownInstrumentError",
    # Data types
    "TradeEvent",
    "DepthLevel",
    "DepthSnapshot",
    "FlowState",
    "SessionState",
    "SessionSnapshot",
    "IngestionConfig",
    "SessionConfig",
    # History
    "RollingHistory",
    # Engines
    "FlowSignal",
    "VolumeAccumulator",
    "accumulate",
    "flow_ratio",
    "classify",
    "DepthSampler",
    "InstrumentCatalog",
    "CoinListing",
    "Contract",
    # REST client
    "BinanceFetcher",
    "OrderbookData",
    "RequestConfig",
    "DEFAULT_REQUEST_CONFIG",
    "BinanceAPIError",
    "BinanceRateLimitError",
    "BinanceTimeoutError",
    "BinanceConnectionError",
    # Session
    "AggTradeStream",
    "parse_agg_trade",
    "SessionController",
    "MetricsCollector",
]

_EXPORT_TO_SOURCE: Dict[str, Tuple[str, str]] = {}


def _register(module: str, names: list[str], aliases: Dict[str, str] | None = None) -> None:
    for name in names:
        _EXPORT_TO_SOURCE[name] = (module, name)
    for export_name, source_name in (aliases or {}).items():
        _EXPORT_TO_SOURCE[export_name] = (module, source_name)


_register(
    ".errors",
    [
        "OCRAnalyzerError",
        "TransientFetchError",
        "StreamConnectionError",
        "MalformedMessageError",
        "UnknownInstrumentError",
    ],
)

_register(
    ".continuous.data_types",
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

_register(".continuous.ring_buffer", ["RollingHistory"])
_register(".engines.signals", ["FlowSignal"])
_register(".engines.order_flow", ["VolumeAccumulator", "accumulate", "flow_ratio"])
_register(".engines.signal_classifier", ["classify"])
_register(".engines.depth_sampler", ["DepthSampler"])
_register(".engines.instrument_catalog", ["InstrumentCatalog", "CoinListing", "Contract"])

_register(
    ".engines.data_fetcher",
    [
        "BinanceFetcher",
        "OrderbookData",
        "RequestConfig",
        "DEFAULT_REQUEST_CONFIG",
        "BinanceAPIError",
        "BinanceRateLimitError",
        "BinanceTimeoutError",
        "BinanceConnectionError",
    ],
)

_register(".continuous.ingestion", ["AggTradeStream", "parse_agg_trade"])
_register(".continuous.session", ["SessionController"])
_register(".continuous.metrics", ["MetricsCollector"])


_missing_exports = [name for name in __all__ if name not in _EXPORT_TO_SOURCE]
if _missing_exports:
    raise RuntimeError(f"Lazy export map incomplete: {_missing_exports}")


def __getattr__(name: str):
    if name not in _EXPORT_TO_SOURCE:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")

    module_name, symbol_name = _EXPORT_TO_SOURCE[name]
    module = importlib.import_module(module_name, __name__)
    value = getattr(module, symbol_name)

    # Cache resolved symbol on module globals for subsequent fast access.
    globals()[name] = value
    return value


def __dir__() -> list[str]:
    return sorted(set(globals()) | set(__all__))
