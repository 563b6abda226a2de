"""
Error taxonomy for the order-flow analyzer.

Transient and malformed errors are absorbed at the component boundary that
raises them. Only StreamConnectionError is allowed to reach the session
controller, where it faults the session.
"""

from typing import Optional


class OCRAnalyzerError(Exception):
    """Base exception for the analyzer."""


class TransientFetchError(OCRAnalyzerError):
    """Depth poll failed (network, HTTP status or payload shape)."""

    def __init__(self, symbol: str, cause: Optional[BaseException] = None):
        self.symbol = symbol
        self.cause = cause
        message = f"Depth fetch failed for {symbol}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class StreamConnectionError(OCRAnalyzerError):
    """Trade stream failed in a way that reconnecting will not fix."""

    def __init__(self, symbol: str, reason: str):
        self.symbol = symbol
        self.reason = reason
        super().__init__(f"Trade stream for {symbol} failed: {reason}")


class MalformedMessageError(OCRAnalyzerError):
    """A single stream message could not be parsed into a trade."""

    def __init__(self, reason: str, raw: str = ""):
        self.reason = reason
        self.raw = raw
        super().__init__(f"Malformed trade message: {reason}")


class UnknownInstrumentError(OCRAnalyzerError):
    """Base asset is not listed in the instrument catalog."""

    def __init__(self, base_asset: str):
        self.base_asset = base_asset
        super().__init__(f"No tradable contract for {base_asset}")
