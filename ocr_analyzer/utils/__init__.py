"""Utility modules for the ocr_analyzer package."""

from .retry import ExponentialBackoff, RetryError, retry_async

__all__ = [
    "ExponentialBackoff",
    "RetryError",
    "retry_async",
]
