"""
Tests for backoff delays and the async retry wrapper.
"""

import pytest

from ocr_analyzer.engines.data_fetcher import (
    RETRYABLE_ERRORS,
    BinanceAPIError,
    BinanceRateLimitError,
    BinanceServerError,
)
from ocr_analyzer.utils import retry as retry_module
from ocr_analyzer.utils.retry import ExponentialBackoff, RetryError, retry_async


@pytest.fixture
def sleeps(monkeypatch):
    """Record retry sleeps instead of waiting."""
    recorded = []

    async def fake_sleep(delay):
        recorded.append(delay)

    monkeypatch.setattr(retry_module.asyncio, "sleep", fake_sleep)
    return recorded


class Flaky:
    """Async callable failing with the given errors before returning `result`."""

    def __init__(self, *errors, result="ok"):
        self.errors = list(errors)
        self.result = result
        self.calls = 0
        self.__name__ = "flaky"

    async def __call__(self, *args, **kwargs):
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)
        return self.result


class TestExponentialBackoff:
    """Delay schedule."""

    def test_reconnect_schedule(self):
        """Stream reconnect delays with the default 1s base and 30s cap."""
        backoff = ExponentialBackoff(base=1.0, max_delay=30.0, jitter=False)

        assert [backoff.calculate(n) for n in range(7)] == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]

    def test_custom_multiplier(self):
        backoff = ExponentialBackoff(base=0.5, multiplier=3.0, jitter=False)
        assert backoff.calculate(2) == pytest.approx(4.5)

    @pytest.mark.parametrize("attempt", range(6))
    def test_jitter_bounds(self, attempt):
        backoff = ExponentialBackoff(base=1.0, max_delay=20.0)
        nominal = min(2.0**attempt, 20.0)

        assert 0.75 * nominal <= backoff.calculate(attempt) <= 1.25 * nominal

    def test_zero_base_never_waits(self):
        assert ExponentialBackoff(base=0.0, max_delay=0.0).calculate(5) == 0.0


class TestRetryAsync:
    """Retry wrapper as used by the REST client."""

    @pytest.mark.asyncio
    async def test_first_call_succeeds(self, sleeps):
        call = Flaky()

        assert await retry_async()(call)() == "ok"
        assert call.calls == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_rate_limit_then_success(self, sleeps):
        call = Flaky(BinanceRateLimitError(1), BinanceServerError(503, "busy"), result={"bids": []})
        wrapped = retry_async(
            max_attempts=3,
            exceptions=RETRYABLE_ERRORS,
            backoff=ExponentialBackoff(base=0.5, jitter=False),
        )(call)

        assert await wrapped() == {"bids": []}
        assert call.calls == 3
        assert sleeps == [0.5, 1.0]

    @pytest.mark.asyncio
    async def test_exhausted_wraps_last_error(self, sleeps):
        call = Flaky(BinanceServerError(502, "a"), BinanceServerError(504, "b"))
        wrapped = retry_async(max_attempts=2, exceptions=RETRYABLE_ERRORS)(call)

        with pytest.raises(RetryError) as exc_info:
            await wrapped()

        assert "flaky failed after 2 attempts" in str(exc_info.value)
        assert exc_info.value.last_exception.status_code == 504
        assert len(sleeps) == 1

    @pytest.mark.asyncio
    async def test_single_attempt_never_sleeps(self, sleeps):
        """The depth poll budget: one try, then RetryError."""
        call = Flaky(BinanceRateLimitError(None))

        with pytest.raises(RetryError):
            await retry_async(max_attempts=1, exceptions=RETRYABLE_ERRORS)(call)()

        assert call.calls == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_non_retryable_propagates(self, sleeps):
        """A 4xx API error is outside the retryable set."""
        call = Flaky(BinanceAPIError(400, "Invalid symbol"))

        with pytest.raises(BinanceAPIError):
            await retry_async(max_attempts=3, exceptions=RETRYABLE_ERRORS)(call)()

        assert call.calls == 1
        assert sleeps == []

    @pytest.mark.asyncio
    async def test_arguments_forwarded(self, sleeps):
        seen = []

        async def fetch(url, params=None):
            seen.append((url, params))
            return len(seen)

        assert await retry_async()(fetch)("/fapi/v1/depth", params={"limit": 10}) == 1
        assert seen == [("/fapi/v1/depth", {"limit": 10})]
