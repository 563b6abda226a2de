"""
Tests for terminal rendering.
"""

from ocr_analyzer.continuous.data_types import DepthSnapshot, FlowState, SessionSnapshot, SessionState
from ocr_analyzer.display import (
    Colors,
    history_bar,
    ratio_color,
    render_catalog,
    render_session,
    signal_color,
)
from ocr_analyzer.engines.instrument_catalog import CoinListing, Contract
from ocr_analyzer.engines.signals import FlowSignal

from helpers import strip_ansi


def snapshot(**overrides) -> SessionSnapshot:
    fields = dict(
        symbol="BTCUSDT",
        state=SessionState.RUNNING,
        flow=FlowState(buy_volume=10.0, sell_volume=4.0, ratio=6 / 14, last_price=43000.123456, trade_count=2),
        history=(1.0, 6 / 14),
        depth=DepthSnapshot(bid_volume=100.0, ask_volume=70.0, sampled_at_ms=0),
        signal=FlowSignal.NEUTRAL,
        updated_at_ms=1_700_000_000_000,
    )
    fields.update(overrides)
    return SessionSnapshot(**fields)


class TestFormatters:
    """Tests for color and bar helpers."""

    def test_ratio_color(self):
        assert ratio_color(0.31) == Colors.GREEN
        assert ratio_color(-0.31) == Colors.RED
        assert ratio_color(0.3) == Colors.BLUE
        assert ratio_color(0.0) == Colors.BLUE

    def test_signal_color(self):
        assert signal_color(FlowSignal.BUY) == Colors.GREEN
        assert signal_color("sell") == Colors.RED
        assert signal_color(FlowSignal.NEUTRAL) == Colors.YELLOW

    def test_history_bar(self):
        """Color follows the sign; height is capped at a full block."""
        assert history_bar(0.0).startswith(Colors.GREEN)
        assert history_bar(-0.5).startswith(Colors.RED)
        assert strip_ansi(history_bar(1.0)) == "█"
        assert strip_ansi(history_bar(-3.0)) == "█"
        assert strip_ansi(history_bar(0.01)) == "▁"


class TestRenderSession:
    """Tests for the live session frame."""

    def test_fields(self):
        text = strip_ansi(render_session(snapshot()))

        assert "BTCUSDT" in text
        assert "43000.1235" in text
        assert "+0.4286" in text
        assert "10.00" in text
        assert "4.00" in text
        assert "100.00" in text
        assert "70.00" in text
        assert "Watching..." in text

    def test_history_strip(self):
        text = strip_ansi(render_session(snapshot(history=(0.5, -0.5, 1.0))))
        assert "History: ▅▅█" in text

    def test_waiting_for_depth(self):
        text = strip_ansi(render_session(snapshot(depth=None)))
        assert "waiting for first sample" in text

    def test_faulted(self):
        frame = snapshot(state=SessionState.FAULTED, error="Trade stream for BTCUSDT failed: boom")
        text = strip_ansi(render_session(frame))

        assert "faulted" in text
        assert "boom" in text

    def test_buy_signal_description(self):
        text = strip_ansi(render_session(snapshot(signal=FlowSignal.BUY)))
        assert "Buy signal: OCR high, asks thinning" in text


class TestRenderCatalog:
    """Tests for the coin list."""

    def test_counts(self):
        listings = [
            CoinListing("BTC", [Contract("BTCUSDT", "BTC", "USDT"), Contract("BTCUSDC", "BTC", "USDC")]),
            CoinListing("ETH", [Contract("ETHUSDT", "ETH", "USDT")]),
        ]
        lines = strip_ansi(render_catalog(listings)).splitlines()

        assert lines[1].split()[:2] == ["BTC", "2"]
        assert lines[2].split()[:2] == ["ETH", "1"]
        assert lines[-1] == "2 coins"

    def test_empty(self):
        assert "No matching coins" in strip_ansi(render_catalog([]))
