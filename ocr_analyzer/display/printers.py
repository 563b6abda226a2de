"""Screen rendering for live sessions and the instrument catalog."""

from datetime import datetime
from typing import Iterable, List

from ..continuous.data_types import SessionSnapshot, SessionState
from ..engines.instrument_catalog import CoinListing
from .colors import Colors
from .formatters import history_strip, ratio_color, score_bar, signal_color

WIDTH = 64


def _format_time(timestamp_ms: int) -> str:
    if timestamp_ms <= 0:
        return "--:--:--"
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%H:%M:%S")


def render_session(snapshot: SessionSnapshot) -> str:
    """Render one live-session frame."""
    flow = snapshot.flow
    lines: List[str] = []

    lines.append(f"{Colors.BOLD}{'═' * WIDTH}{Colors.RESET}")
    lines.append(
        f"{Colors.BOLD}{Colors.CYAN}  ORDER FLOW: {snapshot.symbol or '-'}{Colors.RESET}"
        f"  {Colors.DIM}[{snapshot.state.value}]{Colors.RESET}"
    )
    lines.append(f"{Colors.BOLD}{'═' * WIDTH}{Colors.RESET}")

    if snapshot.state is SessionState.FAULTED:
        lines.append(f"  {Colors.RED}Stream failed: {snapshot.error}{Colors.RESET}")
        return "\n".join(lines)

    color = ratio_color(flow.ratio)
    lines.append(f"  Price:   {Colors.BOLD}{flow.last_price:.4f}{Colors.RESET}")
    lines.append(
        f"  OCR:     {color}{flow.ratio:+.4f}{Colors.RESET}  {score_bar(flow.ratio)}"
    )
    lines.append(
        f"  Signal:  {signal_color(snapshot.signal)}{Colors.BOLD}"
        f"{snapshot.signal.description}{Colors.RESET}"
    )
    lines.append(f"{Colors.DIM}{'─' * WIDTH}{Colors.RESET}")

    lines.append(
        f"  Aggressor buys:  {Colors.GREEN}{flow.buy_volume:.2f}{Colors.RESET}   "
        f"sells: {Colors.RED}{flow.sell_volume:.2f}{Colors.RESET}   "
        f"{Colors.DIM}({flow.trade_count} trades){Colors.RESET}"
    )
    if snapshot.depth is not None:
        lines.append(
            f"  Depth (top {snapshot.depth.levels}):  "
            f"bids {Colors.GREEN}{snapshot.depth.bid_volume:.2f}{Colors.RESET}   "
            f"asks {Colors.RED}{snapshot.depth.ask_volume:.2f}{Colors.RESET}"
        )
    else:
        lines.append(f"  Depth:  {Colors.DIM}waiting for first sample{Colors.RESET}")

    lines.append(f"  History: {history_strip(snapshot.history)}")
    lines.append(f"  {Colors.DIM}Updated {_format_time(snapshot.updated_at_ms)}{Colors.RESET}")
    return "\n".join(lines)


def render_catalog(listings: Iterable[CoinListing]) -> str:
    """Render coins with their contract counts."""
    listings = list(listings)
    if not listings:
        return f"{Colors.YELLOW}No matching coins.{Colors.RESET}"

    lines = [f"{Colors.BOLD}{'COIN':<12}{'CONTRACTS':>10}  SYMBOLS{Colors.RESET}"]
    for listing in listings:
        symbols = ", ".join(c.symbol for c in listing.contracts[:4])
        if listing.contract_count > 4:
            symbols += f", +{listing.contract_count - 4}"
        lines.append(
            f"{Colors.CYAN}{listing.coin:<12}{Colors.RESET}"
            f"{listing.contract_count:>10}  {Colors.DIM}{symbols}{Colors.RESET}"
        )
    lines.append(f"{Colors.DIM}{len(listings)} coins{Colors.RESET}")
    return "\n".join(lines)


def print_session(snapshot: SessionSnapshot, clear: bool = True) -> None:
    if clear:
        print(Colors.CLEAR_SCREEN, end="")
    print(render_session(snapshot))


def print_catalog(listings: Iterable[CoinListing]) -> None:
    print(render_catalog(listings))
