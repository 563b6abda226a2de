#!/usr/bin/env python3
"""
Live Order-Flow Runner

Streams aggressor trades and polls book depth for one coin, printing the
order-flow ratio, depth and signal until interrupted.

Usage:
    ocr-analyzer BTC                     # Live session on the preferred BTC contract
    ocr-analyzer --list                  # All tradable coins
    ocr-analyzer --search eth            # Coins matching "eth"
    ocr-analyzer SOL --poll-interval 1000 --depth-levels 20
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from ..continuous import MetricsCollector, SessionConfig, SessionController, SessionState
from ..display import Colors, print_catalog, print_session
from ..engines.data_fetcher import BinanceAPIError, BinanceFetcher
from ..engines.instrument_catalog import InstrumentCatalog
from ..errors import UnknownInstrumentError
from ..logging_config import configure_default_logging
from ..utils.retry import RetryError

logger = logging.getLogger(__name__)

CATALOG_UNAVAILABLE = "Unable to load tradable contracts, please try again later."


async def load_catalog(config: SessionConfig) -> Optional[InstrumentCatalog]:
    """Fetch the catalog, or print the friendly failure message and return None."""
    try:
        async with BinanceFetcher(base_url=config.ingestion.rest_base) as fetcher:
            return await InstrumentCatalog.load(fetcher)
    except (BinanceAPIError, RetryError) as e:
        logger.error(f"Catalog load failed: {e}")
        print(f"{Colors.RED}{CATALOG_UNAVAILABLE}{Colors.RESET}")
        return None


async def run_catalog(config: SessionConfig, term: str = "") -> int:
    catalog = await load_catalog(config)
    if catalog is None:
        return 1
    print_catalog(catalog.search(term))
    return 0


async def run_session(
    coin: str,
    config: SessionConfig,
    refresh_interval: float = 1.0,
    clear: bool = True,
    show_metrics: bool = False,
) -> int:
    """Run a live session until Ctrl-C or a fatal stream error."""
    catalog = await load_catalog(config)
    if catalog is None:
        return 1

    try:
        symbol = catalog.resolve_trading_symbol(coin)
    except UnknownInstrumentError as e:
        print(f"{Colors.RED}{e}{Colors.RESET}")
        return 2

    print(f"{Colors.DIM}Connecting to {symbol}...{Colors.RESET}")

    async with SessionController(config=config) as controller:
        try:
            await controller.start(symbol)

            while controller.state is SessionState.RUNNING:
                print_session(controller.snapshot(), clear=clear)
                await asyncio.sleep(refresh_interval)

            snapshot = controller.snapshot()
            print_session(snapshot, clear=clear)
            if snapshot.state is SessionState.FAULTED:
                return 1
        finally:
            if show_metrics:
                print_metrics_summary(controller.metrics)
    return 0


def print_metrics_summary(metrics: MetricsCollector) -> None:
    trades = metrics.get_rate_stats("trades")
    samples = metrics.get_rate_stats("depth_samples")
    depth_latency = metrics.get_latency_stats("depth_fetch")

    print(f"\n{Colors.CYAN}{'═' * 60}{Colors.RESET}")
    print(f"{Colors.BOLD}SESSION METRICS{Colors.RESET}  (uptime {metrics.uptime_seconds:.1f}s)")
    if trades is not None:
        print(f"Trades applied:  {trades.total_count:,} ({trades.rate_per_second:.1f}/s)")
    else:
        print("Trades applied:  0")
    print(f"Depth samples:   {samples.total_count if samples else 0:,}")
    print(f"Depth failures:  {metrics.get_counter('depth_failures')}")
    print(f"Dropped:         {metrics.get_counter('dropped_messages')}")
    print(f"Faults:          {metrics.get_counter('faults')}")
    if depth_latency is not None:
        print(
            f"Depth fetch: mean={depth_latency.mean_ms:.1f}ms "
            f"p95={depth_latency.p95_ms:.1f}ms max={depth_latency.max_ms:.1f}ms"
        )
    print(f"{Colors.CYAN}{'═' * 60}{Colors.RESET}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ocr-analyzer",
        description="Live order-flow ratio and depth imbalance signals",
    )
    parser.add_argument("coin", nargs="?", help="Base asset to analyze, e.g. BTC")
    parser.add_argument("--list", "-l", action="store_true", help="List tradable coins")
    parser.add_argument("--search", "-s", metavar="TERM", help="Search coins by name")
    parser.add_argument(
        "--poll-interval",
        type=int,
        default=2000,
        help="Depth poll interval in ms (min: 250, default: 2000)",
    )
    parser.add_argument(
        "--depth-levels",
        type=int,
        default=10,
        choices=[5, 10, 20, 50, 100],
        help="Book levels summed per side (default: 10)",
    )
    parser.add_argument(
        "--refresh", type=float, default=1.0, help="Screen refresh interval in seconds"
    )
    parser.add_argument(
        "--metrics", "-m", action="store_true", help="Print session metrics on exit"
    )
    parser.add_argument(
        "--no-clear", action="store_true", help="Append frames instead of redrawing"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: LOG_LEVEL env or WARNING)",
    )
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_default_logging(args.log_level)

    config = SessionConfig(poll_interval_ms=max(250, args.poll_interval))
    config.ingestion.depth_levels = args.depth_levels
    if args.poll_interval < 250:
        print(
            f"{Colors.YELLOW}Warning: Minimum poll interval is 250ms, "
            f"using 250ms instead of {args.poll_interval}ms{Colors.RESET}"
        )

    try:
        if args.list or args.search is not None:
            return asyncio.run(run_catalog(config, args.search or ""))
        if not args.coin:
            parser.print_usage()
            return 2
        return asyncio.run(
            run_session(
                args.coin,
                config,
                refresh_interval=max(0.2, args.refresh),
                clear=not args.no_clear,
                show_metrics=args.metrics,
            )
        )
    except KeyboardInterrupt:
        print(f"\n{Colors.YELLOW}Shutting down...{Colors.RESET}")
        return 0


if __name__ == "__main__":
    sys.exit(main())
