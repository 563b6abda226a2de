"""
Instrument Catalog - tradable contracts grouped by base asset.

Built from the exchange info payload: only symbols in TRADING status are
kept, and contracts are grouped per base asset (BTC -> BTCUSDT, BTCUSDC, ...)
in the order the exchange lists them.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import pandas as pd

from ..errors import UnknownInstrumentError

logger = logging.getLogger(__name__)

PREFERRED_QUOTE = "USDT"

_COLUMNS = ["symbol", "status", "baseAsset", "quoteAsset"]


@dataclass(frozen=True)
class Contract:
    """One tradable symbol."""
    symbol: str
    base_asset: str
    quote_asset: str


@dataclass
class CoinListing:
    """All contracts sharing a base asset."""
    coin: str
    contracts: List[Contract] = field(default_factory=list)

    @property
    def contract_count(self) -> int:
        return len(self.contracts)


class InstrumentCatalog:
    """
    Searchable list of coins and their contracts.

    Usage:
        async with BinanceFetcher() as fetcher:
            catalog = await InstrumentCatalog.load(fetcher)
        symbol = catalog.resolve_trading_symbol("BTC")  # "BTCUSDT"
    """

    def __init__(self, listings: List[CoinListing]):
        self._listings = listings
        self._by_coin: Dict[str, CoinListing] = {l.coin.upper(): l for l in listings}

    @classmethod
    def from_exchange_info(cls, payload: Dict[str, Any]) -> "InstrumentCatalog":
        """Build the catalog from a /exchangeInfo payload."""
        frame = pd.DataFrame(payload.get("symbols", []))
        if frame.empty:
            return cls([])

        frame = frame.reindex(columns=_COLUMNS).dropna(subset=["symbol", "baseAsset"])
        frame = frame[frame["status"] == "TRADING"]

        listings = []
        for coin, group in frame.groupby("baseAsset", sort=False):
            contracts = [
                Contract(
                    symbol=row.symbol,
                    base_asset=row.baseAsset,
                    quote_asset=row.quoteAsset if isinstance(row.quoteAsset, str) else "",
                )
                for row in group.itertuples(index=False)
            ]
            listings.append(CoinListing(coin=str(coin), contracts=contracts))

        logger.info(f"Catalog loaded: {len(listings)} coins, {len(frame)} contracts")
        return cls(listings)

    @classmethod
    async def load(cls, fetcher) -> "InstrumentCatalog":
        """Fetch exchange info and build the catalog."""
        payload = await fetcher.get_exchange_info()
        return cls.from_exchange_info(payload)

    @property
    def listings(self) -> List[CoinListing]:
        return list(self._listings)

    def get(self, coin: str) -> Optional[CoinListing]:
        return self._by_coin.get(coin.upper())

    def search(self, term: str) -> List[CoinListing]:
        """Case-insensitive substring match on the coin name. Empty term returns all."""
        term = term.strip().lower()
        if not term:
            return self.listings
        return [l for l in self._listings if term in l.coin.lower()]

    def resolve_trading_symbol(self, base_asset: str, preferred_quote: str = PREFERRED_QUOTE) -> str:
        """
        Pick the contract to analyze for a coin.

        Prefers a symbol containing the preferred quote asset, else the
        first listed contract.

        Raises:
            UnknownInstrumentError: coin not listed or without contracts
        """
        listing = self.get(base_asset)
        if listing is None or not listing.contracts:
            raise UnknownInstrumentError(base_asset)

        for contract in listing.contracts:
            if preferred_quote in contract.symbol:
                return contract.symbol
        return listing.contracts[0].symbol
