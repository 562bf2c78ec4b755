import logging
from decimal import Decimal
from typing import Dict, Optional

import ccxt

from superorder.core.fixed_point import to_fixed
from superorder.services.price_feeds.error_mapping import map_feed_errors
from superorder.services.price_feeds.interface import PriceFeed, PriceRound

logger = logging.getLogger(__name__)


class CcxtPriceFeed(PriceFeed):
    """
    Uses a ccxt exchange's ticker as a price source. Sources are either unified
    symbols ("ETH/USDT") or aliases mapped to symbols through `symbols`.
    """
    def __init__(self, exchange_id: str = "binance", symbols: Optional[Dict[str, str]] = None,
                 decimals: int = 8, exchange=None):
        if exchange is None:
            exchange_class = getattr(ccxt, exchange_id)
            exchange = exchange_class({'timeout': 30000, 'enableRateLimit': True})
        self.exchange = exchange
        self.symbols = symbols or {}
        self.decimals = decimals

    @map_feed_errors
    def latest_price(self, source: str) -> PriceRound:
        symbol = self.symbols.get(source, source)
        ticker = self.exchange.fetch_ticker(symbol)
        last = ticker.get("last")
        if last is None:
            raise ValueError(f"ticker for {symbol} has no last price")
        timestamp = ticker.get("timestamp")
        if timestamp is None:
            timestamp = self.exchange.milliseconds()
        return PriceRound(
            answer=to_fixed(Decimal(str(last)), self.decimals),
            updated_at=int(timestamp) // 1000,
            decimals=self.decimals,
        )

    def close(self) -> None:
        close = getattr(self.exchange, "close", None)
        if callable(close):
            close()
