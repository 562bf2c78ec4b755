import logging
from typing import Optional

import httpx

from superorder.services.price_feeds.error_mapping import map_feed_errors
from superorder.services.price_feeds.interface import PriceFeed, PriceRound

logger = logging.getLogger(__name__)


class HttpPriceFeed(PriceFeed):
    """
    Reads rounds from a JSON price service.
    GET {base_url}/prices/{source} -> {"answer": int, "updated_at": int, "decimals": int}
    """
    def __init__(self, base_url: str, timeout: float = 10.0, transport: Optional[httpx.BaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    @map_feed_errors
    def latest_price(self, source: str) -> PriceRound:
        resp = self.client.get(f"/prices/{source}")
        resp.raise_for_status()
        data = resp.json()
        return PriceRound(
            answer=int(data["answer"]),
            updated_at=int(data["updated_at"]),
            decimals=int(data.get("decimals", 8)),
        )

    def close(self) -> None:
        self.client.close()
