import logging
from typing import Dict, Optional

from superorder.exceptions import PriceFeedUnavailableError
from superorder.services.price_feeds.interface import PriceFeed, PriceRound

logger = logging.getLogger(__name__)


class StaticPriceFeed(PriceFeed):
    """
    In-memory feed whose answers are set explicitly. Used by tests, the demo
    script and simulated deployments.
    """
    def __init__(self, clock=None, default_decimals: int = 8):
        self.clock = clock
        self.default_decimals = default_decimals
        self._rounds: Dict[str, PriceRound] = {}

    def set_price(self, source: str, answer: int, updated_at: Optional[int] = None, decimals: Optional[int] = None) -> PriceRound:
        if updated_at is None:
            updated_at = self.clock.now() if self.clock is not None else 0
        price_round = PriceRound(
            answer=answer,
            updated_at=updated_at,
            decimals=self.default_decimals if decimals is None else decimals,
        )
        self._rounds[source] = price_round
        logger.debug(f"StaticPriceFeed: {source} set to {answer} at {updated_at}")
        return price_round

    def remove(self, source: str) -> None:
        self._rounds.pop(source, None)

    def latest_price(self, source: str) -> PriceRound:
        price_round = self._rounds.get(source)
        if price_round is None:
            raise PriceFeedUnavailableError(f"No price available for source '{source}'.")
        return price_round
