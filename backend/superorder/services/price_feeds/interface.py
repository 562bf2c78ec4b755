from abc import ABC, abstractmethod

from pydantic import BaseModel, Field


class PriceRound(BaseModel):
    """
    Latest answer of a price source, quoted against a common reference asset.
    """
    answer: int
    updated_at: int
    decimals: int = Field(8, ge=0, le=18)


class PriceFeed(ABC):
    """
    Abstract base class for price sources.
    """
    @abstractmethod
    def latest_price(self, source: str) -> PriceRound:
        """
        Returns the latest round for `source`.
        Implementations raise PriceFeedUnavailableError when the source cannot be reached.
        """
        pass

    def close(self) -> None:
        """
        Releases any connection held by the feed.
        """
        pass
