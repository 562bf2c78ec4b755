from abc import ABC, abstractmethod
from typing import Optional

from superorder.schemas.swap import SwapInstructions


class SettlementEngine(ABC):
    """
    The limit-order settlement engine the layer is attached to.
    """
    @property
    @abstractmethod
    def address(self) -> str:
        """
        Identity the engine uses when calling into the layer.
        """
        pass

    @abstractmethod
    def maker_of(self, fingerprint: str) -> Optional[str]:
        """
        Maker of the signed order, or None when the engine does not know it.
        """
        pass

    def remaining_of(self, fingerprint: str) -> Optional[int]:
        """
        Unfilled making amount of the order, or None when the engine does not
        track partial fills. Triggers stay open until this much is converted.
        """
        return None

    @abstractmethod
    def cancel(self, fingerprint: str) -> None:
        pass

    @abstractmethod
    def transfer(self, asset: str, recipient: str, amount: int) -> None:
        pass


class SwapVenue(ABC):
    """
    Market conversion venue used when a triggered order executes.
    """
    @property
    @abstractmethod
    def venue_id(self) -> str:
        pass

    @abstractmethod
    def swap(self, instructions: SwapInstructions) -> int:
        """
        Converts `instructions.amount_in` of asset_in and returns the amount of asset_out produced.
        """
        pass
