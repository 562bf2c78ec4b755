"""
In-memory settlement engine and swap venue.

They stand in for the real limit-order protocol so the conditional layer can be
driven end to end: orders are registered and filled, balances move in a
ledger, and the attached extensions are consulted before and notified after
every fill.
"""
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional, Set, Tuple

from superorder.core.fingerprint import fingerprint_of
from superorder.core.fixed_point import PRICE_SCALE, apply_bps_discount, denormalize_amount, normalize_amount
from superorder.exceptions import ConfigurationError
from superorder.schemas.swap import SwapInstructions
from superorder.services.settlement.interface import SettlementEngine, SwapVenue

if TYPE_CHECKING:
    from superorder.layer import ConditionalLayer

logger = logging.getLogger(__name__)

TRIGGER = "trigger"
ICEBERG = "iceberg"
OCO = "oco"
EXTENSION_KINDS = (TRIGGER, ICEBERG, OCO)


@dataclass
class SimulatedOrder:
    fingerprint: str
    maker: str
    maker_asset: str
    taker_asset: str
    making_amount: int
    taking_amount: int
    filled_amount: int = 0
    cancelled: bool = False
    extensions: Set[str] = field(default_factory=set)

    @property
    def remaining(self) -> int:
        return self.making_amount - self.filled_amount


class SimulatedSwapVenue(SwapVenue):
    """
    Converts at a fixed 18-decimal rate, optionally shaving `haircut_bps` off
    the output to simulate slippage.
    """
    def __init__(self, venue_id: str, rate: int, decimals_in: int = 18, decimals_out: int = 18, haircut_bps: int = 0):
        self._venue_id = venue_id
        self.rate = rate
        self.decimals_in = decimals_in
        self.decimals_out = decimals_out
        self.haircut_bps = haircut_bps
        self.swaps: List[Tuple[SwapInstructions, int]] = []

    @property
    def venue_id(self) -> str:
        return self._venue_id

    def swap(self, instructions: SwapInstructions) -> int:
        normalized = normalize_amount(instructions.amount_in, self.decimals_in) * self.rate // PRICE_SCALE
        amount_out = apply_bps_discount(denormalize_amount(normalized, self.decimals_out), self.haircut_bps)
        self.swaps.append((instructions, amount_out))
        logger.debug(f"SimulatedSwapVenue {self.venue_id}: {instructions.amount_in} -> {amount_out}")
        return amount_out


class SimulatedSettlementEngine(SettlementEngine):
    def __init__(self, address: str = "0xsettlement"):
        self._address = address
        self.orders: Dict[str, SimulatedOrder] = {}
        self.balances: Dict[Tuple[str, str], int] = {}
        self.layer: Optional["ConditionalLayer"] = None

    @property
    def address(self) -> str:
        return self._address

    def connect(self, layer: "ConditionalLayer") -> None:
        self.layer = layer

    # --- Ledger ---

    def deposit(self, holder: str, asset: str, amount: int) -> None:
        self.balances[(holder, asset)] = self.balance_of(holder, asset) + amount

    def balance_of(self, holder: str, asset: str) -> int:
        return self.balances.get((holder, asset), 0)

    def _debit(self, holder: str, asset: str, amount: int) -> None:
        balance = self.balance_of(holder, asset)
        if balance < amount:
            raise ConfigurationError(f"{holder} holds {balance} {asset}, needs {amount}.")
        self.balances[(holder, asset)] = balance - amount

    # --- Orders ---

    def register_order(self, maker: str, maker_asset: str, taker_asset: str,
                       making_amount: int, taking_amount: int, salt: int = 0) -> str:
        fingerprint = fingerprint_of({
            "maker": maker,
            "maker_asset": maker_asset,
            "taker_asset": taker_asset,
            "making_amount": making_amount,
            "taking_amount": taking_amount,
            "salt": salt,
        })
        if fingerprint in self.orders:
            raise ConfigurationError(f"Order {fingerprint} is already registered.")
        self.orders[fingerprint] = SimulatedOrder(
            fingerprint=fingerprint,
            maker=maker,
            maker_asset=maker_asset,
            taker_asset=taker_asset,
            making_amount=making_amount,
            taking_amount=taking_amount,
        )
        return fingerprint

    def attach(self, fingerprint: str, *kinds: str) -> None:
        order = self._require_order(fingerprint)
        for kind in kinds:
            if kind not in EXTENSION_KINDS:
                raise ConfigurationError(f"Unknown extension '{kind}'.")
            order.extensions.add(kind)

    def _require_order(self, fingerprint: str) -> SimulatedOrder:
        order = self.orders.get(fingerprint)
        if order is None:
            raise ConfigurationError(f"Unknown order {fingerprint}.")
        return order

    def maker_of(self, fingerprint: str) -> Optional[str]:
        order = self.orders.get(fingerprint)
        return order.maker if order is not None else None

    def remaining_of(self, fingerprint: str) -> Optional[int]:
        order = self.orders.get(fingerprint)
        return order.remaining if order is not None else None

    def cancel(self, fingerprint: str) -> None:
        order = self._require_order(fingerprint)
        order.cancelled = True
        logger.info(f"SimulatedSettlementEngine: order {fingerprint} cancelled")

    def transfer(self, asset: str, recipient: str, amount: int) -> None:
        self.deposit(recipient, asset, amount)

    # --- Fills ---

    def fillable(self, fingerprint: str, requested: int) -> int:
        """
        Smallest amount every attached extension allows.
        """
        order = self._require_order(fingerprint)
        if order.cancelled:
            return 0
        amount = min(requested, order.remaining)
        if self.layer is None:
            return amount
        if TRIGGER in order.extensions:
            amount = min(amount, self.layer.triggers.fillable_amount(fingerprint, amount))
        if ICEBERG in order.extensions:
            amount = min(amount, self.layer.disclosures.fillable_amount(fingerprint, amount))
        if OCO in order.extensions:
            amount = min(amount, self.layer.pairs.fillable_amount(fingerprint, amount))
        return amount

    def fill(self, taker: str, fingerprint: str, making_amount: int,
             instructions: Optional[SwapInstructions] = None) -> int:
        """
        Fills up to `making_amount` of the order and returns the amount filled.
        Trigger orders are converted through `instructions` instead of being
        swapped against the taker.
        """
        order = self._require_order(fingerprint)
        amount = self.fillable(fingerprint, making_amount)
        if amount == 0:
            logger.info(f"SimulatedSettlementEngine: nothing fillable for {fingerprint}")
            return 0

        if TRIGGER in order.extensions:
            if instructions is None or self.layer is None:
                raise ConfigurationError("Trigger orders need a connected layer and swap instructions to fill.")
            instructions = instructions.model_copy(update={"amount_in": amount})
            if self.balance_of(order.maker, order.maker_asset) < amount:
                raise ConfigurationError(f"{order.maker} cannot cover {amount} {order.maker_asset}.")
            self.layer.triggers.execute(self.address, fingerprint, instructions)
            self._debit(order.maker, order.maker_asset, amount)
        else:
            taking = amount * order.taking_amount // order.making_amount
            self._debit(taker, order.taker_asset, taking)
            self._debit(order.maker, order.maker_asset, amount)
            self.deposit(order.maker, order.taker_asset, taking)
            self.deposit(taker, order.maker_asset, amount)

        order.filled_amount += amount
        logger.info(
            f"SimulatedSettlementEngine: filled {amount} of {fingerprint} "
            f"({order.filled_amount}/{order.making_amount})"
        )

        if self.layer is not None:
            if ICEBERG in order.extensions:
                self.layer.disclosures.record_fill(self.address, fingerprint, amount)
            if OCO in order.extensions:
                self.layer.pairs.on_fill_detected(self.address, fingerprint)
        return amount
