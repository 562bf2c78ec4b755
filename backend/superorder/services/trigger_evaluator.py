"""
Trigger Evaluator for stop-loss and take-profit orders.

An order configured here stays unfillable until the smoothed relative price of
its two sources crosses the threshold in the configured direction. Once it
does, the settlement engine may call `execute`, which converts the order's
primary asset through an approved swap venue and pays the recipient.
"""
import logging
from typing import Iterator, Optional, Tuple

from superorder.core.access import Administrable, KeeperRegistry, VenueRegistry
from superorder.core.events import EventSink, ExtensionEvent
from superorder.core.fixed_point import (
    BPS,
    MAX_ASSET_DECIMALS,
    PRICE_SCALE,
    apply_bps_discount,
    denormalize_amount,
    normalize_amount,
)
from superorder.core.guard import ExecutionGuard
from superorder.core.store import KeyedStore
from superorder.exceptions import (
    ConfigurationError,
    NotTriggeredError,
    SlippageError,
    UnauthorizedError,
)
from superorder.models.trigger import ExecutionRecord, TriggerState, TriggerStatus
from superorder.schemas import parse_config
from superorder.schemas.swap import SwapInstructions
from superorder.schemas.trigger import TriggerConfig, TriggerDirection
from superorder.services.price_oracle import PriceOracleAdapter
from superorder.services.settlement.interface import SettlementEngine

logger = logging.getLogger(__name__)

MAX_SLIPPAGE_BPS = 5000
MAX_DEVIATION_BPS = 1000


def _missing_trigger(fingerprint: str) -> ConfigurationError:
    return ConfigurationError(f"No trigger configured for {fingerprint}.")


def condition_holds(config: TriggerConfig, price: int) -> bool:
    if config.direction == TriggerDirection.FALLING:
        return price < config.threshold_price
    return price > config.threshold_price


def primary_from_counter(config: TriggerConfig, counter_amount: int, price: int) -> int:
    normalized = normalize_amount(counter_amount, config.decimals_b)
    return denormalize_amount(normalized * PRICE_SCALE // price, config.decimals_a)


def counter_from_primary(config: TriggerConfig, primary_amount: int, price: int) -> int:
    normalized = normalize_amount(primary_amount, config.decimals_a)
    return denormalize_amount(normalized * price // PRICE_SCALE, config.decimals_b)


class TriggerEvaluator:
    def __init__(
        self,
        oracle: PriceOracleAdapter,
        settlement: SettlementEngine,
        control: Administrable,
        keepers: KeeperRegistry,
        venues: VenueRegistry,
        clock,
        events: EventSink,
    ):
        self.oracle = oracle
        self.settlement = settlement
        self.control = control
        self.keepers = keepers
        self.venues = venues
        self.clock = clock
        self.events = events
        self.guard = ExecutionGuard("trigger_evaluator")
        self._triggers: KeyedStore[TriggerState] = KeyedStore("triggers", missing_error=_missing_trigger)

    # --- Configuration ---

    def _validate(self, config: TriggerConfig) -> None:
        if not config.price_source_a or not config.price_source_b:
            raise ConfigurationError("Both price sources are required.")
        if config.price_source_a == config.price_source_b:
            raise ConfigurationError("Price sources must differ.")
        if config.threshold_price == 0:
            raise ConfigurationError("Threshold price must be positive.")
        if config.max_slippage_bps > MAX_SLIPPAGE_BPS:
            raise ConfigurationError(f"Max slippage cannot exceed {MAX_SLIPPAGE_BPS} bps.")
        if config.max_deviation_bps > MAX_DEVIATION_BPS:
            raise ConfigurationError(f"Max deviation cannot exceed {MAX_DEVIATION_BPS} bps.")
        for decimals in (config.decimals_a, config.decimals_b):
            if decimals < 0 or decimals > MAX_ASSET_DECIMALS:
                raise ConfigurationError(f"Asset decimals must be between 0 and {MAX_ASSET_DECIMALS}.")

    def configure(self, caller: str, fingerprint: str, config) -> TriggerState:
        """
        Creates or overwrites the trigger of an order. Only the recorded owner may
        overwrite; the first configurer becomes the owner.
        """
        self.control.require_not_paused()
        config = parse_config(TriggerConfig, config)

        existing = self._triggers.get(fingerprint)
        if existing is not None:
            if existing.owner != caller:
                raise UnauthorizedError(f"Only the owner may reconfigure {fingerprint}.")
            if existing.is_terminal or existing.executed_amount > 0:
                raise ConfigurationError(f"Trigger for {fingerprint} was already executed.")

        maker = self.settlement.maker_of(fingerprint)
        if maker is not None and maker != caller:
            raise UnauthorizedError(f"{caller} is not the maker of {fingerprint}.")
        if config.owner is not None and config.owner != caller:
            raise UnauthorizedError("Trigger owner must be the caller.")

        self._validate(config)
        price = self.oracle.fetch(config.price_source_a, config.price_source_b)

        now = self.clock.now()
        with self._triggers.transaction(fingerprint), self.oracle.history_transaction(fingerprint):
            state = TriggerState(
                fingerprint=fingerprint,
                config=config,
                owner=caller,
                configured_at=now,
            )
            self._triggers.put(fingerprint, state)
            self.oracle.clear_history(fingerprint)
            self.oracle.record_and_smooth(fingerprint, price)

        logger.info(
            f"Trigger configured for {fingerprint}: {config.direction.value} "
            f"threshold {config.threshold_price} (current {price})"
        )
        self.events.emit(ExtensionEvent(
            name="trigger_configured",
            key=fingerprint,
            timestamp=now,
            data={
                "owner": caller,
                "direction": config.direction.value,
                "threshold_price": config.threshold_price,
                "initial_price": price,
            },
        ))
        return state

    def remove(self, caller: str, fingerprint: str) -> None:
        state = self._triggers.require(fingerprint)
        if caller != state.owner and not self.control.is_admin(caller):
            raise UnauthorizedError(f"Only the owner or admin may remove {fingerprint}.")
        if state.is_terminal:
            raise ConfigurationError(f"Trigger for {fingerprint} was already executed.")

        self._triggers.delete(fingerprint)
        self.oracle.clear_history(fingerprint)
        logger.info(f"Trigger removed for {fingerprint} by {caller}")
        self.events.emit(ExtensionEvent(
            name="trigger_removed", key=fingerprint, timestamp=self.clock.now(), data={"by": caller}
        ))

    # --- Read-only evaluation ---

    def get(self, fingerprint: str) -> Optional[TriggerState]:
        return self._triggers.get(fingerprint)

    def items(self) -> Iterator[Tuple[str, TriggerState]]:
        return self._triggers.items()

    def current_price(self, fingerprint: str) -> int:
        state = self._triggers.require(fingerprint)
        raw = self.oracle.fetch(state.config.price_source_a, state.config.price_source_b)
        return self.oracle.preview_smoothed(fingerprint, raw)

    def is_triggered(self, fingerprint: str) -> Tuple[bool, int]:
        state = self._triggers.require(fingerprint)
        if state.is_terminal:
            return False, 0
        price = self.current_price(fingerprint)
        return condition_holds(state.config, price), price

    def compute_fillable_amount(self, fingerprint: str, counter_amount: int) -> int:
        """
        Primary amount obtainable for `counter_amount` at the smoothed price, or 0
        while the condition does not hold.
        """
        state = self._triggers.require(fingerprint)
        triggered, price = self.is_triggered(fingerprint)
        if not triggered:
            return 0
        return primary_from_counter(state.config, counter_amount, price)

    def compute_counter_amount(self, fingerprint: str, primary_amount: int) -> int:
        state = self._triggers.require(fingerprint)
        return counter_from_primary(state.config, primary_amount, self.current_price(fingerprint))

    def limit_counter_amount(self, fingerprint: str, primary_amount: int) -> int:
        """
        Counter amount for `primary_amount` at the configured threshold, the rate
        the signed order settles at once triggered.
        """
        state = self._triggers.require(fingerprint)
        return counter_from_primary(state.config, primary_amount, state.config.threshold_price)

    def fillable_amount(self, fingerprint: str, requested: int) -> int:
        if self.control.paused:
            return 0
        triggered, _ = self.is_triggered(fingerprint)
        return requested if triggered else 0

    # --- Keeper action ---

    def checkpoint(self, caller: str, fingerprint: str) -> bool:
        """
        Records a price sample and marks the trigger as fired when the condition
        holds. Returns False when the trigger already left the CONFIGURED state.
        """
        self.control.require_not_paused()
        state = self._triggers.require(fingerprint)
        if not (self.keepers.can_act(caller) or caller == state.owner or self.control.is_admin(caller)):
            raise UnauthorizedError(f"{caller} may not checkpoint {fingerprint}.")
        if state.status != TriggerStatus.CONFIGURED:
            logger.debug(f"Checkpoint for {fingerprint} skipped, status is {state.status.value}")
            return False

        config = state.config
        now = self.clock.now()
        with self._triggers.transaction(fingerprint), self.oracle.history_transaction(fingerprint):
            raw = self.oracle.fetch(config.price_source_a, config.price_source_b)
            self.oracle.check_deviation(fingerprint, raw, config.max_deviation_bps)
            smoothed = self.oracle.record_and_smooth(fingerprint, raw)
            if not condition_holds(config, smoothed):
                raise NotTriggeredError(
                    f"Price {smoothed} has not crossed {config.threshold_price} for {fingerprint}."
                )
            state.status = TriggerStatus.TRIGGERED
            state.triggered_at = now

        logger.info(f"Trigger fired for {fingerprint} at {smoothed} (threshold {config.threshold_price})")
        self.events.emit(ExtensionEvent(
            name="trigger_activated",
            key=fingerprint,
            timestamp=now,
            data={"price": smoothed, "by": caller},
        ))
        return True

    # --- Settlement path ---

    def execute(self, caller: str, fingerprint: str, instructions) -> int:
        """
        Converts the order's primary asset through the venue named in the
        instructions and transfers the output to the recipient. Returns the
        amount received from the venue.
        """
        self.control.require_not_paused()
        if caller != self.settlement.address:
            raise UnauthorizedError("Only the settlement engine may execute triggers.")
        instructions = parse_config(SwapInstructions, instructions)
        state = self._triggers.require(fingerprint)
        config = state.config

        with self.guard.hold(fingerprint):
            if state.is_terminal:
                raise ConfigurationError(f"Trigger for {fingerprint} was already executed.")
            if config.executor is not None and instructions.executor != config.executor:
                raise UnauthorizedError(f"Executor {instructions.executor} is not allowed for {fingerprint}.")
            venue = self.venues.require(instructions.venue)

            raw = self.oracle.fetch(config.price_source_a, config.price_source_b)
            price = self.oracle.preview_smoothed(fingerprint, raw)
            if not condition_holds(config, price):
                raise NotTriggeredError(
                    f"Price {price} has not crossed {config.threshold_price} for {fingerprint}."
                )
            self.oracle.check_deviation(fingerprint, raw, config.max_deviation_bps)

            remaining = self.settlement.remaining_of(fingerprint)
            if remaining is not None and instructions.amount_in > remaining:
                raise ConfigurationError(
                    f"Cannot convert {instructions.amount_in}, only {remaining} of {fingerprint} is unfilled."
                )
            completes = remaining is None or instructions.amount_in == remaining

            expected = counter_from_primary(config, instructions.amount_in, price)
            min_return = apply_bps_discount(expected, config.max_slippage_bps)
            now = self.clock.now()

            with self._triggers.transaction(fingerprint), self.oracle.history_transaction(fingerprint):
                # Partial conversions keep the trigger open for the rest of the order
                state.status = TriggerStatus.EXECUTED if completes else TriggerStatus.TRIGGERED
                state.executed_at = now
                state.executed_amount += instructions.amount_in
                if state.triggered_at is None:
                    state.triggered_at = now

                return_amount = venue.swap(instructions)
                if return_amount < min_return:
                    raise SlippageError(
                        f"Venue returned {return_amount}, minimum is {min_return} "
                        f"({config.max_slippage_bps} bps below {expected})."
                    )

                realized_price = (
                    normalize_amount(return_amount, config.decimals_b) * PRICE_SCALE
                    // normalize_amount(instructions.amount_in, config.decimals_a)
                )
                self.oracle.record_and_smooth(fingerprint, realized_price, realized=True)
                state.last_execution = ExecutionRecord(
                    venue=instructions.venue,
                    amount_in=instructions.amount_in,
                    expected_out=expected,
                    return_amount=return_amount,
                    price=realized_price,
                    recipient=instructions.recipient,
                    executed_at=now,
                )
                self.settlement.transfer(instructions.asset_out, instructions.recipient, return_amount)

        slippage_bps = (expected - return_amount) * BPS // expected if expected and return_amount < expected else 0
        logger.info(
            f"Trigger executed for {fingerprint}: {instructions.amount_in} in, {return_amount} out "
            f"via {instructions.venue} (slippage {slippage_bps} bps)"
        )
        self.events.emit(ExtensionEvent(
            name="trigger_executed",
            key=fingerprint,
            timestamp=now,
            data={
                "venue": instructions.venue,
                "amount_in": instructions.amount_in,
                "return_amount": return_amount,
                "expected": expected,
                "recipient": instructions.recipient,
                "executed_amount": state.executed_amount,
                "completed": completes,
            },
        ))
        return return_amount
