"""
Pair Coordinator for one-cancels-other orders.

Two orders of the same maker are linked. When one side fills, the other side
becomes unfillable once the cancellation delay has passed and a keeper cancels
it through the settlement engine. If both sides fill inside the delay window
the link resolves without cancelling anything.
"""
import logging
from typing import Dict, Iterator, Optional, Tuple

from superorder.core.access import Administrable, KeeperRegistry
from superorder.core.config import Settings, settings as default_settings
from superorder.core.events import EventSink, ExtensionEvent
from superorder.core.fingerprint import pair_id_of
from superorder.core.guard import ExecutionGuard
from superorder.core.store import KeyedStore
from superorder.exceptions import (
    AlreadyResolvedError,
    ConfigurationError,
    FeeTooHighError,
    RaceConditionError,
    UnauthorizedError,
)
from superorder.models.pair import PairLink, PairResolution, PairStatus
from superorder.schemas import parse_config
from superorder.schemas.pair import PairConfig
from superorder.services.settlement.interface import SettlementEngine

logger = logging.getLogger(__name__)


def _missing_link(key: str) -> ConfigurationError:
    return ConfigurationError(f"No pair link for {key}.")


class PairCoordinator:
    def __init__(
        self,
        settlement: SettlementEngine,
        control: Administrable,
        keepers: KeeperRegistry,
        clock,
        events: EventSink,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self.settlement = settlement
        self.control = control
        self.keepers = keepers
        self.clock = clock
        self.events = events
        self.default_delay = config.OCO_CANCELLATION_DELAY_SECONDS
        self.max_delay = config.OCO_MAX_CANCELLATION_DELAY_SECONDS
        self.max_fee = config.KEEPER_MAX_FEE
        self.guard = ExecutionGuard("pair_coordinator")
        self._links: KeyedStore[PairLink] = KeyedStore("pair_links", missing_error=_missing_link)
        self._pair_by_fingerprint: Dict[str, str] = {}

    # --- Lookup ---

    def get_link(self, pair_id: str) -> Optional[PairLink]:
        return self._links.get(pair_id)

    def link_for(self, fingerprint: str) -> Optional[PairLink]:
        pair_id = self._pair_by_fingerprint.get(fingerprint)
        return self._links.get(pair_id) if pair_id is not None else None

    def _require_link_for(self, fingerprint: str) -> PairLink:
        link = self.link_for(fingerprint)
        if link is None:
            raise _missing_link(fingerprint)
        return link

    def items(self) -> Iterator[Tuple[str, PairLink]]:
        return self._links.items()

    def link_status(self, fingerprint: str) -> Tuple[bool, Optional[str], bool]:
        link = self.link_for(fingerprint)
        if link is None:
            return False, None, False
        return True, link.pair_id, link.status != PairStatus.RESOLVED

    def is_cancellation_due(self, link: PairLink, now: Optional[int] = None) -> bool:
        if link.status != PairStatus.PENDING_CANCEL:
            return False
        now = self.clock.now() if now is None else now
        return now > link.cancel_due_at()

    # --- Owner actions ---

    def link(self, caller: str, config) -> PairLink:
        self.control.require_not_paused()
        config = parse_config(PairConfig, config)
        fingerprint_a, fingerprint_b = config.fingerprint_a, config.fingerprint_b

        if fingerprint_a == fingerprint_b:
            raise ConfigurationError("Cannot link an order with itself.")
        for fingerprint in (fingerprint_a, fingerprint_b):
            if fingerprint in self._pair_by_fingerprint:
                raise ConfigurationError(f"Order {fingerprint} is already linked.")
            if self.settlement.maker_of(fingerprint) != caller:
                raise UnauthorizedError(f"{caller} is not the maker of {fingerprint}.")

        delay = self.default_delay if config.cancellation_delay is None else config.cancellation_delay
        if delay > self.max_delay:
            raise ConfigurationError(f"Cancellation delay {delay}s exceeds the maximum {self.max_delay}s.")

        now = self.clock.now()
        pair_id = pair_id_of(fingerprint_a, fingerprint_b)
        link = PairLink(
            pair_id=pair_id,
            fingerprint_a=fingerprint_a,
            fingerprint_b=fingerprint_b,
            strategy=config.strategy,
            cancellation_delay=delay,
            owner=caller,
            linked_at=now,
            authorized_keeper=config.authorized_keeper,
            max_fee=config.max_fee,
        )
        self._links.put(pair_id, link)
        self._pair_by_fingerprint[fingerprint_a] = pair_id
        self._pair_by_fingerprint[fingerprint_b] = pair_id

        logger.info(
            f"Pair {pair_id} linked ({config.strategy.value}): {fingerprint_a} <-> {fingerprint_b}, delay {delay}s"
        )
        self.events.emit(ExtensionEvent(
            name="pair_linked",
            key=pair_id,
            timestamp=now,
            data={
                "fingerprint_a": fingerprint_a,
                "fingerprint_b": fingerprint_b,
                "strategy": config.strategy.value,
                "cancellation_delay": delay,
            },
        ))
        return link

    def unlink(self, caller: str, pair_id: str) -> None:
        link = self._links.require(pair_id)
        if caller != link.owner and not self.control.is_admin(caller):
            raise UnauthorizedError(f"Only the owner or admin may unlink {pair_id}.")
        if link.status != PairStatus.ACTIVE:
            raise ConfigurationError(f"Pair {pair_id} is {link.status.value} and cannot be unlinked.")

        self._links.delete(pair_id)
        self._pair_by_fingerprint.pop(link.fingerprint_a, None)
        self._pair_by_fingerprint.pop(link.fingerprint_b, None)
        logger.info(f"Pair {pair_id} unlinked by {caller}")
        self.events.emit(ExtensionEvent(
            name="pair_unlinked",
            key=pair_id,
            timestamp=self.clock.now(),
            data={"by": caller, "resolution": PairResolution.UNLINKED.value},
        ))

    # --- Settlement path ---

    def on_fill_detected(self, caller: str, fingerprint: str) -> None:
        self.control.require_not_paused()
        if caller != self.settlement.address:
            raise UnauthorizedError("Only the settlement engine may report fills.")
        link = self._require_link_for(fingerprint)
        now = self.clock.now()

        if link.status == PairStatus.RESOLVED:
            logger.debug(f"Fill of {fingerprint} ignored, pair {link.pair_id} already resolved")
            return

        if link.status == PairStatus.ACTIVE:
            with self._links.transaction(link.pair_id):
                link.status = PairStatus.PENDING_CANCEL
                link.filled_side = fingerprint
                link.filled_at = now
            logger.info(
                f"Pair {link.pair_id}: {fingerprint} filled, sibling cancellable at {link.cancel_due_at()}"
            )
            self.events.emit(ExtensionEvent(
                name="pair_fill_detected",
                key=link.pair_id,
                timestamp=now,
                data={"filled": fingerprint, "cancel_due_at": link.cancel_due_at()},
            ))
            return

        if fingerprint == link.filled_side:
            logger.debug(f"Repeated fill of {fingerprint} on pair {link.pair_id}")
            return

        # Sibling filled while the cancellation was pending
        with self._links.transaction(link.pair_id):
            link.both_filled = True
            link.status = PairStatus.RESOLVED
            link.resolution = PairResolution.BOTH_FILLED
            link.resolved_at = now
        logger.info(f"Pair {link.pair_id} resolved: both sides filled within the delay window")
        self.events.emit(ExtensionEvent(
            name="pair_resolved",
            key=link.pair_id,
            timestamp=now,
            data={"resolution": PairResolution.BOTH_FILLED.value},
        ))

    def fillable_amount(self, fingerprint: str, requested: int) -> int:
        link = self.link_for(fingerprint)
        if link is None:
            return requested
        if self.control.paused or link.cancelled_fingerprint == fingerprint:
            return 0
        if link.status == PairStatus.PENDING_CANCEL and fingerprint != link.filled_side:
            # Lazy timeout: the sibling stops being fillable once the delay has passed
            if self.is_cancellation_due(link):
                return 0
        return requested

    # --- Keeper action ---

    def _check_fee(self, link: PairLink, fee: Optional[int]) -> None:
        if link.max_fee is None and self.max_fee is None:
            return
        if fee is None:
            raise FeeTooHighError(f"Pair {link.pair_id} has a fee ceiling, the keeper fee must be declared.")
        if link.max_fee is not None and fee > link.max_fee:
            raise FeeTooHighError(f"Fee {fee} is above the pair ceiling {link.max_fee}.")
        if self.max_fee is not None and fee > self.max_fee:
            raise FeeTooHighError(f"Fee {fee} is above the global ceiling {self.max_fee}.")

    def _cancel_sibling(self, link: PairLink, caller: str, fee: Optional[int]) -> bool:
        if link.status == PairStatus.RESOLVED:
            raise AlreadyResolvedError(f"Pair {link.pair_id} is already resolved.")
        if link.status == PairStatus.ACTIVE:
            raise RaceConditionError(f"No fill detected yet on pair {link.pair_id}.")

        now = self.clock.now()
        if not self.is_cancellation_due(link, now):
            raise RaceConditionError(
                f"Cancellation of pair {link.pair_id} is due at {link.cancel_due_at()}, now {now}."
            )
        self._check_fee(link, fee)

        loser = link.sibling_of(link.filled_side)
        with self.guard.hold(link.pair_id), self._links.transaction(link.pair_id):
            link.status = PairStatus.RESOLVED
            link.resolution = PairResolution.CANCELLED_SIBLING
            link.cancelled_fingerprint = loser
            link.resolved_at = now
            self.settlement.cancel(loser)

        logger.info(f"Pair {link.pair_id} resolved: cancelled {loser} (by {caller})")
        self.events.emit(ExtensionEvent(
            name="sibling_cancelled",
            key=link.pair_id,
            timestamp=now,
            data={"cancelled": loser, "filled": link.filled_side, "by": caller, "fee": fee},
        ))
        return True

    def process_cancellation(self, caller: str, fingerprint: str, fee: Optional[int] = None) -> bool:
        """
        Cancels the unfilled side of the pair containing `fingerprint`. Returns
        False when the pair is already resolved.
        """
        self.control.require_not_paused()
        link = self._require_link_for(fingerprint)
        if not (
            self.keepers.can_act(caller)
            or caller == link.authorized_keeper
            or caller == link.owner
        ):
            raise UnauthorizedError(f"{caller} may not process cancellations for {link.pair_id}.")

        try:
            return self._cancel_sibling(link, caller, fee)
        except AlreadyResolvedError:
            logger.debug(f"Cancellation for pair {link.pair_id} skipped, already resolved")
            return False
