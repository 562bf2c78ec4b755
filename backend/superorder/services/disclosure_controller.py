"""
Disclosure Controller for iceberg orders.

Only one chunk of a large order is fillable at a time. When a chunk has been
filled and the reveal interval has passed, a keeper (or the owner) reveals the
next chunk, sized by the configured strategy.
"""
import logging
from typing import Iterator, NamedTuple, Optional, Tuple

from superorder.core.access import Administrable, KeeperRegistry
from superorder.core.config import Settings, settings as default_settings
from superorder.core.events import EventSink, ExtensionEvent
from superorder.core.fixed_point import BPS, share_bps
from superorder.core.store import KeyedStore
from superorder.exceptions import ConfigurationError, UnauthorizedError
from superorder.models.disclosure import DisclosureState
from superorder.schemas import parse_config
from superorder.schemas.disclosure import DisclosureConfig, DisclosureStrategy
from superorder.services.settlement.interface import SettlementEngine

logger = logging.getLogger(__name__)

MAX_VISIBLE_BPS = 1000


class ChunkInfo(NamedTuple):
    size: int
    filled: int
    remaining: int
    ready: bool


def _missing_disclosure(fingerprint: str) -> ConfigurationError:
    return ConfigurationError(f"No iceberg configured for {fingerprint}.")


def next_chunk_size(state: DisclosureState, now: int) -> int:
    """
    Size of the chunk to reveal next, clamped to what has not been revealed yet.
    """
    cfg = state.config
    unrevealed = state.unrevealed
    if unrevealed <= 0:
        return 0
    remaining = state.remaining

    if cfg.strategy == DisclosureStrategy.FIXED:
        size = cfg.base_chunk_size
    elif cfg.strategy == DisclosureStrategy.PERCENTAGE:
        size = max(remaining * cfg.max_visible_bps // BPS, min(cfg.base_chunk_size, remaining))
    elif cfg.strategy == DisclosureStrategy.ADAPTIVE:
        if state.reveal_count == 0 or state.last_chunk_duration is None:
            size = cfg.base_chunk_size
        else:
            previous = state.current_chunk_size
            if state.last_chunk_duration < cfg.target_fill_seconds:
                size = previous * (BPS + cfg.adaptive_step_bps) // BPS
            else:
                size = previous * (BPS - cfg.adaptive_step_bps) // BPS
            floor = remaining * cfg.adaptive_floor_bps // BPS
            ceiling = remaining * cfg.adaptive_ceiling_bps // BPS
            size = min(max(size, floor), ceiling)
    elif cfg.strategy == DisclosureStrategy.TIME_BASED:
        intervals = (now - state.started_at) // cfg.reveal_interval if cfg.reveal_interval > 0 else 0
        size = cfg.base_chunk_size * (BPS + cfg.growth_bps * intervals) // BPS
        cap = max(cfg.base_chunk_size, cfg.total_amount * cfg.max_visible_bps // BPS)
        size = min(size, cap)
    else:
        raise ConfigurationError(f"Unknown disclosure strategy {cfg.strategy}.")

    return max(1, min(size, unrevealed))


class DisclosureController:
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
        self.permissionless_reveal = config.PERMISSIONLESS_REVEAL
        self._icebergs: KeyedStore[DisclosureState] = KeyedStore("icebergs", missing_error=_missing_disclosure)

    def _validate(self, config: DisclosureConfig) -> None:
        if config.total_amount <= 0:
            raise ConfigurationError("Total amount must be positive.")
        if config.base_chunk_size <= 0 or config.base_chunk_size > config.total_amount:
            raise ConfigurationError("Base chunk size must be positive and not above the total.")
        if config.max_visible_bps <= 0 or config.max_visible_bps > MAX_VISIBLE_BPS:
            raise ConfigurationError(f"Max visible share must be between 1 and {MAX_VISIBLE_BPS} bps.")
        if config.strategy == DisclosureStrategy.ADAPTIVE:
            if config.adaptive_step_bps >= BPS:
                raise ConfigurationError("Adaptive step must be below 10000 bps.")
            if not config.adaptive_floor_bps <= config.adaptive_ceiling_bps <= BPS:
                raise ConfigurationError("Adaptive bounds must satisfy floor <= ceiling <= 10000 bps.")

    def configure(self, caller: str, fingerprint: str, config) -> DisclosureState:
        self.control.require_not_paused()
        config = parse_config(DisclosureConfig, config)

        existing = self._icebergs.get(fingerprint)
        if existing is not None:
            if existing.owner != caller:
                raise UnauthorizedError(f"Only the owner may reconfigure {fingerprint}.")
            raise ConfigurationError(f"Iceberg already configured for {fingerprint}.")

        maker = self.settlement.maker_of(fingerprint)
        if maker is not None and maker != caller:
            raise UnauthorizedError(f"{caller} is not the maker of {fingerprint}.")
        self._validate(config)

        now = self.clock.now()
        with self._icebergs.transaction(fingerprint):
            state = DisclosureState(
                fingerprint=fingerprint,
                config=config,
                owner=caller,
                started_at=now,
                last_reveal_at=now,
            )
            first_chunk = next_chunk_size(state, now)
            state.current_chunk_size = first_chunk
            state.revealed_total = first_chunk
            state.reveal_count = 1
            self._icebergs.put(fingerprint, state)

        logger.info(
            f"Iceberg configured for {fingerprint}: total {config.total_amount}, "
            f"strategy {config.strategy.value}, first chunk {first_chunk}"
        )
        self.events.emit(ExtensionEvent(
            name="iceberg_configured",
            key=fingerprint,
            timestamp=now,
            data={"owner": caller, "total_amount": config.total_amount, "strategy": config.strategy.value},
        ))
        self.events.emit(ExtensionEvent(
            name="chunk_revealed",
            key=fingerprint,
            timestamp=now,
            data={"size": first_chunk, "reveal_count": 1},
        ))
        return state

    def remove(self, caller: str, fingerprint: str) -> None:
        state = self._icebergs.require(fingerprint)
        if caller != state.owner and not self.control.is_admin(caller):
            raise UnauthorizedError(f"Only the owner or admin may remove {fingerprint}.")
        self._icebergs.delete(fingerprint)
        logger.info(f"Iceberg removed for {fingerprint} by {caller}")
        self.events.emit(ExtensionEvent(
            name="iceberg_removed", key=fingerprint, timestamp=self.clock.now(), data={"by": caller}
        ))

    def get(self, fingerprint: str) -> Optional[DisclosureState]:
        return self._icebergs.get(fingerprint)

    def items(self) -> Iterator[Tuple[str, DisclosureState]]:
        return self._icebergs.items()

    def _is_ready(self, state: DisclosureState, now: int) -> bool:
        return (
            state.active
            and state.unrevealed > 0
            and state.chunk_filled >= state.current_chunk_size
            and now - state.last_reveal_at >= state.config.reveal_interval
        )

    def current_chunk(self, fingerprint: str) -> ChunkInfo:
        state = self._icebergs.require(fingerprint)
        return ChunkInfo(
            size=state.current_chunk_size,
            filled=state.filled_amount,
            remaining=state.remaining,
            ready=self._is_ready(state, self.clock.now()),
        )

    def fillable_amount(self, fingerprint: str, requested: int) -> int:
        state = self._icebergs.require(fingerprint)
        if not state.active or self.control.paused:
            return 0
        return min(requested, state.chunk_remaining)

    def record_fill(self, caller: str, fingerprint: str, amount: int) -> None:
        """
        Called by the settlement engine after a fill of the visible chunk.
        """
        self.control.require_not_paused()
        if caller != self.settlement.address:
            raise UnauthorizedError("Only the settlement engine may record fills.")
        state = self._icebergs.require(fingerprint)
        if not state.active:
            raise ConfigurationError(f"Iceberg {fingerprint} is already completed.")
        if amount <= 0:
            raise ConfigurationError("Fill amount must be positive.")
        if amount > state.chunk_remaining:
            raise ConfigurationError(
                f"Fill of {amount} exceeds the visible remainder {state.chunk_remaining} for {fingerprint}."
            )

        now = self.clock.now()
        with self._icebergs.transaction(fingerprint):
            state.chunk_filled += amount
            state.filled_amount += amount
            state.last_fill_at = now
            if state.chunk_filled == state.current_chunk_size:
                state.last_chunk_duration = now - state.last_reveal_at
            if state.filled_amount == state.total_amount:
                state.active = False

        logger.info(
            f"Iceberg fill for {fingerprint}: {amount} "
            f"({state.filled_amount}/{state.total_amount}, chunk {state.chunk_filled}/{state.current_chunk_size})"
        )
        self.events.emit(ExtensionEvent(
            name="chunk_filled",
            key=fingerprint,
            timestamp=now,
            data={"amount": amount, "filled": state.filled_amount},
        ))
        if not state.active:
            self.events.emit(ExtensionEvent(
                name="iceberg_completed",
                key=fingerprint,
                timestamp=now,
                data={"total_amount": state.total_amount, "reveal_count": state.reveal_count},
            ))

    def _can_reveal(self, caller: str, state: DisclosureState) -> bool:
        return (
            self.permissionless_reveal
            or caller == state.owner
            or self.control.is_admin(caller)
            or self.keepers.can_act(caller)
        )

    def reveal_next(self, caller: str, fingerprint: str) -> bool:
        """
        Reveals the next chunk. Returns False without changing anything when the
        current chunk is not ready or the order is completed.
        """
        self.control.require_not_paused()
        state = self._icebergs.require(fingerprint)
        if not self._can_reveal(caller, state):
            raise UnauthorizedError(f"{caller} may not reveal chunks of {fingerprint}.")

        now = self.clock.now()
        if not self._is_ready(state, now):
            logger.debug(f"Reveal for {fingerprint} skipped, chunk not ready")
            return False

        with self._icebergs.transaction(fingerprint):
            size = next_chunk_size(state, now)
            state.current_chunk_size = size
            state.chunk_filled = 0
            state.revealed_total += size
            state.reveal_count += 1
            state.last_reveal_at = now

        logger.info(f"Iceberg chunk {state.reveal_count} revealed for {fingerprint}: {size}")
        self.events.emit(ExtensionEvent(
            name="chunk_revealed",
            key=fingerprint,
            timestamp=now,
            data={"size": size, "reveal_count": state.reveal_count, "by": caller},
        ))
        return True

    def is_completed(self, fingerprint: str) -> Tuple[bool, int]:
        state = self._icebergs.require(fingerprint)
        return state.filled_amount == state.total_amount, share_bps(state.filled_amount, state.total_amount)
