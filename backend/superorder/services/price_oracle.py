"""
Price Oracle Adapter.

Turns two raw feed answers into a relative price, rejects stale or non-positive
data and smooths prices per order fingerprint so a single manipulated update
cannot fire a trigger on its own.
"""
import logging
from typing import Dict, List, Optional

from superorder.core.access import Administrable
from superorder.core.config import Settings, settings as default_settings
from superorder.core.fixed_point import deviation_bps, relative_price
from superorder.core.store import KeyedStore
from superorder.exceptions import (
    ConfigurationError,
    InvalidPriceError,
    ManipulationError,
    StaleDataError,
)
from superorder.models.price import PriceSample
from superorder.services.price_feeds.interface import PriceFeed, PriceRound

logger = logging.getLogger(__name__)


class PriceOracleAdapter:
    def __init__(self, feed: PriceFeed, clock, control: Administrable, config: Optional[Settings] = None):
        config = config or default_settings
        self.feed = feed
        self.clock = clock
        self.control = control
        self.default_heartbeat = config.ORACLE_HEARTBEAT_SECONDS
        self.fast_window = config.TWAP_FAST_WINDOW_SECONDS
        self.window = config.TWAP_WINDOW_SECONDS
        self.history_size = config.PRICE_HISTORY_SIZE
        self._heartbeats: Dict[str, int] = {}
        self._history: KeyedStore[List[PriceSample]] = KeyedStore("price_history")

    # --- Feed access ---

    def heartbeat(self, source: str) -> int:
        return self._heartbeats.get(source, self.default_heartbeat)

    def set_heartbeat(self, caller: str, source: str, seconds: int) -> None:
        self.control.require_admin(caller)
        if seconds <= 0:
            raise ConfigurationError("Heartbeat must be positive.")
        self._heartbeats[source] = seconds
        logger.info(f"Oracle heartbeat for {source} set to {seconds}s")

    def read_round(self, source: str) -> PriceRound:
        price_round = self.feed.latest_price(source)
        age = self.clock.now() - price_round.updated_at
        if age > self.heartbeat(source):
            raise StaleDataError(
                f"Price for {source} is {age}s old, heartbeat is {self.heartbeat(source)}s."
            )
        if price_round.answer <= 0:
            raise InvalidPriceError(f"Price for {source} is not positive: {price_round.answer}.")
        return price_round

    def fetch(self, source_a: str, source_b: str) -> int:
        """
        Price of A in units of B with 18 decimals.
        """
        round_a = self.read_round(source_a)
        round_b = self.read_round(source_b)
        return relative_price(round_a.answer, round_a.decimals, round_b.answer, round_b.decimals)

    # --- Smoothing ---

    def preview_smoothed(self, fingerprint: str, price: int) -> int:
        """
        Smoothed value `record_and_smooth` would return for `price`, without
        touching the history.
        """
        samples = self._history.get(fingerprint)
        if not samples:
            return price

        now = self.clock.now()
        if now - samples[-1].timestamp < self.fast_window:
            return price

        # The new price counts as a sample of age zero
        weighted_sum = price * (self.window + 1)
        total_weight = self.window + 1
        for sample in samples:
            age = now - sample.timestamp
            if age > self.window:
                continue
            weight = self.window - age + 1
            weighted_sum += sample.price * weight
            total_weight += weight
        return weighted_sum // total_weight

    def record_and_smooth(self, fingerprint: str, price: int, realized: bool = False) -> int:
        smoothed = self.preview_smoothed(fingerprint, price)
        samples = self._history.get(fingerprint)
        if samples is None:
            samples = []
            self._history.put(fingerprint, samples)

        timestamp = self.clock.now()
        if samples and timestamp < samples[-1].timestamp:
            timestamp = samples[-1].timestamp
        samples.append(PriceSample(price=price, timestamp=timestamp, realized=realized))
        if len(samples) > self.history_size:
            del samples[: len(samples) - self.history_size]
        return smoothed

    def check_deviation(self, fingerprint: str, new_price: int, max_deviation_bps: int) -> None:
        """
        Compares against the latest feed sample; realized execution prices are
        only used when no feed sample is left in the history.
        """
        last = self.latest_feed_sample(fingerprint) or self.latest_sample(fingerprint)
        if last is None or max_deviation_bps == 0:
            return
        deviation = deviation_bps(new_price, last.price)
        if deviation > max_deviation_bps:
            logger.warning(
                f"Oracle: price deviation {deviation} bps for {fingerprint} exceeds bound {max_deviation_bps} bps"
            )
            raise ManipulationError(
                f"Price moved {deviation} bps since the last sample (bound {max_deviation_bps} bps)."
            )

    # --- History ---

    def latest_sample(self, fingerprint: str) -> Optional[PriceSample]:
        samples = self._history.get(fingerprint)
        return samples[-1] if samples else None

    def latest_feed_sample(self, fingerprint: str) -> Optional[PriceSample]:
        for sample in reversed(self._history.get(fingerprint) or []):
            if not sample.realized:
                return sample
        return None

    def history(self, fingerprint: str) -> List[PriceSample]:
        return list(self._history.get(fingerprint) or [])

    def clear_history(self, fingerprint: str) -> None:
        self._history.delete(fingerprint)

    def history_transaction(self, fingerprint: str):
        return self._history.transaction(fingerprint)
