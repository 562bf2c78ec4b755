"""
Wires the engines of the conditional execution layer around one settlement
engine, one price feed and one keeper registry.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from superorder.core.access import Administrable, KeeperRegistry, VenueRegistry
from superorder.core.clock import SystemClock
from superorder.core.config import Settings, settings as default_settings
from superorder.core.events import EventLog, EventSink
from superorder.services.disclosure_controller import DisclosureController
from superorder.services.keeper.scheduler import KeeperScheduler
from superorder.services.pair_coordinator import PairCoordinator
from superorder.services.price_feeds.interface import PriceFeed
from superorder.services.price_oracle import PriceOracleAdapter
from superorder.services.settlement.interface import SettlementEngine
from superorder.services.trigger_evaluator import TriggerEvaluator

logger = logging.getLogger(__name__)


@dataclass
class ConditionalLayer:
    config: Settings
    clock: object
    events: EventSink
    settlement: SettlementEngine
    keepers: KeeperRegistry
    venues: VenueRegistry
    oracle: PriceOracleAdapter
    triggers: TriggerEvaluator
    disclosures: DisclosureController
    pairs: PairCoordinator
    scheduler: KeeperScheduler


def build_layer(
    admin: str,
    feed: PriceFeed,
    settlement: SettlementEngine,
    clock=None,
    events: Optional[EventSink] = None,
    config: Optional[Settings] = None,
) -> ConditionalLayer:
    """
    Each engine gets its own admin/pause capability; keeper authorization and
    venue approval are shared.
    """
    config = config or default_settings
    clock = clock or SystemClock()
    events = events if events is not None else EventLog()

    keepers = KeeperRegistry(Administrable(admin, "keeper_registry"), open_access=config.KEEPER_OPEN_ACCESS)
    venues = VenueRegistry(Administrable(admin, "venue_registry"))
    oracle = PriceOracleAdapter(feed, clock, Administrable(admin, "price_oracle"), config)
    triggers = TriggerEvaluator(
        oracle=oracle,
        settlement=settlement,
        control=Administrable(admin, "trigger_evaluator"),
        keepers=keepers,
        venues=venues,
        clock=clock,
        events=events,
    )
    disclosures = DisclosureController(
        settlement, Administrable(admin, "disclosure_controller"), keepers, clock, events, config
    )
    pairs = PairCoordinator(settlement, Administrable(admin, "pair_coordinator"), keepers, clock, events, config)
    scheduler = KeeperScheduler(triggers, disclosures, pairs, keepers, clock, events, config)

    logger.info(f"Conditional execution layer built for settlement engine {settlement.address}")
    return ConditionalLayer(
        config=config,
        clock=clock,
        events=events,
        settlement=settlement,
        keepers=keepers,
        venues=venues,
        oracle=oracle,
        triggers=triggers,
        disclosures=disclosures,
        pairs=pairs,
        scheduler=scheduler,
    )
