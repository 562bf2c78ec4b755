import pytest

from superorder.core.clock import ManualClock
from superorder.core.config import Settings
from superorder.core.events import EventLog
from superorder.core.fixed_point import to_fixed
from superorder.layer import build_layer
from superorder.services.price_feeds.static_feed import StaticPriceFeed
from superorder.services.settlement.simulated import SimulatedSettlementEngine, SimulatedSwapVenue

ADMIN = "0xadmin"
MAKER = "0xmaker"
KEEPER = "0xkeeper"

ETH = "ETH/USD"
USDC = "USDC/USD"


@pytest.fixture
def clock():
    return ManualClock(start=1_700_000_000)


@pytest.fixture
def test_settings():
    return Settings(
        ORACLE_HEARTBEAT_SECONDS=3600,
        TWAP_FAST_WINDOW_SECONDS=120,
        TWAP_WINDOW_SECONDS=300,
        PRICE_HISTORY_SIZE=10,
        OCO_CANCELLATION_DELAY_SECONDS=30,
        OCO_MAX_CANCELLATION_DELAY_SECONDS=3600,
        KEEPER_MAX_ACTIONS_PER_CALL=20,
        KEEPER_OPEN_ACCESS=False,
        KEEPER_MAX_FEE=None,
        PERMISSIONLESS_REVEAL=False,
    )


@pytest.fixture
def feed(clock):
    feed = StaticPriceFeed(clock=clock, default_decimals=8)
    feed.set_price(ETH, to_fixed("4000", 8))
    feed.set_price(USDC, to_fixed("1", 8))
    return feed


@pytest.fixture
def events():
    return EventLog()


@pytest.fixture
def settlement():
    return SimulatedSettlementEngine(address="0xsettlement")


@pytest.fixture
def venue():
    # Sells ETH for USDC at 4000
    return SimulatedSwapVenue("sim-dex", rate=to_fixed("4000"))


@pytest.fixture
def layer(feed, settlement, clock, events, test_settings, venue):
    layer = build_layer(ADMIN, feed, settlement, clock=clock, events=events, config=test_settings)
    settlement.connect(layer)
    layer.scheduler.register_keeper(ADMIN, KEEPER, reward_per_action=5)
    layer.venues.approve(ADMIN, venue)
    return layer


@pytest.fixture
def make_order(settlement):
    """
    Registers an order with the simulated settlement engine and returns its fingerprint.
    """
    counter = {"salt": 0}

    def _make(maker=MAKER, making_amount=to_fixed("1"), taking_amount=to_fixed("4000"),
              maker_asset="WETH", taker_asset="USDC", extensions=()):
        counter["salt"] += 1
        fingerprint = settlement.register_order(
            maker, maker_asset, taker_asset, making_amount, taking_amount, salt=counter["salt"]
        )
        if extensions:
            settlement.attach(fingerprint, *extensions)
        return fingerprint

    return _make
