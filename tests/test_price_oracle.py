import pytest

from superorder.core.access import Administrable
from superorder.core.clock import ManualClock
from superorder.core.config import Settings
from superorder.core.fixed_point import PRICE_SCALE, to_fixed
from superorder.exceptions import (
    ConfigurationError,
    InvalidPriceError,
    ManipulationError,
    StaleDataError,
    UnauthorizedError,
)
from superorder.services.price_feeds.static_feed import StaticPriceFeed
from superorder.services.price_oracle import PriceOracleAdapter

ADMIN = "0xadmin"
FP = "0xorder"


@pytest.fixture
def clock():
    return ManualClock(start=1_000_000)


@pytest.fixture
def feed(clock):
    feed = StaticPriceFeed(clock=clock)
    feed.set_price("ETH/USD", to_fixed("4000", 8))
    feed.set_price("USDC/USD", to_fixed("1", 8))
    return feed


@pytest.fixture
def oracle(feed, clock):
    config = Settings(
        ORACLE_HEARTBEAT_SECONDS=3600,
        TWAP_FAST_WINDOW_SECONDS=120,
        TWAP_WINDOW_SECONDS=300,
        PRICE_HISTORY_SIZE=3,
    )
    return PriceOracleAdapter(feed, clock, Administrable(ADMIN, "oracle"), config)

# --- fetch ---

def test_fetch_relative_price(oracle):
    assert oracle.fetch("ETH/USD", "USDC/USD") == 4000 * PRICE_SCALE
    assert oracle.fetch("USDC/USD", "ETH/USD") == PRICE_SCALE // 4000


def test_fetch_normalizes_decimals(oracle, feed):
    feed.set_price("USDC/USD", to_fixed("1", 6), decimals=6)
    assert oracle.fetch("ETH/USD", "USDC/USD") == 4000 * PRICE_SCALE


def test_fetch_rejects_stale_round(oracle, feed, clock):
    feed.set_price("ETH/USD", to_fixed("4000", 8), updated_at=clock.now() - 3601)
    with pytest.raises(StaleDataError):
        oracle.fetch("ETH/USD", "USDC/USD")


def test_round_exactly_at_heartbeat_is_fresh(oracle, feed, clock):
    feed.set_price("ETH/USD", to_fixed("4000", 8), updated_at=clock.now() - 3600)
    assert oracle.fetch("ETH/USD", "USDC/USD") == 4000 * PRICE_SCALE


def test_per_source_heartbeat(oracle, feed, clock):
    feed.set_price("ETH/USD", to_fixed("4000", 8), updated_at=clock.now() - 100)
    oracle.set_heartbeat(ADMIN, "ETH/USD", 60)
    with pytest.raises(StaleDataError):
        oracle.fetch("ETH/USD", "USDC/USD")
    assert oracle.heartbeat("USDC/USD") == 3600


def test_set_heartbeat_requires_admin_and_positive_value(oracle):
    with pytest.raises(UnauthorizedError):
        oracle.set_heartbeat("0xsomeone", "ETH/USD", 60)
    with pytest.raises(ConfigurationError):
        oracle.set_heartbeat(ADMIN, "ETH/USD", 0)


@pytest.mark.parametrize("answer", [0, -5])
def test_fetch_rejects_non_positive_answer(oracle, feed, answer):
    feed.set_price("ETH/USD", answer)
    with pytest.raises(InvalidPriceError):
        oracle.fetch("ETH/USD", "USDC/USD")

# --- smoothing ---

def test_first_sample_returns_raw_price(oracle):
    assert oracle.preview_smoothed(FP, 100) == 100
    assert oracle.record_and_smooth(FP, 100) == 100
    assert oracle.latest_sample(FP).price == 100


def test_fast_path_returns_raw_price(oracle, clock):
    oracle.record_and_smooth(FP, 100)
    clock.advance(119)
    assert oracle.preview_smoothed(FP, 200) == 200


def test_recency_weighted_average(oracle, clock):
    oracle.record_and_smooth(FP, 100)
    clock.advance(200)
    # new sample weight 301, prior sample age 200 -> weight 101
    expected = (200 * 301 + 100 * 101) // (301 + 101)
    assert oracle.preview_smoothed(FP, 200) == expected
    assert oracle.record_and_smooth(FP, 200) == expected


def test_samples_outside_window_are_ignored(oracle, clock):
    oracle.record_and_smooth(FP, 100)
    clock.advance(301)
    assert oracle.preview_smoothed(FP, 200) == 200


def test_preview_does_not_mutate_history(oracle, clock):
    oracle.record_and_smooth(FP, 100)
    clock.advance(200)
    oracle.preview_smoothed(FP, 200)
    assert [s.price for s in oracle.history(FP)] == [100]


def test_history_is_bounded(oracle, clock):
    for price in (1, 2, 3, 4, 5):
        oracle.record_and_smooth(FP, price)
        clock.advance(10)
    history = oracle.history(FP)
    assert [s.price for s in history] == [3, 4, 5]
    timestamps = [s.timestamp for s in history]
    assert timestamps == sorted(timestamps)


def test_clear_history(oracle):
    oracle.record_and_smooth(FP, 1)
    oracle.clear_history(FP)
    assert oracle.history(FP) == []
    assert oracle.latest_sample(FP) is None

# --- deviation ---

def test_deviation_check(oracle):
    oracle.check_deviation(FP, 1_000, 100)  # no samples yet
    oracle.record_and_smooth(FP, 1_000)
    oracle.check_deviation(FP, 1_010, 100)
    oracle.check_deviation(FP, 990, 100)
    with pytest.raises(ManipulationError):
        oracle.check_deviation(FP, 1_011, 100)
    # Zero bound disables the check
    oracle.check_deviation(FP, 5_000, 0)
