import pytest

from superorder.core.fixed_point import to_fixed
from superorder.exceptions import ConfigurationError, UnauthorizedError
from superorder.models.pair import PairStatus
from superorder.models.trigger import TriggerStatus
from superorder.schemas.keeper import KeeperAction, KeeperActionKind
from superorder.services.keeper.scheduler import KeeperScheduler

ADMIN = "0xadmin"
MAKER = "0xmaker"
KEEPER = "0xkeeper"
ETH = "ETH/USD"
USDC = "USDC/USD"

# --- Fixtures ---

@pytest.fixture
def scheduler(layer):
    return layer.scheduler


@pytest.fixture
def due_work(layer, settlement, clock, make_order):
    """
    One trigger whose condition holds, one iceberg with a filled chunk and one
    pair whose cancellation delay has elapsed.
    """
    trigger_order = make_order(extensions=("trigger",))
    layer.triggers.configure(MAKER, trigger_order, {
        "price_source_a": ETH,
        "price_source_b": USDC,
        "threshold_price": to_fixed("4500"),
        "direction": "falling",
    })

    iceberg_order = make_order(extensions=("iceberg",))
    layer.disclosures.configure(MAKER, iceberg_order, {"total_amount": 10, "base_chunk_size": 2})
    layer.disclosures.record_fill(settlement.address, iceberg_order, 2)

    take_profit = make_order(extensions=("oco",))
    stop_loss = make_order(extensions=("oco",))
    link = layer.pairs.link(MAKER, {"fingerprint_a": take_profit, "fingerprint_b": stop_loss})
    layer.pairs.on_fill_detected(settlement.address, take_profit)
    clock.advance(31)

    return {
        "trigger": trigger_order,
        "iceberg": iceberg_order,
        "take_profit": take_profit,
        "stop_loss": stop_loss,
        "pair_id": link.pair_id,
    }

# --- check_work ---

def test_check_work_with_nothing_due(scheduler):
    assert scheduler.check_work() == []
    assert scheduler.check_upkeep() == (False, '{"actions":[]}')


def test_check_work_collects_due_actions(scheduler, due_work):
    actions = scheduler.check_work()
    assert [(a.kind, a.fingerprint) for a in actions] == [
        (KeeperActionKind.TRIGGER_CHECKPOINT, due_work["trigger"]),
        (KeeperActionKind.REVEAL_CHUNK, due_work["iceberg"]),
        (KeeperActionKind.CANCEL_SIBLING, due_work["take_profit"]),
    ]


def test_check_work_skips_stale_triggers(scheduler, feed, clock, due_work):
    feed.set_price(ETH, to_fixed("4000", 8), updated_at=clock.now() - 7200)
    kinds = [a.kind for a in scheduler.check_work()]
    assert KeeperActionKind.TRIGGER_CHECKPOINT not in kinds
    assert len(kinds) == 2


def test_check_work_is_read_only(scheduler, layer, due_work):
    scheduler.check_work()
    assert layer.triggers.get(due_work["trigger"]).status == TriggerStatus.CONFIGURED
    assert layer.disclosures.get(due_work["iceberg"]).reveal_count == 1
    assert layer.pairs.get_link(due_work["pair_id"]).status == PairStatus.PENDING_CANCEL

# --- payloads ---

def test_payload_round_trip(scheduler):
    actions = [KeeperAction(kind=KeeperActionKind.REVEAL_CHUNK, fingerprint="0xabc")]
    assert scheduler.decode_work(scheduler.encode_work(actions)) == actions


@pytest.mark.parametrize("payload", ["not json", '{"actions": [{"kind": "launch", "fingerprint": "0x1"}]}'])
def test_decode_rejects_malformed_payload(scheduler, payload):
    with pytest.raises(ConfigurationError):
        scheduler.decode_work(payload)

# --- perform_work ---

def test_perform_work_executes_all_actions(scheduler, layer, settlement, due_work, events):
    _, payload = scheduler.check_upkeep()
    report = scheduler.perform_work(KEEPER, payload)

    assert (report.processed, report.succeeded, report.failed, report.skipped) == (3, 3, 0, 0)
    assert report.reward == 15
    assert layer.triggers.get(due_work["trigger"]).status == TriggerStatus.TRIGGERED
    assert layer.disclosures.get(due_work["iceberg"]).reveal_count == 2
    assert settlement.orders[due_work["stop_loss"]].cancelled is True

    stats = scheduler.keeper_stats(KEEPER)
    assert stats.successful_executions == 3
    assert stats.accrued_rewards == 15
    assert len(events.named("keeper_work_performed", key=KEEPER)) == 1

    # Replaying the same payload only produces no-ops
    replay = scheduler.perform_work(KEEPER, payload)
    assert (replay.succeeded, replay.skipped, replay.failed) == (0, 3, 0)
    assert replay.reward == 0


def test_perform_work_counts_failures(scheduler, layer, make_order):
    order = make_order(extensions=("trigger",))
    layer.triggers.configure(MAKER, order, {
        "price_source_a": ETH,
        "price_source_b": USDC,
        "threshold_price": to_fixed("3500"),
        "direction": "falling",
    })
    payload = scheduler.encode_work([
        KeeperAction(kind=KeeperActionKind.TRIGGER_CHECKPOINT, fingerprint=order),
        KeeperAction(kind=KeeperActionKind.REVEAL_CHUNK, fingerprint="0xmissing"),
    ])

    report = scheduler.perform_work(KEEPER, payload)

    assert report.failed == 2
    assert [o.error_code for o in report.outcomes] == ["not_triggered", "configuration_error"]
    assert scheduler.keeper_stats(KEEPER).failed_executions == 2
    assert report.reward == 0


def test_perform_work_requires_keeper(scheduler):
    with pytest.raises(UnauthorizedError):
        scheduler.perform_work("0xstranger", scheduler.encode_work([]))

    scheduler.register_keeper(ADMIN, "0xstranger")
    scheduler.revoke_keeper(ADMIN, "0xstranger")
    with pytest.raises(UnauthorizedError):
        scheduler.perform_work("0xstranger", scheduler.encode_work([]))


def test_perform_work_with_open_access(scheduler, layer, due_work):
    layer.keepers.set_open_access(ADMIN, True)
    _, payload = scheduler.check_upkeep()
    report = scheduler.perform_work("0xstranger", payload)
    assert report.succeeded == 3
    assert report.reward == 0


def test_perform_work_caps_actions_per_call(layer, test_settings, due_work):
    config = test_settings.model_copy(update={"KEEPER_MAX_ACTIONS_PER_CALL": 2})
    scheduler = KeeperScheduler(
        layer.triggers, layer.disclosures, layer.pairs, layer.keepers, layer.clock, layer.events, config
    )
    _, payload = scheduler.check_upkeep()

    report = scheduler.perform_work(KEEPER, payload)
    assert report.processed == 2
    assert report.deferred == 1
    assert layer.pairs.get_link(due_work["pair_id"]).status == PairStatus.PENDING_CANCEL

    _, payload = scheduler.check_upkeep()
    assert scheduler.perform_work(KEEPER, payload).succeeded == 1
    assert layer.pairs.get_link(due_work["pair_id"]).status == PairStatus.RESOLVED

# --- registration ---

def test_keeper_registration(scheduler, clock):
    registration = scheduler.register_keeper(ADMIN, "0xnew", reward_per_action=7)
    assert registration.registered_at == clock.now()
    assert scheduler.keeper_stats("0xnew").reward_per_action == 7

    with pytest.raises(UnauthorizedError):
        scheduler.register_keeper("0xnew", "0xother")
    with pytest.raises(ConfigurationError):
        scheduler.keeper_stats("0xunknown")
