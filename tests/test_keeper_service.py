import asyncio
import time
from unittest.mock import MagicMock

import pytest

from superorder.exceptions import PriceFeedUnavailableError
from superorder.services.keeper.keeper_service import KeeperService

ADMIN = "0xadmin"
MAKER = "0xmaker"
KEEPER = "0xkeeper"


@pytest.fixture
def service(layer):
    return KeeperService(layer.scheduler, KEEPER, polling_interval_seconds=0.01)


def test_run_cycle_without_work(service):
    assert service.run_cycle() is None
    assert service.last_report is None


def test_run_cycle_performs_due_work(service, layer, settlement, make_order):
    order = make_order(extensions=("iceberg",))
    layer.disclosures.configure(MAKER, order, {"total_amount": 4, "base_chunk_size": 2})
    layer.disclosures.record_fill(settlement.address, order, 2)

    report = service.run_cycle()

    assert report.succeeded == 1
    assert service.last_report is report
    assert layer.disclosures.get(order).reveal_count == 2


@pytest.mark.asyncio
async def test_start_and_stop_monitoring_task(service):
    await service.start_monitoring_task()
    assert service.is_running
    await asyncio.sleep(0.05)
    assert service.health["cycle_count"] >= 1
    assert service.health["status"] == "running"

    await service.stop_monitoring_task()
    assert not service.is_running
    assert service.health["status"] == "stopped"


@pytest.mark.asyncio
async def test_start_twice_keeps_single_task(service):
    await service.start_monitoring_task()
    task = service._monitor_task
    await service.start_monitoring_task()
    assert service._monitor_task is task
    await service.stop_monitoring_task()


@pytest.mark.asyncio
async def test_loop_counts_errors_and_keeps_running():
    scheduler = MagicMock()
    scheduler.check_upkeep.side_effect = PriceFeedUnavailableError("feed down")
    service = KeeperService(scheduler, KEEPER, polling_interval_seconds=0.01)

    await service.start_monitoring_task()
    await asyncio.sleep(0.05)
    assert service.health["error_count"] >= 1
    assert service.health["last_error"] == "feed down"
    assert service.is_running

    await service.stop_monitoring_task()


@pytest.mark.asyncio
async def test_loop_survives_unexpected_errors():
    scheduler = MagicMock()
    scheduler.check_upkeep.side_effect = RuntimeError("venue exploded")
    service = KeeperService(scheduler, KEEPER, polling_interval_seconds=0.01)

    await service.start_monitoring_task()
    await asyncio.sleep(0.05)
    assert not service._monitor_task.done()
    assert service.health["status"] == "error"
    assert service.health["error_count"] >= 1
    assert service.health["last_error"] == "venue exploded"

    await service.stop_monitoring_task()
    assert service.health["status"] == "stopped"


@pytest.mark.asyncio
async def test_slow_cycle_does_not_block_event_loop():
    def slow_upkeep():
        time.sleep(0.3)
        return False, '{"actions":[]}'

    scheduler = MagicMock()
    scheduler.check_upkeep.side_effect = slow_upkeep
    service = KeeperService(scheduler, KEEPER, polling_interval_seconds=0.01)

    await service.start_monitoring_task()
    await asyncio.sleep(0.01)
    started = time.perf_counter()
    await asyncio.sleep(0.01)
    assert time.perf_counter() - started < 0.1

    await service.stop_monitoring_task()
