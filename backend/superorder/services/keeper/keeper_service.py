"""
Background keeper: polls the scheduler for due work and performs it.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

from superorder.core.config import settings
from superorder.exceptions import ExtensionError
from superorder.schemas.keeper import WorkReport
from superorder.services.keeper.scheduler import KeeperScheduler

logger = logging.getLogger(__name__)


class KeeperService:
    def __init__(
        self,
        scheduler: KeeperScheduler,
        keeper: str,
        polling_interval_seconds: Optional[float] = None,
        fee: Optional[int] = None,
    ):
        self.scheduler = scheduler
        self.keeper = keeper
        self.polling_interval_seconds = (
            settings.KEEPER_POLL_INTERVAL_SECONDS if polling_interval_seconds is None else polling_interval_seconds
        )
        self.fee = fee
        self._running = False
        self._monitor_task = None
        self.health: Dict[str, Any] = {"status": "stopped", "cycle_count": 0, "error_count": 0, "last_error": None}
        self.last_report: Optional[WorkReport] = None

    def run_cycle(self) -> Optional[WorkReport]:
        """
        One discovery + perform round. Returns None when there was nothing to do.
        """
        has_work, payload = self.scheduler.check_upkeep()
        if not has_work:
            logger.debug(f"KeeperService {self.keeper}: no work")
            return None
        report = self.scheduler.perform_work(self.keeper, payload, self.fee)
        self.last_report = report
        return report

    async def start_monitoring_task(self):
        """
        Starts the background keeper task.
        """
        if not self._running:
            self._running = True
            self._monitor_task = asyncio.create_task(self._monitoring_loop())
            logger.info(f"KeeperService monitoring task started for {self.keeper}.")

    async def _monitoring_loop(self):
        cycle_count = 0
        error_count = 0
        last_error = None

        while self._running:
            try:
                # Engines and feeds are synchronous; keep them off the event loop
                await asyncio.to_thread(self.run_cycle)
                cycle_count += 1
                self._report_health("running", cycle_count, error_count, last_error)
                await asyncio.sleep(self.polling_interval_seconds)
            except asyncio.CancelledError:
                self._report_health("stopped", cycle_count, error_count, last_error)
                break
            except ExtensionError as e:
                error_count += 1
                last_error = e.message
                logger.error(f"Error in KeeperService loop: {e.message}")
                self._report_health("error", cycle_count, error_count, last_error)
                await asyncio.sleep(self.polling_interval_seconds)
            except Exception as e:
                error_count += 1
                last_error = str(e)
                logger.exception(f"Unexpected error in KeeperService loop: {e}")
                self._report_health("error", cycle_count, error_count, last_error)
                await asyncio.sleep(self.polling_interval_seconds)

    def _report_health(self, status: str, cycle_count: int, error_count: int, last_error: Optional[str]):
        self.health = {
            "status": status,
            "cycle_count": cycle_count,
            "error_count": error_count,
            "last_error": last_error,
        }

    @property
    def is_running(self) -> bool:
        return self._running

    async def stop_monitoring_task(self):
        """
        Stops the background keeper task.
        """
        if self._running and self._monitor_task:
            self._running = False
            self._monitor_task.cancel()
            try:
                await self._monitor_task
            except asyncio.CancelledError:
                pass
            finally:
                self.health["status"] = "stopped"
                logger.info(f"KeeperService monitoring task stopped for {self.keeper}.")
