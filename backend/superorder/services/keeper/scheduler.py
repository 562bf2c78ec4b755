"""
Keeper Scheduler.

`check_work` is a read-only scan for due actions across all engines; its result
is encoded into an opaque payload that a keeper later submits to
`perform_work`. Actions are re-validated by the engines when performed, so a
stale payload only produces skipped or failed outcomes, never a bad transition.
"""
import logging
from typing import List, Optional, Tuple

from pydantic import ValidationError

from superorder.core.access import KeeperRegistry
from superorder.core.config import Settings, settings as default_settings
from superorder.core.events import EventSink, ExtensionEvent
from superorder.exceptions import ConfigurationError, ExtensionError, PriceOracleError, UnauthorizedError
from superorder.models.keeper import KeeperRegistration
from superorder.models.trigger import TriggerStatus
from superorder.schemas.keeper import (
    ActionOutcome,
    KeeperAction,
    KeeperActionKind,
    WorkPayload,
    WorkReport,
)
from superorder.services.disclosure_controller import DisclosureController
from superorder.services.pair_coordinator import PairCoordinator
from superorder.services.trigger_evaluator import TriggerEvaluator

logger = logging.getLogger(__name__)


class KeeperScheduler:
    def __init__(
        self,
        triggers: TriggerEvaluator,
        disclosures: DisclosureController,
        pairs: PairCoordinator,
        keepers: KeeperRegistry,
        clock,
        events: EventSink,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self.triggers = triggers
        self.disclosures = disclosures
        self.pairs = pairs
        self.keepers = keepers
        self.clock = clock
        self.events = events
        self.max_actions_per_call = config.KEEPER_MAX_ACTIONS_PER_CALL

    # --- Registration ---

    def register_keeper(self, caller: str, keeper: str, reward_per_action: int = 0) -> KeeperRegistration:
        return self.keepers.register(caller, keeper, reward_per_action, now=self.clock.now())

    def revoke_keeper(self, caller: str, keeper: str) -> None:
        self.keepers.revoke(caller, keeper)

    def keeper_stats(self, keeper: str) -> KeeperRegistration:
        registration = self.keepers.get(keeper)
        if registration is None:
            raise ConfigurationError(f"Keeper {keeper} is not registered.")
        return registration

    # --- Discovery ---

    def check_work(self) -> List[KeeperAction]:
        actions: List[KeeperAction] = []

        for fingerprint, state in self.triggers.items():
            if state.status != TriggerStatus.CONFIGURED:
                continue
            try:
                triggered, _ = self.triggers.is_triggered(fingerprint)
            except PriceOracleError as e:
                logger.debug(f"Skipping trigger {fingerprint}: {e.message}")
                continue
            if triggered:
                actions.append(KeeperAction(kind=KeeperActionKind.TRIGGER_CHECKPOINT, fingerprint=fingerprint))

        for fingerprint, _ in self.disclosures.items():
            if self.disclosures.current_chunk(fingerprint).ready:
                actions.append(KeeperAction(kind=KeeperActionKind.REVEAL_CHUNK, fingerprint=fingerprint))

        now = self.clock.now()
        for _, link in self.pairs.items():
            if self.pairs.is_cancellation_due(link, now):
                actions.append(KeeperAction(kind=KeeperActionKind.CANCEL_SIBLING, fingerprint=link.filled_side))

        return actions

    def check_upkeep(self) -> Tuple[bool, str]:
        actions = self.check_work()
        return bool(actions), self.encode_work(actions)

    def encode_work(self, actions: List[KeeperAction]) -> str:
        return WorkPayload(actions=actions).model_dump_json()

    def decode_work(self, payload: str) -> List[KeeperAction]:
        try:
            return WorkPayload.model_validate_json(payload).actions
        except ValidationError as e:
            raise ConfigurationError(f"Malformed keeper payload: {e.errors()[0]['msg']}") from e

    # --- Execution ---

    def _dispatch(self, caller: str, action: KeeperAction, fee: Optional[int]) -> bool:
        if action.kind == KeeperActionKind.TRIGGER_CHECKPOINT:
            return self.triggers.checkpoint(caller, action.fingerprint)
        if action.kind == KeeperActionKind.REVEAL_CHUNK:
            return self.disclosures.reveal_next(caller, action.fingerprint)
        if action.kind == KeeperActionKind.CANCEL_SIBLING:
            return self.pairs.process_cancellation(caller, action.fingerprint, fee)
        raise ConfigurationError(f"Unknown keeper action {action.kind}.")

    def perform_work(self, caller: str, payload: str, fee: Optional[int] = None) -> WorkReport:
        if not self.keepers.can_act(caller):
            raise UnauthorizedError(f"{caller} is not an authorized keeper.")
        actions = self.decode_work(payload)

        batch = actions[: self.max_actions_per_call]
        report = WorkReport(keeper=caller, deferred=len(actions) - len(batch))
        for action in batch:
            report.processed += 1
            try:
                done = self._dispatch(caller, action, fee)
            except ExtensionError as e:
                report.failed += 1
                report.outcomes.append(ActionOutcome(
                    action=action, status="failed", error_code=e.code, error=e.message
                ))
                logger.warning(
                    f"Keeper {caller}: {action.kind.value} for {action.fingerprint} failed: {e.message}"
                )
                continue

            if done:
                report.succeeded += 1
                report.outcomes.append(ActionOutcome(action=action, status="succeeded"))
            else:
                report.skipped += 1
                report.outcomes.append(ActionOutcome(action=action, status="skipped"))

        now = self.clock.now()
        report.reward = self.keepers.record_result(caller, report.succeeded, report.failed, now)

        logger.info(
            f"Keeper {caller} performed {report.processed} actions: {report.succeeded} succeeded, "
            f"{report.skipped} skipped, {report.failed} failed, {report.deferred} deferred"
        )
        self.events.emit(ExtensionEvent(
            name="keeper_work_performed",
            key=caller,
            timestamp=now,
            data={
                "processed": report.processed,
                "succeeded": report.succeeded,
                "failed": report.failed,
                "reward": report.reward,
            },
        ))
        return report
