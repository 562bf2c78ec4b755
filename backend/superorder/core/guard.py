"""
Per-fingerprint in-progress guard.

External calls (swap, transfer, cancel) run while the fingerprint is held, so a
collaborator that calls back into the same action path is rejected instead of
observing half-applied state.
"""
import logging
from contextlib import contextmanager
from typing import Set

from superorder.exceptions import ReentrantCallError

logger = logging.getLogger(__name__)


class ExecutionGuard:
    def __init__(self, name: str = "guard"):
        self.name = name
        self._held: Set[str] = set()

    def is_held(self, key: str) -> bool:
        return key in self._held

    @contextmanager
    def hold(self, key: str):
        if key in self._held:
            logger.warning(f"{self.name}: re-entrant call rejected for {key}")
            raise ReentrantCallError(f"Action already in progress for {key}.")
        self._held.add(key)
        try:
            yield
        finally:
            self._held.discard(key)
