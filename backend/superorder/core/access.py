"""
Capabilities shared by the engines: administration/pause, keeper registry and
swap venue approval. Engines hold these as attributes instead of inheriting them.
"""
import logging
from typing import TYPE_CHECKING, Dict, List, Optional

from superorder.exceptions import ConfigurationError, PausedError, UnauthorizedError
from superorder.models.keeper import KeeperRegistration

if TYPE_CHECKING:
    from superorder.services.settlement.interface import SwapVenue

logger = logging.getLogger(__name__)


class Administrable:
    def __init__(self, admin: str, name: str):
        if not admin:
            raise ConfigurationError("Admin address is required.")
        self.admin = admin
        self.name = name
        self.paused = False

    def is_admin(self, caller: str) -> bool:
        return caller == self.admin

    def require_admin(self, caller: str) -> None:
        if caller != self.admin:
            raise UnauthorizedError(f"{self.name}: only the admin may do this.")

    def require_not_paused(self) -> None:
        if self.paused:
            raise PausedError(f"{self.name} is paused.")

    def pause(self, caller: str) -> None:
        self.require_admin(caller)
        self.paused = True
        logger.info(f"{self.name} paused by {caller}")

    def unpause(self, caller: str) -> None:
        self.require_admin(caller)
        self.paused = False
        logger.info(f"{self.name} unpaused by {caller}")

    def transfer_admin(self, caller: str, new_admin: str) -> None:
        self.require_admin(caller)
        if not new_admin:
            raise ConfigurationError("New admin address is required.")
        self.admin = new_admin
        logger.info(f"{self.name} admin transferred to {new_admin}")


class KeeperRegistry:
    """
    Authorized keepers and their execution statistics. One registry is shared
    by every engine so a keeper is authorized once for the whole layer.
    """
    def __init__(self, control: Administrable, open_access: bool = False):
        self.control = control
        self.open_access = open_access
        self._keepers: Dict[str, KeeperRegistration] = {}

    def register(self, caller: str, keeper: str, reward_per_action: int = 0, now: int = 0) -> KeeperRegistration:
        self.control.require_admin(caller)
        if not keeper:
            raise ConfigurationError("Keeper address is required.")
        if reward_per_action < 0:
            raise ConfigurationError("Keeper reward cannot be negative.")

        registration = self._keepers.get(keeper)
        if registration is None:
            registration = KeeperRegistration(keeper=keeper, reward_per_action=reward_per_action, registered_at=now)
            self._keepers[keeper] = registration
        else:
            # Re-registration keeps the statistics
            registration.authorized = True
            registration.reward_per_action = reward_per_action
        logger.info(f"Keeper {keeper} registered (reward per action {reward_per_action})")
        return registration

    def revoke(self, caller: str, keeper: str) -> None:
        self.control.require_admin(caller)
        registration = self._keepers.get(keeper)
        if registration is None or not registration.authorized:
            raise ConfigurationError(f"Keeper {keeper} is not registered.")
        registration.authorized = False
        logger.info(f"Keeper {keeper} revoked")

    def is_authorized(self, keeper: str) -> bool:
        registration = self._keepers.get(keeper)
        return registration is not None and registration.authorized

    def can_act(self, keeper: str) -> bool:
        return self.open_access or self.is_authorized(keeper)

    def set_open_access(self, caller: str, enabled: bool) -> None:
        self.control.require_admin(caller)
        self.open_access = enabled
        logger.info(f"Keeper open access {'enabled' if enabled else 'disabled'}")

    def get(self, keeper: str) -> Optional[KeeperRegistration]:
        return self._keepers.get(keeper)

    def authorized_keepers(self) -> List[str]:
        return [k for k, r in self._keepers.items() if r.authorized]

    def record_result(self, keeper: str, succeeded: int, failed: int, now: int) -> int:
        """
        Updates statistics for a perform call and returns the reward accrued by it.
        Unregistered callers (open access) are not tracked.
        """
        registration = self._keepers.get(keeper)
        if registration is None:
            return 0
        registration.total_executions += succeeded + failed
        registration.successful_executions += succeeded
        registration.failed_executions += failed
        reward = succeeded * registration.reward_per_action
        registration.accrued_rewards += reward
        registration.last_performed_at = now
        return reward


class VenueRegistry:
    """
    Swap venues approved by the admin for trigger execution.
    """
    def __init__(self, control: Administrable):
        self.control = control
        self._venues: Dict[str, "SwapVenue"] = {}

    def approve(self, caller: str, venue: "SwapVenue") -> None:
        self.control.require_admin(caller)
        self._venues[venue.venue_id] = venue
        logger.info(f"Swap venue {venue.venue_id} approved")

    def revoke(self, caller: str, venue_id: str) -> None:
        self.control.require_admin(caller)
        if self._venues.pop(venue_id, None) is None:
            raise ConfigurationError(f"Swap venue {venue_id} is not approved.")
        logger.info(f"Swap venue {venue_id} revoked")

    def is_approved(self, venue_id: str) -> bool:
        return venue_id in self._venues

    def require(self, venue_id: str) -> "SwapVenue":
        venue = self._venues.get(venue_id)
        if venue is None:
            raise UnauthorizedError(f"Swap venue {venue_id} is not approved.")
        return venue
