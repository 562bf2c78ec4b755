from dataclasses import dataclass
from enum import Enum
from typing import Optional

from superorder.schemas.pair import PairStrategy


class PairStatus(str, Enum):
    ACTIVE = "active"
    PENDING_CANCEL = "pending_cancel"
    RESOLVED = "resolved"


class PairResolution(str, Enum):
    CANCELLED_SIBLING = "cancelled_sibling"
    BOTH_FILLED = "both_filled"
    UNLINKED = "unlinked"


@dataclass
class PairLink:
    pair_id: str
    fingerprint_a: str
    fingerprint_b: str
    strategy: PairStrategy
    cancellation_delay: int
    owner: str
    linked_at: int
    status: PairStatus = PairStatus.ACTIVE
    filled_side: Optional[str] = None
    filled_at: Optional[int] = None
    both_filled: bool = False
    cancelled_fingerprint: Optional[str] = None
    resolution: Optional[PairResolution] = None
    resolved_at: Optional[int] = None
    authorized_keeper: Optional[str] = None
    max_fee: Optional[int] = None

    def sibling_of(self, fingerprint: str) -> str:
        if fingerprint == self.fingerprint_a:
            return self.fingerprint_b
        if fingerprint == self.fingerprint_b:
            return self.fingerprint_a
        raise ValueError(f"{fingerprint} is not part of pair {self.pair_id}")

    def cancel_due_at(self) -> Optional[int]:
        if self.filled_at is None:
            return None
        return self.filled_at + self.cancellation_delay
