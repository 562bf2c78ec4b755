from dataclasses import dataclass
from typing import Optional

from superorder.schemas.disclosure import DisclosureConfig


@dataclass
class DisclosureState:
    """
    Progress of one iceberg order. `revealed_total` counts every unit made
    visible so far, so `revealed_total - filled_amount` is what is currently
    fillable.
    """
    fingerprint: str
    config: DisclosureConfig
    owner: str
    filled_amount: int = 0
    current_chunk_size: int = 0
    chunk_filled: int = 0
    revealed_total: int = 0
    reveal_count: int = 0
    started_at: int = 0
    last_reveal_at: int = 0
    last_fill_at: Optional[int] = None
    last_chunk_duration: Optional[int] = None
    active: bool = True

    @property
    def total_amount(self) -> int:
        return self.config.total_amount

    @property
    def remaining(self) -> int:
        return self.config.total_amount - self.filled_amount

    @property
    def unrevealed(self) -> int:
        return self.config.total_amount - self.revealed_total

    @property
    def chunk_remaining(self) -> int:
        return self.current_chunk_size - self.chunk_filled
