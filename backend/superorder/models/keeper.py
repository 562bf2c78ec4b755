from dataclasses import dataclass
from typing import Optional


@dataclass
class KeeperRegistration:
    keeper: str
    authorized: bool = True
    reward_per_action: int = 0
    registered_at: int = 0
    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    accrued_rewards: int = 0
    last_performed_at: Optional[int] = None

    @property
    def success_rate_bps(self) -> int:
        if self.total_executions == 0:
            return 0
        return self.successful_executions * 10_000 // self.total_executions
