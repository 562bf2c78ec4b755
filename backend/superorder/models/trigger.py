from dataclasses import dataclass
from enum import Enum
from typing import Optional

from superorder.schemas.trigger import TriggerConfig


class TriggerStatus(str, Enum):
    CONFIGURED = "configured"
    TRIGGERED = "triggered"
    EXECUTED = "executed"


@dataclass
class ExecutionRecord:
    venue: str
    amount_in: int
    expected_out: int
    return_amount: int
    price: int
    recipient: str
    executed_at: int


@dataclass
class TriggerState:
    fingerprint: str
    config: TriggerConfig
    owner: str
    status: TriggerStatus = TriggerStatus.CONFIGURED
    configured_at: int = 0
    triggered_at: Optional[int] = None
    executed_at: Optional[int] = None
    executed_amount: int = 0
    last_execution: Optional[ExecutionRecord] = None

    @property
    def is_terminal(self) -> bool:
        return self.status == TriggerStatus.EXECUTED
