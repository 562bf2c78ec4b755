from enum import Enum
from typing import List

from pydantic import BaseModel, Field


class KeeperActionKind(str, Enum):
    TRIGGER_CHECKPOINT = "trigger_checkpoint"
    REVEAL_CHUNK = "reveal_chunk"
    CANCEL_SIBLING = "cancel_sibling"


class KeeperAction(BaseModel):
    kind: KeeperActionKind
    fingerprint: str


class WorkPayload(BaseModel):
    actions: List[KeeperAction] = Field(default_factory=list)


class ActionOutcome(BaseModel):
    action: KeeperAction
    status: str  # "succeeded", "skipped" or "failed"
    error_code: str = ""
    error: str = ""


class WorkReport(BaseModel):
    keeper: str
    processed: int = 0
    succeeded: int = 0
    skipped: int = 0
    failed: int = 0
    deferred: int = 0
    reward: int = 0
    outcomes: List[ActionOutcome] = Field(default_factory=list)
