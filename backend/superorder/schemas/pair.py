from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PairStrategy(str, Enum):
    BRACKET = "bracket"      # take-profit above, stop-loss below
    BREAKOUT = "breakout"    # entries on either side of a range
    RANGE = "range"          # buy low / sell high inside a range


class PairConfig(BaseModel):
    fingerprint_a: str
    fingerprint_b: str
    strategy: PairStrategy = PairStrategy.BRACKET
    cancellation_delay: Optional[int] = Field(None, ge=0, description="Defaults to OCO_CANCELLATION_DELAY_SECONDS.")
    authorized_keeper: Optional[str] = None
    max_fee: Optional[int] = Field(None, ge=0)
