from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class TriggerDirection(str, Enum):
    FALLING = "falling"  # stop-loss
    RISING = "rising"    # take-profit


class TriggerConfig(BaseModel):
    price_source_a: str = Field(..., description="Feed source pricing the primary asset.")
    price_source_b: str = Field(..., description="Feed source pricing the counter asset.")
    threshold_price: int = Field(..., ge=0, description="Trigger price of A in B, 18-decimal fixed point.")
    direction: TriggerDirection = TriggerDirection.FALLING
    max_slippage_bps: int = Field(100, ge=0)
    max_deviation_bps: int = Field(1000, ge=0, description="0 disables the per-update deviation check.")
    executor: Optional[str] = Field(None, description="Only this executor may appear in swap instructions.")
    owner: Optional[str] = None
    decimals_a: int = 18
    decimals_b: int = 18
