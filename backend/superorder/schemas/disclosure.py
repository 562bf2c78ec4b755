from enum import Enum

from pydantic import BaseModel, Field


class DisclosureStrategy(str, Enum):
    FIXED = "fixed"
    PERCENTAGE = "percentage"
    ADAPTIVE = "adaptive"
    TIME_BASED = "time_based"


class DisclosureConfig(BaseModel):
    total_amount: int = Field(..., ge=0)
    base_chunk_size: int = Field(..., ge=0)
    strategy: DisclosureStrategy = DisclosureStrategy.FIXED
    max_visible_bps: int = Field(1000, ge=0, description="Upper bound of one chunk as a share of the total.")
    reveal_interval: int = Field(0, ge=0, description="Seconds that must pass between reveals.")

    # ADAPTIVE
    target_fill_seconds: int = Field(300, ge=0)
    adaptive_step_bps: int = Field(2000, ge=0)
    adaptive_floor_bps: int = Field(100, ge=0)
    adaptive_ceiling_bps: int = Field(5000, ge=0)

    # TIME_BASED
    growth_bps: int = Field(1000, ge=0, description="Chunk growth per elapsed reveal interval.")
