from pydantic import BaseModel, Field


class SwapInstructions(BaseModel):
    """
    Instructions handed to the trigger evaluator on the fill path of a triggered order.
    """
    venue: str
    asset_in: str
    asset_out: str
    amount_in: int = Field(..., gt=0)
    recipient: str
    executor: str
    data: bytes = b""
