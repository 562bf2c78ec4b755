from dataclasses import dataclass


@dataclass(frozen=True)
class PriceSample:
    price: int
    timestamp: int
    # Set for prices observed at a venue during execution rather than read from the feed
    realized: bool = False
