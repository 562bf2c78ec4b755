from .price import PriceSample
from .trigger import TriggerStatus, TriggerState, ExecutionRecord
from .disclosure import DisclosureState
from .pair import PairStatus, PairResolution, PairLink
from .keeper import KeeperRegistration

__all__ = [
    "PriceSample",
    "TriggerStatus",
    "TriggerState",
    "ExecutionRecord",
    "DisclosureState",
    "PairStatus",
    "PairResolution",
    "PairLink",
    "KeeperRegistration",
]
