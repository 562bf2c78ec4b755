from .keeper_service import KeeperService
from .scheduler import KeeperScheduler

__all__ = ["KeeperScheduler", "KeeperService"]
