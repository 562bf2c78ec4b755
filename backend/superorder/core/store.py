"""
Keyed state storage.

Each engine owns one KeyedStore per kind of state, indexed by order fingerprint
(or pair id). Mutating calls run inside `transaction(key)`, which snapshots the
entry and restores it if the block raises.
"""
import copy
import logging
from contextlib import contextmanager
from typing import Callable, Dict, Generic, Iterator, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

_MISSING = object()


class KeyedStore(Generic[T]):
    def __init__(self, name: str, missing_error: Optional[Callable[[str], Exception]] = None):
        self.name = name
        self._entries: Dict[str, T] = {}
        self._missing_error = missing_error

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: str) -> Optional[T]:
        return self._entries.get(key)

    def require(self, key: str) -> T:
        entry = self._entries.get(key)
        if entry is None:
            if self._missing_error is not None:
                raise self._missing_error(key)
            raise KeyError(f"{self.name}: no entry for {key}")
        return entry

    def put(self, key: str, entry: T) -> None:
        self._entries[key] = entry

    def delete(self, key: str) -> Optional[T]:
        return self._entries.pop(key, None)

    def items(self) -> Iterator[Tuple[str, T]]:
        # Snapshot the keys so callers may mutate the store while iterating
        return iter(list(self._entries.items()))

    def keys(self):
        return list(self._entries.keys())

    @contextmanager
    def transaction(self, key: str):
        """
        Restores the entry stored under `key` (or its absence) when the block raises.
        """
        previous = self._entries.get(key, _MISSING)
        snapshot = copy.deepcopy(previous) if previous is not _MISSING else _MISSING
        try:
            yield
        except BaseException:
            if snapshot is _MISSING:
                self._entries.pop(key, None)
            else:
                self._entries[key] = snapshot
            logger.debug(f"{self.name}: rolled back {key}")
            raise
