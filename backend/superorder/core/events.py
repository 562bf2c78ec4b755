import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class ExtensionEvent(BaseModel):
    name: str
    key: str
    timestamp: int
    data: Dict[str, Any] = Field(default_factory=dict)


class EventSink(ABC):
    """
    Receives every state transition emitted by the engines.
    """
    @abstractmethod
    def emit(self, event: ExtensionEvent) -> None:
        pass


class EventLog(EventSink):
    """
    Append-only in-memory event sink.
    """
    def __init__(self):
        self._events: List[ExtensionEvent] = []

    def emit(self, event: ExtensionEvent) -> None:
        self._events.append(event)
        logger.debug(f"Event {event.name} for {event.key}: {event.data}")

    def all(self) -> List[ExtensionEvent]:
        return list(self._events)

    def named(self, name: str, key: Optional[str] = None) -> List[ExtensionEvent]:
        return [
            e for e in self._events
            if e.name == name and (key is None or e.key == key)
        ]

    def for_key(self, key: str) -> List[ExtensionEvent]:
        return [e for e in self._events if e.key == key]

    def __len__(self) -> int:
        return len(self._events)
