"""
Events - Auction lifecycle notifications.

Mutating engine operations emit one event each:
- AuctionCreated on create_auction
- AuctionEnded on a successful buy

Events go through an EventBus owned by the engine. Subscribers are plain
callables; the engine works the same with none attached. When storage is
enabled, every event is also appended to the events table as JSON.
"""

import threading
from collections import deque
from typing import Callable, ClassVar, Deque, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict

from aucengine.core.storage.storage_manager import StorageManager
from aucengine.utils.logger import get_logger

logger = get_logger("events")


# =============================================================================
# Event Types
# =============================================================================


class AuctionEvent(BaseModel):
    """Base for lifecycle events. Addresses are 0x-prefixed hex."""
    model_config = ConfigDict(frozen=True)

    name: ClassVar[str] = "AuctionEvent"

    auction_id: int


class AuctionCreated(AuctionEvent):
    name: ClassVar[str] = "AuctionCreated"

    seller: str
    item: str
    starting_price: int
    duration: int


class AuctionEnded(AuctionEvent):
    name: ClassVar[str] = "AuctionEnded"

    final_price: int
    buyer: str


Event = Union[AuctionCreated, AuctionEnded]

EVENT_TYPES: Dict[str, Type[AuctionEvent]] = {
    AuctionCreated.name: AuctionCreated,
    AuctionEnded.name: AuctionEnded,
}


def decode_event(name: str, payload: str) -> AuctionEvent:
    """Rebuild an event from its stored name and JSON payload."""
    try:
        event_type = EVENT_TYPES[name]
    except KeyError:
        raise ValueError(f"Unknown event type: {name}") from None
    return event_type.model_validate_json(payload)


# =============================================================================
# Event Bus
# =============================================================================


Subscriber = Callable[[AuctionEvent], None]

STORED_HISTORY_LIMIT = 256


class EventBus:
    """
    Delivers events to subscribers and keeps an in-memory history.

    Without storage the history is the only record and is unbounded. With
    storage it keeps only the most recent STORED_HISTORY_LIMIT events; the
    full log lives in the events table.

    A subscriber that raises is logged and skipped; it cannot undo the
    operation that produced the event.
    """

    def __init__(
        self,
        storage_manager: Optional[StorageManager] = None,
        history_limit: Optional[int] = None,
    ):
        """
        Args:
            storage_manager: Persistence manager. None = in-memory only.
            history_limit: Max events kept in memory. Defaults to unbounded
                without storage and STORED_HISTORY_LIMIT with it.
        """
        if history_limit is None and storage_manager is not None:
            history_limit = STORED_HISTORY_LIMIT

        self.storage_manager = storage_manager
        self._history: Deque[AuctionEvent] = deque(maxlen=history_limit)
        self._subscribers: List[Subscriber] = []
        self._lock = threading.Lock()

    @property
    def history(self) -> List[AuctionEvent]:
        """Recent events, oldest first."""
        with self._lock:
            return list(self._history)

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.remove(callback)

    def emit(self, event: AuctionEvent) -> None:
        """Record an event and deliver it to every subscriber."""
        with self._lock:
            self._history.append(event)
            subscribers = list(self._subscribers)

        if self.storage_manager:
            self.storage_manager.persist_event(event.name, event.auction_id, event.model_dump_json())

        logger.info(f"{event.name}: {event.model_dump()}")

        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                logger.exception(f"Subscriber {callback!r} failed on {event.name}")

    def stored_events(self, auction_id: Optional[int] = None) -> List[AuctionEvent]:
        """Events from storage (falls back to in-memory history)."""
        if not self.storage_manager:
            with self._lock:
                return [e for e in self._history if auction_id is None or e.auction_id == auction_id]
        return [
            decode_event(name, payload)
            for name, payload in self.storage_manager.load_events(auction_id)
        ]
