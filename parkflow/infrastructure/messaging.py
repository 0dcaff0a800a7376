"""
Messaging Infrastructure for the Parking Engine

This module implements intra-process event-driven communication:
1. Event Bus - publish/subscribe for domain events
2. Event Handlers - side effects of domain events (display boards)
3. Event Log - in-memory record of published events for auditing
"""

from abc import ABC, abstractmethod
from typing import Optional, Dict, List, Any
import logging
import threading

from ..domain.models import DomainEvent, EventType
from ..domain.aggregates import SpotRegistry


# ============================================================================
# EVENT HANDLERS
# ============================================================================

class EventHandler(ABC):
    """Abstract base class for event handlers"""

    @abstractmethod
    def handle(self, event: DomainEvent) -> None:
        """Handle a domain event"""
        pass

    def can_handle(self, event: DomainEvent) -> bool:
        """Check if this handler can handle the event"""
        return True


# ============================================================================
# EVENT BUS (In-memory)
# ============================================================================

class EventBus:
    """
    In-memory event bus for intra-process event publishing

    Handlers run synchronously on the publishing thread. A failing handler
    is logged and does not stop delivery to the remaining handlers.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[EventHandler]] = {}
        self._lock = threading.Lock()
        self._logger = logging.getLogger(self.__class__.__name__)

    def subscribe(self, event_type: EventType, handler: EventHandler) -> None:
        """Subscribe to events of a specific type"""
        with self._lock:
            handlers = self._subscribers.setdefault(event_type, [])
            if handler not in handlers:
                handlers.append(handler)
                self._logger.debug(f"Subscribed {handler.__class__.__name__} to {event_type.value}")

    def subscribe_all(self, handler: EventHandler) -> None:
        for event_type in EventType:
            self.subscribe(event_type, handler)

    def unsubscribe(self, event_type: EventType, handler: EventHandler) -> None:
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)
                self._logger.debug(f"Unsubscribed {handler.__class__.__name__} from {event_type.value}")

    def publish(self, event: DomainEvent) -> None:
        """Publish an event to all subscribers"""
        self._logger.debug(f"Publishing event: {event.event_type.value} (ID: {event.event_id})")

        with self._lock:
            handlers = list(self._subscribers.get(event.event_type, []))

        for handler in handlers:
            if handler.can_handle(event):
                try:
                    handler.handle(event)
                except Exception as e:
                    self._logger.error(
                        f"Error handling event {event.event_type.value} "
                        f"with {handler.__class__.__name__}: {e}"
                    )

    def publish_all(self, events: List[DomainEvent]) -> None:
        for event in events:
            self.publish(event)

    def subscriber_count(self, event_type: Optional[EventType] = None) -> int:
        with self._lock:
            if event_type is not None:
                return len(self._subscribers.get(event_type, []))
            return sum(len(handlers) for handlers in self._subscribers.values())

    def clear_subscribers(self) -> None:
        """Clear all subscribers (for testing)"""
        with self._lock:
            self._subscribers.clear()


# ============================================================================
# CONCRETE HANDLERS
# ============================================================================

class DisplayBoardRefresher(EventHandler):
    """Recomputes the free-spot counts of a floor's boards when a spot changes"""

    def __init__(self, registry: SpotRegistry, clock=None):
        self._registry = registry
        self._clock = clock
        self._logger = logging.getLogger(self.__class__.__name__)

    def can_handle(self, event: DomainEvent) -> bool:
        return event.event_type in (EventType.SPOT_OCCUPIED, EventType.SPOT_RELEASED)

    def handle(self, event: DomainEvent) -> None:
        floor = self._registry.get_floor(event.floor_name)
        now = self._clock() if self._clock else None
        for board in floor.display_boards:
            board.refresh(floor.all_spots(), now)
            self._logger.debug(f"Refreshed display board {board.id} on floor {floor.name}")


class EventLog(EventHandler):
    """Keeps every event it receives, in publication order"""

    def __init__(self, max_events: Optional[int] = None):
        self.max_events = max_events
        self._events: List[DomainEvent] = []
        self._lock = threading.Lock()

    def handle(self, event: DomainEvent) -> None:
        with self._lock:
            self._events.append(event)
            if self.max_events is not None and len(self._events) > self.max_events:
                del self._events[0]

    def events(self, event_type: Optional[EventType] = None) -> List[DomainEvent]:
        with self._lock:
            if event_type is None:
                return list(self._events)
            return [e for e in self._events if e.event_type == event_type]

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [event.to_dict() for event in self.events()]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()
