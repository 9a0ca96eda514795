"""
Event bus - mediator between monitors and the handlers that react to them.

The collision monitor publishes CollisionEvents here instead of editing
scripts itself; reactions subscribe per event type. Every published event
is kept in a bounded history so the cause of a script change can be
inspected after a run.
"""

from collections import deque
from typing import Any, Callable, Deque, Dict, List, Protocol, Type

from pydantic import BaseModel, ConfigDict, Field

from blockstage.logging import emit_record, get_logger

log = get_logger('bus')


class CollisionEvent(BaseModel):
    """Two actors started overlapping on this tick."""
    actor_a_id: str = Field(..., description="Lower id of the pair (sorted)")
    actor_b_id: str = Field(..., description="Higher id of the pair (sorted)")
    tick: int = Field(default=0, description="Scheduler tick the overlap was seen")

    model_config = ConfigDict(frozen=True)

    @property
    def pair(self) -> tuple:
        return (self.actor_a_id, self.actor_b_id)


class EventHandler(Protocol):
    """Protocol for bus subscribers."""

    def __call__(self, event: Any) -> None:
        ...


class EventBus:
    """
    Synchronous publish/subscribe by event type.

    Usage:
        bus = EventBus()
        unsubscribe = bus.subscribe(CollisionEvent, reaction)
        bus.publish(CollisionEvent(actor_a_id="cat-1", actor_b_id="dog-1"))
    """

    def __init__(self, history_size: int = 256):
        self._handlers: Dict[Type, List[EventHandler]] = {}
        self.history: Deque[Any] = deque(maxlen=history_size)

    def subscribe(self, event_type: Type, handler: EventHandler) -> Callable[[], None]:
        """
        Register a handler for an event type.

        Returns:
            Function that removes the handler
        """
        self._handlers.setdefault(event_type, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    def publish(self, event: Any) -> int:
        """
        Deliver an event to every handler registered for its type.

        Returns:
            Number of handlers called
        """
        self.history.append(event)
        handlers = list(self._handlers.get(type(event), []))

        if isinstance(event, BaseModel):
            emit_record('bus', {'type': type(event).__name__, **event.model_dump()})

        if not handlers:
            log.debug("No handler for %s", type(event).__name__)
        for handler in handlers:
            handler(event)
        return len(handlers)

    def clear_history(self) -> None:
        self.history.clear()
