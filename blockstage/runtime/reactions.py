"""
Collision reactions - turn bus events into tree-mutation intents.

The reference reaction reverses both actors: the first "move by steps"
block of each script (pre-order, containers included) has its step value
negated.
"""

from typing import Callable, Optional

from blockstage.intents import HandleCollision
from blockstage.logging import get_logger
from blockstage.runtime.bus import CollisionEvent, EventBus

log = get_logger('reactions')


class NegateStepsReaction:
    """
    Subscribes to CollisionEvents and dispatches HandleCollision intents.

    Args:
        store: Store the intents go to
        bus: Bus to subscribe on (call attach() later if omitted)
    """

    def __init__(self, store, bus: Optional[EventBus] = None):
        self.store = store
        self.handled = 0
        self._unsubscribe: Optional[Callable[[], None]] = None
        if bus is not None:
            self.attach(bus)

    def attach(self, bus: EventBus) -> None:
        self.detach()
        self._unsubscribe = bus.subscribe(CollisionEvent, self)

    def detach(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def __call__(self, event: CollisionEvent) -> None:
        log.debug("Reacting to collision %s <-> %s", event.actor_a_id, event.actor_b_id)
        self.store.dispatch(HandleCollision(
            actor_a_id=event.actor_a_id,
            actor_b_id=event.actor_b_id,
        ))
        self.handled += 1
