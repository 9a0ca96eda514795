"""
Collision Monitor - edge-triggered overlap detection between actors.

Once per tick the monitor compares the bounding boxes of every unordered
pair of actors. A pair produces one CollisionEvent on the tick it starts
overlapping; it must separate before it can fire again.

Bounds are axis-aligned boxes in stage coordinates, centered on the actor's
position and sized width/height times scale percent.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Set, Tuple

from blockstage.logging import get_logger
from blockstage.runtime.bus import CollisionEvent, EventBus

log = get_logger('collision')

PairKey = Tuple[str, str]


@dataclass(frozen=True)
class ActorBounds:
    """
    Axis-aligned bounding box in stage coordinates.

    Attributes:
        left: Minimum x
        right: Maximum x
        top: Minimum y
        bottom: Maximum y
    """
    left: float
    right: float
    top: float
    bottom: float

    @classmethod
    def from_actor(cls, actor) -> Optional['ActorBounds']:
        """Bounds for an actor, or None if it has no usable size."""
        if not actor.width or not actor.height:
            return None
        factor = (actor.scale or 0) / 100.0
        half_w = actor.width * factor / 2
        half_h = actor.height * factor / 2
        return cls(
            left=actor.x - half_w,
            right=actor.x + half_w,
            top=actor.y - half_h,
            bottom=actor.y + half_h,
        )


def overlaps(a: ActorBounds, b: ActorBounds) -> bool:
    """Strict AABB overlap; boxes that only touch do not overlap."""
    return (a.left < b.right and
            a.right > b.left and
            a.top < b.bottom and
            a.bottom > b.top)


def pair_key(a_id: str, b_id: str) -> PairKey:
    """Canonical key for an unordered pair."""
    return (a_id, b_id) if a_id <= b_id else (b_id, a_id)


class CollisionMonitor:
    """
    Tracks which actor pairs overlapped on the previous check.

    Usage:
        monitor = CollisionMonitor(bus)
        events = monitor.check(state.actors, tick=n)   # once per tick
        monitor.reset()                                 # on stop
    """

    def __init__(self, bus: Optional[EventBus] = None):
        self.bus = bus
        self._previous: Set[PairKey] = set()

    @property
    def overlapping(self) -> Set[PairKey]:
        """Pairs that overlapped at the last check."""
        return set(self._previous)

    def check(self, actors: Iterable, tick: int = 0) -> List[CollisionEvent]:
        """
        Compare all pairs and publish events for new overlaps.

        Args:
            actors: Current roster (positions after this tick's updates)
            tick: Tick number recorded on the events

        Returns:
            Events for pairs that overlap now but did not before
        """
        boxed = []
        for actor in actors:
            bounds = ActorBounds.from_actor(actor)
            if bounds is None:
                log.debug("Actor %s has no size, skipped for collisions", actor.id)
                continue
            boxed.append((actor.id, bounds))

        current: Set[PairKey] = set()
        events: List[CollisionEvent] = []

        for i in range(len(boxed)):
            for j in range(i + 1, len(boxed)):
                id_a, bounds_a = boxed[i]
                id_b, bounds_b = boxed[j]
                if id_a == id_b or not overlaps(bounds_a, bounds_b):
                    continue

                key = pair_key(id_a, id_b)
                if key in current:
                    continue
                current.add(key)

                if key not in self._previous:
                    events.append(CollisionEvent(actor_a_id=key[0], actor_b_id=key[1], tick=tick))

        self._previous = current

        for event in events:
            log.info("Collision: %s <-> %s", event.actor_a_id, event.actor_b_id)
            if self.bus is not None:
                self.bus.publish(event)

        return events

    def reset(self) -> None:
        """Forget previous overlaps (the run stopped)."""
        self._previous.clear()
