"""Tests for the EventBus and the collision reaction."""

from blockstage.intents import AddActor, AddBlockToRoot, BlockPayload
from blockstage.program.tree import find_block
from blockstage.runtime.bus import CollisionEvent, EventBus
from blockstage.runtime.reactions import NegateStepsReaction


class TestEventBus:
    """Tests for publish/subscribe."""

    def test_publish_calls_handlers(self):
        bus = EventBus()
        calls = []
        bus.subscribe(CollisionEvent, calls.append)

        count = bus.publish(CollisionEvent(actor_a_id="a", actor_b_id="b"))

        assert count == 1
        assert calls[0].actor_a_id == "a"

    def test_handlers_filtered_by_type(self):
        bus = EventBus()
        calls = []
        bus.subscribe(str, calls.append)

        assert bus.publish(CollisionEvent(actor_a_id="a", actor_b_id="b")) == 0
        assert calls == []

    def test_unsubscribe(self):
        bus = EventBus()
        calls = []
        unsubscribe = bus.subscribe(CollisionEvent, calls.append)
        unsubscribe()
        unsubscribe()  # Second call is harmless

        bus.publish(CollisionEvent(actor_a_id="a", actor_b_id="b"))
        assert calls == []

    def test_history_bounded(self):
        bus = EventBus(history_size=2)
        for i in range(5):
            bus.publish(CollisionEvent(actor_a_id="a", actor_b_id="b", tick=i))

        assert [e.tick for e in bus.history] == [3, 4]

        bus.clear_history()
        assert len(bus.history) == 0


class TestNegateStepsReaction:
    """Tests for the collision reaction."""

    def _setup(self, store):
        store.dispatch(AddActor(kind="cat"))
        store.dispatch(AddActor(kind="dog"))
        for actor_id, steps in (("cat-1", 10), ("dog-1", -4)):
            store.dispatch(AddBlockToRoot(
                actor_id=actor_id,
                block=BlockPayload(id="m1", type="MOTION_MOVE_STEPS", values=[steps]),
            ))

    def test_collision_negates_both_actors(self, store):
        self._setup(store)
        bus = EventBus()
        reaction = NegateStepsReaction(store, bus)

        bus.publish(CollisionEvent(actor_a_id="cat-1", actor_b_id="dog-1"))

        assert find_block(store.state.get_actor("cat-1").script, "m1").values == (-10,)
        assert find_block(store.state.get_actor("dog-1").script, "m1").values == (4,)
        assert reaction.handled == 1

    def test_detach(self, store):
        self._setup(store)
        bus = EventBus()
        reaction = NegateStepsReaction(store, bus)
        reaction.detach()

        bus.publish(CollisionEvent(actor_a_id="cat-1", actor_b_id="dog-1"))

        assert reaction.handled == 0
        assert find_block(store.state.get_actor("cat-1").script, "m1").values == (10,)
