"""Tests for the central StageStore."""

import pytest

from blockstage.config import StageConfig
from blockstage.intents import (
    ActorPatch,
    AddActor,
    AddBlockToContainer,
    AddBlockToRoot,
    BlockPayload,
    HandleCollision,
    RemoveActor,
    RemoveBlock,
    SelectActor,
    StartRun,
    StopRun,
    UpdateActorState,
)
from blockstage.program.tree import find_block
from blockstage.store import Actor, StageState, StageStore


def block(block_id: str, block_type: str = "MOTION_MOVE_STEPS", values=(10,), children=None):
    return BlockPayload(id=block_id, type=block_type, values=list(values), children=children)


@pytest.fixture
def store():
    store = StageStore()
    store.dispatch(AddActor(kind="cat"))
    return store


class TestRoster:
    """Tests for actor add/remove/select."""

    def test_add_actor(self):
        store = StageStore(config=StageConfig(default_heading=45))
        state = store.dispatch(AddActor(kind="dog", x=5, y=-5))

        actor = state.get_actor("dog-1")
        assert actor.x == 5 and actor.y == -5
        assert actor.heading == 45
        assert (actor.width, actor.height) == (50, 50)
        assert state.selected_actor_id == "dog-1"

    def test_actor_ids_count_up(self, store):
        store.dispatch(AddActor(kind="cat"))
        assert store.state.actor_ids == ["cat-1", "cat-2"]

    def test_id_reuses_free_slot(self, store):
        store.dispatch(AddActor(kind="cat"))
        store.dispatch(RemoveActor(actor_id="cat-1"))
        store.dispatch(AddActor(kind="cat"))
        assert sorted(store.state.actor_ids) == ["cat-1", "cat-2"]

    def test_unknown_kind_rejected(self, store):
        before = store.state
        assert store.dispatch(AddActor(kind="dragon")) is before

    def test_remove_selected_reassigns(self, store):
        store.dispatch(AddActor(kind="dog"))
        assert store.state.selected_actor_id == "dog-1"

        state = store.dispatch(RemoveActor(actor_id="dog-1"))
        assert state.selected_actor_id == "cat-1"

    def test_remove_last_clears_selection(self, store):
        state = store.dispatch(RemoveActor(actor_id="cat-1"))
        assert state.actors == ()
        assert state.selected_actor_id is None

    def test_remove_unselected_keeps_selection(self, store):
        store.dispatch(AddActor(kind="dog"))
        state = store.dispatch(RemoveActor(actor_id="cat-1"))
        assert state.selected_actor_id == "dog-1"

    def test_select(self, store):
        store.dispatch(AddActor(kind="dog"))
        assert store.dispatch(SelectActor(actor_id="cat-1")).selected_actor_id == "cat-1"
        assert store.dispatch(SelectActor(actor_id=None)).selected_actor_id is None

    def test_select_unknown_rejected(self, store):
        before = store.state
        assert store.dispatch(SelectActor(actor_id="ghost")) is before


class TestTreeEdits:
    """Tests for script edit intents."""

    def test_add_to_root(self, store):
        state = store.dispatch(AddBlockToRoot(actor_id="cat-1", block=block("m1")))
        assert [b.id for b in state.get_actor("cat-1").script] == ["m1"]

    def test_add_to_container(self, store):
        store.dispatch(AddBlockToRoot(
            actor_id="cat-1",
            block=block("r1", "CONTROL_REPEAT", [2], children=[]),
        ))
        state = store.dispatch(AddBlockToContainer(
            actor_id="cat-1", container_id="r1", block=block("m1")))

        script = state.get_actor("cat-1").script
        assert [c.id for c in script[0].children] == ["m1"]

    def test_add_to_missing_container_is_noop(self, store):
        before = store.state
        state = store.dispatch(AddBlockToContainer(
            actor_id="cat-1", container_id="nope", block=block("m1")))
        assert state is before

    def test_remove_block(self, store):
        store.dispatch(AddBlockToRoot(actor_id="cat-1", block=block("m1")))
        state = store.dispatch(RemoveBlock(actor_id="cat-1", block_id="m1"))
        assert state.get_actor("cat-1").script == ()

    def test_remove_missing_block_is_noop(self, store):
        store.dispatch(AddBlockToRoot(actor_id="cat-1", block=block("m1")))
        before = store.state
        assert store.dispatch(RemoveBlock(actor_id="cat-1", block_id="nope")) is before

    def test_unknown_actor_rejected(self, store):
        before = store.state
        assert store.dispatch(AddBlockToRoot(actor_id="ghost", block=block("m1"))) is before

    def test_duplicate_id_rejected(self, store):
        store.dispatch(AddBlockToRoot(actor_id="cat-1", block=block("m1")))
        before = store.state
        assert store.dispatch(AddBlockToRoot(actor_id="cat-1", block=block("m1"))) is before

    def test_duplicate_id_inside_subtree_rejected(self, store):
        before = store.state
        container = block("r1", "CONTROL_REPEAT", [2], children=[block("m1"), block("m1")])
        assert store.dispatch(AddBlockToRoot(actor_id="cat-1", block=container)) is before

    def test_same_id_in_other_actor_allowed(self, store):
        store.dispatch(AddActor(kind="dog"))
        store.dispatch(AddBlockToRoot(actor_id="cat-1", block=block("m1")))
        state = store.dispatch(AddBlockToRoot(actor_id="dog-1", block=block("m1")))
        assert len(state.get_actor("dog-1").script) == 1

    def test_other_actors_untouched(self, store):
        store.dispatch(AddActor(kind="dog"))
        dog_before = store.state.get_actor("dog-1")
        state = store.dispatch(AddBlockToRoot(actor_id="cat-1", block=block("m1")))
        assert state.get_actor("dog-1") is dog_before


class TestRunFlag:
    """Tests for run control."""

    def test_start_stop(self, store):
        assert store.dispatch(StartRun()).running
        assert not store.dispatch(StopRun()).running

    def test_idempotent(self, store):
        started = store.dispatch(StartRun())
        assert store.dispatch(StartRun()) is started

        stopped = store.dispatch(StopRun())
        assert store.dispatch(StopRun()) is stopped


class TestActorUpdates:
    """Tests for UpdateActorState and HandleCollision."""

    def test_partial_update(self, store):
        state = store.dispatch(UpdateActorState(
            actor_id="cat-1", updates=ActorPatch(x=12.5, heading=180)))

        actor = state.get_actor("cat-1")
        assert (actor.x, actor.y, actor.heading) == (12.5, 0, 180)

    def test_clear_message(self, store):
        store.dispatch(UpdateActorState(actor_id="cat-1", updates=ActorPatch(displayed_message="hi")))
        state = store.dispatch(UpdateActorState(
            actor_id="cat-1", updates=ActorPatch(displayed_message=None)))
        assert state.get_actor("cat-1").displayed_message is None

    def test_empty_patch_is_noop(self, store):
        before = store.state
        assert store.dispatch(UpdateActorState(actor_id="cat-1", updates=ActorPatch())) is before

    def test_unknown_actor_is_noop(self, store):
        before = store.state
        assert store.dispatch(UpdateActorState(actor_id="ghost", updates=ActorPatch(x=1))) is before

    def test_handle_collision(self, store):
        store.dispatch(AddActor(kind="dog"))
        store.dispatch(AddBlockToRoot(actor_id="cat-1", block=block("m1", values=[10])))
        store.dispatch(AddBlockToRoot(actor_id="dog-1", block=block("s1", "LOOKS_SAY", ["hi"])))

        state = store.dispatch(HandleCollision(actor_a_id="cat-1", actor_b_id="dog-1"))

        assert find_block(state.get_actor("cat-1").script, "m1").values == (-10,)
        assert find_block(state.get_actor("dog-1").script, "s1").values == ("hi",)

    def test_handle_collision_unknown_actor(self, store):
        before = store.state
        assert store.dispatch(HandleCollision(actor_a_id="cat-1", actor_b_id="ghost")) is before


class TestDispatchRaw:
    """Tests for plain-payload dispatch."""

    def test_valid_payload(self, store):
        state = store.dispatch_raw("ADD_BLOCK_TO_ROOT", {
            "actor_id": "cat-1",
            "block": {"id": "m1", "type": "MOTION_MOVE_STEPS", "values": [10]},
        })
        assert len(state.get_actor("cat-1").script) == 1

    def test_missing_actor_id_rejected(self, store):
        before = store.state
        state = store.dispatch_raw("ADD_BLOCK_TO_ROOT", {
            "block": {"id": "m1", "type": "MOTION_MOVE_STEPS", "values": [10]},
        })
        assert state is before

    def test_missing_block_id_rejected(self, store):
        before = store.state
        state = store.dispatch_raw("ADD_BLOCK_TO_ROOT", {
            "actor_id": "cat-1",
            "block": {"type": "MOTION_MOVE_STEPS", "values": [10]},
        })
        assert state is before

    def test_unknown_action(self, store):
        before = store.state
        assert store.dispatch_raw("FLY_AWAY", {}) is before


class TestSubscribers:
    """Tests for change notification."""

    def test_listener_called_on_change(self, store):
        calls = []
        store.subscribe(lambda prev, new, intent: calls.append((prev, new, intent)))

        intent = StartRun()
        store.dispatch(intent)

        assert len(calls) == 1
        prev, new, seen = calls[0]
        assert not prev.running and new.running
        assert seen is intent

    def test_listener_not_called_on_noop(self, store):
        calls = []
        store.subscribe(lambda *args: calls.append(args))
        store.dispatch(StopRun())
        assert calls == []

    def test_unsubscribe(self, store):
        calls = []
        unsubscribe = store.subscribe(lambda *args: calls.append(args))
        unsubscribe()
        store.dispatch(StartRun())
        assert calls == []


class TestStateRecords:
    """Tests for Actor and StageState."""

    def test_actor_apply(self):
        actor = Actor(id="cat-1", kind="cat")
        moved = actor.apply({"x": 3})
        assert moved.x == 3 and actor.x == 0

    def test_get_actor_missing(self):
        assert StageState().get_actor("cat-1") is None
