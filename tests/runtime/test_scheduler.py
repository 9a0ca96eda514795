"""Tests for the FrameScheduler."""

import pytest

from blockstage.intents import (
    AddActor,
    AddBlockToContainer,
    AddBlockToRoot,
    BlockPayload,
    RemoveBlock,
    StartRun,
    StopRun,
)
from blockstage.runtime.collision import CollisionMonitor
from blockstage.runtime.host import ManualFrameHost
from blockstage.runtime.scheduler import FrameScheduler
from blockstage.store import StageStore


def payload(block_id: str, block_type: str, values=(), children=None) -> BlockPayload:
    return BlockPayload(
        id=block_id,
        type=block_type,
        values=list(values),
        children=children,
    )


def add_script(store: StageStore, actor_id: str, *blocks: BlockPayload) -> None:
    for block in blocks:
        store.dispatch(AddBlockToRoot(actor_id=actor_id, block=block))


FLAG = payload("flag", "EVENT_FLAG_CLICKED")


@pytest.fixture
def store():
    store = StageStore()
    store.dispatch(AddActor(kind="cat"))
    return store


@pytest.fixture
def scheduler(store, host):
    scheduler = FrameScheduler(store, host)
    yield scheduler
    scheduler.close()


def actor(store, actor_id="cat-1"):
    return store.state.get_actor(actor_id)


class TestRunControl:
    """Tests for start/stop handling."""

    def test_start_requests_frame(self, store, host, scheduler):
        add_script(store, "cat-1", FLAG, payload("m1", "MOTION_MOVE_STEPS", [10]))
        store.dispatch(StartRun())

        assert scheduler.is_scheduled
        assert host.pending == 1

    def test_stop_withdraws_frame(self, store, host, scheduler):
        add_script(store, "cat-1", FLAG, payload("m1", "MOTION_MOVE_STEPS", [10]))
        store.dispatch(StartRun())
        store.dispatch(StopRun())

        assert not scheduler.is_scheduled
        assert host.pending == 0
        assert not host.step()
        assert actor(store).x == 0

    def test_no_frame_while_stopped(self, store, host, scheduler):
        add_script(store, "cat-1", FLAG, payload("m1", "MOTION_MOVE_STEPS", [10]))
        assert host.pending == 0

    def test_tick_after_stop_is_noop(self, store, host, scheduler):
        add_script(store, "cat-1", FLAG, payload("m1", "MOTION_MOVE_STEPS", [10]))
        scheduler.tick()

        assert scheduler.tick_count == 0
        assert actor(store).x == 0

    def test_start_rewinds(self, store, host, scheduler):
        """Every start begins past the trigger with no loop progress."""
        add_script(
            store, "cat-1", FLAG,
            payload("r1", "CONTROL_REPEAT", [5], [payload("m1", "MOTION_MOVE_STEPS", [1])]),
        )
        store.dispatch(StartRun())
        host.step()
        host.step()
        store.dispatch(StopRun())
        assert scheduler.get_state("cat-1").loop_progress["r1"].remaining == 3

        store.dispatch(StartRun())
        state = scheduler.get_state("cat-1")
        assert state.instruction_pointer == 1
        assert dict(state.loop_progress) == {}


class TestTicks:
    """Tests for per-tick execution."""

    def test_run_terminates_after_last_block(self, store, host, scheduler):
        """[flag, move 10] moves once and stops the run."""
        add_script(store, "cat-1", FLAG, payload("m1", "MOTION_MOVE_STEPS", [10]))
        store.dispatch(StartRun())

        frames = host.run(max_frames=10)

        assert frames == 1
        assert actor(store).x == pytest.approx(10)
        assert not store.state.running
        assert host.pending == 0

    def test_pointer_reset_on_completion(self, store, host, scheduler):
        add_script(store, "cat-1", FLAG, payload("m1", "MOTION_MOVE_STEPS", [10]))
        store.dispatch(StartRun())
        host.run()

        assert scheduler.get_state("cat-1").instruction_pointer == 1

    def test_one_block_per_tick(self, store, host, scheduler):
        add_script(
            store, "cat-1", FLAG,
            payload("m1", "MOTION_MOVE_STEPS", [10]),
            payload("t1", "MOTION_TURN_DEGREES", [90]),
            payload("m2", "MOTION_MOVE_STEPS", [10]),
        )
        store.dispatch(StartRun())

        host.step()
        assert actor(store).x == pytest.approx(10)
        assert actor(store).heading == 90

        host.step()
        assert actor(store).heading == 180

        host.step()
        assert actor(store).y == pytest.approx(10)
        assert not store.state.running

    def test_repeat_takes_one_tick_per_pass(self, store, host, scheduler):
        add_script(
            store, "cat-1", FLAG,
            payload("r1", "CONTROL_REPEAT", [3], [payload("m1", "MOTION_MOVE_STEPS", [10])]),
        )
        store.dispatch(StartRun())
        xs = []
        while host.step():
            xs.append(actor(store).x)

        assert xs == pytest.approx([10, 20, 30])
        assert scheduler.tick_count == 3

    def test_script_without_trigger_never_runs(self, store, host, scheduler):
        add_script(store, "cat-1", payload("m1", "MOTION_MOVE_STEPS", [10]))
        store.dispatch(StartRun())

        host.run(max_frames=5)

        assert actor(store).x == 0
        assert store.state.running

    def test_trigger_only_script_is_skipped(self, store, host, scheduler):
        add_script(store, "cat-1", FLAG)
        store.dispatch(StartRun())
        host.run(max_frames=3)

        assert store.state.running
        assert scheduler.tick_count == 3

    def test_first_completion_stops_everyone(self, store, host, scheduler):
        store.dispatch(AddActor(kind="dog", y=100))
        add_script(store, "cat-1", FLAG, payload("m1", "MOTION_MOVE_STEPS", [10]))
        add_script(
            store, "dog-1", payload("flag2", "EVENT_FLAG_CLICKED"),
            payload("r1", "CONTROL_REPEAT", [10], [payload("m2", "MOTION_MOVE_STEPS", [1])]),
        )
        store.dispatch(StartRun())
        host.run()

        assert actor(store, "cat-1").x == pytest.approx(10)
        assert actor(store, "dog-1").x == pytest.approx(1)

    def test_actors_read_tick_start_state(self, store, host, scheduler):
        """Each actor's step sees the roster as of the start of the tick."""
        store.dispatch(AddActor(kind="dog"))
        add_script(store, "cat-1", FLAG, payload("m1", "MOTION_MOVE_STEPS", [5]),
                   payload("m1b", "MOTION_MOVE_STEPS", [5]))
        add_script(store, "dog-1", payload("flag2", "EVENT_FLAG_CLICKED"),
                   payload("g1", "MOTION_GOTO_XY", [50, 50]),
                   payload("g2", "MOTION_GOTO_XY", [60, 60]))
        store.dispatch(StartRun())
        host.step()

        assert actor(store, "cat-1").x == pytest.approx(5)
        assert actor(store, "dog-1").x == 50

    def test_edit_during_run_keeps_pointer(self, store, host, scheduler):
        add_script(
            store, "cat-1", FLAG,
            payload("m1", "MOTION_MOVE_STEPS", [10]),
            payload("m2", "MOTION_MOVE_STEPS", [10]),
        )
        store.dispatch(StartRun())
        host.step()
        store.dispatch(AddBlockToRoot(actor_id="cat-1", block=payload("m3", "MOTION_MOVE_STEPS", [10])))

        assert scheduler.get_state("cat-1").instruction_pointer == 2
        host.run()
        assert actor(store).x == pytest.approx(30)

    def test_removing_loop_children_mid_run(self, store, host, scheduler):
        add_script(
            store, "cat-1", FLAG,
            payload("r1", "CONTROL_REPEAT", [3], [
                payload("m1", "MOTION_MOVE_STEPS", [1]),
                payload("m2", "MOTION_MOVE_STEPS", [1]),
            ]),
        )
        store.dispatch(StartRun())
        host.step()
        store.dispatch(RemoveBlock(actor_id="cat-1", block_id="m2"))
        store.dispatch(AddBlockToContainer(
            actor_id="cat-1", container_id="r1", block=payload("m3", "MOTION_MOVE_STEPS", [100])))

        host.run()
        assert not store.state.running


class TestCollisionsDuringRun:
    """Scheduler and collision monitor together."""

    def test_monitor_checked_each_tick(self, store, host):
        store.dispatch(AddActor(kind="dog", x=100))
        monitor = CollisionMonitor()
        scheduler = FrameScheduler(store, host, collision_monitor=monitor)
        add_script(
            store, "cat-1", FLAG,
            payload("r1", "CONTROL_REPEAT", [10], [payload("m1", "MOTION_MOVE_STEPS", [10])]),
        )
        store.dispatch(StartRun())

        seen = []
        while host.step():
            seen.append(set(monitor.overlapping))

        # Overlap starts once the cat is within 50 of the dog (x > 50)
        assert seen[4] == set()
        assert seen[5] == {("cat-1", "dog-1")}
        # Stop resets the monitor
        assert monitor.overlapping == set()
        scheduler.close()
