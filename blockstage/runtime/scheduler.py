"""
Frame Scheduler - one interpreter step per eligible actor per tick.

The scheduler subscribes to the store and reacts to three kinds of change:
- roster or scripts changed  -> reconcile execution state
- run flag false -> true     -> rewind everyone, request the first frame
- run flag true -> false     -> withdraw the pending frame, reset collisions

Each tick:
1. Read the roster once (no actor sees another's mid-tick state).
2. For every eligible actor with something to run, execute the block at
   its pointer; advance if asked. Reaching the end of the script resets
   that actor to run-start values and marks the run as complete.
3. Commit execution state, then dispatch each delta as one
   UpdateActorState intent, in roster order.
4. Check collisions against the updated roster.
5. Stop the run if any actor completed, otherwise request the next frame.

Completion of any single actor halts the whole run, keeping demo runs
bounded.
"""

from typing import Dict, List, Optional, Tuple

from blockstage.intents import ActorPatch, StopRun, UpdateActorState
from blockstage.logging import emit_record, get_logger
from blockstage.runtime.collision import CollisionMonitor
from blockstage.runtime.execution import ExecutionState, reconcile, rewind
from blockstage.runtime.host import FrameHost
from blockstage.runtime.interpreter import BlockInterpreter

log = get_logger('scheduler')


class FrameScheduler:
    """
    Drives the interpreter from a frame host while the run flag is set.

    Args:
        store: Central state store (read each tick, written via intents)
        host: Frame host the scheduler resubmits itself to
        interpreter: Block interpreter (default: one built from store.config)
        collision_monitor: Optional monitor checked once per tick
    """

    def __init__(
        self,
        store,
        host: FrameHost,
        interpreter: Optional[BlockInterpreter] = None,
        collision_monitor: Optional[CollisionMonitor] = None,
    ):
        self.store = store
        self.host = host
        self.interpreter = interpreter or BlockInterpreter(getattr(store, 'config', None))
        self.collision_monitor = collision_monitor

        self._states: Dict[str, ExecutionState] = reconcile({}, store.state.actors)
        self._pending_frame: Optional[int] = None
        self._tick_count = 0

        self._unsubscribe = store.subscribe(self._on_store_change)
        if store.state.running:
            self._begin_run()

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def tick_count(self) -> int:
        return self._tick_count

    @property
    def is_scheduled(self) -> bool:
        """True while a frame request is pending with the host."""
        return self._pending_frame is not None

    def get_state(self, actor_id: str) -> Optional[ExecutionState]:
        return self._states.get(actor_id)

    @property
    def states(self) -> Dict[str, ExecutionState]:
        return dict(self._states)

    def close(self) -> None:
        """Detach from the store and withdraw any pending frame."""
        self._cancel_frame()
        self._unsubscribe()

    # -------------------------------------------------------------------------
    # Store reactions
    # -------------------------------------------------------------------------

    def _on_store_change(self, previous, current, intent) -> None:
        if previous.actors is not current.actors:
            self._states = reconcile(self._states, current.actors)

        if not previous.running and current.running:
            self._begin_run()
        elif previous.running and not current.running:
            self._end_run()

    def _begin_run(self) -> None:
        self._states = rewind(self.store.state.actors)
        log.info("Run started with %d actor(s)", len(self._states))
        self._request_frame()

    def _end_run(self) -> None:
        self._cancel_frame()
        if self.collision_monitor is not None:
            self.collision_monitor.reset()
        log.info("Run ended after %d tick(s)", self._tick_count)

    def _request_frame(self) -> None:
        self._cancel_frame()
        self._pending_frame = self.host.request_frame(self.tick)

    def _cancel_frame(self) -> None:
        if self._pending_frame is not None:
            self.host.cancel_frame(self._pending_frame)
            self._pending_frame = None

    # -------------------------------------------------------------------------
    # Tick
    # -------------------------------------------------------------------------

    def tick(self) -> None:
        """Run one synchronous step for every actor (the frame callback)."""
        self._pending_frame = None
        if not self.store.state.running:
            return

        self._tick_count += 1
        actors = self.store.state.actors
        states = dict(self._states)
        deltas: List[Tuple[str, dict]] = []
        completed: List[str] = []

        for actor in actors:
            state = states.get(actor.id)
            if state is None or not state.eligible or len(actor.script) <= 1:
                continue

            pointer = state.instruction_pointer
            if pointer >= len(actor.script):
                # Finished in an earlier tick; needs an explicit restart
                continue

            block = actor.script[pointer]
            result = self.interpreter.execute(actor, block, state)
            state = result.state
            log.tick(actor.id, block.id, delta=result.delta, advance=result.advance)

            if result.delta:
                deltas.append((actor.id, result.delta))

            if result.advance:
                state = state.with_pointer(pointer + 1)
                if state.instruction_pointer >= len(actor.script):
                    log.info("Actor %s completed its script", actor.id)
                    state = state.rewound()
                    completed.append(actor.id)

            states[actor.id] = state

        self._states = states

        for actor_id, delta in deltas:
            self.store.dispatch(UpdateActorState(
                actor_id=actor_id,
                updates=ActorPatch(**delta),
            ))

        collisions = []
        if self.collision_monitor is not None and self.store.state.running:
            collisions = self.collision_monitor.check(self.store.state.actors, tick=self._tick_count)

        emit_record('scheduler', {
            'type': 'tick',
            'tick': self._tick_count,
            'updates': len(deltas),
            'completed': completed,
            'collisions': [list(e.pair) for e in collisions],
        })

        if completed:
            self.store.dispatch(StopRun())
        elif self.store.state.running:
            self._request_frame()
