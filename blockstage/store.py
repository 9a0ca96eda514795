"""
Central State Store - the single writer of actor state.

Holds the authoritative roster of actors, the selected actor and the run
flag. State is immutable (frozen dataclasses, tuples); every dispatched
intent produces a new StageState, or returns the very same object when the
intent changes nothing or is rejected.

Usage:
    store = StageStore()
    store.dispatch(AddActor(kind='cat'))
    store.dispatch_raw('ADD_BLOCK_TO_ROOT', {'actor_id': 'cat-1', 'block': {...}})

    unsubscribe = store.subscribe(lambda prev, new, intent: ...)

Rejections never raise: a payload missing its ids, an unknown actor or an
edit that would duplicate a block id is logged and ignored.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from blockstage.config import StageConfig
from blockstage.intents import (
    AddActor,
    AddBlockToContainer,
    AddBlockToRoot,
    HandleCollision,
    Intent,
    RemoveActor,
    RemoveBlock,
    SelectActor,
    StartRun,
    StopRun,
    UnknownIntentError,
    UpdateActorState,
    parse_intent,
)
from blockstage.logging import get_logger
from blockstage.program.blocks import Block
from blockstage.program.tree import (
    Script,
    append_to_root,
    collect_ids,
    insert_into_container,
    negate_first_move,
    remove_by_id,
)
from blockstage.sprites import SpriteDefinition, generate_actor_id, get_sprite_definition

log = get_logger('store')

# Fields an UpdateActorState intent may touch
PATCHABLE_FIELDS = ('x', 'y', 'heading', 'scale', 'displayed_message')


@dataclass(frozen=True)
class Actor:
    """
    A sprite on the stage.

    Position is in stage coordinates: origin at the stage center, y up,
    (x, y) is the actor's center. Heading is in degrees, 90 = facing right.
    Scale is a percentage of width/height.
    """
    id: str
    kind: str
    x: float = 0.0
    y: float = 0.0
    heading: float = 90.0
    scale: float = 100.0
    width: float = 50.0
    height: float = 50.0
    displayed_message: Optional[str] = None
    script: Script = ()

    def apply(self, updates: Mapping[str, Any]) -> 'Actor':
        """Return a copy with the patch applied."""
        return replace(self, **updates)

    def with_script(self, script: Script) -> 'Actor':
        return replace(self, script=tuple(script))


@dataclass(frozen=True)
class StageState:
    """Authoritative stage state."""
    actors: Tuple[Actor, ...] = ()
    selected_actor_id: Optional[str] = None
    running: bool = False

    def get_actor(self, actor_id: str) -> Optional[Actor]:
        for actor in self.actors:
            if actor.id == actor_id:
                return actor
        return None

    @property
    def actor_ids(self) -> List[str]:
        return [actor.id for actor in self.actors]


# listener(previous_state, new_state, intent)
StoreListener = Callable[[StageState, StageState, Intent], None]


class StageStore:
    """
    Central state store.

    Responsibilities:
    1. Apply intents to produce new immutable states
    2. Reject malformed or unresolvable intents without touching state
    3. Notify subscribers after every change
    """

    def __init__(
        self,
        initial: Optional[StageState] = None,
        config: Optional[StageConfig] = None,
        catalog: Optional[Dict[str, SpriteDefinition]] = None,
    ):
        self._state = initial or StageState()
        self.config = config or StageConfig()
        self._catalog = catalog
        self._listeners: List[StoreListener] = []

        self._reducers: Dict[type, Callable[[StageState, Any], StageState]] = {
            AddActor: self._add_actor,
            RemoveActor: self._remove_actor,
            SelectActor: self._select_actor,
            AddBlockToRoot: self._add_block_to_root,
            AddBlockToContainer: self._add_block_to_container,
            RemoveBlock: self._remove_block,
            StartRun: self._start_run,
            StopRun: self._stop_run,
            UpdateActorState: self._update_actor_state,
            HandleCollision: self._handle_collision,
        }

    @property
    def state(self) -> StageState:
        return self._state

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """
        Register a listener called after every state change.

        Returns:
            Function that removes the listener
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def dispatch(self, intent: Intent) -> StageState:
        """
        Apply an intent.

        Returns:
            The new state (the same object if nothing changed)
        """
        reducer = self._reducers.get(type(intent))
        if reducer is None:
            log.error("No reducer for intent %s", type(intent).__name__)
            return self._state

        log.debug("Intent dispatched: %s %s", intent.action, intent.model_dump())
        previous = self._state
        new_state = reducer(previous, intent)
        if new_state is previous:
            return previous

        self._state = new_state
        for listener in list(self._listeners):
            listener(previous, new_state, intent)
        return new_state

    def dispatch_raw(self, action: str, payload: Optional[Dict[str, Any]] = None) -> StageState:
        """
        Validate a plain payload and dispatch it.

        Invalid payloads (e.g. missing actor id) are rejected: the error is
        logged and the previous state returned unchanged.
        """
        try:
            intent = parse_intent(action, payload)
        except UnknownIntentError:
            log.error("Unknown action %r, ignored", action)
            return self._state
        except ValidationError as e:
            log.error("%s rejected: %s", action, e.errors(include_url=False))
            return self._state
        return self.dispatch(intent)

    # -------------------------------------------------------------------------
    # Roster
    # -------------------------------------------------------------------------

    def _add_actor(self, state: StageState, intent: AddActor) -> StageState:
        definition = get_sprite_definition(intent.kind, self._catalog)
        if definition is None:
            log.error('Cannot add actor: definition not found for kind "%s"', intent.kind)
            return state

        actor = Actor(
            id=generate_actor_id(intent.kind, state.actor_ids),
            kind=intent.kind,
            x=intent.x,
            y=intent.y,
            heading=self.config.default_heading,
            scale=self.config.default_scale,
            width=definition.width,
            height=definition.height,
        )
        log.info("Added actor %s", actor.id)
        return replace(state, actors=state.actors + (actor,), selected_actor_id=actor.id)

    def _remove_actor(self, state: StageState, intent: RemoveActor) -> StageState:
        if state.get_actor(intent.actor_id) is None:
            log.warning("Cannot remove unknown actor %s", intent.actor_id)
            return state

        remaining = tuple(a for a in state.actors if a.id != intent.actor_id)
        selected = state.selected_actor_id
        if selected == intent.actor_id:
            selected = remaining[0].id if remaining else None

        log.info("Removed actor %s. New selection: %s", intent.actor_id, selected)
        return replace(state, actors=remaining, selected_actor_id=selected)

    def _select_actor(self, state: StageState, intent: SelectActor) -> StageState:
        if state.selected_actor_id == intent.actor_id:
            return state
        if intent.actor_id is not None and state.get_actor(intent.actor_id) is None:
            log.warning("Cannot select unknown actor %s", intent.actor_id)
            return state
        return replace(state, selected_actor_id=intent.actor_id)

    # -------------------------------------------------------------------------
    # Tree edits
    # -------------------------------------------------------------------------

    def _add_block_to_root(self, state: StageState, intent: AddBlockToRoot) -> StageState:
        block = intent.block.to_block()
        return self._edit_script(
            state, intent.actor_id, block,
            lambda script: append_to_root(script, block),
        )

    def _add_block_to_container(self, state: StageState, intent: AddBlockToContainer) -> StageState:
        block = intent.block.to_block()

        def edit(script: Script) -> Script:
            new_script, found = insert_into_container(script, intent.container_id, block)
            if not found:
                log.error(
                    "Container block %s not found in actor %s. Block not added.",
                    intent.container_id, intent.actor_id,
                )
            return new_script

        return self._edit_script(state, intent.actor_id, block, edit)

    def _remove_block(self, state: StageState, intent: RemoveBlock) -> StageState:
        return self._edit_script(
            state, intent.actor_id, None,
            lambda script: remove_by_id(script, intent.block_id),
        )

    def _edit_script(
        self,
        state: StageState,
        actor_id: str,
        new_block: Optional[Block],
        edit: Callable[[Script], Script],
    ) -> StageState:
        """Apply a pure tree edit to one actor's script."""
        actor = state.get_actor(actor_id)
        if actor is None:
            log.error("Cannot edit script of unknown actor %s", actor_id)
            return state

        if new_block is not None and not self._ids_are_free(actor.script, new_block, actor_id):
            return state

        script = edit(actor.script)
        if script is actor.script:
            return state

        updated = actor.with_script(script)
        return replace(state, actors=tuple(updated if a.id == actor_id else a for a in state.actors))

    def _ids_are_free(self, script: Script, block: Block, actor_id: str) -> bool:
        new_ids = [b.id for b in block.walk()]
        clashes = (set(new_ids) & collect_ids(script)) | {i for i in new_ids if new_ids.count(i) > 1}
        if clashes:
            log.error(
                "Block ids already used in actor %s: %s. Block not added.",
                actor_id, ', '.join(sorted(clashes)),
            )
            return False
        return True

    # -------------------------------------------------------------------------
    # Run control
    # -------------------------------------------------------------------------

    def _start_run(self, state: StageState, intent: StartRun) -> StageState:
        if state.running:
            log.debug("Run already started, no state change")
            return state
        log.info("Run started")
        return replace(state, running=True)

    def _stop_run(self, state: StageState, intent: StopRun) -> StageState:
        if not state.running:
            log.debug("Run already stopped, no state change")
            return state
        log.info("Run stopped")
        return replace(state, running=False)

    # -------------------------------------------------------------------------
    # Actor state and collisions
    # -------------------------------------------------------------------------

    def _update_actor_state(self, state: StageState, intent: UpdateActorState) -> StageState:
        updates = intent.updates.as_updates()
        if not updates:
            return state

        actor = state.get_actor(intent.actor_id)
        if actor is None:
            log.warning("Cannot update unknown actor %s", intent.actor_id)
            return state

        updated = actor.apply(updates)
        return replace(state, actors=tuple(updated if a.id == actor.id else a for a in state.actors))

    def _handle_collision(self, state: StageState, intent: HandleCollision) -> StageState:
        actor_a = state.get_actor(intent.actor_a_id)
        actor_b = state.get_actor(intent.actor_b_id)
        if actor_a is None or actor_b is None:
            log.warning(
                "Could not find one or both actors for collision handling: %s, %s",
                intent.actor_a_id, intent.actor_b_id,
            )
            return state

        scripts: Dict[str, Script] = {}
        for actor in (actor_a, actor_b):
            script, changed = negate_first_move(actor.script)
            if changed:
                scripts[actor.id] = script

        if not scripts:
            return state

        log.info("Collision %s <-> %s: reversed %s",
                 actor_a.id, actor_b.id, ', '.join(sorted(scripts)))
        return replace(state, actors=tuple(
            a.with_script(scripts[a.id]) if a.id in scripts else a
            for a in state.actors
        ))
