"""
Per-actor execution state: instruction pointer, loop progress, eligibility.

Execution state belongs to the scheduler, not to the actor. It is kept in
immutable snapshots (like rollback snapshots of entity state): every step
of the interpreter returns a new ExecutionState instead of mutating the
old one.

Lifecycle:
- reconcile() on every roster/script change: persisting actors keep their
  pointer and loop progress, new actors start fresh, removed actors drop.
- rewind() on every run start: everyone back to run-start values.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import TYPE_CHECKING, Dict, Iterable, Mapping, Optional

from blockstage.program.blocks import is_trigger_type

if TYPE_CHECKING:
    from blockstage.program.tree import Script
    from blockstage.store import Actor


@dataclass(frozen=True)
class LoopProgress:
    """Progress of one repeat block: passes left and next child to run."""
    remaining: int
    child_index: int = 0


def _frozen(progress: Optional[Mapping[str, LoopProgress]]) -> Mapping[str, LoopProgress]:
    return MappingProxyType(dict(progress or {}))


@dataclass(frozen=True)
class ExecutionState:
    """
    Interpreter bookkeeping for one actor.

    Attributes:
        instruction_pointer: Index into the actor's top-level script
        loop_progress: Container block id -> LoopProgress
        eligible: True iff the script starts with an event trigger
    """
    instruction_pointer: int = 0
    loop_progress: Mapping[str, LoopProgress] = field(default_factory=lambda: _frozen(None))
    eligible: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.loop_progress, MappingProxyType):
            object.__setattr__(self, 'loop_progress', _frozen(self.loop_progress))

    @property
    def start_pointer(self) -> int:
        """Pointer value at run start (slot 0 is the trigger block)."""
        return 1 if self.eligible else 0

    def with_pointer(self, pointer: int) -> 'ExecutionState':
        return replace(self, instruction_pointer=pointer)

    def with_loop(self, block_id: str, progress: Optional[LoopProgress]) -> 'ExecutionState':
        """Set (or delete, when progress is None) the loop entry for a block."""
        loops = dict(self.loop_progress)
        if progress is None:
            loops.pop(block_id, None)
        else:
            loops[block_id] = progress
        return replace(self, loop_progress=_frozen(loops))

    def rewound(self) -> 'ExecutionState':
        """Run-start values: pointer past the trigger, no loop progress."""
        return ExecutionState(self.start_pointer, _frozen(None), self.eligible)


def is_eligible(script: 'Script') -> bool:
    """A script is runnable iff its first block is an event trigger."""
    return bool(script) and is_trigger_type(script[0].type)


def initial_state(script: 'Script') -> ExecutionState:
    """Fresh state for an actor that had none."""
    eligible = is_eligible(script)
    return ExecutionState(1 if eligible else 0, _frozen(None), eligible)


def reconcile(
    previous: Mapping[str, ExecutionState],
    actors: Iterable['Actor'],
) -> Dict[str, ExecutionState]:
    """
    Rebuild execution state after the actor roster changed.

    Args:
        previous: State by actor id before the change
        actors: Current roster

    Returns:
        State by actor id for exactly the current roster
    """
    states: Dict[str, ExecutionState] = {}
    for actor in actors:
        existing = previous.get(actor.id)
        if existing is None:
            states[actor.id] = initial_state(actor.script)
        else:
            states[actor.id] = replace(existing, eligible=is_eligible(actor.script))
    return states


def rewind(actors: Iterable['Actor']) -> Dict[str, ExecutionState]:
    """Reset every actor to run-start values (the run start transition)."""
    return {actor.id: initial_state(actor.script) for actor in actors}
