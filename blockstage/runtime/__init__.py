"""
Blockstage runtime: execution state, interpreter, scheduler and collisions.
"""

from blockstage.runtime.bus import CollisionEvent, EventBus, EventHandler
from blockstage.runtime.collision import ActorBounds, CollisionMonitor, overlaps, pair_key
from blockstage.runtime.execution import (
    ExecutionState,
    LoopProgress,
    initial_state,
    is_eligible,
    reconcile,
    rewind,
)
from blockstage.runtime.host import FrameHost, ManualFrameHost
from blockstage.runtime.interpreter import BlockInterpreter, StepResult, normalize_heading
from blockstage.runtime.reactions import NegateStepsReaction
from blockstage.runtime.scheduler import FrameScheduler

__all__ = [
    # Execution state
    'ExecutionState',
    'LoopProgress',
    'initial_state',
    'is_eligible',
    'reconcile',
    'rewind',
    # Interpreter
    'BlockInterpreter',
    'StepResult',
    'normalize_heading',
    # Scheduling
    'FrameHost',
    'ManualFrameHost',
    'FrameScheduler',
    # Collisions
    'ActorBounds',
    'CollisionMonitor',
    'overlaps',
    'pair_key',
    'CollisionEvent',
    'EventBus',
    'EventHandler',
    'NegateStepsReaction',
]
