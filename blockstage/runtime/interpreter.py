"""
Block Interpreter - executes one block for one actor.

The interpreter is a pure step function:

    result = interpreter.execute(actor, block, state)
    result.delta    # None or a partial actor patch, e.g. {'x': 10.0, 'y': 0.0}
    result.advance  # True when the scheduler may move past this block
    result.state    # New ExecutionState (the input state is untouched)

Container blocks (repeat) interleave one leaf step per call. A repeat
block only moves on to its next child when the child reports advance=True,
so nested repeats run all of their passes, one leaf per tick, before the
enclosing repeat continues.

Malformed programs never fail a tick: unknown block types and stray event
triggers are no-ops that advance.
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Union

from blockstage.config import StageConfig
from blockstage.logging import get_logger
from blockstage.program.blocks import Block, BlockType, as_number
from blockstage.runtime.execution import ExecutionState, LoopProgress

log = get_logger('interpreter')


@dataclass(frozen=True)
class StepResult:
    """Outcome of executing one block."""
    delta: Optional[Dict[str, Any]]
    advance: bool
    state: ExecutionState


# handler(actor, block, state) -> StepResult
BlockHandler = Callable[[Any, Block, ExecutionState], StepResult]


def normalize_heading(heading: float) -> float:
    """Wrap a heading into [0, 360)."""
    result = heading % 360
    if result >= 360:
        result -= 360
    return result


def _value(block: Block, index: int) -> Any:
    return block.values[index] if index < len(block.values) else 0


class BlockInterpreter:
    """
    Executes blocks against an actor's current state.

    Usage:
        interpreter = BlockInterpreter(StageConfig())
        result = interpreter.execute(actor, block, state)

        # Add a block kind without touching the interpreter
        interpreter.register_handler("LOOKS_HIDE", hide_handler)
    """

    def __init__(self, config: Optional[StageConfig] = None):
        self.config = config or StageConfig()
        self._handlers: Dict[str, BlockHandler] = {}

        self.register_handlers({
            BlockType.MOTION_MOVE_STEPS: self._move_steps,
            BlockType.MOTION_TURN_DEGREES: self._turn_clockwise,
            BlockType.MOTION_TURN_ANTICLOCKWISE: self._turn_anticlockwise,
            BlockType.MOTION_GOTO_XY: self._goto_xy,
            BlockType.LOOKS_SAY: self._say,
            BlockType.LOOKS_CHANGE_SIZE_BY: self._change_size,
            BlockType.CONTROL_REPEAT: self._repeat,
            BlockType.EVENT_FLAG_CLICKED: self._trigger,
        })

    def register_handler(self, block_type: Union[str, BlockType], handler: BlockHandler) -> None:
        """Register (or replace) the handler for a block type."""
        key = block_type.value if isinstance(block_type, BlockType) else block_type
        self._handlers[key] = handler

    def register_handlers(self, handlers: Dict[Union[str, BlockType], BlockHandler]) -> None:
        """Register multiple handlers."""
        for block_type, handler in handlers.items():
            self.register_handler(block_type, handler)

    def supports(self, block_type: str) -> bool:
        return block_type in self._handlers

    def execute(self, actor, block: Optional[Block], state: ExecutionState) -> StepResult:
        """
        Execute a single block.

        Args:
            actor: Actor as read at the start of the tick
            block: Block at the instruction pointer (None is skipped)
            state: The actor's execution state

        Returns:
            StepResult with the delta, the advance decision and the new state
        """
        if block is None:
            return StepResult(None, True, state)

        handler = self._handlers.get(block.type)
        if handler is None:
            log.debug("Skipping unsupported block %s (%s)", block.id, block.type)
            return StepResult(None, True, state)

        return handler(actor, block, state)

    # -------------------------------------------------------------------------
    # Motion
    # -------------------------------------------------------------------------

    def _move_steps(self, actor, block: Block, state: ExecutionState) -> StepResult:
        steps = as_number(_value(block, 0))
        angle = math.radians(actor.heading - 90)
        delta = {
            'x': actor.x + steps * math.cos(angle),
            'y': actor.y + steps * math.sin(angle),
        }
        return StepResult(delta, True, state)

    def _turn_clockwise(self, actor, block: Block, state: ExecutionState) -> StepResult:
        degrees = as_number(_value(block, 0))
        return StepResult({'heading': normalize_heading(actor.heading + degrees)}, True, state)

    def _turn_anticlockwise(self, actor, block: Block, state: ExecutionState) -> StepResult:
        degrees = as_number(_value(block, 0))
        return StepResult({'heading': normalize_heading(actor.heading - degrees)}, True, state)

    def _goto_xy(self, actor, block: Block, state: ExecutionState) -> StepResult:
        delta = {
            'x': as_number(_value(block, 0)),
            'y': as_number(_value(block, 1)),
        }
        return StepResult(delta, True, state)

    # -------------------------------------------------------------------------
    # Looks
    # -------------------------------------------------------------------------

    def _say(self, actor, block: Block, state: ExecutionState) -> StepResult:
        message = block.values[0] if block.values else ''
        try:
            message = str(message) if message is not None else ''
        except ValueError:
            # int too long to print
            message = ''
        return StepResult({'displayed_message': message or None}, True, state)

    def _change_size(self, actor, block: Block, state: ExecutionState) -> StepResult:
        amount = as_number(_value(block, 0))
        scale = min(max(actor.scale + amount, self.config.min_scale), self.config.max_scale)
        return StepResult({'scale': scale}, True, state)

    # -------------------------------------------------------------------------
    # Control / events
    # -------------------------------------------------------------------------

    def _trigger(self, actor, block: Block, state: ExecutionState) -> StepResult:
        # Triggers occupy pointer slot 0 and are never scheduled
        return StepResult(None, True, state)

    def _repeat(self, actor, block: Block, state: ExecutionState) -> StepResult:
        children = block.children or ()
        progress = state.loop_progress.get(block.id)

        if progress is None:
            times = int(as_number(_value(block, 0)))
            if times <= 0 or not children:
                return StepResult(None, True, state)
            progress = LoopProgress(remaining=times, child_index=0)

        if progress.remaining <= 0 or not children:
            return StepResult(None, True, state.with_loop(block.id, None))

        if progress.child_index >= len(children):
            # Children were removed while the loop was mid-pass
            return self._finish_pass(block, progress, state, None)

        child = children[progress.child_index]
        result = self.execute(actor, child, state)
        state = result.state

        child_index = progress.child_index + 1 if result.advance else progress.child_index
        if child_index < len(children):
            progress = LoopProgress(progress.remaining, child_index)
            return StepResult(result.delta, False, state.with_loop(block.id, progress))

        return self._finish_pass(block, progress, state, result.delta)

    def _finish_pass(
        self,
        block: Block,
        progress: LoopProgress,
        state: ExecutionState,
        delta: Optional[Dict[str, Any]],
    ) -> StepResult:
        remaining = progress.remaining - 1
        if remaining <= 0:
            return StepResult(delta, True, state.with_loop(block.id, None))
        return StepResult(delta, False, state.with_loop(block.id, LoopProgress(remaining, 0)))
