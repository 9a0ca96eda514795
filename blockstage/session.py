"""
Stage Session

One object wiring the central store, the frame scheduler, the collision
monitor, the event bus and the collision reaction together.

Usage:
    session = StageSession()
    cat = session.add_actor('cat')

    flag = session.factory.create(BlockType.EVENT_FLAG_CLICKED)
    move = session.factory.create(BlockType.MOTION_MOVE_STEPS, [10])
    session.add_block(cat, flag)
    session.add_block(cat, move)

    session.start()
    session.run()          # pump the manual host until the run stops
    session.state.get_actor(cat).x   # 10.0

A window frontend passes its own FrameHost and calls host.step() from its
frame loop instead of run().
"""

from typing import Dict, Optional, Union

from blockstage.config import StageConfig
from blockstage.intents import (
    AddActor,
    AddBlockToContainer,
    AddBlockToRoot,
    BlockPayload,
    RemoveActor,
    RemoveBlock,
    SelectActor,
    StartRun,
    StopRun,
)
from blockstage.logging import RunRecorder, get_logger, record_run, unregister_sink
from blockstage.program.blocks import Block, BlockFactory
from blockstage.runtime.bus import EventBus
from blockstage.runtime.collision import CollisionMonitor
from blockstage.runtime.host import FrameHost, ManualFrameHost
from blockstage.runtime.interpreter import BlockInterpreter
from blockstage.runtime.reactions import NegateStepsReaction
from blockstage.runtime.scheduler import FrameScheduler
from blockstage.sprites import SpriteDefinition
from blockstage.store import StageState, StageStore

log = get_logger('session')

BlockLike = Union[Block, BlockPayload, dict]


def _payload(block: BlockLike) -> BlockPayload:
    if isinstance(block, BlockPayload):
        return block
    if isinstance(block, Block):
        return BlockPayload.from_block(block)
    return BlockPayload.model_validate(block)


class StageSession:
    """
    Main stage session.

    Responsibilities:
    1. Own the store and everything that reacts to it
    2. Offer the authoring and run-control operations as methods
    3. Drive the manual frame host for headless runs
    """

    def __init__(
        self,
        config: Optional[StageConfig] = None,
        initial: Optional[StageState] = None,
        host: Optional[FrameHost] = None,
        catalog: Optional[Dict[str, SpriteDefinition]] = None,
        collisions: bool = True,
        record_dir: Optional[str] = None,
        record_name: Optional[str] = None,
    ):
        """
        Initialize the session.

        Args:
            config: Stage configuration (defaults if omitted)
            initial: Initial stage state, e.g. from a project file
            host: Frame host (ManualFrameHost if omitted)
            catalog: Sprite catalog override
            collisions: Wire the collision monitor and reaction
            record_dir: Write scheduler and bus records of every run to a
                JSONL file in this directory
            record_name: File stem for the recording (default: timestamp)
        """
        self.config = config or StageConfig()
        self.store = StageStore(initial, self.config, catalog)
        self.host = host or ManualFrameHost()
        self.factory = BlockFactory()

        self.bus = EventBus()
        self.collision_monitor = CollisionMonitor(self.bus) if collisions else None
        self.reaction = NegateStepsReaction(self.store, self.bus) if collisions else None

        self.interpreter = BlockInterpreter(self.config)
        self.scheduler = FrameScheduler(
            self.store,
            self.host,
            interpreter=self.interpreter,
            collision_monitor=self.collision_monitor,
        )

        self.recorder: Optional[RunRecorder] = None
        if record_dir is not None:
            self.recorder = record_run(record_dir, record_name)
            log.info("Recording runs to %s", self.recorder.path)

    @property
    def state(self) -> StageState:
        return self.store.state

    @property
    def running(self) -> bool:
        return self.store.state.running

    # -------------------------------------------------------------------------
    # Roster
    # -------------------------------------------------------------------------

    def add_actor(self, kind: str, x: float = 0.0, y: float = 0.0) -> Optional[str]:
        """
        Add an actor of a catalog kind.

        Returns:
            The new actor's id, or None if the kind is unknown
        """
        before = self.store.state
        after = self.store.dispatch(AddActor(kind=kind, x=x, y=y))
        if after is before:
            return None
        return after.selected_actor_id

    def remove_actor(self, actor_id: str) -> StageState:
        return self.store.dispatch(RemoveActor(actor_id=actor_id))

    def select_actor(self, actor_id: Optional[str]) -> StageState:
        return self.store.dispatch(SelectActor(actor_id=actor_id))

    # -------------------------------------------------------------------------
    # Tree edits
    # -------------------------------------------------------------------------

    def add_block(self, actor_id: str, block: BlockLike) -> StageState:
        """Append a block to the end of an actor's top-level script."""
        return self.store.dispatch(AddBlockToRoot(actor_id=actor_id, block=_payload(block)))

    def add_block_to_container(self, actor_id: str, container_id: str, block: BlockLike) -> StageState:
        """Append a block to the children of a container block."""
        return self.store.dispatch(AddBlockToContainer(
            actor_id=actor_id,
            container_id=container_id,
            block=_payload(block),
        ))

    def remove_block(self, actor_id: str, block_id: str) -> StageState:
        return self.store.dispatch(RemoveBlock(actor_id=actor_id, block_id=block_id))

    # -------------------------------------------------------------------------
    # Run control
    # -------------------------------------------------------------------------

    def start(self) -> StageState:
        return self.store.dispatch(StartRun())

    def stop(self) -> StageState:
        return self.store.dispatch(StopRun())

    def tick(self) -> bool:
        """
        Run the pending frame, if any.

        Returns:
            True if a frame ran
        """
        if not isinstance(self.host, ManualFrameHost):
            raise TypeError("tick() needs a ManualFrameHost; drive other hosts from their frame loop")
        return self.host.step()

    def run(self, max_ticks: int = 1000) -> int:
        """
        Pump frames until the run stops or max_ticks frames have run.

        Returns:
            Number of frames run
        """
        if not isinstance(self.host, ManualFrameHost):
            raise TypeError("run() needs a ManualFrameHost; drive other hosts from their frame loop")
        frames = self.host.run(max_frames=max_ticks)
        if self.running:
            log.warning("Run still active after %d frame(s)", frames)
        return frames

    def close(self) -> None:
        """Detach the scheduler and reaction and finish any recording."""
        self.scheduler.close()
        if self.reaction is not None:
            self.reaction.detach()
        if self.recorder is not None:
            unregister_sink(self.recorder)
            self.recorder.close()
