"""
Blockstage Intents

Intents are the only way to change the central state store. Each intent is
an immutable, validated pydantic model:

- Tree edits (from the authoring UI): AddBlockToRoot, AddBlockToContainer,
  RemoveBlock
- Run control: StartRun, StopRun
- Actor state updates (from the scheduler): UpdateActorState
- Roster: AddActor, RemoveActor, SelectActor
- Collision reactions: HandleCollision

Plain dict payloads (e.g. from a UI bridge) go through parse_intent(),
which raises pydantic.ValidationError for payloads missing required ids.
"""

from typing import ClassVar, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field

from blockstage.program.blocks import Block

Literal = Union[int, float, str]


class BlockPayload(BaseModel):
    """
    Wire shape of a block: {id, type, values, children?}.

    Ids must be supplied (unique) by the caller.
    """
    id: str = Field(..., min_length=1, description="Unique block id")
    type: str = Field(..., min_length=1, description="Block type name")
    values: List[Literal] = Field(default_factory=list, description="Literal parameters")
    children: Optional[List['BlockPayload']] = Field(
        default=None, description="Child blocks (containers only)")

    model_config = ConfigDict(frozen=True)

    def to_block(self) -> Block:
        return Block.from_dict(self.model_dump())

    @classmethod
    def from_block(cls, block: Block) -> 'BlockPayload':
        return cls.model_validate(block.to_dict())


BlockPayload.model_rebuild()


class ActorPatch(BaseModel):
    """Partial actor state; only fields that were set are applied."""
    x: Optional[float] = None
    y: Optional[float] = None
    heading: Optional[float] = None
    scale: Optional[float] = None
    displayed_message: Optional[str] = None

    model_config = ConfigDict(frozen=True, extra='forbid')

    def as_updates(self) -> Dict[str, object]:
        return self.model_dump(exclude_unset=True)


class Intent(BaseModel):
    """Base class for all store intents."""
    action: ClassVar[str] = ""

    model_config = ConfigDict(frozen=True)


class AddActor(Intent):
    action: ClassVar[str] = "ADD_ACTOR"
    kind: str = Field(..., min_length=1, description="Sprite kind from the catalog")
    x: float = 0.0
    y: float = 0.0


class RemoveActor(Intent):
    action: ClassVar[str] = "REMOVE_ACTOR"
    actor_id: str = Field(..., min_length=1)


class SelectActor(Intent):
    action: ClassVar[str] = "SELECT_ACTOR"
    actor_id: Optional[str] = None


class AddBlockToRoot(Intent):
    action: ClassVar[str] = "ADD_BLOCK_TO_ROOT"
    actor_id: str = Field(..., min_length=1)
    block: BlockPayload


class AddBlockToContainer(Intent):
    action: ClassVar[str] = "ADD_BLOCK_TO_CONTAINER"
    actor_id: str = Field(..., min_length=1)
    container_id: str = Field(..., min_length=1)
    block: BlockPayload


class RemoveBlock(Intent):
    action: ClassVar[str] = "REMOVE_BLOCK"
    actor_id: str = Field(..., min_length=1)
    block_id: str = Field(..., min_length=1)


class StartRun(Intent):
    action: ClassVar[str] = "START_RUN"


class StopRun(Intent):
    action: ClassVar[str] = "STOP_RUN"


class UpdateActorState(Intent):
    action: ClassVar[str] = "UPDATE_ACTOR_STATE"
    actor_id: str = Field(..., min_length=1)
    updates: ActorPatch


class HandleCollision(Intent):
    action: ClassVar[str] = "HANDLE_COLLISION"
    actor_a_id: str = Field(..., min_length=1)
    actor_b_id: str = Field(..., min_length=1)


INTENT_TYPES: Dict[str, Type[Intent]] = {
    cls.action: cls
    for cls in (
        AddActor,
        RemoveActor,
        SelectActor,
        AddBlockToRoot,
        AddBlockToContainer,
        RemoveBlock,
        StartRun,
        StopRun,
        UpdateActorState,
        HandleCollision,
    )
}


class UnknownIntentError(KeyError):
    """Raised by parse_intent for an action name with no intent type."""


def parse_intent(action: str, payload: Optional[Dict] = None) -> Intent:
    """
    Build an intent from an action name and a plain payload dict.

    Raises:
        UnknownIntentError: If the action name is not known
        pydantic.ValidationError: If the payload is invalid
    """
    intent_type = INTENT_TYPES.get(action)
    if intent_type is None:
        raise UnknownIntentError(action)
    return intent_type.model_validate(payload or {})
