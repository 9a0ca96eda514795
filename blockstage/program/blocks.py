"""
Block catalog - the fixed set of block types and the Block record.

A block is an immutable node of an actor's program tree:

    Block(id="MOTION_MOVE_STEPS_3", type="MOTION_MOVE_STEPS", values=(10,))

Container blocks (CONTROL_REPEAT) own an ordered tuple of children; every
other block has children=None. Blocks are frozen, so edits always build new
tuples along the path to the change and share everything else.
"""

import itertools
import math
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, Optional, Tuple, Union

Literal = Union[int, float, str]


class BlockType(str, Enum):
    """Block kinds understood by the interpreter."""
    MOTION_MOVE_STEPS = "MOTION_MOVE_STEPS"
    MOTION_TURN_DEGREES = "MOTION_TURN_DEGREES"  # Clockwise
    MOTION_TURN_ANTICLOCKWISE = "MOTION_TURN_ANTICLOCKWISE"
    MOTION_GOTO_XY = "MOTION_GOTO_XY"
    LOOKS_SAY = "LOOKS_SAY"
    LOOKS_CHANGE_SIZE_BY = "LOOKS_CHANGE_SIZE_BY"
    CONTROL_REPEAT = "CONTROL_REPEAT"
    EVENT_FLAG_CLICKED = "EVENT_FLAG_CLICKED"


@dataclass(frozen=True)
class BlockDefinition:
    """Palette entry for a block type."""
    category: str
    label: str
    default_values: Tuple[Literal, ...] = ()
    is_container: bool = False
    is_hat: bool = False  # Event trigger, only valid as first block


BLOCK_DEFINITIONS: Dict[str, BlockDefinition] = {
    BlockType.MOTION_MOVE_STEPS.value: BlockDefinition(
        'Motion', 'Move {} steps', (10,)),
    BlockType.MOTION_TURN_DEGREES.value: BlockDefinition(
        'Motion', 'Turn right {} degrees', (15,)),
    BlockType.MOTION_TURN_ANTICLOCKWISE.value: BlockDefinition(
        'Motion', 'Turn left {} degrees', (15,)),
    BlockType.MOTION_GOTO_XY.value: BlockDefinition(
        'Motion', 'Go to x:{} y:{}', (0, 0)),
    BlockType.LOOKS_SAY.value: BlockDefinition(
        'Looks', 'Say {}', ('Hello!',)),
    BlockType.LOOKS_CHANGE_SIZE_BY.value: BlockDefinition(
        'Looks', 'Change size by {}', (10,)),
    BlockType.CONTROL_REPEAT.value: BlockDefinition(
        'Controls', 'Repeat {} times', (10,), is_container=True),
    BlockType.EVENT_FLAG_CLICKED.value: BlockDefinition(
        'Events', 'When Green Flag clicked', is_hat=True),
}


def get_definition(block_type: str) -> Optional[BlockDefinition]:
    """Look up a block definition; None for unknown types."""
    return BLOCK_DEFINITIONS.get(_type_name(block_type))


def is_container_type(block_type: str) -> bool:
    definition = get_definition(block_type)
    return definition is not None and definition.is_container


def is_trigger_type(block_type: str) -> bool:
    definition = get_definition(block_type)
    return definition is not None and definition.is_hat


def _type_name(block_type: Union[str, BlockType]) -> str:
    return block_type.value if isinstance(block_type, BlockType) else str(block_type)


def as_number(value: Any) -> Union[int, float]:
    """Read a literal as a number; non-numeric and non-finite values read as 0."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        try:
            float(value)
        except OverflowError:
            return 0
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(number):
        return 0
    return int(number) if number.is_integer() else number


@dataclass(frozen=True)
class Block:
    """
    One instruction or container node in an actor's program tree.

    Attributes:
        id: Unique within the owning script
        type: Block type name (unknown names are kept and skipped at run time)
        values: Fixed-arity literal parameters
        children: Child blocks for container types, None otherwise
    """
    id: str
    type: str
    values: Tuple[Literal, ...] = ()
    children: Optional[Tuple['Block', ...]] = None

    @property
    def is_container(self) -> bool:
        return is_container_type(self.type)

    @property
    def is_trigger(self) -> bool:
        return is_trigger_type(self.type)

    def with_children(self, children: Tuple['Block', ...]) -> 'Block':
        return Block(self.id, self.type, self.values, tuple(children))

    def with_values(self, values: Tuple[Literal, ...]) -> 'Block':
        return Block(self.id, self.type, tuple(values), self.children)

    def walk(self) -> Iterator['Block']:
        """Yield this block and all descendants in pre-order."""
        yield self
        for child in self.children or ():
            yield from child.walk()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Block':
        """Create a block from its plain `{id, type, values, children?}` form.

        Children given for a non-container type are dropped. A container
        without a children list keeps children=None; tree edits recover it.
        """
        block_type = _type_name(data['type'])
        children = data.get('children')
        if children is not None and is_container_type(block_type):
            children = tuple(cls.from_dict(c) for c in children)
        else:
            children = None
        return cls(
            id=str(data['id']),
            type=block_type,
            values=tuple(data.get('values') or ()),
            children=children,
        )

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            'id': self.id,
            'type': self.type,
            'values': list(self.values),
        }
        if self.children is not None:
            data['children'] = [c.to_dict() for c in self.children]
        return data


@dataclass
class BlockFactory:
    """
    Creates blocks with default values and unique ids.

    Ids look like "MOTION_MOVE_STEPS_1a2b3c_4": type name, a token unique
    to this factory, and a monotonic counter.
    """
    token: str = field(default_factory=lambda: uuid.uuid4().hex[:6])
    _counter: Iterator[int] = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False)

    def next_id(self, block_type: Union[str, BlockType]) -> str:
        return f"{_type_name(block_type)}_{self.token}_{next(self._counter)}"

    def create(
        self,
        block_type: Union[str, BlockType],
        values: Optional[Tuple[Literal, ...]] = None,
        children: Optional[Tuple[Block, ...]] = None,
    ) -> Block:
        """
        Create a block of the given type.

        Args:
            block_type: Block type (known types get their default values)
            values: Parameter override; defaults come from BLOCK_DEFINITIONS
            children: Initial children (containers only)
        """
        name = _type_name(block_type)
        definition = get_definition(name)
        if values is None:
            values = definition.default_values if definition else ()

        if definition is not None and definition.is_container:
            children = tuple(children or ())
        else:
            children = None

        return Block(self.next_id(name), name, tuple(values), children)
