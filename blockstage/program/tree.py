"""
Program tree model - pure edit and search operations over scripts.

A script is a tuple of top-level Blocks. Every operation returns a new
script and never mutates its input; subtrees that did not change are
returned as the same objects, so callers can detect no-op edits with `is`.

Edits:
    append_to_root(script, block)                  -> script
    insert_into_container(script, container_id, b) -> (script, found)
    remove_by_id(script, block_id)                 -> script

Searches walk the tree in pre-order (a block before its children, children
before the block's next sibling).
"""

from collections import Counter
from typing import Callable, Iterator, List, Optional, Set, Tuple

from blockstage.logging import get_logger
from blockstage.program.blocks import Block, BlockType, as_number

log = get_logger('tree')

Script = Tuple[Block, ...]


def append_to_root(script: Script, block: Block) -> Script:
    """Return a new script with `block` appended at the top level."""
    return tuple(script) + (block,)


def insert_into_container(
    script: Script,
    container_id: str,
    block: Block,
) -> Tuple[Script, bool]:
    """
    Append `block` to the children of the container with `container_id`.

    The first match in pre-order wins. A container whose children are
    missing is repaired with an empty tuple (logged). A match on a block
    that is not a container kind is refused.

    Returns:
        (new_script, True) on success, (script, False) if no container
        with that id exists anywhere in the tree.
    """
    new_script, found = _insert(tuple(script), container_id, block)
    if not found:
        return script, False
    return new_script, True


def _insert(blocks: Script, container_id: str, block: Block) -> Tuple[Script, bool]:
    for index, current in enumerate(blocks):
        if current.id == container_id:
            if not current.is_container:
                log.warning(
                    "Block %s (%s) is not a container; cannot insert %s",
                    container_id, current.type, block.id,
                )
                return blocks, False
            if current.children is None:
                log.warning(
                    "Container block %s was missing its children. Initialized.",
                    container_id,
                )
            updated = current.with_children((current.children or ()) + (block,))
            return blocks[:index] + (updated,) + blocks[index + 1:], True

        if current.children:
            new_children, found = _insert(current.children, container_id, block)
            if found:
                updated = current.with_children(new_children)
                return blocks[:index] + (updated,) + blocks[index + 1:], True

    return blocks, False


def remove_by_id(script: Script, block_id: str) -> Script:
    """
    Remove every block with `block_id`, at any depth, with its subtree.

    Returns the same tuple object when nothing matched.
    """
    blocks = tuple(script)
    changed = False
    result: List[Block] = []

    for current in blocks:
        if current.id == block_id:
            changed = True
            continue

        if current.children:
            new_children = remove_by_id(current.children, block_id)
            if new_children is not current.children:
                current = current.with_children(new_children)
                changed = True

        result.append(current)

    if not changed:
        return script
    return tuple(result)


def replace_block(script: Script, block_id: str, new_block: Block) -> Tuple[Script, bool]:
    """Replace the first block with `block_id` (pre-order) by `new_block`."""
    blocks = tuple(script)
    for index, current in enumerate(blocks):
        if current.id == block_id:
            return blocks[:index] + (new_block,) + blocks[index + 1:], True
        if current.children:
            new_children, found = replace_block(current.children, block_id, new_block)
            if found:
                updated = current.with_children(new_children)
                return blocks[:index] + (updated,) + blocks[index + 1:], True
    return script, False


def iter_blocks(script: Script) -> Iterator[Block]:
    """Yield every block of the script in pre-order."""
    for block in script:
        yield from block.walk()


def find_first(script: Script, predicate: Callable[[Block], bool]) -> Optional[Block]:
    """Return the first block (pre-order) matching `predicate`."""
    for block in iter_blocks(script):
        if predicate(block):
            return block
    return None


def find_block(script: Script, block_id: str) -> Optional[Block]:
    """Find a block by id anywhere in the tree."""
    return find_first(script, lambda b: b.id == block_id)


def collect_ids(script: Script) -> Set[str]:
    """All block ids in the tree."""
    return {block.id for block in iter_blocks(script)}


def duplicate_ids(script: Script) -> Set[str]:
    """Ids that occur more than once in the tree."""
    counts = Counter(block.id for block in iter_blocks(script))
    return {block_id for block_id, n in counts.items() if n > 1}


def negate_first_move(script: Script) -> Tuple[Script, bool]:
    """
    Negate the step value of the first "move by steps" block.

    Searches in pre-order, including inside containers.

    Returns:
        (new_script, True) if a move block was found, else (script, False)
    """
    move = find_first(script, lambda b: b.type == BlockType.MOTION_MOVE_STEPS)
    if move is None:
        return script, False

    values = list(move.values) or [0]
    values[0] = -as_number(values[0])
    return replace_block(script, move.id, move.with_values(tuple(values)))
