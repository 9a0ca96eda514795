"""
Program representation: block catalog and the pure tree model.
"""

from .blocks import (
    Block,
    BlockType,
    BlockDefinition,
    BlockFactory,
    BLOCK_DEFINITIONS,
    as_number,
    get_definition,
    is_container_type,
    is_trigger_type,
)
from .tree import (
    Script,
    append_to_root,
    insert_into_container,
    remove_by_id,
    replace_block,
    iter_blocks,
    find_first,
    find_block,
    collect_ids,
    duplicate_ids,
    negate_first_move,
)

__all__ = [
    'Block',
    'BlockType',
    'BlockDefinition',
    'BlockFactory',
    'BLOCK_DEFINITIONS',
    'as_number',
    'get_definition',
    'is_container_type',
    'is_trigger_type',
    'Script',
    'append_to_root',
    'insert_into_container',
    'remove_by_id',
    'replace_block',
    'iter_blocks',
    'find_first',
    'find_block',
    'collect_ids',
    'duplicate_ids',
    'negate_first_move',
]
