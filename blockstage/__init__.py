"""
Blockstage

Block-based visual programming runtime: actors own tree-shaped programs of
typed blocks that run frame by frame, one step per actor per tick, with
collisions able to rewrite another actor's program.
"""

from blockstage.config import StageConfig
from blockstage.program import Block, BlockFactory, BlockType
from blockstage.project import Project, ProjectLoadError, load_project, save_project
from blockstage.session import StageSession
from blockstage.store import Actor, StageState, StageStore

__all__ = [
    'Actor',
    'Block',
    'BlockFactory',
    'BlockType',
    'Project',
    'ProjectLoadError',
    'StageConfig',
    'StageSession',
    'StageState',
    'StageStore',
    'load_project',
    'save_project',
]
