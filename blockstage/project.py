"""
Project files - YAML persistence of actors and their program trees.

A project document looks like:

    name: Two cats
    stage:
      width: 480
      height: 360
    actors:
      - kind: cat
        x: -100
        script:
          - type: EVENT_FLAG_CLICKED
          - type: CONTROL_REPEAT
            values: [3]
            children:
              - {type: MOTION_MOVE_STEPS, values: [10]}

Block and actor ids are optional; missing ones are issued on load (block
ids by a BlockFactory, actor ids as "<kind>-<n>").

Usage:
    project = load_project(Path("projects/demo.yaml"))
    session = StageSession(config=project.config, initial=project.state)
    ...
    save_project(Path("out.yaml"), session.state, session.config)
"""

from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from blockstage.config import StageConfig
from blockstage.logging import get_logger
from blockstage.program.blocks import Block, BlockFactory, get_definition, is_container_type
from blockstage.program.tree import duplicate_ids
from blockstage.sprites import SpriteDefinition, generate_actor_id, get_sprite_definition, list_sprite_kinds
from blockstage.store import Actor, StageState

log = get_logger('project')

Literal = Union[int, float, str]


class ProjectLoadError(Exception):
    """Raised when a project file cannot be read or is invalid."""


class ProjectBlock(BaseModel):
    """A block as written in a project file."""
    id: Optional[str] = Field(default=None, description="Block id (issued on load if missing)")
    type: str = Field(..., min_length=1)
    values: Optional[List[Literal]] = Field(
        default=None, description="Literal parameters (catalog defaults if missing)")
    children: Optional[List['ProjectBlock']] = None

    model_config = ConfigDict(extra='forbid')


ProjectBlock.model_rebuild()


class ProjectActor(BaseModel):
    """An actor entry in a project file."""
    id: Optional[str] = None
    kind: str = Field(..., min_length=1)
    x: float = 0.0
    y: float = 0.0
    heading: Optional[float] = None
    scale: Optional[float] = None
    script: List[ProjectBlock] = Field(default_factory=list)

    model_config = ConfigDict(extra='forbid')


class ProjectFile(BaseModel):
    """Top-level project document."""
    name: str = "Untitled"
    stage: Dict[str, Any] = Field(default_factory=dict)
    actors: List[ProjectActor] = Field(default_factory=list)
    selected: Optional[str] = Field(default=None, description="Selected actor id")


class Project(NamedTuple):
    """A loaded project: initial stage state plus its configuration."""
    name: str
    state: StageState
    config: StageConfig


def _build_block(data: ProjectBlock, factory: BlockFactory) -> Block:
    definition = get_definition(data.type)
    if data.values is not None:
        values = tuple(data.values)
    else:
        values = definition.default_values if definition else ()

    children = None
    if is_container_type(data.type):
        children = tuple(_build_block(c, factory) for c in data.children or ())
    elif data.children:
        log.warning("Block %s of type %s cannot have children, dropped",
                    data.id or '<new>', data.type)

    block_id = data.id or factory.next_id(data.type)
    return Block(block_id, data.type, values, children)


def build_state(
    project: ProjectFile,
    config: StageConfig,
    catalog: Optional[Dict[str, SpriteDefinition]] = None,
    factory: Optional[BlockFactory] = None,
) -> StageState:
    """
    Turn a validated project document into a StageState.

    Raises:
        ProjectLoadError: Unknown sprite kind, clashing actor ids or
            duplicate block ids within one script
    """
    factory = factory or BlockFactory()
    actors: List[Actor] = []

    for entry in project.actors:
        definition = get_sprite_definition(entry.kind, catalog)
        if definition is None:
            raise ProjectLoadError(
                f"Unknown sprite kind '{entry.kind}' "
                f"(known: {', '.join(list_sprite_kinds(catalog))})"
            )

        taken = [a.id for a in actors]
        actor_id = entry.id or generate_actor_id(entry.kind, taken)
        if actor_id in taken:
            raise ProjectLoadError(f"Duplicate actor id '{actor_id}'")

        script = tuple(_build_block(b, factory) for b in entry.script)
        duplicates = duplicate_ids(script)
        if duplicates:
            raise ProjectLoadError(
                f"Actor '{actor_id}' has duplicate block ids: {', '.join(sorted(duplicates))}")

        actors.append(Actor(
            id=actor_id,
            kind=entry.kind,
            x=entry.x,
            y=entry.y,
            heading=entry.heading if entry.heading is not None else config.default_heading,
            scale=entry.scale if entry.scale is not None else config.default_scale,
            width=definition.width,
            height=definition.height,
            script=script,
        ))

    selected = project.selected
    ids = [a.id for a in actors]
    if selected is not None and selected not in ids:
        log.warning("Selected actor %s not in project, selecting first actor", selected)
        selected = None
    if selected is None and ids:
        selected = ids[0]

    return StageState(actors=tuple(actors), selected_actor_id=selected, running=False)


def load_project(
    path: Path,
    catalog: Optional[Dict[str, SpriteDefinition]] = None,
) -> Project:
    """Load and validate a project file.

    Args:
        path: YAML project file
        catalog: Sprite catalog override

    Returns:
        Project with the initial (stopped) stage state and its config

    Raises:
        ProjectLoadError: If the file is missing, malformed or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ProjectLoadError(f"Project file not found: {path}")

    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ProjectLoadError(f"Failed to parse YAML file '{path}': {e}") from e

    if not isinstance(data, dict):
        raise ProjectLoadError(f"Project file '{path}' must contain a mapping")

    try:
        document = ProjectFile.model_validate(data)
    except ValidationError as e:
        raise ProjectLoadError(f"Invalid project file '{path}':\n{e}") from e

    config = StageConfig.from_dict(document.stage)

    state = build_state(document, config, catalog)
    log.info("Loaded project '%s' with %d actor(s) from %s",
             document.name, len(state.actors), path)
    return Project(document.name, state, config)


def project_to_dict(state: StageState, config: StageConfig, name: str = "Untitled") -> Dict[str, Any]:
    """Plain-dict form of a stage, as written by save_project()."""
    return {
        'name': name,
        'stage': config.to_dict(),
        'selected': state.selected_actor_id,
        'actors': [
            {
                'id': actor.id,
                'kind': actor.kind,
                'x': actor.x,
                'y': actor.y,
                'heading': actor.heading,
                'scale': actor.scale,
                'script': [block.to_dict() for block in actor.script],
            }
            for actor in state.actors
        ],
    }


def save_project(path: Path, state: StageState, config: StageConfig, name: str = "Untitled") -> None:
    """Write the stage to a YAML project file.

    Run-time values (position, heading, scale) are saved as they are now;
    say messages and the run flag are not persisted.
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w') as f:
        yaml.safe_dump(project_to_dict(state, config, name), f, sort_keys=False)
    log.info("Saved project '%s' to %s", name, path)
