"""Sprite catalog - the actor kinds that can be added to the stage."""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional


@dataclass(frozen=True)
class SpriteDefinition:
    """An actor kind with its default bounds."""
    kind: str
    name: str
    image: str = ""
    width: float = 50.0
    height: float = 50.0


SPRITE_CATALOG: Dict[str, SpriteDefinition] = {
    'cat': SpriteDefinition('cat', 'Cat', 'assets/cat.svg'),
    'dog': SpriteDefinition('dog', 'Dog', 'assets/dog.svg'),
    'cat2': SpriteDefinition('cat2', 'Cat2', 'assets/cat2.svg'),
}


def get_sprite_definition(
    kind: str,
    catalog: Optional[Dict[str, SpriteDefinition]] = None,
) -> Optional[SpriteDefinition]:
    """Look up a sprite definition by kind."""
    return (catalog if catalog is not None else SPRITE_CATALOG).get(kind)


def list_sprite_kinds(catalog: Optional[Dict[str, SpriteDefinition]] = None) -> List[str]:
    return sorted(catalog if catalog is not None else SPRITE_CATALOG)


def generate_actor_id(kind: str, existing_ids: Iterable[str]) -> str:
    """First free id of the form "<kind>-<n>", starting at 1."""
    taken = set(existing_ids)
    count = 1
    while f"{kind}-{count}" in taken:
        count += 1
    return f"{kind}-{count}"
