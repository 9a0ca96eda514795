"""Stage configuration: dimensions, frame rate and actor limits."""

import os
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, Optional

from blockstage.logging import get_logger

log = get_logger('config')


@dataclass(frozen=True)
class StageConfig:
    """Stage dimensions, frame rate and actor limits."""

    width: int = 480
    height: int = 360
    fps: int = 60

    # Scale is a percentage of the sprite's natural size
    min_scale: float = 10.0
    max_scale: float = 500.0
    default_scale: float = 100.0

    # Degrees, 90 = facing right
    default_heading: float = 90.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> 'StageConfig':
        """Build a config from a plain dict, ignoring unknown keys."""
        if not data:
            return cls().with_env_overrides()

        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            log.warning("Ignoring unknown stage settings: %s", ', '.join(sorted(unknown)))

        config = cls(**{k: v for k, v in data.items() if k in known})
        if config.min_scale > config.max_scale:
            log.warning("min_scale %s > max_scale %s, swapping", config.min_scale, config.max_scale)
            config = cls(**{**asdict(config),
                            'min_scale': config.max_scale,
                            'max_scale': config.min_scale})
        return config.with_env_overrides()

    def with_env_overrides(self) -> 'StageConfig':
        """Apply BLOCKSTAGE_FPS from the environment, if set."""
        fps = os.environ.get('BLOCKSTAGE_FPS')
        if not fps:
            return self
        try:
            return StageConfig(**{**asdict(self), 'fps': int(fps)})
        except ValueError:
            log.warning("Invalid BLOCKSTAGE_FPS=%r, keeping %d", fps, self.fps)
            return self

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

