"""Tunable parameters for delta production, reconciliation and sequencing.

Values can be loaded from a YAML (or JSON) file:

    position_tolerance: 10.0
    authoritative_fields: [health, isDead]
    quantize_positions: true
    max_enemies: 30
    max_projectiles: 100
    desync_tick_gap: 60
"""

import json
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple, Union

import yaml

from netsync.exceptions import ConfigError


@dataclass(frozen=True)
class SyncConfig:
    """Configuration shared by the producer, serializer, reconciler and sequencer."""

    # Predicted positions further than this from authority snap to it
    position_tolerance: float = 10.0
    # Wire fields always copied from authority during reconciliation
    authoritative_fields: Tuple[str, ...] = ('health', 'isDead')
    # Round x/y to whole numbers before diffing
    quantize_positions: bool = True
    # Per-tick caps on how many entities are considered (None = unlimited)
    max_enemies: Optional[int] = 30
    max_projectiles: Optional[int] = 100
    # Forward tick gap treated as a desync
    desync_tick_gap: int = 60

    def __post_init__(self) -> None:
        if self.position_tolerance < 0:
            raise ConfigError(f"position_tolerance must be >= 0, got {self.position_tolerance}")
        if self.desync_tick_gap < 1:
            raise ConfigError(f"desync_tick_gap must be >= 1, got {self.desync_tick_gap}")
        for name in ('max_enemies', 'max_projectiles'):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ConfigError(f"{name} must be >= 0 or null, got {value}")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> 'SyncConfig':
        """Build a config from a mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unknown sync config keys: {', '.join(sorted(unknown))}")

        values = dict(data)
        if 'authoritative_fields' in values:
            auth = values['authoritative_fields']
            if isinstance(auth, str) or not all(isinstance(a, str) for a in auth):
                raise ConfigError("authoritative_fields must be a list of field names")
            values['authoritative_fields'] = tuple(auth)
        try:
            return cls(**values)
        except TypeError as e:
            raise ConfigError(f"Invalid sync config: {e}") from e


def load_sync_config(path: Union[str, Path]) -> SyncConfig:
    """Load a SyncConfig from a .yaml/.yml or .json file.

    Raises:
        ConfigError: If the file is missing, unparsable or has bad values
    """
    path = Path(path)
    if not path.exists():
        raise ConfigError(f"Sync config not found: {path}")

    try:
        with open(path, 'r') as f:
            if path.suffix == '.json':
                data = json.load(f)
            else:
                data = yaml.safe_load(f)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e

    if data is None:
        return SyncConfig()
    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(data).__name__}")
    return SyncConfig.from_dict(data)
