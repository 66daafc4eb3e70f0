"""
Wire packet and reconstructed-state models.

A DeltaPacket is one tick's worth of changes from the authoritative side:

    {
      tick: int, timestamp: int (epoch ms),
      players?:     {id: EntityDelta | null},
      enemies?:     {id: EntityDelta | null},
      projectiles?: {id: EntityDelta | null},
      walls?:       {id: EntityDelta | null},
      meta?:        {key: any}
    }

A null entry removes that id; an absent id or category means no change.
ReconstructedState is the client's full view after accumulating packets.
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional, Tuple

from pydantic import BaseModel, ConfigDict, StrictInt, model_validator

from .state import EntityDelta, is_wire_value

# Entity categories, in the order they are applied
CATEGORIES: Tuple[str, ...] = ('players', 'enemies', 'projectiles', 'walls')

CollectionDelta = Dict[str, Optional[EntityDelta]]
Record = Dict[str, Any]


class DeltaPacket(BaseModel):
    """
    One tick of incremental state, validated at the network boundary.

    Collection entries that omit ``id`` take it from their key; an entry
    whose ``id`` disagrees with its key is rejected.
    """
    tick: StrictInt
    timestamp: int
    players: Optional[CollectionDelta] = None
    enemies: Optional[CollectionDelta] = None
    projectiles: Optional[CollectionDelta] = None
    walls: Optional[CollectionDelta] = None
    meta: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra='ignore')

    @model_validator(mode='before')
    @classmethod
    def _fill_entry_ids(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for category in CATEGORIES:
            entries = data.get(category)
            if not isinstance(entries, dict):
                continue
            filled = {}
            for key, entry in entries.items():
                if isinstance(entry, dict):
                    if 'id' not in entry:
                        entry = {'id': key, **entry}
                    elif entry['id'] != key:
                        raise ValueError(
                            f"{category} entry keyed '{key}' carries id '{entry['id']}'"
                        )
                filled[key] = entry
            data[category] = filled
        return data

    @model_validator(mode='after')
    def _check_meta_values(self) -> 'DeltaPacket':
        for key, value in (self.meta or {}).items():
            if not is_wire_value(value):
                raise ValueError(f"meta '{key}' has non-wire value of type {type(value).__name__}")
        return self

    def collections(self) -> Iterator[Tuple[str, CollectionDelta]]:
        """Yield (category, collection delta) for each category present."""
        for category in CATEGORIES:
            entries = getattr(self, category)
            if entries is not None:
                yield category, entries

    @property
    def is_empty(self) -> bool:
        """True if the packet changes nothing."""
        return not self.meta and not any(entries for _, entries in self.collections())

    def to_wire(self) -> Dict[str, Any]:
        """Plain dict form; absent categories stay absent, removals stay null."""
        wire: Dict[str, Any] = {'tick': self.tick, 'timestamp': self.timestamp}
        for category, entries in self.collections():
            wire[category] = {
                entity_id: None if delta is None else delta.to_fields()
                for entity_id, delta in entries.items()
            }
        if self.meta is not None:
            wire['meta'] = copy.deepcopy(self.meta)
        return wire


@dataclass
class ReconstructedState:
    """
    Full client-side state rebuilt from every packet applied so far.

    ``tick`` and ``timestamp`` are the as-of values of the packet that
    produced this snapshot. Every container is owned by the caller.
    """
    tick: Optional[int]
    timestamp: Optional[int]
    players: Dict[str, Record] = field(default_factory=dict)
    enemies: Dict[str, Record] = field(default_factory=dict)
    projectiles: Dict[str, Record] = field(default_factory=dict)
    walls: Dict[str, Record] = field(default_factory=dict)
    meta: Dict[str, Any] = field(default_factory=dict)

    def collection(self, category: str) -> Dict[str, Record]:
        """Get a category's records by name."""
        if category not in CATEGORIES:
            raise KeyError(f"Unknown category: {category}")
        return getattr(self, category)

    def get_entity(self, category: str, entity_id: str) -> Optional[EntityDelta]:
        """Typed view of one reconstructed record, or None if absent."""
        record = self.collection(category).get(entity_id)
        if record is None:
            return None
        return EntityDelta.model_validate(record)

    @property
    def entity_count(self) -> int:
        return sum(len(self.collection(c)) for c in CATEGORIES)

    def __repr__(self) -> str:
        return (
            f"ReconstructedState(tick={self.tick}, "
            f"players={len(self.players)}, enemies={len(self.enemies)}, "
            f"projectiles={len(self.projectiles)}, walls={len(self.walls)}, "
            f"meta_keys={len(self.meta)})"
        )
