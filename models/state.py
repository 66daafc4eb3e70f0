"""
Per-entity network state models.

EntityState is the full authoritative record of one synchronized entity.
EntityDelta is a partial record: it always carries ``id``, and any other
field that is absent means "unchanged", never "cleared".

Both models use the wire names ``netVersion`` and ``isDead`` as aliases and
accept an open set of type-specific fields (health, velocityX, damage, ...).
Type-specific values must be JSON-compatible so that every record can be
diffed by value and sent as-is.
"""

import copy
import math
from typing import Any, ClassVar, Dict, Optional, Set, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .primitives import Point2D

Number = Union[int, float]

# Wire name -> attribute name for the aliased core fields
WIRE_ALIASES: Dict[str, str] = {
    'netVersion': 'net_version',
    'isDead': 'is_dead',
}

_SCALARS = (bool, int, float, str, type(None))


def is_wire_value(value: Any) -> bool:
    """Check that a value is JSON-compatible (scalars, lists, str-keyed dicts)."""
    if isinstance(value, float):
        return math.isfinite(value)
    if isinstance(value, _SCALARS):
        return True
    if isinstance(value, (list, tuple)):
        return all(is_wire_value(v) for v in value)
    if isinstance(value, dict):
        return all(isinstance(k, str) and is_wire_value(v) for k, v in value.items())
    return False


class NetworkRecord(BaseModel):
    """Common behavior for EntityState and EntityDelta."""

    # Positions must be finite: NaN and inf have no JSON form and cannot be quantized
    model_config = ConfigDict(extra='allow', populate_by_name=True, allow_inf_nan=False)

    # Whether to_fields() includes declared fields that were never set
    _include_defaults: ClassVar[bool] = True

    @model_validator(mode='after')
    def _check_extra_values(self) -> 'NetworkRecord':
        for name, value in (self.model_extra or {}).items():
            if not is_wire_value(value):
                raise ValueError(
                    f"Field '{name}' has non-wire value of type {type(value).__name__}"
                )
        return self

    def to_fields(self) -> Dict[str, Any]:
        """Return an independent dict of wire-named fields."""
        fields: Dict[str, Any] = {}
        for name, info in type(self).model_fields.items():
            if self._include_defaults or name in self.model_fields_set:
                fields[info.alias or name] = getattr(self, name)
        fields.update(self.model_extra or {})
        return copy.deepcopy(fields)

    def field_names(self) -> Set[str]:
        """Wire names of every field this record carries."""
        return set(self.to_fields())

    def has_field(self, name: str) -> bool:
        return name in self.field_names()

    def get_field(self, name: str, default: Any = None) -> Any:
        """Read a field by its wire name."""
        return self.to_fields().get(name, default)

    def set_field(self, name: str, value: Any) -> None:
        """Write a field by its wire name (aliases map to attributes)."""
        setattr(self, WIRE_ALIASES.get(name, name), value)


class EntityState(NetworkRecord):
    """
    Full authoritative representation of one synchronized entity.

    Attributes:
        id: Unique, stable id for the entity's lifetime
        type: Kind tag; consumers use it to pick a reconstruction strategy
        x: Position x
        y: Position y
        net_version: Non-decreasing change counter (wire: ``netVersion``)
        is_dead: Destruction flag (wire: ``isDead``)

    Examples:
        >>> s = EntityState(id='p1', type='Player', x=10, y=20, health=100)
        >>> s.to_fields()['health']
        100
    """
    id: str
    type: str
    x: Number
    y: Number
    net_version: int = Field(default=0, ge=0, alias='netVersion')
    is_dead: bool = Field(default=False, alias='isDead')

    @property
    def position(self) -> Point2D:
        return Point2D(x=self.x, y=self.y)

    def copy_state(self) -> 'EntityState':
        """Independent deep copy of this state."""
        return type(self).model_validate(self.to_fields())


class EntityDelta(NetworkRecord):
    """
    Partial EntityState: ``id`` plus zero or more changed fields.

    Only fields actually present on the wire are reported by to_fields();
    declared fields left at their default are treated as absent.
    """
    _include_defaults: ClassVar[bool] = False

    id: str
    type: Optional[str] = None
    x: Optional[Number] = None
    y: Optional[Number] = None
    net_version: Optional[int] = Field(default=None, ge=0, alias='netVersion')
    is_dead: Optional[bool] = Field(default=None, alias='isDead')

    def changed_fields(self) -> Set[str]:
        """Wire names of the fields this delta changes (everything but id)."""
        return self.field_names() - {'id'}

    @property
    def is_empty(self) -> bool:
        return not self.changed_fields()


def same_entity(a: NetworkRecord, b: NetworkRecord) -> bool:
    """Two records describe the same logical entity when id and type match."""
    return a.get_field('id') == b.get_field('id') and a.get_field('type') == b.get_field('type')
