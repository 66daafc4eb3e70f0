"""
Syncable entity contract.

Anything the sync layer serializes or updates goes through two narrow
calls: get_network_state() on the authoritative side and
update_from_network_state() on clients. SyncedEntity is a base class that
implements both from a declarative wire-name -> attribute mapping.
"""

from typing import Any, ClassVar, Dict, Mapping, Optional, Protocol, Union, runtime_checkable

from models import EntityState, NetworkRecord

from netsync.logging import get_logger
from netsync.sync.reconcile import DEFAULT_POLICY, ReconcileResult, ReconciliationPolicy, reconcile

log = get_logger('entity')


@runtime_checkable
class SyncableEntity(Protocol):
    """Protocol for entities synchronized across peers.

    get_network_state() returns None when the entity is not taking part in
    sync (e.g. an indestructible static obstacle).
    """
    id: str

    def get_network_state(self) -> Optional[EntityState]:
        ...

    def update_from_network_state(self, state: EntityState) -> None:
        ...


def is_syncable_entity(obj: Any) -> bool:
    """True if obj implements SyncableEntity with a string id."""
    return isinstance(obj, SyncableEntity) and isinstance(getattr(obj, 'id', None), str)


class SyncedEntity:
    """
    Base class for game objects that take part in state sync.

    Subclasses extend ``network_fields`` with their type-specific wire
    fields; anything not listed there is ignored on the way in and never
    sent on the way out.

    Example:
        class Enemy(SyncedEntity):
            entity_type = 'Enemy'
            network_fields = {**SyncedEntity.network_fields, 'health': 'health'}

            def __init__(self, entity_id, x, y):
                super().__init__(entity_id, x, y)
                self.health = 100

            def on_destroyed(self):
                explosion_at(self.x, self.y)
    """

    entity_type: ClassVar[str] = 'Entity'

    # Wire name -> attribute name
    network_fields: ClassVar[Dict[str, str]] = {
        'x': 'x',
        'y': 'y',
        'netVersion': 'net_version',
        'isDead': 'is_dead',
    }

    def __init__(self, entity_id: str, x: float = 0.0, y: float = 0.0):
        self.id = entity_id
        self.x = x
        self.y = y
        self.net_version = 0
        self.is_dead = False
        self._destroyed = False

    @property
    def destroyed(self) -> bool:
        """True once on_destroyed() has run."""
        return self._destroyed

    def build_network_state(self) -> EntityState:
        """EntityState holding every declared network field."""
        fields: Dict[str, Any] = {'id': self.id, 'type': self.entity_type}
        for wire_name, attr in self.network_fields.items():
            fields[wire_name] = getattr(self, attr)
        return EntityState.model_validate(fields)

    def get_network_state(self) -> Optional[EntityState]:
        return self.build_network_state()

    def update_from_network_state(self, state: EntityState) -> None:
        self.apply_delta(state)

    def apply_delta(self, delta: Union[NetworkRecord, Mapping[str, Any]]) -> None:
        """Copy the known fields present in a delta onto this entity.

        Unknown fields are ignored. Fields absent from the delta keep their
        current values.
        """
        fields = delta.to_fields() if isinstance(delta, NetworkRecord) else dict(delta)
        for wire_name, value in fields.items():
            attr = self.network_fields.get(wire_name)
            if attr is None:
                continue
            setattr(self, attr, value)
        self._check_destroyed()

    def reconcile(
        self,
        authoritative: EntityState,
        policy: ReconciliationPolicy = DEFAULT_POLICY,
    ) -> ReconcileResult:
        """Correct this entity's predicted state from an authoritative one."""
        predicted = self.build_network_state()
        result = reconcile(predicted, authoritative, policy)

        corrected = predicted.to_fields()
        changed = ('x', 'y') + result.overwritten if result.snapped else result.overwritten
        self.apply_delta({name: corrected[name] for name in changed if name in corrected})
        return result

    def mark_changed(self) -> None:
        """Bump the change counter after a local modification."""
        self.net_version += 1

    def on_destroyed(self) -> None:
        """Called once when the entity becomes dead. Override for cleanup."""

    def _check_destroyed(self) -> None:
        if self.is_dead and not self._destroyed:
            self._destroyed = True
            log.debug("%s %s destroyed", self.entity_type, self.id)
            self.on_destroyed()

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id!r}, x={self.x}, y={self.y}, is_dead={self.is_dead})"
