"""
Delta Producer - authoritative-side per-entity change detection.

For every synchronized entity the producer keeps the last state it sent
(the baseline). Each tick the current state is compared field by field
against that baseline:

- no baseline: the whole state is sent and becomes the baseline
- some fields differ: only those fields (plus ``id``) are sent, and the
  full current state becomes the new baseline
- nothing differs: nothing is sent and the baseline is left alone

Comparison is exact. Positions are rounded to whole numbers beforehand
(when quantization is on) so floating-point noise does not produce packets.
"""

from typing import Any, Dict, Iterable, Mapping, Optional, Union, TYPE_CHECKING

from models import EntityDelta, EntityState, round_half_up

from netsync.logging import get_logger

if TYPE_CHECKING:
    from netsync.entity import SyncableEntity

log = get_logger('producer')

StateSource = Union[EntityState, "SyncableEntity", None]


def quantize_state(state: EntityState) -> EntityState:
    """Return a copy of state with x/y rounded half-up to whole numbers."""
    quantized = state.copy_state()
    quantized.x = round_half_up(state.x)
    quantized.y = round_half_up(state.y)
    return quantized


def _wire_kind(value: Any) -> type:
    # JSON has one number type, but booleans are not numbers
    if isinstance(value, bool):
        return bool
    if isinstance(value, (int, float)):
        return float
    if isinstance(value, tuple):
        return list
    return type(value)


def values_equal(a: Any, b: Any) -> bool:
    """Strict value equality for wire values.

    Unlike ``==``, True and 1 (or False and 0) are different values.
    Lists and dicts are compared element by element.
    """
    if _wire_kind(a) is not _wire_kind(b):
        return False
    if isinstance(a, (list, tuple)):
        return len(a) == len(b) and all(values_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict):
        return a.keys() == b.keys() and all(values_equal(v, b[k]) for k, v in a.items())
    return a == b


def diff_fields(current: Mapping[str, Any], previous: Mapping[str, Any]) -> Dict[str, Any]:
    """Fields of current whose value is missing from or differs in previous."""
    return {
        name: value
        for name, value in current.items()
        if name not in previous or not values_equal(previous[name], value)
    }


def compute_delta(current: EntityState, last_sent: Optional[EntityState]) -> Optional[EntityDelta]:
    """Compute the minimal delta from last_sent to current.

    Args:
        current: Current authoritative state
        last_sent: Baseline last sent for this entity, or None if never sent

    Returns:
        Full-state delta if there is no baseline, a delta of changed fields
        (always including ``id``), or None if nothing changed
    """
    fields = current.to_fields()
    if last_sent is None:
        return EntityDelta.model_validate(fields)

    changed = diff_fields(fields, last_sent.to_fields())
    if not changed:
        return None
    changed['id'] = current.id
    return EntityDelta.model_validate(changed)


def resolve_state(source: StateSource) -> Optional[EntityState]:
    """Get an EntityState from a state or a syncable entity.

    Entities whose get_network_state() returns None are not participating
    in sync this tick.
    """
    if source is None or isinstance(source, EntityState):
        return source
    return source.get_network_state()


class DeltaProducer:
    """
    Tracks per-entity baselines for one category and produces deltas.

    Args:
        quantize: Round positions to whole numbers before diffing

    Example:
        producer = DeltaProducer()

        # Each tick, for one category:
        changes = producer.produce_collection(enemies)
        if changes:
            packet['enemies'] = changes
    """

    def __init__(self, quantize: bool = True):
        self.quantize = quantize
        self._last_sent: Dict[str, EntityState] = {}

    @property
    def tracked_ids(self) -> frozenset:
        """Ids that currently have a baseline."""
        return frozenset(self._last_sent)

    def baseline(self, entity_id: str) -> Optional[EntityState]:
        """Copy of the last state sent for an entity, if any."""
        last = self._last_sent.get(entity_id)
        return last.copy_state() if last is not None else None

    def produce(self, state: EntityState) -> Optional[EntityDelta]:
        """Produce the delta for one entity and advance its baseline.

        Returns:
            The delta to send, or None if the entity is unchanged
        """
        if self.quantize:
            state = quantize_state(state)

        delta = compute_delta(state, self._last_sent.get(state.id))
        if delta is not None:
            self._last_sent[state.id] = state.copy_state()
        return delta

    def produce_collection(self, sources: Iterable[StateSource]) -> Dict[str, Optional[EntityDelta]]:
        """Produce a collection delta for every entity in a category.

        Ids with a baseline that are missing this tick are emitted as None
        (removed) and their baseline is dropped, so an id that comes back
        later is sent in full again.

        Args:
            sources: EntityState values or syncable entities for this tick

        Returns:
            Mapping of id -> delta for changed entities, id -> None for removals
        """
        changes: Dict[str, Optional[EntityDelta]] = {}
        seen = set()

        for source in sources:
            state = resolve_state(source)
            if state is None:
                continue
            if state.id in seen:
                log.warning("Duplicate entity id %s in one tick, keeping the first", state.id)
                continue
            seen.add(state.id)

            delta = self.produce(state)
            if delta is not None:
                changes[state.id] = delta

        for entity_id in list(self._last_sent):
            if entity_id not in seen:
                changes[entity_id] = None
                del self._last_sent[entity_id]

        return changes

    def forget(self, entity_id: str) -> None:
        """Drop an entity's baseline; its next state is sent in full."""
        self._last_sent.pop(entity_id, None)

    def reset(self) -> None:
        """Drop all baselines."""
        self._last_sent.clear()
