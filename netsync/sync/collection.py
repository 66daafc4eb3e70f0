"""
Keyed-collection diff and merge.

A collection is a mapping of entity id -> record (a dict of wire fields).
A collection delta maps id -> record ("create or update") or id -> None
("remove"); ids absent from the delta are unchanged.

Two merge flavors exist:
- merge_collection_delta replaces whole records
- accumulate_collection_delta shallow-merges incoming fields over the
  existing record, which is what client-side reconstruction needs when
  producers send field-sparse deltas
"""

from typing import Any, Dict, Mapping, MutableMapping, Optional, Union

from models import EntityDelta, NetworkRecord

from .producer import diff_fields

Record = Dict[str, Any]
Change = Union[NetworkRecord, Mapping[str, Any], None]


def _as_record(entity_id: str, change: Union[NetworkRecord, Mapping[str, Any]]) -> Record:
    """Independent dict of wire fields for a model or mapping.

    Raw mappings without an ``id`` take it from their collection key.
    """
    if isinstance(change, NetworkRecord):
        return change.to_fields()
    return EntityDelta.model_validate({'id': entity_id, **change}).to_fields()


def diff_collection(
    current: Mapping[str, Mapping[str, Any]],
    previous: Mapping[str, Mapping[str, Any]],
    partial: bool = False,
) -> Dict[str, Optional[Record]]:
    """Diff two keyed collections.

    Args:
        current: Collection this tick
        previous: Collection last tick
        partial: Send only changed fields (plus ``id``) for existing ids
            instead of the whole record

    Returns:
        id -> record for added or changed entries, id -> None for removals
    """
    diff: Dict[str, Optional[Record]] = {}

    for entity_id, record in current.items():
        before = previous.get(entity_id)
        if before is None:
            diff[entity_id] = dict(record)
            continue
        changed = diff_fields(record, before)
        if not changed:
            continue
        if partial:
            changed['id'] = record.get('id', entity_id)
            diff[entity_id] = changed
        else:
            diff[entity_id] = dict(record)

    for entity_id in previous:
        if entity_id not in current:
            diff[entity_id] = None

    return diff


def diff_flat(current: Mapping[str, Any], previous: Mapping[str, Any]) -> Dict[str, Any]:
    """Keys of a flat mapping whose value is new or changed. Never removes."""
    return diff_fields(current, previous)


def merge_collection_delta(
    target: MutableMapping[str, Record],
    delta: Mapping[str, Change],
) -> None:
    """Apply a collection delta in place, replacing whole records.

    None removes the id (a no-op if it is absent); anything else becomes
    the id's entire record.
    """
    for entity_id, change in delta.items():
        if change is None:
            target.pop(entity_id, None)
        else:
            target[entity_id] = _as_record(entity_id, change)


def accumulate_collection_delta(
    target: MutableMapping[str, Record],
    delta: Mapping[str, Change],
) -> None:
    """Apply a collection delta in place, merging fields into existing records.

    None removes the id (a no-op if it is absent). Otherwise the incoming
    fields are laid over the existing record; fields the change omits keep
    their previous values. A new id starts from an empty record, so fields
    never sent stay absent rather than defaulted.
    """
    for entity_id, change in delta.items():
        if change is None:
            target.pop(entity_id, None)
            continue
        merged = dict(target.get(entity_id, {}))
        merged.update(_as_record(entity_id, change))
        target[entity_id] = merged
