"""
Delta Accumulator - client-side reconstruction of full state from deltas.

The accumulator owns four keyed collections (players, enemies, projectiles,
walls) and a flat meta mapping. Each applied packet is merged in:

- collection entries: None deletes the id, anything else is shallow-merged
  over the existing record (created if absent)
- meta: key-by-key overwrite; meta keys are never removed

Every call returns a ReconstructedState holding deep copies, so callers can
never reach the accumulator's storage.

Precondition: packets arrive in non-decreasing tick order. The accumulator
does not reorder or discard stale packets; wrap it in a TickSequencer when
the transport does not guarantee ordering.
"""

import copy
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import ValidationError

from models import CATEGORIES, DeltaPacket, ReconstructedState

from netsync.exceptions import PacketValidationError
from netsync.logging import get_logger

from .collection import Record, accumulate_collection_delta
from .recorder import NullRecorder, SyncRecorder

log = get_logger('accumulator')


def parse_packet(raw: Union[DeltaPacket, Mapping[str, Any]]) -> DeltaPacket:
    """Validate a raw packet at the network boundary.

    Raises:
        PacketValidationError: If the packet is malformed
    """
    if isinstance(raw, DeltaPacket):
        return raw
    try:
        return DeltaPacket.model_validate(raw)
    except ValidationError as e:
        raise PacketValidationError(str(e)) from e


class DeltaAccumulator:
    """
    Rebuilds the authoritative state from a stream of delta packets.

    Args:
        recorder: Optional SyncRecorder for packet history

    Example:
        accumulator = DeltaAccumulator()

        # For every packet received (in tick order):
        state = accumulator.apply_delta(packet)
        render(state.players, state.enemies)
    """

    def __init__(self, recorder: Optional[Union[SyncRecorder, NullRecorder]] = None):
        self._recorder = recorder or NullRecorder()
        self._collections: Dict[str, Dict[str, Record]] = {c: {} for c in CATEGORIES}
        self._meta: Dict[str, Any] = {}
        self._last_tick: Optional[int] = None
        self._last_timestamp: Optional[int] = None
        self._packets_applied = 0

    @property
    def last_tick(self) -> Optional[int]:
        """Tick of the most recently applied packet."""
        return self._last_tick

    @property
    def packets_applied(self) -> int:
        return self._packets_applied

    def apply_delta(self, packet: Union[DeltaPacket, Mapping[str, Any]]) -> ReconstructedState:
        """Merge one packet into the accumulated state.

        Missing categories or meta mean no change this tick. Removing an id
        that is not present is a no-op.

        Args:
            packet: A DeltaPacket, or a raw mapping validated via parse_packet

        Returns:
            Independent snapshot of the full reconstructed state
        """
        packet = parse_packet(packet)

        for category, entries in packet.collections():
            accumulate_collection_delta(self._collections[category], entries)

        if packet.meta:
            self._meta.update(copy.deepcopy(packet.meta))

        self._last_tick = packet.tick
        self._last_timestamp = packet.timestamp
        self._packets_applied += 1

        log.packet('in', packet.tick, self._summarize(packet))
        self._recorder.log_packet('in', packet)

        return self.snapshot()

    def snapshot(self) -> ReconstructedState:
        """Independent copy of the current full state.

        ``tick`` and ``timestamp`` are those of the last applied packet
        (None before the first).
        """
        return ReconstructedState(
            tick=self._last_tick,
            timestamp=self._last_timestamp,
            meta=copy.deepcopy(self._meta),
            **{c: copy.deepcopy(self._collections[c]) for c in CATEGORIES},
        )

    def reset(self) -> None:
        """Drop all accumulated state (e.g. when rejoining a session)."""
        for collection in self._collections.values():
            collection.clear()
        self._meta.clear()
        self._last_tick = None
        self._last_timestamp = None
        self._packets_applied = 0
        log.debug("Accumulated state reset")

    @staticmethod
    def _summarize(packet: DeltaPacket) -> str:
        parts = [f"{category}={len(entries)}" for category, entries in packet.collections()]
        if packet.meta:
            parts.append(f"meta={len(packet.meta)}")
        return ' '.join(parts)
