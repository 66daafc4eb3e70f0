"""
Delta Serializer - authoritative-side packet assembly.

Turns the full authoritative frame for one tick into a DeltaPacket: one
DeltaProducer per category keeps that category's baselines, and meta is
diffed as a flat mapping. Unchanged categories are left out of the packet.
"""

import copy
import time
from dataclasses import dataclass, field
from itertools import islice
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from models import CATEGORIES, DeltaPacket

from netsync.config import SyncConfig
from netsync.logging import get_logger

from .collection import diff_flat
from .producer import DeltaProducer, StateSource
from .recorder import NullRecorder, SyncRecorder

log = get_logger('serializer')


def epoch_millis() -> int:
    return int(time.time() * 1000)


@dataclass
class SessionFrame:
    """Full authoritative state for one tick.

    Category entries may be EntityState values or syncable entities; an
    entity whose get_network_state() returns None is skipped.
    """
    tick: int
    players: List[StateSource] = field(default_factory=list)
    enemies: List[StateSource] = field(default_factory=list)
    projectiles: List[StateSource] = field(default_factory=list)
    walls: List[StateSource] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)


class DeltaSerializer:
    """
    Produces one DeltaPacket per tick from full authoritative frames.

    Each instance keeps its own baselines, so a host can run one
    serializer per session (or per client that needs its own baseline).

    Args:
        config: Sync configuration (quantization and per-tick caps)
        clock: Returns epoch milliseconds for the packet timestamp
        recorder: Optional SyncRecorder for produced packets
    """

    def __init__(
        self,
        config: Optional[SyncConfig] = None,
        clock: Callable[[], int] = epoch_millis,
        recorder: Optional[Union[SyncRecorder, NullRecorder]] = None,
    ):
        self.config = config or SyncConfig()
        self._clock = clock
        self._recorder = recorder or NullRecorder()
        self._producers: Dict[str, DeltaProducer] = {
            category: DeltaProducer(quantize=self.config.quantize_positions)
            for category in CATEGORIES
        }
        self._last_meta: Dict[str, Any] = {}

    def producer(self, category: str) -> DeltaProducer:
        """The producer holding a category's baselines."""
        return self._producers[category]

    def _capped(self, category: str, sources: Iterable[StateSource]) -> Iterable[StateSource]:
        limit = {
            'enemies': self.config.max_enemies,
            'projectiles': self.config.max_projectiles,
        }.get(category)
        if limit is None:
            return sources
        return islice(sources, limit)

    def serialize(self, frame: SessionFrame) -> DeltaPacket:
        """Build the packet describing what changed since the last frame."""
        data: Dict[str, Any] = {'tick': frame.tick, 'timestamp': self._clock()}

        for category in CATEGORIES:
            sources = self._capped(category, getattr(frame, category))
            changes = self._producers[category].produce_collection(sources)
            if changes:
                data[category] = changes

        meta_changes = diff_flat(frame.meta, self._last_meta)
        if meta_changes:
            data['meta'] = copy.deepcopy(meta_changes)
        self._last_meta = copy.deepcopy(frame.meta)

        packet = DeltaPacket.model_validate(data)
        log.packet('out', packet.tick, ' '.join(
            f"{category}={len(entries)}" for category, entries in packet.collections()
        ))
        self._recorder.log_packet('out', packet)
        return packet

    def reset(self) -> None:
        """Drop every baseline; the next packet is a full snapshot."""
        for producer in self._producers.values():
            producer.reset()
        self._last_meta = {}
        log.debug("Serializer baselines reset")
