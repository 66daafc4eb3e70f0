"""
Delta Sync Pipeline.

Authoritative side:
1. DeltaSerializer diffs each entity against the last state it sent
2. Only changed fields (or None for removed ids) go into the tick's packet

Client side:
1. TickSequencer drops stale and malformed packets
2. DeltaAccumulator merges packets into a full ReconstructedState
3. Reconciler corrects locally predicted entities against authority

Usage:
    from netsync.sync import DeltaAccumulator, DeltaSerializer, SessionFrame, TickSequencer

    # Host, every tick:
    packet = serializer.serialize(SessionFrame(tick=tick, players=players, enemies=enemies))
    send(packet.to_wire())

    # Client, per received packet:
    state = sequencer.receive(raw_packet)
"""

from .producer import DeltaProducer, compute_delta, quantize_state
from .collection import (
    accumulate_collection_delta,
    diff_collection,
    diff_flat,
    merge_collection_delta,
)
from .recorder import NullRecorder, SyncRecorder, create_recorder
from .accumulator import DeltaAccumulator, parse_packet
from .reconcile import ReconcileResult, Reconciler, ReconciliationPolicy, reconcile
from .sequencer import TickSequencer
from .serializer import DeltaSerializer, SessionFrame

__all__ = [
    'DeltaProducer',
    'compute_delta',
    'quantize_state',
    'accumulate_collection_delta',
    'diff_collection',
    'diff_flat',
    'merge_collection_delta',
    'NullRecorder',
    'SyncRecorder',
    'create_recorder',
    'DeltaAccumulator',
    'parse_packet',
    'ReconcileResult',
    'Reconciler',
    'ReconciliationPolicy',
    'reconcile',
    'TickSequencer',
    'DeltaSerializer',
    'SessionFrame',
]
