"""
Tick Sequencer - ordering guard in front of a DeltaAccumulator.

The accumulator trusts that packets arrive in tick order. The sequencer
enforces it for transports that do not:

- the host is the source of truth and never applies packets
- packets failing boundary validation are logged and dropped
- the first packet is always applied, whatever its tick; after that,
  packets at or behind the last applied tick are dropped as stale
- a forward gap larger than the desync threshold triggers on_desync (the
  caller requests a fresh snapshot) but the packet is still applied
"""

from typing import Any, Callable, Mapping, Optional, Union

from models import DeltaPacket, ReconstructedState

from netsync.config import SyncConfig
from netsync.exceptions import PacketValidationError
from netsync.logging import get_logger

from .accumulator import DeltaAccumulator, parse_packet
from .recorder import NullRecorder, SyncRecorder

log = get_logger('sequencer')

DesyncCallback = Callable[[int, int], None]


class TickSequencer:
    """
    Drops stale or malformed packets and detects tick gaps.

    Args:
        accumulator: Accumulator that receives accepted packets
        desync_tick_gap: Forward gap (in ticks) treated as a desync
        on_desync: Called with (last_tick, new_tick) on a desync
        is_host: True on the authoritative peer; nothing is applied
        recorder: Optional SyncRecorder for dropped packets and desyncs

    Example:
        sequencer = TickSequencer(
            DeltaAccumulator(),
            on_desync=lambda last, new: network.request('snapshot'),
        )
        state = sequencer.receive(raw_packet)
        if state is not None:
            render(state)
    """

    def __init__(
        self,
        accumulator: DeltaAccumulator,
        desync_tick_gap: int = 60,
        on_desync: Optional[DesyncCallback] = None,
        is_host: bool = False,
        recorder: Optional[Union[SyncRecorder, NullRecorder]] = None,
    ):
        self.accumulator = accumulator
        self.desync_tick_gap = desync_tick_gap
        self.on_desync = on_desync
        self.is_host = is_host
        self._recorder = recorder or NullRecorder()

        self._last_tick: Optional[int] = None
        self._dropped_stale = 0
        self._dropped_invalid = 0
        self._desyncs = 0

    @classmethod
    def from_config(
        cls,
        accumulator: DeltaAccumulator,
        config: SyncConfig,
        **kwargs,
    ) -> 'TickSequencer':
        return cls(accumulator, desync_tick_gap=config.desync_tick_gap, **kwargs)

    @property
    def last_tick(self) -> Optional[int]:
        """Last applied tick (None before the first packet)."""
        return self._last_tick

    def receive(self, raw: Union[DeltaPacket, Mapping[str, Any], None]) -> Optional[ReconstructedState]:
        """Validate, order-check and apply one incoming packet.

        Returns:
            The reconstructed state, or None if the packet was not applied
        """
        if self.is_host:
            return None

        if raw is None:
            self._drop_invalid("empty packet")
            return None
        try:
            packet = parse_packet(raw)
        except PacketValidationError as e:
            self._drop_invalid(str(e))
            return None

        last = self._last_tick
        if last is not None and packet.tick <= last:
            self._dropped_stale += 1
            log.trace("Dropping stale packet tick=%d (last=%d)", packet.tick, last)
            return None

        gap = packet.tick - last if last is not None else 0
        if gap > self.desync_tick_gap:
            self._desyncs += 1
            log.warning("Large tick gap: %d ticks (requesting snapshot)", gap)
            self._recorder.log_event('desync', {
                "last_tick": last,
                "tick": packet.tick,
                "gap": gap,
            })
            if self.on_desync is not None:
                self.on_desync(last, packet.tick)

        self._last_tick = packet.tick
        return self.accumulator.apply_delta(packet)

    def reset(self) -> None:
        """Forget ordering state and reconstructed state (rejoin)."""
        self._last_tick = None
        self.accumulator.reset()

    def _drop_invalid(self, reason: str) -> None:
        self._dropped_invalid += 1
        log.error("Invalid packet received: %s", reason)
        self._recorder.log_event('dropped_packet', {"reason": reason})

    @property
    def stats(self) -> dict:
        return {
            "last_tick": self._last_tick,
            "dropped_stale": self._dropped_stale,
            "dropped_invalid": self._dropped_invalid,
            "desyncs": self._desyncs,
        }
