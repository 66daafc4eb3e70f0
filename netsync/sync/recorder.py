"""
Sync Recorder - structured packet history for debugging desyncs.

Records produced and applied packets, reconciliation snaps and desync
events through the netsync.logging sink system (FileSink writes JSONL).

DISABLED BY DEFAULT - Enable via environment variable or programmatic config.

Environment variables (via netsync.logging):
    NETSYNC_LOGGING_SYNC_ENABLED=true
    NETSYNC_LOGGING_SYNC_INTERVAL=5
    NETSYNC_LOG_DIR=./debug_logs
"""

import json
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from models import DeltaPacket, ReconstructedState

from netsync.logging import (
    FileSink,
    create_sink_for_module,
    emit_record,
    get_module_config,
    get_sink,
    register_sink,
)

# Module name for sink registry
SYNC_MODULE = 'sync'


class SyncRecorder:
    """
    Records sync traffic via the central netsync.logging sink system.

    DISABLED BY DEFAULT. Use create_recorder() which respects
    NETSYNC_LOGGING_SYNC_ENABLED.

    Args:
        session_name: Optional name for this session (default: timestamp)
        log_interval: Only record every N packets (default: 1 = every packet)
        include_payload: Whether to include full packet contents

    Example:
        with create_recorder(session_name="desync_hunt") as recorder:
            accumulator = DeltaAccumulator(recorder=recorder)
            ...
    """

    def __init__(
        self,
        session_name: Optional[str] = None,
        log_interval: int = 1,
        include_payload: bool = True,
    ):
        if session_name is None:
            session_name = time.strftime("%Y%m%d_%H%M%S")
        self.session_name = session_name
        self.log_interval = log_interval
        self.include_payload = include_payload

        self._packet_count = 0
        self._logged_count = 0
        self._closed = False

        self._emit({
            "type": "header",
            "session_name": self.session_name,
            "start_time": time.time(),
            "start_time_iso": time.strftime("%Y-%m-%dT%H:%M:%S"),
            "log_interval": self.log_interval,
            "include_payload": self.include_payload,
        })

    def _emit(self, record: Dict[str, Any]) -> bool:
        return emit_record(SYNC_MODULE, record)

    def log_packet(self, direction: str, packet: DeltaPacket) -> bool:
        """Record a packet.

        Args:
            direction: 'out' for produced packets, 'in' for applied packets
            packet: The packet

        Returns:
            True if recorded, False if skipped due to interval
        """
        self._packet_count += 1
        if self._packet_count % self.log_interval != 0:
            return False

        record: Dict[str, Any] = {
            "type": "packet",
            "direction": direction,
            "tick": packet.tick,
            "timestamp": packet.timestamp,
            "log_index": self._logged_count,
            "counts": {
                category: len(entries) for category, entries in packet.collections()
            },
        }
        if self.include_payload:
            record["payload"] = packet.to_wire()

        self._emit(record)
        self._logged_count += 1
        return True

    def log_state(self, state: ReconstructedState) -> None:
        """Record the size of a reconstructed state."""
        self._emit({
            "type": "state",
            "tick": state.tick,
            "entity_count": state.entity_count,
            "meta": state.meta,
            "log_index": self._logged_count,
        })
        self._logged_count += 1

    def log_event(self, event_type: str, data: Dict[str, Any]) -> None:
        """Record a custom event (desync, reconciliation snap, dropped packet)."""
        self._emit({
            "type": event_type,
            "wall_time": time.time(),
            "log_index": self._logged_count,
            **data,
        })
        self._logged_count += 1

    def flush(self) -> None:
        sink = get_sink(SYNC_MODULE)
        if sink:
            sink.flush()

    def close(self) -> None:
        """Write the footer and flush (the shared sink stays open)."""
        if self._closed:
            return

        self._emit({
            "type": "footer",
            "end_time": time.time(),
            "end_time_iso": time.strftime("%Y-%m-%dT%H:%M:%S"),
            "total_packets": self._packet_count,
            "logged_records": self._logged_count,
        })
        self.flush()
        self._closed = True

    @property
    def log_path(self) -> Optional[Path]:
        """Path to the current log file (if using FileSink)."""
        sink = get_sink(SYNC_MODULE)
        if isinstance(sink, FileSink):
            return sink.log_paths.get(SYNC_MODULE)
        return None

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "session_name": self.session_name,
            "total_packets": self._packet_count,
            "logged_records": self._logged_count,
            "log_interval": self.log_interval,
            "log_path": str(self.log_path) if self.log_path else None,
        }

    def __enter__(self) -> 'SyncRecorder':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class NullRecorder:
    """No-op recorder with the SyncRecorder interface."""

    def log_packet(self, direction: str, packet: DeltaPacket) -> bool:
        return False

    def log_state(self, state: ReconstructedState) -> None:
        pass

    def log_event(self, event_type: str, data: Dict[str, Any]) -> None:
        pass

    def flush(self) -> None:
        pass

    def close(self) -> None:
        pass

    @property
    def log_path(self) -> Optional[Path]:
        return None

    @property
    def stats(self) -> Dict[str, Any]:
        return {"enabled": False}

    def __enter__(self) -> 'NullRecorder':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        pass


def create_recorder(
    session_name: Optional[str] = None,
    log_interval: Optional[int] = None,
    include_payload: bool = True,
    force: bool = False,
) -> Union[SyncRecorder, NullRecorder]:
    """Create a recorder, respecting the central logging config.

    Returns a SyncRecorder if NETSYNC_LOGGING_SYNC_ENABLED is set (or force
    is True), otherwise a NullRecorder. Registers a sink for the sync module
    if none is registered yet.
    """
    config = get_module_config(SYNC_MODULE)

    if not (force or config.get('enabled', False)):
        return NullRecorder()

    if get_sink(SYNC_MODULE) is None:
        if config.get('enabled', False):
            sink = create_sink_for_module(SYNC_MODULE, session_name)
        else:
            sink = FileSink(session_name=session_name)
        register_sink(SYNC_MODULE, sink)

    if log_interval is None:
        log_interval = config.get('interval', 1)

    return SyncRecorder(
        session_name=session_name,
        log_interval=log_interval,
        include_payload=include_payload,
    )


def load_log(log_path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Load a JSONL sync log and return its records."""
    records = []
    with open(log_path, 'r') as f:
        for line in f:
            if line.strip():
                records.append(json.loads(line))
    return records


def summarize_log(log_path: Union[str, Path]) -> Dict[str, Any]:
    """Summary statistics for a sync log file."""
    records = load_log(log_path)

    header = next((r for r in records if r.get("type") == "header" and "session_name" in r), {})
    packets = [r for r in records if r.get("type") == "packet"]

    summary: Dict[str, Any] = {
        "session_name": header.get("session_name"),
        "packets_in": sum(1 for p in packets if p.get("direction") == "in"),
        "packets_out": sum(1 for p in packets if p.get("direction") == "out"),
        "desyncs": sum(1 for r in records if r.get("type") == "desync"),
        "snaps": sum(1 for r in records if r.get("type") == "reconcile_snap"),
    }
    if packets:
        summary["tick_range"] = (packets[0].get("tick"), packets[-1].get("tick"))
    return summary
