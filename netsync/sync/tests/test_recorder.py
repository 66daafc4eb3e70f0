"""Tests for structured sync recording through the logging sinks."""

import pytest

from models import EntityState
from netsync import logging as netsync_logging
from netsync.logging import FileSink, close_all_sinks, register_sink
from netsync.sync.accumulator import DeltaAccumulator
from netsync.sync.recorder import (
    SYNC_MODULE,
    NullRecorder,
    SyncRecorder,
    create_recorder,
    load_log,
    summarize_log,
)
from netsync.sync.reconcile import Reconciler
from netsync.sync.sequencer import TickSequencer


@pytest.fixture
def sink(tmp_path):
    """FileSink for the sync module, closed after the test."""
    file_sink = FileSink(log_dir=str(tmp_path), session_name="test")
    register_sink(SYNC_MODULE, file_sink)
    yield file_sink
    close_all_sinks()


@pytest.fixture
def sync_disabled(monkeypatch):
    monkeypatch.setitem(netsync_logging._config, 'modules', {})


class TestCreateRecorder:
    """Tests for the recorder factory."""

    def test_disabled_by_default(self, sync_disabled):
        assert isinstance(create_recorder(), NullRecorder)

    def test_enabled_by_module_config(self, monkeypatch, tmp_path):
        monkeypatch.setitem(netsync_logging._config, 'modules', {'sync': {'enabled': True, 'interval': 3}})
        monkeypatch.setitem(netsync_logging._config, 'log_dir', str(tmp_path))
        try:
            recorder = create_recorder(session_name="env")
            assert isinstance(recorder, SyncRecorder)
            assert recorder.log_interval == 3
        finally:
            close_all_sinks()

    def test_force_uses_registered_sink(self, sink, sync_disabled):
        recorder = create_recorder(session_name="test", force=True)
        assert isinstance(recorder, SyncRecorder)
        assert netsync_logging.get_sink(SYNC_MODULE) is sink


class TestSyncRecorder:
    """Tests for what the recorder writes."""

    def test_packets_written_as_jsonl(self, sink):
        recorder = SyncRecorder(session_name="test")
        accumulator = DeltaAccumulator(recorder=recorder)
        accumulator.apply_delta({"tick": 1, "timestamp": 0, "players": {"p1": {"x": 1}}})
        accumulator.apply_delta({"tick": 2, "timestamp": 0, "players": {"p1": None}})
        recorder.close()

        path = recorder.log_path
        sink.close()
        records = load_log(path)

        packets = [r for r in records if r["type"] == "packet"]
        assert [p["tick"] for p in packets] == [1, 2]
        assert packets[0]["counts"] == {"players": 1}
        assert packets[1]["payload"]["players"] == {"p1": None}
        assert records[-1]["type"] == "footer"

    def test_log_interval(self, sink):
        recorder = SyncRecorder(log_interval=2, include_payload=False)
        accumulator = DeltaAccumulator(recorder=recorder)
        for tick in range(1, 5):
            accumulator.apply_delta({"tick": tick, "timestamp": 0})

        assert recorder.stats["total_packets"] == 4
        assert recorder.stats["logged_records"] == 2

    def test_summary_counts_events(self, sink):
        recorder = SyncRecorder(session_name="test")
        sequencer = TickSequencer(DeltaAccumulator(recorder=recorder), recorder=recorder)
        sequencer.receive({"tick": 1, "timestamp": 0})
        sequencer.receive({"tick": 100, "timestamp": 0})
        Reconciler(recorder=recorder).reconcile(
            EntityState(id="e1", type="Enemy", x=0, y=0),
            EntityState(id="e1", type="Enemy", x=50, y=0),
        )
        recorder.close()
        path = recorder.log_path
        sink.close()

        summary = summarize_log(path)
        assert summary["session_name"] == "test"
        assert summary["packets_in"] == 2
        assert summary["desyncs"] == 1
        assert summary["snaps"] == 1
        assert summary["tick_range"] == (1, 100)

    def test_close_is_idempotent(self, sink):
        recorder = SyncRecorder()
        recorder.close()
        recorder.close()
        assert recorder.stats["logged_records"] == 0


class TestNullRecorder:
    """Tests for the no-op recorder."""

    def test_interface(self):
        with NullRecorder() as recorder:
            assert recorder.log_packet('in', None) is False
            recorder.log_event('desync', {})
            assert recorder.log_path is None
            assert recorder.stats == {"enabled": False}
