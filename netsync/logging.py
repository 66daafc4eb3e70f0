"""
netsync Logging

Console logging with per-module levels, an opt-in trace line for every
packet crossing the sync boundary, and structured JSONL records for
replaying a session after a desync.

Usage:
    from netsync.logging import get_logger

    log = get_logger('sequencer')
    log.warning("Large tick gap: %d ticks", gap)
    log.packet('in', tick, "players=2")     # only with packet tracing on

    from netsync.logging import emit_record
    emit_record('sync', {'type': 'desync', 'tick': 120})

Environment:
    NETSYNC_LOG_LEVEL=DEBUG          default level for every module
    NETSYNC_LOG_<MODULE>=TRACE       level for one module (NETSYNC_LOG_ACCUMULATOR)
    NETSYNC_LOG_PACKETS=1            trace every packet produced or applied
    NETSYNC_LOG_DIR=./sync_logs      where JSONL records are written
    NETSYNC_LOGGING_<MODULE>_<KEY>   structured-record settings per module,
                                     e.g. NETSYNC_LOGGING_SYNC_ENABLED=true
"""

import json
import os
import sys
import time
import traceback
from abc import ABC, abstractmethod
from enum import IntEnum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, IO, List, Optional


class LogLevel(IntEnum):
    TRACE = 5
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50
    OFF = 100


# Short labels printed in front of each message
_LABELS = {
    LogLevel.TRACE: 'TRACE',
    LogLevel.DEBUG: 'DEBUG',
    LogLevel.INFO: 'INFO',
    LogLevel.WARNING: 'WARN',
    LogLevel.ERROR: 'ERROR',
    LogLevel.CRITICAL: 'CRIT',
}

_ENV_PREFIX = 'NETSYNC_LOG_'
_ENV_MODULE_PREFIX = 'NETSYNC_LOGGING_'
_ENV_RESERVED = {'LEVEL', 'PACKETS', 'DIR'}

# Process-wide settings; mutated by configure_logging() and the environment
_config: Dict[str, Any] = {
    'default_level': LogLevel.INFO,
    'module_levels': {},
    'packets': False,
    'log_dir': None,
    'modules': {},
}


def parse_level(name: str, fallback: LogLevel = LogLevel.INFO) -> LogLevel:
    """Level from its name; WARN is accepted for WARNING."""
    name = name.strip().upper()
    if name == 'WARN':
        name = 'WARNING'
    return LogLevel.__members__.get(name, fallback)


# =============================================================================
# Structured records
# =============================================================================

class LogSink(ABC):
    """Destination for structured (dict) records, keyed by module."""

    @abstractmethod
    def emit(self, module: str, record: Dict[str, Any]) -> None:
        ...

    def flush(self) -> None:
        pass

    @abstractmethod
    def close(self) -> None:
        ...

    def __enter__(self) -> 'LogSink':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class FileSink(LogSink):
    """
    One JSONL file per module: ``<log_dir>/<session>_<module>.jsonl``.

    Files are opened on the first record for a module and framed by a
    header and a footer record so a truncated log is easy to spot.

    Args:
        log_dir: Target directory (default: get_log_dir(), resolved lazily)
        session_name: File name prefix (default: start timestamp)
    """

    def __init__(self, log_dir: Optional[str] = None, session_name: Optional[str] = None):
        self.session_name = session_name or time.strftime("%Y%m%d_%H%M%S")
        self._log_dir = Path(log_dir) if log_dir else None
        self._handles: Dict[str, IO[str]] = {}

    @property
    def log_dir(self) -> Path:
        if self._log_dir is None:
            self._log_dir = Path(get_log_dir())
        return self._log_dir

    def path_for(self, module: str) -> Path:
        return self.log_dir / f"{self.session_name}_{module}.jsonl"

    def _write(self, handle: IO[str], record: Dict[str, Any]) -> None:
        handle.write(json.dumps(record) + "\n")

    def _open(self, module: str) -> IO[str]:
        handle = self._handles.get(module)
        if handle is None:
            self.log_dir.mkdir(parents=True, exist_ok=True)
            handle = open(self.path_for(module), 'a')
            self._handles[module] = handle
            self._write(handle, {
                "type": "header",
                "module": module,
                "session_name": self.session_name,
                "start_time": time.time(),
            })
        return handle

    def emit(self, module: str, record: Dict[str, Any]) -> None:
        if 'wall_time' not in record:
            record = {**record, 'wall_time': time.time()}
        self._write(self._open(module), record)

    def flush(self) -> None:
        for handle in self._handles.values():
            handle.flush()

    def close(self) -> None:
        while self._handles:
            module, handle = self._handles.popitem()
            self._write(handle, {"type": "footer", "module": module, "end_time": time.time()})
            handle.close()

    @property
    def log_paths(self) -> Dict[str, Path]:
        """Files written so far, by module (open files only)."""
        return {module: self.path_for(module) for module in self._handles}


class NullSink(LogSink):
    """Accepts records and drops them."""

    def emit(self, module: str, record: Dict[str, Any]) -> None:
        pass

    def close(self) -> None:
        pass


_sinks: Dict[str, LogSink] = {}
_default_sink: Optional[LogSink] = None


def register_sink(module: str, sink: LogSink) -> None:
    _sinks[module] = sink


def set_default_sink(sink: Optional[LogSink]) -> None:
    """Sink used by modules that have none registered."""
    global _default_sink
    _default_sink = sink


def get_sink(module: str) -> Optional[LogSink]:
    return _sinks.get(module, _default_sink)


def emit_record(module: str, record: Dict[str, Any]) -> bool:
    """Send a record to the module's sink.

    Returns:
        False if the module has no sink (the record is dropped)
    """
    sink = get_sink(module)
    if sink is None:
        return False
    sink.emit(module, record)
    return True


def close_all_sinks() -> None:
    """Close and unregister every sink, including the default."""
    global _default_sink
    sinks: List[LogSink] = list(_sinks.values())
    if _default_sink is not None:
        sinks.append(_default_sink)
    _sinks.clear()
    _default_sink = None
    for sink in sinks:
        sink.close()


def create_sink_for_module(module: str, session_name: Optional[str] = None) -> LogSink:
    """FileSink if NETSYNC_LOGGING_<MODULE>_ENABLED is set, else NullSink."""
    if get_module_config(module).get('enabled', False):
        return FileSink(session_name=session_name)
    return NullSink()


# =============================================================================
# Configuration
# =============================================================================

def get_log_dir() -> str:
    """Directory for JSONL records.

    The configured log_dir wins, then NETSYNC_LOG_DIR, then the platform's
    user data directory (``.../netsync/logs``).
    """
    configured = _config.get('log_dir') or os.environ.get('NETSYNC_LOG_DIR')
    if configured:
        return str(Path(configured).expanduser())

    home = Path.home()
    if sys.platform == 'darwin':
        base = home / 'Library' / 'Application Support'
    elif sys.platform == 'win32':
        base = Path(os.environ.get('APPDATA', str(home)))
    else:
        base = Path(os.environ.get('XDG_DATA_HOME', str(home / '.local' / 'share')))
    return str(base / 'netsync' / 'logs')


def get_module_config(module: str) -> Dict[str, Any]:
    """Structured-record settings for a module ({} if none)."""
    return _config['modules'].get(module.lower(), {})


def _parse_env_value(value: str) -> Any:
    """Coerce an environment string to bool, int or float where it looks like one."""
    flag = value.strip().lower()
    if flag in ('true', 'yes', 'on', '1'):
        return True
    if flag in ('false', 'no', 'off', '0'):
        return False
    for convert in (int, float):
        try:
            return convert(value)
        except ValueError:
            continue
    return value


def configure_logging(
    level: str = 'INFO',
    modules: Optional[Dict[str, str]] = None,
    packets: bool = False,
    log_dir: Optional[str] = None,
) -> None:
    """
    Set levels and tracing programmatically.

    Args:
        level: Default level name
        modules: module name -> level name overrides
        packets: Trace every packet in and out
        log_dir: Directory for FileSink output
    """
    _config['default_level'] = parse_level(level)
    for module, module_level in (modules or {}).items():
        _config['module_levels'][module.lower()] = parse_level(module_level)
    _config['packets'] = packets
    if log_dir is not None:
        _config['log_dir'] = log_dir


def _load_env_config() -> None:
    env = os.environ

    if 'NETSYNC_LOG_LEVEL' in env:
        _config['default_level'] = parse_level(env['NETSYNC_LOG_LEVEL'])
    if 'NETSYNC_LOG_DIR' in env:
        _config['log_dir'] = env['NETSYNC_LOG_DIR']
    _config['packets'] = _parse_env_value(env.get('NETSYNC_LOG_PACKETS', 'false')) is True

    for key, value in env.items():
        if key.startswith(_ENV_MODULE_PREFIX):
            module, _, setting = key[len(_ENV_MODULE_PREFIX):].lower().partition('_')
            if not (module and setting):
                continue
            node = _config['modules'].setdefault(module, {})
            *parents, leaf = setting.split('_')
            for part in parents:
                node = node.setdefault(part, {})
            node[leaf] = _parse_env_value(value)
        elif key.startswith(_ENV_PREFIX):
            module = key[len(_ENV_PREFIX):]
            if module not in _ENV_RESERVED:
                _config['module_levels'][module.lower()] = parse_level(value)


_load_env_config()


# =============================================================================
# Loggers
# =============================================================================

class NetSyncLogger:
    """Console logger for one module, plus packet tracing."""

    def __init__(self, module: str):
        self.module = module
        self._key = module.lower().replace('.', '_')

    @property
    def level(self) -> LogLevel:
        return _config['module_levels'].get(self._key, _config['default_level'])

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self.level

    def _log(self, level: LogLevel, msg: str, *args, label: Optional[str] = None) -> None:
        if not self.is_enabled_for(level):
            return
        if args:
            try:
                msg = msg % args
            except (TypeError, ValueError):
                msg = f"{msg} {args}"
        print(f"[{self.module}] {label or _LABELS[level]}: {msg}")

    def trace(self, msg: str, *args) -> None:
        self._log(LogLevel.TRACE, msg, *args)

    def debug(self, msg: str, *args) -> None:
        self._log(LogLevel.DEBUG, msg, *args)

    def info(self, msg: str, *args) -> None:
        self._log(LogLevel.INFO, msg, *args)

    def warning(self, msg: str, *args) -> None:
        self._log(LogLevel.WARNING, msg, *args)

    def error(self, msg: str, *args) -> None:
        self._log(LogLevel.ERROR, msg, *args)

    def critical(self, msg: str, *args) -> None:
        self._log(LogLevel.CRITICAL, msg, *args)

    def exception(self, msg: str, *args) -> None:
        """Log at ERROR followed by the traceback being handled."""
        self._log(LogLevel.ERROR, msg, *args)
        if sys.exc_info()[0] is not None:
            for line in traceback.format_exc().rstrip().splitlines():
                self._log(LogLevel.ERROR, line, label='TB')

    def packet(self, direction: str, tick: int, summary: str = '') -> None:
        """
        One line per packet, when packet tracing is on.

        Args:
            direction: 'in' (applied) or 'out' (produced)
            tick: Packet tick
            summary: Short content summary, e.g. "players=2 meta=1"
        """
        if not _config['packets']:
            return
        arrow = '←' if direction == 'in' else '→'
        self._log(LogLevel.DEBUG, f"tick={tick} {summary}".rstrip(), label=f'PKT{arrow}')


@lru_cache(maxsize=64)
def get_logger(module: str) -> NetSyncLogger:
    """Shared logger for a module (cached per name)."""
    return NetSyncLogger(module)


def enable_all_logging() -> None:
    """DEBUG everywhere, with packet tracing."""
    configure_logging(level='DEBUG', packets=True)


def disable_logging() -> None:
    _config['default_level'] = LogLevel.OFF
    _config['packets'] = False
