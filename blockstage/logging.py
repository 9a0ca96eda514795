"""
Blockstage Logging

Module loggers print one line per message, ``[module] LEVEL: message``,
filtered by a default level and optional per-module levels.

Run recording:
    The scheduler emits one record per tick and the event bus one record per
    published event. Records only go somewhere when a sink is registered for
    their module; a RunRecorder collects them into a single JSONL file per
    run so a session can be replayed or inspected afterwards.

Usage:
    from blockstage.logging import get_logger
    log = get_logger('scheduler')
    log.info("Run started")
    log.tick("cat-1", "MOTION_MOVE_STEPS_3", advance=True)

    from blockstage.logging import record_run
    recorder = record_run('runs/')          # scheduler + bus -> runs/<name>.jsonl
    ...
    recorder.close()

Environment:
    BLOCKSTAGE_LOG_LEVEL=DEBUG          # default level
    BLOCKSTAGE_LOG_SCHEDULER=DEBUG      # level for one module
    BLOCKSTAGE_LOG_TICKS=1              # trace every interpreter step
"""

import json
import os
import time
from abc import ABC, abstractmethod
from enum import IntEnum
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple


class LogLevel(IntEnum):
    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    OFF = 100


_LEVEL_NAMES = {
    'DEBUG': LogLevel.DEBUG,
    'INFO': LogLevel.INFO,
    'WARNING': LogLevel.WARNING,
    'WARN': LogLevel.WARNING,
    'ERROR': LogLevel.ERROR,
    'OFF': LogLevel.OFF,
}

# Modules that emit structured records
RECORDED_MODULES: Tuple[str, ...] = ('scheduler', 'bus')


# =============================================================================
# Run records
# =============================================================================

class LogSink(ABC):
    """Destination for structured records."""

    @abstractmethod
    def emit(self, module: str, record: Dict[str, Any]) -> None:
        """Accept one JSON-serializable record from a module."""

    @abstractmethod
    def close(self) -> None:
        """Release whatever the sink holds open."""


class RunRecorder(LogSink):
    """
    Writes the records of one run to ``<directory>/<name>.jsonl``.

    The first line describes the run, every following line is a record
    tagged with its module, and close() appends a summary line with the
    per-module record counts. The file is created on the first record.

    Args:
        directory: Where to put the file (created if missing)
        name: File stem (default: timestamp)
    """

    def __init__(self, directory: str, name: Optional[str] = None):
        self.path = Path(directory) / f"{name or time.strftime('run_%Y%m%d_%H%M%S')}.jsonl"
        self.counts: Dict[str, int] = {}
        self._file = None
        self._closed = False

    def _write(self, line: Dict[str, Any]) -> None:
        self._file.write(json.dumps(line) + "\n")

    def emit(self, module: str, record: Dict[str, Any]) -> None:
        if self._closed:
            return
        if self._file is None:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._file = open(self.path, 'w')
            self._write({'type': 'run', 'started': time.time()})

        self._write({'module': module, **record})
        self.counts[module] = self.counts.get(module, 0) + 1

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._file is not None:
            self._write({'type': 'summary', 'ended': time.time(), 'counts': self.counts})
            self._file.close()
            self._file = None


# module -> sink
_sinks: Dict[str, LogSink] = {}


def register_sink(module: str, sink: LogSink) -> None:
    """Route a module's records to a sink, replacing any earlier one."""
    _sinks[module] = sink


def unregister_sink(sink: LogSink) -> None:
    """Stop routing records to a sink, for every module it was registered on."""
    for module in [m for m, s in _sinks.items() if s is sink]:
        del _sinks[module]


def emit_record(module: str, record: Dict[str, Any]) -> bool:
    """
    Hand a record to the module's sink.

    Returns:
        True if a sink took the record, False if none is registered
    """
    sink = _sinks.get(module)
    if sink is None:
        return False
    sink.emit(module, record)
    return True


def record_run(
    directory: str,
    name: Optional[str] = None,
    modules: Iterable[str] = RECORDED_MODULES,
) -> RunRecorder:
    """Create a RunRecorder and register it for the given modules."""
    recorder = RunRecorder(directory, name)
    for module in modules:
        register_sink(module, recorder)
    return recorder


def close_all_sinks() -> None:
    for sink in set(_sinks.values()):
        sink.close()
    _sinks.clear()


# =============================================================================
# Loggers
# =============================================================================

_config: Dict[str, Any] = {
    'default_level': LogLevel.INFO,
    'module_levels': {},
    'ticks': False,
}


def _level_from_string(name: str) -> LogLevel:
    return _LEVEL_NAMES.get(name.upper(), LogLevel.INFO)


def configure_logging(
    level: str = 'INFO',
    modules: Optional[Dict[str, str]] = None,
    ticks: bool = False,
) -> None:
    """
    Configure the logging system.

    Args:
        level: Default log level for all modules
        modules: Dict of module_name -> level for per-module configuration
        ticks: Enable tracing of every interpreter step
    """
    _config['default_level'] = _level_from_string(level)
    for module, module_level in (modules or {}).items():
        _config['module_levels'][module] = _level_from_string(module_level)
    _config['ticks'] = ticks


def _load_env_config() -> None:
    """Read BLOCKSTAGE_LOG_LEVEL, BLOCKSTAGE_LOG_TICKS and BLOCKSTAGE_LOG_<MODULE>."""
    for key, value in os.environ.items():
        if not key.startswith('BLOCKSTAGE_LOG_'):
            continue
        name = key[len('BLOCKSTAGE_LOG_'):]
        if name == 'LEVEL':
            _config['default_level'] = _level_from_string(value)
        elif name == 'TICKS':
            _config['ticks'] = value.lower() in ('1', 'true', 'yes')
        else:
            _config['module_levels'][name.lower()] = _level_from_string(value)


_load_env_config()


class StageLogger:
    """Logger for one module, with step tracing for the scheduler."""

    def __init__(self, module: str):
        self.module = module

    @property
    def level(self) -> LogLevel:
        return _config['module_levels'].get(self.module, _config['default_level'])

    def _log(self, level: LogLevel, label: str, msg: str, *args) -> None:
        if level < self.level:
            return
        if args:
            try:
                msg = msg % args
            except (TypeError, ValueError):
                msg = f"{msg} {args}"
        print(f"[{self.module}] {label}: {msg}")

    def debug(self, msg: str, *args) -> None:
        self._log(LogLevel.DEBUG, 'DEBUG', msg, *args)

    def info(self, msg: str, *args) -> None:
        self._log(LogLevel.INFO, 'INFO', msg, *args)

    def warning(self, msg: str, *args) -> None:
        self._log(LogLevel.WARNING, 'WARN', msg, *args)

    def error(self, msg: str, *args) -> None:
        self._log(LogLevel.ERROR, 'ERROR', msg, *args)

    def tick(self, actor_id: str, block_id: str, **details: Any) -> None:
        """
        Trace one interpreter step at DEBUG level.

        Silent unless step tracing is on (BLOCKSTAGE_LOG_TICKS=1).
        """
        if not _config['ticks']:
            return
        details_str = ', '.join(f"{k}={v!r}" for k, v in details.items())
        self._log(LogLevel.DEBUG, 'STEP', f"{actor_id} {block_id} {details_str}".rstrip())


@lru_cache(maxsize=64)
def get_logger(module: str) -> StageLogger:
    """Get the cached logger for a module."""
    return StageLogger(module)


def disable_logging() -> None:
    """Silence every logger and step tracing."""
    _config['default_level'] = LogLevel.OFF
    _config['ticks'] = False
