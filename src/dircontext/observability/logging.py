"""
dircontext: run-scoped structured logging

Purpose
- Write one JSON object per line to ``<log_dir>/<run_id>/dircontext.jsonl``.
- Attach correlation fields (``run_id``, ``command``, ``wave``, ``target_id``)
  bound through ``contextvars`` so worker tasks inherit them.
- Bridge ``structlog`` bound loggers into the same sink.

Functional requirements
- Emitting never blocks: records go through a bounded queue drained by a
  listener thread; records that do not fit are counted and dropped.
- Only one run is active at a time; setting up a new run closes the previous one.
"""

from __future__ import annotations

import atexit
import contextvars
import json
import logging
import logging.handlers
import math
import queue
import threading
import time
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from types import MappingProxyType
from typing import Final

import structlog

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]

CORRELATION_KEYS: Final[tuple[str, ...]] = ("run_id", "command", "wave", "target_id")

# Attribute names every LogRecord carries; anything else came in through ``extra``.
_RECORD_ATTRIBUTES: Final[frozenset[str]] = frozenset(vars(logging.makeLogRecord({}))) | {
    "message",
    "asctime",
    "taskName",
    "correlation",
}

_Correlation = Mapping[str, str]
_CORRELATION: contextvars.ContextVar[_Correlation] = contextvars.ContextVar(
    "dircontext_log_correlation", default=MappingProxyType({})
)

_active_lock = threading.Lock()
_active: StructuredLoggingHandle | None = None
_atexit_hooked = False


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Where and how one run writes its JSON-lines log."""

    run_id: str
    base_log_dir: Path | str = Path(".dircontext/logs")
    logger_name: str = "dircontext"
    level: int | str = "INFO"
    queue_size: int = 4096
    log_filename: str = "dircontext.jsonl"
    log_to_stderr: bool = False


def configure_structlog() -> None:
    """Render ``structlog`` events as stdlib records: event -> message, kwargs -> extra."""
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.render_to_log_kwargs,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )


class _RunQueueHandler(logging.handlers.QueueHandler):
    """Snapshot correlation on the emitting thread; drop instead of blocking."""

    def __init__(self, log_queue: queue.Queue[logging.LogRecord]) -> None:
        super().__init__(log_queue)
        self._drop_lock = threading.Lock()
        self.dropped = 0

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        correlation = _CORRELATION.get()
        if correlation:
            record.correlation = dict(correlation)
        return super().prepare(record)

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            with self._drop_lock:
                self.dropped += 1


class JsonLinesFormatter(logging.Formatter):
    """One compact, key-sorted JSON object per record."""

    def __init__(self, run_id: str) -> None:
        super().__init__()
        self._run_id = run_id

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _utc_iso(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        event.update(self._correlation_for(record))

        extras = {
            key: _jsonable(value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRIBUTES
            and key not in CORRELATION_KEYS
            and not key.startswith("_")
        }
        if extras:
            event["fields"] = extras
        if record.exc_info:
            event["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            event["stack"] = str(record.stack_info)
        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)

    def _correlation_for(self, record: logging.LogRecord) -> dict[str, str]:
        merged = {"run_id": self._run_id}
        captured = getattr(record, "correlation", None)
        if isinstance(captured, Mapping):
            merged.update(
                {k: v.strip() for k, v in captured.items() if isinstance(v, str) and v.strip()}
            )
        # Explicit keyword fields (``logger.info(..., target_id=...)``) win.
        for key in CORRELATION_KEYS:
            value = getattr(record, key, None)
            if isinstance(value, str) and value.strip():
                merged[key] = value.strip()
        return merged


@dataclass(slots=True, eq=False)
class StructuredLoggingHandle:
    """A running log pipeline; shut it down to flush and close the sinks."""

    logger: logging.Logger
    run_id: str
    run_log_dir: Path
    log_path: Path
    _queue: queue.Queue[logging.LogRecord] = field(repr=False)
    _queue_handler: _RunQueueHandler = field(repr=False)
    _sinks: tuple[logging.Handler, ...] = field(repr=False)
    _listener: logging.handlers.QueueListener = field(repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)
    _closed: bool = False

    @property
    def dropped_records(self) -> int:
        return self._queue_handler.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def flush(self, *, timeout_seconds: float = 2.0) -> None:
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        while self._queue.unfinished_tasks and time.monotonic() < deadline:
            time.sleep(0.01)
        for sink in self._sinks:
            sink.flush()

    def shutdown(self, *, timeout_seconds: float = 2.0) -> None:
        with self._lock:
            if self._closed:
                return
            self.flush(timeout_seconds=timeout_seconds)
            self._listener.stop()
            self.logger.removeHandler(self._queue_handler)
            self._queue_handler.close()
            for sink in self._sinks:
                sink.close()
            self._closed = True


def setup_structured_logging(config: LoggingConfig) -> StructuredLoggingHandle:
    """Start the log pipeline for one run and make it the active one."""
    shutdown_logging()

    run_id = _non_empty(config.run_id, "run_id")
    filename = _non_empty(config.log_filename, "log_filename")
    if Path(filename).name != filename:
        raise ValueError("log_filename must not include path separators")
    logger_name = _non_empty(config.logger_name, "logger_name")
    if config.queue_size <= 0:
        raise ValueError("queue_size must be > 0")
    level = parse_log_level(config.level)

    run_log_dir = Path(config.base_log_dir) / run_id
    run_log_dir.mkdir(parents=True, exist_ok=True)
    log_path = run_log_dir / filename

    formatter = JsonLinesFormatter(run_id)
    sinks: list[logging.Handler] = [logging.FileHandler(log_path, encoding="utf-8")]
    if config.log_to_stderr:
        sinks.append(logging.StreamHandler())
    for sink in sinks:
        sink.setLevel(level)
        sink.setFormatter(formatter)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False
    for stale in list(logger.handlers):
        logger.removeHandler(stale)
        stale.close()

    log_queue: queue.Queue[logging.LogRecord] = queue.Queue(maxsize=config.queue_size)
    queue_handler = _RunQueueHandler(log_queue)
    queue_handler.setLevel(level)
    listener = logging.handlers.QueueListener(log_queue, *sinks, respect_handler_level=True)
    listener.start()
    logger.addHandler(queue_handler)
    configure_structlog()

    handle = StructuredLoggingHandle(
        logger=logger,
        run_id=run_id,
        run_log_dir=run_log_dir,
        log_path=log_path,
        _queue=log_queue,
        _queue_handler=queue_handler,
        _sinks=tuple(sinks),
        _listener=listener,
    )
    global _active, _atexit_hooked
    with _active_lock:
        _active = handle
        if not _atexit_hooked:
            atexit.register(shutdown_logging)
            _atexit_hooked = True
    return handle


def get_active_logging_handle() -> StructuredLoggingHandle | None:
    with _active_lock:
        return _active


def flush_logging(
    handle: StructuredLoggingHandle | None = None, *, timeout_seconds: float = 2.0
) -> None:
    target = handle or get_active_logging_handle()
    if target is not None:
        target.flush(timeout_seconds=timeout_seconds)


def shutdown_logging(
    handle: StructuredLoggingHandle | None = None, *, timeout_seconds: float = 2.0
) -> None:
    """Shut down ``handle`` (default: the active run) and forget it if it was active."""
    global _active
    target = handle or get_active_logging_handle()
    if target is None:
        return
    target.shutdown(timeout_seconds=timeout_seconds)
    with _active_lock:
        if _active is target:
            _active = None


def get_correlation_context() -> dict[str, str]:
    return dict(_CORRELATION.get())


def set_correlation_fields(**fields: str | None) -> contextvars.Token[_Correlation]:
    """Bind (or, with ``None``, unbind) correlation fields; returns a reset token."""
    merged = get_correlation_context()
    for key, value in fields.items():
        if value is None:
            merged.pop(key, None)
        else:
            merged[key] = _non_empty(value, f"correlation field {key!r}")
    return _CORRELATION.set(MappingProxyType(merged))


def reset_correlation_fields(token: contextvars.Token[_Correlation]) -> None:
    _CORRELATION.reset(token)


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    token = set_correlation_fields(**fields)
    try:
        yield
    finally:
        reset_correlation_fields(token)


def parse_log_level(value: int | str) -> int:
    """Accept a numeric level or a case-insensitive level name."""
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"level must be int or str, got {type(value).__name__}")
    if isinstance(value, int):
        return value
    resolved = logging.getLevelName(value.strip().upper())
    if not isinstance(resolved, int):
        raise ValueError(f"unsupported logging level {value!r}")
    return resolved


def _non_empty(value: str, label: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"{label} must be a non-empty string")
    return value.strip()


def _utc_iso(epoch_seconds: float) -> str:
    moment = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _jsonable(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, Path):
        return value.as_posix()
    if isinstance(value, Mapping):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    if isinstance(value, (set, frozenset)):
        return sorted((_jsonable(item) for item in value), key=repr)
    return repr(value)


__all__ = [
    "CORRELATION_KEYS",
    "JSONScalar",
    "JSONValue",
    "JsonLinesFormatter",
    "LoggingConfig",
    "StructuredLoggingHandle",
    "configure_structlog",
    "correlation_scope",
    "flush_logging",
    "get_active_logging_handle",
    "get_correlation_context",
    "parse_log_level",
    "reset_correlation_fields",
    "set_correlation_fields",
    "setup_structured_logging",
    "shutdown_logging",
]
