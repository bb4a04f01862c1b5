"""Observability utilities for notetree.

Provides logging setup, timing metrics and operation tracking for tree
builds, schema matching and template application.
"""
import functools
import logging
import re
import time
import uuid
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from logging.handlers import RotatingFileHandler
from pathlib import Path
from threading import Lock
from typing import Any, Callable, Dict, Optional, TypeVar, Union

from notetree.exceptions import NoteTreeError

logger = logging.getLogger(__name__)

# Root of the package logger hierarchy
ROOT_LOGGER_NAME = "notetree"
LOG_FILE_NAME = "notetree.log"

# Logging format with ISO 8601 timestamps
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"

F = TypeVar('F', bound=Callable[..., Any])


def configure_logging(
    log_dir: Optional[Union[str, Path]] = None,
    level: int = logging.INFO,
    max_bytes: int = 10 * 1024 * 1024,  # 10 MB per file
    backup_count: int = 5,
    console: bool = True,
) -> Optional[Path]:
    """Configure logging for the notetree logger hierarchy.

    Without a log directory only the console handler is installed. With one,
    a rotating file handler writes ``notetree.log`` in that directory.

    Args:
        log_dir: Directory for log files. None disables file logging.
        level: Logging level (default: INFO)
        max_bytes: Maximum size per log file before rotation (default: 10 MB)
        backup_count: Number of rotated files to keep (default: 5)
        console: Also log to console (default: True)

    Returns:
        Path to the log directory, or None when file logging is disabled
    """
    package_logger = logging.getLogger(ROOT_LOGGER_NAME)
    package_logger.setLevel(level)
    formatter = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    log_path: Optional[Path] = None
    if log_dir is not None:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path / LOG_FILE_NAME,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        package_logger.addHandler(file_handler)

    # RotatingFileHandler is a StreamHandler too
    has_console = any(
        type(h) is logging.StreamHandler for h in package_logger.handlers
    )
    if console and not has_console:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        package_logger.addHandler(console_handler)

    package_logger.info(
        "Logging configured: level=%s file=%s",
        logging.getLevelName(level),
        log_path / LOG_FILE_NAME if log_path else None,
    )
    return log_path


def configure_logging_from_config(cfg=None) -> Optional[Path]:
    """Configure logging from a NoteTreeConfig (the global one by default)."""
    if cfg is None:
        from notetree.config import config as cfg

    return configure_logging(log_dir=cfg.log_dir, level=cfg.log_level_value)


def _sanitize_error_message(message: Optional[str], max_length: int = 200) -> Optional[str]:
    """Make an error message safe to keep in metrics.

    Masks the home directory, collapses whitespace and truncates.
    """
    if message is None:
        return None

    home = str(Path.home())
    if home and home != "/":
        message = message.replace(home, "~")

    message = re.sub(r"\s+", " ", message).strip()

    if len(message) > max_length:
        message = message[: max_length - 3] + "..."
    return message


def _error_code(error: BaseException) -> str:
    """Code name of a notetree error, class name of anything else."""
    if isinstance(error, NoteTreeError):
        return error.code.name
    return type(error).__name__


@dataclass
class OperationMetrics:
    """Timing and failures of one operation type."""
    count: int = 0
    error_count: int = 0
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    last_error: Optional[str] = None
    # failures per error code, e.g. {"MISSING_PARENT": 2}
    error_codes: Dict[str, int] = field(default_factory=dict)


class MetricsCollector:
    """Thread-safe in-memory metrics for builds, matches and template runs."""

    def __init__(self):
        self._metrics: Dict[str, OperationMetrics] = defaultdict(OperationMetrics)
        self._lock = Lock()

    def record_operation(
        self,
        operation: str,
        duration_ms: float,
        error: Optional[BaseException] = None,
    ) -> None:
        """Record one run of ``operation``; ``error`` is set when it failed."""
        with self._lock:
            m = self._metrics[operation]
            m.count += 1
            m.total_duration_ms += duration_ms
            m.max_duration_ms = max(m.max_duration_ms, duration_ms)

            if error is not None:
                m.error_count += 1
                m.last_error = _sanitize_error_message(str(error))
                code = _error_code(error)
                m.error_codes[code] = m.error_codes.get(code, 0) + 1

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Snapshot of every operation, keyed by operation name."""
        with self._lock:
            return {
                op: {
                    'count': m.count,
                    'success_count': m.count - m.error_count,
                    'error_count': m.error_count,
                    'avg_duration_ms': round(m.total_duration_ms / m.count, 2) if m.count else 0,
                    'max_duration_ms': round(m.max_duration_ms, 2),
                    'last_error': m.last_error,
                    'error_codes': dict(m.error_codes),
                }
                for op, m in self._metrics.items()
            }

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()


# Global metrics collector instance
metrics = MetricsCollector()


@contextmanager
def timed_operation(operation: str, **context):
    """Time a block, log START/END at debug level and record metrics.

    Yields:
        A dict the block can fill with result details (e.g. ``node_count``);
        they are appended to the END line.

    Example:
        with timed_operation('build', records=len(records)) as op:
            tree = builder.build_notes(records)
            op['node_count'] = len(tree)
    """
    correlation_id = uuid.uuid4().hex[:8]
    result_info: Dict[str, Any] = {'correlation_id': correlation_id}
    logger.debug(
        "[%s] START %s (%s)",
        correlation_id,
        operation,
        ', '.join(f'{k}={v}' for k, v in context.items()),
    )

    start = time.perf_counter()
    error: Optional[BaseException] = None
    try:
        yield result_info
    except Exception as e:
        error = e
        raise
    finally:
        duration_ms = (time.perf_counter() - start) * 1000
        metrics.record_operation(operation, duration_ms, error)
        logger.debug(
            "[%s] END %s (%.2fms) [%s] %s",
            correlation_id,
            operation,
            duration_ms,
            'OK' if error is None else f'{_error_code(error)}: {error}',
            ', '.join(f'{k}={v}' for k, v in result_info.items() if k != 'correlation_id'),
        )


def traced(operation_name: Optional[str] = None) -> Callable[[F], F]:
    """Run the decorated function inside ``timed_operation``.

    Trees and lists report their size, nodes report their id.

    Example:
        @traced('build_schemas')
        def build_schemas(self, records):
            ...
    """
    def decorator(func: F) -> F:
        op_name = operation_name or func.__name__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            with timed_operation(op_name) as op:
                result = func(*args, **kwargs)
                if hasattr(result, '__len__'):
                    op['size'] = len(result)
                elif hasattr(result, 'id'):
                    op['result_id'] = result.id
                return result

        return wrapper  # type: ignore
    return decorator


class StructuredLogger:
    """Component logger that appends ``key=value`` fields to each message."""

    def __init__(self, component: str):
        self._logger = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")
        self._component = component

    def _format_message(self, msg: str, **fields) -> str:
        if fields:
            field_str = ' '.join(f'{k}={v}' for k, v in fields.items())
            return f"[{self._component}] {msg} | {field_str}"
        return f"[{self._component}] {msg}"

    def info(self, msg: str, **fields) -> None:
        self._logger.info(self._format_message(msg, **fields))

    def warning(self, msg: str, **fields) -> None:
        self._logger.warning(self._format_message(msg, **fields))


def get_logger(component: str) -> StructuredLogger:
    """Structured logger for ``component`` (e.g. 'tree_builder', 'hierarchy')."""
    return StructuredLogger(component)
