from __future__ import annotations

import collections
import logging
import sys
import warnings
from dataclasses import dataclass
from typing import Deque, List, Optional

import structlog

LOG_FORMAT = "%(message)s"


@dataclass(frozen=True)
class LogEntry:
    logger_name: str
    level: int
    message: str
    created: float

    @property
    def level_name(self) -> str:
        return logging.getLevelName(self.level)


class LogBuffer(logging.Handler):
    """
    Logging handler that keeps formatted records in memory.

    Used by embedders (and tests) that want to show what the engine did,
    e.g. which hunks needed fuzzy matching, without reading log files.
    """

    def __init__(self, max_entries: Optional[int] = None) -> None:
        super().__init__()
        self._entries: Deque[LogEntry] = collections.deque(maxlen=max_entries)

    def emit(self, record: logging.LogRecord) -> None:
        self._entries.append(
            LogEntry(
                logger_name=record.name,
                level=record.levelno,
                message=record.getMessage(),
                created=record.created,
            )
        )

    def entries(self, min_level: int = logging.NOTSET) -> List[LogEntry]:
        return [e for e in self._entries if e.level >= min_level]

    def messages(self, min_level: int = logging.NOTSET) -> List[str]:
        return [e.message for e in self.entries(min_level)]


_log_buffer: Optional[LogBuffer] = None


def _showwarning(
    message: Warning | str,
    category: type[Warning],
    filename: str,
    lineno: int,
    file: object | None = None,
    line: str | None = None,
) -> None:
    text = warnings.formatwarning(message, category, filename, lineno, line)
    logging.getLogger("py.warnings").warning(text.strip())


def capture_logs(max_entries: Optional[int] = None) -> LogBuffer:
    """
    Attach the shared LogBuffer to the root logger and route ``warnings``
    into logging. Later calls return the buffer installed first.
    """
    global _log_buffer
    if _log_buffer is None:
        _log_buffer = LogBuffer(max_entries=max_entries)

    root_logger = logging.getLogger()
    if _log_buffer not in root_logger.handlers:
        root_logger.addHandler(_log_buffer)
    warnings.showwarning = _showwarning
    return _log_buffer


def get_log_buffer() -> Optional[LogBuffer]:
    return _log_buffer


class _StderrHandler(logging.StreamHandler):
    # Resolves sys.stderr on every emit so swapped streams are honoured.
    def __init__(self) -> None:
        logging.Handler.__init__(self)

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr


_output_handler: Optional[logging.Handler] = None


def configure_logging(level: str = "info", log_file: Optional[str] = None) -> None:
    """Set the root level and route records to ``log_file`` or stderr."""
    global _output_handler
    handler: logging.Handler
    if log_file:
        handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    else:
        handler = _StderrHandler()
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    if _output_handler is not None:
        root_logger.removeHandler(_output_handler)
        _output_handler.close()
    root_logger.addHandler(handler)
    _output_handler = handler


structlog.configure(
    wrapper_class=structlog.make_filtering_bound_logger(logging.NOTSET),
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.dev.set_exc_info,
        structlog.processors.TimeStamper(fmt="%Y-%m-%d %H:%M:%S", utc=False),
        structlog.dev.ConsoleRenderer(colors=False),
    ],
)

logger: structlog.BoundLogger = structlog.get_logger("patchcraft")
