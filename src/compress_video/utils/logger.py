"""
Provides structured logging with log levels.

Records are single lines with a UTC timestamp, the level, an event name and
key-value pairs, which keeps them easy to grep and parse. Output goes through
tqdm so records do not tear an active progress bar; an optional log file
receives a copy of every record.
"""
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, TextIO

from tqdm import tqdm

_separator = " | "
_log_file: Optional[TextIO] = None


class LogLevel(Enum):
    """Log level enumeration."""
    TRACE = 0
    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4


_current_level = LogLevel.INFO


def set_log_level(level: LogLevel) -> None:
    """Set the current log level."""
    global _current_level
    _current_level = level


def get_log_level() -> LogLevel:
    """Get the current log level."""
    return _current_level


def open_log_file(path: Path) -> Path:
    """Append every subsequent record to ``path`` as well as the console."""
    global _log_file
    close_log_file()
    path = path.expanduser().resolve()
    path.parent.mkdir(parents=True, exist_ok=True)
    _log_file = open(path, "a", encoding="utf-8", buffering=1)
    return path


def close_log_file() -> None:
    global _log_file
    if _log_file is not None:
        _log_file.close()
        _log_file = None


def _format_kv(data: Dict[str, Any]) -> str:
    """Format key-value pairs for logging."""
    parts = []
    for key, value in data.items():
        if isinstance(value, str):
            # Keep records on a single line.
            escaped = value.replace("\r", "\\r").replace("\n", "\\n")
            escaped = escaped.replace('"', '\\"')
            parts.append(f'{key}="{escaped}"')
        elif value is None:
            parts.append(f'{key}=null')
        elif isinstance(value, bool):
            parts.append(f'{key}={str(value).lower()}')
        else:
            parts.append(f'{key}={value}')
    return _separator.join(parts)


def _write_line(text: str) -> None:
    tqdm.write(text)
    if _log_file is not None:
        _log_file.write(text + "\n")


def _should_log(level: LogLevel) -> bool:
    """Check if a message at the given level should be logged."""
    return level.value >= _current_level.value


def format_record(event: str, level: LogLevel, **kwargs) -> str:
    """Render one record without writing it."""
    timestamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
    header = f"{timestamp}{_separator}[{level.name}]{_separator}{event}"
    if kwargs:
        return f"{header}{_separator}{_format_kv(kwargs)}"
    return header


def log(event: str, level: LogLevel = LogLevel.INFO, **kwargs) -> None:
    """
    Structured logging function.

    Args:
        event: Event name (e.g., 'candidate.skip', 'transcode.complete')
        level: Log level (TRACE, DEBUG, INFO, WARN, ERROR)
        **kwargs: Key-value pairs to log
    """
    if not _should_log(level):
        return
    _write_line(format_record(event, level, **kwargs))


def safe_print(*args, **kwargs) -> None:
    """
    Plain console output that cooperates with progress bars.
    Use log() for records that belong in the log file.
    """
    sep = kwargs.pop("sep", " ")
    tqdm.write(sep.join(str(a) for a in args), **kwargs)
