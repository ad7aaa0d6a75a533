"""
Structured logging configuration for the batch executor

Provides centralized logging with run context (run id, batch, item, attempt)
and optional JSON formatting for production environments.
"""
import logging
import logging.handlers
import sys
import json
from pathlib import Path
from typing import Optional
from datetime import datetime, timezone
from contextvars import ContextVar


# Context variables for adding metadata to all logs. Each run executes in its
# own asyncio task, which gets its own copy of these.
current_run_id: ContextVar[Optional[str]] = ContextVar('current_run_id', default=None)
current_batch: ContextVar[Optional[int]] = ContextVar('current_batch', default=None)
current_item: ContextVar[Optional[str]] = ContextVar('current_item', default=None)
current_attempt: ContextVar[Optional[int]] = ContextVar('current_attempt', default=None)


class ContextFilter(logging.Filter):
    """
    Adds context information to log records

    Injects run_id, batch, item_id and attempt into every log record.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        """Add context to log record"""
        record.run_id = current_run_id.get()
        record.batch = current_batch.get()
        record.item_id = current_item.get()
        record.attempt = current_attempt.get()
        return True


class JSONFormatter(logging.Formatter):
    """
    Formats log records as JSON for structured logging

    Useful for production environments and log aggregation systems.
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat().replace('+00:00', 'Z'),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if getattr(record, 'run_id', None):
            log_data['run_id'] = record.run_id

        if getattr(record, 'batch', None) is not None:
            log_data['batch'] = record.batch

        if getattr(record, 'item_id', None):
            log_data['item_id'] = record.item_id

        if getattr(record, 'attempt', None) is not None:
            log_data['attempt'] = record.attempt

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        # Extra fields passed via logger.*(..., extra={...})
        if hasattr(record, 'delay'):
            log_data['delay'] = record.delay

        if hasattr(record, 'progress'):
            log_data['progress'] = record.progress

        return json.dumps(log_data, default=str)


class ColoredFormatter(logging.Formatter):
    """
    Formats log records with colors for console output

    Makes logs more readable during development.
    """

    # ANSI color codes
    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33m',    # Yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[35m',   # Magenta
        'RESET': '\033[0m',       # Reset
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors"""
        levelname = record.levelname
        if levelname in self.COLORS:
            record.levelname = (
                f"{self.COLORS[levelname]}{levelname}{self.COLORS['RESET']}"
            )

        context_parts = []
        if getattr(record, 'run_id', None):
            context_parts.append(f"run={record.run_id}")

        if getattr(record, 'batch', None) is not None:
            context_parts.append(f"batch={record.batch}")

        if getattr(record, 'item_id', None):
            context_parts.append(f"item={record.item_id}")

        if getattr(record, 'attempt', None) is not None:
            context_parts.append(f"attempt={record.attempt}")

        context_str = f" [{', '.join(context_parts)}]" if context_parts else ""

        try:
            formatted = super().format(record)
        finally:
            record.levelname = levelname

        if context_str:
            formatted = f"{formatted}{context_str}"

        return formatted


def setup_logging(
    level: str = "INFO",
    format_type: str = "colored",
    log_file: Optional[Path] = None,
    enable_file_logging: bool = False,
) -> None:
    """
    Setup structured logging for the batch executor

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_type: Formatter type ("colored", "json", "simple")
        log_file: Path to log file (if enable_file_logging=True)
        enable_file_logging: Whether to write logs to file
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(getattr(logging, level.upper()))

    context_filter = ContextFilter()
    console_handler.addFilter(context_filter)

    if format_type == "json":
        formatter = JSONFormatter()
    elif format_type == "colored":
        formatter = ColoredFormatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
    else:  # simple
        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if enable_file_logging:
        if log_file is None:
            log_file = Path("logs/batch-executor.log")

        log_file.parent.mkdir(parents=True, exist_ok=True)

        # 10 MB max, 5 backups
        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
        )
        file_handler.setLevel(logging.DEBUG)  # Always DEBUG for file
        file_handler.addFilter(context_filter)

        # File logs are always JSON
        file_handler.setFormatter(JSONFormatter())
        root_logger.addHandler(file_handler)


def set_context(
    run_id: Optional[str] = None,
    batch: Optional[int] = None,
    item_id: Optional[str] = None,
    attempt: Optional[int] = None,
) -> None:
    """
    Set logging context for the current task

    Args:
        run_id: Run identifier
        batch: Current batch index
        item_id: Item being processed
        attempt: Attempt number for the current item (1-based)
    """
    if run_id is not None:
        current_run_id.set(run_id)

    if batch is not None:
        current_batch.set(batch)

    if item_id is not None:
        current_item.set(item_id)

    if attempt is not None:
        current_attempt.set(attempt)


def clear_item_context() -> None:
    """Clear per-item context between items"""
    current_item.set(None)
    current_attempt.set(None)


def clear_context() -> None:
    """Clear all logging context"""
    current_run_id.set(None)
    current_batch.set(None)
    current_item.set(None)
    current_attempt.set(None)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a module

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
