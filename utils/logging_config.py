"""
Logging configuration for the image studio API.
Console output with level colouring, optional JSON file output and a timing decorator.
"""
import logging
import logging.handlers
import json
import time
import os
import sys
import asyncio
from datetime import datetime, timezone
from typing import Optional
from contextlib import contextmanager
from functools import wraps

SLOW_OPERATION_SECONDS = 2.0


class ColoredFormatter(logging.Formatter):
    """Formatter with color coding for different log levels."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record):
        original = record.levelname
        color = self.COLORS.get(original, '')
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


class StructuredFormatter(logging.Formatter):
    """JSON formatter for file output."""

    EXTRA_FIELDS = ('user_id', 'generation_id', 'request_id', 'duration')

    def format(self, record):
        log_entry = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }
        for field in self.EXTRA_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)
        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)
        return json.dumps(log_entry, default=str)


def setup_logging(level: str = "INFO", enable_file_logging: bool = False,
                  log_file: str = "logs/studio.log") -> logging.Logger:
    """Configure the root logger once at application start-up."""
    root = logging.getLogger()
    root.handlers.clear()

    log_level = getattr(logging, level.upper(), logging.INFO)
    root.setLevel(log_level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(ColoredFormatter(
        '%(asctime)s | %(levelname)s | %(name)s | %(message)s',
        datefmt='%H:%M:%S'
    ))
    root.addHandler(console_handler)

    if enable_file_logging:
        try:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            file_handler = logging.handlers.RotatingFileHandler(
                log_file,
                maxBytes=10 * 1024 * 1024,  # 10MB
                backupCount=5
            )
            file_handler.setLevel(log_level)
            file_handler.setFormatter(StructuredFormatter())
            root.addHandler(file_handler)
        except OSError as e:
            root.warning(f"Failed to setup file logging: {e}")

    # Third-party clients are chatty at INFO
    for noisy in ("httpx", "httpcore", "hpack"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return root


@contextmanager
def performance_context(logger: logging.Logger, operation: str, **kwargs):
    """Log how long a block took; failures are logged and re-raised."""
    start_time = time.time()
    try:
        yield
    except Exception as e:
        duration = time.time() - start_time
        logger.error(f"[PERF] {operation} failed after {duration:.3f}s: {e}",
                     extra={'duration': duration, **kwargs})
        raise
    else:
        duration = time.time() - start_time
        if duration > SLOW_OPERATION_SECONDS:
            logger.warning(f"[PERF] Slow operation {operation}: {duration:.3f}s",
                           extra={'duration': duration, **kwargs})
        else:
            logger.debug(f"[PERF] {operation} completed in {duration:.3f}s",
                         extra={'duration': duration, **kwargs})


def log_credit_operation(logger: logging.Logger, operation: str, user_id: str, amount: int,
                         balance_after: Optional[int] = None, **kwargs):
    """Log credit movements with an audit-friendly message."""
    logger.info(
        f"[CREDIT] {operation}: user={user_id}, amount={amount}, balance_after={balance_after}",
        extra={'user_id': user_id, **kwargs}
    )


def log_execution_time(operation_name: Optional[str] = None):
    """Decorator to log function duration, warning when it is slow."""
    def decorator(func):
        op_name = operation_name or func.__name__
        logger = logging.getLogger(func.__module__)

        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            with performance_context(logger, op_name):
                return await func(*args, **kwargs)

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            with performance_context(logger, op_name):
                return func(*args, **kwargs)

        return async_wrapper if asyncio.iscoroutinefunction(func) else sync_wrapper

    return decorator
