# ============================================================================
# src/mediguide/utils/logging.py
# ============================================================================
"""
Logging for the MediGuide core.

- setup_logging: root handlers (stdout, optional file), plain or JSON lines
- JsonFormatter: one JSON object per record, request id included
- LogAdapter: tags pipeline messages with the request id
- log_performance: elapsed-time decorator for sync and async stages
"""

import asyncio
import functools
import json
import logging
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

PLAIN_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

# OCR and HTTP libraries that log every call at INFO
NOISY_LOGGERS = ("ppocr", "paddlex", "PIL", "aiohttp.access", "urllib3")


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_json: bool = False
) -> None:
    """
    Configure the root logger.

    Args:
        level: DEBUG, INFO, WARNING, ERROR or CRITICAL (any case)
        log_file: also write to this file, parent directories are created
        format_json: emit JsonFormatter lines instead of plain text
    """
    formatter = JsonFormatter() if format_json else logging.Formatter(PLAIN_FORMAT, datefmt='%Y-%m-%d %H:%M:%S')

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=level.upper(), handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


class JsonFormatter(logging.Formatter):
    """Single-line JSON records for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            'timestamp': datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        request_id = getattr(record, 'request_id', None)
        if request_id:
            payload['request_id'] = request_id

        if record.exc_info:
            payload['exception'] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


class LogAdapter(logging.LoggerAdapter):
    """Prefixes messages with `[request_id]` and attaches it to the record."""

    def process(self, msg, kwargs):
        kwargs['extra'] = {**self.extra, **kwargs.get('extra', {})}

        request_id = self.extra.get('request_id')
        if request_id:
            msg = f"[{request_id}] {msg}"
        return msg, kwargs


def log_performance(logger: logging.Logger, operation: str):
    """Log how long `operation` took; failures are logged at error and re-raised."""

    def report(start: float, error: Optional[Exception] = None) -> None:
        elapsed_ms = (time.perf_counter() - start) * 1000
        if error is None:
            logger.debug(f"{operation} completed in {elapsed_ms:.1f}ms")
        else:
            logger.error(f"{operation} failed after {elapsed_ms:.1f}ms: {error}")

    def decorator(func):
        if asyncio.iscoroutinefunction(func):
            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                start = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                except Exception as e:
                    report(start, e)
                    raise
                report(start)
                return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                report(start, e)
                raise
            report(start)
            return result

        return wrapper

    return decorator
