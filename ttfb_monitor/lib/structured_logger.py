"""Structured Logger with JSON Formatting.

Provides structured logging with JSON output for machine-readable logs.
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ttfb_monitor.lib.distributed_tracing import get_correlation_id

# Never written to log output
SENSITIVE_KEYS = ('token', 'password', 'user_token', 'client_secret', 'access_token', 'smtp_password')

# Context fields copied from the record onto the JSON line when present
CONTEXT_FIELDS = (
    'user_id',
    'duration_ms',
    'endpoint',
    'status_code',
    'category',
    'ttfb_ms',
    'outcome',
)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).strftime('%Y-%m-%dT%H:%M:%S.%fZ')


def _strip_sensitive(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if key not in SENSITIVE_KEYS}


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data = {
            'timestamp': _utc_timestamp(),
            'level': record.levelname,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'request_id': get_correlation_id(),
        }

        for field in CONTEXT_FIELDS:
            if hasattr(record, field):
                log_data[field] = getattr(record, field)

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        return json.dumps(log_data, default=str)


class StructuredLogger:
    """Structured logger with JSON formatting.

    Usage:
        logger = StructuredLogger(__name__)
        logger.info('Sample stored', category='bad', ttfb_ms=2100)
        logger.error('Store failure', exc_info=True)
    """

    def __init__(self, name: str):
        """Initialize structured logger.

        Args:
            name: Logger name (typically module name)
        """
        self.logger = logging.getLogger(name)

        log_level = os.getenv('LOG_LEVEL', 'INFO').upper()
        self.logger.setLevel(getattr(logging, log_level, logging.INFO))

        # Remove existing handlers to avoid duplicates on re-import
        self.logger.handlers.clear()

        handler = logging.StreamHandler()
        handler.setFormatter(JSONFormatter())
        self.logger.addHandler(handler)

        self.logger.propagate = False

    def info(self, message: str, **extra: Any) -> None:
        self.logger.info(message, extra=_strip_sensitive(extra))

    def warning(self, message: str, exc_info: bool = False, **extra: Any) -> None:
        self.logger.warning(message, exc_info=exc_info, extra=_strip_sensitive(extra))

    def error(self, message: str, exc_info: bool = False, **extra: Any) -> None:
        self.logger.error(message, exc_info=exc_info, extra=_strip_sensitive(extra))

    def debug(self, message: str, **extra: Any) -> None:
        self.logger.debug(message, extra=_strip_sensitive(extra))


def log_event(event: str, level: str = 'INFO', context: Optional[Dict[str, Any]] = None) -> None:
    """Event-based logging without creating a logger instance.

    Filters sensitive keys and includes the correlation ID.

    Args:
        event: Event name (e.g., "ingest.stored", "auth.forbidden")
        level: Log level (INFO, WARNING, ERROR, DEBUG)
        context: Additional context dictionary

    Example:
        log_event('ingest.stored', context={'category': 'bad', 'ttfb_ms': 2100})
    """
    log_entry = {
        'timestamp': _utc_timestamp(),
        'level': level.upper(),
        'event': event,
        'correlation_id': get_correlation_id(),
        **_strip_sensitive(context or {}),
    }

    print(json.dumps(log_entry, default=str))


def log_request(endpoint: str, method: str, status_code: int, duration_ms: float) -> None:
    """Log API request with timing.

    Args:
        endpoint: API endpoint path
        method: HTTP method
        status_code: HTTP status code
        duration_ms: Request duration in milliseconds
    """
    log_data = {
        'timestamp': _utc_timestamp(),
        'level': 'INFO',
        'message': f'{method} {endpoint}',
        'request_id': get_correlation_id(),
        'endpoint': endpoint,
        'method': method,
        'status_code': status_code,
        'duration_ms': duration_ms,
    }

    print(json.dumps(log_data))
