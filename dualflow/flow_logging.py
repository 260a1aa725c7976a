# dualflow/flow_logging.py
"""
Structured JSON logging utility for Dual Flow.
Provides consistent, environment-aware logging across all components.
"""

import logging as _logging
import logging.config as _logging_config
import os
import time
from pathlib import Path
from typing import Any, Dict, Optional

from pythonjsonlogger.json import JsonFormatter

LOGGER_NAMESPACE = "dualflow"


class FlowJsonFormatter(JsonFormatter):
    """JSON formatter that adds diagram/session context to every record."""

    def add_fields(self, log_record: Dict[str, Any], record: _logging.LogRecord, message_dict: Dict[str, Any]) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = time.time()
        log_record['environment'] = os.getenv('APP_ENV', 'dev')
        log_record['component'] = getattr(record, 'component', 'unknown')

        # Request / session context injected through LogContext or `extra`
        for field in ('diagram_id', 'side', 'session_id', 'path', 'method', 'client_ip'):
            if hasattr(record, field):
                log_record[field] = getattr(record, field)

        if hasattr(record, 'duration_ms'):
            log_record['duration_ms'] = record.duration_ms
        if hasattr(record, 'status_code'):
            log_record['status_code'] = record.status_code


def setup_logging(log_file: Optional[Path] = None, level: Optional[str] = None) -> _logging.Logger:
    """
    Set up logging configuration for the Dual Flow service.

    Args:
        log_file: Path to log file. If None, logs only to console.
        level: Log level name. Defaults to LOG_LEVEL or INFO.

    Returns:
        The package root logger
    """
    env = os.getenv('APP_ENV', 'dev')
    level_name = (level or os.getenv('LOG_LEVEL', 'INFO')).upper()
    if not isinstance(getattr(_logging, level_name, None), int):
        level_name = 'INFO'
    formatter = 'json' if env != 'dev' else 'console'

    handlers_list = ['console']
    handlers_config: Dict[str, Dict[str, Any]] = {
        'console': {
            'class': 'logging.StreamHandler',
            'formatter': formatter,
            'level': level_name,
            'stream': 'ext://sys.stdout'
        }
    }

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers_config['file'] = {
            'class': 'logging.FileHandler',
            'filename': str(log_file),
            'formatter': formatter,
            'level': level_name,
            'mode': 'a',
            'encoding': 'utf-8'
        }
        handlers_list.append('file')

    config = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'json': {
                '()': FlowJsonFormatter,
                'format': '%(timestamp)s %(name)s %(levelname)s %(message)s'
            },
            'console': {
                'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                'datefmt': '%Y-%m-%d %H:%M:%S'
            }
        },
        'handlers': handlers_config,
        'root': {
            'level': level_name,
            'handlers': handlers_list
        },
        'loggers': {
            LOGGER_NAMESPACE: {
                'level': 'DEBUG' if env == 'dev' else level_name,
                # Propagate to root so pytest's caplog captures records
                'handlers': [],
                'propagate': True
            },
            'uvicorn': {
                'level': 'INFO',
                'handlers': handlers_list,
                'propagate': False
            }
        }
    }

    _logging_config.dictConfig(config)
    return _logging.getLogger(LOGGER_NAMESPACE)


def get_logger(name: str) -> _logging.Logger:
    """
    Get a logger instance under the package namespace.

    Args:
        name: Logger name, typically __name__ of the calling module
    """
    if name == LOGGER_NAMESPACE or name.startswith(f"{LOGGER_NAMESPACE}."):
        return _logging.getLogger(name)
    return _logging.getLogger(f"{LOGGER_NAMESPACE}.{name}")


class LogContext:
    """
    Context manager for adding consistent fields to log records.
    """

    def __init__(self, **fields):
        self.fields = fields
        self.old_factory = _logging.getLogRecordFactory()

    def __enter__(self):
        def record_factory(*args, **kwargs):
            record = self.old_factory(*args, **kwargs)
            for key, value in self.fields.items():
                setattr(record, key, value)
            return record

        _logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        _logging.setLogRecordFactory(self.old_factory)
