"""
Logging configuration for the Tutorix backend.
Provides the stdlib handler and formatter setup that structlog renders through.
"""

import logging
import logging.config
from datetime import datetime, timezone
from typing import Any, Dict

from pythonjsonlogger import jsonlogger

from tutorix.config.settings import settings


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with additional fields"""

    def add_fields(self, log_record: Dict[str, Any], record: logging.LogRecord, message_dict: Dict[str, Any]):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.now(timezone.utc).isoformat()
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['environment'] = settings.ENVIRONMENT

        for attr in ('request_id', 'user_id', 'coaching_id'):
            if hasattr(record, attr):
                log_record[attr] = getattr(record, attr)

        if record.exc_info:
            log_record['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': self.formatException(record.exc_info)
            }


def build_logging_config() -> Dict[str, Any]:
    """Build the dictConfig used by configure_logging."""
    config: Dict[str, Any] = {
        'version': 1,
        'disable_existing_loggers': False,
        'formatters': {
            'json': {
                '()': CustomJsonFormatter,
                'format': '%(timestamp)s %(level)s %(logger)s %(message)s'
            },
            'colored': {
                '()': 'colorlog.ColoredFormatter',
                'format': '%(log_color)s%(message)s',
                'log_colors': {
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                }
            },
            # structlog already renders the message; keep the line untouched
            'plain': {
                'format': '%(message)s'
            },
        },
        'handlers': {
            'console': {
                'level': settings.LOG_LEVEL,
                'class': 'logging.StreamHandler',
                'formatter': 'colored' if settings.LOG_FORMAT == 'console' else 'plain',
            },
        },
        'loggers': {
            '': {
                'handlers': ['console'],
                'level': settings.LOG_LEVEL,
            },
            'uvicorn.access': {'level': 'WARNING'},
            'sqlalchemy.engine': {'level': 'WARNING'},
            'httpx': {'level': 'WARNING'},
            'urllib3': {'level': 'WARNING'},
        },
    }

    if settings.LOG_FILE:
        config['handlers']['json_file'] = {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': settings.LOG_FILE,
            'maxBytes': 10485760,  # 10MB
            'backupCount': 10,
            'formatter': 'json',
            'encoding': 'utf8',
        }
        config['loggers']['']['handlers'].append('json_file')

    return config


LOGGING_CONFIG = build_logging_config()
