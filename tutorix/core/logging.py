"""
Logging Configuration and Utilities

Structured logging built on structlog, rendered through the stdlib handlers
declared in ``tutorix.config.logging``.
"""

import logging
import logging.config
from contextvars import ContextVar
from typing import Any, Dict, Optional

import structlog

from tutorix.config.logging import LOGGING_CONFIG
from tutorix.config.settings import settings

# Context variables for request tracking
request_id: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id: ContextVar[Optional[str]] = ContextVar('user_id', default=None)

SENSITIVE_KEYS = ('password', 'token', 'secret', 'signature', 'authorization', 'account_number')


class RequestContextProcessor:
    """Add request context to log records"""

    def __call__(self, logger, method_name, event_dict):
        req_id = request_id.get()
        if req_id:
            event_dict.setdefault('request_id', req_id)

        uid = user_id.get()
        if uid:
            event_dict.setdefault('user_id', uid)

        event_dict['service'] = 'tutorix'
        event_dict['environment'] = settings.ENVIRONMENT
        return event_dict


class SecurityLogProcessor:
    """Tag security events and mask sensitive values"""

    def __call__(self, logger, method_name, event_dict):
        if event_dict.get('security_event'):
            event_dict['security_event'] = True

        self._sanitize_event_dict(event_dict)
        return event_dict

    def _sanitize_event_dict(self, event_dict: Dict[str, Any]):
        for key in list(event_dict.keys()):
            if key == 'event':
                continue
            if any(sensitive in key.lower() for sensitive in SENSITIVE_KEYS):
                event_dict[key] = '[REDACTED]'
            elif isinstance(event_dict[key], dict):
                self._sanitize_event_dict(event_dict[key])


class LoggingConfig:
    """Centralized logging configuration"""

    _configured = False

    @staticmethod
    def configure_standard_logging():
        logging.config.dictConfig(LOGGING_CONFIG)

    @staticmethod
    def configure_structured_logging():
        processors = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            RequestContextProcessor(),
            SecurityLogProcessor(),
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        if settings.LOG_FORMAT == "json":
            processors.append(structlog.processors.JSONRenderer())
        else:
            # level colouring comes from the colorlog handler formatter
            processors.append(structlog.dev.ConsoleRenderer(colors=False))

        structlog.configure(
            processors=processors,
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )


def configure_logging(force: bool = False) -> None:
    """Initialize logging configuration once per process."""
    if LoggingConfig._configured and not force:
        return
    LoggingConfig.configure_standard_logging()
    LoggingConfig.configure_structured_logging()
    LoggingConfig._configured = True


class LoggerAdapter:
    """Logger adapter with bound context.

    Accepts the ``extra={...}`` calling convention used across the services
    and forwards it as structured key/value pairs.
    """

    def __init__(self, logger: Any, context: Optional[Dict[str, Any]] = None):
        self.logger = logger
        self._context: Dict[str, Any] = dict(context or {})

    def bind(self, **kwargs) -> "LoggerAdapter":
        """Return a new adapter carrying additional context."""
        return LoggerAdapter(self.logger, {**self._context, **kwargs})

    def _log(self, method: str, message: str, **kwargs):
        extra = kwargs.pop('extra', None) or {}
        fields = {**self._context, **extra, **kwargs}
        fields.pop('event', None)
        getattr(self.logger, method)(message, **fields)

    def debug(self, message: str, **kwargs):
        self._log('debug', message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log('info', message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log('warning', message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log('error', message, **kwargs)

    def critical(self, message: str, **kwargs):
        self._log('critical', message, **kwargs)

    def exception(self, message: str, **kwargs):
        kwargs.setdefault('exc_info', True)
        self._log('error', message, **kwargs)


def get_logger(name: Optional[str] = None) -> LoggerAdapter:
    """
    Get configured logger instance.

    Args:
        name: Logger name, usually the caller's ``__name__``

    Returns:
        Logger adapter bound to ``name``
    """
    return LoggerAdapter(structlog.get_logger(name or 'tutorix'))


_security_logger = get_logger('tutorix.security')


def log_security_event(event: str, **details) -> None:
    """Emit a security-relevant event at WARNING level."""
    _security_logger.warning(event, security_event=True, **details)


__all__ = [
    'get_logger',
    'configure_logging',
    'log_security_event',
    'LoggerAdapter',
    'LoggingConfig',
    'request_id',
    'user_id',
]
