"""
Logging Service for the video sharing platform.
Provides structured JSON logging with per-request correlation IDs.
"""

import json
import logging
import logging.config
import sys
import time
import traceback
import uuid
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from contextvars import ContextVar

# Context variables for request correlation
request_id_var: ContextVar[Optional[str]] = ContextVar('request_id', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)

_RESERVED_ATTRS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname', 'filename',
    'module', 'lineno', 'funcName', 'created', 'msecs', 'relativeCreated',
    'thread', 'threadName', 'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime',
}


class JSONFormatter(logging.Formatter):
    """Custom JSON formatter for structured logging"""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON"""
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        if request_id_var.get():
            log_data['request_id'] = request_id_var.get()

        if user_id_var.get():
            log_data['user_id'] = user_id_var.get()

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': str(record.exc_info[1]),
                'traceback': traceback.format_exception(*record.exc_info)
            }

        extra_fields = {
            key: value for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        }
        if extra_fields:
            log_data['extra'] = extra_fields

        return json.dumps(log_data, default=str, ensure_ascii=False)


class PlatformLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps domain context onto every record"""

    def __init__(self, logger: logging.Logger, extra: Dict[str, Any] = None):
        super().__init__(logger, extra or {})

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        extra = kwargs.get('extra', {})

        if self.extra:
            extra.update(self.extra)

        if request_id_var.get():
            extra['request_id'] = request_id_var.get()

        if user_id_var.get():
            extra['user_id'] = user_id_var.get()

        kwargs['extra'] = extra
        return msg, kwargs

    def event(self, event_type: str, message: str = "", level: int = logging.INFO, **kwargs):
        """Log a domain event (toggle, delete, cascade step, ...)"""
        extra = {
            'event_type': event_type,
            **{key: str(value) if isinstance(value, uuid.UUID) else value
               for key, value in kwargs.items()}
        }
        self.log(level, message or event_type, extra=extra)

    def log_api_request(self, method: str, endpoint: str, status_code: int,
                        duration_ms: float, **kwargs):
        """Log API request events"""
        extra = {
            'event_type': 'api_request',
            'method': method,
            'endpoint': endpoint,
            'status_code': status_code,
            'duration_ms': duration_ms,
            **kwargs
        }
        self.info(f"{method} {endpoint} - {status_code} ({duration_ms}ms)", extra=extra)


class LoggingService:
    """Service for managing application logging"""

    def __init__(self):
        self.loggers: Dict[str, PlatformLoggerAdapter] = {}

    def setup(self, level: str = "INFO", json_format: bool = True):
        """Install the console handler for the platform loggers"""
        config = {
            'version': 1,
            'disable_existing_loggers': False,
            'formatters': {
                'json': {
                    '()': JSONFormatter,
                },
                'simple': {
                    'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
                }
            },
            'handlers': {
                'console': {
                    'class': 'logging.StreamHandler',
                    'level': level,
                    'formatter': 'json' if json_format else 'simple',
                    'stream': sys.stdout
                },
            },
            'loggers': {
                'vidshare': {
                    'level': level,
                    'handlers': ['console'],
                    'propagate': False
                },
                'uvicorn': {
                    'level': 'INFO',
                    'handlers': ['console'],
                    'propagate': False
                },
                'sqlalchemy': {
                    'level': 'WARNING',
                    'handlers': ['console'],
                    'propagate': False
                }
            },
        }

        logging.config.dictConfig(config)

    def get_logger(self, name: str, extra: Dict[str, Any] = None) -> PlatformLoggerAdapter:
        """Get or create a logger with the given name"""
        if name not in self.loggers:
            base_logger = logging.getLogger(f"vidshare.{name}")
            self.loggers[name] = PlatformLoggerAdapter(base_logger, extra)

        return self.loggers[name]

    def set_request_context(self, request_id: str, user_id: str = None):
        """Set request context for logging"""
        request_id_var.set(request_id)
        if user_id:
            user_id_var.set(user_id)

    def clear_request_context(self):
        """Clear request context"""
        request_id_var.set(None)
        user_id_var.set(None)


# Global logging service instance
logging_service = LoggingService()


def setup_logging(level: str = "INFO", json_format: bool = True):
    logging_service.setup(level, json_format)


def get_logger(name: str, extra: Dict[str, Any] = None) -> PlatformLoggerAdapter:
    """Get a logger for the given component"""
    return logging_service.get_logger(name, extra)


def get_api_logger() -> PlatformLoggerAdapter:
    return logging_service.get_logger("api")


class LoggingMiddleware:
    """ASGI middleware for request/response logging"""

    def __init__(self, app):
        self.app = app
        self.logger = get_api_logger()

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        request_id = str(uuid.uuid4())
        start_time = time.time()

        logging_service.set_request_context(request_id)
        scope["request_id"] = request_id

        async def send_wrapper(message):
            if message["type"] == "http.response.start":
                duration_ms = round((time.time() - start_time) * 1000, 2)
                self.logger.log_api_request(
                    method=scope["method"],
                    endpoint=scope["path"],
                    status_code=message["status"],
                    duration_ms=duration_ms,
                )
                headers = list(message.get("headers", []))
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            logging_service.clear_request_context()
