"""
Enhanced Logging Utilities

Provides structured logging with draft-session context (session key, acting
side, operation, trace id). Hybrid output: human-readable console plus
structured JSON files.
"""
import contextvars
import json
import logging
import os
import time
import uuid
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from typing import Any, Dict, Optional, Union

# Context variable for request tracking across async calls
log_context: contextvars.ContextVar[Dict[str, Any]] = contextvars.ContextVar('log_context', default={})

ROOT_LOGGER_NAME = 'draft_engine'

JSONValue = Union[
    str,
    int,
    float,
    bool,
    None,
    dict[str, Any],
    list[Any]
]

# LogRecord attributes that are not user supplied extras
_RECORD_KEYS = {
    'name', 'msg', 'args', 'levelname', 'levelno', 'pathname',
    'filename', 'module', 'lineno', 'funcName', 'created',
    'msecs', 'relativeCreated', 'thread', 'threadName',
    'processName', 'process', 'getMessage', 'exc_info',
    'exc_text', 'stack_info', 'taskName', 'message', 'asctime'
}


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured file logging."""

    def format(self, record) -> str:
        """Format log record as JSON with context information."""
        log_obj: dict[str, JSONValue] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage()
        }

        if record.funcName:
            log_obj['function'] = record.funcName
        if record.lineno:
            log_obj['line'] = record.lineno

        if record.exc_info:
            exc_type, exc_value = record.exc_info[0], record.exc_info[1]
            log_obj['exception'] = {
                'type': exc_type.__name__ if exc_type else 'Unknown',
                'message': str(exc_value) if exc_value else 'No message',
                'traceback': self.formatException(record.exc_info)
            }

        context = log_context.get({})
        if context:
            log_obj['context'] = dict(context)
            if 'trace_id' in context:
                log_obj['trace_id'] = context['trace_id']
            if 'session_key' in context:
                log_obj['session_key'] = context['session_key']

        extra_data = {}
        for key, value in record.__dict__.items():
            if key in _RECORD_KEYS:
                continue
            try:
                json.dumps(value)
                extra_data[key] = value
            except (TypeError, ValueError):
                extra_data[key] = str(value)

        if extra_data:
            log_obj['extra'] = extra_data

        return json.dumps(log_obj, ensure_ascii=False)


class ContextualLogger:
    """
    Logger wrapper that provides contextual information and structured logging.

    Keyword arguments passed to the log methods become structured extras; the
    current draft context (see set_draft_context) is attached by JSONFormatter.
    """

    def __init__(self, logger_name: str):
        """
        Initialize contextual logger.

        Args:
            logger_name: Name for the underlying logger
        """
        self.logger = logging.getLogger(logger_name)
        self._start_times: Dict[str, float] = {}

    def start_operation(self, operation_name: Optional[str] = None) -> str:
        """
        Start timing an operation and generate a trace ID.

        Start times are kept per trace ID, so concurrent operations sharing
        this logger time independently.

        Args:
            operation_name: Optional name for the operation being tracked

        Returns:
            Generated trace ID for this operation
        """
        trace_id = str(uuid.uuid4())[:8]
        self._start_times[trace_id] = time.time()

        context = dict(log_context.get({}))
        context['trace_id'] = trace_id
        if operation_name:
            context['operation'] = operation_name
        log_context.set(context)

        return trace_id

    def end_operation(self, trace_id: str, operation_result: str = "completed") -> None:
        """
        End an operation and log the final duration.

        Args:
            trace_id: The trace ID returned by start_operation
            operation_result: Result status ("completed", "rejected", "failed")
        """
        start_time = self._start_times.pop(trace_id, None)
        if start_time is None:
            self.warning("end_operation called without corresponding start_operation")
            return

        duration_ms = int((time.time() - start_time) * 1000)
        self.logger.info(f"Operation {operation_result}", extra={
            'trace_id': trace_id,
            'final_duration_ms': duration_ms,
            'operation_result': operation_result,
        })

        context = dict(log_context.get({}))
        context.pop('operation', None)
        if context.get('trace_id') == trace_id:
            context.pop('trace_id', None)
        log_context.set(context)

    def _get_duration_ms(self) -> Optional[int]:
        start_time = self._start_times.get(log_context.get({}).get('trace_id'))
        if start_time:
            return int((time.time() - start_time) * 1000)
        return None

    def _with_duration(self, kwargs: Dict[str, Any]) -> Dict[str, Any]:
        duration = self._get_duration_ms()
        if duration is not None:
            kwargs['duration_ms'] = duration
        return kwargs

    def debug(self, message: str, **kwargs):
        self.logger.debug(message, extra=self._with_duration(kwargs))

    def info(self, message: str, **kwargs):
        self.logger.info(message, extra=self._with_duration(kwargs))

    def warning(self, message: str, **kwargs):
        self.logger.warning(message, extra=self._with_duration(kwargs))

    def error(self, message: str, error: Optional[Exception] = None, **kwargs):
        """
        Log error message with context and exception information.

        Args:
            message: Error message
            error: Optional exception object
            **kwargs: Additional context
        """
        kwargs = self._with_duration(kwargs)
        if error:
            kwargs['error'] = {
                'type': type(error).__name__,
                'message': str(error)
            }
            self.logger.error(message, exc_info=True, extra=kwargs)
        else:
            self.logger.error(message, extra=kwargs)

    def exception(self, message: str, **kwargs):
        """Log exception with full traceback and context."""
        self.logger.exception(message, extra=self._with_duration(kwargs))


def set_draft_context(
    session_key: Optional[str] = None,
    side: Optional[str] = None,
    operation: Optional[str] = None,
    **additional_context
):
    """
    Set draft-specific context for logging.

    Args:
        session_key: Draft session key
        side: Acting side tag ("B" / "R"); None means the session owner
        operation: Engine operation name (e.g. 'submit_pick')
        **additional_context: Any additional context to include
    """
    context = dict(log_context.get({}))

    if session_key:
        context['session_key'] = session_key
    if side:
        context['side'] = str(getattr(side, 'value', side))
    if operation:
        context['operation'] = operation

    context.update(additional_context)
    log_context.set(context)


def clear_context():
    """Clear the current logging context."""
    log_context.set({})


def get_contextual_logger(logger_name: str) -> ContextualLogger:
    """
    Get a contextual logger instance.

    Args:
        logger_name: Name for the logger (typically __name__)

    Returns:
        ContextualLogger instance
    """
    return ContextualLogger(logger_name)


def setup_logging(log_level: Optional[str] = None, log_dir: str = 'logs') -> logging.Logger:
    """Configure hybrid logging: human-readable console + structured JSON files."""
    from config import get_config

    level_name = (log_level or get_config().log_level).upper()
    level = getattr(logging, level_name, logging.INFO)

    os.makedirs(log_dir, exist_ok=True)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    # Repeated calls replace the handlers instead of stacking them
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    logger.addHandler(console_handler)

    json_handler = RotatingFileHandler(
        os.path.join(log_dir, f'{ROOT_LOGGER_NAME}.json'),
        maxBytes=5 * 1024 * 1024,  # 5MB
        backupCount=5
    )
    json_handler.setFormatter(JSONFormatter())
    logger.addHandler(json_handler)

    # Module loggers (services.*, api.*) and third-party libraries go through root
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not root_logger.handlers:
        root_logger.addHandler(console_handler)
        root_logger.addHandler(json_handler)

    logger.propagate = False
    return logger
