"""
Decorators for the draft session engine

Removes logging boilerplate from service operations that act on one session.
"""
import inspect
from functools import wraps
from typing import List, Optional

from utils.logging import clear_context, get_contextual_logger, set_draft_context


def logged_operation(
    operation_name: Optional[str] = None,
    log_params: bool = True,
    exclude_params: Optional[List[str]] = None
):
    """
    Decorator for session operations that adds structured logging.

    Handles:
    - Setting draft context (session key, acting side, operation)
    - Starting/ending operation timing with a trace id
    - Logging start/completion/failure
    - Clearing the context afterwards

    Args:
        operation_name: Override operation name (defaults to the function name)
        log_params: Whether to log call parameters (default: True)
        exclude_params: Parameter names to leave out of the log context

    Example:
        @logged_operation()
        async def submit_pick(self, key: str, slot: int, unit_id: str, actor=None):
            ...

    Requirements:
        - Decorated function must be an async method with (self, key, ...) signature
        - Exceptions are logged and re-raised unchanged
    """
    def decorator(func):
        signature = inspect.signature(func)

        @wraps(func)
        async def wrapper(self, key, *args, **kwargs):
            name = operation_name or func.__name__

            context = {}
            if log_params:
                bound = signature.bind_partial(self, key, *args, **kwargs)
                excluded = set(exclude_params or []) | {'self', 'key', 'actor'}
                for param, value in bound.arguments.items():
                    if param not in excluded:
                        context[f"param_{param}"] = value if isinstance(value, (str, int, float, bool)) else str(value)

            actor = kwargs.get('actor')
            set_draft_context(session_key=key, side=actor, **context)

            logger = getattr(self, 'logger', None) or get_contextual_logger(
                f'{self.__class__.__module__}.{self.__class__.__name__}'
            )
            trace_id = logger.start_operation(name)

            try:
                logger.debug(f"{name} started")
                result = await func(self, key, *args, **kwargs)
                logger.end_operation(trace_id, "completed")
                return result
            except Exception as e:
                logger.error(f"{name} failed", error=e)
                logger.end_operation(trace_id, "failed")
                raise
            finally:
                clear_context()

        wrapper.__signature__ = signature  # type: ignore
        return wrapper
    return decorator
