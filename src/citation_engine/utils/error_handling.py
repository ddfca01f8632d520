"""Error handling utilities."""
import asyncio
import logging
from functools import wraps
from typing import Any, Callable, Optional

from ..errors import CitationEngineError

logger = logging.getLogger(__name__)


def fallback_on_error(fallback: Any) -> Callable:
    """Decorator turning any exception inside a pure function into ``fallback``."""
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.warning(f"Error in {func.__name__}: {str(e)}")
                return fallback
        return wrapper
    return decorator


def reports_failure(failure_message: str, success_message: Optional[str] = None) -> Callable:
    """Decorator for user-initiated session actions.

    Engine errors are logged and pushed to ``self.notifier`` instead of
    propagating to the UI; the wrapped action then returns None. Works for
    both plain and coroutine methods.
    """
    def decorator(func: Callable) -> Callable:
        def _failed(self, e: Exception) -> None:
            logger.error(f"{failure_message} in {func.__name__}: {str(e)}")
            self.notifier.error(f"{failure_message}: {str(e)}")

        def _succeeded(self) -> None:
            if success_message:
                self.notifier.success(success_message)

        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(self, *args, **kwargs) -> Any:
                try:
                    result = await func(self, *args, **kwargs)
                except CitationEngineError as e:
                    _failed(self, e)
                    return None
                _succeeded(self)
                return result
            return async_wrapper

        @wraps(func)
        def wrapper(self, *args, **kwargs) -> Any:
            try:
                result = func(self, *args, **kwargs)
            except CitationEngineError as e:
                _failed(self, e)
                return None
            _succeeded(self)
            return result
        return wrapper
    return decorator
