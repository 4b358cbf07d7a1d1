"""
Error types and computation guards for the Network Benchmark Dashboard

Provides the exception hierarchy plus decorators for timed and safe
computations used by the dashboard callbacks.
"""

import logging
import time
import traceback
from functools import wraps

logger = logging.getLogger(__name__)


class NetbenchError(Exception):
    """Base class for dashboard errors."""


class RetrievalError(NetbenchError):
    """Raised when telemetry cannot be fetched from the upstream source."""


class ConfigurationError(NetbenchError):
    """Raised when settings cannot be parsed."""


def timed_computation(func):
    """Decorator that logs how long a recomputation took."""
    @wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.time()
        try:
            return func(*args, **kwargs)
        finally:
            logger.debug(f"{func.__name__} computed in {time.time() - start_time:.3f}s")
    return wrapper


def safe_computation(default_return=None):
    """Decorator for safe computations with comprehensive error handling."""
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in {func.__name__}: {str(e)}")
                logger.debug(traceback.format_exc())
                return default_return
        return wrapper
    return decorator
