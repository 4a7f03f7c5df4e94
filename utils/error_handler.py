"""
Error Handler - Centralized error taxonomy for the forecast engine.

Failure families:
- Insufficient data: absorbed as neutral defaults, never raised past indicators
- Asset resolution: AssetNotFoundError, the only error surfaced to callers
- Computation: ComputationFailure, converted to a fallback result by the engines

Also provides exception categorization for provider errors and a retry
decorator for provider I/O.
"""
import time
from enum import Enum
from functools import wraps
from typing import Any, Callable, Optional, Tuple, Type

from loguru import logger

from utils.platform import now_utc


class ErrorCategory(Enum):
    """How a failure should be handled."""
    TRANSIENT = "TRANSIENT"      # Retry (network hiccup, timeout)
    RATE_LIMIT = "RATE_LIMIT"    # Retry after a longer wait
    NOT_FOUND = "NOT_FOUND"      # Asset could not be resolved
    DATA = "DATA"                # Bad or missing provider data
    COMPUTATION = "COMPUTATION"  # Numerical failure inside the engine
    FATAL = "FATAL"              # Unknown; do not retry


class ForecastException(Exception):
    """Base exception for the forecast engine."""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.FATAL):
        super().__init__(message)
        self.message = message
        self.category = category
        self.timestamp = now_utc()


class AssetNotFoundError(ForecastException):
    """No provider match for the requested asset."""

    def __init__(self, symbol: str, asset_type: Optional[str] = None):
        label = f"{asset_type} asset" if asset_type else "Asset"
        super().__init__(f"{label} {symbol} not found", ErrorCategory.NOT_FOUND)
        self.symbol = symbol
        self.asset_type = asset_type


class DataException(ForecastException):
    """Unreadable or empty price data."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.DATA)


class ComputationFailure(ForecastException):
    """Numerical failure that the engines turn into a fallback result."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.COMPUTATION)


class SingularMatrixError(ComputationFailure):
    """Matrix has no usable pivot and cannot be inverted."""


# Substrings of provider error messages, checked in this order
_MESSAGE_CATEGORIES = (
    (ErrorCategory.RATE_LIMIT, ("429", "rate limit", "too many requests", "throttle", "quota exceeded")),
    (ErrorCategory.TRANSIENT, ("timeout", "timed out", "connectionerror", "connection reset",
                               "socket", "dns", "500", "502", "503", "504", "service unavailable")),
    (ErrorCategory.NOT_FOUND, ("not found", "invalid symbol", "no such ticker", "404")),
    (ErrorCategory.DATA, ("no data", "empty response", "delisted")),
)


def categorize_exception(e: Exception) -> ErrorCategory:
    """Classify an exception for retry decisions."""
    if isinstance(e, ForecastException):
        return e.category
    if isinstance(e, ArithmeticError):
        return ErrorCategory.COMPUTATION
    if isinstance(e, TimeoutError):
        return ErrorCategory.TRANSIENT

    text = str(e).lower()
    for category, needles in _MESSAGE_CATEGORIES:
        if any(n in text for n in needles):
            return category
    return ErrorCategory.FATAL


_RETRYABLE = (ErrorCategory.TRANSIENT, ErrorCategory.RATE_LIMIT)


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
    retry_on: Tuple[Type[Exception], ...] = (Exception,),
    skip_on: Tuple[Type[Exception], ...] = (),
    sleep: Callable[[float], None] = time.sleep
):
    """
    Retry a provider call with exponential backoff.

    Only TRANSIENT and RATE_LIMIT failures are retried; rate limits wait
    three times longer. Exceptions in `skip_on` and every other category
    are re-raised on the spot.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            delay = base_delay
            attempt = 0
            while True:
                attempt += 1
                try:
                    return func(*args, **kwargs)
                except skip_on:
                    raise
                except retry_on as e:
                    category = categorize_exception(e)
                    if category not in _RETRYABLE or attempt > max_retries:
                        logger.error(f"{func.__name__} gave up after {attempt} attempt(s) "
                                     f"[{category.value}]: {e}")
                        raise

                    wait = min(delay * 3 if category == ErrorCategory.RATE_LIMIT else delay, max_delay)
                    logger.warning(f"{func.__name__} attempt {attempt}/{max_retries} failed: {e}; "
                                   f"retrying in {wait:.1f}s")
                    sleep(wait)
                    delay = min(wait * 2, max_delay)

        return wrapper
    return decorator
