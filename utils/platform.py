"""
Platform helpers: the UTC clock and hang protection for yfinance.

The markets covered trade across every timezone, so timestamps the engine
produces are timezone-aware UTC.
"""
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeout
from datetime import datetime, timezone
from typing import Callable, TypeVar

T = TypeVar("T")

# yfinance has no request timeout of its own; calls run on this pool
_YF_POOL = ThreadPoolExecutor(max_workers=4, thread_name_prefix="yfinance")


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def yfinance_with_timeout(func: Callable[[], T], timeout_seconds: float = 15) -> T:
    """
    Run a blocking yfinance call, giving up after `timeout_seconds`.

    Exceptions raised by `func` propagate unchanged. The worker thread of a
    timed-out call is abandoned, not killed.

    Raises:
        TimeoutError: the call did not finish in time
    """
    future = _YF_POOL.submit(func)
    try:
        return future.result(timeout=timeout_seconds)
    except FuturesTimeout:
        future.cancel()
        raise TimeoutError(f"yfinance call timed out after {timeout_seconds}s") from None
