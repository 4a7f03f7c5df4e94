"""
Tests for utils/platform.py - UTC clock and the yfinance timeout wrapper.
"""
import threading
from datetime import datetime, timezone

import pytest

from utils.platform import now_utc, yfinance_with_timeout


# ============================================
# UTC CLOCK TESTS
# ============================================

class TestNowUTC:
    def test_timezone_aware(self):
        result = now_utc()
        assert isinstance(result, datetime)
        assert result.tzinfo == timezone.utc

    def test_close_to_system_clock(self):
        diff = abs((datetime.now(timezone.utc) - now_utc()).total_seconds())
        assert diff < 1


# ============================================
# YFINANCE TIMEOUT TESTS
# ============================================

class TestYfinanceWithTimeout:
    def test_fast_function_returns_result(self):
        assert yfinance_with_timeout(lambda: 42, timeout_seconds=5) == 42

    def test_slow_function_raises_timeout(self):
        release = threading.Event()

        def slow():
            release.wait(5)
            return "late"

        try:
            with pytest.raises(TimeoutError, match="timed out after 0.2s"):
                yfinance_with_timeout(slow, timeout_seconds=0.2)
        finally:
            release.set()

    def test_exception_propagates(self):
        def failing():
            raise ValueError("Bad ticker symbol")

        with pytest.raises(ValueError, match="Bad ticker"):
            yfinance_with_timeout(failing, timeout_seconds=5)

    def test_none_return_is_valid(self):
        assert yfinance_with_timeout(lambda: None, timeout_seconds=5) is None
