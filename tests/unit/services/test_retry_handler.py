"""
Unit tests for retry handler with exponential backoff and circuit breaker.
"""

from unittest.mock import Mock, patch

import pytest

from timeflow.errors import StorageError, StorageQuotaExceeded
from timeflow.services.retry_handler import (
    CircuitBreakerError,
    RetryExhaustedException,
    RetryHandler,
)


class TestRetryHandler:
    """Test cases for RetryHandler."""

    @pytest.fixture
    def delays(self):
        return []

    @pytest.fixture
    def retry_handler(self, delays):
        """RetryHandler instance with test configuration."""
        return RetryHandler(
            max_retries=3,
            base_delay=0.1,  # Short delay for testing
            max_delay=1.0,
            exponential_base=2,
            jitter_factor=0.1,
            circuit_breaker_threshold=5,
            circuit_breaker_timeout=2.0,
            sleep=delays.append,
        )

    def _open_breaker(self, handler):
        mock_func = Mock(side_effect=StorageError("disk gone"))
        for _ in range(handler.circuit_breaker_threshold):
            with pytest.raises(RetryExhaustedException):
                handler.execute_with_retry(mock_func)
        return mock_func

    def test_initialization_with_defaults(self):
        """Test retry handler initializes with default values."""
        handler = RetryHandler()

        assert handler.max_retries == 3
        assert handler.base_delay == 0.1
        assert handler.max_delay == 2.0
        assert handler.exponential_base == 2
        assert handler.jitter_factor == 0.1
        assert handler.circuit_breaker_threshold == 5
        assert handler.circuit_breaker_timeout == 30.0

    def test_successful_execution_no_retry(self, retry_handler, delays):
        """Test successful execution without retries."""
        mock_func = Mock(return_value="success")

        result = retry_handler.execute_with_retry(mock_func)

        assert result == "success"
        mock_func.assert_called_once()
        assert delays == []

    def test_retry_on_storage_error(self, retry_handler, delays):
        """Test retry behavior on transient storage errors."""
        mock_func = Mock()
        mock_func.side_effect = [StorageError("busy"), StorageError("busy"), "success"]

        result = retry_handler.execute_with_retry(mock_func)

        assert result == "success"
        assert mock_func.call_count == 3
        assert len(delays) == 2

    def test_retry_on_os_error(self, retry_handler, delays):
        """Test retry behavior on operating system errors."""
        mock_func = Mock(side_effect=[OSError("EAGAIN"), "success"])

        assert retry_handler.execute_with_retry(mock_func) == "success"
        assert len(delays) == 1

    def test_quota_exceeded_is_retried_as_storage_error(self, retry_handler):
        """Quota errors are storage errors and go through the same retry path."""
        mock_func = Mock(side_effect=StorageQuotaExceeded(requested=10, available=0))

        with pytest.raises(RetryExhaustedException) as exc_info:
            retry_handler.execute_with_retry(mock_func)

        assert isinstance(exc_info.value.last_error, StorageQuotaExceeded)
        assert exc_info.value.attempts == 4

    def test_no_retry_on_programming_error(self, retry_handler):
        """Test no retry on errors that are not storage failures."""
        mock_func = Mock(side_effect=ValueError("bad key"))

        with pytest.raises(ValueError):
            retry_handler.execute_with_retry(mock_func)

        mock_func.assert_called_once()

    def test_exponential_backoff_calculation(self, retry_handler, delays):
        """Test exponential backoff delay calculation."""
        mock_func = Mock(side_effect=StorageError("down"))

        with pytest.raises(RetryExhaustedException):
            retry_handler.execute_with_retry(mock_func)

        assert len(delays) == 3  # max_retries attempts
        # Allow for jitter which can reduce delay by up to 10%
        assert delays[0] >= 0.09
        assert delays[1] >= 0.18
        assert delays[2] >= 0.36
        assert delays[1] > delays[0] * 1.5
        assert delays[2] > delays[1] * 1.5

    def test_jitter_applied_to_delays(self, retry_handler, delays):
        """Test that jitter is applied to backoff delays."""
        with patch("timeflow.services.retry_handler.random.uniform") as mock_uniform:
            mock_uniform.return_value = 0.05
            mock_func = Mock(side_effect=[StorageError("busy"), "success"])

            retry_handler.execute_with_retry(mock_func)

        mock_uniform.assert_called_once_with(-0.1, 0.1)
        assert delays == [pytest.approx(0.1 * 1.05)]

    def test_max_delay_cap(self):
        """Test that delays are capped at max_delay."""
        delays = []
        handler = RetryHandler(
            max_retries=5,
            base_delay=10.0,
            max_delay=2.0,  # Very low max to test capping
            exponential_base=3,
            sleep=delays.append,
        )
        mock_func = Mock(side_effect=StorageError("down"))

        with pytest.raises(RetryExhaustedException):
            handler.execute_with_retry(mock_func)

        # All delays should be capped at max_delay plus jitter (10%)
        assert all(delay <= 2.2 for delay in delays)

    def test_default_sleep_is_time_sleep(self):
        """Without an injected sleep the handler waits with time.sleep."""
        handler = RetryHandler(max_retries=1, base_delay=0.0, jitter_factor=0.0)
        mock_func = Mock(side_effect=[StorageError("busy"), "ok"])

        with patch("time.sleep") as mock_sleep:
            handler.execute_with_retry(mock_func)

        mock_sleep.assert_called_once_with(0.0)

    def test_retry_exhausted_exception(self, retry_handler):
        """Test RetryExhaustedException after max retries."""
        error = StorageError("down")
        mock_func = Mock(side_effect=error)

        with pytest.raises(RetryExhaustedException) as exc_info:
            retry_handler.execute_with_retry(mock_func)

        assert "Max retries (3) exceeded" in str(exc_info.value)
        assert exc_info.value.last_error is error
        assert mock_func.call_count == 4  # initial + 3 retries

    def test_circuit_breaker_opens_after_threshold(self, retry_handler):
        """Test circuit breaker opens after failure threshold."""
        mock_func = self._open_breaker(retry_handler)

        assert retry_handler._circuit_breaker_open is True

        calls_before = mock_func.call_count
        with pytest.raises(CircuitBreakerError):
            retry_handler.execute_with_retry(mock_func)
        assert mock_func.call_count == calls_before

    def test_circuit_breaker_half_open_after_timeout(self, retry_handler):
        """Test circuit breaker lets a call through after the timeout."""
        mock_func = self._open_breaker(retry_handler)

        with patch("time.monotonic") as mock_time:
            mock_time.return_value = retry_handler._circuit_breaker_opened_at + 3.0
            mock_func.side_effect = None
            mock_func.return_value = "success"

            result = retry_handler.execute_with_retry(mock_func)

        assert result == "success"
        assert retry_handler._circuit_breaker_open is False
        assert retry_handler._failure_count == 0

    def test_custom_retry_conditions(self, delays):
        """Test custom retry condition function."""

        def custom_retry_condition(exception):
            return isinstance(exception, ValueError)

        handler = RetryHandler(
            retry_condition=custom_retry_condition, sleep=delays.append
        )
        mock_func = Mock(side_effect=[ValueError("Custom error"), "success"])

        result = handler.execute_with_retry(mock_func)

        assert result == "success"
        assert mock_func.call_count == 2

    def test_retry_with_function_arguments(self, retry_handler):
        """Test retry handler preserves function arguments."""
        mock_func = Mock(side_effect=[StorageError("busy"), "success"])

        result = retry_handler.execute_with_retry(
            mock_func, "timerSession", {"projectId": "p-1"}
        )

        assert result == "success"
        mock_func.assert_any_call("timerSession", {"projectId": "p-1"})

    def test_retry_statistics_tracking(self, retry_handler):
        """Test that retry statistics are tracked correctly."""
        mock_func = Mock(side_effect=[StorageError("a"), StorageError("b"), "success"])

        retry_handler.execute_with_retry(mock_func)

        stats = retry_handler.get_retry_statistics()
        assert stats["total_calls"] == 1
        assert stats["total_retries"] == 2
        assert stats["total_failures"] == 0  # Ultimately successful

    def test_reset_circuit_breaker(self, retry_handler):
        """Test manual circuit breaker reset."""
        self._open_breaker(retry_handler)

        retry_handler.reset_circuit_breaker()

        assert retry_handler._circuit_breaker_open is False
        assert retry_handler._failure_count == 0

    def test_circuit_breaker_timed_by_injected_clock(self, fake_clock):
        """Test the breaker timeout follows the injected monotonic clock."""
        handler = RetryHandler(
            max_retries=0,
            circuit_breaker_threshold=2,
            circuit_breaker_timeout=30.0,
            sleep=fake_clock.sleep,
            monotonic=fake_clock.monotonic,
        )
        mock_func = self._open_breaker(handler)
        assert handler._circuit_breaker_opened_at == fake_clock.monotonic()

        fake_clock.advance(29)
        with pytest.raises(CircuitBreakerError):
            handler.execute_with_retry(mock_func)

        fake_clock.advance(1)
        mock_func.side_effect = None
        mock_func.return_value = "success"

        assert handler.execute_with_retry(mock_func) == "success"
        assert handler._circuit_breaker_open is False
