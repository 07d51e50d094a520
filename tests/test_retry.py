"""Unit tests for retry_with_backoff."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from localbiz.exceptions import PermanentServiceError, TransientServiceError
from localbiz.utils.retry import retry_with_backoff


class TestRetryWithBackoff:
    """Tests for exponential backoff retries."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        """Test that a successful call is not retried."""
        func = AsyncMock(return_value="ok")

        result = await retry_with_backoff(func, "a", key="b")

        assert result == "ok"
        func.assert_awaited_once_with("a", key="b")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_supports_sync_functions(self):
        """Test that plain functions are called without awaiting."""
        func = MagicMock(return_value=42)

        assert await retry_with_backoff(func) == 42

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_retries_transient_with_exponential_delays(self):
        """Test delays of base, 2x base between attempts."""
        func = AsyncMock(
            side_effect=[TransientServiceError("503"), TransientServiceError("503"), "done"]
        )

        with patch("localbiz.utils.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            result = await retry_with_backoff(func, max_attempts=3, base_delay=2.0)

        assert result == "done"
        assert func.await_count == 3
        assert [call.args[0] for call in mock_sleep.await_args_list] == [2.0, 4.0]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_raises_last_error_after_exhausting_attempts(self):
        """Test that the final transient error propagates."""
        func = AsyncMock(side_effect=TransientServiceError("still down"))

        with patch("localbiz.utils.retry.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(TransientServiceError, match="still down"):
                await retry_with_backoff(func, max_attempts=2, base_delay=1.0)

        assert func.await_count == 2
        assert mock_sleep.await_count == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_permanent_errors_are_not_retried(self):
        """Test that errors outside retry_on propagate immediately."""
        func = AsyncMock(side_effect=PermanentServiceError("401"))

        with pytest.raises(PermanentServiceError):
            await retry_with_backoff(func, max_attempts=3, base_delay=0)

        assert func.await_count == 1

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_custom_retry_on(self):
        """Test retrying a caller-chosen exception type."""
        func = AsyncMock(side_effect=[ValueError("flaky"), "ok"])

        result = await retry_with_backoff(func, base_delay=0, retry_on=(ValueError,))

        assert result == "ok"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_zero_attempts_rejected(self):
        """Test that max_attempts below 1 is an error."""
        with pytest.raises(ValueError):
            await retry_with_backoff(AsyncMock(), max_attempts=0)
