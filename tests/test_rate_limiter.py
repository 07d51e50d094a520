"""Unit tests for the token bucket rate limiter."""

from unittest.mock import patch

import pytest

from localbiz.utils.rate_limiter import TokenBucket


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestTokenBucket:
    """Tests for TokenBucket."""

    @pytest.mark.unit
    def test_invalid_parameters(self):
        """Test that capacity and rate are validated."""
        with pytest.raises(ValueError):
            TokenBucket(capacity=0, refill_rate=1)
        with pytest.raises(ValueError):
            TokenBucket(capacity=1, refill_rate=0)

    @pytest.mark.unit
    def test_starts_full(self):
        """Test that a new bucket holds its full capacity."""
        bucket = TokenBucket(capacity=5, refill_rate=5, clock=FakeClock())
        assert bucket.tokens == 5

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_burst_up_to_capacity_without_waiting(self):
        """Test that capacity tokens are available immediately."""
        clock = FakeClock()
        bucket = TokenBucket(capacity=3, refill_rate=1, clock=clock)

        with patch("localbiz.utils.rate_limiter.asyncio.sleep") as mock_sleep:
            for _ in range(3):
                await bucket.acquire()

        mock_sleep.assert_not_called()
        assert bucket.tokens == 0

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_bucket_waits_for_deficit(self):
        """Test that an empty bucket sleeps exactly until one token refills."""
        clock = FakeClock()
        bucket = TokenBucket(capacity=1, refill_rate=4, clock=clock)
        waits = []

        async def fake_sleep(seconds):
            waits.append(seconds)
            clock.now += seconds

        with patch("localbiz.utils.rate_limiter.asyncio.sleep", side_effect=fake_sleep):
            await bucket.acquire()
            await bucket.acquire()

        assert waits == [pytest.approx(0.25)]

    @pytest.mark.unit
    def test_refill_is_capped_at_capacity(self):
        """Test that idle time never overfills the bucket."""
        clock = FakeClock()
        bucket = TokenBucket(capacity=2, refill_rate=10, clock=clock)
        bucket._tokens = 0
        clock.now = 60.0

        assert bucket.tokens == 2
