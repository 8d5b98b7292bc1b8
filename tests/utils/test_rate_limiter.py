"""
Rate limiter tests (time.sleep patched out).

Run: pytest tests/utils/test_rate_limiter.py -v
"""

from unittest.mock import patch

from notefold.utils.rate_limiter import RateLimiter


class TestRateLimiter:

    @patch('notefold.utils.rate_limiter.time.sleep')
    def test_fixed_delay_before_every_call(self, mock_sleep):
        limiter = RateLimiter(delay_seconds=0.1, max_calls_per_minute=100)

        limiter.acquire()
        limiter.acquire()

        assert mock_sleep.call_count == 2
        mock_sleep.assert_called_with(0.1)
        assert limiter.get_stats()['total_calls'] == 2

    @patch('notefold.utils.rate_limiter.time.sleep')
    def test_window_ceiling_waits(self, mock_sleep):
        limiter = RateLimiter(delay_seconds=0, max_calls_per_minute=2)

        limiter.acquire()
        limiter.acquire()
        waited = limiter.acquire()

        assert mock_sleep.call_count == 1
        assert waited > 0
