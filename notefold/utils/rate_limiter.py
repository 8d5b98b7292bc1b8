# -*- coding: utf-8 -*-
"""
Rate limiter for external model calls

Inserts a fixed pause before every call and additionally enforces a sliding
60-second ceiling. Only keeps the pipeline under the provider's request rate;
nothing relies on it for correctness.

Usage:
    limiter = RateLimiter(delay_seconds=0.1, max_calls_per_minute=600)

    # Before each API call
    limiter.acquire()
    response = client.chat.completions.create(...)
"""

# Standard library
import logging
import threading
import time
from collections import deque

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Fixed-delay limiter with a sliding-window ceiling.

    The pipeline is single-threaded; the lock only keeps the counters
    consistent if a limiter is ever shared.
    """

    def __init__(self, delay_seconds: float = 0.1, max_calls_per_minute: int = 600):
        """
        Args:
            delay_seconds: Pause inserted before every call
            max_calls_per_minute: Maximum calls allowed per 60-second window
        """
        self.delay_seconds = delay_seconds
        self.max_calls = max_calls_per_minute
        self.calls = deque()
        self.lock = threading.RLock()

        self.total_calls = 0
        self.total_wait_time = 0.0

    def acquire(self) -> float:
        """
        Sleep the fixed delay, then wait for window capacity if needed.

        Returns:
            Total wait time in seconds
        """
        with self.lock:
            wait_time = 0.0
            if self.delay_seconds > 0:
                time.sleep(self.delay_seconds)
                wait_time += self.delay_seconds

            now = time.time()
            while self.calls and now - self.calls[0] > 60:
                self.calls.popleft()

            if self.max_calls and len(self.calls) >= self.max_calls:
                window_wait = 60 - (now - self.calls[0]) + 0.1
                logger.debug(f"Rate ceiling reached, waiting {window_wait:.2f}s")
                time.sleep(window_wait)
                wait_time += window_wait
                self.calls.popleft()
                now = time.time()

            self.calls.append(now)
            self.total_calls += 1
            self.total_wait_time += wait_time
            return wait_time

    def get_stats(self) -> dict:
        """Return total_calls, total_wait_time_sec and current window usage."""
        with self.lock:
            now = time.time()
            current_window = sum(1 for t in self.calls if now - t < 60)
            return {
                'total_calls': self.total_calls,
                'total_wait_time_sec': round(self.total_wait_time, 2),
                'current_window_usage': current_window,
                'max_capacity': self.max_calls,
            }
