"""Rate Limiter - throttles TTS and footage API calls to stay under provider limits."""

import time
from collections import defaultdict
from threading import Lock
from typing import Optional


class RateLimiter:
    """Thread-safe sliding-window rate limiter shared by concurrent pipeline runs."""

    def __init__(self, max_calls: int = 60, time_window: float = 60.0):
        """
        Initialize rate limiter.

        Args:
            max_calls: Maximum number of calls allowed in time_window
            time_window: Time window in seconds (default: 60 seconds)
        """
        self.max_calls = max_calls
        self.time_window = time_window

        # Call timestamps per endpoint
        self.calls: dict[str, list[float]] = defaultdict(list)
        self.lock = Lock()

    def _prune(self, endpoint: str, now: float) -> list[float]:
        calls = self.calls[endpoint]
        calls[:] = [call_time for call_time in calls if now - call_time < self.time_window]
        return calls

    def wait_if_needed(self, endpoint: str = "default") -> float:
        """
        Block until a call to endpoint fits in the window, then record it.

        Args:
            endpoint: Endpoint identifier (for per-endpoint limiting)

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        with self.lock:
            now = time.monotonic()
            calls = self._prune(endpoint, now)

            if len(calls) >= self.max_calls:
                wait_time = (calls[0] + self.time_window) - now
                if wait_time > 0:
                    time.sleep(wait_time)
                    waited = wait_time
                    now = time.monotonic()
                    calls = self._prune(endpoint, now)

            calls.append(now)
        return waited

    def can_proceed(self, endpoint: str = "default") -> bool:
        """
        Check if a call can proceed without waiting.

        Args:
            endpoint: Endpoint identifier

        Returns:
            True if call can proceed immediately
        """
        with self.lock:
            return len(self._prune(endpoint, time.monotonic())) < self.max_calls

    def reset(self, endpoint: Optional[str] = None) -> None:
        """
        Reset rate limiter for an endpoint or all endpoints.

        Args:
            endpoint: Endpoint identifier, or None for all endpoints
        """
        with self.lock:
            if endpoint:
                self.calls[endpoint] = []
            else:
                self.calls.clear()


# Shared limiters, one per API and limit
_limiters: dict[tuple[str, int, float], RateLimiter] = {}
_registry_lock = Lock()


def get_limiter(api: str, max_calls: int, time_window: float = 60.0) -> RateLimiter:
    """
    Get or create the shared limiter for an API at a given limit.

    Callers passing the same limit share one window; a different limit gets
    its own limiter rather than the first caller's.
    """
    key = (api, max_calls, time_window)
    with _registry_lock:
        limiter = _limiters.get(key)
        if limiter is None:
            limiter = RateLimiter(max_calls=max_calls, time_window=time_window)
            _limiters[key] = limiter
        return limiter


def get_elevenlabs_limiter(max_calls: int = 100, time_window: float = 60.0) -> RateLimiter:
    """Get the ElevenLabs rate limiter for this limit."""
    return get_limiter("elevenlabs", max_calls, time_window)


def get_pexels_limiter(max_calls: int = 200, time_window: float = 60.0) -> RateLimiter:
    """Get the Pexels rate limiter for this limit."""
    return get_limiter("pexels", max_calls, time_window)
