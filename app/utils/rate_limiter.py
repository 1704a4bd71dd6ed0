"""Rate Limiter - throttles collaborator API calls to stay within provider limits."""

import time
from collections import defaultdict
from threading import Lock


class RateLimiter:
    """Thread-safe sliding-window rate limiter."""

    def __init__(self, max_calls: int = 60, time_window: float = 60.0):
        """
        Initialize rate limiter.

        Args:
            max_calls: Maximum number of calls allowed in time_window
            time_window: Time window in seconds (default: 60 seconds)
        """
        self.max_calls = max_calls
        self.time_window = time_window
        self.calls = defaultdict(list)
        self.lock = Lock()

    def _prune(self, endpoint: str, now: float) -> list[float]:
        calls = self.calls[endpoint]
        calls[:] = [call_time for call_time in calls if now - call_time < self.time_window]
        return calls

    def wait_if_needed(self, endpoint: str = "default") -> float:
        """
        Block until a call to ``endpoint`` fits in the window, then record it.

        Args:
            endpoint: Endpoint identifier (for per-endpoint limiting)

        Returns:
            Seconds spent waiting
        """
        waited = 0.0
        with self.lock:
            now = time.time()
            calls = self._prune(endpoint, now)
            if len(calls) >= self.max_calls:
                wait_time = (calls[0] + self.time_window) - now
                if wait_time > 0:
                    time.sleep(wait_time)
                    waited = wait_time
                    now = time.time()
                    calls = self._prune(endpoint, now)
            calls.append(now)
        return waited


# One limiter per external capability, created on first use
_limiters: dict[str, RateLimiter] = {}
_limiters_lock = Lock()


def get_limiter(capability: str, max_calls: int = 60, time_window: float = 60.0) -> RateLimiter:
    """
    Get or create the shared rate limiter for a capability ("llm", "tts", "image", "music").

    Args:
        capability: Capability name
        max_calls: Calls per window, used only when the limiter is first created
        time_window: Window length in seconds

    Returns:
        Shared RateLimiter instance
    """
    with _limiters_lock:
        if capability not in _limiters:
            _limiters[capability] = RateLimiter(max_calls=max_calls, time_window=time_window)
        return _limiters[capability]
