import time
import threading


class RateLimiter:
    """Thread-safe fixed delay before every call to one provider.

    Calls through the same limiter are serialized, so consecutive requests
    are also at least ``delay`` seconds apart.
    """

    def __init__(self, delay: float = 1.0):
        self.delay = delay
        self._lock = threading.Lock()

    def wait(self):
        if self.delay <= 0:
            return
        with self._lock:
            time.sleep(self.delay)


_host_limiters = {}
_registry_lock = threading.Lock()


def get_host_limiter(host: str, delay: float = 1.0) -> RateLimiter:
    """Get or create the limiter shared by every adapter calling *host*."""
    with _registry_lock:
        if host not in _host_limiters:
            _host_limiters[host] = RateLimiter(delay)
        return _host_limiters[host]
