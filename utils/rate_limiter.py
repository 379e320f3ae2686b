import time
import logging
import threading

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Minimum-delay rate limiter for text-generation API calls.

    The lock serializes wait() across threads, so persona calls running
    concurrently still keep min_delay apart.
    """

    def __init__(self, min_delay: float = 2.5):
        self.min_delay = min_delay
        self.last_call_time = 0.0
        self._lock = threading.Lock()

    def wait(self):
        """Block until at least min_delay seconds since last call."""
        with self._lock:
            elapsed = time.time() - self.last_call_time
            if elapsed < self.min_delay:
                sleep_time = self.min_delay - elapsed
                logger.debug(f"Rate limiter sleeping {sleep_time:.1f}s")
                time.sleep(sleep_time)
            self.last_call_time = time.time()

    def backoff(self, attempt: int):
        """Exponential backoff: sleep for min_delay * 2^attempt."""
        sleep_time = self.min_delay * (2 ** attempt)
        logger.warning(f"Backoff attempt {attempt}: sleeping {sleep_time:.1f}s")
        time.sleep(sleep_time)
