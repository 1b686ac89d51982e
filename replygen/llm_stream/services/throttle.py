import time
from collections.abc import Callable


class BroadcastThrottle:
    """
    Rate limit for intermediate broadcasts of one streaming message.

    Usage:
        throttle = BroadcastThrottle(0.1)
        throttle.mark()              # at claim time
        if throttle.should_publish():
            await publish(...)
            throttle.mark()
    """

    def __init__(self, min_interval: float = 0.1, clock: Callable[[], float] = time.monotonic):
        self.min_interval = min_interval
        self._clock = clock
        self._last_sent: float | None = None

    def should_publish(self, now: float | None = None) -> bool:
        if self._last_sent is None:
            return True
        now = self._clock() if now is None else now
        return now - self._last_sent >= self.min_interval

    def mark(self, now: float | None = None) -> None:
        self._last_sent = self._clock() if now is None else now
