"""Token bucket flood guard for inbound WebSocket frames."""

from presence.clock import Clock, MonotonicClock


class TokenBucket:
    """Rate limiter using the token bucket algorithm.

    Tokens refill at a constant rate up to the burst capacity and each
    consume() takes one. This caps total inbound frames per connection;
    the movement throttle separately decides which pose updates count.
    """

    def __init__(self, rate: float, burst: int, clock: Clock | None = None) -> None:
        self._rate = rate
        self._burst = burst
        self._clock = clock or MonotonicClock()
        self._tokens = float(burst)
        self._last_refill = self._clock.now_ms()

    def consume(self) -> bool:
        """Try to take one token. Returns False when the caller should throttle."""
        now = self._clock.now_ms()
        elapsed_seconds = (now - self._last_refill) / 1000.0
        self._tokens = min(self._burst, self._tokens + elapsed_seconds * self._rate)
        self._last_refill = now

        if self._tokens >= 1.0:
            self._tokens -= 1.0
            return True
        return False
