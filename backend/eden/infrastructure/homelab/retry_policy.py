"""Retry policy for homelab API requests."""

from collections.abc import Callable
from dataclasses import dataclass, field

DelayFn = Callable[[int], float]


def linear_backoff(base_delay: float) -> DelayFn:
    """Delay of ``base_delay * attempt`` seconds after the given failed attempt."""

    def _delay(attempt: int) -> float:
        return base_delay * attempt

    return _delay


@dataclass(frozen=True)
class RetryPolicy:
    """``max_attempts`` tries in total; ``delay_fn(n)`` is the pause after attempt ``n``."""

    max_attempts: int = 3
    delay_fn: DelayFn = field(default_factory=lambda: linear_backoff(1.0))

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.max_attempts

    def delay_after(self, attempt: int) -> float:
        return max(0.0, self.delay_fn(attempt))

    def delays(self) -> list[float]:
        """Pauses between consecutive attempts (``max_attempts - 1`` values)."""
        return [self.delay_after(attempt) for attempt in range(1, self.max_attempts)]
