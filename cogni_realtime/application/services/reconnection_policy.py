"""Reconnection policy.

Pure backoff decisions. This module contains NO timers, NO async and
NO side effects; the connection manager owns the single retry timer.
"""

from dataclasses import dataclass

from ...const import (
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_RECONNECT_DELAY_MS,
    DEFAULT_RECONNECT_MAX_DELAY_MS,
    DEFAULT_RECONNECT_MULTIPLIER,
)

_MAX_EXPONENT = 64


@dataclass(frozen=True)
class ReconnectionPolicy:
    """Exponential backoff with a fixed base delay, multiplier and ceiling.

    delay(n) = min(base_delay_ms * multiplier ** (n - 1), max_delay_ms)

    Attributes:
        base_delay_ms: Delay before the first retry
        multiplier: Growth factor per attempt
        max_delay_ms: Ceiling applied to every delay
        max_attempts: Retries allowed before giving up

    Example:
        >>> policy = ReconnectionPolicy(base_delay_ms=2000, multiplier=1.5)
        >>> [policy.next_delay(n) for n in (1, 2, 3)]
        [2000, 3000, 4500]
    """

    base_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS
    multiplier: float = DEFAULT_RECONNECT_MULTIPLIER
    max_delay_ms: int = DEFAULT_RECONNECT_MAX_DELAY_MS
    max_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS

    def __post_init__(self):
        if self.base_delay_ms < 0:
            raise ValueError("base_delay_ms must be >= 0")
        if self.multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if self.max_delay_ms < 0:
            raise ValueError("max_delay_ms must be >= 0")
        if self.max_attempts < 0:
            raise ValueError("max_attempts must be >= 0")

    def next_delay(self, attempt: int) -> int:
        """Delay in milliseconds before retry number ``attempt`` (1-based)."""
        if attempt < 1:
            raise ValueError(f"attempt must be >= 1, got {attempt}")
        # Exponent capped so huge attempt numbers cannot overflow a float
        exponent = min(attempt - 1, _MAX_EXPONENT)
        delay = self.base_delay_ms * self.multiplier**exponent
        return int(round(min(delay, self.max_delay_ms)))

    @staticmethod
    def should_retry(attempt: int, max_attempts: int) -> bool:
        """True if another retry may be scheduled.

        attempt = number of retries already scheduled
        """
        return attempt < max_attempts
