"""Reconnect attempt counter entity."""

from dataclasses import dataclass


@dataclass
class ReconnectAttempt:
    """Counter of scheduled reconnect attempts.

    Invariants:
    - ``count`` resets to 0 on every successful connection
    - ``count`` increments by exactly one per scheduled retry
    - once ``count == max_attempts`` no further retry is scheduled

    A connection that drops before it was stable resumes from the count
    it succeeded with, so a server that accepts and immediately closes
    still backs off and eventually exhausts the retries.

    Attributes:
        max_attempts: Retry ceiling (N_max)
        count: Retries scheduled since the last success
        carried: Count at the last success, restored by ``resume``
    """

    max_attempts: int
    count: int = 0
    carried: int = 0

    def increment(self) -> int:
        """Record one more scheduled retry and return the new count."""
        self.count += 1
        return self.count

    def succeed(self) -> None:
        """Connection established: remember the count, then back to zero."""
        self.carried = self.count
        self.count = 0

    def resume(self) -> None:
        """Short-lived connection lost: continue from the remembered count."""
        self.count = self.carried

    def reset(self) -> None:
        """Back to zero and forget the carried count (explicit connect)."""
        self.count = 0
        self.carried = 0
