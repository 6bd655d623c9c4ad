"""Custom exceptions for the realtime connection layer.

This module defines the error taxonomy used by the connection manager.
Each class maps to one handling policy:

- AuthError: fatal for the current attempt, never retried
- TransportError: retried according to the reconnection policy
- ProtocolError: connection stays up, surfaced through the ``error`` event
- ExhaustionError: reconnect attempts used up, manager enters FAILED
"""

from typing import Optional


class RealtimeError(Exception):
    """Base class for all realtime connection errors."""


class ConfigError(RealtimeError):
    """Configuration values are missing or invalid."""


class AuthError(RealtimeError):
    """No token, or the token is malformed or expired.

    Raised by the authentication guard before any transport is opened.
    The manager must never retry with a credential already known to be bad.

    Example:
        >>> raise AuthError("Token has expired")
    """


class TransportError(RealtimeError):
    """Connection refused, timed out, or dropped mid-session.

    Feeds the reconnection policy like any other failure.
    """


class ProtocolError(RealtimeError):
    """Server rejected a join/send, or sent a frame we cannot decode.

    The transport is healthy; the error is surfaced to subscribers through
    the ``error`` event kind.

    Attributes:
        event: Wire event name the error relates to, if known
    """

    def __init__(self, message: str, event: Optional[str] = None):
        super().__init__(message)
        self.event = event


class ExhaustionError(RealtimeError):
    """Reconnect attempts exhausted.

    Attributes:
        attempts: Number of retries that were scheduled
    """

    def __init__(self, message: str, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts
