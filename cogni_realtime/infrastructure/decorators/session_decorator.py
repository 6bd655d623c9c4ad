"""Session guard decorator for outbound operations."""

import logging
from functools import wraps
from typing import Callable

from ...domain.exceptions import RealtimeError

_LOGGER = logging.getLogger(__name__)


def require_session(operation_name: str):
    """Decorator to guard a synchronous send operation.

    The wrapped method runs only when the owner is connected and bound to a
    session. Otherwise it returns False without side effects. Errors raised
    while emitting are logged and turned into False; the operation never
    raises.

    The decorated object must expose ``is_connected`` and ``session_key``.

    Args:
        operation_name: Human-readable operation name for logging

    Example:
        @require_session("send message")
        def send_message(self, content: str) -> bool:
            # Connected and bound - just emit
            self._emit(EventKind.SEND_MESSAGE, content=content)
            return True
    """

    def decorator(func: Callable):
        @wraps(func)
        def wrapper(self, *args, **kwargs):
            if not self.is_connected:
                _LOGGER.debug("Cannot %s: not connected", operation_name)
                return False

            if self.session_key is None:
                _LOGGER.debug("Cannot %s: no session joined", operation_name)
                return False

            try:
                return func(self, *args, **kwargs)
            except RealtimeError as err:
                _LOGGER.warning("Cannot %s: %s", operation_name, err)
                return False
            except Exception as err:  # pylint: disable=broad-exception-caught
                _LOGGER.error(
                    "Cannot %s: unexpected error: %s",
                    operation_name,
                    err,
                    exc_info=True,
                )
                return False

        return wrapper

    return decorator
