"""Error handling decorators for standardized exception handling."""

import asyncio
import inspect
import logging
from functools import wraps
from typing import Any, Callable, Optional, Type

from socketio.exceptions import SocketIOError
from websockets.exceptions import WebSocketException

from ...domain.exceptions import ProtocolError, RealtimeError


def handle_transport_errors(
    operation_name: str,
    logger: logging.Logger = None,
    reraise: bool = True,
    default_return: Any = None,
    wrap_as: Optional[Type[RealtimeError]] = None,
):
    """Decorator for standardized transport error handling.

    Args:
        operation_name: Human-readable operation name for logging
        logger: Logger to use (defaults to function's module logger)
        reraise: Whether to re-raise exception after logging
        default_return: Value to return on error if not re-raising
        wrap_as: Re-raise library errors as this RealtimeError subclass
            (chained with ``from``); RealtimeErrors pass through unchanged

    Example:
        @handle_transport_errors("WebSocket open", wrap_as=TransportError)
        async def open(self, url, token, on_frame, on_close):
            # Clean implementation without try/except
            self._ws = await connect(url)
    """

    def _raise_or_return(err: Exception):
        if not reraise:
            return default_return
        if wrap_as is not None and not isinstance(err, RealtimeError):
            raise wrap_as(f"{operation_name} failed: {err}") from err
        raise err

    def decorator(func: Callable):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            log = logger or logging.getLogger(func.__module__)
            try:
                return await func(*args, **kwargs)
            except asyncio.CancelledError:
                raise
            except asyncio.TimeoutError as err:
                log.warning("%s timed out: %s", operation_name, err)
                return _raise_or_return(err)
            except ProtocolError as err:
                # Server-side rejection - log without stack trace
                log.error("%s protocol error: %s", operation_name, err)
                return _raise_or_return(err)
            except RealtimeError as err:
                log.warning("%s failed: %s", operation_name, err)
                return _raise_or_return(err)
            except WebSocketException as err:
                log.error("%s WebSocket error: %s", operation_name, err)
                return _raise_or_return(err)
            except SocketIOError as err:
                log.error("%s socket.io error: %s", operation_name, err)
                return _raise_or_return(err)
            except OSError as err:
                log.error("%s network error: %s", operation_name, err)
                return _raise_or_return(err)
            except Exception as err:  # pylint: disable=broad-exception-caught
                log.error(
                    "%s unexpected error: %s",
                    operation_name,
                    err,
                    exc_info=True,
                )
                return _raise_or_return(err)

        @wraps(func)
        def sync_wrapper(*args, **kwargs):
            log = logger or logging.getLogger(func.__module__)
            try:
                return func(*args, **kwargs)
            except Exception as err:  # pylint: disable=broad-exception-caught
                log.error(
                    "%s error: %s",
                    operation_name,
                    err,
                    exc_info=True,
                )
                return _raise_or_return(err)

        return async_wrapper if inspect.iscoroutinefunction(func) else sync_wrapper

    return decorator
