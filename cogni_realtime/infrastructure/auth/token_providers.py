"""Bearer token providers."""

import inspect
import logging
import os
from typing import Awaitable, Callable, Mapping, Optional, Union

from ...domain.interfaces import ITokenProvider

_LOGGER = logging.getLogger(__name__)

DEFAULT_TOKEN_ENV_VAR = "REALTIME_TOKEN"


class StaticTokenProvider(ITokenProvider):
    """Always returns the same token (scripts, tests)."""

    def __init__(self, token: Optional[str]):
        self._token = token

    async def get_token(self) -> Optional[str]:
        return self._token

    def set_token(self, token: Optional[str]) -> None:
        """Replace the token (e.g. after a refresh)."""
        self._token = token


class EnvironmentTokenProvider(ITokenProvider):
    """Reads the token from an environment variable on every call.

    Example:
        >>> provider = EnvironmentTokenProvider("REALTIME_TOKEN")
        >>> await provider.get_token()
    """

    def __init__(
        self,
        variable: str = DEFAULT_TOKEN_ENV_VAR,
        environ: Optional[Mapping[str, str]] = None,
    ):
        """Initialize provider.

        Args:
            variable: Environment variable holding the token
            environ: Mapping to read from (default ``os.environ``)
        """
        self._variable = variable
        self._environ = environ

    async def get_token(self) -> Optional[str]:
        environ = os.environ if self._environ is None else self._environ
        token = environ.get(self._variable)
        if not token:
            _LOGGER.debug("No token in $%s", self._variable)
            return None
        return token


TokenCallback = Callable[[], Union[Optional[str], Awaitable[Optional[str]]]]


class CallbackTokenProvider(ITokenProvider):
    """Delegates to a sync or async callable.

    Example:
        >>> provider = CallbackTokenProvider(session_store.access_token)
    """

    def __init__(self, callback: TokenCallback):
        self._callback = callback

    async def get_token(self) -> Optional[str]:
        result = self._callback()
        if inspect.isawaitable(result):
            result = await result
        return result
