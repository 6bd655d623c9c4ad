"""ITokenProvider interface for bearer token sources."""

from abc import ABC, abstractmethod
from typing import Optional


class ITokenProvider(ABC):
    """Supplies a bearer token for the current user.

    The connection manager asks for a fresh token on every attempt and
    never caches one, so refreshed tokens are always observed.

    Example:
        >>> token = await provider.get_token()
        >>> if token is None:
        ...     # unauthenticated
    """

    @abstractmethod
    async def get_token(self) -> Optional[str]:
        """Return the current token, or None when unauthenticated."""
