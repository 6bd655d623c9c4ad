"""Authentication guard run before every connect attempt."""

import logging
import time
from typing import Any, Callable, Dict, Optional

import jwt

from ...domain.exceptions import AuthError

_LOGGER = logging.getLogger(__name__)


class AuthGuard:
    """Validates a bearer token structurally and for expiry.

    The signature is not verified: the client does not hold the signing
    key, the server does that. The guard only rejects tokens already known
    to be unusable so no network connection is attempted with them.

    Checks:
    - token present and non-empty
    - three dot-separated segments with decodable JSON claims
    - ``exp`` claim (when present) later than now minus ``leeway_s``

    Example:
        >>> guard = AuthGuard()
        >>> claims = guard.validate(token)
        >>> claims["sub"]
        'user-123'
    """

    def __init__(
        self,
        leeway_s: int = 0,
        clock: Callable[[], float] = time.time,
    ):
        """Initialize guard.

        Args:
            leeway_s: Clock skew tolerated on ``exp``
            clock: Returns the current UNIX time (injectable for tests)
        """
        self._leeway_s = leeway_s
        self._clock = clock

    def validate(self, token: Optional[str]) -> Dict[str, Any]:
        """Validate ``token`` and return its claims.

        Raises:
            AuthError: If the token is missing, malformed or expired
        """
        if token is None or not str(token).strip():
            raise AuthError("No authentication token available")

        token = str(token).strip()
        if token.count(".") != 2:
            raise AuthError("Invalid token format")

        try:
            claims = jwt.decode(
                token,
                options={"verify_signature": False, "verify_exp": False},
            )
        except jwt.PyJWTError as err:
            raise AuthError(f"Invalid token: {err}") from err

        exp = claims.get("exp")
        if exp is not None:
            try:
                expires_at = float(exp)
            except (TypeError, ValueError) as err:
                raise AuthError("Invalid token expiry claim") from err

            if self._clock() >= expires_at + self._leeway_s:
                raise AuthError("Token has expired")

        _LOGGER.debug("Token accepted for subject %s", claims.get("sub"))
        return claims
