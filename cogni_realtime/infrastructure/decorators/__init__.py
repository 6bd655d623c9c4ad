"""Infrastructure layer decorators."""

from .error_handler import handle_transport_errors
from .session_decorator import require_session

__all__ = [
    "handle_transport_errors",
    "require_session",
]
