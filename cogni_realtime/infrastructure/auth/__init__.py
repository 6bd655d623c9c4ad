"""Token provider implementations."""

from .token_providers import (
    CallbackTokenProvider,
    EnvironmentTokenProvider,
    StaticTokenProvider,
)

__all__ = [
    "CallbackTokenProvider",
    "EnvironmentTokenProvider",
    "StaticTokenProvider",
]
