"""Presentation layer: composition root.

Wires configuration, token provider, transport and services into ready
connection managers. This layer depends on application, domain and
infrastructure layers but NOT vice versa.
"""

from .container import (
    DIContainer,
    create_container,
    get_shared_manager,
    reset_shared_managers,
)

__all__ = [
    "DIContainer",
    "create_container",
    "get_shared_manager",
    "reset_shared_managers",
]
