"""Dependency Injection Container.

This module implements a simple DI container using dataclasses.
The container holds all dependencies of one realtime channel and provides
factory functions for creating the full dependency graph.

Shared managers (one per purpose: chat, events, tutor) live here and only
here; the rest of the package never creates module-level instances.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from ..config import RealtimeConfig
from ..const import PURPOSE_CHAT, PURPOSE_EVENTS, PURPOSE_TUTOR, TRANSPORT_SOCKETIO
from ..domain.value_objects import EVENTS, GROUP_CHAT, TUTOR, ChannelProfile

_LOGGER = logging.getLogger(__name__)

PROFILES: Dict[str, ChannelProfile] = {
    PURPOSE_CHAT: GROUP_CHAT,
    PURPOSE_EVENTS: EVENTS,
    PURPOSE_TUTOR: TUTOR,
}

_shared_managers: Dict[str, Any] = {}


@dataclass
class DIContainer:
    """Dependency Injection Container.

    Attributes:
        config: Realtime configuration
        profile: Channel vocabulary served by the manager

        # Infrastructure Layer
        token_provider: ITokenProvider implementation
        transport_factory: Builds one ITransport per connection attempt
        connection_manager: IConnectionManager implementation

        # Application Layer
        policy: Reconnection policy
        registry: Listener registry
        auth_guard: Token guard

    Example:
        >>> container = create_container(config, token_provider, GROUP_CHAT)
        >>> manager = container.connection_manager
    """

    # Core
    config: RealtimeConfig
    profile: ChannelProfile

    # Infrastructure Layer
    token_provider: Optional[Any] = None  # ITokenProvider
    transport_factory: Optional[Callable[[], Any]] = None
    connection_manager: Optional[Any] = None  # IConnectionManager

    # Application Layer
    policy: Optional[Any] = None  # ReconnectionPolicy
    registry: Optional[Any] = None  # ListenerRegistry
    auth_guard: Optional[Any] = None  # AuthGuard


def create_container(
    config: RealtimeConfig,
    token_provider: Any,
    profile: ChannelProfile = EVENTS,
    transport_factory: Optional[Callable[[], Any]] = None,
) -> DIContainer:
    """Factory function to create fully-wired DI container.

    Args:
        config: Realtime configuration
        token_provider: ITokenProvider implementation
        profile: Channel profile (default EVENTS)
        transport_factory: Override the transport chosen from ``config``

    Returns:
        Fully-wired DIContainer

    Example:
        >>> config = RealtimeConfig.load_from_env()
        >>> container = create_container(config, EnvironmentTokenProvider(), TUTOR)
        >>> await container.connection_manager.connect(session_id)
    """
    container = DIContainer(config=config, profile=profile)

    # Application Layer
    container.policy = _create_policy(config)
    container.registry = _create_registry()
    container.auth_guard = _create_auth_guard(config)

    # Infrastructure Layer
    container.token_provider = token_provider
    container.transport_factory = transport_factory or _create_transport_factory(
        config
    )
    container.connection_manager = _create_connection_manager(container)

    return container


def get_shared_manager(
    purpose: str,
    token_provider: Any = None,
    config: Optional[RealtimeConfig] = None,
    transport_factory: Optional[Callable[[], Any]] = None,
) -> Any:
    """Return the process-wide manager for ``purpose``, creating it once.

    Args:
        purpose: ``chat``, ``events`` or ``tutor``
        token_provider: Required on first use of a purpose
        config: Configuration (default loaded from the environment)
        transport_factory: Override the transport chosen from ``config``

    Raises:
        ValueError: Unknown purpose, or no token provider on first use
    """
    if purpose not in PROFILES:
        raise ValueError(
            f"Unknown purpose {purpose!r}, expected one of {sorted(PROFILES)}"
        )

    manager = _shared_managers.get(purpose)
    if manager is not None:
        return manager

    if token_provider is None:
        raise ValueError(f"A token provider is required to create the {purpose} manager")

    container = create_container(
        config or RealtimeConfig.load_from_env(),
        token_provider,
        PROFILES[purpose],
        transport_factory=transport_factory,
    )
    _shared_managers[purpose] = container.connection_manager
    _LOGGER.debug("Created shared %s connection manager", purpose)
    return container.connection_manager


def reset_shared_managers() -> None:
    """Disconnect and forget every shared manager."""
    for purpose, manager in list(_shared_managers.items()):
        manager.disconnect()
        _LOGGER.debug("Reset shared %s connection manager", purpose)
    _shared_managers.clear()


# Application Layer Factory Functions


def _create_policy(config: RealtimeConfig) -> Any:
    """Create reconnection policy from config."""
    from ..application.services import ReconnectionPolicy

    return ReconnectionPolicy(
        base_delay_ms=config.reconnect_delay_ms,
        multiplier=config.reconnect_multiplier,
        max_delay_ms=config.reconnect_max_delay_ms,
        max_attempts=config.max_reconnect_attempts,
    )


def _create_registry() -> Any:
    from ..application.services import ListenerRegistry

    return ListenerRegistry()


def _create_auth_guard(config: RealtimeConfig) -> Any:
    from ..application.services import AuthGuard

    return AuthGuard(leeway_s=config.token_leeway_s)


# Infrastructure Layer Factory Functions


def _create_transport_factory(config: RealtimeConfig) -> Callable[[], Any]:
    """Create the transport factory for the configured transport.

    Returns:
        Zero-argument callable building a fresh ITransport
    """
    if config.transport == TRANSPORT_SOCKETIO:
        from ..infrastructure.transport import SocketIOTransport

        def _socketio() -> Any:
            return SocketIOTransport(
                namespace=config.namespace, socketio_path=config.path
            )

        return _socketio

    from ..infrastructure.transport import WebSocketTransport

    return WebSocketTransport


def _create_connection_manager(container: DIContainer) -> Any:
    """Create connection manager.

    Args:
        container: Container with policy, registry, guard and transport wired

    Returns:
        IConnectionManager implementation (ConnectionManager)
    """
    from ..infrastructure.transport import ConnectionManager

    return ConnectionManager(
        container.config,
        container.token_provider,
        container.transport_factory,
        profile=container.profile,
        policy=container.policy,
        registry=container.registry,
        auth_guard=container.auth_guard,
    )
