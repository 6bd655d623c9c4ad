"""Configuration for the realtime connection layer.

Values come from environment variables or a YAML file and are validated
with a voluptuous schema before a frozen ``RealtimeConfig`` is built.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import voluptuous as vol
import yaml

from .const import (
    DEFAULT_BASE_URL,
    DEFAULT_CONNECT_TIMEOUT_MS,
    DEFAULT_MAX_RECONNECT_ATTEMPTS,
    DEFAULT_NAMESPACE,
    DEFAULT_RECONNECT_DELAY_MS,
    DEFAULT_RECONNECT_MAX_DELAY_MS,
    DEFAULT_RECONNECT_MULTIPLIER,
    DEFAULT_SOCKETIO_PATH,
    DEFAULT_STABLE_CONNECTION_MS,
    DEFAULT_TOKEN_LEEWAY_S,
    DEFAULT_WEBSOCKET_PATH,
    TRANSPORT_SOCKETIO,
    TRANSPORT_WEBSOCKET,
    TRANSPORTS,
)
from .domain.exceptions import ConfigError

_LOGGER = logging.getLogger(__name__)

# Environment variable -> config field
ENV_VARS = {
    "REALTIME_BASE_URL": "base_url",
    "REALTIME_PATH": "path",
    "REALTIME_TRANSPORT": "transport",
    "REALTIME_NAMESPACE": "namespace",
    "REALTIME_MAX_RECONNECT_ATTEMPTS": "max_reconnect_attempts",
    "REALTIME_RECONNECT_DELAY_MS": "reconnect_delay_ms",
    "REALTIME_RECONNECT_MULTIPLIER": "reconnect_multiplier",
    "REALTIME_RECONNECT_MAX_DELAY_MS": "reconnect_max_delay_ms",
    "REALTIME_CONNECT_TIMEOUT_MS": "connect_timeout_ms",
    "REALTIME_STABLE_CONNECTION_MS": "stable_connection_ms",
    "REALTIME_AUTO_RECONNECT": "auto_reconnect",
    "REALTIME_TOKEN_LEEWAY_S": "token_leeway_s",
}


def _url(value: Any) -> str:
    value = str(value).strip().rstrip("/")
    if not value.startswith(("http://", "https://", "ws://", "wss://")):
        raise vol.Invalid(f"expected an http(s) or ws(s) URL, got {value!r}")
    return value


def _path(value: Any) -> str:
    value = str(value).strip()
    return value if value.startswith("/") else f"/{value}"


CONFIG_SCHEMA = vol.Schema(
    {
        vol.Optional("base_url", default=DEFAULT_BASE_URL): _url,
        vol.Optional("path"): vol.Any(None, _path),
        vol.Optional("transport", default=TRANSPORT_WEBSOCKET): vol.All(
            vol.Lower, vol.In(TRANSPORTS)
        ),
        vol.Optional("namespace", default=DEFAULT_NAMESPACE): _path,
        vol.Optional(
            "max_reconnect_attempts", default=DEFAULT_MAX_RECONNECT_ATTEMPTS
        ): vol.All(vol.Coerce(int), vol.Range(min=0)),
        vol.Optional("reconnect_delay_ms", default=DEFAULT_RECONNECT_DELAY_MS): vol.All(
            vol.Coerce(int), vol.Range(min=0)
        ),
        vol.Optional(
            "reconnect_multiplier", default=DEFAULT_RECONNECT_MULTIPLIER
        ): vol.All(vol.Coerce(float), vol.Range(min=1.0)),
        vol.Optional(
            "reconnect_max_delay_ms", default=DEFAULT_RECONNECT_MAX_DELAY_MS
        ): vol.All(vol.Coerce(int), vol.Range(min=0)),
        vol.Optional("connect_timeout_ms", default=DEFAULT_CONNECT_TIMEOUT_MS): vol.All(
            vol.Coerce(int), vol.Range(min=1)
        ),
        vol.Optional(
            "stable_connection_ms", default=DEFAULT_STABLE_CONNECTION_MS
        ): vol.All(vol.Coerce(int), vol.Range(min=0)),
        vol.Optional("auto_reconnect", default=True): vol.Boolean(),
        vol.Optional("token_leeway_s", default=DEFAULT_TOKEN_LEEWAY_S): vol.All(
            vol.Coerce(int), vol.Range(min=0)
        ),
    }
)


@dataclass(frozen=True)
class RealtimeConfig:
    """Immutable realtime connection configuration.

    Constructed once at startup and passed to the composition root.

    Attributes:
        base_url: HTTP(S) base URL of the realtime server
        path: Realtime endpoint path (defaults depend on the transport)
        transport: ``websocket`` (raw JSON frames) or ``socketio``
        namespace: socket.io namespace (ignored by the websocket transport)
        max_reconnect_attempts: Retries scheduled before FAILED
        reconnect_delay_ms: Backoff base delay
        reconnect_multiplier: Backoff multiplier per attempt
        reconnect_max_delay_ms: Backoff ceiling
        connect_timeout_ms: Bound on waiting for the transport to open
        stable_connection_ms: Uptime after which a drop starts a fresh
            retry sequence (shorter drops keep backing off)
        auto_reconnect: Retry after drops (False -> DISCONNECTED)
        token_leeway_s: Clock skew tolerated on the token ``exp`` claim
    """

    base_url: str = DEFAULT_BASE_URL
    path: str = DEFAULT_WEBSOCKET_PATH
    transport: str = TRANSPORT_WEBSOCKET
    namespace: str = DEFAULT_NAMESPACE
    max_reconnect_attempts: int = DEFAULT_MAX_RECONNECT_ATTEMPTS
    reconnect_delay_ms: int = DEFAULT_RECONNECT_DELAY_MS
    reconnect_multiplier: float = DEFAULT_RECONNECT_MULTIPLIER
    reconnect_max_delay_ms: int = DEFAULT_RECONNECT_MAX_DELAY_MS
    connect_timeout_ms: int = DEFAULT_CONNECT_TIMEOUT_MS
    stable_connection_ms: int = DEFAULT_STABLE_CONNECTION_MS
    auto_reconnect: bool = True
    token_leeway_s: int = DEFAULT_TOKEN_LEEWAY_S

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    @property
    def connect_timeout(self) -> float:
        """Connect timeout in seconds."""
        return self.connect_timeout_ms / 1000

    @property
    def stable_connection(self) -> float:
        """Stable-connection threshold in seconds."""
        return self.stable_connection_ms / 1000

    def websocket_url(self) -> str:
        """``ws://``/``wss://`` URL of the realtime endpoint."""
        base = self.base_url.replace("https://", "wss://").replace(
            "http://", "ws://"
        )
        return f"{base}{self.path}"

    def endpoint_url(self) -> str:
        """URL handed to the configured transport's ``open``.

        The raw WebSocket transport gets the full ``ws(s)://`` endpoint; the
        socket.io client gets the HTTP base URL and is told the path itself.
        """
        if self.transport == TRANSPORT_SOCKETIO:
            return self.base_url
        return self.websocket_url()

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @staticmethod
    def from_mapping(data: Mapping[str, Any]) -> RealtimeConfig:
        """Validate a mapping and build a config.

        Raises:
            ConfigError: If any value fails validation
        """
        try:
            values = CONFIG_SCHEMA(dict(data))
        except vol.Invalid as err:
            raise ConfigError(f"Invalid realtime configuration: {err}") from err

        if values.get("path") is None:
            values["path"] = (
                DEFAULT_SOCKETIO_PATH
                if values["transport"] == TRANSPORT_SOCKETIO
                else DEFAULT_WEBSOCKET_PATH
            )
        return RealtimeConfig(**values)

    @staticmethod
    def load_from_env(environ: Mapping[str, str] | None = None) -> RealtimeConfig:
        """Load configuration from environment variables.

        Unset variables fall back to the documented defaults.
        """
        environ = os.environ if environ is None else environ
        data = {
            field_name: environ[var]
            for var, field_name in ENV_VARS.items()
            if environ.get(var) not in (None, "")
        }
        return RealtimeConfig.from_mapping(data)

    @staticmethod
    def load_from_yaml(path: str | Path) -> RealtimeConfig:
        """Load configuration from a YAML file.

        The file may hold the options at top level or under ``realtime:``.

        Raises:
            ConfigError: If the file is missing, unreadable or invalid
        """
        config_file = Path(path)
        if not config_file.exists():
            raise ConfigError(f"Configuration file not found: {config_file}")

        try:
            data = yaml.safe_load(config_file.read_text(encoding="utf-8"))
        except yaml.YAMLError as err:
            raise ConfigError(f"Invalid YAML: {err}") from err

        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise ConfigError("Configuration file must contain a mapping")

        data = data.get("realtime", data)
        _LOGGER.debug("Loaded realtime config from %s", config_file)
        return RealtimeConfig.from_mapping(data)
