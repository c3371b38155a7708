"""Connection settings for pytasmota."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any, Literal

from pytasmota._constants import WS_PATH, WS_PORT, WSS_PORT
from pytasmota.exceptions import TasmotaConfigError

TransportKind = Literal["websockets", "tcp"]


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class ConnectionSettings:
    """Broker connection settings.

    The core only reads these; they are owned and persisted by the
    surrounding application.

    Parameters
    ----------
    host : str
        Broker host name (no scheme, no port).
    port : int or None
        Broker port. ``None`` selects the broker's WebSocket default:
        8083 for plaintext, 8884 for TLS.
    username : str
        Broker username (may be empty for anonymous brokers).
    password : str
        Broker password.
    use_tls : bool
        Connect over TLS (``wss://``). Broker certificates are not verified,
        matching how self-hosted brokers with self-signed certificates are
        usually deployed.
    ws_path : str
        WebSocket endpoint path on the broker.
    transport : str
        ``"websockets"`` (default) or ``"tcp"`` for a plain MQTT socket.
    """

    host: str
    port: int | None = None
    username: str = ""
    password: str = ""
    use_tls: bool = False
    ws_path: str = WS_PATH
    transport: TransportKind = "websockets"

    @property
    def resolved_port(self) -> int:
        if self.port is not None:
            return self.port
        return WSS_PORT if self.use_tls else WS_PORT

    @property
    def url(self) -> str:
        """Broker URL for display and logging."""
        if self.transport == "tcp":
            scheme = "mqtts" if self.use_tls else "mqtt"
            return f"{scheme}://{self.host}:{self.resolved_port}"
        scheme = "wss" if self.use_tls else "ws"
        return f"{scheme}://{self.host}:{self.resolved_port}{self.ws_path}"

    def validate(self) -> ConnectionSettings:
        """Return ``self`` or raise :class:`TasmotaConfigError`."""
        host = self.host.strip()
        if not host:
            raise TasmotaConfigError("Broker host is empty")
        if "://" in host or "/" in host:
            raise TasmotaConfigError(f"Broker host must be a bare host name, got {self.host!r}")
        port = self.resolved_port
        if not 0 < port < 65536:
            raise TasmotaConfigError(f"Broker port out of range: {port}")
        if self.transport not in ("websockets", "tcp"):
            raise TasmotaConfigError(f"Unsupported transport: {self.transport!r}")
        return self

    @classmethod
    def from_env(cls, **overrides: Any) -> ConnectionSettings:
        """Create settings from environment variables.

        Reads ``TASMOTA_MQTT_HOST`` plus optional ``TASMOTA_MQTT_PORT``,
        ``TASMOTA_MQTT_USERNAME``, ``TASMOTA_MQTT_PASSWORD``,
        ``TASMOTA_MQTT_USE_TLS``, ``TASMOTA_MQTT_WS_PATH`` and
        ``TASMOTA_MQTT_TRANSPORT``. Explicit keyword arguments override
        environment values.
        """
        env = os.environ

        _ENV_MAP = {
            "TASMOTA_MQTT_HOST": "host",
            "TASMOTA_MQTT_USERNAME": "username",
            "TASMOTA_MQTT_PASSWORD": "password",
            "TASMOTA_MQTT_WS_PATH": "ws_path",
            "TASMOTA_MQTT_TRANSPORT": "transport",
        }
        kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_MAP.items():
            val = env.get(env_key)
            if val is not None:
                kwargs[field_name] = val

        port_env = env.get("TASMOTA_MQTT_PORT")
        if port_env is not None and "port" not in overrides:
            try:
                kwargs["port"] = int(port_env)
            except ValueError as exc:
                raise TasmotaConfigError(f"TASMOTA_MQTT_PORT is not an integer: {port_env!r}") from exc

        if "use_tls" not in overrides:
            kwargs["use_tls"] = _env_bool(env.get("TASMOTA_MQTT_USE_TLS"), False)

        kwargs.update(overrides)
        if "host" not in kwargs:
            raise TasmotaConfigError("TASMOTA_MQTT_HOST is not set")
        return cls(**kwargs)

    @classmethod
    def from_blob(cls, blob: Mapping[str, Any]) -> ConnectionSettings:
        """Create settings from a persisted settings blob.

        Accepts the camelCase keys stored by the web dashboard
        (``brokerUrl``, ``port``, ``username``, ``password``, ``useSSL``)
        as well as the snake_case field names.
        """
        host = blob.get("brokerUrl", blob.get("host"))
        if not isinstance(host, str) or not host.strip():
            raise TasmotaConfigError("Settings blob is missing brokerUrl")

        raw_port = blob.get("port")
        port: int | None
        if raw_port in (None, ""):
            port = None
        else:
            try:
                port = int(raw_port)
            except (TypeError, ValueError) as exc:
                raise TasmotaConfigError(f"Settings blob port is not an integer: {raw_port!r}") from exc

        use_tls = blob.get("useSSL", blob.get("use_tls", False))
        if isinstance(use_tls, str):
            use_tls = _env_bool(use_tls, False)

        return cls(
            host=host.strip(),
            port=port,
            username=str(blob.get("username") or ""),
            password=str(blob.get("password") or ""),
            use_tls=bool(use_tls),
        )
