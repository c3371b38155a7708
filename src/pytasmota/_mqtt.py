"""Internal MQTT transport runtime.

:class:`TasmotaMqttRuntime` wraps one paho-mqtt client running its own
network thread. Every paho callback is marshalled onto the owning asyncio
loop with ``call_soon_threadsafe``; nothing else in the library runs on the
network thread.
"""

from __future__ import annotations

import asyncio
import logging
import secrets
import ssl
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any, cast

import paho.mqtt.client as mqtt

from pytasmota._constants import (
    CLIENT_ID_PREFIX,
    CONNECT_TIMEOUT_SECONDS,
    KEEPALIVE_SECONDS,
    QOS,
    RECONNECT_DELAY_SECONDS,
)
from pytasmota._redact import redact_for_log
from pytasmota.config import ConnectionSettings
from pytasmota.exceptions import TasmotaTransportError


class ConnectionState(StrEnum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ERROR = "error"


@dataclass(frozen=True)
class InboundMessage:
    """One received PUBLISH, decoded to text."""

    topic: str
    payload: str
    received_at: datetime


def build_client_id() -> str:
    """Random per-connection client id (``tasmota_web_<8 hex>``)."""
    return f"{CLIENT_ID_PREFIX}{secrets.token_hex(4)}"


def decode_payload(payload: bytes) -> str:
    return payload.decode("utf-8", errors="replace")


class TasmotaMqttRuntime:
    """Threaded paho-mqtt runtime that emits events onto an asyncio loop.

    paho retries the connection on its own (fixed 5 s delay) after a
    failure or a dropped link; the runtime reports each transition through
    ``on_state`` and each failure through ``on_error``.
    """

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        on_message: Callable[[InboundMessage], None],
        on_state: Callable[[ConnectionState], None],
        on_error: Callable[[TasmotaTransportError], None],
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._on_message = on_message
        self._on_state = on_state
        self._on_error = on_error
        self._logger = logger or logging.getLogger(__name__)
        self._client: mqtt.Client | None = None
        self._client_id: str | None = None
        self._running = False
        self._settings: ConnectionSettings | None = None
        # Touched only on the network thread.
        self._link_up = False
        self._ack_lock = threading.Lock()
        self._pending_acks: dict[int, Callable[[bool], None]] = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def client_id(self) -> str | None:
        return self._client_id

    def _dispatch(self, callback: Callable[..., None], *args: Any) -> None:
        try:
            self._loop.call_soon_threadsafe(callback, *args)
        except RuntimeError:
            # Loop already closed during interpreter shutdown.
            self._logger.debug("Dropping MQTT callback, event loop is closed")

    def _transport_error(self, message: str, reason_code: Any = None) -> TasmotaTransportError:
        settings = self._settings
        code = getattr(reason_code, "value", reason_code)
        return TasmotaTransportError(
            message,
            host=settings.host if settings else "",
            port=settings.resolved_port if settings else None,
            reason_code=code if isinstance(code, int) else None,
        )

    def start(self, settings: ConnectionSettings) -> None:
        """Create a fresh client and start connecting in the background."""
        self.stop()
        self._logger.debug("MQTT runtime start requested settings=%s", redact_for_log(settings))

        client_id = build_client_id()
        client = mqtt.Client(
            callback_api_version=cast(Any, mqtt).CallbackAPIVersion.VERSION2,
            client_id=client_id,
            clean_session=True,
            protocol=mqtt.MQTTv311,
            transport=settings.transport,
        )
        client.enable_logger(self._logger)
        if settings.transport == "websockets":
            client.ws_set_options(path=settings.ws_path)
        if settings.username:
            client.username_pw_set(settings.username, settings.password or None)
        if settings.use_tls:
            # Self-hosted brokers commonly run with self-signed certificates.
            client.tls_set(cert_reqs=ssl.CERT_NONE)
            client.tls_insecure_set(True)
        client.reconnect_delay_set(min_delay=RECONNECT_DELAY_SECONDS, max_delay=RECONNECT_DELAY_SECONDS)
        client.connect_timeout = CONNECT_TIMEOUT_SECONDS

        def on_connect(
            _c: mqtt.Client,
            _userdata: Any,
            _flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            if reason_code.is_failure:
                self._logger.warning("MQTT connect refused: %s", reason_code)
                self._dispatch(self._on_state, ConnectionState.ERROR)
                self._dispatch(self._on_error, self._transport_error(f"Connect refused: {reason_code}", reason_code))
                return
            self._link_up = True
            self._logger.debug("MQTT connected client_id=%s", client_id)
            self._dispatch(self._on_state, ConnectionState.CONNECTED)

        def on_connect_fail(_c: mqtt.Client, _userdata: Any) -> None:
            self._logger.warning("MQTT connection to %s failed", settings.url)
            self._dispatch(self._on_state, ConnectionState.ERROR)
            self._dispatch(self._on_error, self._transport_error(f"Could not connect to {settings.url}"))

        def on_disconnect(
            _c: mqtt.Client,
            _userdata: Any,
            _disconnect_flags: Any,
            reason_code: Any,
            _properties: Any,
        ) -> None:
            was_up = self._link_up
            self._link_up = False
            with self._ack_lock:
                self._pending_acks.clear()
            if not self._running:
                return
            self._logger.debug("MQTT disconnected: %s", reason_code)
            if was_up:
                self._dispatch(self._on_state, ConnectionState.DISCONNECTED)
            if reason_code.is_failure:
                self._dispatch(self._on_error, self._transport_error(f"Connection lost: {reason_code}", reason_code))

        def on_subscribe(
            _c: mqtt.Client,
            _userdata: Any,
            mid: int,
            reason_codes: list[Any],
            _properties: Any,
        ) -> None:
            with self._ack_lock:
                on_ack = self._pending_acks.pop(mid, None)
            if on_ack is None:
                return
            granted = bool(reason_codes) and not any(rc.is_failure for rc in reason_codes)
            self._dispatch(on_ack, granted)

        def on_message(_c: mqtt.Client, _userdata: Any, msg: mqtt.MQTTMessage) -> None:
            message = InboundMessage(
                topic=msg.topic,
                payload=decode_payload(msg.payload),
                received_at=datetime.now(UTC),
            )
            self._dispatch(self._on_message, message)

        client.on_connect = on_connect
        client.on_connect_fail = on_connect_fail
        client.on_disconnect = on_disconnect
        client.on_subscribe = on_subscribe
        client.on_message = on_message

        self._settings = settings
        self._client = client
        self._client_id = client_id
        self._running = True
        self._dispatch(self._on_state, ConnectionState.CONNECTING)

        client.connect_async(settings.host, settings.resolved_port, keepalive=KEEPALIVE_SECONDS)
        client.loop_start()
        self._logger.debug("MQTT network loop started url=%s", settings.url)

    def stop(self) -> None:
        """Stop and disconnect the current client, if any."""
        client = self._client
        self._client = None
        was_running = self._running
        self._running = False
        with self._ack_lock:
            self._pending_acks.clear()

        if client is None:
            return
        try:
            if was_running:
                self._logger.debug("MQTT disconnect requested")
                client.disconnect()
        finally:
            client.loop_stop()
            self._logger.debug("MQTT network loop stopped")

    def subscribe(self, topics: Iterable[str], on_ack: Callable[[bool], None]) -> bool:
        """Issue one batched subscribe; ``on_ack(granted)`` runs on the loop."""
        client = self._client
        if client is None or not self._running:
            return False
        batch = [(topic, QOS) for topic in topics]
        if not batch:
            return False
        # Hold the lock across the call so a fast SUBACK cannot miss its mid.
        with self._ack_lock:
            result, mid = client.subscribe(batch)
            if result != mqtt.MQTT_ERR_SUCCESS or mid is None:
                self._logger.debug("MQTT subscribe not sent rc=%s", result)
                return False
            self._pending_acks[mid] = on_ack
        return True

    def publish(self, topic: str, payload: str = "") -> bool:
        """Publish at QoS 0, never retained."""
        client = self._client
        if client is None or not self._running:
            return False
        info = client.publish(topic, payload, qos=QOS, retain=False)
        return info.rc == mqtt.MQTT_ERR_SUCCESS
