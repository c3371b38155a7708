"""High-level async client for Tasmota devices on an MQTT broker."""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Callable
from typing import Any

from pytasmota._client.commands import CommandDispatcher
from pytasmota._client.inspector import DeviceInspector
from pytasmota._client.subscriptions import SubscriptionRegistry
from pytasmota._mqtt import ConnectionState, InboundMessage, TasmotaMqttRuntime
from pytasmota._redact import redact_for_log
from pytasmota.config import ConnectionSettings
from pytasmota.exceptions import TasmotaError, TasmotaTransportError
from pytasmota.ingestion.decoder import decode_message, split_topic
from pytasmota.models.commands import PowerAction
from pytasmota.models.device import DeviceProjection, PowerStatus
from pytasmota.state.config_session import ConfigSession
from pytasmota.state.events import Unrecognized
from pytasmota.state.store import DeviceStateStore

_logger = logging.getLogger(__name__)

StateCallback = Callable[[str, DeviceProjection], None]
ConnectionCallback = Callable[[ConnectionState], None]
ErrorCallback = Callable[[TasmotaTransportError], None]
ConfigCallback = Callable[[str, ConfigSession], None]


class TasmotaClient:
    """Async client that keeps a projection of every device it hears from.

    Usage::

        async with TasmotaClient(on_state_change=render) as client:
            await client.connect(ConnectionSettings.from_env())
            client.subscribe("sonoff-dapur")
            client.commands.power("sonoff-dapur", PowerAction.TOGGLE)

    All callbacks run on the event loop that owns the client. Transport
    errors never raise out of the event path; they are kept as
    :attr:`last_error` and passed to ``on_error``.
    """

    def __init__(
        self,
        *,
        on_state_change: StateCallback | None = None,
        on_connection_change: ConnectionCallback | None = None,
        on_error: ErrorCallback | None = None,
        on_config_change: ConfigCallback | None = None,
    ) -> None:
        self._loop: asyncio.AbstractEventLoop | None = None
        self._runtime: TasmotaMqttRuntime | None = None
        # Bumped per connect/disconnect so callbacks from a replaced runtime are dropped.
        self._generation = 0
        self._state = ConnectionState.DISCONNECTED
        self._settings: ConnectionSettings | None = None
        self._last_error: TasmotaTransportError | None = None
        self._last_message: InboundMessage | None = None
        self._inspectors: dict[str, DeviceInspector] = {}

        self._on_state_change = on_state_change
        self._on_connection_change = on_connection_change
        self._on_error = on_error
        self._on_config_change = on_config_change

        self.store = DeviceStateStore()
        self.commands = CommandDispatcher(
            publish=self._transport_publish,
            is_connected=lambda: self.is_connected,
            logger=_logger,
        )
        self._registry = SubscriptionRegistry(
            subscribe=self._transport_subscribe,
            publish=self._transport_publish,
            is_connected=lambda: self.is_connected,
            logger=_logger,
        )

    # ------------------------------------------------------------------
    # Context manager lifecycle
    # ------------------------------------------------------------------

    async def __aenter__(self) -> TasmotaClient:
        self._loop = asyncio.get_running_loop()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        for topic in list(self._inspectors):
            self.close_inspector(topic)
        await self.disconnect()
        self._loop = None

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    @property
    def connection_state(self) -> ConnectionState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    @property
    def settings(self) -> ConnectionSettings | None:
        return self._settings

    @property
    def last_error(self) -> TasmotaTransportError | None:
        return self._last_error

    @property
    def error_message(self) -> str | None:
        """User-visible text of the last transport error."""
        return str(self._last_error) if self._last_error is not None else None

    @property
    def last_message(self) -> InboundMessage | None:
        return self._last_message

    def _require_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    async def connect(self, settings: ConnectionSettings) -> None:
        """Open a broker session, replacing any existing one.

        Returns once the client is connecting; the outcome is reported via
        :attr:`connection_state` and the callbacks.

        Raises
        ------
        TasmotaConfigError
            If *settings* are invalid.
        """
        settings.validate()
        loop = self._require_loop()
        self._generation += 1
        generation = self._generation
        await self._stop_runtime()
        if self._state != ConnectionState.DISCONNECTED:
            self._link_down(ConnectionState.DISCONNECTED)

        runtime = TasmotaMqttRuntime(
            loop=loop,
            on_message=functools.partial(self._on_runtime_message, generation),
            on_state=functools.partial(self._on_runtime_state, generation),
            on_error=functools.partial(self._on_runtime_error, generation),
            logger=_logger,
        )
        self._runtime = runtime
        self._settings = settings
        self._last_error = None
        _logger.debug("Connecting settings=%s", redact_for_log(settings))

        try:
            await loop.run_in_executor(None, runtime.start, settings)
        except (OSError, ValueError) as exc:
            _logger.debug("MQTT runtime start failed", exc_info=True)
            self._record_error(
                TasmotaTransportError(
                    f"Could not start MQTT client: {exc}",
                    host=settings.host,
                    port=settings.resolved_port,
                )
            )
            self._link_down(ConnectionState.ERROR)

    async def disconnect(self) -> None:
        """Close the broker session and mark every device offline."""
        self._generation += 1
        await self._stop_runtime()
        if self._state != ConnectionState.DISCONNECTED:
            self._link_down(ConnectionState.DISCONNECTED)

    async def _stop_runtime(self) -> None:
        runtime = self._runtime
        self._runtime = None
        if runtime is None:
            return
        await self._require_loop().run_in_executor(None, runtime.stop)

    # ------------------------------------------------------------------
    # Transport plumbing used by the registry and dispatcher
    # ------------------------------------------------------------------

    def _transport_publish(self, topic: str, payload: str) -> bool:
        runtime = self._runtime
        if runtime is None:
            return False
        return runtime.publish(topic, payload)

    def _transport_subscribe(self, topics: Any, on_ack: Callable[[bool], None]) -> bool:
        runtime = self._runtime
        if runtime is None:
            return False
        return runtime.subscribe(topics, on_ack)

    # ------------------------------------------------------------------
    # Runtime callbacks (already on the loop)
    # ------------------------------------------------------------------

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        _logger.debug("Connection state %s -> %s", self._state, state)
        self._state = state
        if self._on_connection_change is not None:
            try:
                self._on_connection_change(state)
            except Exception:
                _logger.debug("on_connection_change callback failed", exc_info=True)

    def _record_error(self, error: TasmotaTransportError) -> None:
        self._last_error = error
        if self._on_error is not None:
            try:
                self._on_error(error)
            except Exception:
                _logger.debug("on_error callback failed", exc_info=True)

    def _link_down(self, state: ConnectionState) -> None:
        self._registry.clear()
        went_offline = self.store.mark_all_offline()
        self._set_state(state)
        for topic in went_offline:
            self._notify_device(topic)

    def _on_runtime_state(self, generation: int, state: ConnectionState) -> None:
        if generation != self._generation:
            return
        if state == ConnectionState.CONNECTED:
            self._last_error = None
            self._registry.clear()
            self._set_state(state)
            for inspector in list(self._inspectors.values()):
                inspector.on_connected()
        elif state in (ConnectionState.DISCONNECTED, ConnectionState.ERROR):
            self._link_down(state)
        else:
            self._set_state(state)

    def _on_runtime_error(self, generation: int, error: TasmotaTransportError) -> None:
        if generation != self._generation:
            return
        self._record_error(error)

    def _on_runtime_message(self, generation: int, message: InboundMessage) -> None:
        if generation != self._generation:
            return
        self.handle_message(message)

    def handle_message(self, message: InboundMessage) -> None:
        """Fold one inbound message into the store and any open inspector."""
        self._last_message = message

        result = decode_message(message.topic, message.payload, message.received_at)
        if isinstance(result, Unrecognized):
            _logger.debug("Ignoring message topic=%s reason=%s", result.topic, result.reason)
        else:
            self.store.apply(result)
            self._notify_device(result.topic)

        parts = split_topic(message.topic)
        inspector = self._inspectors.get(parts[1]) if parts is not None else None
        if inspector is not None and inspector.handle_message(message.topic, message.payload, message.received_at):
            if self._on_config_change is not None:
                try:
                    self._on_config_change(inspector.topic, inspector.session)
                except Exception:
                    _logger.debug("on_config_change callback failed", exc_info=True)

    def _notify_device(self, topic: str) -> None:
        if self._on_state_change is None:
            return
        projection = self.store.get(topic)
        if projection is None:
            return
        try:
            self._on_state_change(topic, projection)
        except Exception:
            _logger.debug("on_state_change callback failed", exc_info=True)

    # ------------------------------------------------------------------
    # Devices
    # ------------------------------------------------------------------

    def subscribe(self, topic: str) -> bool:
        """Subscribe to a device topic; a no-op when offline or already done."""
        return self._registry.subscribe(topic)

    def is_subscribed(self, topic: str) -> bool:
        return self._registry.is_subscribed(topic)

    def send(self, topic: str, command: str, payload: str = "") -> bool:
        return self.commands.send(topic, command, payload)

    def toggle(self, topic: str) -> bool:
        """Switch ON devices OFF and anything else ON."""
        projection = self.store.get(topic)
        current = projection.status if projection is not None else PowerStatus.UNKNOWN
        target = PowerAction.OFF if current == PowerStatus.ON else PowerAction.ON
        return self.commands.power(topic, target)

    def get_device(self, topic: str) -> DeviceProjection | None:
        return self.store.get(topic)

    @property
    def devices(self) -> dict[str, DeviceProjection]:
        return self.store.snapshot()

    # ------------------------------------------------------------------
    # Configuration sessions
    # ------------------------------------------------------------------

    def open_inspector(self, topic: str, *, session: ConfigSession | None = None) -> DeviceInspector:
        """Start a configuration session for *topic*, replacing any open one."""
        if not topic:
            raise TasmotaError("Device topic is empty")
        self.close_inspector(topic)
        inspector = DeviceInspector(
            topic,
            dispatcher=self.commands,
            loop=self._require_loop(),
            is_connected=lambda: self.is_connected,
            session=session,
        )
        self._inspectors[topic] = inspector
        inspector.open()
        return inspector

    def get_inspector(self, topic: str) -> DeviceInspector | None:
        return self._inspectors.get(topic)

    def close_inspector(self, topic: str) -> None:
        inspector = self._inspectors.pop(topic, None)
        if inspector is not None:
            inspector.close()
