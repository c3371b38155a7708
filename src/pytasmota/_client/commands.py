"""Outbound command building and publishing.

:class:`CommandDispatcher` is fire-and-forget: ``True`` means the command
was handed to the transport, not that the device received it. While
disconnected every call publishes nothing and returns ``False``.

Typed helpers validate their parameters before anything is published and
raise ``ValueError`` (pydantic's ``ValidationError`` included) on bad
input.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from typing import Any

from pytasmota._constants import command_topic
from pytasmota._redact import redact_command
from pytasmota.models.commands import (
    Command,
    Emulation,
    LogLevel,
    LogTarget,
    PowerAction,
    StatusArgument,
)
from pytasmota.models.config import TimerSpec

PublishFn = Callable[[str, str], bool]

GPIO_RESET_CODE = 255


def split_console_line(line: str) -> tuple[str, str]:
    """Split ``"Cmd payload words"`` into ``("Cmd", "payload words")``."""
    text = line.strip()
    if not text:
        raise ValueError("console line is empty")
    command, _, payload = text.partition(" ")
    return command, payload.strip()


def _non_negative(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValueError(f"{name} must be a non-negative integer, got {value!r}")
    return value


class CommandDispatcher:
    """Builds ``cmnd/<topic>/<command>`` publishes."""

    def __init__(
        self,
        *,
        publish: PublishFn,
        is_connected: Callable[[], bool],
        logger: logging.Logger | None = None,
    ) -> None:
        self._publish = publish
        self._is_connected = is_connected
        self._logger = logger or logging.getLogger(__name__)

    def send(self, topic: str, command: str, payload: str = "") -> bool:
        """Publish *payload* to ``cmnd/<topic>/<command>`` at QoS 0.

        While disconnected this returns ``False`` for any input; once
        connected an empty *topic* or *command* raises ``ValueError``.
        """
        if not self._is_connected():
            self._logger.debug("Dropping command %s for topic=%s: not connected", command, topic)
            return False
        if not topic or not command:
            raise ValueError("topic and command must be non-empty")
        full_topic = command_topic(topic, command)
        self._logger.debug("Publishing %s payload=%r", full_topic, redact_command(command, payload))
        return self._publish(full_topic, payload)

    # ------------------------------------------------------------------
    # Power and status
    # ------------------------------------------------------------------

    def power(self, topic: str, action: PowerAction | str | None = None) -> bool:
        """Switch the relay; ``None`` only queries the current state."""
        if action is None:
            return self.send(topic, Command.POWER)
        return self.send(topic, Command.POWER, PowerAction(str(action).upper()).value)

    def status(self, topic: str, report: int = 0) -> bool:
        """Request ``STATUS <report>`` (0 = everything)."""
        arg = StatusArgument(report=report)
        return self.send(topic, Command.STATUS, str(arg.report))

    def restart(self, topic: str) -> bool:
        return self.send(topic, Command.RESTART, "1")

    # ------------------------------------------------------------------
    # Module, GPIO and template
    # ------------------------------------------------------------------

    def query_module(self, topic: str) -> bool:
        return self.send(topic, Command.MODULE)

    def set_module(self, topic: str, module_id: int) -> bool:
        return self.send(topic, Command.MODULE, str(_non_negative("module_id", module_id)))

    def query_gpio(self, topic: str, pin: int | None = None) -> bool:
        if pin is None:
            return self.send(topic, Command.GPIO)
        return self.send(topic, Command.gpio(pin))

    def set_gpio(self, topic: str, pin: int, code: int) -> bool:
        """Assign function *code* to GPIO *pin* (effective after restart)."""
        return self.send(topic, Command.gpio(pin), str(_non_negative("code", code)))

    def query_gpio_functions(self, topic: str) -> bool:
        return self.send(topic, Command.GPIOS)

    def reset_gpio(self, topic: str) -> bool:
        return self.send(topic, Command.GPIO, str(GPIO_RESET_CODE))

    def query_template(self, topic: str) -> bool:
        return self.send(topic, Command.TEMPLATE)

    def set_template(self, topic: str, template: str | Mapping[str, Any]) -> bool:
        """Store a device template; call :meth:`activate_template` to use it."""
        if isinstance(template, Mapping):
            payload = json.dumps(dict(template), separators=(",", ":"))
        else:
            payload = template.strip()
            if not payload:
                raise ValueError("template must be non-empty")
        return self.send(topic, Command.TEMPLATE, payload)

    def activate_template(self, topic: str) -> bool:
        """Select module 0, which applies the stored template."""
        return self.send(topic, Command.MODULE, "0")

    # ------------------------------------------------------------------
    # Timers
    # ------------------------------------------------------------------

    def query_timers(self, topic: str) -> bool:
        return self.send(topic, Command.TIMERS)

    def set_timers_enabled(self, topic: str, enabled: bool) -> bool:
        return self.send(topic, Command.TIMERS, "1" if enabled else "0")

    def query_timer(self, topic: str, index: int) -> bool:
        return self.send(topic, Command.timer(index))

    def set_timer(self, topic: str, index: int, spec: TimerSpec | Mapping[str, Any]) -> bool:
        """Write timer slot *index* (1-16); all eight fields are sent."""
        command = Command.timer(index)
        timer = spec if isinstance(spec, TimerSpec) else TimerSpec.model_validate(spec)
        return self.send(topic, command, timer.to_payload())

    # ------------------------------------------------------------------
    # Logging, naming and system settings
    # ------------------------------------------------------------------

    def query_log_level(self, topic: str, target: LogTarget | str) -> bool:
        return self.send(topic, LogTarget(target).value)

    def set_log_level(self, topic: str, target: LogTarget | str, level: LogLevel | int) -> bool:
        return self.send(topic, LogTarget(target).value, str(int(LogLevel(level))))

    def set_device_name(self, topic: str, name: str) -> bool:
        if not name.strip():
            raise ValueError("device name must be non-empty")
        return self.send(topic, Command.DEVICE_NAME, name.strip())

    def set_friendly_name(self, topic: str, name: str) -> bool:
        if not name.strip():
            raise ValueError("friendly name must be non-empty")
        return self.send(topic, Command.FRIENDLY_NAME, name.strip())

    def set_emulation(self, topic: str, mode: Emulation | int) -> bool:
        return self.send(topic, Command.EMULATION, str(int(Emulation(mode))))

    def set_timezone(self, topic: str, timezone: str | int) -> bool:
        """``99`` follows the device's DST rules, otherwise an offset like ``+07:00``."""
        value = str(timezone).strip()
        if not value:
            raise ValueError("timezone must be non-empty")
        return self.send(topic, Command.TIMEZONE, value)

    def set_ntp_server(self, topic: str, server: str) -> bool:
        if not server.strip():
            raise ValueError("NTP server must be non-empty")
        return self.send(topic, Command.NTP_SERVER, server.strip())

    # ------------------------------------------------------------------
    # Firmware
    # ------------------------------------------------------------------

    def query_ota_url(self, topic: str) -> bool:
        return self.send(topic, Command.OTA_URL)

    def set_ota_url(self, topic: str, url: str) -> bool:
        if not url.strip():
            raise ValueError("OTA url must be non-empty")
        return self.send(topic, Command.OTA_URL, url.strip())

    def upgrade(self, topic: str) -> bool:
        """Start an OTA upgrade from the configured OTA url."""
        return self.send(topic, Command.UPGRADE, "1")

    def console(self, topic: str, line: str) -> bool:
        """Send a raw console line such as ``"Status 5"`` or ``"Backlog ..."``."""
        command, payload = split_console_line(line)
        return self.send(topic, command, payload)
