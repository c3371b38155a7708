"""Probe scheduling for a device under inspection.

A :class:`DeviceInspector` owns one :class:`ConfigSession` and the probe
commands that populate it: a staggered ``STATUS 0`` / ``Module`` / ``GPIO``
burst on open, and re-queries when a configuration page is entered.
Probes are spread out because firmware drops commands that arrive in a
burst.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from datetime import datetime
from enum import StrEnum

from pytasmota._client.commands import CommandDispatcher
from pytasmota._constants import (
    GPIO_PROBE_DELAY,
    MODULE_PROBE_DELAY,
    PAGE_FIRST_PROBE_DELAY,
    PAGE_SECOND_PROBE_DELAY,
    STATUS_PROBE_DELAY,
)
from pytasmota.ingestion.config_decoder import decode_config_message
from pytasmota.ingestion.decoder import split_topic
from pytasmota.models.commands import StatusReport
from pytasmota.state.config_session import ConfigSession
from pytasmota.state.events import Unrecognized

_logger = logging.getLogger(__name__)


class ConfigPage(StrEnum):
    MAIN = "main"
    CONSOLE = "console"
    INFORMATION = "information"
    MODULE = "module"
    GPIO = "gpio"
    TIMERS = "timers"
    LOGGING = "logging"
    OTHER = "other"
    TEMPLATE = "template"
    FIRMWARE = "firmware"


class DeviceInspector:
    """Configuration session plus its probe schedule for one device."""

    def __init__(
        self,
        topic: str,
        *,
        dispatcher: CommandDispatcher,
        loop: asyncio.AbstractEventLoop,
        is_connected: Callable[[], bool],
        session: ConfigSession | None = None,
    ) -> None:
        self.topic = topic
        self.session = session or ConfigSession(topic)
        self._dispatcher = dispatcher
        self._loop = loop
        self._is_connected = is_connected
        self._handles: list[asyncio.TimerHandle] = []
        self._page = ConfigPage.MAIN
        self._opened = False
        self._closed = False
        # Per-page guards: set once the page's probes are issued, reset on leave.
        self._module_probed = False
        self._timers_probed = False

    @property
    def page(self) -> ConfigPage:
        return self._page

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pending_probes(self) -> int:
        return sum(1 for handle in self._handles if not handle.cancelled())

    def _schedule(self, delay: float, probe: Callable[[str], bool]) -> None:
        def fire() -> None:
            if self._closed:
                return
            probe(self.topic)

        self._handles = [h for h in self._handles if not h.cancelled()]
        self._handles.append(self._loop.call_later(delay, fire))

    def open(self) -> bool:
        """Schedule the initial probes; returns False when not connected."""
        if self._closed:
            raise RuntimeError(f"inspector for {self.topic} is closed")
        if self._opened or not self._is_connected():
            return False
        self._opened = True
        _logger.debug("Opening config session topic=%s", self.topic)
        self._schedule(STATUS_PROBE_DELAY, lambda t: self._dispatcher.status(t, StatusReport.ALL))
        self._schedule(MODULE_PROBE_DELAY, self._dispatcher.query_module)
        self._schedule(GPIO_PROBE_DELAY, self._dispatcher.query_gpio)
        return True

    def on_connected(self) -> None:
        """Issue the probes that were skipped while offline."""
        if self._closed or not self._is_connected():
            return
        opened = self.open()
        if opened and self._page == ConfigPage.MODULE:
            # The open burst already queries Module and GPIO.
            self._module_probed = True
        self._probe_page()

    def navigate(self, page: ConfigPage | str) -> None:
        """Move to *page*, probing MODULE/TIMERS data on first entry."""
        if self._closed:
            return
        target = ConfigPage(page)
        if target == self._page:
            return
        previous, self._page = self._page, target

        if previous == ConfigPage.MODULE:
            self._module_probed = False
        elif previous == ConfigPage.TIMERS:
            self._timers_probed = False

        if not self._is_connected():
            return
        self._probe_page()

    def _probe_page(self) -> None:
        if self._page == ConfigPage.MODULE and not self._module_probed:
            self._module_probed = True
            self._schedule(PAGE_FIRST_PROBE_DELAY, self._dispatcher.query_module)
            self._schedule(PAGE_SECOND_PROBE_DELAY, self._dispatcher.query_gpio)
        elif self._page == ConfigPage.TIMERS and not self._timers_probed:
            self._timers_probed = True
            self._schedule(PAGE_FIRST_PROBE_DELAY, self._dispatcher.query_timers)

    def handle_message(self, topic: str, payload: str, received_at: datetime) -> bool:
        """Feed one inbound message; return True when session state changed."""
        if self._closed:
            return False
        parts = split_topic(topic)
        if parts is None or parts[1] != self.topic:
            return False

        if self._page == ConfigPage.CONSOLE:
            self.session.record_console(f"{topic}: {payload}")

        result = decode_config_message(topic, payload, received_at)
        if isinstance(result, Unrecognized):
            _logger.debug("Config decode skipped topic=%s reason=%s", topic, result.reason)
            return False
        return self.session.apply(result)

    def console(self, line: str) -> bool:
        """Send a console line and echo it into the console history."""
        sent = self._dispatcher.console(self.topic, line)
        self.session.record_console(f"> {line.strip()}")
        return sent

    def close(self) -> None:
        """Cancel pending probes; the session must not be reused."""
        if self._closed:
            return
        self._closed = True
        for handle in self._handles:
            handle.cancel()
        self._handles.clear()
        _logger.debug("Closed config session topic=%s", self.topic)
