"""Per-device configuration session state.

One :class:`ConfigSession` exists per inspected device. It accumulates the
readings produced by :mod:`pytasmota.ingestion.config_decoder` under the
merge policies in :mod:`pytasmota.state.policy` and is discarded when the
inspection ends.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

from pytasmota._constants import CONSOLE_HISTORY
from pytasmota.ingestion.config_decoder import (
    ClockReading,
    ConfigReading,
    GpioReading,
    ModuleReading,
    TimerReading,
    TimersEnabledReading,
)
from pytasmota.models._base import TasmotaBaseModel
from pytasmota.models.config import GpioFunction, ModuleInfo, TimerRecord
from pytasmota.state.policy import MergePolicy, should_replace

_logger = logging.getLogger(__name__)


def _same(a: TasmotaBaseModel | None, b: TasmotaBaseModel | None) -> bool:
    # Model equality also compares the excluded raw payload.
    if a is None or b is None:
        return a is b
    return a.model_dump() == b.model_dump()


def _same_pins(a: dict[int, GpioFunction], b: dict[int, GpioFunction]) -> bool:
    return a.keys() == b.keys() and all(_same(a[pin], b[pin]) for pin in a)


class ConfigSession:
    """Configuration state accumulated for one device while it is inspected.

    Parameters
    ----------
    topic : str
        Device topic being inspected.
    module_policy, gpio_policy, timer_policy : MergePolicy
        How a new decode of each field interacts with a value already held.
        Defaults keep the GPIO map from the first reply (a GPIO change only
        takes effect after a restart, so a later reply must not clobber the
        map being edited) while module and timers always take the newest.
    console_limit : int
        Number of console lines kept.
    """

    def __init__(
        self,
        topic: str,
        *,
        module_policy: MergePolicy = MergePolicy.ALWAYS_LATEST,
        gpio_policy: MergePolicy = MergePolicy.FIRST_WINS,
        timer_policy: MergePolicy = MergePolicy.ALWAYS_LATEST,
        console_limit: int = CONSOLE_HISTORY,
    ) -> None:
        self.topic = topic
        self.module_policy = module_policy
        self.gpio_policy = gpio_policy
        self.timer_policy = timer_policy

        self.module: ModuleInfo | None = None
        self.gpio: dict[int, GpioFunction] = {}
        self.timers: dict[int, TimerRecord] = {}
        self.timers_enabled: bool | None = None
        self.clock_offset: timedelta | None = None
        self.console: deque[str] = deque(maxlen=console_limit)

    @property
    def module_id(self) -> str | None:
        return self.module.module_id if self.module is not None else None

    @property
    def module_name(self) -> str | None:
        return self.module.name if self.module is not None else None

    # ------------------------------------------------------------------
    # Merging
    # ------------------------------------------------------------------

    def apply(self, readings: Iterable[ConfigReading]) -> bool:
        """Merge decoded readings; return True when anything changed."""
        changed = False
        for reading in readings:
            if isinstance(reading, ModuleReading):
                changed |= self._apply_module(reading)
            elif isinstance(reading, GpioReading):
                changed |= self._apply_gpio(reading)
            elif isinstance(reading, TimerReading):
                changed |= self._apply_timer(reading)
            elif isinstance(reading, TimersEnabledReading):
                changed |= self.timers_enabled != reading.enabled
                self.timers_enabled = reading.enabled
            elif isinstance(reading, ClockReading):
                changed |= self.clock_offset != reading.offset
                self.clock_offset = reading.offset
        return changed

    def _apply_module(self, reading: ModuleReading) -> bool:
        if not should_replace(self.module_policy, has_value=self.module is not None):
            return False
        changed = not _same(self.module, reading.module)
        self.module = reading.module
        return changed

    def _apply_gpio(self, reading: GpioReading) -> bool:
        if not should_replace(self.gpio_policy, has_value=bool(self.gpio)):
            _logger.debug("Keeping loaded GPIO map topic=%s, discarding %d pins", self.topic, len(reading.pins))
            return False
        before = dict(self.gpio)
        if self.gpio_policy == MergePolicy.FIRST_WINS:
            self.gpio = dict(reading.pins)
        else:
            # Per-pin replies (GPIO<n>) only carry one pin.
            self.gpio.update(reading.pins)
        return not _same_pins(self.gpio, before)

    def _apply_timer(self, reading: TimerReading) -> bool:
        current = self.timers.get(reading.index)
        if not should_replace(self.timer_policy, has_value=current is not None):
            return False
        self.timers[reading.index] = reading.record
        return not _same(current, reading.record)

    def clear_gpio(self) -> None:
        """Forget the GPIO map so the next reply is accepted."""
        self.gpio = {}

    # ------------------------------------------------------------------
    # Derived values
    # ------------------------------------------------------------------

    def device_now(self, now: datetime | None = None) -> datetime | None:
        """Current device wall clock, from the last observed clock offset."""
        if self.clock_offset is None:
            return None
        local = now if now is not None else datetime.now(UTC)
        return local + self.clock_offset

    def record_console(self, line: str) -> bool:
        """Append a console line unless it repeats the previous one."""
        if self.console and self.console[-1] == line:
            return False
        self.console.append(line)
        return True
