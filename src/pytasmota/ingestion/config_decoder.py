"""Layered decoder for the per-device configuration session.

Runs alongside :func:`pytasmota.ingestion.decoder.decode_message` while a
device is being inspected, and extracts the configuration-shaped fields
(module, GPIO map, timers, device clock) from the same inbound stream.

JSON is tried first. Firmware builds occasionally emit fragments that are
not valid JSON (truncated replies, stray trailing commas); for those this
decoder falls back to regex extraction of ``Module`` and ``GPIO<n>`` only.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from pydantic import ValidationError

from pytasmota._constants import PREFIX_STAT, PREFIX_TELE, TIMER_SLOTS
from pytasmota.ingestion.decoder import split_topic
from pytasmota.ingestion.normalize import parse_json_object, safe_int, safe_str
from pytasmota.models.config import (
    GpioFunction,
    ModuleInfo,
    TimerRecord,
    resolve_gpio_value,
    resolve_module_value,
)
from pytasmota.state.events import Unrecognized

_logger = logging.getLogger(__name__)

_GPIO_KEY_RE = re.compile(r"^GPIO(\d+)$")
_TIMER_KEY_RE = re.compile(r"^Timer(\d+)$")
_TIMERS_GROUP_RE = re.compile(r"^Timers\d+$")

# Fallback patterns: "Key": 1  or  "Key": {"1": "Name"}
_MODULE_FALLBACK_RE = re.compile(r'"Module"\s*:\s*(?:\{\s*"(\d+)"\s*:\s*"([^"]*)"|(\d+))')
_GPIO_FALLBACK_RE = re.compile(r'"GPIO(\d+)"\s*:\s*(?:\{\s*"(\d+)"\s*:\s*"([^"]*)"|(\d+))')


@dataclass(frozen=True)
class ClockReading:
    offset: timedelta
    """Device time minus local time at receipt."""


@dataclass(frozen=True)
class ModuleReading:
    module: ModuleInfo


@dataclass(frozen=True)
class GpioReading:
    pins: Mapping[int, GpioFunction] = field(default_factory=dict)


@dataclass(frozen=True)
class TimerReading:
    index: int
    record: TimerRecord


@dataclass(frozen=True)
class TimersEnabledReading:
    enabled: bool


ConfigReading = ClockReading | ModuleReading | GpioReading | TimerReading | TimersEnabledReading


# ------------------------------------------------------------------
# Field extractors
# ------------------------------------------------------------------


def parse_device_time(value: Any, received_at: datetime) -> datetime | None:
    """Parse a firmware ``Time`` value (``2024-01-15T10:30:45``).

    Naive timestamps are device-local wall clock; they are interpreted in
    the local timezone of the receiving host.
    """
    text = safe_str(value)
    if text is None:
        return None
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=received_at.astimezone().tzinfo)
    return parsed


def _clock_source(obj: Mapping[str, Any]) -> Any:
    if "Time" in obj:
        return obj["Time"]
    for section, key in (("StatusSTS", "Time"), ("StatusTIM", "Local")):
        inner = obj.get(section)
        if isinstance(inner, dict) and key in inner:
            return inner[key]
    return None


def _read_clock(obj: Mapping[str, Any], received_at: datetime) -> ClockReading | None:
    device_time = parse_device_time(_clock_source(obj), received_at)
    if device_time is None:
        return None
    return ClockReading(offset=device_time - received_at)


def _read_module(obj: Mapping[str, Any]) -> ModuleReading | None:
    value = obj.get("Module")
    if value is None:
        main = obj.get("Status")
        if isinstance(main, dict):
            value = main.get("Module")
    info = resolve_module_value(value)
    return ModuleReading(module=info) if info is not None else None


def _read_gpio(obj: Mapping[str, Any]) -> GpioReading | None:
    pins: dict[int, GpioFunction] = {}
    for key, value in obj.items():
        match = _GPIO_KEY_RE.match(key)
        if match is None:
            continue
        function = resolve_gpio_value(value)
        if function is not None:
            pins[int(match.group(1))] = function
    return GpioReading(pins=pins) if pins else None


def _timer_entries(obj: Mapping[str, Any]) -> list[tuple[str, Any]]:
    entries = list(obj.items())
    # Timers reply groups slots as {"Timers1": {"Timer1": ..., "Timer2": ...}, ...}
    for key, value in obj.items():
        if _TIMERS_GROUP_RE.match(key) and isinstance(value, dict):
            entries.extend(value.items())
    return entries


def _read_timers(obj: Mapping[str, Any]) -> list[TimerReading]:
    readings: list[TimerReading] = []
    for key, value in _timer_entries(obj):
        match = _TIMER_KEY_RE.match(key)
        if match is None or not isinstance(value, dict):
            continue
        index = int(match.group(1))
        if not 1 <= index <= TIMER_SLOTS:
            continue
        try:
            record = TimerRecord.model_validate(value)
        except ValidationError:
            _logger.debug("Skipping undecodable timer slot %s", index, exc_info=True)
            continue
        readings.append(TimerReading(index=index, record=record))
    return readings


def parse_enabled_flag(value: Any) -> bool | None:
    """``ON``/``OFF`` text or a numeric 0/1."""
    if isinstance(value, bool):
        return value
    number = safe_int(value)
    if number is not None:
        return number != 0
    text = safe_str(value)
    if text is None:
        return None
    folded = text.upper()
    if folded == "ON":
        return True
    if folded == "OFF":
        return False
    return None


def _read_timers_enabled(obj: Mapping[str, Any]) -> TimersEnabledReading | None:
    value = obj.get("Timers")
    if value is None or isinstance(value, (dict, list)):
        return None
    enabled = parse_enabled_flag(value)
    return TimersEnabledReading(enabled=enabled) if enabled is not None else None


def _decode_json(obj: Mapping[str, Any], received_at: datetime) -> tuple[ConfigReading, ...]:
    readings: list[ConfigReading] = []
    for reading in (
        _read_clock(obj, received_at),
        _read_module(obj),
        _read_gpio(obj),
        _read_timers_enabled(obj),
    ):
        if reading is not None:
            readings.append(reading)
    readings.extend(_read_timers(obj))
    return tuple(readings)


# ------------------------------------------------------------------
# Regex fallback (Module and GPIO only)
# ------------------------------------------------------------------


def _decode_fallback(payload: str) -> tuple[ConfigReading, ...]:
    readings: list[ConfigReading] = []

    module_match = _MODULE_FALLBACK_RE.search(payload)
    if module_match is not None:
        keyed_id, keyed_name, bare_id = module_match.groups()
        info = (
            ModuleInfo(module_id=keyed_id, name=keyed_name or None)
            if keyed_id is not None
            else resolve_module_value(int(bare_id))
        )
        if info is not None:
            readings.append(ModuleReading(module=info))

    pins: dict[int, GpioFunction] = {}
    for pin, keyed_code, keyed_name, bare_code in _GPIO_FALLBACK_RE.findall(payload):
        if keyed_code:
            function = GpioFunction(code=int(keyed_code), name=keyed_name or None)
        else:
            function = resolve_gpio_value(int(bare_code))
        if function is not None:
            pins[int(pin)] = function
    if pins:
        readings.append(GpioReading(pins=pins))

    return tuple(readings)


def decode_config_message(
    topic: str,
    payload: str,
    received_at: datetime | None = None,
) -> tuple[ConfigReading, ...] | Unrecognized:
    """Extract configuration readings from one inbound message.

    Returns an empty tuple for a well-formed message that carries no
    configuration fields, and :class:`Unrecognized` when neither JSON nor
    the fallback patterns yield anything.
    """
    parts = split_topic(topic)
    if parts is None:
        return Unrecognized(topic=topic, reason="topic does not have prefix/device/command segments")
    if parts[0] not in (PREFIX_STAT, PREFIX_TELE):
        return Unrecognized(topic=topic, reason=f"not a device reply prefix: {parts[0]}")

    when = received_at if received_at is not None else datetime.now(UTC)
    if when.tzinfo is None:
        when = when.replace(tzinfo=UTC)
    obj = parse_json_object(payload)
    if obj is not None:
        return _decode_json(obj, when)

    # Plain-text replies (stat/<t>/POWER, tele/<t>/LWT) are not JSON at all.
    if "{" not in payload:
        return ()

    readings = _decode_fallback(payload)
    if not readings:
        return Unrecognized(topic=topic, reason="malformed JSON with no recoverable fields")
    _logger.debug("Recovered %d config readings from malformed payload topic=%s", len(readings), topic)
    return readings
