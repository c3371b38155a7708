"""Module, GPIO and timer models used by the configuration session.

Firmware replies for ``Module`` and ``GPIO<n>`` come in two shapes
depending on version: a bare number (``{"Module": 1}``) or a
single-entry object mapping the numeric id to its display name
(``{"Module": {"1": "Sonoff Basic"}}``). Both are resolved exactly once
here, into :class:`ModuleInfo` / :class:`GpioFunction`, so no call site
has to sniff the shape again.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import ConfigDict, Field, field_validator

from pytasmota._constants import DAYS_MASK_LENGTH, GPIO_FUNCTION_NAMES, MODULE_NAMES
from pytasmota.ingestion.normalize import safe_int, safe_str
from pytasmota.models._base import TasmotaBaseModel

_TIMER_TIME_RE = re.compile(r"^-?\d{1,2}:\d{2}$")
_FLAG_WORDS = {"ON": True, "OFF": False, "1": True, "0": False}


class ModuleInfo(TasmotaBaseModel):
    module_id: str
    name: str | None = None

    @property
    def display(self) -> str:
        if self.name:
            return f"{self.name} ({self.module_id})"
        return self.module_id


class GpioFunction(TasmotaBaseModel):
    code: int
    name: str | None = None


def _single_entry(value: dict[str, Any]) -> tuple[str, Any] | None:
    if len(value) != 1:
        return None
    key, inner = next(iter(value.items()))
    return str(key), inner


def resolve_module_value(value: Any) -> ModuleInfo | None:
    """Resolve a ``Module`` value in either accepted shape."""
    if isinstance(value, dict):
        entry = _single_entry(value)
        if entry is None:
            return None
        key, name = entry
        return ModuleInfo(module_id=key.strip(), name=safe_str(name))
    if isinstance(value, bool):
        return None
    number = safe_int(value)
    if number is None:
        return None
    return ModuleInfo(module_id=str(number), name=MODULE_NAMES.get(number))


def resolve_gpio_value(value: Any) -> GpioFunction | None:
    """Resolve a ``GPIO<n>`` value in either accepted shape."""
    if isinstance(value, dict):
        entry = _single_entry(value)
        if entry is None:
            return None
        key, name = entry
        code = safe_int(key)
        if code is None:
            return None
        return GpioFunction(code=code, name=safe_str(name))
    if isinstance(value, bool):
        return None
    code = safe_int(value)
    if code is None:
        return None
    return GpioFunction(code=code, name=GPIO_FUNCTION_NAMES.get(code))


def _normalize_days(value: Any) -> str:
    # Firmware reports either "0111110" or "-MTWTF-"; store as a 0/1 mask.
    text = str(value or "")
    mask = "".join("0" if ch in "0-" else "1" for ch in text[:DAYS_MASK_LENGTH])
    return mask.ljust(DAYS_MASK_LENGTH, "0")


class TimerRecord(TasmotaBaseModel):
    """One of the 16 firmware timer slots, as reported by the device."""

    enabled: bool = Field(default=False, alias="Enable")
    mode: int = Field(default=0, alias="Mode")
    """0 = clock time, 1 = sunrise, 2 = sunset."""
    time: str = Field(default="00:00", alias="Time")
    window: int = Field(default=0, alias="Window")
    """Random window in minutes (0-15)."""
    days: str = Field(default="0" * DAYS_MASK_LENGTH, alias="Days")
    """Seven ``0``/``1`` chars, Sunday first."""
    repeat: bool = Field(default=False, alias="Repeat")
    output: int = Field(default=1, alias="Output")
    action: int = Field(default=0, alias="Action")
    """0 = off, 1 = on, 2 = toggle, 3 = rule."""

    @field_validator("enabled", "repeat", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        number = safe_int(value)
        if number is not None:
            return number != 0
        return str(value).strip().upper() == "ON"

    @field_validator("mode", "window", "action", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int:
        number = safe_int(value)
        return number if number is not None else 0

    @field_validator("output", mode="before")
    @classmethod
    def _coerce_output(cls, value: Any) -> int:
        number = safe_int(value)
        return number if number is not None else 1

    @field_validator("time", mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> str:
        return safe_str(value) or "00:00"

    @field_validator("days", mode="before")
    @classmethod
    def _coerce_days(cls, value: Any) -> str:
        return _normalize_days(value)

    def to_payload(self) -> str:
        """Serialize as the JSON payload accepted by ``Timer<n>``."""
        body = {
            "Enable": int(self.enabled),
            "Mode": self.mode,
            "Time": self.time,
            "Window": self.window,
            "Days": self.days,
            "Repeat": int(self.repeat),
            "Output": self.output,
            "Action": self.action,
        }
        return json.dumps(body, separators=(",", ":"))


def _strict_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str) and value.strip().upper() in _FLAG_WORDS:
        return _FLAG_WORDS[value.strip().upper()]
    raise ValueError(f"expected a boolean, 0/1 or ON/OFF, got {value!r}")


def _strict_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValueError(f"expected an integer, got {value!r}")


class TimerSpec(TimerRecord):
    """A timer to write to the device; out-of-range values are rejected.

    Use field names (``enabled``, ``time`` ...) or firmware keys
    (``Enable``, ``Time`` ...). Unknown keys are rejected so a misspelled
    key cannot silently fall back to a default.
    """

    model_config = ConfigDict(extra="forbid")

    mode: int = Field(default=0, alias="Mode", ge=0, le=2)
    window: int = Field(default=0, alias="Window", ge=0, le=15)
    output: int = Field(default=1, alias="Output", ge=1, le=16)
    action: int = Field(default=0, alias="Action", ge=0, le=3)

    @field_validator("enabled", "repeat", mode="before")
    @classmethod
    def _coerce_flag(cls, value: Any) -> bool:
        return _strict_flag(value)

    @field_validator("mode", "window", "action", mode="before")
    @classmethod
    def _coerce_int(cls, value: Any) -> int:
        return _strict_int(value)

    @field_validator("output", mode="before")
    @classmethod
    def _coerce_output(cls, value: Any) -> int:
        return _strict_int(value)

    @field_validator("time")
    @classmethod
    def _validate_time(cls, value: str) -> str:
        if not _TIMER_TIME_RE.match(value):
            raise ValueError(f"time must be HH:MM (optionally negative for sun offsets), got {value!r}")
        hours, _, minutes = value.lstrip("-").partition(":")
        if int(hours) > 23 or int(minutes) > 59:
            raise ValueError(f"time out of range: {value!r}")
        return value

    @field_validator("days", mode="before")
    @classmethod
    def _coerce_days(cls, value: Any) -> str:
        text = str(value)
        if len(text) != DAYS_MASK_LENGTH or set(text) - {"0", "1"}:
            raise ValueError(f"days must be {DAYS_MASK_LENGTH} chars of 0/1, got {value!r}")
        return text
