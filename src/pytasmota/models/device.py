"""Device registry entries and the per-device state projection."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator

from pytasmota.models._base import TasmotaEnum


class PowerStatus(TasmotaEnum):
    """Relay power state as last reported by the device."""

    ON = "ON"
    OFF = "OFF"
    UNKNOWN = "UNKNOWN"

    @classmethod
    def _missing_(cls, value: object) -> PowerStatus:
        # Firmware with SetOption26 or numeric state text reports 1/0.
        if isinstance(value, (int, str)) and str(value).strip() in {"1", "0"}:
            return cls.ON if str(value).strip() == "1" else cls.OFF
        resolved: PowerStatus = super()._missing_(value)  # type: ignore[assignment]
        return resolved


class Device(BaseModel):
    """A device the operator registered, owned by the surrounding application.

    The core only reads :attr:`topic`.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
        str_strip_whitespace=True,
    )

    id: str = Field(default="")
    """Application-assigned identifier."""
    name: str = Field(default="")
    """Display name."""
    topic: str = Field(..., validation_alias=AliasChoices("topic", "deviceTopic"))
    """Tasmota ``Topic`` setting, the middle segment of every MQTT topic."""

    @field_validator("topic")
    @classmethod
    def _validate_topic(cls, value: str) -> str:
        if not value:
            raise ValueError("topic must be non-empty")
        if "/" in value or "+" in value or "#" in value:
            raise ValueError(f"topic must be a single MQTT segment, got {value!r}")
        return value


def parse_device_registry(raw: Any) -> list[Device]:
    """Parse a persisted device registry (list of ``{id, name, topic}``).

    Returns an empty list when the blob does not validate.
    """
    try:
        return TypeAdapter(list[Device]).validate_python(raw)
    except ValidationError:
        return []


class DeviceProjection(BaseModel):
    """Last-known state of one device, derived entirely from received messages.

    Not authoritative: fields are only as fresh as the last message that
    supplied them, and ``None`` means "never reported".
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    status: PowerStatus = PowerStatus.UNKNOWN
    is_online: bool = False
    last_seen: datetime | None = None

    # Network
    ip_address: str | None = None
    hostname: str | None = None
    mac: str | None = None
    ssid: str | None = None
    rssi: int | None = None
    """Wi-Fi signal quality, 0-100."""

    # Firmware
    module: str | None = None
    """Module display string, e.g. ``"Sonoff Basic (1)"``."""
    device_name: str | None = None
    version: str | None = None
    uptime: str | None = None
    free_memory: int | None = None
    """Free heap in kB."""
    mqtt_count: int | None = None

    # Sensors
    power: float | None = None
    voltage: float | None = None
    current: float | None = None
    temperature: float | None = None
    humidity: float | None = None
    sensors: dict[str, dict[str, Any]] = Field(default_factory=dict)
    """Raw sensor readings keyed by sensor-type name (``ENERGY``, ``AM2301`` ...)."""
