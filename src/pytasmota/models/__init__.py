"""Data models for Tasmota payloads, commands and device state."""

from pytasmota.models._base import LenientFloat, LenientInt, LenientStr, TasmotaBaseModel, TasmotaEnum
from pytasmota.models.commands import (
    Command,
    Emulation,
    GpioPin,
    LogLevel,
    LogTarget,
    PowerAction,
    StatusArgument,
    StatusReport,
    TimerIndex,
)
from pytasmota.models.config import (
    GpioFunction,
    ModuleInfo,
    TimerRecord,
    TimerSpec,
    resolve_gpio_value,
    resolve_module_value,
)
from pytasmota.models.device import Device, DeviceProjection, PowerStatus, parse_device_registry
from pytasmota.models.status import (
    ClimateReading,
    EnergyReading,
    StateReport,
    StatusFWR,
    StatusMain,
    StatusMEM,
    StatusMQT,
    StatusNET,
    StatusPRM,
    WifiInfo,
)

__all__ = [
    "ClimateReading",
    "Command",
    "Device",
    "DeviceProjection",
    "Emulation",
    "EnergyReading",
    "GpioFunction",
    "GpioPin",
    "LenientFloat",
    "LenientInt",
    "LenientStr",
    "LogLevel",
    "LogTarget",
    "ModuleInfo",
    "PowerAction",
    "PowerStatus",
    "StateReport",
    "StatusArgument",
    "StatusFWR",
    "StatusMEM",
    "StatusMQT",
    "StatusMain",
    "StatusNET",
    "StatusPRM",
    "StatusReport",
    "TasmotaBaseModel",
    "TasmotaEnum",
    "TimerIndex",
    "TimerRecord",
    "TimerSpec",
    "WifiInfo",
    "parse_device_registry",
    "resolve_gpio_value",
    "resolve_module_value",
]
