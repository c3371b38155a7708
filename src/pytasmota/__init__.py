"""pytasmota - Async Python client for Tasmota devices over MQTT."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pytasmota")
except PackageNotFoundError:
    __version__ = "0+local"
from pytasmota._client.inspector import ConfigPage, DeviceInspector
from pytasmota._mqtt import ConnectionState, InboundMessage
from pytasmota.client import TasmotaClient
from pytasmota.config import ConnectionSettings
from pytasmota.exceptions import TasmotaConfigError, TasmotaError, TasmotaTransportError
from pytasmota.models import (
    Device,
    DeviceProjection,
    Emulation,
    GpioFunction,
    LogLevel,
    LogTarget,
    ModuleInfo,
    PowerAction,
    PowerStatus,
    TimerRecord,
    TimerSpec,
    parse_device_registry,
)
from pytasmota.state.config_session import ConfigSession
from pytasmota.state.policy import MergePolicy

__all__ = [
    "ConfigPage",
    "ConfigSession",
    "ConnectionSettings",
    "ConnectionState",
    "Device",
    "DeviceInspector",
    "DeviceProjection",
    "Emulation",
    "GpioFunction",
    "InboundMessage",
    "LogLevel",
    "LogTarget",
    "MergePolicy",
    "ModuleInfo",
    "PowerAction",
    "PowerStatus",
    "TasmotaClient",
    "TasmotaConfigError",
    "TasmotaError",
    "TasmotaTransportError",
    "TimerRecord",
    "TimerSpec",
    "__version__",
    "parse_device_registry",
]
