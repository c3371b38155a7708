"""Command vocabulary and typed command parameters."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field

from pytasmota._constants import STATUS_REPORT_MAX, TIMER_SLOTS


class Command(enum.StrEnum):
    """Firmware commands issued by the adapter (``cmnd/<topic>/<Command>``)."""

    POWER = "POWER"
    STATUS = "STATUS"
    MODULE = "Module"
    GPIO = "GPIO"
    GPIOS = "GPIOS"
    TEMPLATE = "Template"
    TIMERS = "Timers"
    SERIAL_LOG = "SerialLog"
    WEB_LOG = "WebLog"
    MQTT_LOG = "MqttLog"
    SYS_LOG = "SysLog"
    DEVICE_NAME = "DeviceName"
    FRIENDLY_NAME = "FriendlyName"
    EMULATION = "Emulation"
    TIMEZONE = "Timezone"
    NTP_SERVER = "NtpServer"
    OTA_URL = "OtaUrl"
    UPGRADE = "Upgrade"
    RESTART = "RESTART"

    @staticmethod
    def gpio(pin: int) -> str:
        return f"GPIO{GpioPin(pin=pin).pin}"

    @staticmethod
    def timer(index: int) -> str:
        return f"Timer{TimerIndex(index=index).index}"


class PowerAction(enum.StrEnum):
    ON = "ON"
    OFF = "OFF"
    TOGGLE = "TOGGLE"


class LogTarget(enum.StrEnum):
    SERIAL = Command.SERIAL_LOG.value
    WEB = Command.WEB_LOG.value
    MQTT = Command.MQTT_LOG.value
    SYSLOG = Command.SYS_LOG.value


class LogLevel(enum.IntEnum):
    NONE = 0
    ERROR = 1
    INFO = 2
    DEBUG = 3
    DEBUG_MORE = 4


class Emulation(enum.IntEnum):
    NONE = 0
    BELKIN_WEMO = 1
    HUE_BRIDGE = 2


class StatusReport(enum.IntEnum):
    """Argument of ``STATUS <n>``."""

    ALL = 0
    PARAMETERS = 1
    FIRMWARE = 2
    LOGGING = 3
    MEMORY = 4
    NETWORK = 5
    MQTT = 6
    TIME = 7
    SENSORS = 8
    POWER_THRESHOLDS = 9
    SENSORS_ALT = 10
    STATE = 11


class _CommandParam(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class TimerIndex(_CommandParam):
    index: int = Field(..., ge=1, le=TIMER_SLOTS)


class GpioPin(_CommandParam):
    pin: int = Field(..., ge=0, le=39)


class StatusArgument(_CommandParam):
    report: int = Field(..., ge=0, le=STATUS_REPORT_MAX)
