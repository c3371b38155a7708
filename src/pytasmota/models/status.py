"""Wire models for ``STATUS`` reports and ``tele`` telemetry.

Each ``STATUS <n>`` reply wraps its data in a vendor-namespaced
top-level key; ``STATUS 0`` returns all of them in one object:

=========  ===============  ==========================================
Report     Key              Fields used
=========  ===============  ==========================================
0          ``Status``       Module, DeviceName
1          ``StatusPRM``    Uptime
2          ``StatusFWR``    Version
4          ``StatusMEM``    Free
5          ``StatusNET``    IPAddress, Hostname, Mac
6          ``StatusMQT``    MqttCount
8 / 10     ``StatusSNS``    sensor sub-objects keyed by sensor name
11         ``StatusSTS``    POWER, Uptime, Time, Wifi.SSId, Wifi.RSSI
=========  ===============  ==========================================

``tele/<topic>/STATE`` carries the ``StatusSTS`` shape at top level and
``tele/<topic>/SENSOR`` the ``StatusSNS`` shape.
"""

from __future__ import annotations

from typing import Any

from pydantic import Field

from pytasmota.models._base import LenientFloat, LenientInt, LenientStr, TasmotaBaseModel


class StatusMain(TasmotaBaseModel):
    module: Any = Field(default=None, alias="Module")
    """Numeric id, or a single-entry ``{"<id>": "<name>"}`` object."""
    device_name: LenientStr = Field(default=None, alias="DeviceName")


class StatusPRM(TasmotaBaseModel):
    uptime: LenientStr = Field(default=None, alias="Uptime")


class StatusFWR(TasmotaBaseModel):
    version: LenientStr = Field(default=None, alias="Version")


class StatusMEM(TasmotaBaseModel):
    free: LenientInt = Field(default=None, alias="Free")


class StatusNET(TasmotaBaseModel):
    ip_address: LenientStr = Field(default=None, alias="IPAddress")
    hostname: LenientStr = Field(default=None, alias="Hostname")
    mac: LenientStr = Field(default=None, alias="Mac")


class StatusMQT(TasmotaBaseModel):
    mqtt_count: LenientInt = Field(default=None, alias="MqttCount")


class WifiInfo(TasmotaBaseModel):
    ssid: LenientStr = Field(default=None, alias="SSId")
    rssi: LenientInt = Field(default=None, alias="RSSI")
    signal: LenientInt = Field(default=None, alias="Signal")
    """Signal in dBm."""


class StateReport(TasmotaBaseModel):
    """``StatusSTS`` body, also the ``tele/<topic>/STATE`` payload."""

    power: LenientStr = Field(default=None, alias="POWER")
    uptime: LenientStr = Field(default=None, alias="Uptime")
    time: LenientStr = Field(default=None, alias="Time")
    wifi: WifiInfo | None = Field(default=None, alias="Wifi")


class EnergyReading(TasmotaBaseModel):
    power: LenientFloat = Field(default=None, alias="Power")
    voltage: LenientFloat = Field(default=None, alias="Voltage")
    current: LenientFloat = Field(default=None, alias="Current")


class ClimateReading(TasmotaBaseModel):
    """Any temperature/humidity sensor (AM2301, DHT11, DS18B20, BME280 ...)."""

    temperature: LenientFloat = Field(default=None, alias="Temperature")
    humidity: LenientFloat = Field(default=None, alias="Humidity")

