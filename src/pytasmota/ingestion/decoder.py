"""Inbound message decoding for the device projection.

Pure functions from ``(topic, payload)`` to a :class:`DeviceUpdate` or an
explicit :class:`Unrecognized`. Topics are expected as
``{prefix}/{device_topic}/{command}[/...]``; dispatch happens on
``(prefix, command)``:

==========================  =====================================
``stat/<t>/POWER``          text payload is the relay state
``stat/<t>/RESULT``         JSON, ``POWER`` and ``Module`` keys
``stat/<t>/STATUS[n]``      JSON, ``StatusXXX`` sub-objects
``tele/<t>/LWT``            ``Online`` / anything else
``tele/<t>/STATE``          JSON, ``StatusSTS`` shape
``tele/<t>/SENSOR``         JSON, ``StatusSNS`` shape
==========================  =====================================

A payload that does not parse as a JSON object is dropped as a whole;
this path never attempts partial regex recovery (see
:mod:`pytasmota.ingestion.config_decoder` for the path that does).
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ValidationError

from pytasmota._constants import LWT_ONLINE, PREFIX_STAT, PREFIX_TELE
from pytasmota.ingestion.normalize import clamp_percent, parse_json_object, prune_patch
from pytasmota.models.config import resolve_module_value
from pytasmota.models.device import PowerStatus
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
)
from pytasmota.state.events import DecodeResult, DeviceUpdate, MessageKind, Unrecognized

Patch = dict[str, Any]


def split_topic(topic: str) -> tuple[str, str, str] | None:
    """Return ``(prefix, device_topic, command)`` or ``None`` if malformed."""
    parts = topic.split("/")
    if len(parts) < 3:
        return None
    prefix, device_topic, command = parts[0], parts[1], parts[2]
    if not prefix or not device_topic or not command:
        return None
    return prefix, device_topic, command


def is_status_command(command: str) -> bool:
    """``STATUS`` or ``STATUS<n>``."""
    if not command.startswith("STATUS"):
        return False
    suffix = command[len("STATUS") :]
    return suffix == "" or suffix.isdigit()


def _validate(model: type[BaseModel], value: Any) -> Any:
    if not isinstance(value, dict):
        return None
    try:
        return model.model_validate(value)
    except ValidationError:
        return None


# ------------------------------------------------------------------
# Sub-object mappers (each returns an unpruned patch)
# ------------------------------------------------------------------


def _map_power(value: Any) -> Patch:
    if value is None or isinstance(value, (dict, list)):
        return {}
    return {"status": PowerStatus(str(value).strip())}


def _map_module(value: Any) -> Patch:
    info = resolve_module_value(value)
    return {"module": info.display} if info is not None else {}


def _map_status_main(value: Any) -> Patch:
    main = _validate(StatusMain, value)
    if main is None:
        return {}
    return {**_map_module(main.module), "device_name": main.device_name}


def _map_prm(value: Any) -> Patch:
    prm = _validate(StatusPRM, value)
    return {"uptime": prm.uptime} if prm is not None else {}


def _map_fwr(value: Any) -> Patch:
    fwr = _validate(StatusFWR, value)
    return {"version": fwr.version} if fwr is not None else {}


def _map_mem(value: Any) -> Patch:
    mem = _validate(StatusMEM, value)
    return {"free_memory": mem.free} if mem is not None else {}


def _map_net(value: Any) -> Patch:
    net = _validate(StatusNET, value)
    if net is None:
        return {}
    return {"ip_address": net.ip_address, "hostname": net.hostname, "mac": net.mac}


def _map_mqt(value: Any) -> Patch:
    mqt = _validate(StatusMQT, value)
    return {"mqtt_count": mqt.mqtt_count} if mqt is not None else {}


def _map_state(value: Any) -> Patch:
    """``StatusSTS`` / ``tele/STATE`` body."""
    report = _validate(StateReport, value)
    if report is None:
        return {}
    patch: Patch = {"uptime": report.uptime}
    if report.power is not None:
        patch.update(_map_power(report.power))
    if report.wifi is not None:
        patch["ssid"] = report.wifi.ssid
        patch["rssi"] = clamp_percent(report.wifi.rssi)
    return patch


def _map_sensors(value: Any) -> Patch:
    """``StatusSNS`` / ``tele/SENSOR`` body: one sub-object per sensor type."""
    if not isinstance(value, dict):
        return {}
    patch: Patch = {}
    sensors: dict[str, dict[str, Any]] = {}
    for name, body in value.items():
        # Scalars alongside the sensors are metadata ("Time", "TempUnit").
        if not isinstance(body, dict):
            continue
        sensors[name] = body
        if name == "ENERGY":
            energy = _validate(EnergyReading, body)
            if energy is not None:
                patch.update(power=energy.power, voltage=energy.voltage, current=energy.current)
            continue
        climate = _validate(ClimateReading, body)
        if climate is None:
            continue
        if climate.temperature is not None:
            patch["temperature"] = climate.temperature
        if climate.humidity is not None:
            patch["humidity"] = climate.humidity
    patch["sensors"] = sensors
    return patch


_STATUS_SECTIONS: dict[str, Callable[[Any], Patch]] = {
    "Status": _map_status_main,
    "StatusPRM": _map_prm,
    "StatusFWR": _map_fwr,
    "StatusMEM": _map_mem,
    "StatusNET": _map_net,
    "StatusMQT": _map_mqt,
    "StatusSNS": _map_sensors,
    "StatusSTS": _map_state,
}


# ------------------------------------------------------------------
# Per-command handlers: payload -> patch, or None when undecodable
# ------------------------------------------------------------------


def _decode_power(payload: str) -> Patch | None:
    text = payload.strip()
    if not text:
        return None
    return {**_map_power(text), "is_online": True}


def _decode_result(payload: str) -> Patch | None:
    obj = parse_json_object(payload)
    if obj is None:
        return None
    patch: Patch = {"is_online": True}
    if "POWER" in obj:
        patch.update(_map_power(obj["POWER"]))
    if "Module" in obj:
        patch.update(_map_module(obj["Module"]))
    return patch


def _decode_status(payload: str) -> Patch | None:
    obj = parse_json_object(payload)
    if obj is None:
        return None
    patch: Patch = {}
    for key, value in obj.items():
        mapper = _STATUS_SECTIONS.get(key)
        if mapper is not None:
            # Sections overlap (Uptime, POWER); a missing value must not mask another section's.
            patch.update(prune_patch(mapper(value)))
    patch["is_online"] = True
    return patch


def _decode_lwt(payload: str) -> Patch | None:
    return {"is_online": payload.strip() == LWT_ONLINE}


def _decode_state(payload: str) -> Patch | None:
    obj = parse_json_object(payload)
    if obj is None:
        return None
    return {**_map_state(obj), "is_online": True}


def _decode_sensor(payload: str) -> Patch | None:
    obj = parse_json_object(payload)
    if obj is None:
        return None
    return {**_map_sensors(obj), "is_online": True}


def _resolve_handler(prefix: str, command: str) -> tuple[MessageKind, Callable[[str], Patch | None]] | None:
    if prefix == PREFIX_STAT:
        if command == "POWER":
            return MessageKind.POWER, _decode_power
        if command == "RESULT":
            return MessageKind.RESULT, _decode_result
        if is_status_command(command):
            return MessageKind.STATUS, _decode_status
    elif prefix == PREFIX_TELE:
        if command == "LWT":
            return MessageKind.LWT, _decode_lwt
        if command == "STATE":
            return MessageKind.STATE, _decode_state
        if command == "SENSOR":
            return MessageKind.SENSOR, _decode_sensor
    return None


def decode_message(topic: str, payload: str, received_at: datetime | None = None) -> DecodeResult:
    """Decode one inbound message into a projection update.

    Parameters
    ----------
    topic
        Full MQTT topic, e.g. ``stat/sonoff-dapur/POWER``.
    payload
        Payload decoded as text.
    received_at
        Receipt time, used for ``last_seen``. Defaults to now (UTC).
    """
    parts = split_topic(topic)
    if parts is None:
        return Unrecognized(topic=topic, reason="topic does not have prefix/device/command segments")
    prefix, device_topic, command = parts

    resolved = _resolve_handler(prefix, command)
    if resolved is None:
        return Unrecognized(topic=topic, reason=f"no handler for {prefix}/{command}")
    kind, handler = resolved

    patch = handler(payload)
    if patch is None:
        return Unrecognized(topic=topic, reason=f"undecodable {kind.value} payload")

    return DeviceUpdate(
        topic=device_topic,
        kind=kind,
        received_at=received_at if received_at is not None else datetime.now(UTC),
        data=prune_patch(patch),
    )
