from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from pytasmota.ingestion.decoder import decode_message, is_status_command, split_topic
from pytasmota.models.device import PowerStatus
from pytasmota.state.events import DeviceUpdate, MessageKind, Unrecognized


def _dt() -> datetime:
    return datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


def _decode(topic: str, payload: str | dict) -> DeviceUpdate:
    text = payload if isinstance(payload, str) else json.dumps(payload)
    result = decode_message(topic, text, _dt())
    assert isinstance(result, DeviceUpdate), result
    return result


def test_lwt_online_marks_device_online() -> None:
    update = _decode("tele/sonoff-dapur/LWT", "Online")

    assert update.topic == "sonoff-dapur"
    assert update.kind == MessageKind.LWT
    assert update.data == {"is_online": True}
    assert update.received_at == _dt()


@pytest.mark.parametrize("payload", ["Offline", "offline", "", "gone"])
def test_lwt_anything_else_marks_device_offline(payload: str) -> None:
    update = _decode("tele/sonoff-dapur/LWT", payload)

    assert update.data == {"is_online": False}


def test_stat_power_text_sets_status_and_online() -> None:
    update = _decode("stat/sonoff-dapur/POWER", "ON")

    assert update.data == {"status": PowerStatus.ON, "is_online": True}


def test_stat_power_numeric_text() -> None:
    assert _decode("stat/plug/POWER", "0").data["status"] == PowerStatus.OFF


def test_stat_power_unknown_text_resolves_to_unknown() -> None:
    assert _decode("stat/plug/POWER", "BLINK").data["status"] == PowerStatus.UNKNOWN


def test_status5_maps_network_fields_only() -> None:
    update = _decode(
        "stat/sonoff-dapur/STATUS5",
        '{"StatusNET":{"IPAddress":"192.168.1.50","Hostname":"sonoff-dapur","Mac":"AA:BB:CC:DD:EE:FF"}}',
    )

    assert update.kind == MessageKind.STATUS
    assert update.data == {
        "ip_address": "192.168.1.50",
        "hostname": "sonoff-dapur",
        "mac": "AA:BB:CC:DD:EE:FF",
        "is_online": True,
    }


def test_status0_maps_every_known_section() -> None:
    update = _decode(
        "stat/plug/STATUS",
        {
            "Status": {"Module": 1, "DeviceName": "Kitchen", "FriendlyName": ["Kitchen"]},
            "StatusPRM": {"Uptime": "0T01:02:03"},
            "StatusFWR": {"Version": "13.2.0(tasmota)"},
            "StatusLOG": {"SerialLog": 2},
            "StatusMEM": {"Free": 25},
            "StatusNET": {"IPAddress": "10.0.0.7"},
            "StatusMQT": {"MqttCount": 3},
            "StatusSTS": {"POWER": "OFF", "Wifi": {"SSId": "home", "RSSI": 76}},
        },
    )

    assert update.data == {
        "module": "Sonoff Basic (1)",
        "device_name": "Kitchen",
        "uptime": "0T01:02:03",
        "version": "13.2.0(tasmota)",
        "free_memory": 25,
        "ip_address": "10.0.0.7",
        "mqtt_count": 3,
        "status": PowerStatus.OFF,
        "ssid": "home",
        "rssi": 76,
        "is_online": True,
    }


def test_status_module_single_entry_object() -> None:
    update = _decode("stat/plug/STATUS", {"Status": {"Module": {"18": "Generic"}}})

    assert update.data["module"] == "Generic (18)"


def test_status_malformed_known_section_is_skipped() -> None:
    update = _decode(
        "stat/plug/STATUS",
        {"StatusNET": "not-an-object", "StatusFWR": {"Version": "12.0.0"}},
    )

    assert update.data == {"version": "12.0.0", "is_online": True}


def test_status_unknown_sections_are_ignored() -> None:
    update = _decode("stat/plug/STATUS7", {"StatusTIM": {"UTC": "2026-01-01T11:00:00"}})

    assert update.data == {"is_online": True}


def test_rssi_clamped_to_percent() -> None:
    update = _decode("tele/plug/STATE", {"Wifi": {"RSSI": 130}})

    assert update.data["rssi"] == 100


def test_tele_state_maps_power_uptime_wifi() -> None:
    update = _decode(
        "tele/plug/STATE",
        {"Time": "2026-01-01T12:00:00", "Uptime": "1T00:00:00", "POWER": "ON", "Wifi": {"SSId": "iot", "RSSI": 40}},
    )

    assert update.kind == MessageKind.STATE
    assert update.data == {
        "uptime": "1T00:00:00",
        "status": PowerStatus.ON,
        "ssid": "iot",
        "rssi": 40,
        "is_online": True,
    }


def test_tele_sensor_energy_and_climate() -> None:
    update = _decode(
        "tele/plug/SENSOR",
        {
            "Time": "2026-01-01T12:00:00",
            "ENERGY": {"Power": 42, "Voltage": "229", "Current": 0.18},
            "AM2301": {"Temperature": 24.5, "Humidity": 61.2},
            "TempUnit": "C",
        },
    )

    assert update.kind == MessageKind.SENSOR
    assert update.data["power"] == 42.0
    assert update.data["voltage"] == 229.0
    assert update.data["current"] == 0.18
    assert update.data["temperature"] == 24.5
    assert update.data["humidity"] == 61.2
    assert set(update.data["sensors"]) == {"ENERGY", "AM2301"}


def test_any_temperature_sensor_is_recognized() -> None:
    update = _decode("stat/plug/STATUS8", {"StatusSNS": {"DS18B20": {"Id": "0316", "Temperature": 19.1}}})

    assert update.data["temperature"] == 19.1
    assert "humidity" not in update.data
    assert update.data["sensors"]["DS18B20"]["Id"] == "0316"


def test_result_power_and_module() -> None:
    update = _decode("stat/plug/RESULT", {"POWER": "OFF", "Module": {"1": "Sonoff Basic"}})

    assert update.kind == MessageKind.RESULT
    assert update.data == {"status": PowerStatus.OFF, "module": "Sonoff Basic (1)", "is_online": True}


def test_result_without_known_keys_only_marks_online() -> None:
    assert _decode("stat/plug/RESULT", {"Timers": "ON"}).data == {"is_online": True}


@pytest.mark.parametrize(
    "topic",
    ["sonoff-dapur", "tele/sonoff-dapur", "tele//LWT", "", "/a/b"],
)
def test_malformed_topic_is_unrecognized(topic: str) -> None:
    result = decode_message(topic, "Online", _dt())

    assert isinstance(result, Unrecognized)
    assert result.topic == topic


@pytest.mark.parametrize(
    "topic",
    ["stat/plug/RESULT", "stat/plug/STATUS5", "tele/plug/STATE", "tele/plug/SENSOR"],
)
def test_malformed_json_is_unrecognized(topic: str) -> None:
    result = decode_message(topic, '{"Module": 1, "GPIO0": ', _dt())

    assert isinstance(result, Unrecognized)


def test_unhandled_command_is_unrecognized() -> None:
    assert isinstance(decode_message("stat/plug/STATUS3", "{}", _dt()), DeviceUpdate)
    assert isinstance(decode_message("stat/plug/UPGRADE", "{}", _dt()), Unrecognized)
    assert isinstance(decode_message("cmnd/plug/POWER", "", _dt()), Unrecognized)
    assert isinstance(decode_message("tele/plug/INFO1", "{}", _dt()), Unrecognized)


def test_extra_topic_segments_are_tolerated() -> None:
    update = _decode("tele/plug/LWT/extra", "Online")

    assert update.topic == "plug"


def test_received_at_defaults_to_now() -> None:
    result = decode_message("tele/plug/LWT", "Online")

    assert isinstance(result, DeviceUpdate)
    assert result.received_at.tzinfo is not None


def test_split_topic_and_status_command_helpers() -> None:
    assert split_topic("stat/plug/STATUS11") == ("stat", "plug", "STATUS11")
    assert split_topic("stat/plug") is None
    assert is_status_command("STATUS")
    assert is_status_command("STATUS11")
    assert not is_status_command("STATUSX")
