from __future__ import annotations

import json

import pytest

from pytasmota._client.commands import CommandDispatcher, split_console_line
from pytasmota.models.commands import Emulation, LogLevel, LogTarget, PowerAction
from pytasmota.models.config import TimerSpec


class _Recorder:
    def __init__(self, *, connected: bool = True) -> None:
        self.connected = connected
        self.published: list[tuple[str, str]] = []

    def publish(self, topic: str, payload: str) -> bool:
        self.published.append((topic, payload))
        return True

    def dispatcher(self) -> CommandDispatcher:
        return CommandDispatcher(publish=self.publish, is_connected=lambda: self.connected)


def test_send_builds_command_topic() -> None:
    recorder = _Recorder()

    assert recorder.dispatcher().send("sonoff-kamar", "POWER", "TOGGLE") is True
    assert recorder.published == [("cmnd/sonoff-kamar/POWER", "TOGGLE")]


def test_send_while_disconnected_is_silent_noop() -> None:
    recorder = _Recorder(connected=False)
    dispatcher = recorder.dispatcher()

    assert dispatcher.send("sonoff-kamar", "POWER", "TOGGLE") is False
    assert dispatcher.power("sonoff-kamar", PowerAction.TOGGLE) is False
    assert recorder.published == []


def test_send_requires_topic_and_command() -> None:
    with pytest.raises(ValueError):
        _Recorder().dispatcher().send("", "POWER")


def test_send_with_empty_topic_while_disconnected_is_dropped() -> None:
    recorder = _Recorder(connected=False)

    assert recorder.dispatcher().send("", "POWER") is False
    assert recorder.dispatcher().send("plug", "") is False
    assert recorder.published == []


class TestTypedHelpers:
    @pytest.fixture
    def recorder(self) -> _Recorder:
        return _Recorder()

    def test_power(self, recorder: _Recorder) -> None:
        dispatcher = recorder.dispatcher()
        dispatcher.power("plug")
        dispatcher.power("plug", "on")
        dispatcher.power("plug", PowerAction.TOGGLE)

        assert recorder.published == [
            ("cmnd/plug/POWER", ""),
            ("cmnd/plug/POWER", "ON"),
            ("cmnd/plug/POWER", "TOGGLE"),
        ]

    def test_power_rejects_unknown_action(self, recorder: _Recorder) -> None:
        with pytest.raises(ValueError):
            recorder.dispatcher().power("plug", "BLINK")
        assert recorder.published == []

    def test_status_report_range(self, recorder: _Recorder) -> None:
        dispatcher = recorder.dispatcher()
        dispatcher.status("plug")
        dispatcher.status("plug", 11)

        with pytest.raises(ValueError):
            dispatcher.status("plug", 12)
        assert recorder.published == [("cmnd/plug/STATUS", "0"), ("cmnd/plug/STATUS", "11")]

    def test_module_gpio_and_template(self, recorder: _Recorder) -> None:
        dispatcher = recorder.dispatcher()
        dispatcher.query_module("plug")
        dispatcher.set_module("plug", 18)
        dispatcher.query_gpio("plug")
        dispatcher.query_gpio("plug", 4)
        dispatcher.set_gpio("plug", 12, 224)
        dispatcher.query_gpio_functions("plug")
        dispatcher.reset_gpio("plug")
        dispatcher.query_template("plug")
        dispatcher.set_template("plug", {"NAME": "Plug", "GPIO": [0, 224], "FLAG": 0, "BASE": 18})
        dispatcher.activate_template("plug")

        assert recorder.published == [
            ("cmnd/plug/Module", ""),
            ("cmnd/plug/Module", "18"),
            ("cmnd/plug/GPIO", ""),
            ("cmnd/plug/GPIO4", ""),
            ("cmnd/plug/GPIO12", "224"),
            ("cmnd/plug/GPIOS", ""),
            ("cmnd/plug/GPIO", "255"),
            ("cmnd/plug/Template", ""),
            ("cmnd/plug/Template", '{"NAME":"Plug","GPIO":[0,224],"FLAG":0,"BASE":18}'),
            ("cmnd/plug/Module", "0"),
        ]

    @pytest.mark.parametrize(("pin", "code"), [(-1, 0), (40, 0), (1, -5)])
    def test_set_gpio_rejects_bad_values(self, recorder: _Recorder, pin: int, code: int) -> None:
        with pytest.raises(ValueError):
            recorder.dispatcher().set_gpio("plug", pin, code)
        assert recorder.published == []

    def test_timers(self, recorder: _Recorder) -> None:
        dispatcher = recorder.dispatcher()
        dispatcher.query_timers("plug")
        dispatcher.set_timers_enabled("plug", True)
        dispatcher.query_timer("plug", 16)
        dispatcher.set_timer(
            "plug",
            2,
            TimerSpec(enabled=True, time="06:30", days="0111110", repeat=True, action=1),
        )

        assert recorder.published[:3] == [
            ("cmnd/plug/Timers", ""),
            ("cmnd/plug/Timers", "1"),
            ("cmnd/plug/Timer16", ""),
        ]
        topic, payload = recorder.published[3]
        assert topic == "cmnd/plug/Timer2"
        assert json.loads(payload) == {
            "Enable": 1,
            "Mode": 0,
            "Time": "06:30",
            "Window": 0,
            "Days": "0111110",
            "Repeat": 1,
            "Output": 1,
            "Action": 1,
        }

    def test_set_timer_from_firmware_keys(self, recorder: _Recorder) -> None:
        recorder.dispatcher().set_timer("plug", 1, {"Enable": 1, "Mode": 1, "Time": "-00:15", "Days": "1111111"})

        assert json.loads(recorder.published[0][1])["Time"] == "-00:15"

    @pytest.mark.parametrize(
        ("index", "spec"),
        [
            (0, {}),
            (17, {}),
            (1, {"time": "25:00"}),
            (1, {"time": "6:3"}),
            (1, {"days": "01111"}),
            (1, {"days": "-MTWTF-"}),
            (1, {"window": 16}),
            (1, {"output": 0}),
            (1, {"action": 4}),
            (1, {"mode": 3}),
            (1, {"Enabled": 1, "Time": "06:30"}),
            (1, {"Enable": 1, "Actoin": 1}),
            (1, {"enabled": "maybe"}),
            (1, {"action": "toggle"}),
            (1, {"repeat": 2}),
        ],
    )
    def test_set_timer_rejects_invalid_spec(self, recorder: _Recorder, index: int, spec: dict) -> None:
        with pytest.raises(ValueError):
            recorder.dispatcher().set_timer("plug", index, spec)
        assert recorder.published == []

    def test_misspelled_timer_key_is_not_defaulted(self) -> None:
        with pytest.raises(ValueError, match="Actoin"):
            TimerSpec.model_validate({"Enable": 1, "Time": "06:30", "Days": "1111111", "Actoin": 1})

    def test_timer_flags_accept_firmware_words(self) -> None:
        spec = TimerSpec.model_validate({"Enable": "ON", "Repeat": "0", "Action": "2", "Days": "1111111"})

        assert (spec.enabled, spec.repeat, spec.action) == (True, False, 2)

    def test_logging_and_system_settings(self, recorder: _Recorder) -> None:
        dispatcher = recorder.dispatcher()
        dispatcher.query_log_level("plug", LogTarget.WEB)
        dispatcher.set_log_level("plug", "SerialLog", LogLevel.DEBUG)
        dispatcher.set_device_name("plug", " Kitchen ")
        dispatcher.set_friendly_name("plug", "Kitchen plug")
        dispatcher.set_emulation("plug", Emulation.HUE_BRIDGE)
        dispatcher.set_timezone("plug", 99)
        dispatcher.set_ntp_server("plug", "pool.ntp.org")
        dispatcher.restart("plug")

        assert recorder.published == [
            ("cmnd/plug/WebLog", ""),
            ("cmnd/plug/SerialLog", "3"),
            ("cmnd/plug/DeviceName", "Kitchen"),
            ("cmnd/plug/FriendlyName", "Kitchen plug"),
            ("cmnd/plug/Emulation", "2"),
            ("cmnd/plug/Timezone", "99"),
            ("cmnd/plug/NtpServer", "pool.ntp.org"),
            ("cmnd/plug/RESTART", "1"),
        ]

    def test_invalid_enum_values_raise(self, recorder: _Recorder) -> None:
        dispatcher = recorder.dispatcher()
        with pytest.raises(ValueError):
            dispatcher.set_emulation("plug", 7)
        with pytest.raises(ValueError):
            dispatcher.set_log_level("plug", LogTarget.MQTT, 9)
        with pytest.raises(ValueError):
            dispatcher.query_log_level("plug", "ConsoleLog")
        with pytest.raises(ValueError):
            dispatcher.set_device_name("plug", "  ")

    def test_firmware(self, recorder: _Recorder) -> None:
        dispatcher = recorder.dispatcher()
        dispatcher.query_ota_url("plug")
        dispatcher.set_ota_url("plug", "http://ota.tasmota.com/tasmota/release/tasmota.bin.gz")
        dispatcher.upgrade("plug")

        assert recorder.published == [
            ("cmnd/plug/OtaUrl", ""),
            ("cmnd/plug/OtaUrl", "http://ota.tasmota.com/tasmota/release/tasmota.bin.gz"),
            ("cmnd/plug/Upgrade", "1"),
        ]

    def test_console_line(self, recorder: _Recorder) -> None:
        dispatcher = recorder.dispatcher()
        dispatcher.console("plug", "  Backlog Power1 on; Delay 10  ")
        dispatcher.console("plug", "STATUS")

        assert recorder.published == [
            ("cmnd/plug/Backlog", "Power1 on; Delay 10"),
            ("cmnd/plug/STATUS", ""),
        ]


def test_split_console_line() -> None:
    assert split_console_line("RESTART 1") == ("RESTART", "1")
    with pytest.raises(ValueError):
        split_console_line("   ")
