from __future__ import annotations

from pytasmota._redact import redact_command, redact_for_log
from pytasmota.config import ConnectionSettings


def test_redact_for_log_redacts_sensitive_keys() -> None:
    payload = {
        "host": "broker.local",
        "password": "pw",
        "nested": {"MqttPassword": "secret", "user": "me"},
        "empty": {"password": ""},
    }

    redacted = redact_for_log(payload)
    assert redacted["host"] == "broker.local"
    assert redacted["password"] == "<redacted>"
    assert redacted["nested"]["MqttPassword"] == "<redacted>"
    assert redacted["nested"]["user"] == "me"
    assert redacted["empty"]["password"] == ""


def test_redact_for_log_accepts_settings_dataclass() -> None:
    settings = ConnectionSettings(host="broker.local", username="user", password="hunter2")

    redacted = redact_for_log(settings)
    assert redacted["password"] == "<redacted>"
    assert redacted["username"] == "user"


def test_redact_for_log_truncates_long_strings() -> None:
    long_value = "x" * 600
    redacted = redact_for_log({"value": long_value}, max_string=10)
    assert redacted["value"].startswith("x" * 10)
    assert "<truncated>" in redacted["value"]


def test_redact_command_payload() -> None:
    assert redact_command("MqttPassword", "secret") == "<redacted>"
    assert redact_command("POWER", "ON") == "ON"
