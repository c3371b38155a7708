from __future__ import annotations

import pytest

from pytasmota.config import ConnectionSettings
from pytasmota.exceptions import TasmotaConfigError

_ENV_KEYS = (
    "TASMOTA_MQTT_HOST",
    "TASMOTA_MQTT_PORT",
    "TASMOTA_MQTT_USERNAME",
    "TASMOTA_MQTT_PASSWORD",
    "TASMOTA_MQTT_USE_TLS",
    "TASMOTA_MQTT_WS_PATH",
    "TASMOTA_MQTT_TRANSPORT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


class TestPortDefaults:
    def test_plain_websocket(self) -> None:
        settings = ConnectionSettings(host="broker.local")

        assert settings.resolved_port == 8083
        assert settings.url == "ws://broker.local:8083/mqtt"

    def test_tls_websocket(self) -> None:
        settings = ConnectionSettings(host="broker.local", use_tls=True)

        assert settings.resolved_port == 8884
        assert settings.url == "wss://broker.local:8884/mqtt"

    def test_explicit_port_wins(self) -> None:
        assert ConnectionSettings(host="broker.local", port=9001).resolved_port == 9001

    def test_tcp_url(self) -> None:
        settings = ConnectionSettings(host="broker.local", port=1883, transport="tcp")

        assert settings.url == "mqtt://broker.local:1883"


class TestValidate:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"host": ""},
            {"host": "   "},
            {"host": "ws://broker.local"},
            {"host": "broker.local/mqtt"},
            {"host": "broker.local", "port": 0},
            {"host": "broker.local", "port": 70000},
            {"host": "broker.local", "transport": "udp"},
        ],
    )
    def test_invalid(self, kwargs: dict) -> None:
        with pytest.raises(TasmotaConfigError):
            ConnectionSettings(**kwargs).validate()

    def test_valid_returns_self(self) -> None:
        settings = ConnectionSettings(host="broker.local")
        assert settings.validate() is settings


class TestFromEnv:
    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TASMOTA_MQTT_HOST", "broker.local")
        monkeypatch.setenv("TASMOTA_MQTT_PORT", "8884")
        monkeypatch.setenv("TASMOTA_MQTT_USERNAME", "user")
        monkeypatch.setenv("TASMOTA_MQTT_PASSWORD", "pw")
        monkeypatch.setenv("TASMOTA_MQTT_USE_TLS", "yes")

        settings = ConnectionSettings.from_env()

        assert settings == ConnectionSettings(
            host="broker.local",
            port=8884,
            username="user",
            password="pw",
            use_tls=True,
        )

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TASMOTA_MQTT_HOST", "broker.local")
        monkeypatch.setenv("TASMOTA_MQTT_PORT", "1")
        monkeypatch.setenv("TASMOTA_MQTT_USE_TLS", "1")

        settings = ConnectionSettings.from_env(host="other.local", port=None, use_tls=False)

        assert settings.host == "other.local"
        assert settings.port is None
        assert settings.use_tls is False

    def test_missing_host(self) -> None:
        with pytest.raises(TasmotaConfigError):
            ConnectionSettings.from_env()

    def test_bad_port(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TASMOTA_MQTT_HOST", "broker.local")
        monkeypatch.setenv("TASMOTA_MQTT_PORT", "eighty")

        with pytest.raises(TasmotaConfigError):
            ConnectionSettings.from_env()


class TestFromBlob:
    def test_dashboard_blob(self) -> None:
        settings = ConnectionSettings.from_blob(
            {"brokerUrl": " broker.local ", "port": "8884", "username": "u", "password": "p", "useSSL": True}
        )

        assert settings.host == "broker.local"
        assert settings.port == 8884
        assert settings.use_tls is True
        assert settings.resolved_port == 8884

    def test_empty_port_means_default(self) -> None:
        settings = ConnectionSettings.from_blob({"brokerUrl": "broker.local", "port": "", "useSSL": "false"})

        assert settings.port is None
        assert settings.use_tls is False
        assert settings.username == ""

    @pytest.mark.parametrize("blob", [{}, {"brokerUrl": ""}, {"brokerUrl": "b", "port": "x"}])
    def test_invalid_blob(self, blob: dict) -> None:
        with pytest.raises(TasmotaConfigError):
            ConnectionSettings.from_blob(blob)
