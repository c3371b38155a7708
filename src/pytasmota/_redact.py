"""Helpers for safe debug logging.

Connection settings carry broker credentials and some firmware commands
(``Password``, ``MqttPassword``, ``SSId``-style setters) carry secrets in
their payload. This module redacts those before they reach DEBUG logs.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any

_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "mqttpassword",
        "webpassword",
        "password1",
        "password2",
        "token",
    }
)

_REDACTED = "<redacted>"


def redact_for_log(value: Any, *, max_string: int = 256) -> Any:
    """Return a redacted copy of *value* suitable for debug logs.

    Dataclasses (e.g. :class:`pytasmota.config.ConnectionSettings`) are
    converted to dicts first.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = dataclasses.asdict(value)

    if isinstance(value, Mapping):
        redacted: dict[str, Any] = {}
        for k, v in value.items():
            key = str(k)
            if key.lower() in _SENSITIVE_KEYS and v:
                redacted[key] = _REDACTED
            else:
                redacted[key] = redact_for_log(v, max_string=max_string)
        return redacted

    if isinstance(value, str) and len(value) > max_string:
        return f"{value[:max_string]}…<truncated>"
    return value


def redact_command(command: str, payload: str) -> str:
    """Return *payload* with secrets hidden when *command* sets a password."""
    if command.lower() in _SENSITIVE_KEYS and payload:
        return _REDACTED
    return payload
