"""Normalized decode outcomes.

The decoders convert inbound ``(topic, payload)`` pairs into these values.
Only the state/store layer is allowed to merge them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MessageKind(StrEnum):
    POWER = "power"
    RESULT = "result"
    STATUS = "status"
    LWT = "lwt"
    STATE = "state"
    SENSOR = "sensor"


class DeviceUpdate(BaseModel):
    """A partial projection update for one device."""

    model_config = ConfigDict(frozen=True)

    topic: str = Field(..., description="Device topic")
    kind: MessageKind
    received_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    data: dict[str, Any] = Field(default_factory=dict, description="Pruned projection patch")

    @field_validator("topic")
    @classmethod
    def _normalize_topic(cls, value: str) -> str:
        topic = value.strip()
        if not topic:
            raise ValueError("topic must be non-empty")
        return topic

    @field_validator("received_at")
    @classmethod
    def _ensure_tz_aware(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value


@dataclass(frozen=True)
class Unrecognized:
    """Explicit "drop this message" outcome of a decoder.

    Broker connections routinely carry traffic the adapter does not
    understand; callers log ``reason`` at debug level and move on.
    """

    topic: str
    reason: str


DecodeResult = DeviceUpdate | Unrecognized
