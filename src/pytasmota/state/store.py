"""Deterministic in-memory device state store.

This is the only component allowed to merge decoded device updates.
"""

from __future__ import annotations

import copy
import logging
from typing import Any

from pytasmota.models.device import DeviceProjection
from pytasmota.state.events import DeviceUpdate

_logger = logging.getLogger(__name__)


def _merge_patch(target: dict[str, Any], patch: dict[str, Any]) -> None:
    """Apply a pruned patch: keys in the patch overwrite.

    Dict-valued fields (``sensors``) merge one level deep so a reading for
    one sensor does not erase another sensor's last reading.
    """

    for key, value in patch.items():
        current = target.get(key)
        if isinstance(value, dict) and isinstance(current, dict):
            merged = dict(current)
            merged.update(copy.deepcopy(value))
            target[key] = merged
        else:
            target[key] = copy.deepcopy(value)


class DeviceStateStore:
    """In-memory store of device projections keyed by device topic.

    Merge semantics are per-field overwrite plus a ``last_seen`` that never
    moves backwards: an update only touches the fields it supplies, and
    applying the same update twice leaves the projection unchanged.
    """

    def __init__(self) -> None:
        self._devices: dict[str, dict[str, Any]] = {}

    def _device(self, topic: str) -> dict[str, Any]:
        state = self._devices.get(topic)
        if state is None:
            state = {}
            self._devices[topic] = state
            _logger.debug("Tracking new device topic=%s", topic)
        return state

    def apply(self, update: DeviceUpdate) -> None:
        """Merge a decoded update into its device projection."""
        state = self._device(update.topic)
        _merge_patch(state, update.data)

        last_seen = state.get("last_seen")
        if last_seen is None or update.received_at > last_seen:
            state["last_seen"] = update.received_at

    def mark_all_offline(self) -> list[str]:
        """Mark every known device offline (the transport lost the broker).

        Returns the topics that were online before the call.
        """
        went_offline = [topic for topic, state in self._devices.items() if state.get("is_online")]
        for topic in went_offline:
            self._devices[topic]["is_online"] = False
        return went_offline

    def get(self, topic: str) -> DeviceProjection | None:
        state = self._devices.get(topic)
        if state is None:
            return None
        return DeviceProjection.model_validate(state)

    def get_raw(self, topic: str) -> dict[str, Any]:
        """Copy of the merged field dict for *topic* (empty when unknown)."""
        return copy.deepcopy(self._devices.get(topic, {}))

    def topics(self) -> list[str]:
        return list(self._devices)

    def snapshot(self) -> dict[str, DeviceProjection]:
        return {topic: DeviceProjection.model_validate(state) for topic, state in self._devices.items()}

    def __contains__(self, topic: object) -> bool:
        return topic in self._devices

    def __len__(self) -> int:
        return len(self._devices)
