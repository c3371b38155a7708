"""Merge policies for configuration-session fields.

The three policies below mirror how the firmware's replies are consumed
while a detail view is open:

- module id: ``ALWAYS_LATEST`` (the newest reply is authoritative).
- GPIO map: ``FIRST_WINS`` (a GPIO change only applies after a restart,
  so a second reply in the same view must not clobber the map the
  operator is editing).
- timer slots, timers-enabled flag and clock offset: ``ALWAYS_LATEST``.
"""

from __future__ import annotations

from enum import StrEnum


class MergePolicy(StrEnum):
    ALWAYS_LATEST = "always_latest"
    FIRST_WINS = "first_wins"


def should_replace(policy: MergePolicy, *, has_value: bool) -> bool:
    """Decide whether an incoming decode replaces the current value."""
    if policy == MergePolicy.FIRST_WINS:
        return not has_value
    return True
