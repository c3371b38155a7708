"""Normalization helpers.

Centralizes lenient parsing of firmware values and patch pruning.
"""

from __future__ import annotations

import json
import math
from typing import Any


def safe_float(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(result):
        return None
    return result


def safe_int(value: Any) -> int | None:
    parsed = safe_float(value)
    if parsed is None:
        return None
    return int(parsed)


def safe_str(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text if text else None


def clamp_percent(value: int | None) -> int | None:
    if value is None:
        return None
    return max(0, min(100, value))


def parse_json_object(payload: str) -> dict[str, Any] | None:
    """Parse *payload* as a JSON object; ``None`` for anything else."""
    text = payload.strip()
    if not text.startswith("{"):
        return None
    try:
        parsed = json.loads(text)
    except ValueError:
        return None
    return parsed if isinstance(parsed, dict) else None


def is_meaningful(value: Any) -> bool:
    """Return True if the value should be included in a state patch.

    ``False`` and ``0`` are real readings and are kept.
    """
    if value is None:
        return False
    if isinstance(value, (str, dict, list)):
        return len(value) > 0
    return True


def prune_patch(data: Any) -> Any:
    """Recursively drop non-meaningful values from a patch structure.

    State merging assumes incoming patches are already pruned: a key that
    is present always means "overwrite".
    """
    if isinstance(data, dict):
        cleaned = {key: prune_patch(value) for key, value in data.items()}
        return {key: value for key, value in cleaned.items() if is_meaningful(value)}
    if isinstance(data, list):
        return [item for item in map(prune_patch, data) if is_meaningful(item)]
    return data
