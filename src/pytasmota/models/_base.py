"""Base model and enum for Tasmota wire payloads.

Every payload model inherits from :class:`TasmotaBaseModel` which
provides:

* explicit PascalCase aliases (Tasmota keys such as ``IPAddress`` or
  ``SSId`` do not follow a generator-friendly convention) with
  ``populate_by_name`` so tests can build models from field names.
* A ``model_validator(mode="before")`` that strips empty values
  (``None``, ``""``, NaN) so the field default is used.
* A ``raw`` dict that captures the original payload.

Lenient numeric fields use :data:`LenientFloat` / :data:`LenientInt`:
firmware builds disagree on whether numbers are quoted, and a malformed
number must drop that one field rather than the whole message.
"""

from __future__ import annotations

import enum
import math
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator

from pytasmota.ingestion.normalize import safe_float, safe_int, safe_str

LenientFloat = Annotated[float | None, BeforeValidator(safe_float)]
LenientInt = Annotated[int | None, BeforeValidator(safe_int)]
LenientStr = Annotated[str | None, BeforeValidator(safe_str)]


class TasmotaEnum(enum.StrEnum):
    """Base for firmware state enums.

    Every subclass **must** define ``UNKNOWN``. Lookup is
    case-insensitive and any unmapped value resolves to ``UNKNOWN``
    instead of raising ``ValueError``.
    """

    @classmethod
    def _missing_(cls, value: object) -> TasmotaEnum:
        if isinstance(value, str):
            folded = value.strip().upper()
            for member in cls:
                if member.value.upper() == folded:
                    return member
        unknown: TasmotaEnum = cls.UNKNOWN  # type: ignore[attr-defined]
        return unknown


class TasmotaBaseModel(BaseModel):
    """Base for Tasmota payload models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict, exclude=True)
    """Original payload dict."""

    @model_validator(mode="before")
    @classmethod
    def _clean_values(cls, values: Any) -> Any:
        """Drop empty values and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        cleaned: dict[str, Any] = {}
        for key, value in values.items():
            if value is None:
                continue
            if isinstance(value, str) and not value.strip():
                continue
            if isinstance(value, float) and math.isnan(value):
                continue
            cleaned[key] = value
        if "raw" not in values:
            cleaned["raw"] = dict(values)
        return cleaned
