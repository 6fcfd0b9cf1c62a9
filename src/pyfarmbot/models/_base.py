"""Base models and enum for FarmBot state and wire payloads.

Two merge classes share one pydantic base:

* :class:`SparseModel` sections merge field-by-field. Every field is
  optional and ``None``/omitted means "not known yet", never zero or false.
* :class:`FarmbotRecord` leaves (a pin, a job, an alert, a manifest) are
  atomic: a newer record replaces the older one as a whole.

String enums inherit from :class:`FarmbotEnum` which adds an ``UNKNOWN``
member and a ``_missing_`` hook so a new value from a newer FarmBot OS does
not reject the whole message.
"""

from __future__ import annotations

import enum
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator


def drop_none(value: Any) -> Any:
    """Recursively drop ``None`` values from mappings and sequences.

    JSON ``null`` and omitted keys both mean "unknown" in a state payload.
    """
    if isinstance(value, Mapping):
        return {k: drop_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list):
        return [drop_none(v) for v in value if v is not None]
    return value


class FarmbotEnum(enum.StrEnum):
    """Base for FarmBot string enums.

    Every subclass **must** define ``UNKNOWN = "unknown"``.
    """

    @classmethod
    def _missing_(cls, value: object) -> FarmbotEnum:
        unknown: FarmbotEnum = cls.UNKNOWN  # type: ignore[attr-defined]
        return unknown


class FarmbotBaseModel(BaseModel):
    """Base for every pyfarmbot model: frozen, unknown keys ignored."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )


class FarmbotRecord(FarmbotBaseModel):
    """An atomic leaf of the state tree; replaced whole on merge."""


class SparseModel(FarmbotBaseModel):
    """A state section whose fields are merged one by one.

    ``None`` inputs are stripped before validation so that only fields the
    producer actually reported end up in ``model_fields_set``.
    """

    @model_validator(mode="before")
    @classmethod
    def _strip_unknown_values(cls, values: Any) -> Any:
        if not isinstance(values, Mapping):
            return values
        return drop_none(values)
