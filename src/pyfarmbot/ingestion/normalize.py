"""Normalization helpers.

JSON parsing and dotted-path expansion for inbound payloads.
"""

from __future__ import annotations

import json
from typing import Any

from pyfarmbot.exceptions import FarmbotMalformedMessageError


def load_json(payload: bytes | str, *, topic: str = "") -> Any:
    """Decode a UTF-8 JSON payload."""
    try:
        text = payload.decode("utf-8") if isinstance(payload, (bytes, bytearray)) else payload
        return json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise FarmbotMalformedMessageError(f"Payload is not valid JSON: {exc}", topic=topic) from exc


def load_json_object(payload: bytes | str, *, topic: str = "") -> dict[str, Any]:
    """Decode a payload that must be a JSON object."""
    parsed = load_json(payload, topic=topic)
    if not isinstance(parsed, dict):
        raise FarmbotMalformedMessageError(
            f"Expected a JSON object, got {type(parsed).__name__}",
            topic=topic,
        )
    return parsed


# Sections keyed by free-form names that may themselves contain dots.
_NAMED_KEY_PREFIXES: tuple[str, ...] = ("jobs.", "user_env.", "process_info.farmwares.")


def split_path(path: str) -> list[str]:
    """Split a dotted state path into keys.

    Under ``jobs``, ``user_env`` and ``process_info.farmwares`` everything
    after the section is one key: ``jobs.Install foo-1.2.zip`` is
    ``["jobs", "Install foo-1.2.zip"]``.
    """
    path = path.lstrip(".")
    for prefix in _NAMED_KEY_PREFIXES:
        if path.startswith(prefix) and len(path) > len(prefix):
            return [*prefix.rstrip(".").split("."), path[len(prefix) :]]
    return [segment for segment in path.split(".") if segment]


def expand_path(path: str, value: Any, *, topic: str = "") -> dict[str, Any]:
    """Nest *value* under a dotted state path.

    ``expand_path("location_data.position", {"x": 1})`` returns
    ``{"location_data": {"position": {"x": 1}}}``. An empty path means the
    value is itself a partial tree.
    """
    segments = split_path(path)
    if not segments:
        if not isinstance(value, dict):
            raise FarmbotMalformedMessageError("Root upsert must carry a JSON object", topic=topic)
        return value

    nested: Any = value
    for segment in reversed(segments):
        nested = {segment: nested}
    return nested
