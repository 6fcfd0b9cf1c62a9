"""Builders for the CeleryScript RPCs FarmBot OS understands.

These only construct :class:`~pyfarmbot.models.messages.Command` nodes; what
the device does with them is up to the device.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Literal

from pyfarmbot.models.messages import Command

Axis = Literal["x", "y", "z", "all"]

_AXES: frozenset[str] = frozenset({"x", "y", "z", "all"})
_PIN_MODE_DIGITAL = 0
_PIN_MODE_ANALOG = 1
_OS_PACKAGE = "farmbot_os"


def _check_speed(speed: int) -> int:
    if not 1 <= speed <= 100:
        raise ValueError(f"speed must be between 1 and 100 percent, got {speed}")
    return speed


def _check_axis(axis: str) -> str:
    if axis not in _AXES:
        raise ValueError(f"axis must be one of {sorted(_AXES)}, got {axis!r}")
    return axis


def _check_pin_mode(pin_mode: int) -> int:
    if pin_mode not in (_PIN_MODE_DIGITAL, _PIN_MODE_ANALOG):
        raise ValueError(f"pin_mode must be 0 (digital) or 1 (analog), got {pin_mode}")
    return pin_mode


def _coordinate(x: float, y: float, z: float) -> dict[str, Any]:
    return {"kind": "coordinate", "args": {"x": x, "y": y, "z": z}}


def read_status() -> Command:
    """Ask the device to publish its full state tree."""
    return Command(kind="read_status")


def sync() -> Command:
    return Command(kind="sync")


def emergency_lock() -> Command:
    return Command(kind="emergency_lock")


def emergency_unlock() -> Command:
    return Command(kind="emergency_unlock")


def move_relative(x: float = 0, y: float = 0, z: float = 0, *, speed: int = 100) -> Command:
    return Command(kind="move_relative", args={"x": x, "y": y, "z": z, "speed": _check_speed(speed)})


def move_absolute(
    x: float,
    y: float,
    z: float,
    *,
    speed: int = 100,
    offset: tuple[float, float, float] = (0, 0, 0),
) -> Command:
    return Command(
        kind="move_absolute",
        args={
            "location": _coordinate(x, y, z),
            "offset": _coordinate(*offset),
            "speed": _check_speed(speed),
        },
    )


def find_home(axis: Axis = "all", *, speed: int = 100) -> Command:
    return Command(kind="find_home", args={"axis": _check_axis(axis), "speed": _check_speed(speed)})


def home(axis: Axis = "all", *, speed: int = 100) -> Command:
    return Command(kind="home", args={"axis": _check_axis(axis), "speed": _check_speed(speed)})


def calibrate(axis: Axis = "all") -> Command:
    return Command(kind="calibrate", args={"axis": _check_axis(axis)})


def write_pin(pin_number: int, pin_value: int, *, pin_mode: int = _PIN_MODE_DIGITAL) -> Command:
    return Command(
        kind="write_pin",
        args={"pin_number": pin_number, "pin_value": pin_value, "pin_mode": _check_pin_mode(pin_mode)},
    )


def read_pin(pin_number: int, *, label: str = "---", pin_mode: int = _PIN_MODE_DIGITAL) -> Command:
    return Command(
        kind="read_pin",
        args={"pin_number": pin_number, "label": label, "pin_mode": _check_pin_mode(pin_mode)},
    )


def toggle_pin(pin_number: int) -> Command:
    return Command(kind="toggle_pin", args={"pin_number": pin_number})


def set_user_env(values: Mapping[str, str]) -> Command:
    """Set one or more ``user_env`` entries on the device."""
    if not values:
        raise ValueError("values must contain at least one entry")
    return Command(
        kind="set_user_env",
        body=[Command(kind="pair", args={"label": key, "value": str(value)}) for key, value in values.items()],
    )


def send_message(message: str, *, message_type: str = "info", channels: tuple[str, ...] = ()) -> Command:
    return Command(
        kind="send_message",
        args={"message": message, "message_type": message_type},
        body=[Command(kind="channel", args={"channel_name": name}) for name in channels] or None,
    )


def reboot() -> Command:
    return Command(kind="reboot", args={"package": _OS_PACKAGE})


def power_off() -> Command:
    return Command(kind="power_off")


def check_updates() -> Command:
    return Command(kind="check_updates", args={"package": _OS_PACKAGE})


def factory_reset() -> Command:
    return Command(kind="factory_reset", args={"package": _OS_PACKAGE})


def install_farmware(url: str) -> Command:
    return Command(kind="install_farmware", args={"url": url})


def update_farmware(package: str) -> Command:
    return Command(kind="update_farmware", args={"package": package})


def remove_farmware(package: str) -> Command:
    return Command(kind="remove_farmware", args={"package": package})
