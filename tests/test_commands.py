from __future__ import annotations

import pytest

from pyfarmbot import commands


def test_move_absolute_uses_coordinate_nodes() -> None:
    node = commands.move_absolute(100, 200, -50, speed=80, offset=(0, 0, 10)).to_wire()

    assert node == {
        "kind": "move_absolute",
        "args": {
            "location": {"kind": "coordinate", "args": {"x": 100, "y": 200, "z": -50}},
            "offset": {"kind": "coordinate", "args": {"x": 0, "y": 0, "z": 10}},
            "speed": 80,
        },
    }


def test_set_user_env_builds_pairs() -> None:
    node = commands.set_user_env({"CAMERA": "RPI", "LIGHTS": 1}).to_wire()  # type: ignore[dict-item]

    assert node["kind"] == "set_user_env"
    assert node["body"] == [
        {"kind": "pair", "args": {"label": "CAMERA", "value": "RPI"}},
        {"kind": "pair", "args": {"label": "LIGHTS", "value": "1"}},
    ]


def test_send_message_channels() -> None:
    plain = commands.send_message("hi").to_wire()
    toast = commands.send_message("hi", message_type="success", channels=("toast", "email")).to_wire()

    assert "body" not in plain
    assert [node["args"]["channel_name"] for node in toast["body"]] == ["toast", "email"]
    assert toast["args"]["message_type"] == "success"


def test_os_package_commands() -> None:
    for builder in (commands.reboot, commands.check_updates, commands.factory_reset):
        assert builder().args == {"package": "farmbot_os"}


def test_farmware_commands() -> None:
    assert commands.install_farmware("https://example.com/manifest.json").args == {
        "url": "https://example.com/manifest.json"
    }
    assert commands.update_farmware("plant-detection").kind == "update_farmware"
    assert commands.remove_farmware("plant-detection").args == {"package": "plant-detection"}


def test_pin_commands() -> None:
    assert commands.write_pin(13, 1).args == {"pin_number": 13, "pin_value": 1, "pin_mode": 0}
    assert commands.read_pin(59, label="soil", pin_mode=1).args == {"pin_number": 59, "label": "soil", "pin_mode": 1}
    assert commands.toggle_pin(7).args == {"pin_number": 7}


@pytest.mark.parametrize(
    "build",
    [
        lambda: commands.move_relative(x=1, speed=0),
        lambda: commands.move_absolute(0, 0, 0, speed=101),
        lambda: commands.find_home("w"),  # type: ignore[arg-type]
        lambda: commands.calibrate("xy"),  # type: ignore[arg-type]
        lambda: commands.write_pin(13, 1, pin_mode=2),
        lambda: commands.set_user_env({}),
    ],
)
def test_invalid_arguments_raise(build) -> None:  # type: ignore[no-untyped-def]
    with pytest.raises(ValueError):
        build()
