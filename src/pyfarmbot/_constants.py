"""Internal constants shared across the library."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_MQTT_PORT = 1883
DEFAULT_MQTT_TLS_PORT = 8883
DEFAULT_KEEPALIVE = 60
DEFAULT_COMMAND_TIMEOUT = 15.0
DEFAULT_SNAPSHOT_TIMEOUT = 15.0
DEFAULT_RPC_PRIORITY = 600

# Marks the current Farmware manifest shape (FarmBot OS >= 8).
FARMWARE_MANIFEST_VERSION_KEY = "farmware_manifest_version"


@dataclass(frozen=True)
class Topics:
    """MQTT topic names for a single device.

    ``bot/<device_id>/...`` is the FarmBot broker convention.
    """

    device_id: str

    @property
    def prefix(self) -> str:
        return f"bot/{self.device_id}"

    @property
    def from_clients(self) -> str:
        """Outbound RPC requests."""
        return f"{self.prefix}/from_clients"

    @property
    def from_device(self) -> str:
        """RPC replies (``rpc_ok`` / ``rpc_error``)."""
        return f"{self.prefix}/from_device"

    @property
    def status(self) -> str:
        """Full state tree."""
        return f"{self.prefix}/status"

    @property
    def status_upsert_prefix(self) -> str:
        return f"{self.prefix}/status_v8/upsert/"

    @property
    def status_v8(self) -> str:
        """Filter for partial state deltas."""
        return f"{self.prefix}/status_v8/#"

    @property
    def logs(self) -> str:
        return f"{self.prefix}/logs"

    def subscriptions(self) -> tuple[str, ...]:
        return (self.status, self.status_v8, self.from_device, self.logs)


# Microcontroller firmware parameter names known at the time of writing.
# The state tree accepts any name; this list is informational.
MCU_PARAM_NAMES: frozenset[str] = frozenset(
    {
        *(
            f"{prefix}_{axis}"
            for axis in ("x", "y", "z")
            for prefix in (
                "encoder_enabled",
                "encoder_invert",
                "encoder_missed_steps_decay",
                "encoder_missed_steps_max",
                "encoder_scaling",
                "encoder_type",
                "encoder_use_for_pos",
                "movement_axis_nr_steps",
                "movement_enable_endpoints",
                "movement_home_at_boot",
                "movement_home_spd",
                "movement_home_up",
                "movement_invert_2_endpoints",
                "movement_invert_endpoints",
                "movement_invert_motor",
                "movement_keep_active",
                "movement_max_spd",
                "movement_min_spd",
                "movement_step_per_mm",
                "movement_steps_acc_dec",
                "movement_stop_at_home",
                "movement_stop_at_max",
                "movement_timeout",
            )
        ),
        "movement_secondary_motor_invert_x",
        "movement_secondary_motor_x",
        "param_e_stop_on_mov_err",
        "param_mov_nr_retry",
        "param_version",
        *(
            f"pin_guard_{n}_{suffix}"
            for n in range(1, 6)
            for suffix in ("active_state", "pin_nr", "time_out")
        ),
    }
)
