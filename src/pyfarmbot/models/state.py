"""The FarmBot state tree: everything the device knows about itself."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import Field

from pyfarmbot.models._base import FarmbotEnum, FarmbotRecord, SparseModel
from pyfarmbot.models.farmware import AnyFarmwareManifest

LocationName = Literal["position", "scaled_encoders", "raw_encoders"]


class FirmwareHardware(FarmbotEnum):
    """Microcontroller board."""

    UNKNOWN = "unknown"
    ARDUINO = "arduino"
    FARMDUINO = "farmduino"
    FARMDUINO_K14 = "farmduino_k14"


class SyncStatus(FarmbotEnum):
    UNKNOWN = "unknown"
    BOOTING = "booting"
    MAINTENANCE = "maintenance"
    SYNC_ERROR = "sync_error"
    SYNC_NOW = "sync_now"
    SYNCED = "synced"
    SYNCING = "syncing"


class ProgressStatus(FarmbotEnum):
    UNKNOWN = "unknown"
    COMPLETE = "complete"
    WORKING = "working"
    ERROR = "error"


# ------------------------------------------------------------------
# Sparse sections
# ------------------------------------------------------------------


class AxisPosition(SparseModel):
    x: float | None = None
    y: float | None = None
    z: float | None = None


class LocationData(SparseModel):
    """Per-axis positions in each coordinate system."""

    position: AxisPosition = Field(default_factory=AxisPosition)
    scaled_encoders: AxisPosition = Field(default_factory=AxisPosition)
    raw_encoders: AxisPosition = Field(default_factory=AxisPosition)


class Configuration(SparseModel):
    """FarmBot OS configs."""

    arduino_debug_messages: int | None = None
    auto_sync: bool | None = None
    beta_opt_in: bool | None = None
    disable_factory_reset: bool | None = None
    firmware_hardware: FirmwareHardware | None = None
    firmware_input_log: bool | None = None
    firmware_output_log: bool | None = None
    fw_auto_update: int | None = None
    network_not_found_timer: int | None = None
    os_auto_update: int | None = None
    sequence_body_log: bool | None = None
    sequence_complete_log: bool | None = None
    sequence_init_log: bool | None = None


class InformationalSettings(SparseModel):
    """Read-only device metrics. Only the device ever writes these."""

    uptime: int | None = None
    disk_usage: float | None = None
    memory_usage: float | None = None
    soc_temp: float | None = None
    wifi_level: float | None = None
    controller_version: str | None = None
    firmware_version: str | None = None
    throttled: str | None = None
    private_ip: str | None = None
    sync_status: SyncStatus | None = None
    busy: bool | None = None
    locked: bool | None = None
    commit: str | None = None
    firmware_commit: str | None = None
    target: str | None = None
    env: str | None = None
    node_name: str | None = None
    currently_on_beta: bool | None = None
    update_available: bool | None = None


class ProcessInfo(SparseModel):
    farmwares: dict[str, AnyFarmwareManifest] = Field(default_factory=dict)


# ------------------------------------------------------------------
# Records
# ------------------------------------------------------------------


class Pin(FarmbotRecord):
    mode: int
    value: float


class PercentageProgress(FarmbotRecord):
    status: ProgressStatus
    unit: Literal["percent"] = "percent"
    percent: float


class BytesProgress(FarmbotRecord):
    status: ProgressStatus
    unit: Literal["bytes"]
    bytes: int


JobProgress = Annotated[PercentageProgress | BytesProgress, Field(discriminator="unit")]


class Enigma(FarmbotRecord):
    """A problem identified by FarmBot OS."""

    created_at: float
    problem_tag: str
    priority: int
    uuid: str


# ------------------------------------------------------------------
# Aggregate
# ------------------------------------------------------------------


class StateTree(SparseModel):
    """Canonical mirror of the device's reported state.

    Every mapping is sparse: a missing key means the value is not known yet.
    Instances are frozen; the store swaps whole trees instead of mutating.
    """

    mcu_params: dict[str, float] = Field(default_factory=dict)
    location_data: LocationData = Field(default_factory=LocationData)
    pins: dict[int, Pin] = Field(default_factory=dict)
    configuration: Configuration = Field(default_factory=Configuration)
    informational_settings: InformationalSettings = Field(default_factory=InformationalSettings)
    user_env: dict[str, str] = Field(default_factory=dict)
    jobs: dict[str, JobProgress] = Field(default_factory=dict)
    process_info: ProcessInfo = Field(default_factory=ProcessInfo)
    gpio_registry: dict[int, str] = Field(default_factory=dict)
    enigmas: dict[str, Enigma] = Field(default_factory=dict)
