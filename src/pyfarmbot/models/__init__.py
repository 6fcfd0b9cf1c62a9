"""Pydantic models for FarmBot state and wire messages."""

from pyfarmbot.models._base import FarmbotBaseModel, FarmbotEnum, FarmbotRecord, SparseModel
from pyfarmbot.models.farmware import (
    AnyFarmwareManifest,
    FarmwareConfig,
    FarmwareManifest,
    LegacyFarmwareManifest,
    LegacyFarmwareManifestMeta,
)
from pyfarmbot.models.messages import (
    Command,
    DeviceLog,
    InboundMessage,
    MessageKind,
    RpcReply,
    RpcRequest,
    RpcRequestArgs,
)
from pyfarmbot.models.state import (
    AxisPosition,
    BytesProgress,
    Configuration,
    Enigma,
    FirmwareHardware,
    InformationalSettings,
    JobProgress,
    LocationData,
    LocationName,
    PercentageProgress,
    Pin,
    ProcessInfo,
    ProgressStatus,
    StateTree,
    SyncStatus,
)

__all__ = [
    "AnyFarmwareManifest",
    "AxisPosition",
    "BytesProgress",
    "Command",
    "Configuration",
    "DeviceLog",
    "Enigma",
    "FarmbotBaseModel",
    "FarmbotEnum",
    "FarmbotRecord",
    "FarmwareConfig",
    "FarmwareManifest",
    "FirmwareHardware",
    "InboundMessage",
    "InformationalSettings",
    "JobProgress",
    "LegacyFarmwareManifest",
    "LegacyFarmwareManifestMeta",
    "LocationData",
    "LocationName",
    "MessageKind",
    "PercentageProgress",
    "Pin",
    "ProcessInfo",
    "ProgressStatus",
    "RpcReply",
    "RpcRequest",
    "RpcRequestArgs",
    "SparseModel",
    "StateTree",
    "SyncStatus",
]
