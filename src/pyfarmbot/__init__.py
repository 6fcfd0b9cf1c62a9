"""pyfarmbot - Async Python client that mirrors FarmBot device state over MQTT."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pyfarmbot")
except PackageNotFoundError:
    __version__ = "0+local"
from pyfarmbot import commands
from pyfarmbot._client.correlator import CommandState, Correlator, PendingCommand
from pyfarmbot._client.dispatcher import Dispatcher
from pyfarmbot._client.lifecycle import LifecycleManager, Readiness
from pyfarmbot._constants import MCU_PARAM_NAMES, Topics
from pyfarmbot._mqtt import MqttTransport
from pyfarmbot.client import FarmbotClient
from pyfarmbot.codec import JsonCodec
from pyfarmbot.config import ConnectionInfo, ConnectionInfoProvider, FarmbotConfig
from pyfarmbot.exceptions import (
    FarmbotConfigError,
    FarmbotConnectionLostError,
    FarmbotDeviceError,
    FarmbotError,
    FarmbotMalformedMessageError,
    FarmbotTimeoutError,
    FarmbotTransportError,
)
from pyfarmbot.ingestion.router import IngressRouter
from pyfarmbot.models import (
    Command,
    DeviceLog,
    FarmwareManifest,
    InboundMessage,
    LegacyFarmwareManifest,
    MessageKind,
    Pin,
    RpcReply,
    RpcRequest,
    StateTree,
)
from pyfarmbot.state.events import ChangeKind, StateChange
from pyfarmbot.state.store import StateStore

__all__ = [
    "__version__",
    "ChangeKind",
    "Command",
    "CommandState",
    "ConnectionInfo",
    "ConnectionInfoProvider",
    "Correlator",
    "DeviceLog",
    "Dispatcher",
    "FarmbotClient",
    "FarmbotConfig",
    "FarmbotConfigError",
    "FarmbotConnectionLostError",
    "FarmbotDeviceError",
    "FarmbotError",
    "FarmbotMalformedMessageError",
    "FarmbotTimeoutError",
    "FarmbotTransportError",
    "FarmwareManifest",
    "InboundMessage",
    "IngressRouter",
    "JsonCodec",
    "LegacyFarmwareManifest",
    "LifecycleManager",
    "MCU_PARAM_NAMES",
    "MessageKind",
    "MqttTransport",
    "PendingCommand",
    "Pin",
    "Readiness",
    "RpcReply",
    "RpcRequest",
    "StateChange",
    "StateStore",
    "StateTree",
    "Topics",
    "commands",
]
