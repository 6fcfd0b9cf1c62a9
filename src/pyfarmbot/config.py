"""Client configuration for pyfarmbot."""

from __future__ import annotations

import dataclasses
import os
from collections.abc import Mapping
from typing import Any, Protocol

from pyfarmbot._constants import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_KEEPALIVE,
    DEFAULT_MQTT_PORT,
    DEFAULT_MQTT_TLS_PORT,
    DEFAULT_SNAPSHOT_TIMEOUT,
)
from pyfarmbot.exceptions import FarmbotConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class ConnectionInfo:
    """Endpoint address, device identifier and auth token for one device."""

    host: str
    device_id: str
    token: str
    port: int = DEFAULT_MQTT_PORT
    tls: bool = False

    def __repr__(self) -> str:
        return (
            f"ConnectionInfo(host={self.host!r}, port={self.port}, "
            f"device_id={self.device_id!r}, tls={self.tls}, token=<redacted>)"
        )

    @classmethod
    def from_api_token(cls, token: Mapping[str, Any], *, tls: bool = False, port: int | None = None) -> ConnectionInfo:
        """Build connection info from a FarmBot API token response.

        Accepts either the full ``{"token": {...}}`` response body or the
        inner ``{"unencoded": {...}, "encoded": "..."}`` object. The
        ``unencoded.mqtt`` claim is a *host*, not a URL.
        """
        inner = token.get("token", token)
        if not isinstance(inner, Mapping):
            raise FarmbotConfigError("API token is not an object")
        unencoded = inner.get("unencoded")
        encoded = inner.get("encoded")
        if not isinstance(unencoded, Mapping):
            raise FarmbotConfigError("API token missing 'unencoded' claims")
        if not isinstance(encoded, str) or not encoded:
            raise FarmbotConfigError("API token missing 'encoded' value")

        host = unencoded.get("mqtt")
        bot = unencoded.get("bot")
        if not isinstance(host, str) or not host.strip():
            raise FarmbotConfigError("API token missing 'mqtt' host")
        if not isinstance(bot, str) or not bot.strip():
            raise FarmbotConfigError("API token missing 'bot' device id")

        resolved_port = port if port is not None else (DEFAULT_MQTT_TLS_PORT if tls else DEFAULT_MQTT_PORT)
        return cls(host=host.strip(), device_id=bot.strip(), token=encoded, port=resolved_port, tls=tls)


class ConnectionInfoProvider(Protocol):
    """Supplies connection details; consumed once when the transport is built."""

    def connection_info(self) -> ConnectionInfo: ...


@dataclasses.dataclass(frozen=True)
class FarmbotConfig:
    """Client configuration.

    Parameters
    ----------
    device_id : str
        FarmBot device identifier, e.g. ``"device_1234"``. Also the MQTT
        username and the middle segment of every topic.
    token : str
        Encoded API token used as the MQTT password.
    mqtt_host : str
        Broker host name (not a URL).
    mqtt_port : int or None
        Broker port. Defaults to 8883 with TLS, 1883 without.
    mqtt_tls : bool
        Wrap the broker connection in TLS.
    mqtt_keepalive : int
        MQTT keepalive in seconds.
    command_timeout : float
        Default seconds to wait for an RPC reply before failing the command
        with :class:`~pyfarmbot.exceptions.FarmbotTimeoutError`.
    snapshot_timeout : float
        Seconds :meth:`FarmbotClient.connect` waits for the first full state
        snapshot before giving up.
    legacy_farmware_manifests : bool
        Accept Farmware manifests in the pre-FarmBot-OS-v8 shape. When
        disabled, legacy manifests are dropped from ``process_info``.
    """

    device_id: str
    token: str
    mqtt_host: str = "clever-octopus.rmq.cloudamqp.com"
    mqtt_port: int | None = None
    mqtt_tls: bool = False
    mqtt_keepalive: int = DEFAULT_KEEPALIVE
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT
    snapshot_timeout: float = DEFAULT_SNAPSHOT_TIMEOUT
    legacy_farmware_manifests: bool = True

    def __post_init__(self) -> None:
        if not self.device_id.strip():
            raise FarmbotConfigError("device_id must be non-empty")
        if self.command_timeout <= 0:
            raise FarmbotConfigError(f"command_timeout must be positive, got {self.command_timeout}")
        if self.snapshot_timeout <= 0:
            raise FarmbotConfigError(f"snapshot_timeout must be positive, got {self.snapshot_timeout}")

    def __repr__(self) -> str:
        return (
            f"FarmbotConfig(device_id={self.device_id!r}, mqtt_host={self.mqtt_host!r}, "
            f"mqtt_port={self.resolved_port}, mqtt_tls={self.mqtt_tls}, token=<redacted>)"
        )

    @property
    def resolved_port(self) -> int:
        if self.mqtt_port is not None:
            return self.mqtt_port
        return DEFAULT_MQTT_TLS_PORT if self.mqtt_tls else DEFAULT_MQTT_PORT

    def connection_info(self) -> ConnectionInfo:
        """Return the broker connection details described by this config."""
        return ConnectionInfo(
            host=self.mqtt_host,
            device_id=self.device_id,
            token=self.token,
            port=self.resolved_port,
            tls=self.mqtt_tls,
        )

    @classmethod
    def from_api_token(cls, token: Mapping[str, Any], **overrides: Any) -> FarmbotConfig:
        """Create configuration from a FarmBot API token response."""
        info = ConnectionInfo.from_api_token(token, tls=bool(overrides.get("mqtt_tls", False)))
        kwargs: dict[str, Any] = {
            "device_id": info.device_id,
            "token": info.token,
            "mqtt_host": info.host,
        }
        kwargs.update(overrides)
        return cls(**kwargs)

    @classmethod
    def from_env(cls, **overrides: Any) -> FarmbotConfig:
        """Create configuration from environment variables.

        Reads ``FARMBOT_DEVICE_ID``, ``FARMBOT_TOKEN`` and optional
        ``FARMBOT_*`` variables. Explicit keyword arguments override
        environment values.

        Raises
        ------
        FarmbotConfigError
            When a required value is missing or a numeric value is invalid.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "FARMBOT_DEVICE_ID": "device_id",
            "FARMBOT_TOKEN": "token",
            "FARMBOT_MQTT_HOST": "mqtt_host",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "FARMBOT_MQTT_PORT": ("mqtt_port", int),
            "FARMBOT_MQTT_KEEPALIVE": ("mqtt_keepalive", int),
            "FARMBOT_COMMAND_TIMEOUT": ("command_timeout", float),
            "FARMBOT_SNAPSHOT_TIMEOUT": ("snapshot_timeout", float),
        }
        for env_key, (field_name, kind) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = kind(val)
            except ValueError as exc:
                raise FarmbotConfigError(f"{env_key} is not a valid {kind.__name__}: {val!r}") from exc

        if "mqtt_tls" not in overrides:
            config_kwargs["mqtt_tls"] = _env_bool(env.get("FARMBOT_MQTT_TLS"), False)
        if "legacy_farmware_manifests" not in overrides:
            config_kwargs["legacy_farmware_manifests"] = _env_bool(env.get("FARMBOT_LEGACY_MANIFESTS"), True)

        config_kwargs.update(overrides)

        for required in ("device_id", "token"):
            if not config_kwargs.get(required):
                raise FarmbotConfigError(f"Missing required setting {required!r} (FARMBOT_{required.upper()})")

        return cls(**config_kwargs)
